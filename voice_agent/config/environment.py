import logging
import os
import re

import yaml
from dotenv import load_dotenv

from voice_agent.core.errors import ConfigError

# Load .env file for secrets (Override ensures local .env takes precedence over shell vars)
load_dotenv(override=True)

logger = logging.getLogger(__name__)

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ConfigManager:
    _config = None

    @classmethod
    def _load_config(cls):
        if cls._config is None:
            base_path = os.path.dirname(__file__)
            config_path = os.path.join(base_path, "config.yml")
            try:
                with open(config_path, "r") as f:
                    content = f.read()
            except FileNotFoundError:
                logger.error("❌ config.yml not found in voice_agent/config/")
                raise ConfigError(f"Missing configuration file: {config_path}")

            # Interpolate ${VAR} references; unset variables become empty values
            content = _ENV_REF.sub(lambda m: os.getenv(m.group(1), "").strip(), content)
            cls._config = yaml.safe_load(content) or {}
        return cls._config

    @classmethod
    def reset(cls):
        """Drops the cached config so the next lookup re-reads file and environment."""
        cls._config = None

    @classmethod
    def get(cls, path, default=None):
        """Retrieves a value from the config using dot notation (e.g. 'reconnection.retry_limit')."""
        value = cls._load_config()
        for key in path.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(key)
            if value is None:
                return default
        return value

    # --- Secrets (from .env) ---
    @property
    def VAPI_PUBLIC_KEY(self):
        return os.getenv("VAPI_PUBLIC_KEY") or self.get("agent.public_key")

    @property
    def LOG_LEVEL(self):
        return os.getenv("LOG_LEVEL") or self.get("logging.level", "INFO")

    def validate(self):
        """Validates that essential environment variables are set."""
        if not self.VAPI_PUBLIC_KEY:
            logger.error("❌ Missing VAPI_PUBLIC_KEY in environment or .env file.")
            raise ConfigError("Missing VAPI_PUBLIC_KEY")


# Singleton Instance for easy import
config = ConfigManager()
