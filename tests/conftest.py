"""
Pytest configuration and fixtures.
"""

import os
import pytest
from unittest.mock import patch

from voice_agent.adapters.memory import InMemoryCallAdapter
from voice_agent.core.context_registry import ContextRegistry
from voice_agent.core.reconnection import ReconnectionPolicy
from voice_agent.core.session_manager import CallSessionManager


@pytest.fixture(autouse=True)
def mock_env_vars():
    """Mock environment variables for tests."""
    env_vars = {
        "VAPI_PUBLIC_KEY": "test-public-key",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars):
        os.environ.pop("SESSION_EVENTS_WEBHOOK_URL", None)
        # Clear config cache
        from voice_agent.config.environment import ConfigManager
        ConfigManager.reset()
        yield
        ConfigManager.reset()


@pytest.fixture
def adapter():
    return InMemoryCallAdapter()


@pytest.fixture
def registry():
    return ContextRegistry()


@pytest.fixture
def fast_policy():
    """Millisecond backoff so retry tests finish quickly."""
    return ReconnectionPolicy(base_delay_ms=1, max_delay_ms=5, retry_limit=3)


@pytest.fixture
def manager(adapter, registry, fast_policy):
    return CallSessionManager(adapter, registry, policy=fast_policy)
