import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from voice_agent.config.environment import config
from voice_agent.core.assistant_config import AssistantConfig
from voice_agent.core.context_config import ContextConfig, FunctionHandler
from voice_agent.core.errors import ContextNotFound
from voice_agent.core.presets import default_contexts

logger = logging.getLogger(__name__)


class ContextRegistry:
    """
    In-memory store of conversation contexts, keyed by id.
    Registering an existing id overwrites it (last write wins).
    """
    def __init__(self, auto_create_default_contexts: Optional[bool] = None):
        self._contexts: Dict[str, ContextConfig] = {}

        if auto_create_default_contexts is None:
            auto_create_default_contexts = bool(config.get("contexts.auto_create_defaults", True))

        if auto_create_default_contexts:
            for context in default_contexts():
                self.register(context)

    def register(self, context: ContextConfig) -> None:
        if context.id in self._contexts:
            logger.info(f"♻️ Overwriting context: {context.id} ({context.name})")
        else:
            logger.info(f"📋 Registering context: {context.id} ({context.name})")
        self._contexts[context.id] = context

    def register_custom_context(
        self,
        id: str,
        name: str,
        description: str,
        assistant: Union[AssistantConfig, Dict[str, Any]],
        function_handlers: Optional[Mapping[str, FunctionHandler]] = None,
    ) -> ContextConfig:
        """
        Builds and registers a context in one step. ``assistant`` may also be a
        Vapi-style assistant dict; missing parts of it take the defaults.
        """
        if not isinstance(assistant, AssistantConfig):
            assistant = AssistantConfig.from_vapi_payload(assistant)

        context = ContextConfig(
            id=id,
            name=name,
            description=description,
            assistant=assistant,
            function_handlers=dict(function_handlers or {}),
        )
        self.register(context)
        return context

    def get(self, context_id: str) -> ContextConfig:
        context = self._contexts.get(context_id)
        if context is None:
            raise ContextNotFound(context_id)
        return context

    def list_ids(self) -> List[str]:
        return list(self._contexts.keys())

    def __contains__(self, context_id: object) -> bool:
        return context_id in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)
