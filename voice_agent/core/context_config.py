from typing import Any, Awaitable, Callable, Dict
from pydantic import BaseModel, Field

from voice_agent.core.assistant_config import AssistantConfig

FunctionHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


class ContextConfig(BaseModel):
    """
    A named, reusable conversation template bound to one use case.

    Built in one step and frozen afterwards; a missing ``id``, ``name`` or
    ``assistant`` fails construction with ``pydantic.ValidationError``.
    """
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    assistant: AssistantConfig
    function_handlers: Dict[str, FunctionHandler] = Field(default_factory=dict)

    class Config:
        frozen = True
        arbitrary_types_allowed = True

    def get_handler(self, name: str):
        return self.function_handlers.get(name)
