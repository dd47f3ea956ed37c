import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from voice_agent.core.context_config import ContextConfig
from voice_agent.core.errors import HandlerFailure, MalformedFunctionCall, UnknownFunction

logger = logging.getLogger(__name__)


class FunctionCall(BaseModel):
    name: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class FunctionCallResult(BaseModel):
    """Payload of the ``function-call`` event."""
    name: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None


def extract_function_call(message: Any) -> Optional[FunctionCall]:
    """
    Returns the function call carried by an adapter message, or None for
    other message types. Raises MalformedFunctionCall when a function-call
    message has no usable name or parameters.
    """
    if not isinstance(message, dict) or message.get("type") != "function-call":
        return None

    body = message.get("functionCall")
    if not isinstance(body, dict):
        raise MalformedFunctionCall(f"Function-call message without a functionCall object: {body!r}")

    name = body.get("name")
    if not name or not isinstance(name, str):
        raise MalformedFunctionCall(f"Function-call message without a name: {body!r}")

    parameters = body.get("parameters")
    if parameters is None:
        parameters = {}
    if not isinstance(parameters, dict):
        raise MalformedFunctionCall(
            f"Function '{name}' called with non-object parameters: {type(parameters).__name__}"
        )
    return FunctionCall(name=name, parameters=parameters)


class FunctionCallDispatcher:
    """Routes a function call to the handler registered on the active context."""

    async def dispatch(self, context: Optional[ContextConfig], call: FunctionCall) -> FunctionCallResult:
        if context is None:
            raise UnknownFunction(call.name)

        handler = context.get_handler(call.name)
        if handler is None:
            raise UnknownFunction(call.name, context.id)

        logger.info(f"🔧 [{context.name}] Function called: {call.name}")
        try:
            result = await handler(call.parameters)
        except Exception as e:
            logger.exception(f"Function {call.name} execution failed")
            raise HandlerFailure(call.name, str(e)) from e

        return FunctionCallResult(name=call.name, parameters=call.parameters, result=result)
