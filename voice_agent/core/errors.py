from typing import Optional


class VoiceAgentError(Exception):
    """Base class for every failure raised by the call-session core."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigError(VoiceAgentError):
    """Raised when configuration is invalid or missing."""


class ContextNotFound(VoiceAgentError):
    def __init__(self, context_id: str):
        self.context_id = context_id
        super().__init__(f"Context '{context_id}' not found")


class InvalidState(VoiceAgentError):
    """A command was issued while the session is in an incompatible phase."""

    def __init__(self, phase: str, action: str):
        self.phase = phase
        self.action = action
        super().__init__(f"Cannot {action} while session is {phase}")


class AdapterFailure(VoiceAgentError):
    """The remote voice provider rejected a start or stop request."""


class UnknownFunction(VoiceAgentError):
    def __init__(self, name: str, context_id: Optional[str] = None):
        self.name = name
        self.context_id = context_id
        if context_id is None:
            message = f"No context available to handle function: {name}"
        else:
            message = f"Unknown function: {name}"
        super().__init__(message)


class HandlerFailure(VoiceAgentError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Function '{name}' failed: {reason}")


class MalformedFunctionCall(VoiceAgentError):
    """A function-call message from the provider could not be parsed."""
