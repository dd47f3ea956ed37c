from abc import ABC, abstractmethod
from typing import Any, Dict

from voice_agent.core.events import Listener, Subscription

ADAPTER_EVENTS = (
    "call-start",
    "call-end",
    "speech-start",
    "speech-end",
    "volume-level",
    "message",
    "error",
)


class CallAdapter(ABC):
    """
    Interface to the remote voice-call provider.
    One adapter instance is owned by exactly one CallSessionManager.
    """
    @abstractmethod
    async def start(self, payload: Dict[str, Any]) -> Any:
        """Start a call with the given assistant payload."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop the current call."""
        pass

    @abstractmethod
    def set_muted(self, muted: bool) -> None:
        pass

    @abstractmethod
    def is_muted(self) -> bool:
        pass

    @abstractmethod
    def on(self, event: str, listener: Listener) -> Subscription:
        """Subscribe to one of ADAPTER_EVENTS."""
        pass
