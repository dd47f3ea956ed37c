import logging
from typing import Any, Dict, List, Optional

from voice_agent.adapters.base import ADAPTER_EVENTS, CallAdapter
from voice_agent.core.events import EventEmitter, Listener, Subscription

logger = logging.getLogger(__name__)


class InMemoryCallAdapter(CallAdapter):
    """
    In-process implementation of CallAdapter.
    Records every start payload and lets callers fire provider events by hand.
    """
    def __init__(self, auto_connect: bool = False):
        self.auto_connect = auto_connect
        self.start_payloads: List[Dict[str, Any]] = []
        self.stop_calls = 0
        self.fail_next_start: Optional[Exception] = None
        self.fail_next_stop: Optional[Exception] = None
        self._muted = False
        self._events = EventEmitter()

    async def start(self, payload: Dict[str, Any]) -> None:
        self.start_payloads.append(payload)
        if self.fail_next_start is not None:
            error, self.fail_next_start = self.fail_next_start, None
            raise error
        logger.debug(f"Started in-memory call for {payload.get('name')}")
        if self.auto_connect:
            self.simulate("call-start")

    async def stop(self) -> None:
        self.stop_calls += 1
        if self.fail_next_stop is not None:
            error, self.fail_next_stop = self.fail_next_stop, None
            raise error
        if self.auto_connect:
            self.simulate("call-end")

    def set_muted(self, muted: bool) -> None:
        self._muted = muted

    def is_muted(self) -> bool:
        return self._muted

    def on(self, event: str, listener: Listener) -> Subscription:
        if event not in ADAPTER_EVENTS:
            raise ValueError(f"Unknown adapter event: {event}")
        return self._events.on(event, listener)

    def listener_count(self, event: str) -> int:
        return self._events.listener_count(event)

    def simulate(self, event: str, *args: Any) -> None:
        """Fires a provider event as if it came from the remote service."""
        if event not in ADAPTER_EVENTS:
            raise ValueError(f"Unknown adapter event: {event}")
        self._events.emit(event, *args)

    @property
    def last_payload(self) -> Optional[Dict[str, Any]]:
        return self.start_payloads[-1] if self.start_payloads else None
