import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class Subscription:
    """
    Handle for one listener registration. ``dispose()`` detaches the listener;
    calling it more than once is harmless.
    """
    def __init__(self, emitter: "EventEmitter", event: str, listener: Listener):
        self.event = event
        self.listener = listener
        self._emitter = emitter
        self.disposed = False

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self._emitter._remove(self.event, self.listener)


class EventEmitter:
    """
    Named-event fan-out with explicit subscriptions.

    Plain listeners run inline. Coroutine listeners are scheduled on the
    running loop so a slow listener never delays the emitter.
    """
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._tasks: Set[asyncio.Task] = set()

    def on(self, event: str, listener: Listener) -> Subscription:
        self._listeners.setdefault(event, []).append(listener)
        return Subscription(self, event, listener)

    def _remove(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                result = listener(*args)
            except Exception:
                logger.exception(f"Listener for '{event}' failed")
                continue
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    task = asyncio.create_task(result)
                else:
                    task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._on_task_done)
        return bool(listeners)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async listener failed: {task.exception()!r}")

    async def drain(self) -> None:
        """Waits for every scheduled coroutine listener to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def clear(self) -> None:
        self._listeners.clear()
        for task in list(self._tasks):
            task.cancel()
