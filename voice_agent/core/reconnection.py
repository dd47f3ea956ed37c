import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from voice_agent.config.environment import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconnectionPolicy:
    """Bounded exponential backoff for automatic call retries."""
    base_delay_ms: int = 1000
    max_delay_ms: int = 5000
    retry_limit: int = 3
    reapply_dynamic_data: bool = True

    @classmethod
    def from_config(cls) -> "ReconnectionPolicy":
        return cls(
            base_delay_ms=int(config.get("reconnection.base_delay_ms", 1000)),
            max_delay_ms=int(config.get("reconnection.max_delay_ms", 5000)),
            retry_limit=int(config.get("reconnection.retry_limit", 3)),
            reapply_dynamic_data=bool(config.get("reconnection.reapply_dynamic_data", True)),
        )

    def delay_ms(self, attempt: int) -> int:
        """Delay before retry ``attempt`` (1-indexed)."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        return min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)

    def should_retry(self, attempt: int) -> bool:
        return attempt <= self.retry_limit


class RetryTimer:
    """Holds at most one pending retry; scheduling a new one cancels the old."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, delay_ms: int, callback: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._run(delay_ms, callback))

    async def _run(self, delay_ms: int, callback: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay_ms / 1000.0)
        # Stays tracked while the callback runs so an in-flight retry can be cancelled
        await callback()

    def cancel(self) -> bool:
        if self._task is None:
            return False
        task, self._task = self._task, None
        # A firing retry that schedules its successor must not cancel itself
        if task.done() or task is asyncio.current_task():
            return False
        task.cancel()
        logger.debug("⏹️ Pending reconnection cancelled")
        return True
