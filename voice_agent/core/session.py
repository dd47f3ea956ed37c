from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class CallPhase(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    RECONNECTING = "reconnecting"
    ENDED = "ended"
    ERRORED = "errored"


@dataclass
class CallSession:
    """Run-time call state, owned by one CallSessionManager."""
    phase: CallPhase = CallPhase.IDLE
    active_context_id: Optional[str] = None
    connection_attempts: int = 0
    volume_level: float = 0.0
    speech_active: bool = False
    last_error: Optional[str] = None
    retry_delay_ms: Optional[int] = None
    generation: int = 0

    def reset_call(self) -> None:
        """Back to idle defaults; the context selection is kept."""
        self.phase = CallPhase.IDLE
        self.connection_attempts = 0
        self.volume_level = 0.0
        self.speech_active = False
        self.last_error = None
        self.retry_delay_ms = None


class SessionSnapshot(BaseModel):
    """Read-only view of the session for presentation layers."""
    phase: CallPhase
    active_context_id: Optional[str] = None
    volume_level: float = 0.0
    raw_volume_level: float = 0.0
    speech_active: bool = False
    last_error: Optional[str] = None
    connection_attempts: int = 0
    retry_delay_ms: Optional[int] = None
    available_contexts: List[str] = []

    class Config:
        frozen = True

    @property
    def is_call_active(self) -> bool:
        return self.phase == CallPhase.ACTIVE

    @property
    def is_connecting(self) -> bool:
        return self.phase == CallPhase.CONNECTING

    @property
    def is_reconnecting(self) -> bool:
        return self.phase == CallPhase.RECONNECTING

    @property
    def has_error(self) -> bool:
        return self.last_error is not None

    @classmethod
    def from_session(cls, session: CallSession, available_contexts: List[str]) -> "SessionSnapshot":
        return cls(
            phase=session.phase,
            active_context_id=session.active_context_id,
            volume_level=min(max(session.volume_level, 0.0), 1.0),
            raw_volume_level=session.volume_level,
            speech_active=session.speech_active,
            last_error=session.last_error,
            connection_attempts=session.connection_attempts,
            retry_delay_ms=session.retry_delay_ms,
            available_contexts=list(available_contexts),
        )
