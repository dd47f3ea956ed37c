import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from voice_agent.config.environment import config as env_config
from voice_agent.core.dispatcher import FunctionCallResult
from voice_agent.core.events import Subscription

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SessionWebhookSink:
    """
    Forwards session lifecycle events to an HTTP webhook.
    Delivery failures are logged and never reach the session.
    """
    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._webhook_url = webhook_url or env_config.get("webhooks.session_events_url")
        if not self._webhook_url:
            logger.warning("⚠️ SESSION_EVENTS_WEBHOOK_URL is not set. Session events will not be sent.")

        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._manager = None

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    def attach(self, manager) -> List[Subscription]:
        """Subscribes to the manager's events; dispose the returned subscriptions to detach."""
        self._manager = manager
        return [
            manager.on("call-start", self.emit_call_started),
            manager.on("call-end", self.emit_call_ended),
            manager.on("function-call", self.emit_function_called),
            manager.on("error", self.emit_call_error),
        ]

    def _context(self) -> Dict[str, Any]:
        context_id = self._manager.session.active_context_id if self._manager else None
        return {"id": context_id}

    async def _emit(self, payload: Dict[str, Any], event_type: str) -> None:
        if not self._webhook_url:
            return

        async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
            try:
                response = await client.post(
                    self._webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"}
                )
                response.raise_for_status()
                logger.info(f"✅ Emitted {event_type} to session webhook")
            except httpx.HTTPStatusError as e:
                logger.error(f"❌ Failed to emit {event_type}: HTTP {e.response.status_code} - {e.response.text}")
            except httpx.HTTPError as e:
                logger.error(f"❌ Failed to emit {event_type}: {e}")

    async def emit_call_started(self) -> None:
        payload = {
            "message": {
                "type": "call.started",
                "context": self._context(),
                "timestamp": _now_iso(),
            }
        }
        await self._emit(payload, "call.started")

    async def emit_call_ended(self) -> None:
        payload = {
            "message": {
                "type": "call.ended",
                "context": self._context(),
                "timestamp": _now_iso(),
            }
        }
        await self._emit(payload, "call.ended")

    async def emit_function_called(self, result: FunctionCallResult) -> None:
        payload = {
            "message": {
                "type": "function.called",
                "context": self._context(),
                "functionCall": result.model_dump(mode="json"),
                "timestamp": _now_iso(),
            }
        }
        await self._emit(payload, "function.called")

    async def emit_call_error(self, error: Exception) -> None:
        payload = {
            "message": {
                "type": "call.error",
                "context": self._context(),
                "error": {
                    "type": error.__class__.__name__,
                    "message": getattr(error, "message", str(error)),
                },
                "timestamp": _now_iso(),
            }
        }
        await self._emit(payload, "call.error")
