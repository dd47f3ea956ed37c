import asyncio
import logging
from typing import Any, Coroutine, Dict, List, Mapping, Optional, Set, Union

from voice_agent.adapters.base import CallAdapter
from voice_agent.core.assistant_config import AssistantConfig
from voice_agent.core.context_config import ContextConfig
from voice_agent.core.context_registry import ContextRegistry
from voice_agent.core.dispatcher import FunctionCall, FunctionCallDispatcher, extract_function_call
from voice_agent.core.errors import (
    AdapterFailure,
    HandlerFailure,
    InvalidState,
    MalformedFunctionCall,
    UnknownFunction,
    VoiceAgentError,
)
from voice_agent.core.events import EventEmitter, Listener, Subscription
from voice_agent.core.reconnection import ReconnectionPolicy, RetryTimer
from voice_agent.core.session import CallPhase, CallSession, SessionSnapshot
from voice_agent.core.template import placeholders

logger = logging.getLogger(__name__)

SESSION_EVENTS = (
    "call-start",
    "call-end",
    "speech-start",
    "speech-end",
    "volume-level",
    "message",
    "error",
    "function-call",
    "reconnecting",
    "state-change",
)

_LIVE_PHASES = (CallPhase.CONNECTING, CallPhase.ACTIVE, CallPhase.RECONNECTING)


class CallSessionManager:
    """
    Drives one call session over a CallAdapter.

    All state changes happen on the event loop that delivers adapter events.
    Commands (``start_call``/``end_call``) are checked against the current
    phase; provider errors during a live call are retried with backoff.
    Dispose with ``aclose()`` or ``async with``.
    """

    def __init__(
        self,
        adapter: CallAdapter,
        registry: Optional[ContextRegistry] = None,
        policy: Optional[ReconnectionPolicy] = None,
        dispatcher: Optional[FunctionCallDispatcher] = None,
    ):
        self.adapter = adapter
        self.registry = registry if registry is not None else ContextRegistry()
        self.policy = policy or ReconnectionPolicy.from_config()
        self.dispatcher = dispatcher or FunctionCallDispatcher()
        self.session = CallSession()

        self._events = EventEmitter()
        self._retry = RetryTimer()
        self._lineage_payload: Optional[Dict[str, Any]] = None
        self._tasks: Set[asyncio.Task] = set()
        self._stop_tasks: Set[asyncio.Task] = set()
        self._closed = False

        self._subscriptions: List[Subscription] = [
            adapter.on("call-start", self._on_call_start),
            adapter.on("call-end", self._on_call_end),
            adapter.on("speech-start", self._on_speech_start),
            adapter.on("speech-end", self._on_speech_end),
            adapter.on("volume-level", self._on_volume_level),
            adapter.on("message", self._on_message),
            adapter.on("error", self._on_error),
        ]

    # --- Public API ---

    def on(self, event: str, listener: Listener) -> Subscription:
        if event not in SESSION_EVENTS:
            raise ValueError(f"Unknown session event: {event}")
        return self._events.on(event, listener)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot.from_session(self.session, self.registry.list_ids())

    @property
    def phase(self) -> CallPhase:
        return self.session.phase

    @property
    def current_context(self) -> Optional[ContextConfig]:
        context_id = self.session.active_context_id
        if context_id is None or context_id not in self.registry:
            return None
        return self.registry.get(context_id)

    def register_custom_context(self, *args: Any, **kwargs: Any) -> ContextConfig:
        context = self.registry.register_custom_context(*args, **kwargs)
        self._changed()
        return context

    def set_muted(self, muted: bool) -> None:
        self.adapter.set_muted(muted)

    def is_muted(self) -> bool:
        return self.adapter.is_muted()

    def select_context(self, context_id: str) -> ContextConfig:
        """Makes ``context_id`` the active context without starting a call."""
        session = self.session
        if session.phase in _LIVE_PHASES or session.phase == CallPhase.ENDED:
            error = InvalidState(session.phase.value, "switch context")
            self._record_error(error)
            raise error

        try:
            context = self.registry.get(context_id)
        except VoiceAgentError as e:
            self._record_error(e)
            raise

        session.active_context_id = context_id
        logger.info(f"🔀 Switched to context: {context_id}")
        self._changed()
        return context

    async def start_call(
        self,
        context_id: Optional[str] = None,
        dynamic_data: Optional[Mapping[str, Any]] = None,
        assistant: Optional[Union[AssistantConfig, Dict[str, Any]]] = None,
    ) -> None:
        """
        Starts a call for ``context_id``, or for the context picked with
        ``select_context`` when it is omitted. ``assistant`` replaces the
        context's persona for this call; function handlers still come from
        the context.
        """
        session = self.session
        if self._closed or session.phase in (CallPhase.CONNECTING, CallPhase.ACTIVE, CallPhase.ENDED):
            error = InvalidState(session.phase.value, "start a call")
            self._record_error(error)
            raise error

        if context_id is None:
            context_id = session.active_context_id
            if context_id is None:
                error = InvalidState(session.phase.value, "start a call without a selected context")
                self._record_error(error)
                raise error

        try:
            context = self.registry.get(context_id)
        except VoiceAgentError as e:
            self._record_error(e)
            raise

        persona = context.assistant
        if assistant is not None:
            if not isinstance(assistant, AssistantConfig):
                assistant = AssistantConfig.from_vapi_payload(assistant)
            persona = assistant

        payload = self._build_payload(context.id, persona, dynamic_data)
        if self.policy.reapply_dynamic_data:
            self._lineage_payload = payload
        else:
            self._lineage_payload = self._build_payload(context.id, persona, None)

        self._retry.cancel()
        session.generation += 1
        generation = session.generation
        session.phase = CallPhase.CONNECTING
        session.active_context_id = context_id
        session.connection_attempts = 0
        session.last_error = None
        session.retry_delay_ms = None
        self._changed()

        logger.info(f"📞 Starting call with context '{context_id}' ({payload['name']})")
        try:
            await self.adapter.start(payload)
        except Exception as e:
            failure = AdapterFailure(f"Failed to start call: {e}")
            if generation == session.generation:
                logger.error(f"❌ {failure.message}")
                session.phase = CallPhase.ERRORED
                session.last_error = failure.message
                self._changed()
            else:
                logger.warning(f"Start of superseded call failed: {e}")
            raise failure from e

    async def end_call(self) -> None:
        session = self.session
        if session.phase == CallPhase.ENDED:
            raise InvalidState(session.phase.value, "end a call")

        self._retry.cancel()
        if session.phase == CallPhase.IDLE:
            logger.warning("No active call to end")
            return

        session.generation += 1
        generation = session.generation
        stop_error: Optional[AdapterFailure] = None
        try:
            await self.adapter.stop()
        except Exception as e:
            stop_error = AdapterFailure(f"Failed to end call: {e}")
            logger.error(f"❌ {stop_error.message}")

        if generation != session.generation:
            # A new call was started while the adapter was stopping
            return

        session.reset_call()
        self._lineage_payload = None
        if stop_error is not None:
            session.last_error = stop_error.message
        logger.info("📴 Call ended")
        self._changed()
        if stop_error is not None:
            self._events.emit("error", stop_error)

    def clear_error(self) -> None:
        self.session.last_error = None
        if self.session.phase == CallPhase.ERRORED:
            self.session.phase = CallPhase.IDLE
        self._changed()

    async def aclose(self) -> None:
        """Cancels pending work, ends a live call and detaches from the adapter."""
        if self._closed:
            return
        self._closed = True

        self._retry.cancel()
        if self.session.phase in _LIVE_PHASES:
            await self.end_call()
        if self._stop_tasks:
            await asyncio.gather(*list(self._stop_tasks))

        for task in list(self._tasks):
            task.cancel()
        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions.clear()

        self.session.phase = CallPhase.ENDED
        self._changed()
        self._events.clear()
        logger.info("🧹 Call session disposed")

    async def __aenter__(self) -> "CallSessionManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --- Helpers ---

    def _build_payload(
        self,
        context_id: str,
        assistant: AssistantConfig,
        dynamic_data: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        if dynamic_data is not None:
            assistant = assistant.personalize(dynamic_data)
            unfilled = placeholders(assistant.first_message) + placeholders(assistant.system_prompt)
            if unfilled:
                logger.debug(f"Unfilled placeholders for '{context_id}': {sorted(set(unfilled))}")
        return assistant.to_vapi_payload()

    def _changed(self) -> None:
        self._events.emit("state-change", self.snapshot())

    def _record_error(self, error: VoiceAgentError) -> None:
        logger.warning(f"⚠️ {error.message}")
        self.session.last_error = error.message
        self._changed()

    def _mark_active(self) -> None:
        self._retry.cancel()
        self.session.phase = CallPhase.ACTIVE
        self.session.connection_attempts = 0
        self.session.retry_delay_ms = None
        self._changed()

    def _handle_failure(self, error: VoiceAgentError) -> None:
        session = self.session
        retryable = session.phase in (CallPhase.ACTIVE, CallPhase.RECONNECTING)
        session.last_error = error.message
        session.connection_attempts += 1
        attempt = session.connection_attempts

        if retryable and self.policy.should_retry(attempt):
            delay = self.policy.delay_ms(attempt)
            session.phase = CallPhase.RECONNECTING
            session.retry_delay_ms = delay
            logger.warning(
                f"🔁 Call error ({error.message}); retry {attempt}/{self.policy.retry_limit} in {delay}ms"
            )
            self._retry.schedule(delay, self._reconnect)
            self._changed()
            self._events.emit("error", error)
            self._events.emit("reconnecting", attempt, delay)
            return

        self._retry.cancel()
        session.phase = CallPhase.ERRORED
        session.retry_delay_ms = None
        logger.error(f"❌ Call error after {attempt} attempt(s): {error.message}")
        self._changed()
        self._events.emit("error", error)

    async def _reconnect(self) -> None:
        session = self.session
        if session.phase != CallPhase.RECONNECTING or self._lineage_payload is None:
            return

        generation = session.generation
        logger.info(f"🔄 Reconnecting context '{session.active_context_id}' (attempt {session.connection_attempts})")
        try:
            await self.adapter.start(self._lineage_payload)
        except Exception as e:
            if generation == session.generation and session.phase == CallPhase.RECONNECTING:
                self._handle_failure(AdapterFailure(f"Failed to reconnect: {e}"))
            return

        if generation == session.generation and session.phase == CallPhase.RECONNECTING:
            logger.info("✅ Reconnected")
            self._mark_active()
            return

        # Ended or disposed while the restart was in flight; a newer start owns the adapter otherwise
        if self._closed or session.phase not in _LIVE_PHASES:
            logger.warning("Reconnected after the call was ended; stopping it")
            await self._stop_stray_call()

    async def _stop_stray_call(self) -> None:
        try:
            await self.adapter.stop()
        except Exception as e:
            logger.error(f"❌ Failed to stop stray call: {e}")

    def _spawn(self, coro: Coroutine[Any, Any, None], tasks: Optional[Set[asyncio.Task]] = None) -> asyncio.Task:
        tasks = self._tasks if tasks is None else tasks
        task = asyncio.create_task(coro)
        tasks.add(task)
        task.add_done_callback(tasks.discard)
        return task

    def _report_function_error(self, error: VoiceAgentError) -> None:
        logger.error(f"❌ {error.message}")
        self.session.last_error = error.message
        self._changed()
        self._events.emit("error", error)

    async def _run_function_call(self, context: Optional[ContextConfig], call: FunctionCall) -> None:
        try:
            result = await self.dispatcher.dispatch(context, call)
        except (UnknownFunction, HandlerFailure) as e:
            self._report_function_error(e)
            return
        self._events.emit("function-call", result)

    # --- Adapter events ---

    def _on_call_start(self) -> None:
        if self.session.phase not in _LIVE_PHASES:
            logger.warning(f"Call started while session is {self.session.phase.value}; stopping it")
            self._spawn(self._stop_stray_call(), self._stop_tasks)
            return
        logger.info("✅ Call started")
        self._mark_active()
        self._events.emit("call-start")

    def _on_call_end(self) -> None:
        session = self.session
        self._retry.cancel()
        if session.phase in _LIVE_PHASES:
            session.phase = CallPhase.IDLE
        session.speech_active = False
        session.volume_level = 0.0
        session.retry_delay_ms = None
        logger.info("📴 Call ended by provider")
        self._changed()
        self._events.emit("call-end")

    def _on_speech_start(self) -> None:
        self.session.speech_active = True
        self._changed()
        self._events.emit("speech-start")

    def _on_speech_end(self) -> None:
        self.session.speech_active = False
        self._changed()
        self._events.emit("speech-end")

    def _on_volume_level(self, level: float) -> None:
        self.session.volume_level = float(level)
        self._events.emit("volume-level", level)

    def _on_message(self, message: Any) -> None:
        self._events.emit("message", message)
        try:
            call = extract_function_call(message)
        except MalformedFunctionCall as e:
            self._report_function_error(e)
            return
        if call is not None:
            self._spawn(self._run_function_call(self.current_context, call))

    def _on_error(self, error: Any) -> None:
        if isinstance(error, VoiceAgentError):
            failure = error
        else:
            message = getattr(error, "message", None)
            if message is None and isinstance(error, dict):
                message = error.get("message")
            failure = AdapterFailure(message or str(error) or "Vapi error")
        self._handle_failure(failure)
