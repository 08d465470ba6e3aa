"""Background session controller.

Purpose
-------
Own the lifecycle of one generation: open the stream, deliver normalized
chunks as they arrive, and when a background session loses its connection,
resume after the high-water sequence or fall back to polling. Each output
unit reaches the caller exactly once.

State machine (see ``session.state``)::

    ACTIVE --drop--> RECONNECTING --resumed--> ACTIVE
                     RECONNECTING --budget exhausted--> POLLING
    ACTIVE | POLLING --completed--> COMPLETED
    any --fatal--> FAILED

Policies
--------
- Without background mode every drop is fatal: the server keeps nothing to
  resume from.
- Reconnect attempts are bounded by ``max_resume_retries`` with exponential
  backoff (``RetryConfig.delay_for``). A resumed connection that delivers new
  events resets the attempt counter.
- Polling runs at a fixed interval within a wall-clock budget. Retryable
  poll failures are retried until the budget ends; non-retryable ones are
  fatal.
- Cancellation is checked before every attempt and between events, and it
  closes the open connection immediately. It never triggers a reconnect.
- Fatal conditions yield one ``ErrorChunk`` and then raise ``ProviderError``.
  Cancellation raises ``CancelledError`` without an error chunk.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterator, Mapping, Optional

from ..base.cancellation import CancellationToken, CancelledError
from ..base.chunks import ErrorChunk, OutputChunk, StatusChunk, StatusPhase
from ..base.errors import ErrorCode, ProviderError
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import GenerationRequest, ModelInfo
from ..base.resilience.retry import RetryConfig, retry
from ..config.settings import BackgroundSettings
from ..events.normalizer import EventNormalizer, upstream_error_message
from ..request.builder import build_request, is_background
from ..usage.normalizer import as_mapping
from .state import Phase, SessionState
from .transport import EventStream, ResponsesTransport

_CONTINUATION_RESET_CODES = (ErrorCode.VALIDATION, ErrorCode.NOT_FOUND)
_POLL_STATUS = {
    "queued": StatusPhase.QUEUED,
    "in_progress": StatusPhase.IN_PROGRESS,
}


class SessionController:
    """Runs one generation and yields its output chunks.

    Parameters
    ----------
    transport:
        Network transport (``HttpxTransport`` or ``OpenAISDKTransport``).
    request:
        The immutable generation request.
    model:
        Static model metadata (capabilities, prices).
    background:
        Resume and poll budgets.
    start_retry:
        Retry policy for the initial request, before any event arrives.
    token:
        Cancellation token observed throughout the session.
    wait:
        Interruptible sleep; returns True if cancelled while waiting.
        Defaults to ``token.wait``.
    clock:
        Monotonic clock for the poll budget.
    """

    def __init__(
        self,
        transport: ResponsesTransport,
        request: GenerationRequest,
        *,
        model: ModelInfo,
        background: Optional[BackgroundSettings] = None,
        start_retry: Optional[RetryConfig] = None,
        token: Optional[CancellationToken] = None,
        provider: str = "openai",
        wait: Optional[Callable[[float], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._transport = transport
        self._request = request
        self._model = model
        self._settings = background or BackgroundSettings()
        self._token = token or CancellationToken()
        self._wait = wait or self._token.wait
        self._clock = clock
        self._provider = provider
        self._logger = logger or get_logger("responses_stream.session")
        self._ctx = LogContext(provider=provider, model=request.model)
        self._start_retry = self._bind_start_retry(start_retry or RetryConfig(max_attempts=1))
        self.state = SessionState(background=is_background(request, model.capabilities))
        self._normalizer = EventNormalizer(self.state, model)

    @property
    def token(self) -> CancellationToken:
        return self._token

    # Entry point ---------------------------------------------------------
    def run(self) -> Iterator[OutputChunk]:
        """Yield the session's chunks; raise on fatal failure or cancellation."""
        self._log("session.start", phase="start", background=self.state.background)
        try:
            yield from self._run()
        except CancelledError:
            self._fail()
            self._log("session.cancelled", phase="cancelled", error_code=ErrorCode.CANCELLED.value, reason=self._token.reason)
            raise
        except ProviderError as exc:
            self._fail()
            if exc.request_id is None:
                exc.request_id = self._ctx.request_id
            self._log(
                "session.failed",
                phase="failed",
                level=logging.ERROR,
                error_code=exc.code.value,
                error=exc.message,
                status=exc.status,
            )
            yield ErrorChunk(message=exc.message, retryable=exc.retryable)
            raise

    def _run(self) -> Iterator[OutputChunk]:
        stream = self._open_initial()
        while True:
            drop = yield from self._consume(stream)
            if drop is None:
                yield from self._finish()
                return
            stream = yield from self._reconnect(drop)
            if stream is None:
                yield from self._poll()
                return

    # Start phase -----------------------------------------------------------
    def _bind_start_retry(self, config: RetryConfig) -> RetryConfig:
        def _attempt_logger(*, attempt: int, max_attempts: int, delay, error):
            self._log(
                "retry.attempt",
                phase="start",
                attempt=attempt,
                error_code=error.code.value if error else None,
                max_attempts=max_attempts,
                delay=delay,
                will_retry=bool(error and delay is not None),
            )

        return RetryConfig(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            factor=config.factor,
            max_delay=config.max_delay,
            retryable_codes=config.retryable_codes,
            attempt_logger=config.attempt_logger or _attempt_logger,
            sleep=lambda delay: self._wait(delay),
        )

    def _create(self, request: GenerationRequest) -> EventStream:
        body = build_request(request, self._model.capabilities, model=self._model)

        @retry(self._start_retry)
        def _attempt() -> EventStream:
            self._token.raise_if_cancelled()
            return self._transport.create_stream(body)

        return _attempt()

    def _open_initial(self) -> EventStream:
        try:
            stream = self._create(self._request)
        except ProviderError as exc:
            self._raise_if_cancelled()
            if not (self._request.previous_response_id and exc.code in _CONTINUATION_RESET_CODES):
                raise
            self._log(
                "session.continuation_reset",
                phase="start",
                error_code=exc.code.value,
                previous_response_id=self._request.previous_response_id,
            )
            stream = self._create(self._request.without_continuation())
        self._ctx.request_id = stream.request_id or self._ctx.request_id
        return stream

    # Active ------------------------------------------------------------------
    def _consume(self, stream: EventStream) -> Iterator[OutputChunk]:
        """Deliver chunks from ``stream``; return None on completion or the drop."""
        unregister = self._token.on_cancel(stream.close)
        high_water = self.state.high_water_sequence
        drop: Optional[ProviderError] = None
        try:
            for event in stream:
                self._raise_if_cancelled()
                chunks = self._normalizer.normalize(event)
                self._sync_response_id()
                for chunk in chunks:
                    yield chunk
                if self.state.completed:
                    break
        except ProviderError as exc:
            self._raise_if_cancelled()
            if exc.code is ErrorCode.PROTOCOL or not self.state.background:
                raise
            drop = exc
        finally:
            unregister()
            stream.close()
        self._raise_if_cancelled()
        if self.state.high_water_sequence > high_water and self.state.phase is Phase.ACTIVE:
            self.state.resume_attempt = 0
        if self.state.completed or not self.state.background:
            return None
        if drop is None:
            drop = ProviderError(
                code=ErrorCode.TRANSIENT,
                message="stream closed before the response completed",
                provider=self._provider,
                model=self._request.model,
                retryable=True,
            )
        return drop

    # Reconnecting -----------------------------------------------------------
    def _reconnect(self, drop: ProviderError) -> Iterator[OutputChunk]:
        """Try to resume; return the new stream, or None when polling should start."""
        response_id = self._require_response_id(drop)
        backoff = self._settings.resume_backoff()
        while self.state.resume_attempt < self._settings.max_resume_retries:
            self._raise_if_cancelled()
            self.state.transition(Phase.RECONNECTING)
            yield StatusChunk(phase=StatusPhase.RECONNECTING, response_id=response_id)
            delay = backoff.delay_for(self.state.resume_attempt)
            self.state.resume_attempt += 1
            self._log(
                "session.reconnect",
                phase="reconnecting",
                attempt=self.state.resume_attempt,
                error_code=drop.code.value,
                error=drop.message,
                delay=delay,
                starting_after=self.state.high_water_sequence,
            )
            if self._wait(delay):
                self._raise_if_cancelled()
            try:
                stream = self._transport.resume_stream(response_id, self.state.high_water_sequence)
            except ProviderError as exc:
                self._raise_if_cancelled()
                drop = exc
                continue
            self.state.transition(Phase.ACTIVE)
            self._ctx.request_id = stream.request_id or self._ctx.request_id
            return stream
        self._log(
            "session.resume_exhausted",
            phase="reconnecting",
            level=logging.WARNING,
            attempt=self.state.resume_attempt,
            error_code=drop.code.value,
        )
        return None

    def _require_response_id(self, drop: ProviderError) -> str:
        if self.state.response_id:
            return self.state.response_id
        raise ProviderError(
            code=drop.code,
            message=(
                f"Stream dropped before a response id was assigned "
                f"(last phase: {self.state.phase.value}): {drop.message}"
            ),
            provider=self._provider,
            model=self._request.model,
            retryable=False,
            raw=drop,
            status=drop.status,
            request_id=drop.request_id,
        )

    # Polling ------------------------------------------------------------------
    def _poll(self) -> Iterator[OutputChunk]:
        response_id = self.state.response_id or ""
        self.state.transition(Phase.POLLING)
        self.state.status_changed(StatusPhase.POLLING)
        yield StatusChunk(phase=StatusPhase.POLLING, response_id=response_id)
        started = self._clock()
        last_status: Optional[str] = None
        last_error: Optional[ProviderError] = None
        while True:
            self._raise_if_cancelled()
            self.state.poll_attempt += 1
            try:
                payload = self._transport.retrieve(response_id)
            except ProviderError as exc:
                self._raise_if_cancelled()
                if not exc.retryable:
                    raise
                last_error = exc
                self._log(
                    "session.poll",
                    phase="polling",
                    attempt=self.state.poll_attempt,
                    error_code=exc.code.value,
                    error=exc.message,
                )
            else:
                response = self._poll_response(payload)
                last_status = response.get("status") or last_status
                self._log("session.poll", phase="polling", attempt=self.state.poll_attempt, status=last_status)
                if last_status in ("completed", "incomplete"):
                    for chunk in self._normalizer.complete_from_snapshot(response):
                        yield chunk
                    yield from self._finish()
                    return
                if last_status in ("failed", "cancelled"):
                    raise ProviderError(
                        code=ErrorCode.UPSTREAM,
                        message=upstream_error_message({"response": response, "message": f"response {last_status}"}),
                        provider=self._provider,
                        model=self._request.model,
                        request_id=self._ctx.request_id,
                    )
                phase = _POLL_STATUS.get(last_status or "")
                if phase is not None:
                    yield from self._normalizer.status(phase)
            elapsed = self._clock() - started
            if elapsed + self._settings.poll_interval_seconds > self._settings.poll_max_seconds:
                raise self._poll_exhausted(last_status, last_error)
            if self._wait(self._settings.poll_interval_seconds):
                self._raise_if_cancelled()

    def _poll_response(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        wrapped = as_mapping(payload.get("response"))
        response = wrapped or payload
        self.state.bind_response_id(response.get("id"))
        if response.get("service_tier"):
            self.state.service_tier = response["service_tier"]
        return response

    def _poll_exhausted(self, last_status: Optional[str], last_error: Optional[ProviderError]) -> ProviderError:
        detail = f"; last error: {last_error.message}" if last_error else ""
        return ProviderError(
            code=ErrorCode.TIMEOUT,
            message=(
                f"Background response {self.state.response_id} did not complete within "
                f"{self._settings.poll_max_seconds:g}s of polling "
                f"(last phase: {self.state.phase.value}, last status: {last_status or 'unknown'}){detail}"
            ),
            provider=self._provider,
            model=self._request.model,
            retryable=False,
            raw=last_error,
            request_id=last_error.request_id if last_error else None,
        )

    # Terminal ------------------------------------------------------------------
    def _finish(self) -> Iterator[OutputChunk]:
        if not self.state.usage_emitted:
            yield self._normalizer.usage_chunk({})
        self.state.transition(Phase.COMPLETED)
        if self.state.background:
            yield StatusChunk(phase=StatusPhase.COMPLETED, response_id=self.state.response_id)
        self._log(
            "session.complete",
            phase="completed",
            emitted=True,
            resume_attempts=self.state.resume_attempt,
            poll_attempts=self.state.poll_attempt,
        )

    def _fail(self) -> None:
        if not self.state.terminal:
            self.state.transition(Phase.FAILED)

    # Helpers -----------------------------------------------------------------
    def _raise_if_cancelled(self) -> None:
        self._token.raise_if_cancelled()

    def _sync_response_id(self) -> None:
        if self.state.response_id and self._ctx.response_id != self.state.response_id:
            self._ctx.response_id = self.state.response_id

    def _log(self, event: str, *, phase: str, level: int = logging.INFO, **fields: Any) -> None:
        normalized_log_event(
            self._logger,
            event,
            self._ctx,
            phase=phase,
            attempt=fields.pop("attempt", None),
            error_code=fields.pop("error_code", None),
            emitted=fields.pop("emitted", None),
            tokens=None,
            level=level,
            **fields,
        )


__all__ = ["SessionController"]
