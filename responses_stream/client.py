"""Responses client facade.

Purpose
-------
Single entry point wiring settings, model metadata, transport and the session
controller together.

Usage
-----
```
client = ResponsesClient()
request = GenerationRequest(model="gpt-5", turns=(Turn.text("user", "Hi"),))
for chunk in client.stream(request):
    ...
text = client.complete(request)
```

Model metadata resolution order: explicit ``model_info`` argument, then the
``models:`` section of the config file, then a bare ``ModelInfo`` with
default capabilities and no prices.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from .base.cancellation import CancellationToken
from .base.errors import ErrorCode, ProviderError
from .base.logging import LogContext, get_logger, normalized_log_event
from .base.models import GenerationRequest, ModelInfo
from .base.resilience.retry import RetryConfig, retry
from .config import get_model_info, load_settings
from .config.settings import ClientSettings
from .events.normalizer import output_texts
from .request.builder import build_request
from .session.controller import SessionController
from .session.stream import GenerationStream
from .session.transport import HttpxTransport, ResponsesTransport
from .usage.normalizer import as_mapping


def extract_output_text(response: Mapping[str, Any]) -> str:
    """Return the text of a non-streaming response body ('' when absent)."""
    text = output_texts(response)["text"]
    if text:
        return text
    top = response.get("output_text")
    return top if isinstance(top, str) else ""


class ResponsesClient:
    """High-level client for streaming and non-streaming generations.

    Parameters
    ----------
    settings:
        Validated settings; ``load_settings()`` when omitted.
    transport:
        Network transport; an ``HttpxTransport`` over the pooled client when
        omitted.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        transport: Optional[ResponsesTransport] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._transport = transport or HttpxTransport(self.settings)
        self._logger = get_logger("responses_stream.client")

    def resolve_model(self, model_id: str, model_info: Optional[ModelInfo] = None) -> ModelInfo:
        return model_info or get_model_info(model_id) or ModelInfo(id=model_id)

    def _start_retry(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.settings.start_max_attempts,
            base_delay=self.settings.start_base_delay_seconds,
        )

    def stream(
        self,
        request: GenerationRequest,
        *,
        model_info: Optional[ModelInfo] = None,
        token: Optional[CancellationToken] = None,
    ) -> GenerationStream:
        """Start a generation and return its lazily produced chunk stream.

        Nothing is sent until the stream is first iterated.
        """
        controller = SessionController(
            self._transport,
            request,
            model=self.resolve_model(request.model, model_info),
            background=self.settings.background,
            start_retry=self._start_retry(),
            token=token,
            provider=self.settings.provider,
        )
        return GenerationStream(controller)

    def complete(self, request: GenerationRequest, *, model_info: Optional[ModelInfo] = None) -> str:
        """Run a non-streaming, unstored generation and return its text.

        A 400/404 while continuing a previous response is retried once
        without ``previous_response_id``.
        """
        model = self.resolve_model(request.model, model_info)
        ctx = LogContext(provider=self.settings.provider, model=request.model)
        create = retry(self._start_retry())(self._transport.create)
        body = build_request(request, model.capabilities, model=model, stream=False)
        try:
            response = create(body)
        except ProviderError as exc:
            if not (request.previous_response_id and exc.code in (ErrorCode.VALIDATION, ErrorCode.NOT_FOUND)):
                normalized_log_event(
                    self._logger,
                    "complete.error",
                    ctx,
                    phase="complete",
                    error_code=exc.code.value,
                    error=exc.message,
                )
                raise
            normalized_log_event(
                self._logger,
                "complete.continuation_reset",
                ctx,
                phase="start",
                error_code=exc.code.value,
            )
            fallback = build_request(request.without_continuation(), model.capabilities, model=model, stream=False)
            response = create(fallback)
        response = as_mapping(response)
        ctx.response_id = response.get("id")
        text = extract_output_text(response)
        normalized_log_event(self._logger, "complete.end", ctx, phase="finalize", emitted=bool(text))
        return text


__all__ = ["ResponsesClient", "extract_output_text"]
