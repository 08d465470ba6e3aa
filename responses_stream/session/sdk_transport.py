"""Transport over the ``openai`` SDK's structured event objects.

Drives the same session controller as ``HttpxTransport``, but events arrive
as SDK objects from ``client.responses.create(stream=True)`` and
``client.responses.retrieve(..., stream=True, starting_after=N)``. Each
object is reduced to a plain mapping with ``model_dump()`` so both transports
yield the same logical event shapes.

Error mapping
-------------
- ``openai.APIStatusError`` -> ``ProviderError`` with the status-derived code,
  the user-facing HTTP message and the SDK's ``request_id``.
- ``openai.APITimeoutError`` / ``openai.APIConnectionError`` -> retryable
  transport errors.
"""
from __future__ import annotations

from contextlib import suppress
from typing import Any, Dict, Iterator, Mapping, Optional

import openai
from openai import OpenAI

from ..base.errors import ErrorCode, ProviderError
from ..config.settings import ClientSettings
from ..usage.normalizer import as_mapping
from .transport import status_error, transport_error


def _sdk_error(exc: Exception, *, provider: str, model: Optional[str]):
    if isinstance(exc, openai.APIStatusError):
        return status_error(
            exc.status_code,
            exc.body,
            provider=provider,
            model=model,
            request_id=exc.request_id,
            raw=exc,
        )
    if isinstance(exc, openai.APIConnectionError):
        timed_out = isinstance(exc, openai.APITimeoutError)
        return ProviderError(
            code=ErrorCode.TIMEOUT if timed_out else ErrorCode.TRANSIENT,
            message=f"Responses API connection failed: {exc}",
            provider=provider,
            model=model,
            retryable=True,
            raw=exc,
        )
    return transport_error(exc, provider=provider, model=model)


class SDKEventStream:
    """Iterates mappings from an SDK ``Stream`` of response events."""

    def __init__(self, stream: Any, *, provider: str, model: Optional[str] = None) -> None:
        self._stream = stream
        self._provider = provider
        self._model = model
        response = getattr(stream, "response", None)
        headers = getattr(response, "headers", None)
        self.request_id = headers.get("x-request-id") if headers is not None else None

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        try:
            for event in self._stream:
                yield as_mapping(event)
        except openai.OpenAIError as exc:
            raise _sdk_error(exc, provider=self._provider, model=self._model) from exc

    def close(self) -> None:
        with suppress(Exception):
            self._stream.close()


class OpenAISDKTransport:
    """Transport backed by an ``openai.OpenAI`` client.

    Parameters
    ----------
    settings:
        Client settings; used to build the SDK client when none is given.
    client:
        Optional preconfigured SDK client (tests pass a fake with the same
        ``responses`` surface).
    """

    def __init__(self, settings: ClientSettings, *, client: Any = None, model: Optional[str] = None) -> None:
        self._settings = settings
        self._model = model
        self._client = client or OpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            default_headers=settings.headers or None,
            max_retries=0,
        )

    def _call(self, fn, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except openai.OpenAIError as exc:
            raise _sdk_error(exc, provider=self._settings.provider, model=self._model) from exc

    def create_stream(self, body: Mapping[str, Any]) -> SDKEventStream:
        stream = self._call(self._client.responses.create, **dict(body))
        return SDKEventStream(stream, provider=self._settings.provider, model=self._model)

    def resume_stream(self, response_id: str, starting_after: int) -> SDKEventStream:
        stream = self._call(
            self._client.responses.retrieve,
            response_id,
            stream=True,
            starting_after=starting_after,
        )
        return SDKEventStream(stream, provider=self._settings.provider, model=self._model)

    def retrieve(self, response_id: str) -> Mapping[str, Any]:
        return dict(as_mapping(self._call(self._client.responses.retrieve, response_id)))

    def create(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(as_mapping(self._call(self._client.responses.create, **dict(body))))


__all__ = ["OpenAISDKTransport", "SDKEventStream"]
