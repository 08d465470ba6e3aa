"""Network transports for the Responses API.

Purpose
-------
Define the transport contract used by the session controller and provide the
default implementation over raw HTTP + server-sent events using ``httpx``.

Contract
--------
``create_stream(body)``
    ``POST /responses`` with ``Accept: text/event-stream``; returns an
    ``EventStream``.
``resume_stream(response_id, starting_after)``
    ``GET /responses/{id}?stream=true&starting_after=N``; the server replays
    only events after ``N``.
``retrieve(response_id)``
    ``GET /responses/{id}``; returns the decoded JSON body (poll).
``create(body)``
    Non-streaming ``POST /responses``; returns the decoded JSON body.

Every call carries its own ``httpx.Timeout`` from ``TimeoutConfig``. All
failures surface as ``ProviderError`` carrying the normalized code, the HTTP
status when there is one, and the upstream request id.
"""
from __future__ import annotations

from contextlib import suppress
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol

import httpx

from ..base.errors import (
    ErrorCode,
    ProviderError,
    classify_exception,
    code_for_status,
    http_error_message,
    is_retryable_status,
    request_id_from_headers,
)
from ..base.http import get_httpx_client
from ..base.timeouts import TimeoutConfig, get_timeout_config
from ..config.settings import ClientSettings
from ..events.sse import iter_sse_events

RESPONSES_PATH = "/responses"


class EventStream(Protocol):  # pragma: no cover - structural protocol
    request_id: Optional[str]

    def __iter__(self) -> Iterator[Any]: ...

    def close(self) -> None: ...


class ResponsesTransport(Protocol):  # pragma: no cover - structural protocol
    def create_stream(self, body: Mapping[str, Any]) -> EventStream: ...

    def resume_stream(self, response_id: str, starting_after: int) -> EventStream: ...

    def retrieve(self, response_id: str) -> Mapping[str, Any]: ...

    def create(self, body: Mapping[str, Any]) -> Mapping[str, Any]: ...


def transport_error(exc: Exception, *, provider: str, model: Optional[str] = None) -> ProviderError:
    """Wrap a network-level exception (timeout, reset, protocol) as retryable."""
    if isinstance(exc, ProviderError):
        return exc
    return ProviderError(
        code=classify_exception(exc),
        message=f"Responses API connection failed: {exc}",
        provider=provider,
        model=model,
        retryable=True,
        raw=exc,
    )


def status_error(
    status: int,
    body: Any,
    *,
    provider: str,
    model: Optional[str] = None,
    request_id: Optional[str] = None,
    raw: Optional[Exception] = None,
) -> ProviderError:
    """Build the ``ProviderError`` for an HTTP error status."""
    return ProviderError(
        code=code_for_status(status),
        message=http_error_message(status, body),
        provider=provider,
        model=model,
        retryable=is_retryable_status(status),
        raw=raw,
        status=status,
        request_id=request_id,
    )


class HttpxEventStream:
    """Iterates SSE events from an open streaming ``httpx.Response``."""

    def __init__(self, response: httpx.Response, *, provider: str, model: Optional[str] = None) -> None:
        self._response = response
        self._provider = provider
        self._model = model
        self.request_id = request_id_from_headers(response.headers)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        try:
            yield from iter_sse_events(self._response.iter_bytes())
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise transport_error(exc, provider=self._provider, model=self._model) from exc

    def close(self) -> None:
        with suppress(httpx.HTTPError, OSError):
            self._response.close()


class HttpxTransport:
    """Default transport: raw HTTP with SSE framing.

    Parameters
    ----------
    settings:
        Client settings (credentials, base URL, extra headers).
    client:
        Optional ``httpx.Client``; defaults to the pooled client for the base
        URL. Tests inject one backed by ``httpx.MockTransport``.
    timeouts:
        Optional timeout configuration; defaults to ``get_timeout_config()``.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        client: Optional[httpx.Client] = None,
        timeouts: Optional[TimeoutConfig] = None,
        model: Optional[str] = None,
    ) -> None:
        self._settings = settings
        self._client = client or get_httpx_client(settings.base_url, "responses")
        self._timeouts = timeouts or get_timeout_config()
        self._model = model

    def _url(self, path: str) -> str:
        if str(self._client.base_url):
            return path
        return self._settings.base_url + path

    def _headers(self, *, stream: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers["Accept"] = "text/event-stream" if stream else "application/json"
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        if self._settings.organization:
            headers["OpenAI-Organization"] = self._settings.organization
        headers.update(self._settings.headers)
        return headers

    def _send(self, method: str, path: str, *, stream: bool, timeout: httpx.Timeout, **kwargs: Any) -> httpx.Response:
        request = self._client.build_request(
            method,
            self._url(path),
            headers=self._headers(stream=stream),
            timeout=timeout,
            **kwargs,
        )
        try:
            response = self._client.send(request, stream=stream)
        except httpx.HTTPError as exc:
            raise transport_error(exc, provider=self._settings.provider, model=self._model) from exc
        if response.status_code >= 400:
            try:
                body = response.read()
            except httpx.HTTPError:
                body = None
            finally:
                response.close()
            raise status_error(
                response.status_code,
                body,
                provider=self._settings.provider,
                model=self._model,
                request_id=request_id_from_headers(response.headers),
            )
        return response

    def _json(self, response: httpx.Response) -> Mapping[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                code=ErrorCode.PROTOCOL,
                message="Responses API returned a non-JSON body",
                provider=self._settings.provider,
                model=self._model,
                raw=exc,
                status=response.status_code,
                request_id=request_id_from_headers(response.headers),
            ) from exc
        return data if isinstance(data, Mapping) else {}

    def create_stream(self, body: Mapping[str, Any]) -> HttpxEventStream:
        response = self._send("POST", RESPONSES_PATH, stream=True, timeout=self._timeouts.for_stream(), json=dict(body))
        return HttpxEventStream(response, provider=self._settings.provider, model=self._model)

    def resume_stream(self, response_id: str, starting_after: int) -> HttpxEventStream:
        response = self._send(
            "GET",
            f"{RESPONSES_PATH}/{response_id}",
            stream=True,
            timeout=self._timeouts.for_stream(),
            params={"stream": "true", "starting_after": str(starting_after)},
        )
        return HttpxEventStream(response, provider=self._settings.provider, model=self._model)

    def retrieve(self, response_id: str) -> Mapping[str, Any]:
        response = self._send("GET", f"{RESPONSES_PATH}/{response_id}", stream=False, timeout=self._timeouts.for_poll())
        return self._json(response)

    def create(self, body: Mapping[str, Any]) -> Mapping[str, Any]:
        response = self._send("POST", RESPONSES_PATH, stream=False, timeout=self._timeouts.for_request(), json=dict(body))
        return self._json(response)


__all__ = [
    "EventStream",
    "HttpxEventStream",
    "HttpxTransport",
    "ResponsesTransport",
    "status_error",
    "transport_error",
]
