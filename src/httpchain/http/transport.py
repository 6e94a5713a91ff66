"""Terminal transports backed by :mod:`httpx`.

The transport performs exactly one network exchange per call.  It applies
the caller's :class:`~httpchain.http.handlers.BodyHandler` to 2xx
responses; any other response is read as text so the chain can classify it.
Transports never raise for status codes, and they let :mod:`httpx`
exceptions propagate untouched.

Both transports wrap a shared connection pool and are safe to use from many
concurrent chain passes.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, TypeVar

import httpx

from httpchain.http.handlers import BodyHandler
from httpchain.http.request import Request, Response

T = TypeVar("T")

DEFAULT_TIMEOUT = 60.0


class Transport(Protocol):
    """Blocking terminal transport."""

    def send(self, request: Request, handler: BodyHandler[T]) -> Response[T]: ...


class AsyncTransport(Protocol):
    """Non-blocking terminal transport."""

    async def send_async(self, request: Request, handler: BodyHandler[T]) -> Response[T]: ...


def _build(client: Any, request: Request) -> httpx.Request:
    kwargs: dict[str, Any] = {"headers": list(request.headers)}
    content = request.content
    if callable(content):
        content = content()
    if content is not None:
        kwargs["content"] = content
    if request.timeout is not None:
        kwargs["timeout"] = request.timeout
    return client.build_request(request.method, request.url, **kwargs)


def _headers(raw: httpx.Response) -> tuple[tuple[str, str], ...]:
    return tuple(raw.headers.multi_items())


class HttpxTransport:
    """Blocking transport over :class:`httpx.Client`.

    Args:
        client: Client to send through.  When ``None`` a client is created
            (and later closed by :meth:`close`).
        timeout: Default timeout in seconds for a created client.
    """

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def send(self, request: Request, handler: BodyHandler[T]) -> Response[T]:
        raw = self._client.send(_build(self._client, request), stream=True)
        keep_open = False
        try:
            if raw.is_success:
                body: Any = handler.handle(raw)
                keep_open = handler.owns_response
            else:
                raw.read()
                body = raw.text
            return Response(raw.status_code, body, _headers(raw), str(raw.url))
        finally:
            if not keep_open:
                raw.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class AsyncHttpxTransport:
    """Non-blocking transport over :class:`httpx.AsyncClient`.

    Args:
        client: Client to send through.  When ``None`` a client is created
            (and later closed by :meth:`aclose`).
        timeout: Default timeout in seconds for a created client.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def send_async(self, request: Request, handler: BodyHandler[T]) -> Response[T]:
        raw = await self._client.send(_build(self._client, request), stream=True)
        keep_open = False
        try:
            if raw.is_success:
                body: Any = await handler.handle_async(raw)
                keep_open = handler.owns_response
            else:
                await raw.aread()
                body = raw.text
            return Response(raw.status_code, body, _headers(raw), str(raw.url))
        finally:
            if not keep_open:
                await raw.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
