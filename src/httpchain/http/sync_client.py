"""Synchronous HTTP client built on an interceptor chain.

:class:`SyncHttpClient` runs every request through an ordered list of
:class:`~httpchain.http.interceptors.SyncInterceptor` stages terminating in
a blocking :class:`~httpchain.http.transport.Transport`.  The calling thread
blocks for the whole chain, including any retry backoff.

- **Request id** -- a ``HttpChain-Request-Id`` header is attached before the
  chain starts, so every attempt of one logical request shares it.
- **Status mapping** -- a non-2xx response becomes a
  :class:`~httpchain.exceptions.ServiceError`.
- **No translation** -- transport exceptions (:mod:`httpx`) and exceptions
  raised by interceptors reach the caller unchanged.

See Also:
    :class:`~httpchain.http.async_client.AsyncHttpClient` for the
    equivalent non-blocking implementation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional, TypeVar

import httpx

from httpchain.exceptions import ConfigError
from httpchain.http.errors import error_from_response
from httpchain.http.handlers import BodyHandler
from httpchain.http.interceptors import SyncInterceptor
from httpchain.http.request import Request, Response, ensure_request_id
from httpchain.http.transport import HttpxTransport, Transport

T = TypeVar("T")


class SyncChain:
    """One pass through the synchronous pipeline.

    The chain is immutable: it holds the interceptor tuple, the transport
    and the position of the next stage.  :meth:`proceed` hands each
    interceptor a new chain positioned just after it, so a single chain
    object can be reused safely.

    Args:
        transport: Terminal transport performing the network send.
        interceptors: Stages in execution order.
        index: Position of the next stage to run.
    """

    __slots__ = ("_transport", "_interceptors", "_index")

    def __init__(
        self,
        transport: Transport,
        interceptors: Sequence[SyncInterceptor] = (),
        index: int = 0,
    ) -> None:
        if index < 0 or index > len(interceptors):
            raise ValueError(f"Chain index {index} out of range 0..{len(interceptors)}")
        self._transport = transport
        self._interceptors = tuple(interceptors)
        self._index = index

    @property
    def index(self) -> int:
        return self._index

    @property
    def interceptors(self) -> tuple[SyncInterceptor, ...]:
        return self._interceptors

    def reset_to_index(self, index: int) -> SyncChain:
        """Return a chain over the same stages that resumes at *index*."""
        return SyncChain(self._transport, self._interceptors, index)

    def proceed(self, request: Request, handler: BodyHandler[T]) -> Response[T]:
        """Run the next stage, or send through the transport once stages run out.

        Raises:
            ServiceError: If the transport returns a non-2xx response.
        """
        if self._index < len(self._interceptors):
            current = self._index
            return self._interceptors[current].intercept(
                request, handler, current, self.reset_to_index(current + 1)
            )

        response = self._transport.send(request, handler)
        if response.is_success:
            return response
        raise error_from_response(response)


class SyncHttpClient:
    """Blocking HTTP client that executes requests through interceptors.

    Args:
        interceptors: Stages to run, in order, for every request.
        transport: Terminal transport.  When ``None`` an
            :class:`~httpchain.http.transport.HttpxTransport` is created
            around *http_client*.
        http_client: Optional :class:`httpx.Client` for the default transport.

    Raises:
        ConfigError: If an interceptor does not implement ``intercept``.

    Example::

        with SyncHttpClient(interceptors=[LoggerInterceptor(), retry, bearer]) as client:
            response = client.send(request, BodyHandlers.json())
    """

    def __init__(
        self,
        interceptors: Optional[Sequence[SyncInterceptor]] = None,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        interceptors = tuple(interceptors or ())
        for interceptor in interceptors:
            if not callable(getattr(interceptor, "intercept", None)):
                raise ConfigError(f"{type(interceptor).__name__} is not a synchronous interceptor")
        self._interceptors = interceptors
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport(http_client)

    @property
    def interceptors(self) -> tuple[SyncInterceptor, ...]:
        return self._interceptors

    def __enter__(self) -> SyncHttpClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the default transport; injected transports are left open."""
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            self._transport.close()

    def send(self, request: Request, handler: BodyHandler[T]) -> Response[T]:
        """Send *request* through the chain and decode the body with *handler*.

        Args:
            request: The request to send.
            handler: How to materialise a successful response body.

        Returns:
            The successful (2xx) :class:`~httpchain.http.request.Response`.

        Raises:
            ServiceError: On a non-2xx response.
            MaxRetriesReachedError: When a retry interceptor gives up.
            httpx.TransportError: On network failures, unchanged.
        """
        chain = SyncChain(self._transport, self._interceptors)
        return chain.proceed(ensure_request_id(request), handler)
