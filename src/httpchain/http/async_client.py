"""Asynchronous HTTP client built on an interceptor chain.

:class:`AsyncHttpClient` mirrors
:class:`~httpchain.http.sync_client.SyncHttpClient` on top of :mod:`asyncio`.
Every stage is awaited, so no thread is held while a stage waits on the
network or on a retry backoff.

Differences from the synchronous chain:

- **Failure wrapping** -- raw :mod:`httpx` transport exceptions are wrapped
  into :class:`~httpchain.exceptions.TransportError` or
  :class:`~httpchain.exceptions.RequestTimeoutError`.
- **Executor** -- status classification and error-body parsing run on a
  :class:`concurrent.futures.Executor`, chosen per call, per client, or
  from :func:`~httpchain.executors.default_executor`.
- **Cancellation** -- cancelling the task awaiting :meth:`AsyncHttpClient.send`
  stops the chain at its next await; stages that have not started yet
  never run.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from concurrent.futures import Executor
from typing import Optional, TypeVar

import httpx

from httpchain.exceptions import ConfigError, wrap_transport_failure
from httpchain.executors import default_executor
from httpchain.http.errors import error_from_response
from httpchain.http.handlers import BodyHandler
from httpchain.http.interceptors import AsyncInterceptor
from httpchain.http.request import Request, Response, ensure_request_id
from httpchain.http.transport import AsyncHttpxTransport, AsyncTransport

T = TypeVar("T")


def _raise_if_cancelling() -> None:
    task = asyncio.current_task()
    if task is not None and task.cancelling():
        raise asyncio.CancelledError()


class AsyncChain:
    """One pass through the asynchronous pipeline.

    Args:
        transport: Terminal non-blocking transport.
        interceptors: Stages in execution order.
        executor: Executor used for post-transport continuations.
        index: Position of the next stage to run.
    """

    __slots__ = ("_transport", "_interceptors", "_executor", "_index")

    def __init__(
        self,
        transport: AsyncTransport,
        interceptors: Sequence[AsyncInterceptor],
        executor: Executor,
        index: int = 0,
    ) -> None:
        if index < 0 or index > len(interceptors):
            raise ValueError(f"Chain index {index} out of range 0..{len(interceptors)}")
        self._transport = transport
        self._interceptors = tuple(interceptors)
        self._executor = executor
        self._index = index

    @property
    def index(self) -> int:
        return self._index

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def interceptors(self) -> tuple[AsyncInterceptor, ...]:
        return self._interceptors

    def reset_to_index(self, index: int) -> AsyncChain:
        """Return a chain over the same stages that resumes at *index*."""
        return AsyncChain(self._transport, self._interceptors, self._executor, index)

    async def proceed(self, request: Request, handler: BodyHandler[T]) -> Response[T]:
        """Await the next stage, or the transport once stages run out.

        Raises:
            TransportError: On network failures (wrapped).
            RequestTimeoutError: When the request timeout elapses.
            ServiceError: If the transport returns a non-2xx response.
            asyncio.CancelledError: If the running task is being cancelled.
        """
        _raise_if_cancelling()

        if self._index < len(self._interceptors):
            current = self._index
            return await self._interceptors[current].intercept_async(
                request, handler, current, self.reset_to_index(current + 1)
            )

        try:
            response = await self._transport.send_async(request, handler)
        except httpx.TransportError as exc:
            raise wrap_transport_failure(exc) from exc

        if response.is_success:
            return response
        loop = asyncio.get_running_loop()
        error = await loop.run_in_executor(self._executor, error_from_response, response)
        raise error


class AsyncHttpClient:
    """Non-blocking HTTP client that executes requests through interceptors.

    Args:
        interceptors: Stages to run, in order, for every request.
        transport: Terminal transport.  When ``None`` an
            :class:`~httpchain.http.transport.AsyncHttpxTransport` is created
            around *http_client*.
        http_client: Optional :class:`httpx.AsyncClient` for the default transport.
        executor: Executor for continuations; ``None`` uses the shared default.

    Raises:
        ConfigError: If an interceptor does not implement ``intercept_async``.
    """

    def __init__(
        self,
        interceptors: Optional[Sequence[AsyncInterceptor]] = None,
        transport: Optional[AsyncTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        interceptors = tuple(interceptors or ())
        for interceptor in interceptors:
            if not callable(getattr(interceptor, "intercept_async", None)):
                raise ConfigError(f"{type(interceptor).__name__} is not an asynchronous interceptor")
        self._interceptors = interceptors
        self._executor = executor
        self._owns_transport = transport is None
        self._transport: AsyncTransport = transport or AsyncHttpxTransport(http_client)

    @property
    def interceptors(self) -> tuple[AsyncInterceptor, ...]:
        return self._interceptors

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the default transport; injected transports are left open."""
        if self._owns_transport and isinstance(self._transport, AsyncHttpxTransport):
            await self._transport.aclose()

    async def send(
        self,
        request: Request,
        handler: BodyHandler[T],
        executor: Optional[Executor] = None,
    ) -> Response[T]:
        """Send *request* through the chain and decode the body with *handler*.

        Args:
            request: The request to send.
            handler: How to materialise a successful response body.
            executor: Overrides the client's executor for this call only.

        Returns:
            The successful (2xx) :class:`~httpchain.http.request.Response`.

        Raises:
            ServiceError: On a non-2xx response.
            TransportError: On network failures.
            MaxRetriesReachedError: When a retry interceptor gives up.
        """
        chosen = executor or self._executor or default_executor()
        chain = AsyncChain(self._transport, self._interceptors, chosen)
        return await chain.proceed(ensure_request_id(request), handler)
