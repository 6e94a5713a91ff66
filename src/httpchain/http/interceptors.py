"""Interceptor protocols for the request pipeline.

An interceptor is one stage of a chain of responsibility.  It receives the
request, the caller's body handler, its own position in the chain and the
chain positioned *after* itself.  It may transform the request, short-circuit
with its own response, or hand off to the remaining stages with
``chain.proceed(...)``.

Chains are immutable.  ``chain.reset_to_index(n)`` returns a chain that
resumes at position ``n``; a retrying interceptor uses it to re-run the
stages placed after itself while leaving earlier stages (such as request
logging) untouched.

A class may implement both protocols; the synchronous entry point is
``intercept`` and the asynchronous one is ``intercept_async``.
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

from httpchain.http.handlers import BodyHandler
from httpchain.http.request import Request, Response

T = TypeVar("T")


class Chain(Protocol):
    """Continuation handed to a :class:`SyncInterceptor`."""

    @property
    def index(self) -> int:
        """Position of the next stage this chain will run."""
        ...

    def proceed(self, request: Request, handler: BodyHandler[T]) -> Response[T]:
        """Run the stage at :attr:`index`, or the transport once stages run out."""
        ...

    def reset_to_index(self, index: int) -> Chain:
        """Return a chain that resumes at *index*."""
        ...


class AsyncChain(Protocol):
    """Continuation handed to an :class:`AsyncInterceptor`."""

    @property
    def index(self) -> int:
        """Position of the next stage this chain will run."""
        ...

    async def proceed(self, request: Request, handler: BodyHandler[T]) -> Response[T]:
        """Run the stage at :attr:`index`, or the transport once stages run out."""
        ...

    def reset_to_index(self, index: int) -> AsyncChain:
        """Return a chain that resumes at *index*."""
        ...


@runtime_checkable
class SyncInterceptor(Protocol):
    """Protocol for synchronous interceptors.

    Key behaviors:
    - ``index`` is this interceptor's own position in the chain
    - ``chain`` is already positioned at ``index + 1``
    - exceptions propagate to the previous stage unchanged unless the
      interceptor deliberately handles them
    """

    def intercept(
        self, request: Request, handler: BodyHandler[T], index: int, chain: Chain
    ) -> Response[T]:
        """Process *request* and return the response for it.

        Args:
            request: The request to process.
            handler: The caller's body handler; pass it on unchanged.
            index: This interceptor's position in the chain.
            chain: The remaining stages.

        Returns:
            The response, usually obtained from ``chain.proceed``.
        """
        ...


@runtime_checkable
class AsyncInterceptor(Protocol):
    """Protocol for asynchronous interceptors.

    Same contract as :class:`SyncInterceptor`, but every step is awaited.
    Implementations must never block the event loop; waiting is done with
    :func:`asyncio.sleep` or by awaiting other coroutines.
    """

    async def intercept_async(
        self, request: Request, handler: BodyHandler[T], index: int, chain: AsyncChain
    ) -> Response[T]:
        """Process *request* and return the response for it."""
        ...
