"""Interceptor that authenticates requests with a bearer token."""

from __future__ import annotations

from typing import TypeVar

from httpchain.auth.base import AuthenticationProvider
from httpchain.http.handlers import BodyHandler
from httpchain.http.interceptors import AsyncChain, Chain
from httpchain.http.request import Request, Response

T = TypeVar("T")


class BearerInterceptor:
    """Set ``Authorization: Bearer <token>`` on every request it sees.

    The token comes from the provider on each pass, so the provider's cache
    decides whether a network refresh happens.  Placed after a retry
    interceptor it runs once per attempt and picks up refreshed tokens.

    Args:
        authenticator: Source of access tokens.
    """

    def __init__(self, authenticator: AuthenticationProvider) -> None:
        self.authenticator = authenticator

    def intercept(
        self, request: Request, handler: BodyHandler[T], index: int, chain: Chain
    ) -> Response[T]:
        token = self.authenticator.token()
        return chain.proceed(request.with_header("Authorization", f"Bearer {token}"), handler)

    async def intercept_async(
        self, request: Request, handler: BodyHandler[T], index: int, chain: AsyncChain
    ) -> Response[T]:
        token = await self.authenticator.token_async()
        return await chain.proceed(request.with_header("Authorization", f"Bearer {token}"), handler)
