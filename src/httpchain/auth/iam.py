"""API-key authenticator backed by an IAM identity endpoint.

:class:`IAMAuthenticator` exchanges an API key for an
:class:`~httpchain.auth.token.IdentityToken` and caches it until it
expires.  The cached token sits in an
:class:`~httpchain.auth.token.AtomicReference`; concurrent callers that all
see an expired token may each refresh, and whichever refresh lands last
wins.  Refreshing is idempotent, so no lock is held across the network call.

The authenticator talks to the identity endpoint through its own
interceptor-free :class:`~httpchain.http.sync_client.SyncHttpClient` and
:class:`~httpchain.http.async_client.AsyncHttpClient`, so it never recurses
into a bearer interceptor.

Example::

    auth = IAMAuthenticator.from_source("env:IAM_API_KEY")
    client = SyncHttpClient(interceptors=[
        RetryInterceptor.on_token_expired(),
        BearerInterceptor(auth),
    ])
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from httpchain.auth.base import AuthenticationProvider
from httpchain.auth.token import AtomicReference, IdentityToken
from httpchain.config import resolve_credential
from httpchain.exceptions import AuthenticationError, ConfigError, ServiceError
from httpchain.http.async_client import AsyncHttpClient
from httpchain.http.handlers import BodyHandlers
from httpchain.http.request import Request
from httpchain.http.sync_client import SyncHttpClient
from httpchain.http.transport import AsyncHttpxTransport, HttpxTransport
from httpchain.output import get_output

DEFAULT_URL = "https://iam.cloud.ibm.com/identity/token"
DEFAULT_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"
DEFAULT_TIMEOUT = 10.0


class IAMAuthenticator(AuthenticationProvider):
    """Fetch and cache access tokens using an API key.

    Args:
        api_key: The API key to exchange.
        url: Identity endpoint URL.
        grant_type: OAuth grant type sent with the key.
        timeout: Timeout in seconds for each token request.
        http_client: Optional :class:`httpx.Client` for blocking refreshes.
        async_http_client: Optional :class:`httpx.AsyncClient` for
            non-blocking refreshes.
        clock: Returns the current time in seconds since the epoch.

    Raises:
        ConfigError: If *api_key* or *url* is empty, or *timeout* is not positive.
    """

    def __init__(
        self,
        api_key: str,
        url: str = DEFAULT_URL,
        grant_type: str = DEFAULT_GRANT_TYPE,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
        async_http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not api_key:
            raise ConfigError("api_key is required")
        if not url:
            raise ConfigError("url is required")
        if timeout <= 0:
            raise ConfigError("timeout must be positive")
        self._api_key = api_key
        self.url = url
        self.grant_type = grant_type
        self.timeout = timeout
        self._clock = clock
        self._token: AtomicReference[IdentityToken] = AtomicReference()
        self._sync_transport = HttpxTransport(http_client, timeout=timeout)
        self._async_transport = AsyncHttpxTransport(async_http_client, timeout=timeout)
        self._sync_client = SyncHttpClient(transport=self._sync_transport)
        self._async_client = AsyncHttpClient(transport=self._async_transport)

    @classmethod
    def from_source(cls, api_key_source: str, **kwargs: Any) -> IAMAuthenticator:
        """Build an authenticator whose key comes from ``env:``, ``file:`` or a literal."""
        return cls(resolve_credential(api_key_source), **kwargs)

    @property
    def cached_token(self) -> Optional[IdentityToken]:
        """The currently cached token, or ``None`` before the first refresh."""
        return self._token.get()

    def is_expired(self, token: Optional[IdentityToken]) -> bool:
        return token is None or token.is_expired(self._clock())

    def token(self) -> str:
        current = self._token.get()
        if not self.is_expired(current):
            return current.access_token  # type: ignore[union-attr]

        try:
            response = self._sync_client.send(self._build_request(), BodyHandlers.model(IdentityToken))
        except ServiceError as exc:
            raise _authentication_error(exc) from exc
        return self._store(current, response.body)

    async def token_async(self) -> str:
        current = self._token.get()
        if not self.is_expired(current):
            return current.access_token  # type: ignore[union-attr]

        try:
            response = await self._async_client.send(self._build_request(), BodyHandlers.model(IdentityToken))
        except ServiceError as exc:
            raise _authentication_error(exc) from exc
        return self._store(current, response.body)

    def close(self) -> None:
        """Close the blocking client if this authenticator created it."""
        self._sync_transport.close()

    async def aclose(self) -> None:
        """Close the non-blocking client if this authenticator created it."""
        await self._async_transport.aclose()

    def _build_request(self) -> Request:
        body = urlencode({"grant_type": self.grant_type, "apikey": self._api_key})
        return Request(
            method="POST",
            url=self.url,
            headers=(
                ("Content-Type", "application/x-www-form-urlencoded"),
                ("Accept", "application/json"),
            ),
            content=body,
            timeout=self.timeout,
        )

    def _store(self, previous: Optional[IdentityToken], fresh: IdentityToken) -> str:
        while not self._token.compare_and_set(previous, fresh):
            # A concurrent refresh got there first; keep whichever expires later.
            previous = self._token.get()
            if previous is not None and previous.expiration >= fresh.expiration:
                break
        get_output().debug(f"Refreshed identity token from {self.url} (expires at {fresh.expiration})")
        return fresh.access_token


def _authentication_error(exc: ServiceError) -> AuthenticationError:
    return AuthenticationError(str(exc), exc.status_code, details=exc.details, body=exc.body)
