"""Abstract base class for token providers.

An :class:`AuthenticationProvider` hands out access tokens to the
:class:`~httpchain.interceptors.bearer.BearerInterceptor`.  Implementations
own any caching and refreshing; callers simply ask for a token on every
request and rely on the provider to avoid needless network calls.

To implement a new provider, subclass :class:`AuthenticationProvider` and
implement both :meth:`~AuthenticationProvider.token` and
:meth:`~AuthenticationProvider.token_async`.

See Also:
    :class:`~httpchain.auth.iam.IAMAuthenticator` for the API-key provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AuthenticationProvider(ABC):
    """Source of bearer access tokens for blocking and non-blocking callers."""

    @abstractmethod
    def token(self) -> str:
        """Return a valid access token, refreshing it first if needed.

        Raises:
            AuthenticationError: If the identity endpoint rejects the request.
        """
        ...

    @abstractmethod
    async def token_async(self) -> str:
        """Non-blocking variant of :meth:`token`."""
        ...
