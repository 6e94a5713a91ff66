"""Token providers for bearer authentication.

- :class:`AuthenticationProvider` -- abstract base for anything that hands
  out access tokens.
- :class:`IAMAuthenticator` -- exchanges an API key for a cached
  :class:`IdentityToken`.
"""

from httpchain.auth.base import AuthenticationProvider
from httpchain.auth.iam import IAMAuthenticator
from httpchain.auth.token import AtomicReference, IdentityToken

__all__ = [
    "AtomicReference",
    "AuthenticationProvider",
    "IAMAuthenticator",
    "IdentityToken",
]
