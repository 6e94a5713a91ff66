"""Exception hierarchy for httpchain.

Every exception raised by the request pipeline inherits from
:class:`HttpChainError` and carries a :attr:`~HttpChainError.kind` tag drawn
from the closed :class:`FailureKind` set.  Retry policies match on that tag
(plus an optional predicate) instead of on concrete exception classes.

Subclass hierarchy::

    HttpChainError
    +-- ConfigError              (no kind, construction-time failure)
    +-- TransportError           (TRANSPORT)
    |   +-- RequestTimeoutError  (TIMEOUT)
    +-- ServiceError             (SERVICE)
    |   +-- AuthenticationError  (SERVICE)
    +-- MaxRetriesReachedError   (no kind, terminal)

The synchronous chain lets raw :mod:`httpx` transport exceptions propagate
unchanged, so :func:`classify_failure` understands those as well.
"""

from __future__ import annotations

import asyncio
import enum
from typing import TYPE_CHECKING, Optional

import httpx

if TYPE_CHECKING:
    from httpchain.http.errors import ErrorPayload


class FailureKind(str, enum.Enum):
    """Closed set of failure categories used for retry classification."""

    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    SERVICE = "service"
    CANCELLED = "cancelled"


class HttpChainError(Exception):
    """Base exception for all httpchain errors.

    Args:
        message: Human-readable error description.
    """

    kind: Optional[FailureKind] = None

    def __init__(self, message: str):
        super().__init__(message)


class ConfigError(HttpChainError):
    """Raised for invalid configuration (missing builder fields, bad env values).

    Always raised while objects are being constructed, never at call time.
    """


class TransportError(HttpChainError):
    """Raised on network-level failures (connection refused, DNS, broken pipe)."""

    kind = FailureKind.TRANSPORT


class RequestTimeoutError(TransportError):
    """Raised when the transport gives up waiting on the per-request timeout."""

    kind = FailureKind.TIMEOUT


class ServiceError(HttpChainError):
    """Raised when the service answers with a non-2xx status code.

    Args:
        message: Human-readable description, usually the raw response body.
        status_code: The HTTP status code of the response.
        details: Parsed error payload, or ``None`` when the body could not be
            parsed into one.
        body: The raw response body text, kept even when parsing failed.
    """

    kind = FailureKind.SERVICE

    def __init__(
        self,
        message: str,
        status_code: int,
        details: Optional[ErrorPayload] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details
        self.body = body

    def has_error_code(self, code: str) -> bool:
        """Return ``True`` if any parsed error item carries *code*."""
        if self.details is None:
            return False
        return any(item.code == code for item in self.details.errors)


class AuthenticationError(ServiceError):
    """Raised when the identity endpoint refuses to issue a token."""


class MaxRetriesReachedError(HttpChainError):
    """Raised after a retry interceptor has used up all of its attempts.

    Args:
        message: Human-readable description including the request id.
        cause: The failure observed on the last attempt.
        attempts: How many attempts were made.
    """

    def __init__(self, message: str, cause: BaseException, attempts: int):
        super().__init__(message)
        self.cause = cause
        self.attempts = attempts


def classify_failure(exc: BaseException) -> Optional[FailureKind]:
    """Map an exception to its :class:`FailureKind`, or ``None`` if unclassified.

    Handles the package's own exceptions as well as the raw :mod:`httpx`
    exceptions that the synchronous chain propagates untouched.
    """
    if isinstance(exc, asyncio.CancelledError):
        return FailureKind.CANCELLED
    if isinstance(exc, HttpChainError):
        return exc.kind
    if isinstance(exc, httpx.TimeoutException):
        return FailureKind.TIMEOUT
    if isinstance(exc, (httpx.TransportError, OSError)):
        return FailureKind.TRANSPORT
    return None


def wrap_transport_failure(exc: Exception) -> HttpChainError:
    """Convert a raw :mod:`httpx` failure into the package taxonomy."""
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError(f"Request timed out: {exc}")
    return TransportError(f"Transport failure: {exc}")
