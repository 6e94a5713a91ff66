"""httpchain -- composable HTTP request pipeline with retry and bearer auth.

Requests flow through an ordered chain of interceptors before reaching an
:mod:`httpx` transport.  The same interceptors serve a blocking client and an
:mod:`asyncio` client, and a retry stage can re-run only the stages placed
after it, so an expired bearer token is refreshed without re-logging the
original request.

Typical usage::

    from httpchain import (
        BearerInterceptor, BodyHandlers, IAMAuthenticator, LoggerInterceptor,
        Request, RetryInterceptor, SyncHttpClient,
    )

    auth = IAMAuthenticator.from_source("env:IAM_API_KEY")
    with SyncHttpClient(interceptors=[
        LoggerInterceptor(),
        RetryInterceptor.on_retryable_status_codes(),
        RetryInterceptor.on_token_expired(),
        BearerInterceptor(auth),
    ]) as client:
        response = client.send(Request("GET", "https://api.example.com/v1/models"), BodyHandlers.json())

Modules:
    http: request/response values, body handlers, transports and clients.
    interceptors: retry, bearer and logging stages.
    auth: token providers and the cached credential.
    config: environment-driven settings.
    exceptions: failure taxonomy.
    executors: shared executor for async continuations.
    output: stderr diagnostics channel with Rich support.
"""

from httpchain.auth import AuthenticationProvider, IAMAuthenticator, IdentityToken
from httpchain.exceptions import (
    AuthenticationError,
    ConfigError,
    FailureKind,
    HttpChainError,
    MaxRetriesReachedError,
    RequestTimeoutError,
    ServiceError,
    TransportError,
)
from httpchain.http import (
    AsyncHttpClient,
    BodyHandler,
    BodyHandlers,
    Request,
    RequestBuilder,
    Response,
    SyncHttpClient,
)
from httpchain.interceptors import (
    BearerInterceptor,
    LoggerInterceptor,
    LogMode,
    RetryInterceptor,
    RetryOn,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncHttpClient",
    "AuthenticationError",
    "AuthenticationProvider",
    "BearerInterceptor",
    "BodyHandler",
    "BodyHandlers",
    "ConfigError",
    "FailureKind",
    "HttpChainError",
    "IAMAuthenticator",
    "IdentityToken",
    "LogMode",
    "LoggerInterceptor",
    "MaxRetriesReachedError",
    "Request",
    "RequestBuilder",
    "RequestTimeoutError",
    "Response",
    "RetryInterceptor",
    "RetryOn",
    "ServiceError",
    "SyncHttpClient",
    "TransportError",
]
