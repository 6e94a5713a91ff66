"""Request pipeline: value objects, body handlers, transports and clients."""

from httpchain.http.async_client import AsyncChain, AsyncHttpClient
from httpchain.http.errors import ErrorCode, ErrorItem, ErrorPayload, error_from_response
from httpchain.http.handlers import BodyHandler, BodyHandlers
from httpchain.http.interceptors import AsyncInterceptor, SyncInterceptor
from httpchain.http.request import REQUEST_ID_HEADER, Request, RequestBuilder, Response
from httpchain.http.sync_client import SyncChain, SyncHttpClient
from httpchain.http.transport import AsyncHttpxTransport, HttpxTransport

__all__ = [
    "REQUEST_ID_HEADER",
    "AsyncChain",
    "AsyncHttpClient",
    "AsyncHttpxTransport",
    "AsyncInterceptor",
    "BodyHandler",
    "BodyHandlers",
    "ErrorCode",
    "ErrorItem",
    "ErrorPayload",
    "HttpxTransport",
    "Request",
    "RequestBuilder",
    "Response",
    "SyncChain",
    "SyncHttpClient",
    "SyncInterceptor",
    "error_from_response",
]
