"""Transport-neutral request and response value objects.

:class:`Request` is immutable: helpers such as :meth:`Request.with_header`
return a new instance.  Headers are kept as an ordered tuple of
``(name, value)`` pairs so that repeated header names survive unchanged.

:class:`RequestBuilder` is a fluent alternative to the constructor; both
validate the mandatory ``method`` and ``url`` eagerly and raise
:class:`~httpchain.exceptions.ConfigError` when either is missing.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import AsyncIterable, Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Generic, Optional, TypeVar, Union

from httpchain.exceptions import ConfigError

T = TypeVar("T")

Header = tuple[str, str]
BodyProducer = Callable[[], Union[Iterable[bytes], AsyncIterable[bytes]]]
Content = Union[bytes, str, Iterable[bytes], AsyncIterable[bytes], BodyProducer]

REQUEST_ID_HEADER = "HttpChain-Request-Id"

_METHOD_TOKEN = re.compile(r"[!#$%&'*+.^_`|~0-9A-Za-z-]+")


def _normalise_headers(headers: Any) -> tuple[Header, ...]:
    if headers is None:
        return ()
    if isinstance(headers, Mapping):
        return tuple((str(k), str(v)) for k, v in headers.items())
    return tuple((str(k), str(v)) for k, v in headers)


@dataclass(frozen=True)
class Request:
    """An outbound HTTP request.

    Args:
        method: HTTP method, upper-cased on construction.
        url: Absolute target URL.
        headers: Ordered ``(name, value)`` pairs, or a mapping.
        content: Optional body: bytes, text, a (sync or async) byte iterator,
            or a zero-argument callable returning a fresh iterator for each send.
        timeout: Per-request timeout in seconds, enforced by the transport.
            ``None`` defers to the transport's default.
    """

    method: str
    url: str
    headers: tuple[Header, ...] = ()
    content: Optional[Content] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.method:
            raise ConfigError("Request method is required")
        if not self.url:
            raise ConfigError("Request url is required")
        method = self.method.upper()
        if not _METHOD_TOKEN.fullmatch(method):
            raise ConfigError(f"Invalid HTTP method: {self.method!r}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("Request timeout must be positive")
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "headers", _normalise_headers(self.headers))

    @staticmethod
    def builder() -> RequestBuilder:
        """Return a new :class:`RequestBuilder`."""
        return RequestBuilder()

    def header(self, name: str) -> Optional[str]:
        """Return the first value of header *name* (case-insensitive), or ``None``."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def header_values(self, name: str) -> list[str]:
        """Return every value of header *name* in order."""
        lowered = name.lower()
        return [value for key, value in self.headers if key.lower() == lowered]

    def with_header(self, name: str, value: str) -> Request:
        """Return a copy with *name* set to *value*, replacing existing values."""
        lowered = name.lower()
        kept = tuple((k, v) for k, v in self.headers if k.lower() != lowered)
        return replace(self, headers=kept + ((name, value),))

    def with_header_if_absent(self, name: str, value: str) -> Request:
        """Return a copy with *name* added only when the header is missing."""
        if self.header(name) is not None:
            return self
        return replace(self, headers=self.headers + ((name, value),))

    @property
    def request_id(self) -> str:
        """The request-id header value, or an empty string if none was assigned."""
        return self.header(REQUEST_ID_HEADER) or ""

    def is_replayable(self) -> bool:
        """Whether the body can be sent again unchanged.

        Bytes, text, zero-argument producers and re-iterable collections are
        replayable.  A one-shot iterator (a generator, say) is not: it yields
        its data to the first send only.
        """
        content = self.content
        if content is None or isinstance(content, (bytes, str)) or callable(content):
            return True
        if isinstance(content, AsyncIterable):
            return content.__aiter__() is not content
        return iter(content) is not content

    def buffered(self) -> Request:
        """Return a copy whose one-shot sync body has been read into bytes.

        Async iterators are left alone; use :meth:`buffered_async` for those.
        """
        if self.is_replayable() or isinstance(self.content, AsyncIterable):
            return self
        return replace(self, content=b"".join(self.content))  # type: ignore[arg-type]

    async def buffered_async(self) -> Request:
        """Like :meth:`buffered`, but also drains one-shot async iterators."""
        if self.is_replayable():
            return self
        if isinstance(self.content, AsyncIterable):
            chunks = [chunk async for chunk in self.content]
            return replace(self, content=b"".join(chunks))
        return replace(self, content=b"".join(self.content))  # type: ignore[arg-type]


def ensure_request_id(request: Request) -> Request:
    """Attach a fresh UUID request id unless the request already carries one."""
    return request.with_header_if_absent(REQUEST_ID_HEADER, str(uuid.uuid4()))


class RequestBuilder:
    """Fluent builder for :class:`Request`.

    Example::

        request = (
            Request.builder()
            .method("POST")
            .url("https://api.example.com/v1/chat")
            .header("Content-Type", "application/json")
            .content(b"{}")
            .timeout(30)
            .build()
        )
    """

    def __init__(self) -> None:
        self._method: Optional[str] = None
        self._url: Optional[str] = None
        self._headers: list[Header] = []
        self._content: Optional[Content] = None
        self._timeout: Optional[float] = None

    def method(self, method: str) -> RequestBuilder:
        self._method = method
        return self

    def url(self, url: str) -> RequestBuilder:
        self._url = url
        return self

    def header(self, name: str, value: str) -> RequestBuilder:
        """Append a header; repeated names are kept in insertion order."""
        self._headers.append((name, value))
        return self

    def headers(self, headers: Union[Mapping[str, str], Iterable[Header]]) -> RequestBuilder:
        self._headers.extend(_normalise_headers(headers))
        return self

    def content(self, content: Optional[Content]) -> RequestBuilder:
        self._content = content
        return self

    def timeout(self, seconds: Optional[float]) -> RequestBuilder:
        self._timeout = seconds
        return self

    def build(self) -> Request:
        """Build the request.

        Raises:
            ConfigError: If ``method`` or ``url`` was never set.
        """
        if self._method is None:
            raise ConfigError("Request method is required")
        if self._url is None:
            raise ConfigError("Request url is required")
        return Request(
            method=self._method,
            url=self._url,
            headers=tuple(self._headers),
            content=self._content,
            timeout=self._timeout,
        )


@dataclass(frozen=True)
class Response(Generic[T]):
    """A received HTTP response with a decoded body.

    Args:
        status_code: HTTP status code.
        body: Body decoded by the caller's :class:`~httpchain.http.handlers.BodyHandler`
            for 2xx responses; the raw text for any other status.
        headers: Ordered ``(name, value)`` pairs as received.
        url: The final URL the response came from.
    """

    status_code: int
    body: T
    headers: tuple[Header, ...] = field(default=())
    url: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> Optional[str]:
        """Return the first value of header *name* (case-insensitive), or ``None``."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None
