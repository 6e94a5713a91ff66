"""Request/response logging interceptor.

Logs a summary of each request and its outcome on the info channel of
:func:`~httpchain.output.get_output`.  Sensitive values are masked before
anything is printed:

- ``Authorization`` header values keep only the first and last four
  characters of the credential.
- ``"api-key"`` / ``"apiKey"`` fields in JSON bodies become ``"***"``.
- Base64 ``data:`` URLs are cut after fifteen characters.

Place it *before* a retry interceptor to log one entry per logical request,
or after it to log every attempt.
"""

from __future__ import annotations

import enum
import json
import re
from typing import Any, Optional, TypeVar

from httpchain.exceptions import ServiceError
from httpchain.http.handlers import BodyHandler
from httpchain.http.interceptors import AsyncChain, Chain
from httpchain.http.request import Header, Request, Response
from httpchain.output import get_output

T = TypeVar("T")

_AUTHORIZATION = re.compile(r"(\w+\s)(\w{4})(\w+)(\w{4})")
_BASE64_DATA = re.compile(r"(data:[\w/+]+;base64,)(.{15})([^\"]+)")
_API_KEY = re.compile(r"\"(api-key|apiKey)\"\s*:\s*\"([^\"]+\")", re.IGNORECASE)


class LogMode(str, enum.Enum):
    """What :class:`LoggerInterceptor` writes."""

    REQUEST = "request"
    RESPONSE = "response"
    BOTH = "both"


def mask_authorization(value: str) -> str:
    """Mask the middle of a ``<scheme> <token>`` header value."""
    return _AUTHORIZATION.sub(lambda m: f"{m.group(1)}{m.group(2)}...{m.group(4)}", value)


def mask_body(body: str) -> str:
    """Truncate base64 payloads and hide API keys in a body string."""
    if not body or body.isspace():
        return body
    body = _BASE64_DATA.sub(lambda m: f"{m.group(1)}{m.group(2)}...", body)
    return _API_KEY.sub(lambda m: f'"{m.group(1)}": "***"', body)


def format_headers(headers: tuple[Header, ...]) -> str:
    """Render headers on one line, joining repeated names, with auth masked."""
    grouped: dict[str, list[str]] = {}
    for name, value in headers:
        grouped.setdefault(name, []).append(value)
    parts = []
    for name, values in grouped.items():
        joined = " ".join(values)
        if name.lower() == "authorization":
            joined = mask_authorization(joined)
        parts.append(f"[{name}: {joined}]")
    return ", ".join(parts)


def _pretty_json(body: str) -> str:
    try:
        return json.dumps(json.loads(body), indent=2, ensure_ascii=False)
    except ValueError:
        return body


def _is_json(content_type: Optional[str]) -> bool:
    return content_type is not None and "application/json" in content_type


def _body_text(body: Any) -> Optional[str]:
    if isinstance(body, str):
        return body
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode("utf-8", errors="replace")
    return None


class LoggerInterceptor:
    """Log requests and responses passing through the chain.

    Args:
        mode: Whether to log requests, responses, or both.
    """

    def __init__(self, mode: LogMode = LogMode.BOTH) -> None:
        self.mode = LogMode(mode)

    @property
    def log_request(self) -> bool:
        return self.mode in (LogMode.REQUEST, LogMode.BOTH)

    @property
    def log_response(self) -> bool:
        return self.mode in (LogMode.RESPONSE, LogMode.BOTH)

    def intercept(
        self, request: Request, handler: BodyHandler[T], index: int, chain: Chain
    ) -> Response[T]:
        self._log_request(request)
        try:
            response = chain.proceed(request, handler)
        except Exception as exc:
            self._log_failure(request, exc)
            raise
        self._log_response(request, response)
        return response

    async def intercept_async(
        self, request: Request, handler: BodyHandler[T], index: int, chain: AsyncChain
    ) -> Response[T]:
        self._log_request(request)
        try:
            response = await chain.proceed(request, handler)
        except Exception as exc:
            self._log_failure(request, exc)
            raise
        self._log_response(request, response)
        return response

    def _log_request(self, request: Request) -> None:
        if not self.log_request:
            return
        fields: list[tuple[str, Any]] = [
            ("method", request.method),
            ("url", request.url),
            ("headers", format_headers(request.headers)),
        ]
        if request.content is not None:
            body = _body_text(request.content)
            if body is None:
                body = "[streamed body skipped]"
            else:
                body = mask_body(body)
                if _is_json(request.header("Content-Type")):
                    body = _pretty_json(body)
            fields.append(("body", body))
        get_output().block("Request", fields)

    def _log_response(self, request: Request, response: Response[Any]) -> None:
        if not self.log_response:
            return
        fields: list[tuple[str, Any]] = [
            ("request id", request.request_id),
            ("url", response.url),
            ("status code", response.status_code),
            ("headers", format_headers(response.headers)),
        ]
        body = _body_text(response.body)
        if body is not None:
            if _is_json(response.header("Content-Type")):
                body = _pretty_json(body)
            fields.append(("body", body))
        get_output().block("Response", fields)

    def _log_failure(self, request: Request, exc: Exception) -> None:
        if not self.log_response:
            return
        fields: list[tuple[str, Any]] = [("request id", request.request_id)]
        if isinstance(exc, ServiceError):
            fields.append(("status code", exc.status_code))
            fields.append(("body", _pretty_json(str(exc))))
        else:
            fields.append(("error", f"{type(exc).__name__}: {exc}"))
        get_output().block("Response", fields)
