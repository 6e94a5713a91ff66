"""Structured error payloads returned by the service and the identity endpoint.

Non-2xx responses are turned into :class:`~httpchain.exceptions.ServiceError`
by :func:`error_from_response`.  The body is parsed into an
:class:`ErrorPayload` when possible.  Several wire shapes are normalised
into the same model:

* standard -- ``{"status_code", "trace", "errors": [{"code", "message", "more_info"}]}``
* identity endpoint -- ``{"errorCode", "errorMessage", "errorDetails"}``
* tool endpoints -- ``{"code", "message", "description"}``
* file service -- ``{"trace", "status", "error": {"code", "message"}}``
* XML -- ``<Error><Code/><Message/><Resource/><RequestId/><httpStatusCode/></Error>``

When a body cannot be parsed, the error is still raised with
``details=None`` and the raw body attached.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from httpchain.exceptions import ServiceError
from httpchain.http.request import Response
from httpchain.output import get_output


class ErrorCode:
    """Machine-readable error codes the pipeline reacts to."""

    AUTHENTICATION_TOKEN_EXPIRED = "authentication_token_expired"
    AUTHORIZATION_REJECTED = "authorization_rejected"
    COS_ACCESS_DENIED = "cos_access_denied"
    TOKEN_QUOTA_REACHED = "token_quota_reached"
    UNCLASSIFIED = "unclassified"


class ErrorItem(BaseModel):
    """A single error entry of an :class:`ErrorPayload`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    code: str
    message: Optional[str] = None
    more_info: Optional[str] = Field(default=None, alias="moreInfo")


class ErrorPayload(BaseModel):
    """Normalised error body."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status_code: Optional[int] = Field(default=None, alias="statusCode")
    trace: Optional[str] = None
    errors: list[ErrorItem] = Field(default_factory=list)


def parse_error_body(status_code: int, body: str, content_type: str) -> ErrorPayload:
    """Parse an error body according to its content type.

    Args:
        status_code: Status code of the response, used for shapes that do
            not carry one.
        body: The raw body text.
        content_type: Value of the ``Content-Type`` header.

    Returns:
        The normalised :class:`ErrorPayload`.

    Raises:
        ValueError: If the content type is unsupported or the body does not
            match any known shape.
    """
    if "json" in content_type:
        return _parse_json_error(status_code, body)
    if "xml" in content_type:
        return _parse_xml_error(body)
    raise ValueError(f"Unsupported error content type: {content_type}")


def _parse_json_error(status_code: int, body: str) -> ErrorPayload:
    data: Any = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("Error body is not a JSON object")

    if "trace" not in data:
        if "errorCode" in data:
            return ErrorPayload(
                status_code=status_code,
                trace="",
                errors=[
                    ErrorItem(
                        code=data["errorCode"],
                        message=data.get("errorMessage"),
                        more_info=data.get("errorDetails"),
                    )
                ],
            )
        if "code" in data:
            description = data.get("description")
            code = ErrorCode.UNCLASSIFIED
            if description and "jwt expired" in description:
                code = ErrorCode.AUTHENTICATION_TOKEN_EXPIRED
            return ErrorPayload(
                status_code=data["code"] if isinstance(data["code"], int) else status_code,
                trace="",
                errors=[ErrorItem(code=code, message=data.get("message"), more_info=description)],
            )
    elif "status_code" not in data and "statusCode" not in data and isinstance(data.get("error"), dict):
        error = data["error"]
        return ErrorPayload(
            status_code=data.get("status", status_code),
            trace=data["trace"],
            errors=[ErrorItem(code=error.get("code", ErrorCode.UNCLASSIFIED), message=error.get("message"))],
        )

    try:
        return ErrorPayload.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Unrecognised error body: {exc}") from exc


def _parse_xml_error(body: str) -> ErrorPayload:
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise ValueError(f"Malformed XML error body: {exc}") from exc

    def text(tag: str) -> Optional[str]:
        node = root.find(f".//{tag}")
        return node.text if node is not None else None

    code = text("Code")
    if code is None:
        raise ValueError("XML error body has no <Code> element")
    status = text("httpStatusCode")
    return ErrorPayload(
        status_code=int(status) if status and status.isdigit() else None,
        trace=text("RequestId"),
        errors=[ErrorItem(code=code, message=text("Message"), more_info=text("Resource"))],
    )


def error_from_response(response: Response[Any]) -> ServiceError:
    """Build the :class:`ServiceError` for a non-2xx response.

    The response body is expected to be the raw text of the error.  An empty
    body yields a status-only error; a body that cannot be parsed keeps the
    raw text in both the message and :attr:`ServiceError.body`.
    """
    status = response.status_code
    body = response.body if isinstance(response.body, str) else _as_text(response.body)

    if not body:
        return ServiceError(f"Status code: {status}", status)

    content_type = response.header("Content-Type")
    if content_type is None:
        return ServiceError(body, status, body=body)

    try:
        details = parse_error_body(status, body, content_type)
    except ValueError as exc:
        get_output().debug(f"Could not parse error body for status {status}: {exc}")
        details = None
    return ServiceError(body, status, details=details, body=body)


def _as_text(body: Any) -> str:
    if body is None:
        return ""
    if isinstance(body, (bytes, bytearray)):
        return body.decode("utf-8", errors="replace")
    return str(body)
