"""Tests for the failure taxonomy."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from httpchain.exceptions import (
    AuthenticationError,
    ConfigError,
    FailureKind,
    HttpChainError,
    MaxRetriesReachedError,
    RequestTimeoutError,
    ServiceError,
    TransportError,
    classify_failure,
    wrap_transport_failure,
)
from httpchain.http.errors import ErrorItem, ErrorPayload


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "exc,kind",
        [
            (TransportError("down"), FailureKind.TRANSPORT),
            (RequestTimeoutError("slow"), FailureKind.TIMEOUT),
            (ServiceError("bad", 500), FailureKind.SERVICE),
            (AuthenticationError("no", 400), FailureKind.SERVICE),
            (httpx.ConnectError("refused"), FailureKind.TRANSPORT),
            (httpx.ReadTimeout("slow"), FailureKind.TIMEOUT),
            (ConnectionResetError("reset"), FailureKind.TRANSPORT),
            (asyncio.CancelledError(), FailureKind.CANCELLED),
        ],
    )
    def test_known_failures(self, exc: BaseException, kind: FailureKind) -> None:
        assert classify_failure(exc) is kind

    @pytest.mark.parametrize(
        "exc",
        [ValueError("x"), ConfigError("x"), MaxRetriesReachedError("x", RuntimeError(), 1)],
    )
    def test_unclassified(self, exc: BaseException) -> None:
        assert classify_failure(exc) is None


class TestWrapTransportFailure:
    def test_timeout(self) -> None:
        assert isinstance(wrap_transport_failure(httpx.ConnectTimeout("slow")), RequestTimeoutError)

    def test_network(self) -> None:
        wrapped = wrap_transport_failure(httpx.ConnectError("refused"))
        assert type(wrapped) is TransportError
        assert "refused" in str(wrapped)


class TestServiceError:
    def test_has_error_code(self) -> None:
        details = ErrorPayload(status_code=401, trace="t", errors=[ErrorItem(code="authentication_token_expired")])
        error = ServiceError("expired", 401, details=details)
        assert error.has_error_code("authentication_token_expired")

    def test_without_details(self) -> None:
        assert not ServiceError("x", 500).has_error_code("anything")

    def test_hierarchy(self) -> None:
        assert issubclass(AuthenticationError, ServiceError)
        assert issubclass(RequestTimeoutError, TransportError)
        assert issubclass(MaxRetriesReachedError, HttpChainError)
