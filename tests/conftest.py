"""Shared test fixtures for httpchain.

Provides a quiet global output manager, a scripted terminal transport and a
recording interceptor.  These fixtures are discovered automatically by
pytest and are available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from typing import Any, Union

import pytest

from httpchain.executors import shutdown_default_executor
from httpchain.http.request import Request, Response
from httpchain.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet_output():
    """Install a silent OutputManager for every test and drop it afterwards."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


@pytest.fixture(autouse=True, scope="session")
def _shutdown_executor():
    yield
    shutdown_default_executor()


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


Outcome = Union[Response[Any], BaseException]


class ScriptedTransport:
    """Terminal transport that replays outcomes in order.

    The last outcome repeats once the script runs out.  Exceptions are
    raised, responses are returned.
    """

    def __init__(self, *outcomes: Outcome) -> None:
        assert outcomes, "at least one outcome is required"
        self._outcomes = list(outcomes)
        self.requests: list[Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def send(self, request: Request, handler: Any) -> Response[Any]:
        self.requests.append(request)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def send_async(self, request: Request, handler: Any) -> Response[Any]:
        return self.send(request, handler)


class RecordingInterceptor:
    """Appends its name to a shared log, then proceeds."""

    def __init__(self, name: str, log: list[str]) -> None:
        self.name = name
        self.log = log

    def intercept(self, request, handler, index, chain):
        self.log.append(self.name)
        return chain.proceed(request, handler)

    async def intercept_async(self, request, handler, index, chain):
        self.log.append(self.name)
        return await chain.proceed(request, handler)


def ok(body: Any = "ok", status_code: int = 200) -> Response[Any]:
    return Response(status_code, body, (("Content-Type", "text/plain"),), "https://api.example.com/v1")


def service_failure(status_code: int = 503, code: str = "service_unavailable") -> Response[str]:
    body = json.dumps(
        {"status_code": status_code, "trace": "trace-1", "errors": [{"code": code, "message": "failed"}]}
    )
    return Response(status_code, body, (("Content-Type", "application/json"),), "https://api.example.com/v1")


@pytest.fixture
def scripted_transport():
    return ScriptedTransport


@pytest.fixture
def recording():
    """Return ``(log, factory)``; ``factory(name)`` builds a RecordingInterceptor."""
    log: list[str] = []
    return log, lambda name: RecordingInterceptor(name, log)


@pytest.fixture
def ok_response():
    return ok


@pytest.fixture
def failure_response():
    return service_failure


@pytest.fixture
def get_request() -> Request:
    return Request("GET", "https://api.example.com/v1/models")
