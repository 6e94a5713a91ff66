"""Retry interceptor with optional exponential backoff.

:class:`RetryInterceptor` re-runs the stages placed *after* itself when a
failure matches one of its :class:`RetryOn` rules.  Stages placed before it
(request logging, for instance) run once per logical request; stages after
it (bearer auth, for instance) run once per attempt, which is what lets a
``401 authentication_token_expired`` recover through a token refresh.

Attempt and backoff counters live on the stack of each call, so one
interceptor instance can serve any number of concurrent requests.

A one-shot body such as a generator is read into memory before the first
attempt so every attempt sends the same bytes.  Pass a zero-argument
callable as the content to stream a fresh body on each attempt instead.

Example::

    retry = RetryInterceptor(
        retry_on=[RetryOn(FailureKind.TRANSPORT)],
        max_retries=3,
        retry_interval=0.5,
        exponential_backoff=True,
    )
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Optional, TypeVar

from httpchain.config import RetryConfig, load_retry_config
from httpchain.exceptions import (
    ConfigError,
    FailureKind,
    MaxRetriesReachedError,
    ServiceError,
    classify_failure,
)
from httpchain.http.errors import ErrorCode
from httpchain.http.handlers import BodyHandler
from httpchain.http.interceptors import AsyncChain, Chain
from httpchain.http.request import Request, Response
from httpchain.output import get_output

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 503, 504, 520})


@dataclass(frozen=True)
class RetryOn:
    """A rule that marks failures of one :class:`FailureKind` as retryable.

    Args:
        kind: The failure category to match.
        predicate: Optional extra check on the exception itself.
    """

    kind: FailureKind
    predicate: Optional[Callable[[BaseException], bool]] = None

    def __post_init__(self) -> None:
        if self.kind is FailureKind.CANCELLED:
            raise ConfigError("Cancelled requests cannot be retried")

    def matches(self, exc: BaseException) -> bool:
        if classify_failure(exc) is not self.kind:
            return False
        return self.predicate is None or self.predicate(exc)


def _is_token_expired(exc: BaseException) -> bool:
    if not isinstance(exc, ServiceError):
        return False
    if exc.status_code == 401:
        return exc.has_error_code(ErrorCode.AUTHENTICATION_TOKEN_EXPIRED)
    if exc.status_code == 403:
        return exc.has_error_code(ErrorCode.COS_ACCESS_DENIED)
    return False


def _is_retryable_status(exc: BaseException) -> bool:
    return isinstance(exc, ServiceError) and exc.status_code in RETRYABLE_STATUS_CODES


class RetryInterceptor:
    """Re-run the downstream stages on matching failures.

    ``max_retries`` counts attempts: ``1`` means the request is tried once
    and never retried.  Before attempt ``k`` (``k >= 1``) the interceptor
    waits ``retry_interval`` seconds, or ``retry_interval * 2 ** (k - 1)``
    when *exponential_backoff* is set.

    Args:
        retry_on: Rules deciding which failures are retried.
        max_retries: Total number of attempts, at least 1.
        retry_interval: Base wait between attempts, in seconds.
        exponential_backoff: Double the wait after every retry.

    Raises:
        ConfigError: If no rule is given, ``max_retries`` is below 1, or
            exponential backoff is requested with a zero interval.
    """

    def __init__(
        self,
        retry_on: Sequence[RetryOn],
        max_retries: int = 1,
        retry_interval: float = 0.0,
        exponential_backoff: bool = False,
    ) -> None:
        if not retry_on:
            raise ConfigError("At least one retry rule is required")
        if max_retries < 1:
            raise ConfigError("max_retries must be at least 1")
        if retry_interval < 0:
            raise ConfigError("retry_interval must not be negative")
        if exponential_backoff and retry_interval == 0:
            raise ConfigError("Exponential backoff requires a positive retry_interval")
        self.retry_on = tuple(retry_on)
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.exponential_backoff = exponential_backoff

    @classmethod
    def on_token_expired(cls, config: Optional[RetryConfig] = None) -> RetryInterceptor:
        """Retry once the token has expired (401) or storage access was denied (403).

        Place it before a :class:`~httpchain.interceptors.bearer.BearerInterceptor`
        so every attempt picks up a refreshed token.
        """
        config = config or load_retry_config()
        return cls(
            retry_on=[RetryOn(FailureKind.SERVICE, _is_token_expired)],
            max_retries=config.token_expired_max_retries,
        )

    @classmethod
    def on_retryable_status_codes(cls, config: Optional[RetryConfig] = None) -> RetryInterceptor:
        """Retry 429, 503, 504 and 520 responses with (by default) exponential backoff."""
        config = config or load_retry_config()
        return cls(
            retry_on=[RetryOn(FailureKind.SERVICE, _is_retryable_status)],
            max_retries=config.status_codes_max_retries,
            retry_interval=config.status_codes_initial_interval,
            exponential_backoff=config.status_codes_backoff_enabled,
        )

    def backoff(self, attempt: int) -> float:
        """Return the wait in seconds before *attempt* (``0`` for the first one)."""
        if attempt <= 0:
            return 0.0
        if self.exponential_backoff:
            return self.retry_interval * 2 ** (attempt - 1)
        return self.retry_interval

    def is_retryable(self, exc: BaseException) -> bool:
        return any(rule.matches(exc) for rule in self.retry_on)

    def intercept(
        self, request: Request, handler: BodyHandler[T], index: int, chain: Chain
    ) -> Response[T]:
        request = request.buffered()
        downstream = chain.reset_to_index(index + 1)
        attempt = 0
        while True:
            delay = self.backoff(attempt)
            if delay > 0:
                time.sleep(delay)
            try:
                return downstream.proceed(request, handler)
            except Exception as exc:
                attempt = self._next_attempt(request, exc, attempt)

    async def intercept_async(
        self, request: Request, handler: BodyHandler[T], index: int, chain: AsyncChain
    ) -> Response[T]:
        request = await request.buffered_async()
        downstream = chain.reset_to_index(index + 1)
        attempt = 0
        while True:
            delay = self.backoff(attempt)
            if delay > 0:
                await asyncio.sleep(delay)
            if attempt > 0:
                task = asyncio.current_task()
                if task is not None and task.cancelling():
                    raise asyncio.CancelledError()
            try:
                return await downstream.proceed(request, handler)
            except Exception as exc:
                attempt = self._next_attempt(request, exc, attempt)

    def _next_attempt(self, request: Request, exc: Exception, attempt: int) -> int:
        """Return the next attempt number, or raise when the failure is final."""
        if not self.is_retryable(exc):
            raise exc
        attempt += 1
        output = get_output()
        if attempt >= self.max_retries:
            output.debug(f"Max retries reached for request [{request.request_id}]: {exc}")
            raise MaxRetriesReachedError(
                f"Max retries reached for request [{request.request_id}]", exc, attempt
            ) from exc
        output.debug(
            f"Retrying request [{request.request_id}] after {type(exc).__name__}: {exc} "
            f"(attempt {attempt + 1}/{self.max_retries}, waiting {self.backoff(attempt):.3f}s)"
        )
        return attempt
