"""Cached credential model and the atomic slot that stores it."""

from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

T = TypeVar("T")


class IdentityToken(BaseModel):
    """Token issued by the identity endpoint.

    Instances are frozen; a refresh produces a new object that replaces the
    old one in an :class:`AtomicReference`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    access_token: str = Field(validation_alias=AliasChoices("access_token", "accessToken"))
    refresh_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("refresh_token", "refreshToken")
    )
    token_type: str = Field(default="Bearer", validation_alias=AliasChoices("token_type", "tokenType"))
    expires_in: Optional[int] = Field(default=None, validation_alias=AliasChoices("expires_in", "expiresIn"))
    expiration: int = Field(description="Absolute expiry as seconds since the epoch")
    scope: Optional[str] = None

    def is_expired(self, now: float) -> bool:
        """A token is valid only while *now* is strictly before its expiration."""
        return now >= self.expiration


class AtomicReference(Generic[T]):
    """Thread-safe holder whose value is only ever replaced, never mutated.

    Args:
        value: Initial value.
    """

    def __init__(self, value: Optional[T] = None) -> None:
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> Optional[T]:
        with self._lock:
            return self._value

    def set(self, value: Optional[T]) -> None:
        with self._lock:
            self._value = value

    def compare_and_set(self, expected: Optional[T], value: Optional[T]) -> bool:
        """Store *value* only if the current value is *expected* (by identity)."""
        with self._lock:
            if self._value is not expected:
                return False
            self._value = value
            return True
