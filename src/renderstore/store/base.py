from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from renderstore.errors import ErrorCode, RenderStoreError
from renderstore.hashing import is_valid_secret

if TYPE_CHECKING:
    from datetime import timedelta

    from renderstore.models.page import Page

T = TypeVar("T")

# Store operations may be plain functions or coroutines.
MaybeAwaitable = T | Awaitable[T]

# bytes = inline gzip content, str = URL the content can be downloaded from
PageData = bytes | str | None


async def maybe_await(value: MaybeAwaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


@runtime_checkable
class PageStore(Protocol):
    """Remote persistence consumed by the RenderStore engine."""

    def get(self, key: str) -> MaybeAwaitable[PageData]: ...

    def get_expiration(self, key: str) -> MaybeAwaitable[float | None]: ...

    def set(self, page: Page) -> MaybeAwaitable[None]: ...

    def remove(self, key: str) -> MaybeAwaitable[None]: ...


@dataclass
class StoreConfig:
    """A PageStore assembled from four callables plus an optional TTL override."""

    get: Callable[[str], MaybeAwaitable[PageData]]
    get_expiration: Callable[[str], MaybeAwaitable[float | None]]
    set: Callable[[Page], MaybeAwaitable[None]]
    remove: Callable[[str], MaybeAwaitable[None]]
    expiration_offset: timedelta | None = None


def validate_secret(secret: str | None) -> str:
    if not secret:
        raise RenderStoreError(
            ErrorCode.INVALID_SECRET, "Your secret cannot be empty.", recoverable=False
        )
    if not is_valid_secret(secret):
        raise RenderStoreError(
            ErrorCode.INVALID_SECRET,
            "Your secret cannot have spaces, slashes, or periods.",
            recoverable=False,
        )
    return secret
