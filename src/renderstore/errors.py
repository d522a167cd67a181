"""Error taxonomy shared by the cache engine and the persistence API."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_SECRET = "INVALID_SECRET"
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    RENDER_FAILED = "RENDER_FAILED"
    REMOTE_FETCH_FAILED = "REMOTE_FETCH_FAILED"
    STORE_FAILED = "STORE_FAILED"


class RenderStoreError(Exception):
    """Raised for every failure that crosses a renderstore component boundary.

    ``recoverable`` tells the caller whether repeating the same operation
    later may succeed (timeouts, unreachable store) or never will (bad input).
    """

    def __init__(self, code: ErrorCode, message: str, *, recoverable: bool) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }

    def __repr__(self) -> str:
        return f"RenderStoreError({self.code.value}, {self.message!r})"
