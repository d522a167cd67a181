from __future__ import annotations

import time

from pydantic import BaseModel


def is_expired(expiration: float | None, now: float | None = None) -> bool:
    """True once *now* reaches *expiration*. ``None`` never expires."""
    if expiration is None:
        return False
    return (time.time() if now is None else now) >= expiration


class Page(BaseModel):
    """One cached rendering of one URL."""

    key: str  # url_to_key(url)
    url: str
    # Absolute epoch seconds. None = no local expiration, ask the remote store.
    expiration: float | None
    content: bytes  # gzip-compressed markup

    def expired(self, now: float | None = None) -> bool:
        return is_expired(self.expiration, now)
