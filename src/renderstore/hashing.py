from __future__ import annotations

import hashlib
import re


def url_to_key(url: str) -> str:
    """SHA-256 hex digest of the canonical URL (primary key everywhere)."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def canonical_url(scheme: str, host: str, path: str) -> str:
    """Join scheme, host and the original path+query into the cache identity."""
    if not path.startswith("/"):
        path = "/" + path
    return f"{scheme}://{host}{path}"


# Secrets partition the remote store; they are concatenated into storage keys
# and paths, so whitespace, slashes and periods are rejected.
_INVALID_SECRET_RE = re.compile(r"[\s/\\.]")


def is_valid_secret(secret: str) -> bool:
    return bool(secret) and not _INVALID_SECRET_RE.search(secret)


def storage_key(secret: str, key: str) -> str:
    return f"{secret}{key}"
