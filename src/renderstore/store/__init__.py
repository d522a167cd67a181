from __future__ import annotations

from renderstore.store.base import PageData, PageStore, StoreConfig, maybe_await, validate_secret
from renderstore.store.http import HttpPageStore, build_http_client, default_config
from renderstore.store.remote import RemoteStore

__all__ = [
    "PageData",
    "PageStore",
    "StoreConfig",
    "maybe_await",
    "validate_secret",
    "HttpPageStore",
    "build_http_client",
    "default_config",
    "RemoteStore",
]
