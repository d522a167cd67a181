"""Bot-aware server-side rendering cache for ASGI applications."""

from __future__ import annotations

from renderstore.config import DEFAULT_EXPIRATION_OFFSET_SECONDS, INTERNAL_USER_AGENT, Settings
from renderstore.engine import PageRequest, RenderStore
from renderstore.errors import ErrorCode, RenderStoreError
from renderstore.hashing import url_to_key
from renderstore.memory import PageCache
from renderstore.middleware import RenderStoreMiddleware
from renderstore.models.page import Page
from renderstore.renderer import Renderer
from renderstore.store import HttpPageStore, PageStore, StoreConfig, default_config

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_EXPIRATION_OFFSET_SECONDS",
    "INTERNAL_USER_AGENT",
    "Settings",
    "PageRequest",
    "RenderStore",
    "ErrorCode",
    "RenderStoreError",
    "url_to_key",
    "PageCache",
    "RenderStoreMiddleware",
    "Page",
    "Renderer",
    "HttpPageStore",
    "PageStore",
    "StoreConfig",
    "default_config",
]
