from __future__ import annotations

from renderstore.models.api import PageKeyQuery, PagePayload, PutPageInput
from renderstore.models.page import Page

__all__ = [
    # cache
    "Page",
    # api
    "PageKeyQuery",
    "PagePayload",
    "PutPageInput",
]
