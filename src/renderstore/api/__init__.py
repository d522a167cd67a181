from __future__ import annotations

from renderstore.api.app import create_app
from renderstore.api.db import PageDatabase

__all__ = ["create_app", "PageDatabase"]
