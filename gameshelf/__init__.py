"""Top-level package exposing the GameShelf app and its service clients."""

from __future__ import annotations

from app.main import app, create_app
from app.services.catalog import CatalogClient
from app.services.profiles import ProfileAggregator

__all__ = ["app", "create_app", "CatalogClient", "ProfileAggregator"]
