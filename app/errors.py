"""Exceptions raised by the catalog integration."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for failures surfaced by the catalog client."""


class GameNotFoundError(CatalogError):
    """Raised when a game's details cannot be fetched."""

    def __init__(self, slug: str | None):
        super().__init__(f"Unable to fetch details for game: {slug}")
        self.slug = slug


class CatalogLookupError(CatalogError):
    """Raised when a taxonomy list (genres, platforms) cannot be fetched."""
