"""Client for the RAWG game-metadata API."""

from __future__ import annotations

import logging
from typing import Any, Sequence
from urllib.parse import quote

import httpx

from ..config import Settings
from ..errors import CatalogLookupError, GameNotFoundError
from ..models import GamePage, GameRecord, TaxonomyEntry
from ..utils import build_games_query, pagination_offset

logger = logging.getLogger(__name__)


class CatalogClient:
    """Read-only wrapper around the catalog HTTP API.

    Every operation issues exactly one GET. There is no retry or caching;
    callers decide how failures surface, except where noted per method.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.rawg_api_key:
            raise ValueError("RAWG API key is required when initialising CatalogClient")
        self._settings = settings
        self._client = http_client
        self._key = quote(settings.rawg_api_key, safe="")

    async def list_upcoming(self, platforms: str | None = None) -> list[GameRecord]:
        """Most-added games releasing inside the configured window."""

        url = (
            f"/games?key={self._key}&dates={self._settings.upcoming_dates}"
            "&ordering=-added"
        )
        return await self._fetch_games(url, platforms)

    async def list_popular(self, platforms: str | None = None) -> list[GameRecord]:
        return await self._fetch_games(
            f"/games?key={self._key}&ordering=-added", platforms
        )

    async def list_all(self) -> list[GameRecord]:
        return await self._fetch_games(f"/games?key={self._key}")

    async def list_by_genre(
        self,
        genres: Sequence[Any] | None = None,
        platforms: Sequence[Any] | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> list[GameRecord]:
        """Games matching every supplied genre and platform filter."""

        query = build_games_query(genres, platforms, page, page_size)
        return await self._fetch_games(f"/games?key={self._key}{query}")

    async def search(self, term: str) -> list[GameRecord]:
        return await self._fetch_games(
            f"/games?key={self._key}&search={quote(term, safe='')}"
        )

    async def get_details(self, slug: str | None) -> GameRecord:
        """Fetch one game by slug.

        Any failure, including a missing game, raises ``GameNotFoundError``.
        """

        try:
            response = await self._client.get(f"/games/{slug}?key={self._key}")
            response.raise_for_status()
            return GameRecord.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching game details for %s: %s", slug, exc)
            raise GameNotFoundError(slug) from exc

    async def list_genres(self) -> list[TaxonomyEntry]:
        return await self._fetch_taxonomy("/genres", "Error finding genres")

    async def list_platforms(self) -> list[TaxonomyEntry]:
        return await self._fetch_taxonomy("/platforms", "Error finding platforms")

    async def get_paginated_games(self, page: int, items_per_page: int) -> GamePage:
        """Return the raw list envelope for an offset-based page."""

        offset = pagination_offset(page, items_per_page)
        response = await self._client.get(
            f"/games?key={self._key}&offset={offset}&limit={items_per_page}"
        )
        response.raise_for_status()
        return GamePage.model_validate(response.json())

    async def get_screenshots(self, game_id: int) -> list[str]:
        """Return screenshot image URLs, or an empty list on any failure."""

        try:
            response = await self._client.get(
                f"/games/{game_id}/screenshots?key={self._key}"
            )
            if response.status_code >= 400:
                logger.warning(
                    "Failed to fetch screenshots for game %s: %s",
                    game_id,
                    response.reason_phrase,
                )
                return []
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch screenshots for game %s: %s", game_id, exc)
            return []

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        return [
            str(entry["image"])
            for entry in results
            if isinstance(entry, dict) and entry.get("image")
        ]

    async def _fetch_games(
        self, url: str, platforms: str | None = None
    ) -> list[GameRecord]:
        if platforms:
            url += f"&platforms={quote(platforms, safe=',')}"
        response = await self._client.get(url)
        response.raise_for_status()
        return GamePage.model_validate(response.json()).results

    async def _fetch_taxonomy(self, path: str, message: str) -> list[TaxonomyEntry]:
        try:
            response = await self._client.get(f"{path}?key={self._key}")
            response.raise_for_status()
            payload = response.json()
            return [
                TaxonomyEntry.model_validate(entry)
                for entry in payload.get("results") or []
            ]
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.error("%s: %s", message, exc)
            raise CatalogLookupError(message) from exc
