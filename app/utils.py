"""Utility helpers for the GameShelf service."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence
from urllib.parse import quote

from .models import GameIdSet


def join_filter_values(values: Sequence[Any] | None) -> str | None:
    """Return comma-joined, lower-cased filter values or ``None`` when unset.

    A filter counts as unset when it is missing, empty, or its first value
    is ``None`` or an empty string.
    """

    if not values:
        return None
    first = values[0]
    if first is None or first == "":
        return None
    return ",".join(str(value) for value in values).lower()


def build_games_query(
    genres: Sequence[Any] | None = None,
    platforms: Sequence[Any] | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> str:
    """Return the ``&``-prefixed filter clauses for a ``/games`` query."""

    query = ""
    genre_values = join_filter_values(genres)
    if genre_values is not None:
        query += f"&genres={quote(genre_values, safe=',')}"
    platform_values = join_filter_values(platforms)
    if platform_values is not None:
        query += f"&platforms={quote(platform_values, safe=',')}"
    if page:
        query += f"&page={page}"
    if page_size:
        query += f"&page_size={page_size}"
    return query


def pagination_offset(page: int, items_per_page: int) -> int:
    return (page - 1) * items_per_page


def game_ids_from_document(document: Mapping[str, Any] | None) -> GameIdSet:
    """Convert a collection document's ``games`` presence map into a set."""

    if not document:
        return frozenset()
    games = document.get("games")
    if not isinstance(games, Mapping):
        return frozenset()
    return frozenset(str(game_id) for game_id in games)


def sort_game_ids(game_ids: Iterable[str]) -> list[str]:
    """Order ids numerically where possible, then lexically."""

    def key(game_id: str) -> tuple[int, int, str]:
        if game_id.isdigit():
            return (0, int(game_id), game_id)
        return (1, 0, game_id)

    return sorted(game_ids, key=key)


def split_csv(value: str | None) -> list[str] | None:
    """Split a comma-separated query parameter, dropping blank entries."""

    if value is None:
        return None
    parts = [part.strip() for part in value.split(",")]
    return [part for part in parts if part]
