"""Entry point for the FastAPI-powered GameShelf service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Awaitable, TypeVar

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import settings
from .database import Database
from .errors import CatalogLookupError, GameNotFoundError
from .models import CollectionKind, UserProfile
from .services.catalog import CatalogClient
from .services.profiles import ProfileAggregator
from .services.store import DocumentStore
from .utils import sort_game_ids, split_csv

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

T = TypeVar("T")

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    try:
        catalog_http_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.rawg_api_url),
                timeout=httpx.Timeout(settings.catalog_timeout_seconds, connect=10.0),
            )
        )
        database = Database(settings.database_url)
        exit_stack.push_async_callback(database.dispose)
        await database.create_all()

        store = DocumentStore(database.session_factory)
        catalog: CatalogClient | None = None
        if settings.rawg_api_key:
            catalog = CatalogClient(settings, catalog_http_client)
        else:
            logger.warning("RAWG_API_KEY is not set; catalog endpoints are disabled")

        fastapi_app.state.catalog_client = catalog
        fastapi_app.state.document_store = store
        fastapi_app.state.profile_aggregator = ProfileAggregator(store)
        fastapi_app.state.database = database

        yield
    finally:
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Game catalog browsing and user collections",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_catalog_client(app: FastAPI) -> CatalogClient:
    client = getattr(app.state, "catalog_client", None)
    if not isinstance(client, CatalogClient):
        raise HTTPException(status_code=503, detail="Catalog API key not configured")
    return client


def get_document_store(app: FastAPI) -> DocumentStore:
    store = getattr(app.state, "document_store", None)
    if not isinstance(store, DocumentStore):
        raise RuntimeError("Document store not initialised")
    return store


def get_profile_aggregator(app: FastAPI) -> ProfileAggregator:
    aggregator = getattr(app.state, "profile_aggregator", None)
    if not isinstance(aggregator, ProfileAggregator):
        raise RuntimeError("Profile aggregator not initialised")
    return aggregator


def _parse_kind(kind: str) -> CollectionKind:
    try:
        return CollectionKind(kind.lower())
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {kind}") from exc


async def _from_catalog(call: Awaitable[T]) -> T:
    try:
        return await call
    except httpx.HTTPError as exc:
        logger.warning("Catalog request failed: %s", exc)
        raise HTTPException(status_code=502, detail="Catalog service unavailable") from exc


def _dump(records: list[Any]) -> list[dict[str, Any]]:
    return [record.model_dump(mode="json") for record in records]


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/games")
    async def all_games() -> list[dict[str, Any]]:
        catalog = get_catalog_client(fastapi_app)
        return _dump(await _from_catalog(catalog.list_all()))

    @fastapi_app.get("/api/games/upcoming")
    async def upcoming_games(platforms: str | None = None) -> list[dict[str, Any]]:
        catalog = get_catalog_client(fastapi_app)
        return _dump(await _from_catalog(catalog.list_upcoming(platforms)))

    @fastapi_app.get("/api/games/popular")
    async def popular_games(platforms: str | None = None) -> list[dict[str, Any]]:
        catalog = get_catalog_client(fastapi_app)
        return _dump(await _from_catalog(catalog.list_popular(platforms)))

    @fastapi_app.get("/api/games/browse")
    async def browse_games(
        genres: str | None = None,
        platforms: str | None = None,
        page: int | None = Query(default=None, ge=1),
        page_size: int | None = Query(default=None, ge=1, le=40),
    ) -> list[dict[str, Any]]:
        catalog = get_catalog_client(fastapi_app)
        games = await _from_catalog(
            catalog.list_by_genre(
                split_csv(genres), split_csv(platforms), page, page_size
            )
        )
        return _dump(games)

    @fastapi_app.get("/api/games/search")
    async def search_games(q: str = Query(min_length=1)) -> list[dict[str, Any]]:
        catalog = get_catalog_client(fastapi_app)
        return _dump(await _from_catalog(catalog.search(q)))

    @fastapi_app.get("/api/games/paginated")
    async def paginated_games(
        page: int = Query(default=1, ge=1),
        items_per_page: int = Query(default=20, ge=1, le=40),
    ) -> dict[str, Any]:
        catalog = get_catalog_client(fastapi_app)
        envelope = await _from_catalog(catalog.get_paginated_games(page, items_per_page))
        return envelope.model_dump(mode="json")

    @fastapi_app.get("/api/games/{game_id:int}/screenshots")
    async def game_screenshots(game_id: int) -> dict[str, list[str]]:
        catalog = get_catalog_client(fastapi_app)
        return {"screenshots": await catalog.get_screenshots(game_id)}

    @fastapi_app.get("/api/games/{slug}")
    async def game_details(slug: str) -> dict[str, Any]:
        catalog = get_catalog_client(fastapi_app)
        try:
            game = await catalog.get_details(slug)
        except GameNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return game.model_dump(mode="json")

    @fastapi_app.get("/api/genres")
    async def genres() -> list[dict[str, Any]]:
        catalog = get_catalog_client(fastapi_app)
        try:
            return _dump(await catalog.list_genres())
        except CatalogLookupError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @fastapi_app.get("/api/platforms")
    async def platforms() -> list[dict[str, Any]]:
        catalog = get_catalog_client(fastapi_app)
        try:
            return _dump(await catalog.list_platforms())
        except CatalogLookupError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @fastapi_app.get("/api/profiles/{user_id}")
    async def view_profile(
        user_id: str,
        selected: CollectionKind = Query(default=CollectionKind.OWNED, alias="list"),
    ) -> JSONResponse:
        aggregator = get_profile_aggregator(fastapi_app)
        view = await aggregator.aggregate_view(user_id, selected)
        outcome = view.outcome
        if outcome.status == "not_found":
            raise HTTPException(status_code=404, detail="User profile not found.")
        if outcome.status == "fetch_error":
            raise HTTPException(
                status_code=503, detail="User profile could not be loaded."
            )
        return JSONResponse(view.to_payload())

    @fastapi_app.put("/api/profiles/{user_id}")
    async def store_profile(request: Request, user_id: str) -> dict[str, Any]:
        store = get_document_store(fastapi_app)
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            payload = None
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        try:
            profile = UserProfile.model_validate({**payload, "userId": user_id})
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        return await store.put_profile(user_id, profile.model_dump(by_alias=True))

    @fastapi_app.get("/api/profiles/{user_id}/{kind}")
    async def collection_games(user_id: str, kind: str) -> dict[str, Any]:
        store = get_document_store(fastapi_app)
        collection = _parse_kind(kind)
        game_ids = await store.get_game_ids(collection, user_id)
        return {"list": collection.value, "games": sort_game_ids(game_ids)}

    @fastapi_app.put("/api/profiles/{user_id}/{kind}/{game_id}")
    async def add_collection_game(
        user_id: str, kind: str, game_id: str
    ) -> dict[str, Any]:
        store = get_document_store(fastapi_app)
        collection = _parse_kind(kind)
        game_ids = await store.add_game(collection, user_id, game_id)
        return {"list": collection.value, "games": sort_game_ids(game_ids)}

    @fastapi_app.delete("/api/profiles/{user_id}/{kind}/{game_id}")
    async def remove_collection_game(
        user_id: str, kind: str, game_id: str
    ) -> dict[str, Any]:
        store = get_document_store(fastapi_app)
        collection = _parse_kind(kind)
        if not await store.remove_game(collection, user_id, game_id):
            raise HTTPException(status_code=404, detail="Game not in collection")
        return {"list": collection.value, "removed": game_id}


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
