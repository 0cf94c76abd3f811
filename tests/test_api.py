from __future__ import annotations

from typing import Any

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import register_routes
from app.models import (
    CollectionKind,
    GameIdSet,
    ProfileOutcome,
    ProfileView,
    UserProfile,
)
from app.services.catalog import CatalogClient
from app.services.profiles import ProfileAggregator
from app.services.store import DocumentStore

GAME = {
    "id": 28,
    "name": "Red Dead Redemption 2",
    "slug": "red-dead-redemption-2",
    "background_image": "https://media.example.com/rdr2.jpg",
    "platforms": [{"platform": {"id": 4, "name": "PC"}}],
    "stores": [],
    "released": "2018-10-26",
    "playtime": 20,
    "genres": [{"id": 4, "name": "Action", "slug": "action"}],
}


def catalog_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/games":
        return httpx.Response(
            200, json={"count": 1, "next": None, "previous": None, "results": [GAME]}
        )
    if path == "/api/games/red-dead-redemption-2":
        return httpx.Response(200, json=GAME)
    if path == "/api/games/28/screenshots":
        return httpx.Response(
            200, json={"results": [{"id": 1, "image": "https://media.example.com/s1.jpg"}]}
        )
    if path == "/api/genres":
        return httpx.Response(200, json={"results": [{"id": 4, "name": "Action", "slug": "action"}]})
    return httpx.Response(404, json={"detail": "Not found."})


class DummyStore(DocumentStore):
    """In-memory store stub for endpoint testing."""

    def __init__(self) -> None:  # pragma: no cover - nothing to initialise
        # Deliberately skip super().__init__ to avoid touching a database.
        self.profiles: dict[str, dict[str, Any]] = {}
        self.games: dict[tuple[CollectionKind, str], set[str]] = {}

    async def put_profile(self, user_id, data):  # type: ignore[override]
        payload = {**data, "userId": user_id}
        self.profiles[user_id] = payload
        return payload

    async def get_game_ids(self, kind, user_id) -> GameIdSet:  # type: ignore[override]
        return frozenset(self.games.get((kind, user_id), set()))

    async def add_game(self, kind, user_id, game_id) -> GameIdSet:  # type: ignore[override]
        self.games.setdefault((kind, user_id), set()).add(game_id)
        return frozenset(self.games[(kind, user_id)])

    async def remove_game(self, kind, user_id, game_id) -> bool:  # type: ignore[override]
        members = self.games.get((kind, user_id), set())
        if game_id not in members:
            return False
        members.discard(game_id)
        return True


class DummyAggregator(ProfileAggregator):
    """Aggregator stub returning canned outcomes."""

    def __init__(self, outcomes: dict[str, ProfileOutcome]) -> None:
        self.outcomes = outcomes
        self.last_selected: CollectionKind | None = None

    async def aggregate_view(  # type: ignore[override]
        self, user_id: str, selected: CollectionKind = CollectionKind.OWNED
    ) -> ProfileView:
        self.last_selected = selected
        outcome = self.outcomes.get(user_id, ProfileOutcome.not_found(user_id))
        game_ids = ["3498"] if outcome.is_found else []
        return ProfileView(outcome=outcome, selected=selected, game_ids=game_ids)


def build_app(
    *,
    with_catalog: bool = True,
    aggregator: ProfileAggregator | None = None,
) -> tuple[FastAPI, DummyStore]:
    app = FastAPI()
    register_routes(app)
    store = DummyStore()
    app.state.document_store = store
    app.state.profile_aggregator = aggregator or DummyAggregator({})
    if with_catalog:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(catalog_handler),
            base_url="https://api.example.com/api",
        )
        settings = Settings(_env_file=None, RAWG_API_KEY="test-key")
        app.state.catalog_client = CatalogClient(settings, http_client)
    else:
        app.state.catalog_client = None
    return app, store


def test_healthcheck() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok"}


def test_list_games_returns_records() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        response = client.get("/api/games/popular", params={"platforms": "4"})

    assert response.status_code == 200
    assert response.json()[0]["slug"] == "red-dead-redemption-2"


def test_game_details_and_missing_game() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        found = client.get("/api/games/red-dead-redemption-2")
        missing = client.get("/api/games/no-such-game")

    assert found.status_code == 200
    assert found.json()["released"] == "2018-10-26"
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Unable to fetch details for game: no-such-game"


def test_screenshots_endpoint() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        ok = client.get("/api/games/28/screenshots")
        failing = client.get("/api/games/999/screenshots")

    assert ok.json() == {"screenshots": ["https://media.example.com/s1.jpg"]}
    assert failing.status_code == 200
    assert failing.json() == {"screenshots": []}


def test_taxonomy_failure_maps_to_bad_gateway() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        genres = client.get("/api/genres")
        platforms = client.get("/api/platforms")

    assert genres.status_code == 200
    assert genres.json() == [{"id": 4, "name": "Action", "slug": "action"}]
    assert platforms.status_code == 502
    assert platforms.json()["detail"] == "Error finding platforms"


def test_catalog_endpoints_require_api_key() -> None:
    app, _ = build_app(with_catalog=False)
    with TestClient(app) as client:
        response = client.get("/api/games")

    assert response.status_code == 503


def test_profile_found_not_found_and_fetch_error() -> None:
    profile = UserProfile(user_id="ada", nickname="countess", games_owned=1)
    aggregator = DummyAggregator(
        {
            "ada": ProfileOutcome.found("ada", profile),
            "flaky": ProfileOutcome.fetch_error("flaky", "timeout"),
        }
    )
    app, _ = build_app(aggregator=aggregator)
    with TestClient(app) as client:
        found = client.get("/api/profiles/ada", params={"list": "wishlist"})
        selected_for_found = aggregator.last_selected
        missing = client.get("/api/profiles/ghost")
        flaky = client.get("/api/profiles/flaky")
        invalid = client.get("/api/profiles/ada", params={"list": "lent"})

    assert found.status_code == 200
    body = found.json()
    assert body["profile"]["nickname"] == "countess"
    assert body["profile"]["gamesOwned"] == 1
    assert body["list"] == "wishlist"
    assert body["games"] == ["3498"]
    assert selected_for_found is CollectionKind.WISHLIST
    assert missing.status_code == 404
    assert missing.json()["detail"] == "User profile not found."
    assert flaky.status_code == 503
    assert invalid.status_code == 422


def test_collection_membership_endpoints() -> None:
    app, store = build_app()
    with TestClient(app) as client:
        added = client.put("/api/profiles/ada/owned/3498")
        listed = client.get("/api/profiles/ada/owned")
        removed = client.delete("/api/profiles/ada/owned/3498")
        removed_again = client.delete("/api/profiles/ada/owned/3498")
        unknown = client.get("/api/profiles/ada/lent")

    assert added.json() == {"list": "owned", "games": ["3498"]}
    assert listed.json() == {"list": "owned", "games": ["3498"]}
    assert removed.status_code == 200
    assert removed_again.status_code == 404
    assert unknown.status_code == 404
    assert store.games[(CollectionKind.OWNED, "ada")] == set()


def test_store_profile_validates_payload() -> None:
    app, store = build_app()
    with TestClient(app) as client:
        stored = client.put(
            "/api/profiles/ada",
            json={"firstName": "Ada", "platforms": ["Switch"], "nickname": "countess"},
        )
        rejected = client.put("/api/profiles/ada", json={"platforms": "Switch"})
        not_an_object = client.put("/api/profiles/ada", json=["Switch"])

    assert stored.status_code == 200
    assert stored.json()["userId"] == "ada"
    assert store.profiles["ada"]["firstName"] == "Ada"
    assert rejected.status_code == 400
    assert not_an_object.status_code == 400


def test_collection_endpoints_order_ids_like_the_profile_view() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        client.put("/api/profiles/ada/wishlist/12")
        added = client.put("/api/profiles/ada/wishlist/3")
        listed = client.get("/api/profiles/ada/wishlist")

    assert added.json()["games"] == ["3", "12"]
    assert listed.json()["games"] == ["3", "12"]


def test_profile_and_game_payloads_carry_display_fields() -> None:
    profile = UserProfile(user_id="ada", first_name="Ada")
    app, _ = build_app(aggregator=DummyAggregator({"ada": ProfileOutcome.found("ada", profile)}))
    with TestClient(app) as client:
        view = client.get("/api/profiles/ada")
        games = client.get("/api/games")

    assert view.json()["displayName"] == "Ada"
    assert games.json()[0]["platform_names"] == ["PC"]
