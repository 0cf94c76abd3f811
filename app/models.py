"""Pydantic models describing catalog payloads and user profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

GameIdSet = frozenset[str]


def _well_formed_entries(value: object, nested: str | None = None) -> object:
    """Drop association entries that lack an id, or the nested object holding it."""

    if value is None:
        return []
    if not isinstance(value, list):
        return value
    kept: list[Any] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        target = entry.get(nested) if nested else entry
        if not isinstance(target, dict) or target.get("id") is None:
            continue
        kept.append(entry)
    return kept


class PlatformInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    slug: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _null_name_is_blank(cls, value: object) -> object:
        return "" if value is None else value


class PlatformEntry(BaseModel):
    """A platform association on a game record."""

    model_config = ConfigDict(frozen=True)

    platform: PlatformInfo


class StoreInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    slug: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _null_name_is_blank(cls, value: object) -> object:
        return "" if value is None else value


class StoreEntry(BaseModel):
    """A storefront association on a game record."""

    model_config = ConfigDict(frozen=True)

    store: StoreInfo


class Genre(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    slug: str = ""

    @field_validator("name", "slug", mode="before")
    @classmethod
    def _null_text_is_blank(cls, value: object) -> object:
        return "" if value is None else value


class Developer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _null_name_is_blank(cls, value: object) -> object:
        return "" if value is None else value


class GameRecord(BaseModel):
    """A game as returned by the catalog service. Never mutated locally.

    Association entries missing their nested object or id are dropped
    rather than failing the whole record.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str
    background_image: str | None = None
    platforms: list[PlatformEntry] = Field(default_factory=list)
    stores: list[StoreEntry] = Field(default_factory=list)
    released: str | None = None
    playtime: int = 0
    genres: list[Genre] = Field(default_factory=list)
    description_raw: str | None = None
    rating: float | None = None
    developers: list[Developer] | None = None

    @field_validator("platforms", mode="before")
    @classmethod
    def _clean_platforms(cls, value: object) -> object:
        return _well_formed_entries(value, "platform")

    @field_validator("stores", mode="before")
    @classmethod
    def _clean_stores(cls, value: object) -> object:
        return _well_formed_entries(value, "store")

    @field_validator("genres", mode="before")
    @classmethod
    def _clean_genres(cls, value: object) -> object:
        return _well_formed_entries(value)

    @field_validator("developers", mode="before")
    @classmethod
    def _clean_developers(cls, value: object) -> object:
        if value is None:
            return None
        return _well_formed_entries(value)

    @field_validator("playtime", mode="before")
    @classmethod
    def _null_playtime_is_zero(cls, value: object) -> object:
        return 0 if value is None else value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def platform_names(self) -> list[str]:
        return [entry.platform.name for entry in self.platforms if entry.platform.name]


class GamePage(BaseModel):
    """List envelope returned by the ``/games`` endpoint."""

    count: int = 0
    next: str | None = None
    previous: str | None = None
    results: list[GameRecord] = Field(default_factory=list)


class TaxonomyEntry(BaseModel):
    """Entry of the catalog's genre or platform lists."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str | None = None
    slug: str


class CollectionKind(str, Enum):
    """User game collections and the store collection backing each one."""

    OWNED = "owned"
    WISHLIST = "wishlist"

    @property
    def collection(self) -> str:
        return {
            CollectionKind.OWNED: "owned games",
            CollectionKind.WISHLIST: "wishlist",
        }[self]


USER_DETAILS_COLLECTION = "user details"


class UserProfile(BaseModel):
    """Display-ready profile merged with derived collection counters.

    ``games_lent`` carries the wishlist count, mirroring how the profile
    page has always populated it.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(
        default="", validation_alias=AliasChoices("userId", "user_id"),
        serialization_alias="userId",
    )
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    location: str = ""
    avatar_url: str = Field(default="", alias="avatarUrl")
    platforms: list[str] = Field(default_factory=list)
    nickname: str = ""
    about_me: str = Field(default="", alias="aboutMe")
    games_owned: int = Field(default=0, alias="gamesOwned")
    games_lent: int = Field(default=0, alias="gamesLent")
    games_borrowed: int = Field(default=0, alias="gamesBorrowed")

    @field_validator(
        "first_name",
        "last_name",
        "location",
        "avatar_url",
        "nickname",
        "about_me",
        mode="before",
    )
    @classmethod
    def _null_text_is_blank(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("platforms", mode="before")
    @classmethod
    def _null_platforms_is_empty(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("games_owned", "games_lent", "games_borrowed", mode="before")
    @classmethod
    def _null_counter_is_zero(cls, value: object) -> object:
        return 0 if value is None else value

    def display_name(self) -> str:
        """Return the nickname, falling back to the full name."""

        nickname = self.nickname.strip()
        if nickname:
            return nickname
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.user_id


@dataclass(slots=True)
class ProfileOutcome:
    """Result of aggregating a user's profile.

    ``status`` is ``found`` (``profile`` set), ``not_found`` or
    ``fetch_error`` (``reason`` set).
    """

    user_id: str
    status: Literal["found", "not_found", "fetch_error"]
    profile: UserProfile | None = None
    reason: str | None = None

    @classmethod
    def found(cls, user_id: str, profile: UserProfile) -> "ProfileOutcome":
        return cls(user_id=user_id, status="found", profile=profile)

    @classmethod
    def not_found(cls, user_id: str) -> "ProfileOutcome":
        return cls(user_id=user_id, status="not_found")

    @classmethod
    def fetch_error(cls, user_id: str, reason: str) -> "ProfileOutcome":
        return cls(user_id=user_id, status="fetch_error", reason=reason)

    @property
    def is_found(self) -> bool:
        return self.status == "found"


@dataclass(slots=True)
class ProfileView:
    """Aggregated profile plus the game ids of the selected sub-view."""

    outcome: ProfileOutcome
    selected: CollectionKind = CollectionKind.OWNED
    game_ids: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        profile = self.outcome.profile
        return {
            "profile": profile.model_dump(by_alias=True) if profile else None,
            "displayName": profile.display_name() if profile else None,
            "list": self.selected.value,
            "games": list(self.game_ids),
        }
