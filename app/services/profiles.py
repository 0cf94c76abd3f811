"""Aggregation of user profiles with their game collection counters."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..models import (
    CollectionKind,
    GameIdSet,
    ProfileOutcome,
    ProfileView,
    UserProfile,
)
from ..utils import sort_game_ids
from .store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Aggregate:
    outcome: ProfileOutcome
    owned: GameIdSet = frozenset()
    wishlist: GameIdSet = frozenset()


class ProfileAggregator:
    """Builds display-ready profiles from the store.

    Every call re-reads the profile document and both collection documents;
    nothing is cached between calls.
    """

    def __init__(self, store: DocumentStore):
        self._store = store

    async def aggregate(self, user_id: str) -> ProfileOutcome:
        """Return the merged profile for ``user_id``.

        A missing profile document yields ``not_found``. Any failure while
        reading yields ``fetch_error``; a partial profile is never returned.
        """

        return (await self._collect(user_id)).outcome

    async def aggregate_view(
        self, user_id: str, selected: CollectionKind = CollectionKind.OWNED
    ) -> ProfileView:
        """Return the profile together with the selected collection's ids."""

        aggregate = await self._collect(user_id)
        if not aggregate.outcome.is_found:
            return ProfileView(outcome=aggregate.outcome, selected=selected)
        ids = aggregate.owned if selected is CollectionKind.OWNED else aggregate.wishlist
        return ProfileView(
            outcome=aggregate.outcome,
            selected=selected,
            game_ids=sort_game_ids(ids),
        )

    async def _collect(self, user_id: str) -> _Aggregate:
        results = await asyncio.gather(
            self._store.find_profile(user_id),
            self._store.get_game_ids(CollectionKind.OWNED, user_id),
            self._store.get_game_ids(CollectionKind.WISHLIST, user_id),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            error = failures[0]
            logger.error(
                "Error fetching user profile %s",
                user_id,
                exc_info=(type(error), error, error.__traceback__),
            )
            return _Aggregate(
                ProfileOutcome.fetch_error(user_id, str(error) or type(error).__name__)
            )

        profile_data, owned, wishlist = results
        if profile_data is None:
            logger.info("No profile document for user %s", user_id)
            return _Aggregate(ProfileOutcome.not_found(user_id))

        try:
            profile = UserProfile.model_validate(
                {
                    **profile_data,
                    "userId": profile_data.get("userId") or user_id,
                    "gamesOwned": len(owned),
                    # Wishlist size has always been shown through gamesLent.
                    "gamesLent": len(wishlist),
                }
            )
        except ValueError as exc:
            logger.exception("Malformed profile document for user %s", user_id)
            return _Aggregate(ProfileOutcome.fetch_error(user_id, str(exc)))

        return _Aggregate(ProfileOutcome.found(user_id, profile), owned, wishlist)
