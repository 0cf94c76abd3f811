"""Document store holding user profiles and game collections."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import Document
from ..models import USER_DETAILS_COLLECTION, CollectionKind, GameIdSet
from ..utils import game_ids_from_document

logger = logging.getLogger(__name__)


class DocumentStore:
    """Equality-filter access to per-user documents.

    Each logical collection holds at most one document per user, enforced by
    a unique constraint on the table.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    async def find(self, collection: str, user_id: str) -> list[dict[str, Any]]:
        """Return documents in ``collection`` whose ``userId`` matches."""

        async with self._session_factory() as session:
            stmt = (
                select(Document)
                .where(
                    Document.collection == collection,
                    Document.user_id == user_id,
                )
                .order_by(Document.id)
            )
            result = await session.execute(stmt)
            return [dict(document.data or {}) for document in result.scalars()]

    async def find_profile(self, user_id: str) -> dict[str, Any] | None:
        documents = await self.find(USER_DETAILS_COLLECTION, user_id)
        return documents[0] if documents else None

    async def get_game_ids(self, kind: CollectionKind, user_id: str) -> GameIdSet:
        """Return the ids recorded in the user's collection document."""

        documents = await self.find(kind.collection, user_id)
        return game_ids_from_document(documents[0] if documents else None)

    async def put_profile(
        self, user_id: str, data: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Create or replace the user's profile document."""

        payload = {**data, "userId": user_id}
        await self._write(
            USER_DETAILS_COLLECTION,
            user_id,
            lambda current: payload,
            initial=payload,
        )
        logger.info("Stored profile for user %s", user_id)
        return payload

    async def add_game(
        self, kind: CollectionKind, user_id: str, game_id: str
    ) -> GameIdSet:
        """Mark ``game_id`` as present in the user's collection."""

        def mark(current: Mapping[str, Any]) -> dict[str, Any]:
            games = dict(self._games(current))
            games[str(game_id)] = True
            return {**current, "games": games}

        data = await self._write(
            kind.collection,
            user_id,
            mark,
            initial={"userId": user_id, "games": {}},
        )
        return frozenset(self._games(data))

    async def remove_game(
        self, kind: CollectionKind, user_id: str, game_id: str
    ) -> bool:
        """Drop ``game_id`` from the user's collection.

        Returns whether the id was present.
        """

        async with self._lock_for(kind.collection, user_id):
            async with self._session_factory() as session:
                document = await self._first(session, kind.collection, user_id)
                if document is None:
                    return False
                games = dict(self._games(document.data or {}))
                if str(game_id) not in games:
                    return False
                del games[str(game_id)]
                document.data = {**(document.data or {}), "games": games}
                await session.commit()
        return True

    def _lock_for(self, collection: str, user_id: str) -> asyncio.Lock:
        return self._locks.setdefault((collection, user_id), asyncio.Lock())

    async def _write(
        self,
        collection: str,
        user_id: str,
        update: Callable[[Mapping[str, Any]], dict[str, Any]],
        *,
        initial: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Read-modify-write the single document for ``(collection, user_id)``.

        Writers in this process are serialised per document. A concurrent
        insert from elsewhere trips the unique constraint; the write is then
        retried against the row that won.
        """

        async with self._lock_for(collection, user_id):
            try:
                return await self._write_once(collection, user_id, update, initial)
            except IntegrityError:
                logger.info(
                    "Document %s/%s created concurrently; retrying", collection, user_id
                )
                return await self._write_once(collection, user_id, update, initial)

    async def _write_once(
        self,
        collection: str,
        user_id: str,
        update: Callable[[Mapping[str, Any]], dict[str, Any]],
        initial: Mapping[str, Any],
    ) -> dict[str, Any]:
        async with self._session_factory() as session:
            document = await self._first(session, collection, user_id)
            if document is None:
                document = Document(collection=collection, user_id=user_id, data={})
                session.add(document)
                current: Mapping[str, Any] = initial
            else:
                current = document.data or {}
            data = update(current)
            # JSON columns only persist on reassignment.
            document.data = data
            await session.commit()
        return data

    @staticmethod
    async def _first(
        session: AsyncSession, collection: str, user_id: str
    ) -> Document | None:
        stmt = (
            select(Document)
            .where(Document.collection == collection, Document.user_id == user_id)
            .order_by(Document.id)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _games(data: Mapping[str, Any]) -> Mapping[str, Any]:
        games = data.get("games")
        return games if isinstance(games, Mapping) else {}
