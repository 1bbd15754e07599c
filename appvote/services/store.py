# appvote/services/store.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from appvote.database import Database
from appvote.database.base import Base
from appvote.database.errors import (
    COLUMN_MISSING,
    RELATION_MISSING,
    UNIQUE_VIOLATION,
    classify_db_error,
    missing_column,
)
from appvote.database.models import WeekStatus
from appvote.database.repo import apps_repo, contest_repo
from appvote.database.repo.apps_repo import AppRow
from appvote.database.repo.contest_repo import NewWeek, WeekRow, WinnerRow
from appvote.database.tx import transactional
from appvote.services.changes import ChangeEvent, ChangeFeed, ChangeHandler, Subscription
from appvote.services.errors import SchemaAbsent, StoreFailure

log = logging.getLogger(__name__)

WEEKS = "contest_weeks"
WINNERS = "contest_winners"
APPS = "apps"
VOTES = "votes"


class DuplicateRow(StoreFailure):
    """A write hit a unique constraint."""


class _WeekNotFound(Exception):
    pass


class Store(Protocol):
    """Query surface the contest services depend on."""

    async def list_weeks(self) -> list[WeekRow]: ...
    async def list_winners(self) -> list[WinnerRow]: ...
    async def count_weeks(self) -> int: ...
    async def insert_weeks(self, weeks: Sequence[NewWeek]) -> None: ...
    async def set_week_status(self, week_id: int, status: WeekStatus, *, now: datetime) -> list[int]: ...
    async def mark_week_completed(self, week_id: int) -> None: ...
    async def upsert_winner(self, week_id: int, position: int, app_id: str) -> None: ...
    async def winner_positions(self, week_id: int) -> set[int]: ...
    async def probe(self, table: str, column: Optional[str] = None) -> int: ...

    async def get_app(self, app_id: str) -> Optional[AppRow]: ...
    async def insert_app(self, *, name: str, link: str, image_url: Optional[str],
                         user_id: int, contest_week_id: Optional[int]) -> AppRow: ...
    async def list_apps(self, week_id: Optional[int]) -> list[AppRow]: ...
    async def list_user_votes(self, user_id: int, week_id: Optional[int]) -> list[str]: ...
    async def insert_vote(self, user_id: int, app_id: str, week_id: Optional[int]) -> None: ...
    async def delete_vote(self, user_id: int, app_id: str) -> int: ...
    async def has_vote(self, user_id: int, app_id: str) -> bool: ...

    def subscribe(self, table: str, handler: ChangeHandler) -> Subscription: ...


class ContestStore:
    """
    SQLAlchemy-backed Store.

    Every call runs in its own session and transaction; there is no transaction
    spanning two calls. Database errors are translated to SchemaAbsent /
    StoreFailure, and every committed write is published on the change feed.
    """

    def __init__(self, db: Database, feed: ChangeFeed | None = None) -> None:
        self.db = db
        self.feed = feed or ChangeFeed()

    # -------------------------------------------------
    # plumbing
    # -------------------------------------------------

    @asynccontextmanager
    async def _unit(self, table: str, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.db.session() as session:
                async with transactional(session):
                    yield session
        except SQLAlchemyError as e:
            kind = classify_db_error(e)
            if kind == RELATION_MISSING:
                log.warning("Table missing while trying to %s (%s): %s", action, table, e)
                raise SchemaAbsent(table) from e
            if kind == COLUMN_MISSING:
                log.warning("Column missing while trying to %s (%s): %s", action, table, e)
                raise SchemaAbsent(table, missing_column(e) or "?") from e
            if kind == UNIQUE_VIOLATION:
                raise DuplicateRow(f"Failed to {action}: row already exists", cause=e) from e
            log.exception("Store failure while trying to %s (%s)", action, table)
            raise StoreFailure(f"Failed to {action}", cause=e) from e

    def subscribe(self, table: str, handler: ChangeHandler) -> Subscription:
        return self.feed.subscribe(table, handler)

    async def _publish(self, table: str, op: str, row_ids) -> None:
        await self.feed.publish(ChangeEvent(table=table, op=op, row_ids=tuple(row_ids)))

    # -------------------------------------------------
    # contest weeks / winners
    # -------------------------------------------------

    async def list_weeks(self) -> list[WeekRow]:
        async with self._unit(WEEKS, "load contest weeks") as session:
            return await contest_repo.list_weeks(session)

    async def list_winners(self) -> list[WinnerRow]:
        async with self._unit(WINNERS, "load contest winners") as session:
            return await contest_repo.list_winners(session)

    async def count_weeks(self) -> int:
        async with self._unit(WEEKS, "count contest weeks") as session:
            return await contest_repo.count_weeks(session)

    async def insert_weeks(self, weeks: Sequence[NewWeek]) -> None:
        async with self._unit(WEEKS, "insert contest weeks") as session:
            ids = await contest_repo.insert_weeks(session, weeks)
        await self._publish(WEEKS, "insert", ids)

    async def set_week_status(self, week_id: int, status: WeekStatus, *, now: datetime) -> list[int]:
        try:
            async with self._unit(WEEKS, f"update contest week {week_id}") as session:
                touched = await contest_repo.apply_week_status(
                    session, week_id=week_id, status=WeekStatus(status), now=now
                )
                if week_id not in touched:
                    # raising inside the unit rolls back any deactivation
                    raise _WeekNotFound(week_id)
        except _WeekNotFound:
            raise StoreFailure(f"Contest week {week_id} not found") from None
        await self._publish(WEEKS, "update", touched)
        return touched

    async def mark_week_completed(self, week_id: int) -> None:
        async with self._unit(WEEKS, f"complete contest week {week_id}") as session:
            await contest_repo.set_status_only(session, week_id=week_id, status=WeekStatus.COMPLETED)
        await self._publish(WEEKS, "update", [week_id])

    async def upsert_winner(self, week_id: int, position: int, app_id: str) -> None:
        async with self._unit(WINNERS, f"save winner #{position} for week {week_id}") as session:
            created, winner_id = await contest_repo.upsert_winner(
                session, week_id=week_id, position=position, app_id=app_id
            )
        await self._publish(WINNERS, "insert" if created else "update", [winner_id])

    async def winner_positions(self, week_id: int) -> set[int]:
        async with self._unit(WINNERS, "count contest winners") as session:
            return await contest_repo.winner_positions(session, week_id)

    async def probe(self, table: str, column: Optional[str] = None) -> int:
        """
        Bounded read of one row. Returns the number of rows seen (0 or 1).
        Raises SchemaAbsent(table, column) when the table or column is missing.
        """
        tbl = Base.metadata.tables[table]
        col = tbl.c[column] if column else list(tbl.primary_key.columns)[0]
        try:
            async with self.db.session() as session:
                res = await session.execute(select(col).limit(1))
                return len(res.all())
        except SQLAlchemyError as e:
            kind = classify_db_error(e)
            if kind == RELATION_MISSING:
                raise SchemaAbsent(table) from e
            if kind == COLUMN_MISSING:
                raise SchemaAbsent(table, column) from e
            raise StoreFailure(f"Error checking {table}: {e}", cause=e) from e

    # -------------------------------------------------
    # apps / votes
    # -------------------------------------------------

    async def get_app(self, app_id: str) -> Optional[AppRow]:
        async with self._unit(APPS, "load app") as session:
            return await apps_repo.get_app(session, app_id)

    async def insert_app(
        self,
        *,
        name: str,
        link: str,
        image_url: Optional[str],
        user_id: int,
        contest_week_id: Optional[int],
    ) -> AppRow:
        async with self._unit(APPS, "save app") as session:
            row = await apps_repo.insert_app(
                session,
                name=name,
                link=link,
                image_url=image_url,
                user_id=user_id,
                contest_week_id=contest_week_id,
            )
        await self._publish(APPS, "insert", [row.id])
        return row

    async def list_apps(self, week_id: Optional[int]) -> list[AppRow]:
        async with self._unit(APPS, "load apps") as session:
            return await apps_repo.list_apps(session, week_id)

    async def list_user_votes(self, user_id: int, week_id: Optional[int]) -> list[str]:
        async with self._unit(VOTES, "load votes") as session:
            return await apps_repo.list_user_votes(session, user_id=user_id, week_id=week_id)

    async def insert_vote(self, user_id: int, app_id: str, week_id: Optional[int]) -> None:
        async with self._unit(VOTES, "add vote") as session:
            vote_id = await apps_repo.insert_vote(session, user_id=user_id, app_id=app_id, week_id=week_id)
        await self._publish(VOTES, "insert", [vote_id])

    async def delete_vote(self, user_id: int, app_id: str) -> int:
        async with self._unit(VOTES, "remove vote") as session:
            n = await apps_repo.delete_vote(session, user_id=user_id, app_id=app_id)
        if n:
            await self._publish(VOTES, "delete", [app_id])
        return n

    async def has_vote(self, user_id: int, app_id: str) -> bool:
        async with self._unit(VOTES, "load votes") as session:
            return await apps_repo.has_vote(session, user_id=user_id, app_id=app_id)
