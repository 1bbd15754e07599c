import logging
import os
from dataclasses import replace
from datetime import datetime
from typing import Optional

import pytest
import pytest_asyncio

from appvote.database import Database
from appvote.database.models import User, WeekStatus
from appvote.database.repo.apps_repo import AppRow
from appvote.database.repo.contest_repo import WeekRow, WinnerRow
from appvote.services.changes import ChangeEvent, ChangeFeed
from appvote.services.contest import ContestManager
from appvote.services.errors import StoreFailure
from appvote.services.identity import Actor, Role
from appvote.services.store import APPS, VOTES, WEEKS, WINNERS, DuplicateRow, ContestStore

# Set test environment variables
os.environ["ENVIRONMENT"] = "test"

FIXED_NOW = datetime(2026, 3, 2, 12, 0, 0)


def week(id: int, status: WeekStatus = WeekStatus.UPCOMING, *, end_date=None, start_date=None) -> WeekRow:
    return WeekRow(
        id=id,
        name=f"Week {id}",
        description=None,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )


class FakeIdentity:
    def __init__(self, actor: Optional[Actor] = None) -> None:
        self.actor = actor

    def current_actor(self) -> Optional[Actor]:
        return self.actor


class FakeStore:
    """
    In-memory Store with the same write semantics as ContestStore.
    `fail_with` makes every call raise the given error.
    """

    def __init__(self, weeks=(), winners=(), apps=()) -> None:
        self.feed = ChangeFeed()
        self.weeks: dict[int, WeekRow] = {w.id: w for w in weeks}
        self.winners: list[WinnerRow] = list(winners)
        self.apps: dict[str, AppRow] = {a.id: a for a in apps}
        self.votes: list[tuple[int, str, Optional[int]]] = []
        self.fail_with: Optional[Exception] = None
        self.calls: list[str] = []
        self.load_count = 0
        self._next_winner_id = 1

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    @property
    def mutations(self) -> list[str]:
        reads = {"list_weeks", "list_winners", "count_weeks", "winner_positions", "probe",
                 "get_app", "list_apps", "list_user_votes", "has_vote"}
        return [c for c in self.calls if c not in reads]

    def subscribe(self, table, handler):
        return self.feed.subscribe(table, handler)

    async def _publish(self, table, op, ids):
        await self.feed.publish(ChangeEvent(table=table, op=op, row_ids=tuple(ids)))

    # weeks / winners

    async def list_weeks(self):
        self._check("list_weeks")
        self.load_count += 1
        return sorted(self.weeks.values(), key=lambda w: w.id)

    async def list_winners(self):
        self._check("list_winners")
        return list(self.winners)

    async def count_weeks(self):
        self._check("count_weeks")
        return len(self.weeks)

    async def insert_weeks(self, weeks):
        self._check("insert_weeks")
        for w in weeks:
            if w.id in self.weeks:
                raise DuplicateRow("Failed to insert contest weeks: row already exists")
        for w in weeks:
            self.weeks[w.id] = WeekRow(w.id, w.name, w.description, w.status, None, None)
        await self._publish(WEEKS, "insert", [w.id for w in weeks])

    async def set_week_status(self, week_id, status, *, now):
        self._check("set_week_status")
        if week_id not in self.weeks:
            raise StoreFailure(f"Contest week {week_id} not found")
        touched = []
        if status == WeekStatus.ACTIVE:
            for w in list(self.weeks.values()):
                if w.status == WeekStatus.ACTIVE and w.id != week_id:
                    self.weeks[w.id] = replace(w, status=WeekStatus.ENDED, end_date=now)
                    touched.append(w.id)
        target = self.weeks[week_id]
        if status == WeekStatus.ACTIVE:
            target = replace(target, status=status, start_date=now)
        elif status in (WeekStatus.ENDED, WeekStatus.COMPLETED):
            target = replace(target, status=status, end_date=now)
        else:
            target = replace(target, status=status)
        self.weeks[week_id] = target
        touched.append(week_id)
        await self._publish(WEEKS, "update", touched)
        return touched

    async def mark_week_completed(self, week_id):
        self._check("mark_week_completed")
        self.weeks[week_id] = replace(self.weeks[week_id], status=WeekStatus.COMPLETED)
        await self._publish(WEEKS, "update", [week_id])

    async def upsert_winner(self, week_id, position, app_id):
        self._check("upsert_winner")
        app = self.apps.get(app_id)
        for i, r in enumerate(self.winners):
            if r.contest_week_id == week_id and r.position == position:
                self.winners[i] = replace(r, app_id=app_id, app_name=app.name if app else None)
                await self._publish(WINNERS, "update", [r.id])
                return
        row = WinnerRow(
            id=self._next_winner_id,
            contest_week_id=week_id,
            position=position,
            app_id=app_id,
            app_name=app.name if app else None,
            app_link=app.link if app else None,
            app_image_url=None,
            owner_user_id=app.user_id if app else None,
            owner_name=None,
        )
        self._next_winner_id += 1
        self.winners.append(row)
        await self._publish(WINNERS, "insert", [row.id])

    async def winner_positions(self, week_id):
        self._check("winner_positions")
        return {r.position for r in self.winners if r.contest_week_id == week_id}

    async def probe(self, table, column=None):
        self._check("probe")
        return 1 if self.weeks else 0

    # apps / votes

    async def get_app(self, app_id):
        self._check("get_app")
        return self.apps.get(app_id)

    async def insert_app(self, *, name, link, image_url, user_id, contest_week_id):
        self._check("insert_app")
        row = AppRow(
            id=f"app-{len(self.apps) + 1}",
            name=name,
            link=link,
            image_url=image_url,
            user_id=user_id,
            contest_week_id=contest_week_id,
            created_at=FIXED_NOW,
        )
        self.apps[row.id] = row
        await self._publish(APPS, "insert", [row.id])
        return row

    async def list_apps(self, week_id):
        self._check("list_apps")
        counts = {}
        for _, app_id, _ in self.votes:
            counts[app_id] = counts.get(app_id, 0) + 1
        rows = [replace(a, votes=counts.get(a.id, 0)) for a in self.apps.values() if a.contest_week_id == week_id]
        return sorted(rows, key=lambda a: -a.votes)

    async def list_user_votes(self, user_id, week_id):
        self._check("list_user_votes")
        return [a for u, a, w in self.votes if u == user_id and w == week_id]

    async def insert_vote(self, user_id, app_id, week_id):
        self._check("insert_vote")
        if any(u == user_id and a == app_id for u, a, _ in self.votes):
            raise DuplicateRow("Failed to add vote: row already exists")
        self.votes.append((user_id, app_id, week_id))
        await self._publish(VOTES, "insert", [app_id])

    async def delete_vote(self, user_id, app_id):
        self._check("delete_vote")
        before = len(self.votes)
        self.votes = [v for v in self.votes if not (v[0] == user_id and v[1] == app_id)]
        return before - len(self.votes)

    async def has_vote(self, user_id, app_id):
        self._check("has_vote")
        return any(u == user_id and a == app_id for u, a, _ in self.votes)


def app_row(id: str, *, user_id: int = 99, week_id: Optional[int] = 1, name: Optional[str] = None) -> AppRow:
    return AppRow(
        id=id,
        name=name or f"App {id}",
        link=f"https://example.com/{id}",
        image_url=None,
        user_id=user_id,
        contest_week_id=week_id,
        created_at=FIXED_NOW,
    )


ADMIN = Actor(id=1, role=Role.ADMIN)
USER = Actor(id=2, role=Role.USER)


@pytest.fixture(autouse=True)
def _quiet_sqlalchemy():
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    yield


@pytest.fixture
def identity():
    return FakeIdentity(ADMIN)


@pytest.fixture
def store():
    return FakeStore(weeks=[week(1), week(2), week(3), week(4)])


@pytest_asyncio.fixture
async def manager(store, identity):
    m = ContestManager(store, identity, clock=lambda: FIXED_NOW)
    await m.initialize()
    yield m
    await m.close()


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh SQLite database with only the core tables (contest tables absent)."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.init_models()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def sql_store(db):
    return ContestStore(db)


@pytest_asyncio.fixture
async def users(db):
    """Two users; returns their users.id values."""
    async with db.session() as session:
        a = User(telegram_id=1001, username="alice")
        b = User(telegram_id=1002, first_name="Bob")
        session.add_all([a, b])
        await session.commit()
        return a.id, b.id


