"""Tests for the SQLAlchemy-backed ContestStore against a real SQLite file."""

import pytest
import pytest_asyncio
from sqlalchemy import text

from appvote.database.models import CONTEST_TABLES, WeekStatus
from appvote.services.bootstrap import DEFAULT_WEEKS
from appvote.services.errors import SchemaAbsent, StoreFailure
from appvote.services.store import WEEKS, WINNERS, DuplicateRow

from conftest import FIXED_NOW


@pytest_asyncio.fixture
async def seeded(db, sql_store):
    await db.create_tables(CONTEST_TABLES)
    await sql_store.insert_weeks(DEFAULT_WEEKS)
    return sql_store


async def _statuses(store):
    return {w.id: w.status for w in await store.list_weeks()}


class TestMissingSchema:
    @pytest.mark.asyncio
    async def test_list_weeks_raises_schema_absent(self, sql_store):
        with pytest.raises(SchemaAbsent) as exc:
            await sql_store.list_weeks()
        assert exc.value.table == WEEKS

    @pytest.mark.asyncio
    async def test_probe_reports_missing_table(self, sql_store):
        with pytest.raises(SchemaAbsent):
            await sql_store.probe(WINNERS)

    @pytest.mark.asyncio
    async def test_probe_existing_column(self, sql_store):
        assert await sql_store.probe("apps", "contest_week_id") == 0

    @pytest.mark.asyncio
    async def test_missing_column_is_named(self, db, sql_store):
        async with db.engine.begin() as conn:
            await conn.execute(text("CREATE TABLE contest_weeks (id INTEGER PRIMARY KEY, name TEXT)"))

        with pytest.raises(SchemaAbsent) as exc:
            await sql_store.list_weeks()

        assert exc.value.table == WEEKS
        assert exc.value.column not in (None, "?")
        assert exc.value.message.startswith("Column contest_weeks.")


class TestWeeks:
    @pytest.mark.asyncio
    async def test_seeded_weeks(self, seeded):
        weeks = await seeded.list_weeks()
        assert [w.id for w in weeks] == [1, 2, 3, 4]
        assert all(w.status == WeekStatus.UPCOMING for w in weeks)
        assert weeks[3].description == "Final week of the app contest"
        assert await seeded.count_weeks() == 4

    @pytest.mark.asyncio
    async def test_duplicate_seed(self, seeded):
        with pytest.raises(DuplicateRow):
            await seeded.insert_weeks(DEFAULT_WEEKS[:1])

    @pytest.mark.asyncio
    async def test_activation_ends_previous_active_week(self, seeded):
        await seeded.set_week_status(1, WeekStatus.ACTIVE, now=FIXED_NOW)
        touched = await seeded.set_week_status(2, WeekStatus.ACTIVE, now=FIXED_NOW)

        assert sorted(touched) == [1, 2]
        weeks = {w.id: w for w in await seeded.list_weeks()}
        assert weeks[1].status == WeekStatus.ENDED
        assert weeks[1].end_date == FIXED_NOW
        assert weeks[2].status == WeekStatus.ACTIVE
        assert weeks[2].start_date == FIXED_NOW

    @pytest.mark.asyncio
    async def test_unknown_week_rolls_back_deactivation(self, seeded):
        await seeded.set_week_status(1, WeekStatus.ACTIVE, now=FIXED_NOW)

        with pytest.raises(StoreFailure, match="Contest week 9 not found"):
            await seeded.set_week_status(9, WeekStatus.ACTIVE, now=FIXED_NOW)

        assert (await _statuses(seeded))[1] == WeekStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_mark_completed_keeps_dates(self, seeded):
        await seeded.set_week_status(1, WeekStatus.ENDED, now=FIXED_NOW)
        await seeded.mark_week_completed(1)
        w = (await seeded.list_weeks())[0]
        assert w.status == WeekStatus.COMPLETED
        assert w.end_date == FIXED_NOW

    @pytest.mark.asyncio
    async def test_writes_are_published(self, seeded):
        events = []

        async def on_change(event):
            events.append(event)

        seeded.subscribe(WEEKS, on_change)
        await seeded.set_week_status(3, WeekStatus.ACTIVE, now=FIXED_NOW)

        assert len(events) == 1
        assert events[0].table == WEEKS
        assert events[0].op == "update"
        assert events[0].row_ids == (3,)


class TestAppsAndWinners:
    @pytest_asyncio.fixture
    async def apps(self, seeded, users):
        alice, bob = users
        a = await seeded.insert_app(name="Rocket", link="https://rocket.dev", image_url=None,
                                    user_id=alice, contest_week_id=1)
        b = await seeded.insert_app(name="Comet", link="https://comet.dev", image_url=None,
                                    user_id=bob, contest_week_id=1)
        return a, b

    @pytest.mark.asyncio
    async def test_insert_and_get_app(self, seeded, apps):
        rocket, _ = apps
        assert len(rocket.id) == 36
        got = await seeded.get_app(rocket.id)
        assert got.name == "Rocket"
        assert got.contest_week_id == 1
        assert await seeded.get_app("missing") is None

    @pytest.mark.asyncio
    async def test_votes_and_ranking(self, seeded, apps, users):
        alice, bob = users
        rocket, comet = apps
        await seeded.insert_vote(alice, comet.id, 1)
        await seeded.insert_vote(bob, comet.id, 1)
        await seeded.insert_vote(bob, rocket.id, 1)

        ranked = await seeded.list_apps(1)
        assert [(a.name, a.votes) for a in ranked] == [("Comet", 2), ("Rocket", 1)]
        assert ranked[1].owner_name == "@alice"
        assert await seeded.list_user_votes(bob, 1) == [comet.id, rocket.id]
        assert await seeded.list_apps(2) == []

    @pytest.mark.asyncio
    async def test_duplicate_vote(self, seeded, apps, users):
        alice, _ = users
        _, comet = apps
        await seeded.insert_vote(alice, comet.id, 1)
        with pytest.raises(DuplicateRow):
            await seeded.insert_vote(alice, comet.id, 1)

    @pytest.mark.asyncio
    async def test_delete_vote(self, seeded, apps, users):
        alice, _ = users
        _, comet = apps
        await seeded.insert_vote(alice, comet.id, 1)
        assert await seeded.delete_vote(alice, comet.id) == 1
        assert await seeded.delete_vote(alice, comet.id) == 0

    @pytest.mark.asyncio
    async def test_has_vote_ignores_week(self, seeded, apps, users):
        alice, _ = users
        _, comet = apps
        assert await seeded.has_vote(alice, comet.id) is False
        await seeded.insert_vote(alice, comet.id, 2)
        assert await seeded.has_vote(alice, comet.id) is True
        assert await seeded.list_user_votes(alice, 1) == []

    @pytest.mark.asyncio
    async def test_upsert_winner_replaces_position(self, seeded, apps):
        rocket, comet = apps
        await seeded.upsert_winner(1, 1, rocket.id)
        await seeded.upsert_winner(1, 1, comet.id)
        await seeded.upsert_winner(1, 2, rocket.id)

        winners = await seeded.list_winners()
        assert [(w.position, w.app_name) for w in winners] == [(1, "Comet"), (2, "Rocket")]
        assert winners[0].owner_name == "Bob"
        assert await seeded.winner_positions(1) == {1, 2}
        assert await seeded.winner_positions(2) == set()
