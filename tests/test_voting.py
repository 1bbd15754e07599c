"""Tests for VotingService: per-week cap, ownership and toggling."""

import asyncio

import pytest

from appvote.database.models import CONTEST_TABLES, WeekStatus
from appvote.services.bootstrap import DEFAULT_WEEKS
from appvote.services.contest import ContestManager
from appvote.services.identity import Actor, Role
from appvote.services.voting import VotingService

from conftest import FIXED_NOW, USER, FakeStore, app_row, week


@pytest.fixture
def store():
    apps = [app_row(f"a{i}") for i in range(1, 8)]
    apps += [
        app_row("mine", user_id=USER.id),
        app_row("old", week_id=2),
        app_row("legacy", week_id=None),
    ]
    return FakeStore(weeks=[week(1, WeekStatus.ACTIVE), week(2, WeekStatus.UPCOMING)], apps=apps)


@pytest.fixture
def voting(store, manager):
    return VotingService(store, manager, vote_limit=5)


class TestAddVote:
    @pytest.mark.asyncio
    async def test_first_vote(self, voting, store):
        result = await voting.add_vote(USER, "a1")
        assert result.ok
        assert result.message == "Vote added (1/5 votes used)"
        assert store.votes == [(USER.id, "a1", 1)]

    @pytest.mark.asyncio
    async def test_cap_rejects_before_insert(self, voting, store):
        for i in range(1, 6):
            assert (await voting.add_vote(USER, f"a{i}")).ok

        result = await voting.add_vote(USER, "a6")

        assert not result
        assert result.message == "You can only vote for up to 5 apps. Remove a vote to add a new one."
        assert store.calls.count("insert_vote") == 5
        assert len(store.votes) == 5

    @pytest.mark.asyncio
    async def test_removing_frees_a_slot(self, voting):
        for i in range(1, 6):
            await voting.add_vote(USER, f"a{i}")
        await voting.remove_vote(USER, "a1")
        assert (await voting.add_vote(USER, "a6")).ok

    @pytest.mark.asyncio
    async def test_cannot_vote_for_own_app(self, voting, store):
        result = await voting.add_vote(USER, "mine")
        assert not result
        assert result.message == "You cannot vote for your own app"
        assert store.votes == []

    @pytest.mark.asyncio
    async def test_duplicate_vote(self, voting):
        await voting.add_vote(USER, "a1")
        result = await voting.add_vote(USER, "a1")
        assert not result
        assert result.message == "You already voted for this app"

    @pytest.mark.asyncio
    async def test_unknown_app(self, voting):
        result = await voting.add_vote(USER, "nope")
        assert result.message == "App not found"

    @pytest.mark.asyncio
    async def test_app_from_other_week(self, voting, store):
        result = await voting.add_vote(USER, "old")
        assert not result
        assert result.message == "This app is not part of the running contest week"
        assert store.votes == []

    @pytest.mark.asyncio
    async def test_untagged_app_counts_for_current_week(self, voting, store):
        assert (await voting.add_vote(USER, "legacy")).ok
        assert store.votes == [(USER.id, "legacy", 1)]

    @pytest.mark.asyncio
    async def test_anonymous(self, voting, store):
        result = await voting.add_vote(None, "a1")
        assert result.message == "You must be logged in to vote"
        assert store.mutations == []


class TestVotingWindow:
    @pytest.fixture
    def store(self):
        return FakeStore(weeks=[week(1, WeekStatus.UPCOMING)], apps=[app_row("a1")])

    @pytest.mark.asyncio
    async def test_closed_when_no_active_week(self, voting, store):
        result = await voting.add_vote(USER, "a1")
        assert not result
        assert result.message == "Voting is only open during an active contest week"
        assert store.mutations == []

    @pytest.mark.asyncio
    async def test_remove_also_requires_open_week(self, voting):
        result = await voting.remove_vote(USER, "a1")
        assert not result


class TestToggle:
    @pytest.mark.asyncio
    async def test_toggle_adds_then_removes(self, voting, store):
        first = await voting.toggle_vote(USER, "a2")
        assert first.ok and first.message.startswith("Vote added")
        assert await voting.votes_for(USER) == ["a2"]

        second = await voting.toggle_vote(USER, "a2")
        assert second.ok
        assert second.message == "Vote removed"
        assert store.votes == []

    @pytest.mark.asyncio
    async def test_remove_without_vote(self, voting):
        result = await voting.remove_vote(USER, "a3")
        assert not result
        assert result.message == "You have not voted for this app"

    @pytest.mark.asyncio
    async def test_vote_from_an_earlier_week_can_be_removed(self, voting, store):
        # "legacy" has no week; the vote was cast while week 2 was running
        store.votes.append((USER.id, "legacy", 2))
        assert await voting.votes_for(USER) == []

        result = await voting.toggle_vote(USER, "legacy")

        assert result.ok
        assert result.message == "Vote removed"
        assert store.votes == []


class _InterleavingStore(FakeStore):
    """Yields to the loop between reading a user's votes and returning them."""

    async def list_user_votes(self, user_id, week_id):
        current = await super().list_user_votes(user_id, week_id)
        await asyncio.sleep(0)
        return current


class TestConcurrentVotes:
    @pytest.fixture
    def store(self):
        apps = [app_row(f"a{i}") for i in range(1, 8)]
        return _InterleavingStore(weeks=[week(1, WeekStatus.ACTIVE)], apps=apps)

    @pytest.mark.asyncio
    async def test_cap_holds_for_simultaneous_taps(self, voting, store):
        for i in range(1, 5):
            assert (await voting.add_vote(USER, f"a{i}")).ok

        results = await asyncio.gather(voting.add_vote(USER, "a5"), voting.add_vote(USER, "a6"))

        assert sorted(r.ok for r in results) == [False, True]
        assert len(store.votes) == 5

    @pytest.mark.asyncio
    async def test_simultaneous_toggles_of_one_app_settle(self, voting, store):
        results = await asyncio.gather(voting.toggle_vote(USER, "a1"), voting.toggle_vote(USER, "a1"))

        assert [r.message for r in results] == ["Vote added (1/5 votes used)", "Vote removed"]
        assert store.votes == []

    @pytest.mark.asyncio
    async def test_other_users_are_not_blocked(self, voting, store):
        other = Actor(id=3, role=Role.USER)
        results = await asyncio.gather(voting.add_vote(USER, "a1"), voting.add_vote(other, "a1"))
        assert all(results)
        assert len(store.votes) == 2


@pytest.mark.asyncio
async def test_cap_holds_for_simultaneous_taps_on_sqlite(db, sql_store, users, identity):
    await db.create_tables(CONTEST_TABLES)
    await sql_store.insert_weeks(DEFAULT_WEEKS)
    await sql_store.set_week_status(1, WeekStatus.ACTIVE, now=FIXED_NOW)
    owner, voter = users
    app_ids = []
    for i in range(6):
        row = await sql_store.insert_app(
            name=f"App {i}", link=f"https://app{i}.dev", image_url=None, user_id=owner, contest_week_id=1
        )
        app_ids.append(row.id)

    manager = ContestManager(sql_store, identity, clock=lambda: FIXED_NOW)
    await manager.initialize()
    voting = VotingService(sql_store, manager, vote_limit=5)
    actor = Actor(id=voter, role=Role.USER)
    for app_id in app_ids[:4]:
        assert (await voting.add_vote(actor, app_id)).ok

    results = await asyncio.gather(voting.add_vote(actor, app_ids[4]), voting.add_vote(actor, app_ids[5]))

    assert sorted(r.ok for r in results) == [False, True]
    assert len(await sql_store.list_user_votes(voter, 1)) == 5
    await manager.close()
