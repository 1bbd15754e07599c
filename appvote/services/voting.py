# appvote/services/voting.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from appvote.services.contest import ContestManager, OperationResult
from appvote.services.errors import ContestError, ValidationFailure
from appvote.services.identity import Actor
from appvote.services.store import DuplicateRow, Store

log = logging.getLogger(__name__)

DEFAULT_VOTE_LIMIT = 5


class VotingService:
    """
    Votes are scoped to the current (active) contest week.
    One vote per (user, app); at most `vote_limit` votes per user per week.

    Vote writes of one user are serialised: the cap check and the insert
    must see the same vote count.
    """

    def __init__(self, store: Store, contest: ContestManager, *, vote_limit: int = DEFAULT_VOTE_LIMIT) -> None:
        self.store = store
        self.contest = contest
        self.vote_limit = vote_limit
        self._locks: dict[int, asyncio.Lock] = {}

    def _week_id(self) -> Optional[int]:
        week = self.contest.current_week
        return week.id if week else None

    def _require_open(self, actor: Optional[Actor]) -> Actor:
        if actor is None:
            raise ValidationFailure("You must be logged in to vote")
        if not self.contest.can_vote():
            raise ValidationFailure("Voting is only open during an active contest week")
        return actor

    def _lock(self, actor_id: int) -> asyncio.Lock:
        lock = self._locks.get(actor_id)
        if lock is None:
            lock = self._locks[actor_id] = asyncio.Lock()
        return lock

    async def votes_for(self, actor: Actor) -> list[str]:
        return await self.store.list_user_votes(actor.id, self._week_id())

    async def add_vote(self, actor: Optional[Actor], app_id: str) -> OperationResult:
        try:
            actor = self._require_open(actor)
        except ContestError as e:
            return OperationResult(False, e.message)
        async with self._lock(actor.id):
            return await self._add_vote(actor, app_id)

    async def _add_vote(self, actor: Actor, app_id: str) -> OperationResult:
        week_id = self._week_id()
        try:
            app = await self.store.get_app(app_id)
            if app is None:
                raise ValidationFailure("App not found")
            if app.contest_week_id is not None and app.contest_week_id != week_id:
                raise ValidationFailure("This app is not part of the running contest week")
            if app.user_id == actor.id:
                raise ValidationFailure("You cannot vote for your own app")

            current = await self.store.list_user_votes(actor.id, week_id)
            if app_id in current:
                raise ValidationFailure("You already voted for this app")
            if len(current) >= self.vote_limit:
                raise ValidationFailure(
                    f"You can only vote for up to {self.vote_limit} apps. Remove a vote to add a new one."
                )

            await self.store.insert_vote(actor.id, app_id, week_id)
        except DuplicateRow:
            return OperationResult(False, "You already voted for this app")
        except ContestError as e:
            return OperationResult(False, e.message)

        log.info("Vote added user=%s app=%s week=%s", actor.id, app_id, week_id)
        used = len(current) + 1
        return OperationResult(True, f"Vote added ({used}/{self.vote_limit} votes used)")

    async def remove_vote(self, actor: Optional[Actor], app_id: str) -> OperationResult:
        try:
            actor = self._require_open(actor)
        except ContestError as e:
            return OperationResult(False, e.message)
        async with self._lock(actor.id):
            return await self._remove_vote(actor, app_id)

    async def _remove_vote(self, actor: Actor, app_id: str) -> OperationResult:
        try:
            removed = await self.store.delete_vote(actor.id, app_id)
        except ContestError as e:
            return OperationResult(False, e.message)

        if not removed:
            return OperationResult(False, "You have not voted for this app")
        log.info("Vote removed user=%s app=%s", actor.id, app_id)
        return OperationResult(True, "Vote removed")

    async def toggle_vote(self, actor: Optional[Actor], app_id: str) -> OperationResult:
        try:
            actor = self._require_open(actor)
        except ContestError as e:
            return OperationResult(False, e.message)

        async with self._lock(actor.id):
            try:
                # the (user, app) pair is unique across weeks, so an older vote counts too
                voted = app_id in await self.votes_for(actor) or await self.store.has_vote(actor.id, app_id)
            except ContestError as e:
                return OperationResult(False, e.message)

            if voted:
                return await self._remove_vote(actor, app_id)
            return await self._add_vote(actor, app_id)
