# appvote/services/contest.py
"""
Contest lifecycle manager.

Owns the in-memory view of contest weeks and winners and mediates every status
transition and winner selection against the store. State lives in an immutable
ContestSnapshot that is rebuilt from a full re-fetch and swapped in one
assignment, so readers never observe a half-updated view.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Mapping, Optional

from appvote.database.models import WeekStatus
from appvote.database.repo.contest_repo import WeekRow, WinnerRow
from appvote.services.changes import ChangeEvent, Subscription
from appvote.services.errors import ContestError, SchemaAbsent, StoreFailure, ValidationFailure
from appvote.services.identity import IdentityProvider, require_admin
from appvote.services.store import WEEKS, WINNERS, Store
from appvote.utils.dt import utc_now_naive

log = logging.getLogger(__name__)

WINNER_POSITIONS = (1, 2, 3)


@dataclass(frozen=True, slots=True)
class OperationResult:
    ok: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True, slots=True)
class ContestSnapshot:
    weeks: tuple[WeekRow, ...] = ()
    winners: Mapping[int, tuple[WinnerRow, ...]] = field(default_factory=dict)
    current_week: Optional[WeekRow] = None
    ready: bool = False


SnapshotListener = Callable[[ContestSnapshot, ContestSnapshot], Awaitable[None]]


def derive_current_week(weeks: Iterable[WeekRow]) -> Optional[WeekRow]:
    """
    active week (first by id) > lowest-id upcoming week >
    ended/completed week with the latest end_date > first week by id.
    """
    ordered = sorted(weeks, key=lambda w: w.id)
    if not ordered:
        return None

    for w in ordered:
        if w.status == WeekStatus.ACTIVE:
            return w

    for w in ordered:
        if w.status == WeekStatus.UPCOMING:
            return w

    finished = [w for w in ordered if w.status in (WeekStatus.ENDED, WeekStatus.COMPLETED)]
    if finished:
        # missing end_date sorts oldest; ties keep id order
        return max(finished, key=lambda w: w.end_date or datetime.min)

    return ordered[0]


def parse_status(value) -> WeekStatus:
    try:
        return WeekStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in WeekStatus)
        raise ValidationFailure(f"Unknown status {value!r}. Use one of: {allowed}") from None


class ContestManager:
    def __init__(
        self,
        store: Store,
        identity: IdentityProvider,
        *,
        clock: Callable[[], datetime] = utc_now_naive,
    ) -> None:
        self._store = store
        self._identity = identity
        self._clock = clock

        self._snapshot = ContestSnapshot()
        self._loading = True
        self._last_error: Optional[str] = None
        self._selected_week_id: Optional[int] = None

        self._subscriptions: list[Subscription] = []
        self._listeners: list[SnapshotListener] = []

        # refresh coalescing: a reload that starts after request N covers request N
        self._reload_lock = asyncio.Lock()
        self._requested = 0
        self._completed = 0

    # -------------------------------------------------
    # observable state
    # -------------------------------------------------

    @property
    def snapshot(self) -> ContestSnapshot:
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def has_valid_contest_structure(self) -> bool:
        return self._snapshot.ready

    @property
    def current_week(self) -> Optional[WeekRow]:
        return self._snapshot.current_week

    @property
    def selected_week(self) -> Optional[WeekRow]:
        if self._selected_week_id is not None:
            week = self._find(self._selected_week_id)
            if week is not None:
                return week
        return self._snapshot.current_week

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    # -------------------------------------------------
    # lifecycle
    # -------------------------------------------------

    async def initialize(self) -> OperationResult:
        if not self._subscriptions:
            self._subscriptions = [
                self._store.subscribe(WEEKS, self._on_change),
                self._store.subscribe(WINNERS, self._on_change),
            ]
        return await self.refresh()

    async def close(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []

    async def _on_change(self, event: ChangeEvent) -> None:
        log.debug("Contest change %s/%s %s -> reload", event.table, event.op, event.row_ids)
        await self.refresh()

    async def refresh(self) -> OperationResult:
        self._requested += 1
        ticket = self._requested
        async with self._reload_lock:
            if self._completed >= ticket:
                # a reload that started after this request already finished
                return OperationResult(self._last_error is None, self._last_error or "")
            covered = self._requested
            result = await self._reload()
            self._completed = covered
            return result

    async def _reload(self) -> OperationResult:
        try:
            weeks = await self._store.list_weeks()
            winners = await self._store.list_winners()
        except SchemaAbsent as e:
            log.warning("Contest feature unavailable: %s", e.message)
            self._last_error = e.message
            self._loading = False
            await self._swap(ContestSnapshot(ready=False))
            return OperationResult(False, e.message)
        except StoreFailure as e:
            log.error("Failed to load contest data: %s", e.message)
            self._last_error = e.message
            self._loading = False
            return OperationResult(False, "Failed to load contest data")

        grouped: dict[int, list[WinnerRow]] = {}
        for row in winners:
            grouped.setdefault(row.contest_week_id, []).append(row)

        active = [w.id for w in weeks if w.status == WeekStatus.ACTIVE]
        if len(active) > 1:
            log.warning("More than one active contest week: %s", active)

        snapshot = ContestSnapshot(
            weeks=tuple(sorted(weeks, key=lambda w: w.id)),
            winners={k: tuple(sorted(v, key=lambda r: r.position)) for k, v in grouped.items()},
            current_week=derive_current_week(weeks),
            ready=True,
        )
        self._last_error = None
        self._loading = False
        await self._swap(snapshot)
        return OperationResult(True)

    async def _swap(self, snapshot: ContestSnapshot) -> None:
        previous = self._snapshot
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                await listener(previous, snapshot)
            except Exception:
                log.exception("Contest listener %s failed", getattr(listener, "__name__", listener))

    # -------------------------------------------------
    # view selection
    # -------------------------------------------------

    def switch_week(self, week_id: int) -> bool:
        if self._find(week_id) is None:
            return False
        self._selected_week_id = week_id
        return True

    # -------------------------------------------------
    # admin operations
    # -------------------------------------------------

    async def update_contest_status(self, week_id: int, new_status) -> OperationResult:
        try:
            require_admin(self._identity.current_actor(), "update contest status")
            status = parse_status(new_status)
            week = self._require_week(week_id)
            await self._store.set_week_status(week.id, status, now=self._clock())
        except ContestError as e:
            log.warning("update_contest_status(%s, %s) rejected: %s", week_id, new_status, e.message)
            return OperationResult(False, e.message)

        log.info("Contest week %s -> %s", week_id, status.value)
        await self.refresh()
        return OperationResult(True, f"Contest week {week_id} updated to {status.value}")

    async def select_winner(self, week_id: int, app_id: str, position: int) -> OperationResult:
        wrote = False
        completed = False
        try:
            require_admin(self._identity.current_actor(), "select winners")
            if position not in WINNER_POSITIONS:
                raise ValidationFailure("Position must be 1, 2 or 3")
            if not app_id:
                raise ValidationFailure("App id is required")
            week = self._require_week(week_id)
            if week.status != WeekStatus.ENDED:
                raise ValidationFailure("Winners can only be selected after a contest week has ended")

            await self._store.upsert_winner(week.id, position, app_id)
            wrote = True

            # completes as soon as all three positions are filled, whichever is written last
            filled = await self._store.winner_positions(week.id)
            if set(WINNER_POSITIONS) <= filled:
                await self._store.mark_week_completed(week.id)
                completed = True
        except ContestError as e:
            log.warning("select_winner(%s, %s, %s) rejected: %s", week_id, app_id, position, e.message)
            if wrote:
                await self.refresh()
            return OperationResult(False, e.message)

        await self.refresh()
        msg = f"Winner set for position {position} in week {week_id}"
        if completed:
            log.info("Contest week %s completed", week_id)
            msg += ". All winners selected, week marked completed"
        return OperationResult(True, msg)

    # -------------------------------------------------
    # queries (held state only)
    # -------------------------------------------------

    def get_winners_for_week(self, week_id: int) -> list[WinnerRow]:
        return list(self._snapshot.winners.get(week_id, ()))

    def get_all_weeks(self) -> list[WeekRow]:
        return list(self._snapshot.weeks)

    def get_active_week(self) -> Optional[WeekRow]:
        for w in self._snapshot.weeks:
            if w.status == WeekStatus.ACTIVE:
                return w
        return None

    def can_submit_apps(self) -> bool:
        return self._is_open()

    def can_vote(self) -> bool:
        return self._is_open()

    def _is_open(self) -> bool:
        week = self._snapshot.current_week
        return self._snapshot.ready and week is not None and week.status == WeekStatus.ACTIVE

    def _find(self, week_id: int) -> Optional[WeekRow]:
        for w in self._snapshot.weeks:
            if w.id == week_id:
                return w
        return None

    def _require_week(self, week_id: int) -> WeekRow:
        if not self._snapshot.ready:
            raise ValidationFailure("Contest feature is not set up yet")
        week = self._find(week_id)
        if week is None:
            raise ValidationFailure("Contest week not found")
        return week
