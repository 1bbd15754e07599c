# appvote/database/repo/contest_repo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from appvote.database.models import App, ContestWeek, ContestWinner, User, WeekStatus


@dataclass(frozen=True, slots=True)
class WeekRow:
    id: int
    name: str
    description: str | None
    status: WeekStatus
    start_date: datetime | None
    end_date: datetime | None


@dataclass(frozen=True, slots=True)
class WinnerRow:
    id: int
    contest_week_id: int
    position: int
    app_id: str
    app_name: str | None
    app_link: str | None
    app_image_url: str | None
    owner_user_id: int | None
    owner_name: str | None


@dataclass(frozen=True, slots=True)
class NewWeek:
    id: int
    name: str
    description: str | None = None
    status: WeekStatus = WeekStatus.UPCOMING


def _week_row(w: ContestWeek) -> WeekRow:
    return WeekRow(
        id=int(w.id),
        name=w.name,
        description=w.description,
        status=WeekStatus(w.status),
        start_date=w.start_date,
        end_date=w.end_date,
    )


async def list_weeks(session: AsyncSession) -> list[WeekRow]:
    res = await session.execute(select(ContestWeek).order_by(ContestWeek.id.asc()))
    return [_week_row(w) for w in res.scalars().all()]


async def count_weeks(session: AsyncSession) -> int:
    res = await session.execute(select(func.count(ContestWeek.id)))
    return int(res.scalar() or 0)


async def insert_weeks(session: AsyncSession, weeks: Iterable[NewWeek]) -> list[int]:
    rows = [
        ContestWeek(id=w.id, name=w.name, description=w.description, status=w.status)
        for w in weeks
    ]
    session.add_all(rows)
    await session.flush()  # uniqueness violations surface here
    return [r.id for r in rows]


async def list_winners(session: AsyncSession) -> list[WinnerRow]:
    q = (
        select(
            ContestWinner.id,
            ContestWinner.contest_week_id,
            ContestWinner.position,
            ContestWinner.app_id,
            App.name,
            App.link,
            App.image_url,
            App.user_id,
            User.username,
            User.first_name,
            User.last_name,
        )
        .outerjoin(App, App.id == ContestWinner.app_id)
        .outerjoin(User, User.id == App.user_id)
        .order_by(ContestWinner.position.asc(), ContestWinner.contest_week_id.asc())
    )
    res = await session.execute(q)

    out: list[WinnerRow] = []
    for (wid, week_id, position, app_id, name, link, image_url,
         owner_id, username, first_name, last_name) in res.all():
        if username:
            owner_name = f"@{username}"
        else:
            owner_name = " ".join([p for p in [first_name, last_name] if p]).strip() or None
        out.append(
            WinnerRow(
                id=int(wid),
                contest_week_id=int(week_id),
                position=int(position),
                app_id=str(app_id),
                app_name=name,
                app_link=link,
                app_image_url=image_url,
                owner_user_id=int(owner_id) if owner_id is not None else None,
                owner_name=owner_name,
            )
        )
    return out


async def apply_week_status(
    session: AsyncSession,
    *,
    week_id: int,
    status: WeekStatus,
    now: datetime,
) -> list[int]:
    """
    Writes `status` on week_id with its date stamp and returns every week id touched.

    active            -> start_date = now; any other active week -> ended, end_date = now
    ended / completed -> end_date = now
    upcoming          -> no stamp

    Runs inside the caller's transaction, so the deactivate/activate pair is atomic.
    """
    touched: list[int] = []

    if status == WeekStatus.ACTIVE:
        res = await session.execute(
            select(ContestWeek.id).where(
                ContestWeek.status == WeekStatus.ACTIVE,
                ContestWeek.id != week_id,
            )
        )
        others = [int(x) for x in res.scalars().all()]
        if others:
            await session.execute(
                update(ContestWeek)
                .where(ContestWeek.id.in_(others))
                .values(status=WeekStatus.ENDED, end_date=now)
            )
            touched.extend(others)

    values: dict = {"status": status}
    if status == WeekStatus.ACTIVE:
        values["start_date"] = now
    elif status in (WeekStatus.ENDED, WeekStatus.COMPLETED):
        values["end_date"] = now

    res = await session.execute(
        update(ContestWeek).where(ContestWeek.id == week_id).values(**values)
    )
    if (res.rowcount or 0) > 0:
        touched.append(week_id)
    return touched


async def set_status_only(session: AsyncSession, *, week_id: int, status: WeekStatus) -> bool:
    res = await session.execute(
        update(ContestWeek).where(ContestWeek.id == week_id).values(status=status)
    )
    return (res.rowcount or 0) > 0


async def upsert_winner(
    session: AsyncSession,
    *,
    week_id: int,
    position: int,
    app_id: str,
) -> tuple[bool, int]:
    """
    Insert-or-update keyed by (week_id, position).
    Returns (created, winner_id).
    """
    res = await session.execute(
        select(ContestWinner).where(
            ContestWinner.contest_week_id == week_id,
            ContestWinner.position == position,
        )
    )
    existing = res.scalar_one_or_none()
    if existing is not None:
        existing.app_id = app_id
        await session.flush()
        return False, int(existing.id)

    row = ContestWinner(contest_week_id=week_id, position=position, app_id=app_id)
    session.add(row)
    await session.flush()
    return True, int(row.id)


async def winner_positions(session: AsyncSession, week_id: int) -> set[int]:
    res = await session.execute(
        select(ContestWinner.position).where(ContestWinner.contest_week_id == week_id)
    )
    return {int(p) for p in res.scalars().all()}
