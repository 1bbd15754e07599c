# appvote/database/repo/apps_repo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from appvote.database.models import App, User, Vote


@dataclass(frozen=True, slots=True)
class AppRow:
    id: str
    name: str
    link: str
    image_url: str | None
    user_id: int
    contest_week_id: int | None
    created_at: datetime | None
    votes: int = 0
    owner_name: str | None = None


def _owner_name(username: str | None, first_name: str | None, last_name: str | None) -> str | None:
    if username:
        return f"@{username}"
    return " ".join([p for p in [first_name, last_name] if p]).strip() or None


def _app_row(app: App, votes: int = 0, owner_name: str | None = None) -> AppRow:
    return AppRow(
        id=str(app.id),
        name=app.name,
        link=app.link,
        image_url=app.image_url,
        user_id=int(app.user_id),
        contest_week_id=app.contest_week_id,
        created_at=app.created_at,
        votes=int(votes or 0),
        owner_name=owner_name,
    )


async def get_app(session: AsyncSession, app_id: str) -> AppRow | None:
    app = await session.get(App, app_id)
    return _app_row(app) if app else None


async def insert_app(
    session: AsyncSession,
    *,
    name: str,
    link: str,
    image_url: str | None,
    user_id: int,
    contest_week_id: int | None,
) -> AppRow:
    app = App(
        name=name,
        link=link,
        image_url=image_url,
        user_id=user_id,
        contest_week_id=contest_week_id,
    )
    session.add(app)
    await session.flush()
    await session.refresh(app)
    return _app_row(app)


async def list_apps(session: AsyncSession, week_id: int | None) -> list[AppRow]:
    """
    Apps of `week_id` (or untagged apps when None) with vote counts, most voted first.
    """
    votes_sq = (
        select(Vote.app_id, func.count(Vote.id).label("n"))
        .group_by(Vote.app_id)
        .subquery()
    )
    q = (
        select(App, func.coalesce(votes_sq.c.n, 0), User.username, User.first_name, User.last_name)
        .outerjoin(votes_sq, votes_sq.c.app_id == App.id)
        .outerjoin(User, User.id == App.user_id)
        .order_by(func.coalesce(votes_sq.c.n, 0).desc(), App.created_at.asc(), App.id.asc())
    )
    if week_id is None:
        q = q.where(App.contest_week_id.is_(None))
    else:
        q = q.where(App.contest_week_id == week_id)

    res = await session.execute(q)
    return [
        _app_row(app, votes=n, owner_name=_owner_name(username, first_name, last_name))
        for app, n, username, first_name, last_name in res.all()
    ]


async def list_user_votes(session: AsyncSession, *, user_id: int, week_id: int | None) -> list[str]:
    q = select(Vote.app_id).where(Vote.user_id == user_id).order_by(Vote.id.asc())
    if week_id is None:
        q = q.where(Vote.contest_week_id.is_(None))
    else:
        q = q.where(Vote.contest_week_id == week_id)
    res = await session.execute(q)
    return [str(x) for x in res.scalars().all()]


async def insert_vote(session: AsyncSession, *, user_id: int, app_id: str, week_id: int | None) -> int:
    vote = Vote(user_id=user_id, app_id=app_id, contest_week_id=week_id)
    session.add(vote)
    await session.flush()  # uq_votes_user_app
    return int(vote.id)


async def delete_vote(session: AsyncSession, *, user_id: int, app_id: str) -> int:
    res = await session.execute(
        delete(Vote).where(Vote.user_id == user_id, Vote.app_id == app_id)
    )
    return int(res.rowcount or 0)


async def has_vote(session: AsyncSession, *, user_id: int, app_id: str) -> bool:
    res = await session.execute(
        select(Vote.id).where(Vote.user_id == user_id, Vote.app_id == app_id).limit(1)
    )
    return res.scalar_one_or_none() is not None
