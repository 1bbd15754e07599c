# appvote/database/repo/users.py
from __future__ import annotations

from typing import Optional

from aiogram.types import TelegramObject
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from appvote.database.models import Admin, User


def extract_from_user(event: TelegramObject):
    """
    Best-effort extract aiogram `from_user` from different update types
    (Message, CallbackQuery, or an Update wrapping one of them).
    """
    u = getattr(event, "from_user", None)
    if u:
        return u

    for attr in ("message", "callback_query", "edited_message"):
        inner = getattr(event, attr, None)
        if inner is not None and getattr(inner, "from_user", None):
            return inner.from_user

    return None


async def upsert_user(
    session: AsyncSession,
    *,
    telegram_id: int,
    username: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    res = await session.execute(select(User).where(User.telegram_id == telegram_id))
    user = res.scalar_one_or_none()

    if user is None:
        user = User(
            telegram_id=telegram_id,
            username=username,
            first_name=first_name,
            last_name=last_name,
        )
        session.add(user)
        await session.flush()  # user.id is needed by handlers
        return user

    # keep profile fields fresh
    user.username = username
    user.first_name = first_name
    user.last_name = last_name
    return user


async def get_admin(session: AsyncSession, user_id: int) -> Optional[Admin]:
    res = await session.execute(select(Admin).where(Admin.user_id == user_id))
    return res.scalar_one_or_none()
