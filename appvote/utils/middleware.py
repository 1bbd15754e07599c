# appvote/utils/middleware.py
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from appvote.config.settings import Settings
from appvote.database.repo.users import extract_from_user
from appvote.database.session import Database
from appvote.services.auth import AuthService
from appvote.services.identity import ContextIdentity


class DbSessionMiddleware(BaseMiddleware):
    """
    Creates a DB session per update and injects it into handler data as `session`.

    Auto-commits on success and rolls back on error.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        async with self.db.SessionLocal() as session:
            data["session"] = session
            try:
                result = await handler(event, data)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise


class IdentityMiddleware(BaseMiddleware):
    """
    Upserts the Telegram user, resolves its role and binds the Actor for the
    duration of the update. Injects `db_user`, `authz` and `actor`.
    Must run after DbSessionMiddleware.
    """

    def __init__(self, settings: Settings, identity: ContextIdentity) -> None:
        self.auth = AuthService(settings)
        self.identity = identity

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        tg = extract_from_user(event)
        session = data.get("session")
        actor = None

        if tg is not None and session is not None:
            user, authz = await self.auth.resolve_by_telegram(
                session,
                telegram_id=tg.id,
                username=tg.username,
                first_name=tg.first_name,
                last_name=tg.last_name,
            )
            # users row must be visible to the store's own sessions
            await session.commit()
            actor = authz.to_actor(user.id)
            data["db_user"] = user
            data["authz"] = authz

        data["actor"] = actor
        token = self.identity.bind(actor)
        try:
            return await handler(event, data)
        finally:
            self.identity.reset(token)
