# appvote/services/auth.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from appvote.config import Settings
from appvote.database.models import User
from appvote.database.repo.users import get_admin, upsert_user
from appvote.services.identity import Actor, Role


@dataclass(frozen=True, slots=True)
class AuthResult:
    is_root: bool
    is_admin: bool
    role: str  # "root" | "admin" | "user"

    def to_actor(self, user_id: int) -> Actor:
        return Actor(id=user_id, role=Role.ADMIN if self.is_admin else Role.USER)


class AuthService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def resolve(self, session: AsyncSession, user: User) -> AuthResult:
        # Root admins come from env, always takes precedence.
        if user.telegram_id in self.settings.root_admin_ids:
            return AuthResult(is_root=True, is_admin=True, role="root")

        admin = await get_admin(session, user.id)
        if admin is None:
            return AuthResult(is_root=False, is_admin=False, role="user")

        return AuthResult(is_root=False, is_admin=True, role=admin.role.value)

    async def resolve_by_telegram(
        self,
        session: AsyncSession,
        telegram_id: int,
        username: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> tuple[User, AuthResult]:
        user = await upsert_user(
            session,
            telegram_id=telegram_id,
            username=username,
            first_name=first_name,
            last_name=last_name,
        )
        return user, await self.resolve(session, user)
