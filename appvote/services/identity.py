# appvote/services/identity.py
from __future__ import annotations

import enum
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Optional, Protocol

from appvote.services.errors import AuthorizationDenied


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class Actor:
    id: int  # users.id
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class IdentityProvider(Protocol):
    def current_actor(self) -> Optional[Actor]: ...


class ContextIdentity:
    """
    Identity bound per update.
    aiogram runs every update in its own task, so a ContextVar keeps actors apart.
    """

    def __init__(self) -> None:
        self._var: ContextVar[Optional[Actor]] = ContextVar("appvote_actor", default=None)

    def current_actor(self) -> Optional[Actor]:
        return self._var.get()

    def bind(self, actor: Optional[Actor]) -> Token:
        return self._var.set(actor)

    def reset(self, token: Token) -> None:
        self._var.reset(token)


def require_admin(actor: Optional[Actor], action: str = "do this") -> Actor:
    if actor is None or not actor.is_admin:
        raise AuthorizationDenied(f"Only admins can {action}")
    return actor
