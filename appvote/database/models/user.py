# appvote/database/models/user.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appvote.database.base import Base

if TYPE_CHECKING:
    from appvote.database.models.admin import Admin


class User(Base):
    """
    A Telegram account known to the bot.
    Owns submitted apps and votes through `users.id` (not the Telegram id).
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, index=True)

    username: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
    )

    admin: Mapped["Admin | None"] = relationship(back_populates="user", uselist=False)

    @property
    def display_name(self) -> str:
        if self.username:
            return f"@{self.username}"
        name = " ".join([p for p in [self.first_name, self.last_name] if p])
        return name.strip() or "User"
