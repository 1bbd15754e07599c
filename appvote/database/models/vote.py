# appvote/database/models/vote.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from appvote.database.base import Base


class Vote(Base):
    """
    One vote per user per app (unique).
    The per-week cap is enforced by VotingService before insert.
    """
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "app_id", name="uq_votes_user_app"),
        Index("ix_votes_user_week", "user_id", "contest_week_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    app_id: Mapped[str] = mapped_column(String(36), ForeignKey("apps.id", ondelete="CASCADE"), index=True)
    contest_week_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
