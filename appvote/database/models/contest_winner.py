# appvote/database/models/contest_winner.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from appvote.database.base import Base


class ContestWinner(Base):
    """
    One row per (contest_week_id, position).
    Re-selecting a position updates app_id in place.
    """
    __tablename__ = "contest_winners"
    __table_args__ = (
        UniqueConstraint("contest_week_id", "position", name="uq_contest_winners_week_position"),
        CheckConstraint("position BETWEEN 1 AND 3", name="ck_contest_winners_position"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    contest_week_id: Mapped[int] = mapped_column(
        ForeignKey("contest_weeks.id", ondelete="CASCADE"),
        index=True,
    )
    app_id: Mapped[str] = mapped_column(String(36), ForeignKey("apps.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer)  # 1..3

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
    )
