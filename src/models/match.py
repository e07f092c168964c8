"""matches table model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base
from models.mixins import UuidPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from models.user import User


class Match(UuidPrimaryKeyMixin, Base):
    """One head-to-head match; completed once ``completed_at`` is set."""

    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint("player1_id <> player2_id", name="ck_matches_distinct_players"),
        Index("idx_matches_player1", "player1_id"),
        Index("idx_matches_player2", "player2_id"),
    )

    player1_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    player2_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    winner: Mapped[str | None] = mapped_column(String(36), nullable=True)
    player1_elo_change: Mapped[int | None] = mapped_column(Integer, nullable=True)
    player2_elo_change: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        default=utcnow,
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    player1: Mapped[User] = relationship(
        "User",
        foreign_keys=[player1_id],
        back_populates="matches_as_player1",
    )
    player2: Mapped[User] = relationship(
        "User",
        foreign_keys=[player2_id],
        back_populates="matches_as_player2",
    )

    def elo_change_for(self, user_id: str) -> int:
        if user_id == self.player1_id:
            return self.player1_elo_change or 0
        return self.player2_elo_change or 0
