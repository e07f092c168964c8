"""challonge_connections and tournaments table models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base
from models.mixins import TimestampMixin, UuidPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from models.user import User


class ChallongeConnection(UuidPrimaryKeyMixin, TimestampMixin, Base):
    """Delegated OAuth tokens linking one user to a Challonge account."""

    __tablename__ = "challonge_connections"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    scope: Mapped[str | None] = mapped_column(String(512), nullable=True)
    challonge_username: Mapped[str | None] = mapped_column(String(128), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="challonge_connection")


class Tournament(UuidPrimaryKeyMixin, TimestampMixin, Base):
    """Local mirror of a Challonge tournament, refreshed whenever it is fetched."""

    __tablename__ = "tournaments"
    __table_args__ = (
        Index("idx_tournaments_user", "user_id"),
    )

    challonge_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("challonge_connections.user_id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tournament_type: Mapped[str] = mapped_column(String(64), nullable=False)
    url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    game_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    participant_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
