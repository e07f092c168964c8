"""users table model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from domain.ratings.elo.calculator import INITIAL_ELO
from models.base import Base
from models.mixins import TimestampMixin, UuidPrimaryKeyMixin

if TYPE_CHECKING:
    from models.challonge import ChallongeConnection
    from models.match import Match


class User(UuidPrimaryKeyMixin, TimestampMixin, Base):
    """Registered player account with its current ladder rating."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("elo >= 0", name="ck_users_elo_non_negative"),
    )

    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    username: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(128), nullable=False)
    elo: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=INITIAL_ELO,
        server_default=str(INITIAL_ELO),
    )
    admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    tournament_organizer: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    blogger: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    matches_as_player1: Mapped[list[Match]] = relationship(
        "Match",
        foreign_keys="Match.player1_id",
        back_populates="player1",
        passive_deletes=True,
    )
    matches_as_player2: Mapped[list[Match]] = relationship(
        "Match",
        foreign_keys="Match.player2_id",
        back_populates="player2",
        passive_deletes=True,
    )
    challonge_connection: Mapped[ChallongeConnection | None] = relationship(
        "ChallongeConnection",
        back_populates="user",
        uselist=False,
        passive_deletes=True,
    )

    @property
    def matches(self) -> list[Match]:
        return [*self.matches_as_player1, *self.matches_as_player2]
