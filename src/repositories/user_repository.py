"""Persistence helpers for player accounts."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.orm import Session, selectinload

from domain.errors import DuplicateUserError, UserNotFoundError
from domain.ratings.elo.calculator import get_new_user_elo
from models import User


def _with_matches() -> tuple[Any, ...]:
    return (
        selectinload(User.matches_as_player1),
        selectinload(User.matches_as_player2),
    )


def _has_any_match() -> ColumnElement[bool]:
    return or_(User.matches_as_player1.any(), User.matches_as_player2.any())


def get_user(session: Session, user_id: str) -> User | None:
    return session.get(User, user_id)


def require_user(session: Session, user_id: str) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.execute(select(User).where(User.email == email)).scalar_one_or_none()


def get_user_by_username(session: Session, username: str) -> User | None:
    return session.execute(select(User).where(User.username == username)).scalar_one_or_none()


def get_user_with_matches(session: Session, user_id: str) -> User | None:
    statement = select(User).where(User.id == user_id).options(*_with_matches())
    return session.execute(statement).scalar_one_or_none()


def create_user(session: Session, *, email: str, username: str, password_hash: str) -> User:
    """Insert a new player at the starting rating."""
    if get_user_by_email(session, email) is not None:
        raise DuplicateUserError("email")
    if get_user_by_username(session, username) is not None:
        raise DuplicateUserError("username")

    user = User(
        email=email,
        username=username,
        password=password_hash,
        elo=get_new_user_elo(),
    )
    session.add(user)
    session.flush()
    return user


def count_users(session: Session) -> int:
    return int(session.scalar(select(func.count(User.id))) or 0)


def list_users(session: Session, *, limit: int, offset: int) -> list[User]:
    """Newest accounts first."""
    statement = select(User).order_by(User.created_at.desc(), User.id).limit(limit).offset(offset)
    return list(session.execute(statement).scalars().all())


def list_users_by_elo(
    session: Session,
    *,
    limit: int,
    offset: int,
    only_with_matches: bool = False,
) -> list[User]:
    """Users ordered by rating, highest first, with their matches preloaded."""
    statement = select(User).options(*_with_matches()).order_by(User.elo.desc(), User.username)
    if only_with_matches:
        statement = statement.where(_has_any_match())
    statement = statement.limit(limit).offset(offset)
    return list(session.execute(statement).scalars().all())


def count_users_with_matches(session: Session) -> int:
    return int(session.scalar(select(func.count(User.id)).where(_has_any_match())) or 0)


def get_users_by_ids(session: Session, user_ids: Sequence[str]) -> dict[str, User]:
    if not user_ids:
        return {}
    users = session.execute(select(User).where(User.id.in_(list(user_ids)))).scalars().all()
    return {user.id: user for user in users}


def set_user_roles(
    session: Session,
    user: User,
    *,
    admin: bool | None = None,
    tournament_organizer: bool | None = None,
    blogger: bool | None = None,
) -> User:
    if admin is not None:
        user.admin = admin
    if tournament_organizer is not None:
        user.tournament_organizer = tournament_organizer
    if blogger is not None:
        user.blogger = blogger
    session.flush()
    return user


def set_user_elo(session: Session, user: User, elo: int) -> User:
    user.elo = elo
    session.flush()
    return user
