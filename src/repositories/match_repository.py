"""Persistence helpers for head-to-head matches, including rating application."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, func, or_, select, update
from sqlalchemy.orm import Session, joinedload

from domain.errors import (
    InvalidWinnerError,
    MatchAlreadyCompletedError,
    MatchNotFoundError,
    PlayerNotFoundError,
    SelfMatchError,
)
from domain.ratings.common import MatchResult
from domain.ratings.elo.calculator import EloChange, PlayerEloEvent, calculate_elo_change
from models import Match, User
from models.mixins import utcnow


def _with_players() -> tuple[Any, ...]:
    return joinedload(Match.player1), joinedload(Match.player2)


def _involves(user_id: str) -> ColumnElement[bool]:
    return or_(Match.player1_id == user_id, Match.player2_id == user_id)


def get_match(session: Session, match_id: str) -> Match | None:
    statement = select(Match).where(Match.id == match_id).options(*_with_players())
    return session.execute(statement).scalar_one_or_none()


def create_match(session: Session, *, player1_id: str, player2_id: str) -> Match:
    """Schedule a new, not yet decided match between two existing players."""
    if session.get(User, player1_id) is None:
        raise PlayerNotFoundError(1, player1_id)
    if session.get(User, player2_id) is None:
        raise PlayerNotFoundError(2, player2_id)
    if player1_id == player2_id:
        raise SelfMatchError()

    match = Match(player1_id=player1_id, player2_id=player2_id)
    session.add(match)
    session.flush()
    return get_match(session, match.id) or match


def count_matches(session: Session, *, user_id: str | None = None) -> int:
    statement = select(func.count(Match.id))
    if user_id is not None:
        statement = statement.where(_involves(user_id))
    return int(session.scalar(statement) or 0)


def list_matches(
    session: Session,
    *,
    limit: int,
    offset: int,
    user_id: str | None = None,
) -> list[Match]:
    """Newest matches first, optionally restricted to one player."""
    statement = select(Match).options(*_with_players())
    if user_id is not None:
        statement = statement.where(_involves(user_id))
    statement = statement.order_by(Match.created_at.desc(), Match.id).limit(limit).offset(offset)
    return list(session.execute(statement).scalars().all())


def list_active_matches(session: Session, user_id: str) -> list[Match]:
    statement = (
        select(Match)
        .options(*_with_players())
        .where(_involves(user_id), Match.completed_at.is_(None))
        .order_by(Match.created_at.desc(), Match.id)
    )
    return list(session.execute(statement).scalars().all())


def list_match_history(session: Session, user_id: str, *, limit: int, offset: int) -> list[Match]:
    statement = (
        select(Match)
        .options(*_with_players())
        .where(_involves(user_id), Match.completed_at.is_not(None))
        .order_by(Match.completed_at.desc(), Match.id)
        .limit(limit)
        .offset(offset)
    )
    return list(session.execute(statement).scalars().all())


def list_matches_for_users(session: Session, user_ids: Sequence[str]) -> list[Match]:
    """Every match touching any of ``user_ids``; used for per-user win counts."""
    if not user_ids:
        return []
    ids = list(user_ids)
    statement = select(Match).where(or_(Match.player1_id.in_(ids), Match.player2_id.in_(ids)))
    return list(session.execute(statement).scalars().all())


def complete_match(
    session: Session,
    match_id: str,
    winner_id: str,
    *,
    completed_at: datetime | None = None,
) -> tuple[Match, EloChange]:
    """Decide a match and apply the rating change to both players.

    The match row and both player rows are locked for the rest of the
    caller's transaction. The completion write only matches a row whose
    ``completed_at`` is still NULL, so a concurrent completion that got there
    first makes this one fail instead of applying ratings twice. Nothing is
    committed here.
    """
    match = session.execute(
        select(Match)
        .where(Match.id == match_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if match is None:
        raise MatchNotFoundError(match_id)
    if match.completed_at is not None:
        raise MatchAlreadyCompletedError(match_id)
    if winner_id not in (match.player1_id, match.player2_id):
        raise InvalidWinnerError(match_id, winner_id)

    players = {
        player.id: player
        for player in session.execute(
            select(User)
            .where(User.id.in_([match.player1_id, match.player2_id]))
            .order_by(User.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars()
    }
    player1 = players.get(match.player1_id)
    player2 = players.get(match.player2_id)
    if player1 is None:
        raise PlayerNotFoundError(1, match.player1_id)
    if player2 is None:
        raise PlayerNotFoundError(2, match.player2_id)

    change = calculate_elo_change(player1.elo, player2.elo, winner_id == match.player1_id)

    result = session.execute(
        update(Match)
        .where(Match.id == match_id, Match.completed_at.is_(None))
        .values(
            winner=winner_id,
            player1_elo_change=change.player1_change,
            player2_elo_change=change.player2_change,
            completed_at=completed_at or utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise MatchAlreadyCompletedError(match_id)

    player1.elo = change.player1_new_elo
    player2.elo = change.player2_new_elo
    session.flush()

    completed = session.execute(
        select(Match)
        .where(Match.id == match_id)
        .options(*_with_players())
        .execution_options(populate_existing=True)
    ).scalar_one()
    return completed, change


def fetch_completed_match_results(session: Session) -> list[MatchResult]:
    """Decided matches in deterministic completion order."""
    statement = (
        select(
            Match.id,
            Match.completed_at,
            Match.player1_id,
            Match.player2_id,
            Match.winner,
        )
        .where(Match.completed_at.is_not(None), Match.winner.is_not(None))
        .order_by(Match.completed_at, Match.created_at, Match.id)
    )
    rows = session.execute(statement).all()

    match_results: list[MatchResult] = []
    for row in rows:
        if row.winner not in (row.player1_id, row.player2_id):
            raise ValueError(f"match_id={row.id} has winner={row.winner!r} outside its players")
        match_results.append(
            MatchResult(
                match_id=row.id,
                completed_at=row.completed_at,
                player1_id=row.player1_id,
                player2_id=row.player2_id,
                winner_id=row.winner,
            )
        )
    return match_results


def apply_replayed_events(
    session: Session,
    events: Sequence[PlayerEloEvent],
    final_ratings: dict[str, int],
    *,
    reset_elo: int,
) -> None:
    """Write replayed deltas back to matches and set every player's rating.

    Players with no decided match are reset to ``reset_elo``.
    """
    for event in events:
        match = session.get(Match, event.match_id)
        if match is None:
            raise MatchNotFoundError(event.match_id)
        if event.player_id == match.player1_id:
            match.player1_elo_change = event.elo_delta
        else:
            match.player2_elo_change = event.elo_delta

    for user in session.execute(select(User)).scalars():
        user.elo = final_ratings.get(user.id, reset_elo)
    session.flush()
