"""Persistence helpers for Challonge connections and mirrored tournaments."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from domain.tournaments import TournamentSnapshot
from models import ChallongeConnection, Tournament
from models.mixins import utcnow


def get_connection(session: Session, user_id: str) -> ChallongeConnection | None:
    statement = select(ChallongeConnection).where(ChallongeConnection.user_id == user_id)
    return session.execute(statement).scalar_one_or_none()


def upsert_connection(
    session: Session,
    *,
    user_id: str,
    access_token: str,
    refresh_token: str,
    expires_at: datetime,
    scope: str | None,
    challonge_username: str | None,
) -> ChallongeConnection:
    """Create or replace the stored tokens for one user."""
    connection = get_connection(session, user_id)
    if connection is None:
        connection = ChallongeConnection(user_id=user_id)
        session.add(connection)

    connection.access_token = access_token
    connection.refresh_token = refresh_token
    connection.expires_at = expires_at
    connection.scope = scope
    connection.challonge_username = challonge_username
    connection.updated_at = utcnow()
    session.flush()
    return connection


def update_tokens(
    session: Session,
    connection: ChallongeConnection,
    *,
    access_token: str,
    expires_at: datetime,
    refresh_token: str | None = None,
    scope: str | None = None,
) -> ChallongeConnection:
    """Store refreshed tokens; providers that do not rotate refresh tokens keep the old one."""
    connection.access_token = access_token
    connection.expires_at = expires_at
    if refresh_token:
        connection.refresh_token = refresh_token
    if scope:
        connection.scope = scope
    connection.updated_at = utcnow()
    session.flush()
    return connection


def delete_connection(session: Session, user_id: str) -> None:
    session.execute(delete(ChallongeConnection).where(ChallongeConnection.user_id == user_id))


def get_tournament(session: Session, tournament_id: str) -> Tournament | None:
    return session.get(Tournament, tournament_id)


def upsert_tournament(session: Session, snapshot: TournamentSnapshot) -> Tournament:
    """Mirror one Challonge tournament locally, keyed by its Challonge id."""
    now = utcnow()
    statement = select(Tournament).where(Tournament.challonge_id == snapshot.challonge_id)
    tournament = session.execute(statement).scalar_one_or_none()
    if tournament is None:
        tournament = Tournament(challonge_id=snapshot.challonge_id, user_id=None)
        session.add(tournament)

    tournament.name = snapshot.name
    tournament.tournament_type = snapshot.tournament_type
    tournament.url = snapshot.url
    tournament.state = snapshot.state
    tournament.starts_at = snapshot.starts_at
    tournament.game_name = snapshot.game_name
    tournament.participant_count = snapshot.participant_count
    tournament.last_synced_at = now
    tournament.updated_at = now
    session.flush()
    return tournament


def adjust_participant_count(session: Session, tournament: Tournament, delta: int) -> Tournament:
    """Shift the cached participant count, never below zero."""
    tournament.participant_count = max(0, tournament.participant_count + delta)
    tournament.last_synced_at = utcnow()
    session.flush()
    return tournament
