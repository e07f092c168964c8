"""Challonge workflows shared by the HTTP routes: OAuth state, token upkeep, participant lookup."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from challonge.cache import ParticipantCache
from challonge.client import ChallongeClient, ChallongeError
from domain.tournaments import Participant
from models import ChallongeConnection
from models.mixins import utcnow
from repositories import challonge_repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthState:
    user_id: str
    timestamp: int


def encode_state(user_id: str, now: datetime | None = None) -> str:
    """Opaque ``state`` value binding an authorization round trip to one user."""
    moment = now or utcnow()
    timestamp = int((moment - datetime(1970, 1, 1)).total_seconds() * 1000)
    raw = json.dumps({"userId": user_id, "timestamp": timestamp}, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_state(state: str) -> OAuthState:
    try:
        payload = json.loads(base64.b64decode(state.encode("ascii"), validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise ValueError("Invalid state parameter") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("userId"), str):
        raise ValueError("Invalid state parameter")
    return OAuthState(user_id=payload["userId"], timestamp=int(payload.get("timestamp") or 0))


def needs_refresh(connection: ChallongeConnection, now: datetime, threshold_seconds: int) -> bool:
    return connection.expires_at <= now + timedelta(seconds=threshold_seconds)


def refresh_connection(
    session: Session,
    client: ChallongeClient,
    connection: ChallongeConnection,
    *,
    now: datetime | None = None,
) -> ChallongeConnection:
    """Swap in a fresh access token. Raises ``ChallongeError`` when Challonge refuses."""
    grant = client.refresh(connection.refresh_token)
    return challonge_repository.update_tokens(
        session,
        connection,
        access_token=grant.access_token,
        expires_at=grant.expires_at(now or utcnow()),
        refresh_token=grant.refresh_token,
        scope=grant.scope,
    )


def get_valid_access_token(
    session: Session,
    client: ChallongeClient,
    connection: ChallongeConnection,
    *,
    threshold_seconds: int,
    now: datetime | None = None,
) -> ChallongeConnection:
    """Refresh tokens close to expiry; a failed refresh leaves the stored token in place."""
    moment = now or utcnow()
    if not needs_refresh(connection, moment, threshold_seconds):
        return connection
    try:
        return refresh_connection(session, client, connection, now=moment)
    except ChallongeError as exc:
        logger.error("Token refresh failed for user_id=%s: %s", connection.user_id, exc)
        return connection


def revoke_quietly(client: ChallongeClient, token: str) -> None:
    try:
        client.revoke(token)
    except ChallongeError as exc:
        logger.warning("Token revocation failed (continuing with local deletion): %s", exc)


def fetch_participants(
    client: ChallongeClient,
    cache: ParticipantCache,
    tournament_id: str,
) -> list[Participant] | None:
    """Participants for one tournament, cached; ``None`` when Challonge cannot be asked."""
    cached = cache.get(tournament_id)
    if cached is not None:
        return cached
    try:
        participants = client.list_participants(tournament_id)
    except ChallongeError as exc:
        logger.warning("Failed to fetch participants for tournament %s: %s", tournament_id, exc)
        return None
    cache.set(tournament_id, participants)
    return participants


__all__ = [
    "OAuthState",
    "decode_state",
    "encode_state",
    "fetch_participants",
    "get_valid_access_token",
    "needs_refresh",
    "refresh_connection",
    "revoke_quietly",
]
