"""Challonge account linking and tournament participation for ladder users."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import get_challonge_client, get_config, get_current_user, get_participant_cache, get_session
from api.errors import ApiError
from api.schemas import (
    AccessTokenResponse,
    CallbackRequest,
    CallbackResponse,
    ConnectionStatus,
    ConnectResponse,
    JoinResponse,
    RefreshResponse,
    SuccessResponse,
    TournamentDetail,
    TournamentList,
    TournamentOut,
)
from challonge import service
from challonge.cache import ParticipantCache
from challonge.client import ChallongeClient, ChallongeError, ChallongeNotConfiguredError
from config import AppConfig
from db import transaction
from domain.tournaments import find_participant, parse_tournament_resource
from models import ChallongeConnection, Tournament, User
from models.mixins import utcnow
from repositories import challonge_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/challonge", tags=["challonge"])


def _upstream_error(exc: ChallongeError, error: str) -> ApiError:
    return ApiError(exc.status_code or 502, error)


def _require_connection(session: Session, user: User) -> ChallongeConnection:
    connection = challonge_repository.get_connection(session, user.id)
    if connection is None:
        raise ApiError(404, "No Challonge connection found")
    return connection


def _require_api_key(client: ChallongeClient) -> None:
    if not client.config.api_key_configured:
        raise ChallongeNotConfiguredError()


def _require_local_tournament(session: Session, tournament_id: str) -> Tournament:
    tournament = challonge_repository.get_tournament(session, tournament_id)
    if tournament is None:
        raise ApiError(404, "Tournament not found")
    return tournament


def _challonge_username(session: Session, user: User) -> str | None:
    connection = challonge_repository.get_connection(session, user.id)
    return connection.challonge_username if connection is not None else None


def _tournament_out(
    tournament: Tournament,
    challonge_username: str | None,
    client: ChallongeClient,
    cache: ParticipantCache,
) -> TournamentOut:
    out = TournamentOut.model_validate(tournament)
    if not challonge_username:
        return out
    participants = service.fetch_participants(client, cache, tournament.challonge_id)
    if participants and find_participant(participants, challonge_username) is not None:
        out.is_participant = True
        out.user_challonge_username = challonge_username
    return out


# OAuth connection


@router.get("/connect", response_model=ConnectResponse)
def connect(
    user: User = Depends(get_current_user),
    client: ChallongeClient = Depends(get_challonge_client),
) -> ConnectResponse:
    state = service.encode_state(user.id)
    return ConnectResponse(authorization_url=client.authorization_url(state), state=state)


@router.post("/callback", response_model=CallbackResponse)
def callback(
    payload: CallbackRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: ChallongeClient = Depends(get_challonge_client),
    config: AppConfig = Depends(get_config),
) -> CallbackResponse:
    if not payload.code:
        raise ApiError(400, "Authorization code is required")
    try:
        state = service.decode_state(payload.state or "")
    except ValueError as exc:
        raise ApiError(400, "Invalid state parameter") from exc
    if state.user_id != user.id:
        raise ApiError(403, "State mismatch - invalid user")

    try:
        grant = client.exchange_code(payload.code)
    except ChallongeError as exc:
        logger.error("Challonge token exchange failed for user_id=%s: %s", user.id, exc)
        raise ApiError(400, "Failed to exchange authorization code") from exc

    try:
        challonge_username = client.fetch_username(grant.access_token)
    except ChallongeError as exc:
        logger.warning("Could not fetch Challonge username for user_id=%s: %s", user.id, exc)
        challonge_username = None

    with transaction(session):
        connection = challonge_repository.upsert_connection(
            session,
            user_id=user.id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or "",
            expires_at=grant.expires_at(utcnow()),
            scope=grant.scope or config.challonge.scope,
            challonge_username=challonge_username,
        )
    logger.info("Linked user_id=%s to Challonge account %s", user.id, challonge_username)
    return CallbackResponse(expires_at=connection.expires_at)


@router.get("/status", response_model=ConnectionStatus, response_model_exclude_none=True)
def connection_status(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ConnectionStatus:
    connection = challonge_repository.get_connection(session, user.id)
    if connection is None:
        return ConnectionStatus(connected=False)
    return ConnectionStatus(
        connected=True,
        expires_at=connection.expires_at,
        is_expired=utcnow() >= connection.expires_at,
        scope=connection.scope,
        connected_since=connection.created_at,
    )


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: ChallongeClient = Depends(get_challonge_client),
) -> RefreshResponse:
    connection = _require_connection(session, user)
    with transaction(session):
        try:
            connection = service.refresh_connection(session, client, connection)
        except ChallongeError as exc:
            logger.error("Challonge token refresh failed for user_id=%s: %s", user.id, exc)
            raise ApiError(400, "Failed to refresh access token") from exc
    return RefreshResponse(expires_at=connection.expires_at, scope=connection.scope)


@router.delete("/disconnect", response_model=SuccessResponse)
def disconnect(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: ChallongeClient = Depends(get_challonge_client),
) -> SuccessResponse:
    connection = _require_connection(session, user)
    service.revoke_quietly(client, connection.access_token)
    with transaction(session):
        challonge_repository.delete_connection(session, user.id)
    logger.info("Removed Challonge connection for user_id=%s", user.id)
    return SuccessResponse(message="Challonge connection removed")


@router.get("/token", response_model=AccessTokenResponse)
def access_token(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: ChallongeClient = Depends(get_challonge_client),
    config: AppConfig = Depends(get_config),
) -> AccessTokenResponse:
    """The user's Challonge access token, refreshed first if it is about to expire."""
    connection = _require_connection(session, user)
    with transaction(session):
        connection = service.get_valid_access_token(
            session,
            client,
            connection,
            threshold_seconds=config.challonge.token_refresh_threshold_seconds,
        )
    return AccessTokenResponse(access_token=connection.access_token, expires_at=connection.expires_at)


# Tournaments


@router.get("/tournaments", response_model=TournamentList)
def list_tournaments(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: ChallongeClient = Depends(get_challonge_client),
    cache: ParticipantCache = Depends(get_participant_cache),
) -> TournamentList:
    _require_api_key(client)
    try:
        resources = client.list_tournaments()
    except ChallongeNotConfiguredError:
        raise
    except ChallongeError as exc:
        raise _upstream_error(exc, "Failed to fetch tournaments from Challonge") from exc

    with transaction(session):
        tournaments = [
            challonge_repository.upsert_tournament(session, parse_tournament_resource(resource))
            for resource in resources
        ]

    challonge_username = _challonge_username(session, user)
    results = [_tournament_out(tournament, challonge_username, client, cache) for tournament in tournaments]
    return TournamentList(tournaments=results, count=len(results))


@router.get("/tournaments/{challonge_id}", response_model=TournamentDetail)
def get_tournament(
    challonge_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: ChallongeClient = Depends(get_challonge_client),
    cache: ParticipantCache = Depends(get_participant_cache),
) -> TournamentDetail:
    _require_api_key(client)
    try:
        resource = client.get_tournament(challonge_id)
    except ChallongeNotConfiguredError:
        raise
    except ChallongeError as exc:
        if exc.status_code == 404:
            raise ApiError(404, "Tournament not found") from exc
        raise _upstream_error(exc, "Failed to fetch tournament from Challonge") from exc

    with transaction(session):
        tournament = challonge_repository.upsert_tournament(session, parse_tournament_resource(resource))

    return TournamentDetail(
        tournament=_tournament_out(tournament, _challonge_username(session, user), client, cache),
        full_data=dict(resource.get("attributes") or {}),
    )


@router.post("/tournaments/{tournament_id}/join", response_model=JoinResponse)
def join_tournament(
    tournament_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: ChallongeClient = Depends(get_challonge_client),
    cache: ParticipantCache = Depends(get_participant_cache),
) -> JoinResponse:
    tournament = _require_local_tournament(session, tournament_id)
    challonge_username = _challonge_username(session, user)
    if not challonge_username:
        raise ApiError(403, "You must connect your Challonge account before joining tournaments")

    participants = service.fetch_participants(client, cache, tournament.challonge_id)
    if participants and find_participant(participants, challonge_username) is not None:
        raise ApiError(400, "You are already a participant in this tournament")

    _require_api_key(client)
    try:
        participant = client.create_participant(tournament.challonge_id, challonge_username)
    except ChallongeError as exc:
        raise _upstream_error(exc, "Failed to join tournament") from exc

    cache.invalidate(tournament.challonge_id)
    with transaction(session):
        challonge_repository.adjust_participant_count(session, tournament, 1)
    logger.info("user_id=%s joined tournament %s", user.id, tournament.challonge_id)
    return JoinResponse(message="Successfully joined tournament", participant=participant)


@router.delete("/tournaments/{tournament_id}/leave", response_model=SuccessResponse)
def leave_tournament(
    tournament_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: ChallongeClient = Depends(get_challonge_client),
    cache: ParticipantCache = Depends(get_participant_cache),
) -> SuccessResponse:
    tournament = _require_local_tournament(session, tournament_id)
    challonge_username = _challonge_username(session, user)
    if not challonge_username:
        raise ApiError(403, "You must have a Challonge account connected")

    participants = service.fetch_participants(client, cache, tournament.challonge_id)
    if participants is None:
        raise ApiError(500, "Failed to fetch tournament participants")
    participant = find_participant(participants, challonge_username)
    if participant is None:
        raise ApiError(404, "You are not a participant in this tournament")

    _require_api_key(client)
    try:
        client.delete_participant(tournament.challonge_id, participant.id)
    except ChallongeError as exc:
        raise _upstream_error(exc, "Failed to leave tournament") from exc

    cache.invalidate(tournament.challonge_id)
    with transaction(session):
        challonge_repository.adjust_participant_count(session, tournament, -1)
    logger.info("user_id=%s left tournament %s", user.id, tournament.challonge_id)
    return SuccessResponse(message="Successfully left tournament")
