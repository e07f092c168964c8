"""FastAPI dependencies: config, DB sessions, the authenticated user and Challonge collaborators."""

from __future__ import annotations

from collections.abc import Iterator

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from api.errors import ApiError
from api.security import TokenClaims, decode_access_token
from challonge.cache import ParticipantCache
from challonge.client import ChallongeClient
from config import AppConfig
from domain.validation import Pagination, validate_pagination
from models import User
from repositories import user_repository

bearer_scheme = HTTPBearer(auto_error=False)


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_session(request: Request) -> Iterator[Session]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_challonge_client(request: Request) -> ChallongeClient:
    return request.app.state.challonge_client


def get_participant_cache(request: Request) -> ParticipantCache:
    return request.app.state.participant_cache


def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    config: AppConfig = Depends(get_config),
) -> TokenClaims:
    if credentials is None:
        raise ApiError(401, "Unauthorized", "Missing bearer token")
    try:
        return decode_access_token(credentials.credentials, config.auth)
    except jwt.PyJWTError as exc:
        raise ApiError(401, "Unauthorized", "Invalid or expired token") from exc


def get_current_user(
    claims: TokenClaims = Depends(get_token_claims),
    session: Session = Depends(get_session),
) -> User:
    user = user_repository.get_user(session, claims.sub)
    if user is None:
        raise ApiError(401, "Unauthorized", "User no longer exists")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.admin:
        raise ApiError(403, "Admin privileges required")
    return user


def pagination_params(limit: str | None = None, offset: str | None = None) -> Pagination:
    try:
        return validate_pagination(limit, offset)
    except ValueError as exc:
        raise ApiError(400, "Validation error", str(exc)) from exc


__all__ = [
    "bearer_scheme",
    "get_challonge_client",
    "get_config",
    "get_current_user",
    "get_participant_cache",
    "get_session",
    "get_token_claims",
    "pagination_params",
    "require_admin",
]
