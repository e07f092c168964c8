from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.deps import get_current_user, get_session, pagination_params, require_admin
from api.errors import ApiError
from api.schemas import (
    CompleteMatchRequest,
    CompleteMatchResponse,
    CreateMatchRequest,
    MatchOut,
    MatchPage,
    OffsetPagination,
)
from db import transaction
from domain.validation import Pagination
from models import Match, User
from repositories import match_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])


def _page(matches: list[Match], pagination: Pagination, total: int) -> MatchPage:
    return MatchPage(
        matches=[MatchOut.model_validate(match) for match in matches],
        pagination=OffsetPagination(
            limit=pagination.limit,
            offset=pagination.offset,
            total=total,
            has_more=pagination.has_more(total),
        ),
    )


@router.get("", response_model=MatchPage)
def list_matches(
    pagination: Pagination = Depends(pagination_params),
    _: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> MatchPage:
    total = match_repository.count_matches(session)
    matches = match_repository.list_matches(session, limit=pagination.limit, offset=pagination.offset)
    return _page(matches, pagination, total)


@router.post("", response_model=MatchOut, status_code=status.HTTP_201_CREATED)
def create_match(
    payload: CreateMatchRequest,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Match:
    with transaction(session):
        match = match_repository.create_match(
            session,
            player1_id=payload.player1_id,
            player2_id=payload.player2_id,
        )
    logger.info("admin=%s created match_id=%s", admin.id, match.id)
    return match


@router.post("/{match_id}/complete", response_model=CompleteMatchResponse)
def complete_match(
    match_id: str,
    payload: CompleteMatchRequest,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> CompleteMatchResponse:
    with transaction(session):
        match, change = match_repository.complete_match(session, match_id, payload.winner_id)
    logger.info(
        "admin=%s completed match_id=%s winner=%s deltas=(%+d, %+d)",
        admin.id,
        match.id,
        payload.winner_id,
        change.player1_change,
        change.player2_change,
    )
    return CompleteMatchResponse(
        match=MatchOut.model_validate(match),
        player1_elo_change=change.player1_change,
        player2_elo_change=change.player2_change,
    )


@router.get("/user", response_model=MatchPage)
def list_my_matches(
    pagination: Pagination = Depends(pagination_params),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> MatchPage:
    total = match_repository.count_matches(session, user_id=user.id)
    matches = match_repository.list_matches(
        session,
        limit=pagination.limit,
        offset=pagination.offset,
        user_id=user.id,
    )
    return _page(matches, pagination, total)


@router.get("/{match_id}", response_model=MatchOut)
def get_match(
    match_id: str,
    _: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Match:
    match = match_repository.get_match(session, match_id)
    if match is None:
        raise ApiError(404, "Match not found")
    return match
