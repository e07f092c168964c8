from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import get_current_user, get_session
from api.errors import ApiError
from api.schemas import MatchOut, RankedEntry, RecentMatch, UserPublic, UserStats
from domain.stats import most_recent_completed, opponent_of, summarize_record
from domain.validation import is_valid_uuid, validate_pagination
from models import Match, User
from repositories import match_repository, user_repository

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

LEADERBOARD_DEFAULT_LIMIT = 100
LEADERBOARD_MAX_LIMIT = 500
HISTORY_DEFAULT_LIMIT = 50
HISTORY_MAX_LIMIT = 500


def _non_negative_int(value: str | None, default: int, name: str) -> int:
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        parsed = -1
    if parsed < 0:
        raise ApiError(400, "Validation error", f"{name} must be a non-negative integer")
    return parsed


def _user_stats(session: Session, user_id: str, *, include_email: bool) -> UserStats:
    user = user_repository.get_user_with_matches(session, user_id)
    if user is None:
        raise ApiError(404, "Not found", "User not found")

    record = summarize_record(user.matches, user.id)
    recent = most_recent_completed(user.matches)
    opponents = user_repository.get_users_by_ids(session, [opponent_of(match, user.id) for match in recent])

    recent_matches = [
        RecentMatch(
            id=match.id,
            opponent=UserPublic.model_validate(opponents[opponent_of(match, user.id)]),
            result="win" if match.winner == user.id else "loss",
            elo_change=match.elo_change_for(user.id),
            completed_at=match.completed_at,
        )
        for match in recent
    ]
    return UserStats(
        id=user.id,
        username=user.username,
        email=user.email if include_email else None,
        elo=user.elo,
        total_matches=record.total_matches,
        wins=record.wins,
        losses=record.losses,
        win_rate=record.win_rate,
        recent_matches=recent_matches,
    )


@router.get("/leaderboard", response_model=list[RankedEntry])
def ranked_leaderboard(
    limit: str | None = None,
    offset: str | None = None,
    _: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[RankedEntry]:
    """Every player ranked by rating with win/loss figures from completed matches."""
    try:
        pagination = validate_pagination(limit, offset, default_limit=LEADERBOARD_DEFAULT_LIMIT)
    except ValueError as exc:
        raise ApiError(400, "Validation error", str(exc)) from exc

    users = user_repository.list_users_by_elo(
        session,
        limit=min(pagination.limit, LEADERBOARD_MAX_LIMIT),
        offset=pagination.offset,
    )
    entries = []
    for index, user in enumerate(users):
        record = summarize_record(user.matches, user.id)
        entries.append(
            RankedEntry(
                rank=pagination.offset + index + 1,
                id=user.id,
                username=user.username,
                elo=user.elo,
                total_matches=record.total_matches,
                wins=record.wins,
                losses=record.losses,
                win_rate=record.win_rate,
            )
        )
    return entries


@router.get("/stats/me", response_model=UserStats, response_model_exclude_none=True)
def my_stats(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> UserStats:
    return _user_stats(session, user.id, include_email=True)


@router.get("/stats/{user_id}", response_model=UserStats, response_model_exclude_none=True)
def user_stats(
    user_id: str,
    current: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> UserStats:
    if not is_valid_uuid(user_id):
        raise ApiError(400, "Validation error", "Invalid user ID format")
    return _user_stats(session, user_id, include_email=user_id == current.id)


@router.get("/matches/active", response_model=list[MatchOut])
def active_matches(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[Match]:
    return match_repository.list_active_matches(session, user.id)


@router.get("/matches/history/{user_id}", response_model=list[MatchOut])
def match_history(
    user_id: str,
    limit: str | None = None,
    offset: str | None = None,
    _: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[Match]:
    page_size = min(_non_negative_int(limit, HISTORY_DEFAULT_LIMIT, "Limit"), HISTORY_MAX_LIMIT)
    skip = _non_negative_int(offset, 0, "Offset")
    return match_repository.list_match_history(session, user_id, limit=page_size, offset=skip)
