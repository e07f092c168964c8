from __future__ import annotations

import math

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import get_session
from api.errors import ApiError
from api.schemas import LeaderboardEntry, LeaderboardPage, PagePagination
from domain.validation import MAX_PAGE_LIMIT
from models import User
from repositories import user_repository

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])

DEFAULT_LIMIT = 50


def _parse_number(value: str | None, default: int) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return None


def _entry(user: User) -> LeaderboardEntry:
    decided_as_player1 = [match for match in user.matches_as_player1 if match.winner is not None]
    decided_as_player2 = [match for match in user.matches_as_player2 if match.winner is not None]
    wins_as_player1 = sum(1 for match in decided_as_player1 if match.winner == user.id)
    wins_as_player2 = sum(1 for match in decided_as_player2 if match.winner == user.id)
    return LeaderboardEntry(
        id=user.id,
        username=user.username,
        elo=user.elo,
        wins_as_player1=wins_as_player1,
        wins_as_player2=wins_as_player2,
        total_wins=wins_as_player1 + wins_as_player2,
        total_matches=len(decided_as_player1) + len(decided_as_player2),
    )


@router.get("", response_model=LeaderboardPage)
def leaderboard(
    page: str | None = None,
    limit: str | None = None,
    session: Session = Depends(get_session),
) -> LeaderboardPage:
    """Public ladder of everyone who has played at least once."""
    page_number = _parse_number(page, 1)
    if page_number is None or page_number < 1:
        raise ApiError(400, "Validation error", "Page must be a positive number")

    page_size = _parse_number(limit, DEFAULT_LIMIT)
    if page_size is not None:
        page_size = min(page_size, MAX_PAGE_LIMIT)
    if page_size is None or page_size < 1:
        raise ApiError(400, "Validation error", f"Limit must be between 1 and {MAX_PAGE_LIMIT}")

    users = user_repository.list_users_by_elo(
        session,
        limit=page_size,
        offset=(page_number - 1) * page_size,
        only_with_matches=True,
    )
    total = user_repository.count_users_with_matches(session)
    return LeaderboardPage(
        leaderboard=[_entry(user) for user in users],
        pagination=PagePagination(
            page=page_number,
            limit=page_size,
            total=total,
            total_pages=math.ceil(total / page_size),
        ),
    )
