from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import get_session, pagination_params, require_admin
from api.schemas import AdminUser, AdminUserPage, OffsetPagination
from domain.ratings.elo.calculator import count_wins
from domain.validation import Pagination
from models import User
from repositories import match_repository, user_repository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=AdminUserPage)
def list_users(
    pagination: Pagination = Depends(pagination_params),
    _: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> AdminUserPage:
    """Newest accounts first, each with lifetime match and win counts."""
    total = user_repository.count_users(session)
    users = user_repository.list_users(session, limit=pagination.limit, offset=pagination.offset)
    matches = match_repository.list_matches_for_users(session, [user.id for user in users])

    rows = []
    for user in users:
        user_matches = [match for match in matches if user.id in (match.player1_id, match.player2_id)]
        rows.append(
            AdminUser(
                id=user.id,
                email=user.email,
                username=user.username,
                elo=user.elo,
                is_admin=user.admin,
                is_tournament_organizer=user.tournament_organizer,
                is_blogger=user.blogger,
                created_at=user.created_at,
                total_matches=len(user_matches),
                total_wins=count_wins(user_matches, user.id),
            )
        )

    return AdminUserPage(
        users=rows,
        pagination=OffsetPagination(
            limit=pagination.limit,
            offset=pagination.offset,
            total=total,
            has_more=pagination.has_more(total),
        ),
    )
