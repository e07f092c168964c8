from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import get_current_user
from api.schemas import UserPrivate
from models import User

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPrivate)
def current_user(user: User = Depends(get_current_user)) -> User:
    return user
