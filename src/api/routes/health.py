from __future__ import annotations

from fastapi import APIRouter

from api.schemas import MessageResponse

router = APIRouter(prefix="/test", tags=["test"])


@router.get("", response_model=MessageResponse)
def test_route() -> MessageResponse:
    return MessageResponse(message="Test route is working!")
