import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from api.deps import get_config, get_current_user, get_session
from api.errors import ApiError
from api.schemas import LoginRequest, RegisterRequest, RegisterResponse, TokenResponse, UserPrivate
from api.security import LOGIN_RATE_LIMIT, create_access_token, hash_password, limiter, verify_password
from config import AppConfig
from db import transaction
from domain.validation import is_valid_email, is_valid_password, is_valid_username
from models import User
from repositories import user_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _validate_registration(payload: RegisterRequest) -> None:
    if not is_valid_email(payload.email):
        raise ApiError(400, "Validation error", "Invalid email address")
    if not is_valid_username(payload.username):
        raise ApiError(
            400,
            "Validation error",
            "Username must be 3-20 characters and contain only letters, numbers, underscores and hyphens",
        )
    if not is_valid_password(payload.password):
        raise ApiError(400, "Validation error", "Password must be between 8 and 128 characters")


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    session: Session = Depends(get_session),
    config: AppConfig = Depends(get_config),
) -> RegisterResponse:
    _validate_registration(payload)
    password_hash = hash_password(payload.password, config.auth.bcrypt_rounds)
    with transaction(session):
        user = user_repository.create_user(
            session,
            email=payload.email.strip(),
            username=payload.username,
            password_hash=password_hash,
        )
    logger.info("Registered user_id=%s username=%s", user.id, user.username)

    token = create_access_token(user, config.auth)
    return RegisterResponse(**UserPrivate.model_validate(user).model_dump(), token=token)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
def login(
    request: Request,
    payload: LoginRequest,
    session: Session = Depends(get_session),
    config: AppConfig = Depends(get_config),
) -> TokenResponse:
    user = user_repository.get_user_by_email(session, payload.email.strip())
    if user is None or not verify_password(payload.password, user.password):
        raise ApiError(401, "Unauthorized", "Invalid credentials")
    return TokenResponse(token=create_access_token(user, config.auth))


@router.get("/me", response_model=UserPrivate)
def me(user: User = Depends(get_current_user)) -> User:
    return user
