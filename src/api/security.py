"""Password hashing, access tokens, rate limiting and request hardening."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from fastapi import Request
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from api.errors import error_body
from config import AuthConfig, ServerConfig
from models import User

# bcrypt only reads the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72

DEFAULT_RATE_LIMIT = "100/minute"
LOGIN_RATE_LIMIT = "5/minute"
LOGIN_PATH = "/api/auth/login"

CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"
CSRF_EXEMPT_PATHS = (LOGIN_PATH, "/api/auth/register", "/api/leaderboard")
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

limiter = Limiter(key_func=get_remote_address, default_limits=[DEFAULT_RATE_LIMIT])


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    email: str
    admin: bool = False
    tournament_organizer: bool = False
    blogger: bool = False


def create_access_token(user: User, auth: AuthConfig, now: datetime | None = None) -> str:
    issued_at = now or datetime.now(UTC)
    payload = {
        "sub": user.id,
        "email": user.email,
        "admin": user.admin,
        "tournamentOrganizer": user.tournament_organizer,
        "blogger": user.blogger,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=auth.token_ttl_minutes),
    }
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)


def decode_access_token(token: str, auth: AuthConfig) -> TokenClaims:
    """Verify signature and expiry. Raises ``jwt.PyJWTError`` on any defect."""
    payload = jwt.decode(
        token,
        auth.jwt_secret,
        algorithms=[auth.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )
    return TokenClaims(
        sub=str(payload["sub"]),
        email=str(payload.get("email", "")),
        admin=bool(payload.get("admin", False)),
        tournament_organizer=bool(payload.get("tournamentOrganizer", False)),
        blogger=bool(payload.get("blogger", False)),
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    if request.url.path == LOGIN_PATH:
        message = "Too many login attempts. Please try again in 1 minute."
    else:
        message = "Too many requests. Please try again in 1 minute."
    response = JSONResponse(status_code=429, content=error_body("Too many attempts", message))
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


def content_security_policy(frontend_url: str) -> str:
    directives = [
        "default-src 'self'",
        "style-src 'self' 'unsafe-inline'",
        "script-src 'self'",
        "img-src 'self' data: https:",
        f"connect-src 'self' {frontend_url}",
    ]
    return "; ".join(directives)


def requires_csrf_header(request: Request) -> bool:
    """Unsafe, cookie-style API calls must prove they came from our frontend's XHR."""
    path = request.url.path
    if request.method in SAFE_METHODS or not path.startswith("/api/"):
        return False
    if any(path.startswith(exempt) for exempt in CSRF_EXEMPT_PATHS):
        return False
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return False
    return request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE


class SecurityMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, server: ServerConfig) -> None:
        super().__init__(app)
        self.csp = content_security_policy(server.frontend_url)
        self.hsts = server.is_production

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if requires_csrf_header(request):
            response: Response = JSONResponse(status_code=403, content=error_body("Invalid request origin"))
        else:
            response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Content-Security-Policy"] = self.csp
        if self.hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"
        return response


__all__ = [
    "LOGIN_RATE_LIMIT",
    "SecurityMiddleware",
    "TokenClaims",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "limiter",
    "rate_limit_exceeded_handler",
    "requires_csrf_header",
    "verify_password",
]
