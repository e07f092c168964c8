"""Server-side input validation helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]{3,20}$")
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
MAX_PAGE_LIMIT = 100
MAX_ELO = 5000


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int

    def has_more(self, total: int) -> bool:
        return self.offset + self.limit < total


def is_valid_email(email: object) -> bool:
    if not isinstance(email, str) or not email:
        return False
    return bool(_EMAIL_RE.match(email)) and len(email) <= MAX_EMAIL_LENGTH


def is_valid_username(username: object) -> bool:
    """3-20 characters: letters, digits, underscores and hyphens."""
    if not isinstance(username, str) or not username:
        return False
    return bool(_USERNAME_RE.match(username))


def is_valid_password(password: object) -> bool:
    if not isinstance(password, str) or not password:
        return False
    return MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH


def is_valid_uuid(value: object) -> bool:
    if not isinstance(value, str) or not value:
        return False
    return bool(_UUID_RE.match(value))


def is_valid_elo(elo: object) -> bool:
    if isinstance(elo, bool) or not isinstance(elo, (int, float)):
        return False
    return 0 <= elo <= MAX_ELO


def _parse_int(value: str | int | None, default: int) -> int | None:
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    try:
        return int(value.strip())
    except ValueError:
        return None


def validate_pagination(
    limit: str | int | None,
    offset: str | int | None,
    *,
    default_limit: int = 10,
) -> Pagination:
    """Parse limit/offset query values, raising ValueError with a client-facing message."""
    parsed_limit = _parse_int(limit, default_limit)
    if parsed_limit is None or parsed_limit < 1 or parsed_limit > MAX_PAGE_LIMIT:
        raise ValueError(f"Limit must be between 1 and {MAX_PAGE_LIMIT}")

    parsed_offset = _parse_int(offset, 0)
    if parsed_offset is None or parsed_offset < 0:
        raise ValueError("Offset must be non-negative")

    return Pagination(limit=parsed_limit, offset=parsed_offset)


__all__ = [
    "MAX_ELO",
    "MAX_PAGE_LIMIT",
    "Pagination",
    "is_valid_elo",
    "is_valid_email",
    "is_valid_password",
    "is_valid_username",
    "is_valid_uuid",
    "validate_pagination",
]
