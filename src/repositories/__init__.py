"""Database repository helpers."""

from repositories import challonge_repository, match_repository, user_repository

__all__ = [
    "challonge_repository",
    "match_repository",
    "user_repository",
]
