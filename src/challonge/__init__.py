"""Challonge OAuth and tournament API bridge."""

from challonge.cache import ParticipantCache
from challonge.client import ChallongeClient, ChallongeError, ChallongeNotConfiguredError, TokenGrant

__all__ = [
    "ChallongeClient",
    "ChallongeError",
    "ChallongeNotConfiguredError",
    "ParticipantCache",
    "TokenGrant",
]
