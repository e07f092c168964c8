"""ORM models."""

from models.base import Base
from models.challonge import ChallongeConnection, Tournament
from models.match import Match
from models.user import User

__all__ = [
    "Base",
    "ChallongeConnection",
    "Match",
    "Tournament",
    "User",
]
