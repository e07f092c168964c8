"""Rating domain modules."""

from domain.ratings.common import MatchResult

__all__ = ["MatchResult"]
