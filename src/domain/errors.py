"""Domain errors raised by repositories and services; the HTTP layer maps them to responses."""

from __future__ import annotations


class LadderError(Exception):
    """Base class for expected, client-caused failures."""


class NotFoundError(LadderError):
    pass


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__("User not found")
        self.user_id = user_id


class PlayerNotFoundError(NotFoundError):
    def __init__(self, position: int, player_id: str) -> None:
        super().__init__(f"Player {position} not found")
        self.position = position
        self.player_id = player_id


class MatchNotFoundError(NotFoundError):
    def __init__(self, match_id: str) -> None:
        super().__init__("Match not found")
        self.match_id = match_id


class SelfMatchError(LadderError):
    def __init__(self) -> None:
        super().__init__("Cannot create match against yourself")


class MatchAlreadyCompletedError(LadderError):
    def __init__(self, match_id: str) -> None:
        super().__init__("Match already completed")
        self.match_id = match_id


class InvalidWinnerError(LadderError):
    def __init__(self, match_id: str, winner_id: str) -> None:
        super().__init__("Winner must be one of the match players")
        self.match_id = match_id
        self.winner_id = winner_id


class DuplicateUserError(LadderError):
    def __init__(self, field: str) -> None:
        super().__init__(f"A user with this {field} already exists")
        self.field = field
