"""Head-to-head player Elo logic."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from math import floor
from typing import Protocol

from domain.ratings.common import MatchResult

INITIAL_ELO = 1600
K_FACTOR = 32
SCALE_FACTOR = 400.0


@dataclass(frozen=True)
class EloChange:
    player1_new_elo: int
    player2_new_elo: int
    player1_change: int
    player2_change: int


@dataclass(frozen=True)
class PlayerEloEvent:
    player_id: str
    opponent_id: str
    match_id: str
    event_time: datetime
    won: bool
    expected_score: float
    pre_elo: int
    elo_delta: int
    post_elo: int


class MatchOutcome(Protocol):
    """Anything that records who played and who won."""

    winner: str | None
    player1_id: str
    player2_id: str


def calculate_expected_score(
    rating: float,
    opponent_rating: float,
    scale_factor: float = SCALE_FACTOR,
) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


def round_half_up(value: float) -> int:
    """Round to the nearest integer; exact .5 ties go toward positive infinity."""
    return int(floor(value + 0.5))


def calculate_elo_change(
    player1_elo: int,
    player2_elo: int,
    player1_won: bool,
    *,
    k_factor: float = K_FACTOR,
) -> EloChange:
    """Compute both players' rating changes for one decided match.

    Each side's change is rounded on its own, so the two changes are exact
    negatives before rounding and may differ by one afterwards. New ratings
    are floored at zero and are not capped.
    """
    player1_expected = calculate_expected_score(player1_elo, player2_elo)
    player2_expected = calculate_expected_score(player2_elo, player1_elo)

    player1_actual = 1.0 if player1_won else 0.0
    player2_actual = 0.0 if player1_won else 1.0

    player1_change = round_half_up(k_factor * (player1_actual - player1_expected))
    player2_change = round_half_up(k_factor * (player2_actual - player2_expected))

    return EloChange(
        player1_new_elo=max(0, player1_elo + player1_change),
        player2_new_elo=max(0, player2_elo + player2_change),
        player1_change=player1_change,
        player2_change=player2_change,
    )


def get_new_user_elo() -> int:
    """Starting rating for a newly registered player."""
    return INITIAL_ELO


def count_wins(matches: Iterable[MatchOutcome], user_id: str) -> int:
    """Count matches won by ``user_id``; undecided matches never count."""
    return sum(1 for match in matches if match.winner == user_id)


class PlayerEloCalculator:
    """Stateful match-by-match replay of the ladder rating."""

    def __init__(self, *, initial_elo: int = INITIAL_ELO, k_factor: float = K_FACTOR) -> None:
        self.initial_elo = initial_elo
        self.k_factor = k_factor
        self._ratings: dict[str, int] = {}

    def get_rating(self, player_id: str) -> int:
        return self._ratings.get(player_id, self.initial_elo)

    def tracked_player_count(self) -> int:
        return len(self._ratings)

    def ratings(self) -> dict[str, int]:
        """Return a snapshot of current player ratings."""
        return dict(self._ratings)

    def process_match(self, match_result: MatchResult) -> tuple[PlayerEloEvent, PlayerEloEvent]:
        if match_result.player1_id == match_result.player2_id:
            raise ValueError(
                f"match_id={match_result.match_id} has identical players ({match_result.player1_id})"
            )

        if match_result.winner_id not in (match_result.player1_id, match_result.player2_id):
            raise ValueError(
                f"winner_id={match_result.winner_id} does not belong to match players "
                f"{match_result.player1_id}/{match_result.player2_id} "
                f"for match_id={match_result.match_id}"
            )

        player1_pre = self.get_rating(match_result.player1_id)
        player2_pre = self.get_rating(match_result.player2_id)
        player1_won = match_result.winner_id == match_result.player1_id

        change = calculate_elo_change(
            player1_pre,
            player2_pre,
            player1_won,
            k_factor=self.k_factor,
        )

        self._ratings[match_result.player1_id] = change.player1_new_elo
        self._ratings[match_result.player2_id] = change.player2_new_elo

        player1_event = PlayerEloEvent(
            player_id=match_result.player1_id,
            opponent_id=match_result.player2_id,
            match_id=match_result.match_id,
            event_time=match_result.completed_at,
            won=player1_won,
            expected_score=calculate_expected_score(player1_pre, player2_pre),
            pre_elo=player1_pre,
            elo_delta=change.player1_change,
            post_elo=change.player1_new_elo,
        )
        player2_event = PlayerEloEvent(
            player_id=match_result.player2_id,
            opponent_id=match_result.player1_id,
            match_id=match_result.match_id,
            event_time=match_result.completed_at,
            won=not player1_won,
            expected_score=calculate_expected_score(player2_pre, player1_pre),
            pre_elo=player2_pre,
            elo_delta=change.player2_change,
            post_elo=change.player2_new_elo,
        )
        return player1_event, player2_event
