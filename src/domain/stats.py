"""Win/loss aggregation for leaderboards and player dashboards."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, TypeVar

from domain.ratings.elo.calculator import count_wins, round_half_up

RECENT_MATCH_COUNT = 10


class RecordedMatch(Protocol):
    winner: str | None
    player1_id: str
    player2_id: str
    completed_at: datetime | None


M = TypeVar("M", bound=RecordedMatch)


@dataclass(frozen=True)
class PlayerRecord:
    total_matches: int
    wins: int
    losses: int
    win_rate: float


def calculate_win_rate(wins: int, total_matches: int) -> float:
    """Win percentage rounded to two decimals; 0 when nothing was played."""
    if total_matches <= 0:
        return 0.0
    return round_half_up((wins / total_matches) * 100 * 100) / 100


def completed_only(matches: Iterable[M]) -> list[M]:
    return [match for match in matches if match.completed_at is not None]


def summarize_record(matches: Iterable[RecordedMatch], user_id: str) -> PlayerRecord:
    """Aggregate completed matches for one player; pending matches are ignored."""
    completed = completed_only(matches)
    wins = count_wins(completed, user_id)
    total_matches = len(completed)
    return PlayerRecord(
        total_matches=total_matches,
        wins=wins,
        losses=total_matches - wins,
        win_rate=calculate_win_rate(wins, total_matches),
    )


def most_recent_completed(matches: Iterable[M], limit: int = RECENT_MATCH_COUNT) -> Sequence[M]:
    completed = completed_only(matches)
    completed.sort(key=lambda match: match.completed_at or datetime.min, reverse=True)
    return completed[:limit]


def opponent_of(match: RecordedMatch, user_id: str) -> str:
    return match.player2_id if match.player1_id == user_id else match.player1_id


__all__ = [
    "PlayerRecord",
    "RECENT_MATCH_COUNT",
    "calculate_win_rate",
    "completed_only",
    "most_recent_completed",
    "opponent_of",
    "summarize_record",
]
