"""Shared types for ladder rating calculations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MatchResult:
    """Completed head-to-head match payload used when replaying ratings."""

    match_id: str
    completed_at: datetime
    player1_id: str
    player2_id: str
    winner_id: str
