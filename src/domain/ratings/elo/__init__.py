"""Elo rating modules."""

from domain.ratings.elo.calculator import (
    INITIAL_ELO,
    K_FACTOR,
    SCALE_FACTOR,
    EloChange,
    PlayerEloCalculator,
    PlayerEloEvent,
    calculate_elo_change,
    calculate_expected_score,
    count_wins,
    get_new_user_elo,
    round_half_up,
)

__all__ = [
    "EloChange",
    "INITIAL_ELO",
    "K_FACTOR",
    "PlayerEloCalculator",
    "PlayerEloEvent",
    "SCALE_FACTOR",
    "calculate_elo_change",
    "calculate_expected_score",
    "count_wins",
    "get_new_user_elo",
    "round_half_up",
]
