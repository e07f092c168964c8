"""In-process cache of tournament participant lists."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from domain.tournaments import Participant

DEFAULT_TTL_SECONDS = 300


@dataclass(frozen=True)
class _Entry:
    participants: tuple[Participant, ...]
    stored_at: float


class ParticipantCache:
    """Per-tournament participant lists, dropped after ``ttl_seconds``.

    Join and leave invalidate the tournament's entry so the next lookup
    reaches Challonge again.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, tournament_id: str) -> list[Participant] | None:
        with self._lock:
            entry = self._entries.get(tournament_id)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[tournament_id]
                return None
            return list(entry.participants)

    def set(self, tournament_id: str, participants: list[Participant]) -> None:
        with self._lock:
            self._entries[tournament_id] = _Entry(tuple(participants), self._clock())

    def invalidate(self, tournament_id: str) -> None:
        with self._lock:
            self._entries.pop(tournament_id, None)
