"""Tournament and participant payloads from the hosting provider."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class TournamentSnapshot:
    """Tournament attributes as reported by Challonge."""

    challonge_id: str
    name: str
    tournament_type: str
    url: str | None = None
    state: str | None = None
    starts_at: datetime | None = None
    game_name: str | None = None
    participant_count: int = 0


@dataclass(frozen=True)
class Participant:
    id: str
    name: str | None = None
    username: str | None = None
    seed: int | None = None

    def is_user(self, challonge_username: str) -> bool:
        return challonge_username in (self.username, self.name)


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def parse_tournament_resource(resource: Mapping[str, Any]) -> TournamentSnapshot:
    """Build a snapshot from one JSON:API ``data`` resource."""
    attributes = resource.get("attributes") or {}
    challonge_id = str(resource.get("id", "")).strip()
    if not challonge_id:
        raise ValueError("Tournament resource is missing its id")

    return TournamentSnapshot(
        challonge_id=challonge_id,
        name=str(attributes.get("name") or ""),
        tournament_type=str(attributes.get("tournament_type") or ""),
        url=attributes.get("url") or None,
        state=attributes.get("state") or None,
        starts_at=_parse_timestamp(attributes.get("starts_at")),
        game_name=attributes.get("game_name") or None,
        participant_count=int(attributes.get("participants_count") or 0),
    )


def parse_participant_resource(resource: Mapping[str, Any]) -> Participant:
    attributes = resource.get("attributes") or {}
    seed = attributes.get("seed")
    return Participant(
        id=str(resource.get("id", "")),
        name=attributes.get("name"),
        username=attributes.get("username"),
        seed=int(seed) if seed is not None else None,
    )


def find_participant(participants: Iterable[Participant], challonge_username: str) -> Participant | None:
    """First participant whose username or display name equals ``challonge_username``, in list order."""
    for participant in participants:
        if participant.is_user(challonge_username):
            return participant
    return None


__all__ = [
    "Participant",
    "TournamentSnapshot",
    "find_participant",
    "parse_participant_resource",
    "parse_tournament_resource",
]
