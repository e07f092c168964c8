"""Request and response bodies. JSON keys are camelCase; Python attributes stay snake_case."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


# Columns store naive UTC; responses carry an explicit offset.
UtcDateTime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(CamelModel):
    message: str


class SuccessResponse(CamelModel):
    success: bool = True
    message: str


# Users


class UserPublic(CamelModel):
    id: str
    username: str
    elo: int
    admin: bool
    tournament_organizer: bool
    blogger: bool


class UserPrivate(UserPublic):
    email: str


class RegisterRequest(CamelModel):
    email: str
    username: str
    password: str


class LoginRequest(CamelModel):
    email: str
    password: str


class RegisterResponse(UserPrivate):
    token: str


class TokenResponse(CamelModel):
    token: str


# Matches


class MatchOut(CamelModel):
    id: str
    player1_id: str
    player2_id: str
    winner: str | None
    player1_elo_change: int | None
    player2_elo_change: int | None
    created_at: UtcDateTime
    completed_at: UtcDateTime | None
    player1: UserPublic
    player2: UserPublic


class CreateMatchRequest(CamelModel):
    player1_id: str
    player2_id: str


class CompleteMatchRequest(CamelModel):
    winner_id: str


class CompleteMatchResponse(CamelModel):
    match: MatchOut
    player1_elo_change: int
    player2_elo_change: int


class OffsetPagination(CamelModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class MatchPage(CamelModel):
    matches: list[MatchOut]
    pagination: OffsetPagination


# Leaderboards and stats


class LeaderboardEntry(CamelModel):
    id: str
    username: str
    elo: int
    wins_as_player1: int
    wins_as_player2: int
    total_wins: int
    total_matches: int


class PagePagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class LeaderboardPage(CamelModel):
    leaderboard: list[LeaderboardEntry]
    pagination: PagePagination


class RankedEntry(CamelModel):
    rank: int
    id: str
    username: str
    elo: int
    total_matches: int
    wins: int
    losses: int
    win_rate: float


class RecentMatch(CamelModel):
    id: str
    opponent: UserPublic
    result: Literal["win", "loss"]
    elo_change: int
    completed_at: UtcDateTime | None


class UserStats(CamelModel):
    id: str
    username: str
    email: str | None = None
    elo: int
    total_matches: int
    wins: int
    losses: int
    win_rate: float
    recent_matches: list[RecentMatch]


# Admin


class AdminUser(CamelModel):
    id: str
    email: str
    username: str
    elo: int
    is_admin: bool
    is_tournament_organizer: bool
    is_blogger: bool
    created_at: UtcDateTime
    total_matches: int
    total_wins: int


class AdminUserPage(CamelModel):
    users: list[AdminUser]
    pagination: OffsetPagination


# Challonge


class ConnectResponse(CamelModel):
    authorization_url: str
    state: str


class CallbackRequest(CamelModel):
    code: str | None = None
    state: str | None = None


class CallbackResponse(CamelModel):
    success: bool = True
    connected: bool = True
    expires_at: UtcDateTime


class ConnectionStatus(CamelModel):
    connected: bool
    expires_at: UtcDateTime | None = None
    is_expired: bool | None = None
    scope: str | None = None
    connected_since: UtcDateTime | None = None


class RefreshResponse(CamelModel):
    success: bool = True
    expires_at: UtcDateTime
    scope: str | None


class AccessTokenResponse(CamelModel):
    access_token: str
    expires_at: UtcDateTime


class TournamentOut(CamelModel):
    id: str
    challonge_id: str
    user_id: str | None
    name: str
    tournament_type: str
    url: str | None
    state: str | None
    starts_at: UtcDateTime | None
    game_name: str | None
    participant_count: int
    last_synced_at: UtcDateTime
    created_at: UtcDateTime
    updated_at: UtcDateTime
    is_participant: bool = False
    user_challonge_username: str | None = None


class TournamentList(CamelModel):
    tournaments: list[TournamentOut]
    count: int


class TournamentDetail(CamelModel):
    tournament: TournamentOut
    full_data: dict[str, Any]


class JoinResponse(SuccessResponse):
    participant: dict[str, Any]
