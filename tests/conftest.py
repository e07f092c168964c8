"""Shared fixtures: an in-memory database, the API app and a scripted Challonge client."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from api.app import create_app
from api.security import limiter
from challonge.client import ChallongeClient, ChallongeError, TokenGrant
from config import AppConfig, parse_app_config
from db import create_db_engine, create_session_factory, ensure_schema
from domain.tournaments import Participant
from repositories import user_repository

TEST_PASSWORD = "correct-horse-1"


class FakeChallongeClient(ChallongeClient):
    """Records calls and serves canned Challonge data without touching the network."""

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config.challonge)
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.tournaments: dict[str, dict[str, Any]] = {}
        self.participants: dict[str, list[Participant]] = {}
        self.username: str | None = "challonge_user"
        self.grant = TokenGrant(access_token="access-1", expires_in=3600, refresh_token="refresh-1", scope="me")
        self.refreshed_grant = TokenGrant(access_token="access-2", expires_in=7200)
        self.fail_exchange = False
        self.fail_refresh = False
        self.fail_revoke = False
        self.fail_participants = False

    def exchange_code(self, code: str) -> TokenGrant:
        self.calls.append(("exchange_code", (code,)))
        if self.fail_exchange:
            raise ChallongeError("exchange refused", status_code=401)
        return self.grant

    def refresh(self, refresh_token: str) -> TokenGrant:
        self.calls.append(("refresh", (refresh_token,)))
        if self.fail_refresh:
            raise ChallongeError("refresh refused", status_code=400)
        return self.refreshed_grant

    def revoke(self, token: str) -> None:
        self.calls.append(("revoke", (token,)))
        if self.fail_revoke:
            raise ChallongeError("revoke refused", status_code=500)

    def fetch_username(self, access_token: str) -> str | None:
        self.calls.append(("fetch_username", (access_token,)))
        return self.username

    def list_tournaments(self) -> list[dict[str, Any]]:
        self.calls.append(("list_tournaments", ()))
        return list(self.tournaments.values())

    def get_tournament(self, tournament_id: str) -> dict[str, Any]:
        self.calls.append(("get_tournament", (tournament_id,)))
        if tournament_id not in self.tournaments:
            raise ChallongeError("not found", status_code=404)
        return self.tournaments[tournament_id]

    def list_participants(self, tournament_id: str) -> list[Participant]:
        self.calls.append(("list_participants", (tournament_id,)))
        if self.fail_participants:
            raise ChallongeError("participants unavailable", status_code=503)
        return list(self.participants.get(tournament_id, []))

    def create_participant(self, tournament_id: str, username: str) -> dict[str, Any]:
        self.calls.append(("create_participant", (tournament_id, username)))
        participant_id = str(1000 + len(self.participants.get(tournament_id, [])))
        self.participants.setdefault(tournament_id, []).append(
            Participant(id=participant_id, name=username, username=username)
        )
        return {"id": participant_id, "type": "participant", "attributes": {"name": username, "username": username}}

    def delete_participant(self, tournament_id: str, participant_id: str) -> None:
        self.calls.append(("delete_participant", (tournament_id, participant_id)))
        self.participants[tournament_id] = [
            participant for participant in self.participants.get(tournament_id, []) if participant.id != participant_id
        ]

    def add_tournament(self, challonge_id: str, name: str, participants_count: int = 0) -> None:
        self.tournaments[challonge_id] = {
            "id": challonge_id,
            "type": "tournament",
            "attributes": {
                "name": name,
                "tournament_type": "single elimination",
                "url": f"{name.lower().replace(' ', '_')}",
                "state": "pending",
                "starts_at": "2026-03-01T18:00:00.000Z",
                "game_name": "Chess",
                "participants_count": participants_count,
            },
        }

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def config() -> AppConfig:
    return parse_app_config(
        {
            "database": {"url": "sqlite:///:memory:"},
            "auth": {"jwt_secret": "test-secret", "bcrypt_rounds": 4},
            "rate_limit": {"enabled": False},
            "challonge": {
                "client_id": "client-id",
                "client_secret": "client-secret",
                "api_key": "test-api-key",
            },
        }
    )


@pytest.fixture
def engine(config: AppConfig) -> Iterator[Engine]:
    engine = create_db_engine(config.database.url)
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    with create_session_factory(engine)() as session:
        yield session


@pytest.fixture
def fake_challonge(config: AppConfig) -> FakeChallongeClient:
    return FakeChallongeClient(config)


@pytest.fixture
def app(config: AppConfig, engine: Engine, fake_challonge: FakeChallongeClient) -> FastAPI:
    limiter.reset()
    return create_app(config, engine=engine, challonge_client=fake_challonge)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client: TestClient) -> Callable[..., dict[str, Any]]:
    """Register a user through the API and return its JSON (including ``token``)."""

    def _register(username: str, email: str | None = None, password: str = TEST_PASSWORD) -> dict[str, Any]:
        response = client.post(
            "/api/auth/register",
            json={"email": email or f"{username}@example.com", "username": username, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def promote(engine: Engine) -> Callable[[str], None]:
    """Grant admin to an existing user id."""

    def _promote(user_id: str) -> None:
        with create_session_factory(engine)() as session:
            user = user_repository.require_user(session, user_id)
            user_repository.set_user_roles(session, user, admin=True)
            session.commit()

    return _promote


@pytest.fixture
def admin(register: Callable[..., dict[str, Any]], promote: Callable[[str], None]) -> dict[str, Any]:
    user = register("admin_user")
    promote(user["id"])
    return user
