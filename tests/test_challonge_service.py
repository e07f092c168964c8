"""Tests for the Challonge client, participant cache and token upkeep."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

import pytest
import requests
from sqlalchemy.orm import Session

from challonge import service
from challonge.cache import ParticipantCache
from challonge.client import ChallongeClient, ChallongeError, ChallongeNotConfiguredError
from config import AppConfig
from conftest import FakeChallongeClient
from domain.tournaments import Participant, find_participant, parse_tournament_resource
from repositories import challonge_repository, user_repository


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class RecordingHttp:
    """Stands in for ``requests.Session``: records requests, replays queued responses."""

    def __init__(self, *responses: tuple[int, Any]) -> None:
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.requests.append({"method": method, "url": url, **kwargs})
        status_code, payload = self.responses.pop(0)
        response = requests.Response()
        response.status_code = status_code
        response._content = json.dumps(payload).encode("utf-8") if payload is not None else b""
        return response


def test_participant_cache_expires_entries() -> None:
    clock = FakeClock()
    cache = ParticipantCache(ttl_seconds=300, clock=clock)
    participants = [Participant(id="1", name="alice")]

    assert cache.get("t1") is None
    cache.set("t1", participants)
    clock.now += 299
    assert cache.get("t1") == participants

    clock.now += 1
    assert cache.get("t1") is None

    cache.set("t1", participants)
    cache.invalidate("t1")
    assert cache.get("t1") is None


def test_state_round_trip() -> None:
    state = service.encode_state("user-1", now=datetime(2026, 1, 1))
    decoded = service.decode_state(state)
    assert decoded.user_id == "user-1"
    assert decoded.timestamp == 1767225600000

    for bad in ("", "not base64!", "bnVsbA=="):
        with pytest.raises(ValueError, match="Invalid state parameter"):
            service.decode_state(bad)


def test_find_participant_matches_username_or_name_in_order() -> None:
    participants = [
        Participant(id="1", name="Display", username="someone"),
        Participant(id="2", name="challonge_user", username=None),
    ]
    assert find_participant(participants, "someone").id == "1"
    assert find_participant(participants, "challonge_user").id == "2"
    assert find_participant(participants, "nobody") is None

    name_first = [Participant(id="3", name="someone"), Participant(id="4", username="someone")]
    assert find_participant(name_first, "someone").id == "3"


def test_parse_tournament_resource() -> None:
    snapshot = parse_tournament_resource(
        {
            "id": "123",
            "attributes": {
                "name": "Winter Open",
                "tournament_type": "swiss",
                "starts_at": "2026-02-01T12:30:00.000+01:00",
                "participants_count": "8",
            },
        }
    )
    assert snapshot.challonge_id == "123"
    assert snapshot.starts_at == datetime(2026, 2, 1, 11, 30)
    assert snapshot.participant_count == 8
    assert snapshot.url is None

    with pytest.raises(ValueError):
        parse_tournament_resource({"attributes": {"name": "No id"}})


def test_fetch_participants_uses_cache_and_tolerates_failures(config: AppConfig) -> None:
    client = FakeChallongeClient(config)
    client.participants["t1"] = [Participant(id="1", username="alice")]
    cache = ParticipantCache()

    assert service.fetch_participants(client, cache, "t1") == client.participants["t1"]
    assert service.fetch_participants(client, cache, "t1") == client.participants["t1"]
    assert client.call_names() == ["list_participants"]

    client.fail_participants = True
    assert service.fetch_participants(client, cache, "t2") is None


def test_get_valid_access_token(session: Session, config: AppConfig) -> None:
    user = user_repository.create_user(session, email="a@example.com", username="alice", password_hash="x")
    now = datetime(2026, 1, 1, 12, 0)
    connection = challonge_repository.upsert_connection(
        session,
        user_id=user.id,
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=now + timedelta(minutes=10),
        scope="me",
        challonge_username="challonge_user",
    )
    client = FakeChallongeClient(config)

    fresh = service.get_valid_access_token(session, client, connection, threshold_seconds=300, now=now)
    assert fresh.access_token == "access-1"
    assert client.calls == []

    client.fail_refresh = True
    later = now + timedelta(minutes=6)
    kept = service.get_valid_access_token(session, client, connection, threshold_seconds=300, now=later)
    assert kept.access_token == "access-1"

    client.fail_refresh = False
    renewed = service.get_valid_access_token(session, client, connection, threshold_seconds=300, now=later)
    assert renewed.access_token == "access-2"
    assert renewed.refresh_token == "refresh-1"
    assert renewed.expires_at == later + timedelta(seconds=7200)


def test_client_sends_api_key_and_parses_participants(config: AppConfig) -> None:
    http = RecordingHttp(
        (200, {"data": [{"id": "5", "attributes": {"name": "Alice", "username": "alice", "seed": 2}}]}),
    )
    client = ChallongeClient(config.challonge, http=http)

    participants = client.list_participants("t1")

    assert participants == [Participant(id="5", name="Alice", username="alice", seed=2)]
    sent = http.requests[0]
    assert sent["method"] == "GET"
    assert sent["url"].endswith("/tournaments/t1/participants.json")
    assert sent["headers"]["Authorization-Type"] == "v1"
    assert sent["headers"]["Authorization"] == "test-api-key"


def test_client_exchanges_code_with_form_post(config: AppConfig) -> None:
    http = RecordingHttp((200, {"access_token": "tok", "expires_in": 3600, "refresh_token": "ref"}))
    client = ChallongeClient(config.challonge, http=http)

    grant = client.exchange_code("the-code")

    assert grant.access_token == "tok"
    assert grant.expires_at(datetime(2026, 1, 1)) == datetime(2026, 1, 1, 1, 0)
    sent = http.requests[0]
    assert sent["data"]["grant_type"] == "authorization_code"
    assert sent["data"]["code"] == "the-code"
    assert sent["headers"]["Content-Type"] == "application/x-www-form-urlencoded"


def test_client_raises_on_error_status(config: AppConfig) -> None:
    client = ChallongeClient(config.challonge, http=RecordingHttp((404, {"errors": ["missing"]})))

    with pytest.raises(ChallongeError) as excinfo:
        client.get_tournament("nope")
    assert excinfo.value.status_code == 404
    assert excinfo.value.body == {"errors": ["missing"]}


def test_client_requires_api_key(config: AppConfig) -> None:
    http = RecordingHttp()
    client = ChallongeClient(replace(config.challonge, api_key=""), http=http)

    with pytest.raises(ChallongeNotConfiguredError):
        client.list_tournaments()
    assert http.requests == []
