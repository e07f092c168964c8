"""Tests for match persistence, exactly-once completion and rating replay."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from db import create_db_engine, create_session_factory, ensure_schema, transaction
from domain.errors import (
    InvalidWinnerError,
    MatchAlreadyCompletedError,
    MatchNotFoundError,
    PlayerNotFoundError,
    SelfMatchError,
)
from domain.ratings.elo.calculator import EloChange, PlayerEloCalculator
from models import Match, User
from repositories import match_repository, user_repository


def _user(session: Session, username: str) -> User:
    return user_repository.create_user(
        session,
        email=f"{username}@example.com",
        username=username,
        password_hash="not-a-real-hash",
    )


def test_create_match_validates_players(session: Session) -> None:
    alice = _user(session, "alice")
    bob = _user(session, "bob")

    with pytest.raises(PlayerNotFoundError, match="Player 1 not found"):
        match_repository.create_match(session, player1_id="missing", player2_id=bob.id)
    with pytest.raises(PlayerNotFoundError, match="Player 2 not found"):
        match_repository.create_match(session, player1_id=alice.id, player2_id="missing")
    with pytest.raises(SelfMatchError):
        match_repository.create_match(session, player1_id=alice.id, player2_id=alice.id)

    match = match_repository.create_match(session, player1_id=alice.id, player2_id=bob.id)
    assert match.completed_at is None
    assert match.winner is None
    assert match.player1.username == "alice"


def test_complete_match_applies_ratings_once(session: Session) -> None:
    alice = _user(session, "alice")
    bob = _user(session, "bob")
    match = match_repository.create_match(session, player1_id=alice.id, player2_id=bob.id)
    session.commit()

    with transaction(session):
        completed, change = match_repository.complete_match(session, match.id, alice.id)

    assert change.player1_change == 16
    assert change.player2_change == -16
    assert completed.winner == alice.id
    assert completed.player1_elo_change == 16
    assert completed.player2_elo_change == -16
    assert completed.completed_at is not None
    assert session.get(User, alice.id).elo == 1616
    assert session.get(User, bob.id).elo == 1584

    with pytest.raises(MatchAlreadyCompletedError):
        with transaction(session):
            match_repository.complete_match(session, match.id, bob.id)

    session.expire_all()
    assert session.get(User, alice.id).elo == 1616
    assert session.get(User, bob.id).elo == 1584
    assert session.get(Match, match.id).winner == alice.id


def test_complete_match_rejects_unknown_match_and_foreign_winner(session: Session) -> None:
    alice = _user(session, "alice")
    bob = _user(session, "bob")
    carol = _user(session, "carol")
    match = match_repository.create_match(session, player1_id=alice.id, player2_id=bob.id)
    session.commit()

    with pytest.raises(MatchNotFoundError):
        with transaction(session):
            match_repository.complete_match(session, "missing", alice.id)

    with pytest.raises(InvalidWinnerError):
        with transaction(session):
            match_repository.complete_match(session, match.id, carol.id)

    session.expire_all()
    assert session.get(Match, match.id).completed_at is None
    assert session.get(User, alice.id).elo == 1600
    assert session.get(User, bob.id).elo == 1600


def test_listing_and_counts(session: Session) -> None:
    alice = _user(session, "alice")
    bob = _user(session, "bob")
    carol = _user(session, "carol")
    first = match_repository.create_match(session, player1_id=alice.id, player2_id=bob.id)
    match_repository.create_match(session, player1_id=bob.id, player2_id=carol.id)
    match_repository.complete_match(session, first.id, bob.id, completed_at=datetime(2026, 1, 5))

    assert match_repository.count_matches(session) == 2
    assert match_repository.count_matches(session, user_id=alice.id) == 1
    assert len(match_repository.list_matches(session, limit=10, offset=0, user_id=bob.id)) == 2
    assert [match.id for match in match_repository.list_active_matches(session, alice.id)] == []
    assert len(match_repository.list_active_matches(session, bob.id)) == 1
    assert [match.id for match in match_repository.list_match_history(session, bob.id, limit=5, offset=0)] == [
        first.id
    ]
    assert user_repository.count_users_with_matches(session) == 3


def test_replay_reproduces_live_ratings(session: Session) -> None:
    alice = _user(session, "alice")
    bob = _user(session, "bob")
    carol = _user(session, "carol")
    idle = _user(session, "idle")

    schedule = [
        (alice, bob, alice, datetime(2026, 1, 1)),
        (bob, carol, carol, datetime(2026, 1, 2)),
        (carol, alice, carol, datetime(2026, 1, 3)),
        (alice, bob, bob, datetime(2026, 1, 4)),
    ]
    for player1, player2, winner, completed_at in schedule:
        match = match_repository.create_match(session, player1_id=player1.id, player2_id=player2.id)
        match_repository.complete_match(session, match.id, winner.id, completed_at=completed_at)
    session.commit()
    live = {user.id: user.elo for user in (alice, bob, carol)}

    for user in (alice, bob, carol):
        user_repository.set_user_elo(session, user, 1234)
    user_repository.set_user_elo(session, idle, 999)
    session.commit()

    calculator = PlayerEloCalculator()
    events = []
    for result in match_repository.fetch_completed_match_results(session):
        events.extend(calculator.process_match(result))
    match_repository.apply_replayed_events(session, events, calculator.ratings(), reset_elo=1600)
    session.commit()

    assert {user.id: session.get(User, user.id).elo for user in (alice, bob, carol)} == live
    assert session.get(User, idle.id).elo == 1600
    assert len(events) == 2 * len(schedule)


@pytest.fixture
def file_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ladder.db'}")
    ensure_schema(engine)
    yield engine
    engine.dispose()


def _pending_match(engine: Engine) -> tuple[str, str, str]:
    with create_session_factory(engine)() as session:
        alice = _user(session, "alice")
        bob = _user(session, "bob")
        match = match_repository.create_match(session, player1_id=alice.id, player2_id=bob.id)
        session.commit()
        return match.id, alice.id, bob.id


def _stored_elos(engine: Engine, *user_ids: str) -> list[int]:
    with create_session_factory(engine)() as session:
        return [session.get(User, user_id).elo for user_id in user_ids]


def test_second_session_cannot_complete_after_first_commits(file_engine: Engine) -> None:
    match_id, alice_id, bob_id = _pending_match(file_engine)
    factory = create_session_factory(file_engine)

    with factory() as first, factory() as second:
        assert first.get(Match, match_id).completed_at is None
        assert second.get(Match, match_id).completed_at is None

        with transaction(first):
            match_repository.complete_match(first, match_id, alice_id)

        with pytest.raises(MatchAlreadyCompletedError):
            with transaction(second):
                match_repository.complete_match(second, match_id, bob_id)

    assert _stored_elos(file_engine, alice_id, bob_id) == [1616, 1584]


def test_completion_write_loses_race_after_passing_checks(
    file_engine: Engine,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    match_id, alice_id, bob_id = _pending_match(file_engine)
    factory = create_session_factory(file_engine)
    calculate = match_repository.calculate_elo_change

    with factory() as first, factory() as second:

        def _first_commits_meanwhile(*args: object) -> EloChange:
            # ``second`` has already read the match as pending
            monkeypatch.setattr(match_repository, "calculate_elo_change", calculate)
            with transaction(first):
                match_repository.complete_match(first, match_id, alice_id)
            return calculate(*args)

        monkeypatch.setattr(match_repository, "calculate_elo_change", _first_commits_meanwhile)

        with pytest.raises(MatchAlreadyCompletedError):
            with transaction(second):
                match_repository.complete_match(second, match_id, bob_id)

    assert _stored_elos(file_engine, alice_id, bob_id) == [1616, 1584]
    with factory() as session:
        stored = session.get(Match, match_id)
        assert stored.winner == alice_id
        assert (stored.player1_elo_change, stored.player2_elo_change) == (16, -16)
