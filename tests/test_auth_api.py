"""API tests for registration, login and the current-user endpoints."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import jwt
from fastapi.testclient import TestClient

from conftest import TEST_PASSWORD, auth_headers


def test_health_route(client: TestClient) -> None:
    response = client.get("/api/test")
    assert response.status_code == 200
    assert response.json() == {"message": "Test route is working!"}


def test_register_returns_private_user_and_token(client: TestClient) -> None:
    response = client.post(
        "/api/auth/register",
        json={"email": "alice@example.com", "username": "alice", "password": TEST_PASSWORD},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "alice@example.com"
    assert body["username"] == "alice"
    assert body["elo"] == 1600
    assert body["admin"] is False
    assert body["tournamentOrganizer"] is False
    assert body["blogger"] is False
    assert "password" not in body

    claims = jwt.decode(body["token"], "test-secret", algorithms=["HS256"])
    assert claims["sub"] == body["id"]
    assert claims["email"] == "alice@example.com"
    assert claims["admin"] is False
    assert claims["tournamentOrganizer"] is False


def test_register_validates_input(client: TestClient) -> None:
    bad_inputs = [
        {"email": "nope", "username": "alice", "password": TEST_PASSWORD},
        {"email": "alice@example.com", "username": "a!", "password": TEST_PASSWORD},
        {"email": "alice@example.com", "username": "alice", "password": "short"},
    ]
    for payload in bad_inputs:
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"

    missing = client.post("/api/auth/register", json={"email": "alice@example.com"})
    assert missing.status_code == 400


def test_register_rejects_duplicates(client: TestClient, register: Callable[..., dict[str, Any]]) -> None:
    register("alice")

    same_email = client.post(
        "/api/auth/register",
        json={"email": "alice@example.com", "username": "alice2", "password": TEST_PASSWORD},
    )
    assert same_email.status_code == 409
    assert same_email.json() == {"error": "A user with this email already exists"}

    same_username = client.post(
        "/api/auth/register",
        json={"email": "other@example.com", "username": "alice", "password": TEST_PASSWORD},
    )
    assert same_username.status_code == 409


def test_login(client: TestClient, register: Callable[..., dict[str, Any]]) -> None:
    user = register("alice")

    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 200
    token = response.json()["token"]
    assert jwt.decode(token, "test-secret", algorithms=["HS256"])["sub"] == user["id"]

    wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong-password"})
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Invalid credentials"

    unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": TEST_PASSWORD})
    assert unknown.status_code == 401


def test_me_endpoints(client: TestClient, register: Callable[..., dict[str, Any]]) -> None:
    user = register("alice")

    for path in ("/api/auth/me", "/api/users/me"):
        response = client.get(path, headers=auth_headers(user["token"]))
        assert response.status_code == 200
        assert response.json() == {
            "id": user["id"],
            "username": "alice",
            "email": "alice@example.com",
            "elo": 1600,
            "admin": False,
            "tournamentOrganizer": False,
            "blogger": False,
        }


def test_protected_routes_require_valid_token(client: TestClient) -> None:
    missing = client.get("/api/users/me")
    assert missing.status_code == 401
    assert missing.json()["error"] == "Unauthorized"

    forged = jwt.encode({"sub": "someone", "exp": 4102444800}, "wrong-secret", algorithm="HS256")
    assert client.get("/api/users/me", headers=auth_headers(forged)).status_code == 401

    expired = jwt.encode({"sub": "someone", "exp": 1}, "test-secret", algorithm="HS256")
    assert client.get("/api/users/me", headers=auth_headers(expired)).status_code == 401
