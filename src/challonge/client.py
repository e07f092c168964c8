"""HTTP client for the Challonge OAuth endpoints and the v2.1 REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import requests

from config import ChallongeConfig
from domain.tournaments import Participant, parse_participant_resource

logger = logging.getLogger(__name__)

JSON_API_CONTENT_TYPE = "application/vnd.api+json"


class ChallongeError(Exception):
    """Challonge answered with a non-2xx status or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ChallongeNotConfiguredError(ChallongeError):
    def __init__(self) -> None:
        super().__init__("Challonge API key not configured")


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    expires_in: int
    refresh_token: str | None = None
    scope: str | None = None

    def expires_at(self, now: datetime) -> datetime:
        return now + timedelta(seconds=self.expires_in)


def _parse_grant(payload: dict[str, Any]) -> TokenGrant:
    access_token = payload.get("access_token")
    if not access_token:
        raise ChallongeError("Token response is missing access_token", body=payload)
    return TokenGrant(
        access_token=str(access_token),
        expires_in=int(payload.get("expires_in") or 0),
        refresh_token=payload.get("refresh_token") or None,
        scope=payload.get("scope") or None,
    )


class ChallongeClient:
    """Thin wrapper over ``requests`` speaking Challonge's two auth modes.

    OAuth calls act on behalf of a connected user (``Authorization-Type: v2``
    with a bearer token). Tournament and participant calls use the
    application API key (``Authorization-Type: v1``).
    """

    def __init__(self, config: ChallongeConfig, http: requests.Session | None = None) -> None:
        self.config = config
        self.http = http or requests.Session()

    def authorization_url(self, state: str) -> str:
        query = urlencode(
            {
                "client_id": self.config.client_id,
                "redirect_uri": self.config.redirect_uri,
                "response_type": "code",
                "scope": self.config.scope,
                "state": state,
            }
        )
        return f"{self.config.authorization_url}?{query}"

    def exchange_code(self, code: str) -> TokenGrant:
        payload = self._post_form(
            self.config.token_url,
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "redirect_uri": self.config.redirect_uri,
            },
        )
        return _parse_grant(payload)

    def refresh(self, refresh_token: str) -> TokenGrant:
        payload = self._post_form(
            self.config.token_url,
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
        )
        return _parse_grant(payload)

    def revoke(self, token: str) -> None:
        self._post_form(
            self.config.revoke_url,
            {
                "token": token,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
        )

    def fetch_username(self, access_token: str) -> str | None:
        headers = {
            "Authorization-Type": "v2",
            "Authorization": f"Bearer {access_token}",
            "Content-Type": JSON_API_CONTENT_TYPE,
            "Accept": "application/json",
        }
        payload = self._request("GET", f"{self.config.api_base_url}/me.json", headers=headers)
        attributes = (payload.get("data") or {}).get("attributes") or {}
        return attributes.get("username")

    def list_tournaments(self) -> list[dict[str, Any]]:
        payload = self._api_request("GET", "tournaments.json")
        return list(payload.get("data") or [])

    def get_tournament(self, tournament_id: str) -> dict[str, Any]:
        payload = self._api_request("GET", f"tournaments/{tournament_id}.json")
        return dict(payload.get("data") or {})

    def list_participants(self, tournament_id: str) -> list[Participant]:
        payload = self._api_request("GET", f"tournaments/{tournament_id}/participants.json")
        return [parse_participant_resource(resource) for resource in payload.get("data") or []]

    def create_participant(self, tournament_id: str, username: str) -> dict[str, Any]:
        body = {
            "data": {
                "type": "Participants",
                "attributes": {"name": username, "username": username},
            }
        }
        payload = self._api_request("POST", f"tournaments/{tournament_id}/participants.json", json=body)
        return dict(payload.get("data") or {})

    def delete_participant(self, tournament_id: str, participant_id: str) -> None:
        self._api_request("DELETE", f"tournaments/{tournament_id}/participants/{participant_id}.json")

    def _api_request(self, method: str, path: str, *, json: Any = None) -> dict[str, Any]:
        if not self.config.api_key_configured:
            raise ChallongeNotConfiguredError()
        headers = {
            "Authorization-Type": "v1",
            "Authorization": self.config.api_key,
            "Content-Type": JSON_API_CONTENT_TYPE,
            "Accept": "application/json",
        }
        return self._request(method, f"{self.config.api_base_url}/{path}", headers=headers, json=json)

    def _post_form(self, url: str, data: dict[str, str]) -> dict[str, Any]:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        return self._request("POST", url, headers=headers, data=data)

    def _request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: Any = None,
        data: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self.http.request(
                method,
                url,
                headers=headers,
                json=json,
                data=data,
                timeout=self.config.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ChallongeError(f"{method} {url} failed: {exc}") from exc

        body = _response_body(response)
        if not response.ok:
            logger.error("Challonge %s %s returned %s: %s", method, url, response.status_code, body)
            raise ChallongeError(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return body if isinstance(body, dict) else {}


def _response_body(response: requests.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


__all__ = [
    "ChallongeClient",
    "ChallongeError",
    "ChallongeNotConfiguredError",
    "TokenGrant",
]
