"""Quickbase REST API client.

A thin, synchronous wrapper around ``httpx.Client``. Each method maps to a
single endpoint and returns the decoded JSON body. HTTP failures are
translated into ``qbdev.errors`` at this boundary so callers never see
httpx exceptions:

- 404 -> ``NotFoundError``
- any other non-2xx status -> ``TransportError`` with status, message and body
- connection / timeout problems -> ``TransportError`` with status 0
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from qbdev.config import DEFAULT_API_URL, DEFAULT_TIMEOUT, Settings, normalize_realm
from qbdev.errors import NotFoundError, TransportError

logger = logging.getLogger(__name__)


class QuickbaseClient:
    """Resource-oriented CRUD over a single Quickbase realm."""

    def __init__(
        self,
        realm: str = "",
        user_token: str = "",
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.realm = normalize_realm(realm)
        self.user_token = user_token
        self.api_url = api_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self.api_url,
            headers={
                "QB-Realm-Hostname": self.realm,
                "Authorization": f"QB-USER-TOKEN {self.user_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> QuickbaseClient:
        return cls(
            realm=settings.realm,
            user_token=settings.user_token,
            api_url=settings.api_url,
            timeout=settings.timeout,
            **kwargs,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> QuickbaseClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        logger.debug("%s %s params=%s", method, path, params)
        try:
            resp = self._http.request(method, path, params=params or None, json=json)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise _translate_status_error(exc.response) from exc
        except httpx.RequestError as exc:
            raise TransportError(0, f"Failed to reach Quickbase API: {exc}") from exc

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(resp.status_code, "Invalid JSON response", resp.text) from exc

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def get_app(self, app_id: str) -> dict:
        return self._request("GET", f"/apps/{app_id}")

    def create_app(self, data: dict) -> dict:
        return self._request("POST", "/apps", json=data)

    def update_app(self, app_id: str, data: dict) -> dict:
        return self._request("POST", f"/apps/{app_id}", json=data)

    def delete_app(self, app_id: str, name: str) -> dict:
        # The API asks for the app name as a confirmation.
        return self._request("DELETE", f"/apps/{app_id}", json={"name": name})

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def get_tables(self, app_id: str) -> list[dict]:
        return self._request("GET", "/tables", params={"appId": app_id})

    def get_table(self, table_id: str, app_id: str | None = None) -> dict:
        return self._request("GET", f"/tables/{table_id}", params={"appId": app_id})

    def create_table(self, app_id: str, data: dict) -> dict:
        return self._request("POST", "/tables", params={"appId": app_id}, json=data)

    def update_table(self, table_id: str, app_id: str, data: dict) -> dict:
        return self._request("POST", f"/tables/{table_id}", params={"appId": app_id}, json=data)

    def delete_table(self, table_id: str, app_id: str) -> dict:
        return self._request("DELETE", f"/tables/{table_id}", params={"appId": app_id})

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def get_fields(self, table_id: str) -> list[dict]:
        return self._request("GET", "/fields", params={"tableId": table_id})

    def get_field(self, field_id: int, table_id: str) -> dict:
        return self._request("GET", f"/fields/{field_id}", params={"tableId": table_id})

    def create_field(self, table_id: str, data: dict) -> dict:
        return self._request("POST", "/fields", params={"tableId": table_id}, json=data)

    def update_field(self, field_id: int, table_id: str, data: dict) -> dict:
        return self._request("POST", f"/fields/{field_id}", params={"tableId": table_id}, json=data)

    def delete_field(self, field_id: int, table_id: str) -> dict:
        return self._request(
            "DELETE", "/fields", params={"tableId": table_id}, json={"fieldIds": [field_id]}
        )

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def query_records(self, table_id: str, query: dict | None = None) -> dict:
        return self._request("POST", "/records/query", json={"from": table_id, **(query or {})})

    def upsert_records(self, table_id: str, records: list[dict]) -> dict:
        return self._request("POST", "/records", json={"to": table_id, "data": records})

    def delete_records(self, table_id: str, where: str) -> dict:
        return self._request("DELETE", "/records", json={"from": table_id, "where": where})

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def get_relationships(self, child_table_id: str) -> dict:
        return self._request("GET", f"/tables/{child_table_id}/relationships")

    def create_relationship(self, child_table_id: str, data: dict) -> dict:
        return self._request("POST", f"/tables/{child_table_id}/relationship", json=data)

    def update_relationship(self, relationship_id: int, child_table_id: str, data: dict) -> dict:
        return self._request(
            "POST", f"/tables/{child_table_id}/relationship/{relationship_id}", json=data
        )

    def delete_relationship(self, relationship_id: int, child_table_id: str) -> dict:
        return self._request("DELETE", f"/tables/{child_table_id}/relationship/{relationship_id}")

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def get_reports(self, table_id: str) -> list[dict]:
        return self._request("GET", "/reports", params={"tableId": table_id})

    def get_report(self, report_id: str, table_id: str) -> dict:
        return self._request("GET", f"/reports/{report_id}", params={"tableId": table_id})

    def create_report(self, table_id: str, data: dict) -> dict:
        return self._request("POST", "/reports", params={"tableId": table_id}, json=data)

    def update_report(self, report_id: str, table_id: str, data: dict) -> dict:
        return self._request("POST", f"/reports/{report_id}", params={"tableId": table_id}, json=data)

    def delete_report(self, report_id: str, table_id: str) -> dict:
        return self._request("DELETE", f"/reports/{report_id}", params={"tableId": table_id})

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_users(self, account_id: str | None = None) -> dict:
        return self._request("POST", "/users", params={"accountId": account_id}, json={})

    def get_user(self, user_id: str) -> dict:
        return self._request("GET", f"/users/{user_id}")

    # ------------------------------------------------------------------
    # App events (webhooks)
    # ------------------------------------------------------------------

    def get_app_events(self, app_id: str) -> list[dict]:
        return self._request("GET", f"/apps/{app_id}/events")

    def create_app_event(self, app_id: str, data: dict) -> dict:
        return self._request("POST", f"/apps/{app_id}/events", json=data)

    def delete_app_event(self, app_id: str, event_id: str) -> dict:
        return self._request("DELETE", f"/apps/{app_id}/events/{event_id}")


def _translate_status_error(response: httpx.Response) -> TransportError:
    """Map an error response onto the qb-dev error types."""
    body = response.text
    message = response.reason_phrase or "request failed"
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = payload.get("message") or message
        if payload.get("description"):
            message = f"{message}: {payload['description']}"

    logger.debug("Quickbase API error %s: %s", response.status_code, message)
    if response.status_code == 404:
        return NotFoundError(response.status_code, message, body)
    return TransportError(response.status_code, message, body)
