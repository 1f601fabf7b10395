"""Schema fetcher — project a remote application into the local schema shape.

The result is normalized exactly like a loaded document, so remote and
local trees can be compared directly by ``qbdev.sync.diff``.

Reports and app events are optional extras: if Quickbase refuses to list
them the fetch carries on with degraded data. Those outcomes are kept as
``SoftResult`` values so callers can tell "nothing there" from "could not
look".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from qbdev.errors import TransportError
from qbdev.models.app_schema import Application
from qbdev.schema.shape import DEFAULT_DATE_FORMAT, DEFAULT_TIME_ZONE
from qbdev.schema.validator import apply_defaults

logger = logging.getLogger(__name__)

_QUERY_KEYS = ("where", "groupBy", "sortBy", "select")


@dataclass
class SoftResult:
    """Data from a fetch step that is allowed to fail."""

    data: Any
    source: str = ""
    warning: str = ""

    @property
    def degraded(self) -> bool:
        return bool(self.warning)

    @classmethod
    def ok(cls, data: Any, source: str = "") -> SoftResult:
        return cls(data=data, source=source)

    @classmethod
    def failed(cls, empty: Any, source: str, error: Exception) -> SoftResult:
        return cls(data=empty, source=source, warning=f"Unable to fetch {source}: {error}")


class SchemaFetcher:
    """Reads remote state through a gateway and builds an ``Application``."""

    def __init__(self, gateway):
        self.gateway = gateway
        self.warnings: list[SoftResult] = []

    def fetch(self, app_id: str) -> Application:
        """Fetch the application *app_id* and everything it owns.

        App, table and field failures propagate. Report and webhook
        failures are recorded in ``self.warnings`` and degrade to empty.
        """
        self.warnings = []

        app = self.gateway.get_app(app_id)
        tables = self.gateway.get_tables(app_id)
        logger.info("Fetching %s: %d table(s)", app.get("name", app_id), len(tables))

        doc: dict = {
            "id": app.get("id", app_id),
            "name": app.get("name", ""),
            "description": app.get("description") or "",
            "dateFormat": app.get("dateFormat") or DEFAULT_DATE_FORMAT,
            "timeZone": app.get("timeZone") or DEFAULT_TIME_ZONE,
            "variables": _variables(app.get("variables")),
            "tables": [self._fetch_table(t["id"], app_id) for t in tables],
        }

        events = self._fetch_events(app_id)
        if events.data:
            doc["webhooks"] = [_project_event(e) for e in events.data]

        return Application.from_dict(apply_defaults(doc))

    def _fetch_table(self, table_id: str, app_id: str) -> dict:
        table = self.gateway.get_table(table_id, app_id)
        name = table.get("name", table_id)
        logger.debug("Fetching table %s (%s)", name, table_id)

        fields = self.gateway.get_fields(table_id)
        reports = self._fetch_reports(table_id, name)

        doc: dict = {
            "id": table.get("id", table_id),
            "name": name,
            "description": table.get("description") or "",
            "fields": [_project_field(f) for f in fields],
        }
        for key in ("singleRecordName", "pluralRecordName"):
            if table.get(key) is not None:
                doc[key] = table[key]

        if reports.data:
            doc["reports"] = [_project_report(r) for r in reports.data]

        relationships = table.get("relationships") or []
        if relationships:
            doc["relationships"] = [_project_relationship(r) for r in relationships]

        return doc

    def _fetch_reports(self, table_id: str, table_name: str) -> SoftResult:
        source = f"reports for table {table_name}"
        try:
            return SoftResult.ok(self.gateway.get_reports(table_id) or [], source)
        except TransportError as e:
            return self._soft_failure([], source, e)

    def _fetch_events(self, app_id: str) -> SoftResult:
        source = "webhooks"
        try:
            return SoftResult.ok(self.gateway.get_app_events(app_id) or [], source)
        except TransportError as e:
            return self._soft_failure([], source, e)

    def _soft_failure(self, empty: Any, source: str, error: Exception) -> SoftResult:
        result = SoftResult.failed(empty, source, error)
        logger.warning(result.warning)
        self.warnings.append(result)
        return result


def _variables(raw) -> dict[str, str]:
    # The API lists variables as [{name, value}]; documents use a mapping.
    if isinstance(raw, list):
        return {v["name"]: str(v.get("value", "")) for v in raw if "name" in v}
    return dict(raw or {})


def _project_field(f: dict) -> dict:
    return {
        "id": f.get("id"),
        "label": f.get("label", ""),
        "fieldType": f.get("fieldType", ""),
        "required": bool(f.get("required", False)),
        "unique": bool(f.get("unique", False)),
        "appearsByDefault": f.get("appearsByDefault") is not False,
        "findEnabled": f.get("findEnabled") is not False,
        "properties": f.get("properties") or {},
    }


def _project_report(r: dict) -> dict:
    query = r.get("query") or {}
    return {
        "name": r.get("name", ""),
        "description": r.get("description") or "",
        "type": r.get("type", "table"),
        "query": {k: query[k] for k in _QUERY_KEYS if query.get(k) is not None},
    }


def _project_relationship(r: dict) -> dict:
    doc = {"name": r.get("name", ""), "parentTable": r.get("parentTable", "")}
    if r.get("lookupFieldIds") is not None:
        doc["lookupFieldIds"] = r["lookupFieldIds"]
    if r.get("summaryFields") is not None:
        doc["summaryFields"] = r["summaryFields"]
    return doc


def _project_event(e: dict) -> dict:
    return {
        "name": e.get("name", ""),
        "description": e.get("description") or "",
        "isActive": e.get("isActive", True),
        "tableId": e.get("tableId", ""),
        "eventTypes": list(e.get("eventTypes") or []),
        "url": e.get("url", ""),
        "headers": dict(e.get("headers") or {}),
    }
