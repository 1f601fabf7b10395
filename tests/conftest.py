"""Shared fixtures: an in-memory stand-in for the Quickbase API."""

import copy
import itertools

import pytest

from qbdev.errors import NotFoundError, TransportError


class InMemoryGateway:
    """Implements the gateway methods used by fetch and deploy.

    Every call is recorded in ``calls`` as ``(method, args)``. Methods named
    in ``fail_on`` raise the mapped exception instead of running.
    """

    def __init__(self):
        self.apps: dict[str, dict] = {}
        self.tables: dict[str, dict] = {}
        self.fields: dict[str, list[dict]] = {}
        self.reports: dict[str, list[dict]] = {}
        self.events: dict[str, list[dict]] = {}
        self.calls: list[tuple] = []
        self.fail_on: dict[str, Exception] = {}
        self._ids = itertools.count(1)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return None

    def _call(self, method: str, *args):
        self.calls.append((method, args))
        if method in self.fail_on:
            raise self.fail_on[method]

    def _next_id(self, prefix: str = "") -> str:
        return f"{prefix}{next(self._ids)}"

    def called(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    def write_calls(self) -> list[str]:
        return [name for name, _ in self.calls if not name.startswith("get_")]

    # --- apps ---

    def get_app(self, app_id):
        self._call("get_app", app_id)
        if app_id not in self.apps:
            raise NotFoundError(404, f"App {app_id} not found", '{"message": "Not Found"}')
        return copy.deepcopy(self.apps[app_id])

    def create_app(self, data):
        self._call("create_app", data)
        app_id = self._next_id("app")
        self.apps[app_id] = {"id": app_id, **copy.deepcopy(data)}
        self.events[app_id] = []
        return copy.deepcopy(self.apps[app_id])

    def update_app(self, app_id, data):
        self._call("update_app", app_id, data)
        self.apps[app_id].update(copy.deepcopy(data))
        return copy.deepcopy(self.apps[app_id])

    # --- tables ---

    def get_tables(self, app_id):
        self._call("get_tables", app_id)
        return [copy.deepcopy(t) for t in self.tables.values() if t["appId"] == app_id]

    def get_table(self, table_id, app_id=None):
        self._call("get_table", table_id, app_id)
        if table_id not in self.tables:
            raise NotFoundError(404, f"Table {table_id} not found")
        return copy.deepcopy(self.tables[table_id])

    def create_table(self, app_id, data):
        self._call("create_table", app_id, data)
        table_id = self._next_id("tbl")
        self.tables[table_id] = {"id": table_id, "appId": app_id, **copy.deepcopy(data)}
        self.fields[table_id] = []
        self.reports[table_id] = []
        return copy.deepcopy(self.tables[table_id])

    def update_table(self, table_id, app_id, data):
        self._call("update_table", table_id, app_id, data)
        self.tables[table_id].update(copy.deepcopy(data))
        return copy.deepcopy(self.tables[table_id])

    # --- fields ---

    def get_fields(self, table_id):
        self._call("get_fields", table_id)
        return copy.deepcopy(self.fields.get(table_id, []))

    def create_field(self, table_id, data):
        self._call("create_field", table_id, data)
        field = {"id": next(self._ids), **copy.deepcopy(data)}
        self.fields.setdefault(table_id, []).append(field)
        return copy.deepcopy(field)

    def update_field(self, field_id, table_id, data):
        self._call("update_field", field_id, table_id, data)
        for field in self.fields[table_id]:
            if field["id"] == field_id:
                field.update(copy.deepcopy(data))
                return copy.deepcopy(field)
        raise NotFoundError(404, f"Field {field_id} not found")

    # --- reports ---

    def get_reports(self, table_id):
        self._call("get_reports", table_id)
        return copy.deepcopy(self.reports.get(table_id, []))

    def create_report(self, table_id, data):
        self._call("create_report", table_id, data)
        report = {"id": self._next_id(), **copy.deepcopy(data)}
        self.reports.setdefault(table_id, []).append(report)
        return copy.deepcopy(report)

    def update_report(self, report_id, table_id, data):
        self._call("update_report", report_id, table_id, data)
        for report in self.reports[table_id]:
            if report["id"] == report_id:
                report.update(copy.deepcopy(data))
                return copy.deepcopy(report)
        raise NotFoundError(404, f"Report {report_id} not found")

    # --- app events ---

    def get_app_events(self, app_id):
        self._call("get_app_events", app_id)
        return copy.deepcopy(self.events.get(app_id, []))

    def create_app_event(self, app_id, data):
        self._call("create_app_event", app_id, data)
        event = {"id": self._next_id("evt"), **copy.deepcopy(data)}
        self.events.setdefault(app_id, []).append(event)
        return copy.deepcopy(event)

    def delete_app_event(self, app_id, event_id):
        self._call("delete_app_event", app_id, event_id)
        self.events[app_id] = [e for e in self.events.get(app_id, []) if e["id"] != event_id]
        return {}


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def transport_error():
    return TransportError(500, "Internal error", '{"message": "Internal error"}')
