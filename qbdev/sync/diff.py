"""Schema diff — structural comparison of a local and a remote application.

Entities are matched across the two trees by identity key, never by
position or id:

    Table -> name    Field -> label    Report -> name    Webhook -> name

Keys only present locally are *added* (a deploy would create them), keys
only present remotely are *removed* (a deploy leaves them alone), and keys
on both sides are compared property by property.

Each entity type is compared on a closed set of property names. Nested
collections are compared by their own matchers and remote-assigned ids are
never compared. Both trees must be normalized (see ``qbdev.store``) so
defaulted properties compare equal to explicit ones.

Field permissions, relationships and forms are stored and validated but
never deployed, so they are not compared.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from qbdev.models.app_schema import Application, Table

VOLATILE_KEYS = frozenset({"id"})

APP_PROPERTIES = ("name", "description", "dateFormat", "timeZone", "variables")
TABLE_PROPERTIES = ("name", "description", "singleRecordName", "pluralRecordName")
FIELD_PROPERTIES = (
    "label",
    "fieldType",
    "required",
    "unique",
    "appearsByDefault",
    "findEnabled",
    "properties",
)
REPORT_PROPERTIES = ("name", "description", "type", "query")
WEBHOOK_PROPERTIES = ("name", "description", "isActive", "tableId", "eventTypes", "url", "headers")


class ChangeType:
    ADDED = "added"  # present locally only
    REMOVED = "removed"  # present remotely only
    MODIFIED = "modified"  # present on both sides with different values


@dataclass
class PropertyChange:
    """Difference of a single property between local and remote."""

    type: str
    local: Any = None
    remote: Any = None

    @property
    def value(self) -> Any:
        """The value of the side that has the property."""
        return self.remote if self.type == ChangeType.REMOVED else self.local

    def to_dict(self) -> dict:
        if self.type == ChangeType.ADDED:
            return {"type": self.type, "value": self.local}
        if self.type == ChangeType.REMOVED:
            return {"type": self.type, "value": self.remote}
        return {"type": self.type, "local": self.local, "remote": self.remote}


@dataclass
class EntityChange:
    """An entity present on both sides whose properties differ."""

    key: str
    changes: dict[str, PropertyChange] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"key": self.key, "changes": {k: c.to_dict() for k, c in self.changes.items()}}


@dataclass
class CollectionDelta:
    """Added / removed / modified entities of one collection."""

    added: list = field(default_factory=list)
    removed: list = field(default_factory=list)
    modified: list = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)

    def to_dict(self) -> dict:
        return {
            "added": [e.to_dict() for e in self.added],
            "removed": [e.to_dict() for e in self.removed],
            "modified": [m.to_dict() for m in self.modified],
        }


@dataclass
class TableChange(EntityChange):
    """A table present on both sides with property or child changes."""

    fields: CollectionDelta = field(default_factory=CollectionDelta)
    reports: CollectionDelta = field(default_factory=CollectionDelta)

    @property
    def name(self) -> str:
        return self.key

    @property
    def has_changes(self) -> bool:
        return bool(self.changes) or self.fields.has_changes or self.reports.has_changes

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["fields"] = self.fields.to_dict()
        data["reports"] = self.reports.to_dict()
        return data


@dataclass
class SchemaDelta:
    """Complete structural difference between two applications."""

    app: dict[str, PropertyChange] = field(default_factory=dict)
    tables: CollectionDelta = field(default_factory=CollectionDelta)
    fields: dict[str, CollectionDelta] = field(default_factory=dict)
    reports: dict[str, CollectionDelta] = field(default_factory=dict)
    webhooks: CollectionDelta = field(default_factory=CollectionDelta)

    @property
    def has_changes(self) -> bool:
        return bool(self.app) or self.tables.has_changes or self.webhooks.has_changes

    def summary(self) -> str:
        if not self.has_changes:
            return "No differences"
        parts = []
        if self.app:
            parts.append(f"{len(self.app)} app propert{'y' if len(self.app) == 1 else 'ies'}")
        for label, delta in (("table", self.tables), ("webhook", self.webhooks)):
            for kind in (ChangeType.ADDED, ChangeType.REMOVED, ChangeType.MODIFIED):
                count = len(getattr(delta, kind))
                if count:
                    parts.append(f"{count} {label}(s) {kind}")
        return ", ".join(parts)

    def to_dict(self) -> dict:
        return {
            "app": {k: c.to_dict() for k, c in self.app.items()},
            "tables": self.tables.to_dict(),
            "webhooks": self.webhooks.to_dict(),
        }


def compare_objects(
    local: dict, remote: dict, ignore: Iterable[str] = ()
) -> dict[str, PropertyChange]:
    """Classify every differing key of two property maps.

    Keys in *ignore* are skipped. A missing key is one absent from the map;
    values are compared structurally and sequences are order sensitive.
    """
    ignored = set(ignore)
    differences: dict[str, PropertyChange] = {}

    for key in list(local) + [k for k in remote if k not in local]:
        if key in ignored:
            continue
        in_local = key in local
        in_remote = key in remote
        if in_local and not in_remote:
            differences[key] = PropertyChange(ChangeType.ADDED, local=local[key])
        elif in_remote and not in_local:
            differences[key] = PropertyChange(ChangeType.REMOVED, remote=remote[key])
        elif not _values_equal(local[key], remote[key]):
            differences[key] = PropertyChange(
                ChangeType.MODIFIED, local=local[key], remote=remote[key]
            )

    return differences


def diff(local: Application, remote: Application) -> SchemaDelta:
    """Compute the structural difference between *local* and *remote*."""
    delta = SchemaDelta(app=_compare_entity(local, remote, APP_PROPERTIES))

    local_tables = _index(local.tables, lambda t: t.name)
    remote_tables = _index(remote.tables, lambda t: t.name)

    delta.tables.added = [t for name, t in local_tables.items() if name not in remote_tables]
    delta.tables.removed = [t for name, t in remote_tables.items() if name not in local_tables]

    for name, local_table in local_tables.items():
        remote_table = remote_tables.get(name)
        if remote_table is None:
            continue
        change = compare_tables(local_table, remote_table)
        if change.has_changes:
            delta.tables.modified.append(change)
            delta.fields[name] = change.fields
            delta.reports[name] = change.reports

    delta.webhooks = _compare_collection(
        local.webhooks or [], remote.webhooks or [], lambda w: w.name, WEBHOOK_PROPERTIES
    )
    return delta


def compare_tables(local: Table, remote: Table) -> TableChange:
    """Compare two tables already matched by name."""
    return TableChange(
        key=local.name,
        changes=_compare_entity(local, remote, TABLE_PROPERTIES),
        fields=_compare_collection(local.fields, remote.fields, lambda f: f.label, FIELD_PROPERTIES),
        reports=_compare_collection(
            local.reports or [], remote.reports or [], lambda r: r.name, REPORT_PROPERTIES
        ),
    )


def _compare_collection(
    local: list, remote: list, key: Callable[[Any], str], properties: tuple[str, ...]
) -> CollectionDelta:
    local_map = _index(local, key)
    remote_map = _index(remote, key)
    delta = CollectionDelta()

    for k, entity in local_map.items():
        other = remote_map.get(k)
        if other is None:
            delta.added.append(entity)
            continue
        changes = _compare_entity(entity, other, properties)
        if changes:
            delta.modified.append(EntityChange(key=k, changes=changes))

    delta.removed = [e for k, e in remote_map.items() if k not in local_map]
    return delta


def _compare_entity(local, remote, properties: tuple[str, ...]) -> dict[str, PropertyChange]:
    return compare_objects(
        _project(local, properties), _project(remote, properties), ignore=VOLATILE_KEYS
    )


def _project(entity, properties: tuple[str, ...]) -> dict:
    data = entity.to_dict()
    return {k: data[k] for k in properties if k in data}


def _index(entities: Iterable, key: Callable[[Any], str]) -> dict:
    # Later entries win on duplicate keys; validation rejects duplicates.
    return {key(e): e for e in entities}


def _values_equal(a: Any, b: Any) -> bool:
    return json.dumps(a, sort_keys=True, default=str) == json.dumps(b, sort_keys=True, default=str)
