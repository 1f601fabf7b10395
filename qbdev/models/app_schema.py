"""Data models for a declarative Quickbase application schema.

The models mirror the document shape in ``qbdev.schema.shape``. They are
built from normalized (validated and defaulted) documents only, so every
defaulted property is always present; optional properties without a
default are ``None`` and are left out of ``to_dict()``.

Ownership: Application -> Table -> Field / Report / Relationship / Form;
Application -> Role, Webhook. Ids are assigned by Quickbase and are
``None`` until the entity has been deployed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from qbdev.schema.shape import DEFAULT_DATE_FORMAT, DEFAULT_TIME_ZONE


def _compact(data: dict) -> dict:
    """Drop keys whose value is None."""
    return {k: v for k, v in data.items() if v is not None}


# --- Fields ---


@dataclass
class FieldPermission:
    role: str
    permissions: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> FieldPermission:
        return cls(role=data["role"], permissions=list(data.get("permissions", [])))

    def to_dict(self) -> dict:
        return {"role": self.role, "permissions": list(self.permissions)}


@dataclass
class Field:
    """A column of a table. Matched across schemas by ``label``."""

    label: str
    field_type: str  # immutable once created remotely
    id: int | None = None
    required: bool = False
    unique: bool = False
    appears_by_default: bool = True
    find_enabled: bool = True
    properties: dict[str, Any] = field(default_factory=dict)
    permissions: list[FieldPermission] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Field:
        permissions = data.get("permissions")
        return cls(
            id=data.get("id"),
            label=data["label"],
            field_type=data["fieldType"],
            required=data.get("required", False),
            unique=data.get("unique", False),
            appears_by_default=data.get("appearsByDefault", True),
            find_enabled=data.get("findEnabled", True),
            properties=dict(data.get("properties") or {}),
            permissions=(
                [FieldPermission.from_dict(p) for p in permissions]
                if permissions is not None
                else None
            ),
        )

    def to_dict(self) -> dict:
        return _compact(
            {
                "id": self.id,
                "label": self.label,
                "fieldType": self.field_type,
                "required": self.required,
                "unique": self.unique,
                "appearsByDefault": self.appears_by_default,
                "findEnabled": self.find_enabled,
                "properties": dict(self.properties),
                "permissions": (
                    [p.to_dict() for p in self.permissions]
                    if self.permissions is not None
                    else None
                ),
            }
        )


# --- Relationships ---


@dataclass
class SummaryField:
    label: str
    summary_function: str  # sum | avg | min | max | count
    where_clause: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> SummaryField:
        return cls(
            label=data["label"],
            summary_function=data["summaryFunction"],
            where_clause=data.get("whereClause"),
        )

    def to_dict(self) -> dict:
        return _compact(
            {
                "label": self.label,
                "summaryFunction": self.summary_function,
                "whereClause": self.where_clause,
            }
        )


@dataclass
class Relationship:
    """A parent/child link declared on the child table."""

    name: str
    parent_table: str
    lookup_field_ids: list[int] | None = None
    summary_fields: list[SummaryField] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Relationship:
        summaries = data.get("summaryFields")
        lookups = data.get("lookupFieldIds")
        return cls(
            name=data["name"],
            parent_table=data["parentTable"],
            lookup_field_ids=list(lookups) if lookups is not None else None,
            summary_fields=(
                [SummaryField.from_dict(s) for s in summaries] if summaries is not None else None
            ),
        )

    def to_dict(self) -> dict:
        return _compact(
            {
                "name": self.name,
                "parentTable": self.parent_table,
                "lookupFieldIds": (
                    list(self.lookup_field_ids) if self.lookup_field_ids is not None else None
                ),
                "summaryFields": (
                    [s.to_dict() for s in self.summary_fields]
                    if self.summary_fields is not None
                    else None
                ),
            }
        )


# --- Reports ---


@dataclass
class ReportQuery:
    where: str | None = None
    group_by: list[dict] | None = None  # [{fieldId, grouping}]
    sort_by: list[dict] | None = None  # [{fieldId, order}]
    select: list[int] | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> ReportQuery:
        data = data or {}
        return cls(
            where=data.get("where"),
            group_by=[dict(g) for g in data["groupBy"]] if "groupBy" in data else None,
            sort_by=[dict(s) for s in data["sortBy"]] if "sortBy" in data else None,
            select=list(data["select"]) if "select" in data else None,
        )

    def to_dict(self) -> dict:
        return _compact(
            {
                "where": self.where,
                "groupBy": self.group_by,
                "sortBy": self.sort_by,
                "select": self.select,
            }
        )


@dataclass
class Report:
    """A saved report on a table. Matched across schemas by ``name``."""

    name: str
    type: str  # table | summary | chart | calendar | timeline
    description: str = ""
    query: ReportQuery = field(default_factory=ReportQuery)

    @classmethod
    def from_dict(cls, data: dict) -> Report:
        return cls(
            name=data["name"],
            type=data["type"],
            description=data.get("description", ""),
            query=ReportQuery.from_dict(data.get("query")),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "query": self.query.to_dict(),
        }


# --- Forms ---


@dataclass
class Form:
    """A form layout. Stored and validated; never deployed."""

    name: str
    description: str = ""
    elements: list[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> Form:
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            elements=list(data.get("elements", [])),
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description, "elements": list(self.elements)}


# --- Tables ---


@dataclass
class Table:
    """A table of an application. Matched across schemas by ``name``."""

    name: str
    id: str | None = None
    description: str = ""
    single_record_name: str | None = None
    plural_record_name: str | None = None
    fields: list[Field] = field(default_factory=list)
    relationships: list[Relationship] | None = None
    reports: list[Report] | None = None
    forms: list[Form] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Table:
        relationships = data.get("relationships")
        reports = data.get("reports")
        forms = data.get("forms")
        return cls(
            id=data.get("id"),
            name=data["name"],
            description=data.get("description", ""),
            single_record_name=data.get("singleRecordName"),
            plural_record_name=data.get("pluralRecordName"),
            fields=[Field.from_dict(f) for f in data.get("fields", [])],
            relationships=(
                [Relationship.from_dict(r) for r in relationships]
                if relationships is not None
                else None
            ),
            reports=[Report.from_dict(r) for r in reports] if reports is not None else None,
            forms=[Form.from_dict(f) for f in forms] if forms is not None else None,
        )

    def to_dict(self) -> dict:
        return _compact(
            {
                "id": self.id,
                "name": self.name,
                "description": self.description,
                "singleRecordName": self.single_record_name,
                "pluralRecordName": self.plural_record_name,
                "fields": [f.to_dict() for f in self.fields],
                "relationships": (
                    [r.to_dict() for r in self.relationships]
                    if self.relationships is not None
                    else None
                ),
                "reports": (
                    [r.to_dict() for r in self.reports] if self.reports is not None else None
                ),
                "forms": [f.to_dict() for f in self.forms] if self.forms is not None else None,
            }
        )


# --- Roles ---


@dataclass
class RoleAccess:
    table: str
    permissions: list[str] = field(default_factory=list)


@dataclass
class Role:
    name: str
    description: str = ""
    access: list[RoleAccess] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> Role:
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            access=[
                RoleAccess(table=a["table"], permissions=list(a.get("permissions", [])))
                for a in data.get("access", [])
            ],
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "access": [{"table": a.table, "permissions": list(a.permissions)} for a in self.access],
        }


# --- Webhooks ---


@dataclass
class Webhook:
    """An app event subscription. Matched across schemas by ``name``."""

    name: str
    table_id: str
    url: str
    event_types: list[str] = field(default_factory=list)
    description: str = ""
    is_active: bool = True
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> Webhook:
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            is_active=data.get("isActive", True),
            table_id=data["tableId"],
            event_types=list(data.get("eventTypes", [])),
            url=data["url"],
            headers=dict(data.get("headers") or {}),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "isActive": self.is_active,
            "tableId": self.table_id,
            "eventTypes": list(self.event_types),
            "url": self.url,
            "headers": dict(self.headers),
        }


# --- Application ---


@dataclass
class Application:
    """Root of an application schema."""

    name: str
    id: str | None = None
    description: str = ""
    date_format: str = DEFAULT_DATE_FORMAT
    time_zone: str = DEFAULT_TIME_ZONE
    variables: dict[str, str] = field(default_factory=dict)
    tables: list[Table] = field(default_factory=list)
    roles: list[Role] | None = None
    webhooks: list[Webhook] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Application:
        roles = data.get("roles")
        webhooks = data.get("webhooks")
        return cls(
            id=data.get("id"),
            name=data["name"],
            description=data.get("description", ""),
            date_format=data.get("dateFormat", DEFAULT_DATE_FORMAT),
            time_zone=data.get("timeZone", DEFAULT_TIME_ZONE),
            variables=dict(data.get("variables") or {}),
            tables=[Table.from_dict(t) for t in data.get("tables", [])],
            roles=[Role.from_dict(r) for r in roles] if roles is not None else None,
            webhooks=[Webhook.from_dict(w) for w in webhooks] if webhooks is not None else None,
        )

    def to_dict(self) -> dict:
        return _compact(
            {
                "id": self.id,
                "name": self.name,
                "description": self.description,
                "dateFormat": self.date_format,
                "timeZone": self.time_zone,
                "variables": dict(self.variables),
                "tables": [t.to_dict() for t in self.tables],
                "roles": [r.to_dict() for r in self.roles] if self.roles is not None else None,
                "webhooks": (
                    [w.to_dict() for w in self.webhooks] if self.webhooks is not None else None
                ),
            }
        )

    def get_table(self, name: str) -> Table | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None
