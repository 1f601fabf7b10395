"""Deploy — apply a local application schema to Quickbase.

Every entity is matched against the remote side by its identity key and
then either updated in place or created. Ids assigned by Quickbase are
written back onto the local tree so the caller can persist them.

Calls are strictly sequential: a table is created or updated (and its id
known) before any of its fields or reports are touched, and each table is
finished before the next one starts. The first failing call aborts the run;
nothing already applied is rolled back.

Limitations:
- Remote tables, fields, reports and webhooks missing from the local
  schema are never deleted.
- Roles cannot be managed through the API; they are reported as
  unsupported and skipped.
- Webhooks have no partial update and are replaced by delete + create.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from qbdev.errors import DeployError, NotFoundError, TransportError
from qbdev.models.app_schema import Application, Field, Report, Role, Table, Webhook

logger = logging.getLogger(__name__)


class DeployOp:
    CREATED = "created"
    UPDATED = "updated"
    REPLACED = "replaced"  # deleted and recreated
    UNSUPPORTED = "unsupported"  # skipped, no API support


@dataclass
class DeployAction:
    """One remote operation performed (or skipped) during a deploy."""

    entity: str  # app | table | field | report | role | webhook
    key: str
    op: str
    remote_id: str = ""
    parent: str = ""

    def describe(self) -> str:
        where = f" in {self.parent}" if self.parent else ""
        ident = f" ({self.remote_id})" if self.remote_id else ""
        return f"{self.op} {self.entity} '{self.key}'{where}{ident}"


@dataclass
class DeployLog:
    actions: list[DeployAction] = field(default_factory=list)

    def record(
        self,
        entity: str,
        key: str,
        op: str,
        remote_id: str | int | None = "",
        parent: str = "",
    ) -> None:
        action = DeployAction(entity, key, op, str(remote_id or ""), parent)
        self.actions.append(action)
        logger.info(action.describe())

    def count(self, op: str, entity: Optional[str] = None) -> int:
        return sum(1 for a in self.actions if a.op == op and (entity is None or a.entity == entity))

    @property
    def unsupported(self) -> list[DeployAction]:
        return [a for a in self.actions if a.op == DeployOp.UNSUPPORTED]


class Deployer:
    """Applies an ``Application`` to a Quickbase realm through a gateway."""

    def __init__(self, gateway, persist: Callable[[Application], object] | None = None):
        self.gateway = gateway
        self.persist = persist
        self.log = DeployLog()

    def apply(self, local: Application) -> dict:
        """Create or update *local* remotely and return the remote app record.

        Mutates the id fields of *local* in place. When the app itself is
        created, ``persist(local)`` is called right away so a later failure
        leaves a resumable document behind.
        """
        app = self._resolve_app(local)

        payload = _app_payload(local)
        if app is None:
            app = self.gateway.create_app(payload)
            local.id = app["id"]
            self.log.record("app", local.name, DeployOp.CREATED, local.id)
            if self.persist is not None:
                self.persist(local)
        else:
            updated = self.gateway.update_app(local.id, payload)
            app = {**app, **(updated or {})}
            self.log.record("app", local.name, DeployOp.UPDATED, local.id)

        self.deploy_tables(local.id, local.tables)

        if local.roles:
            self.deploy_roles(local.id, local.roles)

        if local.webhooks:
            self.deploy_webhooks(local.id, local.webhooks)

        return app

    def _resolve_app(self, local: Application) -> dict | None:
        """Return the remote app record, or None if it has to be created."""
        if not local.id:
            return None
        try:
            return self.gateway.get_app(local.id)
        except NotFoundError:
            logger.warning("App %s not found remotely; it will be created", local.id)
            local.id = None
            return None

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def deploy_tables(self, app_id: str, tables: list[Table]) -> None:
        existing = {t["name"]: t for t in self.gateway.get_tables(app_id)}

        for table in tables:
            remote = existing.get(table.name)
            payload = _table_payload(table)
            if remote is not None:
                table.id = remote["id"]
                self.gateway.update_table(table.id, app_id, payload)
                self.log.record("table", table.name, DeployOp.UPDATED, table.id)
            else:
                created = self.gateway.create_table(app_id, payload)
                table.id = created["id"]
                self.log.record("table", table.name, DeployOp.CREATED, table.id)

            self.deploy_fields(table.id, table.fields, table_name=table.name)
            if table.reports:
                self.deploy_reports(table.id, table.reports, table_name=table.name)

    def deploy_fields(self, table_id: str, fields: list[Field], table_name: str = "") -> None:
        existing = {f["label"]: f for f in self.gateway.get_fields(table_id)}

        for f in fields:
            remote = existing.get(f.label)
            if remote is not None:
                f.id = remote["id"]
                self.gateway.update_field(f.id, table_id, _field_update_payload(f))
                self.log.record("field", f.label, DeployOp.UPDATED, f.id, table_name)
            else:
                created = self.gateway.create_field(table_id, _field_create_payload(f))
                f.id = created["id"]
                self.log.record("field", f.label, DeployOp.CREATED, f.id, table_name)

    def deploy_reports(self, table_id: str, reports: list[Report], table_name: str = "") -> None:
        existing = {r["name"]: r for r in self.gateway.get_reports(table_id)}

        for report in reports:
            remote = existing.get(report.name)
            payload = report.to_dict()
            if remote is not None:
                self.gateway.update_report(remote["id"], table_id, payload)
                self.log.record("report", report.name, DeployOp.UPDATED, remote["id"], table_name)
            else:
                created = self.gateway.create_report(table_id, payload)
                self.log.record(
                    "report", report.name, DeployOp.CREATED, (created or {}).get("id"), table_name
                )

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def deploy_roles(self, app_id: str, roles: list[Role]) -> None:
        """Roles are not manageable through the Quickbase API; record and skip."""
        logger.warning(
            "Role deployment is not supported by the Quickbase API; skipping %d role(s)",
            len(roles),
        )
        for role in roles:
            self.log.record("role", role.name, DeployOp.UNSUPPORTED)

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def deploy_webhooks(self, app_id: str, webhooks: list[Webhook]) -> None:
        existing = {e["name"]: e for e in self.gateway.get_app_events(app_id)}

        for webhook in webhooks:
            remote = existing.get(webhook.name)
            payload = webhook.to_dict()
            if remote is None:
                created = self.gateway.create_app_event(app_id, payload)
                self.log.record("webhook", webhook.name, DeployOp.CREATED, (created or {}).get("id"))
                continue

            self.gateway.delete_app_event(app_id, remote["id"])
            try:
                created = self.gateway.create_app_event(app_id, payload)
            except TransportError as e:
                raise DeployError(
                    f"Webhook '{webhook.name}' was deleted but could not be recreated; "
                    f"it no longer exists remotely: {e}"
                ) from e
            self.log.record("webhook", webhook.name, DeployOp.REPLACED, (created or {}).get("id"))


def apply(local: Application, gateway, persist=None) -> dict:
    """Apply *local* through *gateway*; see ``Deployer.apply``."""
    return Deployer(gateway, persist=persist).apply(local)


def _app_payload(app: Application) -> dict:
    # Scalars only; nested collections are deployed separately.
    return {
        "name": app.name,
        "description": app.description,
        "dateFormat": app.date_format,
        "timeZone": app.time_zone,
        "variables": dict(app.variables),
    }


def _table_payload(table: Table) -> dict:
    payload = {"name": table.name, "description": table.description}
    if table.single_record_name is not None:
        payload["singleRecordName"] = table.single_record_name
    if table.plural_record_name is not None:
        payload["pluralRecordName"] = table.plural_record_name
    return payload


def _field_update_payload(f: Field) -> dict:
    # fieldType is immutable remotely and is never sent on update.
    return {
        "label": f.label,
        "required": f.required,
        "unique": f.unique,
        "appearsByDefault": f.appears_by_default,
        "findEnabled": f.find_enabled,
        "properties": dict(f.properties),
    }


def _field_create_payload(f: Field) -> dict:
    return {"fieldType": f.field_type, **_field_update_payload(f)}
