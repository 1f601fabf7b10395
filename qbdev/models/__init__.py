"""Declarative application schema models."""

from qbdev.models.app_schema import (
    Application,
    Field,
    FieldPermission,
    Form,
    Relationship,
    Report,
    ReportQuery,
    Role,
    RoleAccess,
    SummaryField,
    Table,
    Webhook,
)

__all__ = [
    "Application",
    "Field",
    "FieldPermission",
    "Form",
    "Relationship",
    "Report",
    "ReportQuery",
    "Role",
    "RoleAccess",
    "SummaryField",
    "Table",
    "Webhook",
]
