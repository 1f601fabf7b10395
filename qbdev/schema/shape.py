"""Document shape for application schema files.

This is the normative structural definition of an ``apps/<name>.yaml``
document. It is a JSON-Schema-flavoured dict so it can be exported with
``qb-dev schema``, plus two local keywords the validator understands:

- ``default``: filled in when the property is absent
- ``uniqueBy``: on arrays of objects, the property that must be unique
"""

FIELD_TYPES = [
    "text",
    "text-multiple-choice",
    "text-multi-line",
    "rich-text",
    "numeric",
    "currency",
    "percent",
    "rating",
    "date",
    "datetime",
    "timestamp",
    "timeofday",
    "duration",
    "checkbox",
    "email",
    "phone",
    "url",
    "user",
    "multiuser",
    "address",
    "dblink",
    "file",
    "recordid",
    "predecessor",
    "lookup",
    "summary",
    "formula",
]

REPORT_TYPES = ["table", "summary", "chart", "calendar", "timeline"]
SORT_ORDERS = ["ASC", "DESC"]
SUMMARY_FUNCTIONS = ["sum", "avg", "min", "max", "count"]

DEFAULT_DATE_FORMAT = "MM-DD-YYYY"
DEFAULT_TIME_ZONE = "US/Eastern"

_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}
_ANY_MAP = {"type": "object", "additionalProperties": True}

FIELD_SHAPE: dict = {
    "type": "object",
    "required": ["label", "fieldType"],
    "properties": {
        "id": {"type": "integer"},
        "label": {"type": "string", "minLength": 1},
        "fieldType": {"type": "string", "enum": FIELD_TYPES},
        "required": {"type": "boolean", "default": False},
        "unique": {"type": "boolean", "default": False},
        "appearsByDefault": {"type": "boolean", "default": True},
        "findEnabled": {"type": "boolean", "default": True},
        "properties": {**_ANY_MAP, "default": {}},
        "permissions": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["role", "permissions"],
                "properties": {
                    "role": {"type": "string"},
                    "permissions": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
}

RELATIONSHIP_SHAPE: dict = {
    "type": "object",
    "required": ["name", "parentTable"],
    "properties": {
        "name": {"type": "string"},
        "parentTable": {"type": "string"},
        "lookupFieldIds": {"type": "array", "items": {"type": "integer"}},
        "summaryFields": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["label", "summaryFunction"],
                "properties": {
                    "label": {"type": "string"},
                    "summaryFunction": {"type": "string", "enum": SUMMARY_FUNCTIONS},
                    "whereClause": {"type": "string"},
                },
            },
        },
    },
}

REPORT_SHAPE: dict = {
    "type": "object",
    "required": ["name", "type", "query"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string", "default": ""},
        "type": {"type": "string", "enum": REPORT_TYPES},
        "query": {
            "type": "object",
            "properties": {
                "where": {"type": "string"},
                "groupBy": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["fieldId", "grouping"],
                        "properties": {
                            "fieldId": {"type": "integer"},
                            "grouping": {"type": "string"},
                        },
                    },
                },
                "sortBy": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["fieldId", "order"],
                        "properties": {
                            "fieldId": {"type": "integer"},
                            "order": {"type": "string", "enum": SORT_ORDERS},
                        },
                    },
                },
                "select": {"type": "array", "items": {"type": "integer"}},
            },
        },
    },
}

FORM_SHAPE: dict = {
    "type": "object",
    "required": ["name", "elements"],
    "properties": {
        "name": {"type": "string"},
        "description": {"type": "string", "default": ""},
        "elements": {"type": "array"},
    },
}

TABLE_SHAPE: dict = {
    "type": "object",
    "required": ["name", "fields"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string", "default": ""},
        "singleRecordName": {"type": "string"},
        "pluralRecordName": {"type": "string"},
        "fields": {"type": "array", "items": FIELD_SHAPE, "uniqueBy": "label"},
        "relationships": {"type": "array", "items": RELATIONSHIP_SHAPE},
        "reports": {"type": "array", "items": REPORT_SHAPE, "uniqueBy": "name"},
        "forms": {"type": "array", "items": FORM_SHAPE},
    },
}

ROLE_SHAPE: dict = {
    "type": "object",
    "required": ["name", "access"],
    "properties": {
        "name": {"type": "string"},
        "description": {"type": "string", "default": ""},
        "access": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["table", "permissions"],
                "properties": {
                    "table": {"type": "string"},
                    "permissions": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
}

WEBHOOK_SHAPE: dict = {
    "type": "object",
    "required": ["name", "tableId", "eventTypes", "url"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string", "default": ""},
        "isActive": {"type": "boolean", "default": True},
        "tableId": {"type": "string"},
        "eventTypes": {"type": "array", "items": {"type": "string"}},
        "url": {"type": "string", "minLength": 1},
        "headers": {**_STRING_MAP, "default": {}},
    },
}

APP_SHAPE: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Quickbase application schema",
    "description": "Declarative description of a Quickbase application's structure.",
    "type": "object",
    "required": ["name", "tables"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string", "default": ""},
        "dateFormat": {"type": "string", "default": DEFAULT_DATE_FORMAT},
        "timeZone": {"type": "string", "default": DEFAULT_TIME_ZONE},
        "variables": {**_STRING_MAP, "default": {}},
        "tables": {"type": "array", "items": TABLE_SHAPE, "uniqueBy": "name"},
        "roles": {"type": "array", "items": ROLE_SHAPE},
        "webhooks": {"type": "array", "items": WEBHOOK_SHAPE, "uniqueBy": "name"},
    },
}


def get_shape() -> dict:
    """Return the shape of an application schema document."""
    return APP_SHAPE
