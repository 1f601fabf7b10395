"""Shape validator for application schema documents.

Walks a parsed document against ``qbdev.schema.shape`` and reports every
violation with a dotted path. Validation never stops at the first issue.

``apply_defaults`` produces the normalized form used everywhere else:
documented defaults are filled in and properties the shape does not know
are dropped. It expects a document that already passed validation.
"""

from __future__ import annotations

import copy
import re

from qbdev.schema.shape import get_shape


def validate_document(data, shape: dict | None = None) -> list[str]:
    """Validate a parsed document against the application shape.

    Returns:
        List of error messages. Empty list means valid.
    """
    issues: list[str] = []
    _validate_node(data, shape or get_shape(), "", issues)
    return issues


def apply_defaults(data: dict, shape: dict | None = None) -> dict:
    """Return a normalized deep copy of *data* with defaults filled in."""
    return _normalize(copy.deepcopy(data), shape or get_shape())


def _validate_node(data, schema: dict, path: str, issues: list[str]):
    """Recursively validate data against a shape node."""
    schema_type = schema.get("type")

    if schema_type and not _type_matches(data, schema_type):
        issues.append(f"{path or '/'}: expected type '{schema_type}', got {type(data).__name__}")
        return

    if "enum" in schema and data not in schema["enum"]:
        issues.append(f"{path or '/'}: value '{data}' not in allowed values {schema['enum']}")

    if schema_type == "string" and isinstance(data, str):
        min_len = schema.get("minLength", 0)
        if len(data) < min_len:
            issues.append(f"{path or '/'}: string too short (min {min_len}, got {len(data)})")
        if "pattern" in schema and not re.match(schema["pattern"], data):
            issues.append(f"{path or '/'}: string '{data}' does not match pattern '{schema['pattern']}'")

    if schema_type == "object" and isinstance(data, dict):
        for req in schema.get("required", []):
            if req not in data:
                issues.append(f"{path or '/'}: missing required property '{req}'")

        props = schema.get("properties", {})
        for key, value in data.items():
            if key in props:
                _validate_node(value, props[key], f"{path}.{key}", issues)

        # Map-typed objects (variables, headers) constrain their values
        extra = schema.get("additionalProperties")
        if isinstance(extra, dict):
            for key, value in data.items():
                if key not in props:
                    _validate_node(value, extra, f"{path}.{key}", issues)

    if schema_type == "array" and isinstance(data, list):
        items_schema = schema.get("items")
        if items_schema:
            for i, item in enumerate(data):
                _validate_node(item, items_schema, f"{path}[{i}]", issues)

        unique_by = schema.get("uniqueBy")
        if unique_by:
            _check_unique(data, unique_by, path, issues)


def _check_unique(items: list, key: str, path: str, issues: list[str]):
    seen: dict = {}
    for i, item in enumerate(items):
        if not isinstance(item, dict) or key not in item:
            continue
        value = item[key]
        if not isinstance(value, (str, int)):
            continue
        if value in seen:
            issues.append(
                f"{path}[{i}]: duplicate {key} '{value}' (first used at {path}[{seen[value]}])"
            )
        else:
            seen[value] = i


def _type_matches(data, schema_type: str) -> bool:
    """Check if data matches the expected type."""
    type_map = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
        "null": type(None),
    }
    expected = type_map.get(schema_type)
    if expected is None:
        return True
    # YAML booleans are ints in Python; they must not pass as integers
    if schema_type in ("integer", "number") and isinstance(data, bool):
        return False
    return isinstance(data, expected)


def _normalize(data, schema: dict):
    schema_type = schema.get("type")

    if schema_type == "object" and isinstance(data, dict):
        props = schema.get("properties")
        if props is None:
            return data
        result = {}
        for key, prop_schema in props.items():
            if key in data:
                result[key] = _normalize(data[key], prop_schema)
            elif "default" in prop_schema:
                result[key] = copy.deepcopy(prop_schema["default"])
        return result

    if schema_type == "array" and isinstance(data, list):
        items_schema = schema.get("items")
        if items_schema:
            return [_normalize(item, items_schema) for item in data]

    return data
