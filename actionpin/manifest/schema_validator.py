"""Schema validator — structural validation of a parsed manifest document.

Covers the subset of JSON Schema the manifest schema uses: ``type``
(including type lists), ``required``, ``properties``, ``items``,
``pattern`` (matched against the whole string), ``minLength``, ``minimum``
and ``maximum``.
"""

from __future__ import annotations

import re

from actionpin.manifest.schema import get_schema


def validate_schema(data, schema: dict | None = None) -> list[str]:
    """Validate a parsed manifest against the manifest JSON Schema.

    Args:
        data: The parsed JSON document.
        schema: Schema to validate against (defaults to the manifest schema).

    Returns:
        List of error messages. Empty list means valid.
    """
    issues: list[str] = []
    _validate_node(data, schema or get_schema(), "", issues)
    return issues


def _validate_node(data, schema: dict, path: str, issues: list[str]):
    """Recursively validate data against a JSON Schema node."""
    schema_type = schema.get("type")
    where = path or "/"

    if schema_type and not _type_matches(data, schema_type):
        issues.append(f"{where}: expected type {schema_type!r}, got {type(data).__name__}")
        return  # Don't recurse into wrong types

    if isinstance(data, str):
        min_len = schema.get("minLength", 0)
        if len(data) < min_len:
            issues.append(f"{where}: string too short (min {min_len}, got {len(data)})")
        pattern = schema.get("pattern")
        if pattern and not re.fullmatch(pattern, data):
            issues.append(f"{where}: string {data!r} does not match pattern {pattern!r}")

    if isinstance(data, int) and not isinstance(data, bool):
        if "minimum" in schema and data < schema["minimum"]:
            issues.append(f"{where}: {data} is below the minimum {schema['minimum']}")
        if "maximum" in schema and data > schema["maximum"]:
            issues.append(f"{where}: {data} is above the maximum {schema['maximum']}")

    if isinstance(data, dict):
        for req in schema.get("required", []):
            if req not in data:
                issues.append(f"{where}: missing required property {req!r}")

        props = schema.get("properties", {})
        for key, value in data.items():
            if key in props:
                _validate_node(value, props[key], f"{path}.{key}", issues)

    if isinstance(data, list):
        items_schema = schema.get("items")
        if items_schema:
            for i, item in enumerate(data):
                _validate_node(item, items_schema, f"{path}[{i}]", issues)


def _type_matches(data, schema_type) -> bool:
    """Check if data matches the expected JSON Schema type (or any of a list)."""
    if isinstance(schema_type, list):
        return any(_type_matches(data, t) for t in schema_type)

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
        return True  # Unknown type, don't block
    # bool is a subclass of int, but JSON true is never an integer
    if schema_type in ("integer", "number") and isinstance(data, bool):
        return False
    return isinstance(data, expected)
