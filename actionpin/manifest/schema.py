"""JSON Schema for the actionpin manifest file.

Loading rejects any file that fails this schema before a single entry is
trusted. Properties not listed here are allowed and round-trip untouched so
that newer tools can add fields without older ones dropping them.
"""

from actionpin.manifest import MANIFEST_SCHEMA_VERSION

_ENTRY_SCHEMA: dict = {
    "type": "object",
    "required": [
        "key",
        "requested_ref",
        "resolved_sha",
        "resolved_tag",
        "output_file_path",
        "binding_name",
        "content_hash",
        "updated_at",
    ],
    "properties": {
        "key": {
            "type": "string",
            "pattern": r"^[a-z0-9_.-]+/[a-z0-9_.-]+(/[a-z0-9_.-]+)*$",
            "description": "Lower-cased owner/repo[/subpath] identity.",
        },
        "requested_ref": {
            "type": ["string", "null"],
            "minLength": 1,
            "description": "Ref as given by the user; null means latest.",
        },
        "resolved_sha": {
            "type": "string",
            "pattern": r"^[0-9a-f]{40}$",
            "description": "Full commit SHA the binding is pinned to.",
        },
        "resolved_tag": {
            "type": "string",
            "description": "Tag that was matched, empty when pinned by branch or SHA.",
        },
        "output_file_path": {
            "type": "string",
            "minLength": 1,
            "description": "POSIX path of the generated binding, relative to the project.",
        },
        "binding_name": {
            "type": "string",
            "pattern": r"^[A-Za-z_][A-Za-z0-9_]*$",
        },
        "content_hash": {
            "type": "string",
            "pattern": r"^sha256:[0-9a-f]{64}$",
        },
        "updated_at": {
            "type": "string",
            "minLength": 1,
        },
    },
}

MANIFEST_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": f"https://actionpin.dev/schema/manifest/v{MANIFEST_SCHEMA_VERSION}",
    "title": "actionpin manifest",
    "type": "object",
    "required": ["schema_version", "entries"],
    "properties": {
        "schema_version": {
            "type": "integer",
            "minimum": 1,
            "maximum": MANIFEST_SCHEMA_VERSION,
        },
        "entries": {
            "type": "array",
            "items": _ENTRY_SCHEMA,
        },
    },
}


def get_schema() -> dict:
    """Return the JSON Schema for manifest files."""
    return MANIFEST_SCHEMA
