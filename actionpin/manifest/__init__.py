"""Manifest — the persisted record of tracked actions and their pins.

The manifest provides:
- Schema: the JSON Schema every manifest file must satisfy
- Models: ordered entries with uniqueness checks on insert
- Store: validated loading and atomic, crash-safe persistence
"""

MANIFEST_SCHEMA_VERSION = 1
