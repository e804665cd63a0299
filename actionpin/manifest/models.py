"""Manifest data models — entries and the ordered manifest value.

A :class:`Manifest` is a plain value: it is loaded once, mutated by the sync
layer and handed back to the store to persist. Uniqueness of keys, binding
names and output paths is enforced on every insert.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from actionpin.errors import NameCollisionError
from actionpin.manifest import MANIFEST_SCHEMA_VERSION

# Serialization order of the known entry fields
ENTRY_FIELDS = (
    "key",
    "requested_ref",
    "resolved_sha",
    "resolved_tag",
    "output_file_path",
    "binding_name",
    "content_hash",
    "updated_at",
)


@dataclass
class ManifestEntry:
    """One tracked action and the binding generated for it."""

    key: str
    requested_ref: str | None
    resolved_sha: str
    resolved_tag: str
    output_file_path: str
    binding_name: str
    content_hash: str
    updated_at: str
    # Fields written by newer versions; preserved on save
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {name: getattr(self, name) for name in ENTRY_FIELDS}
        for name, value in self.extra.items():
            data.setdefault(name, value)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManifestEntry":
        known = {name: data[name] for name in ENTRY_FIELDS}
        extra = {k: v for k, v in data.items() if k not in ENTRY_FIELDS}
        return cls(**known, extra=extra)


class Manifest:
    """Ordered mapping of entry key to :class:`ManifestEntry`.

    Insertion order is the regeneration order. Replacing an existing key
    keeps its position.
    """

    def __init__(
        self,
        entries: list[ManifestEntry] | None = None,
        schema_version: int = MANIFEST_SCHEMA_VERSION,
        extra: dict[str, Any] | None = None,
    ):
        self.schema_version = schema_version
        self.extra: dict[str, Any] = dict(extra or {})
        self._entries: dict[str, ManifestEntry] = {}
        for entry in entries or []:
            if entry.key in self._entries:
                raise NameCollisionError(f"Duplicate manifest key {entry.key!r}")
            self.upsert(entry)

    # -- queries --------------------------------------------------------------

    def get(self, key: str) -> ManifestEntry | None:
        return self._entries.get(key.lower())

    def keys(self) -> list[str]:
        return list(self._entries)

    def entries(self) -> list[ManifestEntry]:
        return list(self._entries.values())

    def owner_of_path(self, output_file_path: str) -> ManifestEntry | None:
        """Return the entry that generates *output_file_path*, if any."""
        wanted = output_file_path.lower()
        for entry in self._entries.values():
            if entry.output_file_path.lower() == wanted:
                return entry
        return None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._entries

    def __iter__(self) -> Iterator[ManifestEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    # -- mutation -------------------------------------------------------------

    def check_collisions(self, entry: ManifestEntry) -> None:
        """Raise if *entry* would share a binding name or file with another key.

        Raises:
            NameCollisionError: On a binding-name or output-path collision.
        """
        key = entry.key.lower()
        for other in self._entries.values():
            if other.key == key:
                continue
            if other.binding_name == entry.binding_name:
                raise NameCollisionError(
                    f"Binding name {entry.binding_name!r} for {entry.key} "
                    f"is already used by {other.key}"
                )
            if other.output_file_path.lower() == entry.output_file_path.lower():
                raise NameCollisionError(
                    f"Output file {entry.output_file_path} for {entry.key} "
                    f"is already generated by {other.key}"
                )

    def upsert(self, entry: ManifestEntry) -> None:
        """Insert *entry* or replace the entry with the same key.

        Raises:
            NameCollisionError: If a different key already uses the entry's
                binding name or output file.
        """
        self.check_collisions(entry)
        entry.key = entry.key.lower()
        self._entries[entry.key] = entry

    def remove(self, key: str) -> ManifestEntry | None:
        """Remove and return the entry for *key*, or None if untracked."""
        return self._entries.pop(key.lower(), None)

    def checkpoint(self) -> Callable[[], None]:
        """Return a callable that puts the entries back the way they are now."""
        saved = dict(self._entries)

        def restore() -> None:
            self._entries = dict(saved)

        return restore

    # -- serialization --------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "schema_version": self.schema_version,
            "entries": [entry.to_dict() for entry in self._entries.values()],
        }
        for name, value in self.extra.items():
            doc.setdefault(name, value)
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Manifest":
        """Build a manifest from a schema-valid document.

        Raises:
            NameCollisionError: If two entries share a key, binding name or
                output file.
        """
        extra = {k: v for k, v in doc.items() if k not in ("schema_version", "entries")}
        return cls(
            entries=[ManifestEntry.from_dict(item) for item in doc["entries"]],
            schema_version=doc["schema_version"],
            extra=extra,
        )
