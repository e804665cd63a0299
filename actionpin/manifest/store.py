"""Manifest store — validated loading and atomic persistence of the manifest file.

The store never repairs or discards a manifest it cannot validate: a corrupt
file is reported and left exactly as found. Writes go to a temporary file in
the same directory that is renamed over the canonical path, so readers see
either the previous manifest or the new one, never a partial write.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from loguru import logger

from actionpin.errors import ManifestCorruptError, NameCollisionError
from actionpin.manifest.models import Manifest
from actionpin.manifest.schema_validator import validate_schema


class ManifestStore:
    """Owns the manifest file at *manifest_path*."""

    def __init__(self, manifest_path: str | Path):
        self.path = Path(manifest_path)

    def load(self) -> Manifest:
        """Read and validate the manifest.

        Returns an empty manifest when the file does not exist yet.

        Raises:
            ManifestCorruptError: If the file is not valid JSON, fails the
                schema, or violates a uniqueness invariant.
        """
        if not self.path.exists():
            logger.debug(f"No manifest at {self.path}, starting empty")
            return Manifest()

        try:
            doc = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ManifestCorruptError(self.path, [f"not valid JSON: {exc}"]) from exc

        issues = validate_schema(doc)
        if issues:
            raise ManifestCorruptError(self.path, issues)

        try:
            manifest = Manifest.from_document(doc)
        except NameCollisionError as exc:
            raise ManifestCorruptError(self.path, [str(exc)]) from exc

        logger.debug(f"Loaded manifest from {self.path} ({len(manifest)} entries)")
        return manifest

    def persist(self, manifest: Manifest) -> bool:
        """Write *manifest* atomically.

        Returns:
            True if the file was written, False if its content was already
            identical and nothing was touched.
        """
        content = serialize(manifest)
        if self.path.exists() and self.path.read_text(encoding="utf-8") == content:
            logger.debug(f"Manifest {self.path} unchanged, not rewriting")
            return False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = Path(tmp.name)
        try:
            with tmp:
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            # The canonical file is untouched until os.replace succeeds
            tmp_path.unlink(missing_ok=True)
            raise

        logger.info(f"Manifest written to {self.path} ({len(manifest)} entries)")
        return True


def serialize(manifest: Manifest) -> str:
    """Render *manifest* as the canonical, byte-stable JSON text."""
    return json.dumps(manifest.to_document(), indent=2, ensure_ascii=False) + "\n"
