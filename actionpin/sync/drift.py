"""Drift detection — detect divergence between the manifest and bindings on disk.

Drift happens when:
1. A tracked binding file has been deleted
2. A tracked binding file no longer hashes to the recorded ``content_hash``
   (hand edits, merge accidents)
3. A generated binding sits in the bindings directory without a manifest entry

Detection is read-only; ``actionpin regenerate`` repairs 1 and 2 and
``regenerate --prune`` removes 3.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from actionpin.manifest.models import Manifest
from actionpin.render.binding import HEADER, file_hash


class DriftType:
    MISSING_FILE = "missing_file"  # Tracked binding was deleted
    CONTENT = "content_drift"  # Binding differs from what was generated


@dataclass
class DriftReport:
    """Report of detected drift for a single manifest entry."""

    key: str
    output_file_path: str
    drift_types: list[str] = field(default_factory=list)
    details: list[str] = field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return len(self.drift_types) > 0

    def summary(self) -> str:
        if not self.has_drift:
            return f"{self.key}: no drift detected"
        types = ", ".join(self.drift_types)
        return f"{self.key}: DRIFT [{types}]"


@dataclass
class DriftCheck:
    """Drift for every entry plus binding files nobody tracks."""

    reports: list[DriftReport] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.untracked and not any(r.has_drift for r in self.reports)


class DriftDetector:
    """Compares manifest entries with the files in the bindings directory."""

    def __init__(self, project_dir: str | Path, bindings_dir: str | Path):
        self.project_dir = Path(project_dir)
        self.bindings_dir = self.project_dir / bindings_dir

    def check(self, manifest: Manifest) -> DriftCheck:
        result = DriftCheck()
        for entry in manifest:
            report = DriftReport(key=entry.key, output_file_path=entry.output_file_path)
            actual = file_hash(self.project_dir / entry.output_file_path)
            if actual is None:
                report.drift_types.append(DriftType.MISSING_FILE)
                report.details.append(f"{entry.output_file_path} does not exist")
            elif actual != entry.content_hash:
                report.drift_types.append(DriftType.CONTENT)
                report.details.append(
                    f"{entry.output_file_path} hashes to {actual}, "
                    f"manifest records {entry.content_hash}"
                )
            result.reports.append(report)

        result.untracked = [
            self.relative(path) for path in self.untracked_bindings(manifest)
        ]
        return result

    def untracked_bindings(self, manifest: Manifest) -> list[Path]:
        """Generated binding files under the bindings dir with no manifest entry.

        Only files that start with the generated header count; hand-written
        modules living next to the bindings are never reported.
        """
        tracked = {entry.output_file_path.lower() for entry in manifest}
        return [
            path
            for path in generated_bindings(self.bindings_dir)
            if self.relative(path).lower() not in tracked
        ]

    def relative(self, path: Path) -> str:
        return Path(os.path.relpath(path, self.project_dir)).as_posix()


def generated_bindings(bindings_dir: Path) -> list[Path]:
    """All ``*.py`` files under *bindings_dir* carrying the generated header."""
    if not bindings_dir.is_dir():
        return []
    found = []
    for path in sorted(bindings_dir.rglob("*.py")):
        try:
            with open(path, encoding="utf-8") as f:
                first_line = f.readline().rstrip("\n")
        except (OSError, UnicodeDecodeError):
            continue
        if first_line == HEADER:
            found.append(path)
    return found
