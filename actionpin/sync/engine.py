"""Sync engine — the entry points behind every CLI command.

Each call loads the manifest once, applies its operations in the order given
and persists once at the end. Persisting happens in a ``finally`` block, so
the steps that completed before a fatal error or an interrupt are recorded
and match the files they wrote.
"""

from __future__ import annotations

import fnmatch
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from loguru import logger

from actionpin.errors import ResolutionError
from actionpin.manifest.models import Manifest, ManifestEntry
from actionpin.manifest.store import ManifestStore
from actionpin.models import ActionReference
from actionpin.sync.drift import DriftCheck, DriftDetector
from actionpin.sync.orchestrator import BindingOrchestrator, Operation, Outcome, OutcomeStatus


@dataclass
class SyncReport:
    """Ordered outcomes of one engine call."""

    outcomes: list[Outcome] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)
    manifest_written: bool = False

    def add(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    @property
    def counts(self) -> dict[str, int]:
        tally = Counter(outcome.status.value for outcome in self.outcomes)
        return {status.value: tally.get(status.value, 0) for status in OutcomeStatus}

    @property
    def writes(self) -> int:
        """Number of binding files written."""
        return sum(1 for outcome in self.outcomes if outcome.wrote_file)

    @property
    def ok(self) -> bool:
        return not any(outcome.failed for outcome in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class SyncEngine:
    """Runs batches of orchestrator operations against the manifest store."""

    def __init__(self, store: ManifestStore, orchestrator: BindingOrchestrator):
        self.store = store
        self.orchestrator = orchestrator

    def add(self, refs: list[str], name: str | None = None) -> SyncReport:
        """Track each of *refs* and generate its binding.

        *name* overrides the derived binding name and is only valid with a
        single reference.
        """
        if name is not None and len(refs) != 1:
            raise ValueError("A binding name override needs exactly one reference")

        with self._session() as (manifest, report):
            for text in refs:
                reference = self._parse(text, report)
                if reference is not None:
                    report.add(
                        self.orchestrator.apply(Operation.ADD, manifest, reference, name=name)
                    )
        return report

    def remove(self, key: str, keep_files: bool = False) -> SyncReport:
        """Stop tracking *key*; an untracked key is reported, not an error."""
        with self._session() as (manifest, report):
            reference = self._parse(key, report)
            if reference is not None:
                report.add(
                    self.orchestrator.apply(
                        Operation.REMOVE, manifest, reference, keep_files=keep_files
                    )
                )
        return report

    def update(self, key_or_all: str | None = None, latest: bool = False) -> SyncReport:
        """Re-resolve one reference, or every tracked entry when *key_or_all* is None.

        A reference given with ``@ref`` is moved to that ref. Otherwise the
        entry's recorded ref is resolved again, or the latest version tag
        when *latest* is set.
        """
        with self._session() as (manifest, report):
            if key_or_all is None:
                references = [_reference_for(entry) for entry in manifest]
            else:
                reference = self._parse(key_or_all, report)
                references = [reference] if reference is not None else []
            for reference in references:
                report.add(
                    self.orchestrator.apply(Operation.UPDATE, manifest, reference, latest=latest)
                )
        return report

    def regenerate_all(self, pattern: str | None = None, prune: bool = False) -> SyncReport:
        """Re-render every tracked binding (or those whose key matches *pattern*).

        With *prune*, generated bindings that no entry tracks are deleted
        afterwards.
        """
        with self._session() as (manifest, report):
            for entry in manifest:
                if pattern and not fnmatch.fnmatchcase(entry.key, pattern.lower()):
                    continue
                report.add(
                    self.orchestrator.apply(Operation.REGENERATE, manifest, _reference_for(entry))
                )
            if prune:
                report.pruned = self._prune(manifest)
        return report

    def check(self) -> DriftCheck:
        """Report drift between the manifest and the bindings on disk."""
        manifest = self.store.load()
        detector = DriftDetector(self.orchestrator.project_dir, self.orchestrator.bindings_dir)
        return detector.check(manifest)

    def list_entries(self) -> list[ManifestEntry]:
        return self.store.load().entries()

    # -- internals ------------------------------------------------------------

    @contextmanager
    def _session(self) -> Iterator[tuple[Manifest, SyncReport]]:
        manifest = self.store.load()
        report = SyncReport()
        try:
            yield manifest, report
        finally:
            # A no-op on a project without a manifest does not create one
            if len(manifest) or self.store.path.exists():
                report.manifest_written = self.store.persist(manifest)

    def _parse(self, text: str, report: SyncReport) -> ActionReference | None:
        try:
            return ActionReference.parse(text)
        except ResolutionError as exc:
            logger.error(str(exc))
            report.add(Outcome(text, OutcomeStatus.FAILED, str(exc)))
            return None

    def _prune(self, manifest: Manifest) -> list[str]:
        detector = DriftDetector(self.orchestrator.project_dir, self.orchestrator.bindings_dir)
        pruned = []
        for path in detector.untracked_bindings(manifest):
            if self.orchestrator.delete_binding(path):
                logger.warning(f"Pruned untracked binding {path}")
                pruned.append(detector.relative(path))
        return pruned


def _reference_for(entry: ManifestEntry) -> ActionReference:
    return ActionReference.parse(entry.key).with_ref(entry.requested_ref)
