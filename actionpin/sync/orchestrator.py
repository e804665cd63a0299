"""Binding orchestrator — apply one operation to one reference.

Each operation resolves, renders and writes a single binding and then records
it in the in-memory manifest. Files are written before the manifest entry is
touched. If anything fails part way, the file writes and deletions are undone
in reverse order and the manifest entries are put back, so the manifest and
the bindings directory never disagree.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable

from loguru import logger

from actionpin.errors import FetchError, FileConflictError, NameCollisionError, ResolutionError
from actionpin.manifest.models import Manifest, ManifestEntry
from actionpin.models import ActionReference, ResolvedVersion
from actionpin.provider.base import SourceProvider
from actionpin.render.binding import BindingRenderer, content_hash, file_hash
from actionpin.render.naming import binding_name_for, module_path_for
from actionpin.resolve.resolver import resolve_version

# Errors that fail one reference without aborting the batch
REFERENCE_ERRORS = (ResolutionError, FetchError, NameCollisionError, FileConflictError)


class Operation(str, Enum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    REGENERATE = "regenerate"


class OutcomeStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    REMOVED = "removed"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class Outcome:
    """Result of one operation on one reference."""

    key: str
    status: OutcomeStatus
    message: str = ""
    output_file_path: str = ""
    sha: str = ""
    wrote_file: bool = False

    @property
    def failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED


class BindingOrchestrator:
    """Applies operations to a manifest and the bindings directory.

    Args:
        provider: Source of tags, commits and action metadata.
        project_dir: Root that manifest paths are relative to.
        bindings_dir: Directory bindings are generated into (absolute, or
            relative to *project_dir*).
        renderer: Binding renderer; a default one is created if omitted.
        clock: Returns the ``updated_at`` timestamp for new entries.
    """

    def __init__(
        self,
        provider: SourceProvider,
        project_dir: str | Path,
        bindings_dir: str | Path,
        renderer: BindingRenderer | None = None,
        clock: Callable[[], str] | None = None,
    ):
        self.provider = provider
        self.renderer = renderer or BindingRenderer()
        self.project_dir = Path(project_dir)
        self.bindings_dir = self.project_dir / bindings_dir
        self.clock = clock or _utc_now
        self._bindings_rel = Path(os.path.relpath(self.bindings_dir, self.project_dir)).as_posix()

    def apply(
        self,
        operation: Operation,
        manifest: Manifest,
        reference: ActionReference,
        **options,
    ) -> Outcome:
        """Apply *operation* to *reference*, mutating *manifest* on success.

        Options: ``name`` (ADD, UPDATE), ``latest`` (UPDATE) and
        ``keep_files`` (REMOVE).

        Per-reference errors come back as a FAILED outcome after the file and
        manifest changes made by this call have been rolled back. Anything
        else, including interruption, is rolled back and re-raised.
        """
        handlers = {
            Operation.ADD: self._add,
            Operation.UPDATE: self._update,
            Operation.REMOVE: self._remove,
            Operation.REGENERATE: self._regenerate,
        }
        # The manifest is restored last, after every file step is undone
        undo: list[Callable[[], None]] = [manifest.checkpoint()]
        try:
            return handlers[operation](manifest, reference, undo, **options)
        except REFERENCE_ERRORS as exc:
            self._rollback(undo)
            logger.error(f"{reference.key}: {operation.value} failed: {exc}")
            return Outcome(reference.key, OutcomeStatus.FAILED, str(exc))
        except BaseException:
            self._rollback(undo)
            raise

    # -- operations -----------------------------------------------------------

    def _add(self, manifest, reference, undo, name: str | None = None) -> Outcome:
        return self._sync(manifest, reference, undo, name=name)

    def _update(
        self, manifest, reference, undo, name: str | None = None, latest: bool = False
    ) -> Outcome:
        existing = manifest.get(reference.key)
        if existing is None:
            logger.error(f"{reference.key}: cannot update, not tracked")
            return Outcome(reference.key, OutcomeStatus.FAILED, "not tracked")
        if latest:
            reference = reference.with_ref(None)
        elif reference.requested_ref is None:
            reference = reference.with_ref(existing.requested_ref)
        return self._sync(manifest, reference, undo, name=name)

    def _remove(self, manifest, reference, undo, keep_files: bool = False) -> Outcome:
        entry = manifest.get(reference.key)
        if entry is None:
            logger.info(f"{reference.key}: not tracked, nothing to remove")
            return Outcome(reference.key, OutcomeStatus.NOT_FOUND, "not tracked")

        target = self.project_dir / entry.output_file_path
        if not keep_files:
            self._discard(target, undo)
        manifest.remove(entry.key)
        logger.info(f"Removed {entry.key}")
        return Outcome(
            entry.key,
            OutcomeStatus.REMOVED,
            output_file_path=entry.output_file_path,
            sha=entry.resolved_sha,
        )

    def _regenerate(self, manifest, reference, undo) -> Outcome:
        entry = manifest.get(reference.key)
        if entry is None:
            return Outcome(reference.key, OutcomeStatus.NOT_FOUND, "not tracked")

        # The pin is authoritative; no version selection happens here
        resolved = ResolvedVersion(
            sha=entry.resolved_sha,
            tag=entry.resolved_tag,
            is_floating=entry.requested_ref is None,
        )
        metadata = self.provider.fetch_action_metadata(
            reference.owner, reference.repo, reference.subpath, resolved.sha
        )
        text = self.renderer.render(reference, resolved, metadata, entry.binding_name)
        digest = content_hash(text)
        target = self.project_dir / entry.output_file_path

        if digest == entry.content_hash and file_hash(target) == digest:
            logger.debug(f"{entry.key}: binding up to date")
            return Outcome(
                entry.key,
                OutcomeStatus.UNCHANGED,
                output_file_path=entry.output_file_path,
                sha=entry.resolved_sha,
            )

        self._write(target, text, undo)
        manifest.upsert(replace(entry, content_hash=digest, updated_at=self.clock()))
        logger.info(f"Regenerated {entry.output_file_path}")
        return Outcome(
            entry.key,
            OutcomeStatus.UPDATED,
            "regenerated",
            output_file_path=entry.output_file_path,
            sha=entry.resolved_sha,
            wrote_file=True,
        )

    # -- add/update core ------------------------------------------------------

    def _sync(self, manifest: Manifest, reference: ActionReference, undo, name: str | None) -> Outcome:
        existing = manifest.get(reference.key)
        resolved = resolve_version(self.provider, reference)
        logger.info(f"Resolved {reference} to {resolved.label} ({resolved.sha})")
        metadata = self.provider.fetch_action_metadata(
            reference.owner, reference.repo, reference.subpath, resolved.sha
        )

        if name is not None:
            binding_name = binding_name_for(metadata.name, override=name)
        elif existing is not None:
            binding_name = existing.binding_name
        else:
            binding_name = binding_name_for(metadata.name)

        rel_path = module_path_for(self._bindings_rel, reference)
        text = self.renderer.render(reference, resolved, metadata, binding_name)
        digest = content_hash(text)
        target = self.project_dir / rel_path

        entry = ManifestEntry(
            key=reference.key,
            requested_ref=reference.requested_ref,
            resolved_sha=resolved.sha,
            resolved_tag=resolved.tag,
            output_file_path=rel_path,
            binding_name=binding_name,
            content_hash=digest,
            updated_at=existing.updated_at if existing else "",
            extra=dict(existing.extra) if existing else {},
        )
        file_intact = file_hash(target) == digest

        if existing is not None and file_intact and _same_pin(existing, entry):
            logger.info(f"{reference.key}: already at {resolved.label}, nothing to do")
            return Outcome(
                entry.key,
                OutcomeStatus.UNCHANGED,
                output_file_path=rel_path,
                sha=resolved.sha,
            )

        manifest.check_collisions(entry)
        owner = manifest.owner_of_path(rel_path)
        if target.exists() and (owner is None or owner.key != entry.key):
            raise FileConflictError(
                f"{rel_path} already exists and is not tracked by the manifest; "
                f"move it away or remove it before adding {reference.name}"
            )

        wrote = False
        if not file_intact:
            self._write(target, text, undo)
            wrote = True

        entry.updated_at = self.clock()
        manifest.upsert(entry)

        if existing is not None and existing.output_file_path.lower() != rel_path.lower():
            # The binding moved; the old file belongs to nobody now
            self._discard(self.project_dir / existing.output_file_path, undo)

        status = OutcomeStatus.CREATED if existing is None else OutcomeStatus.UPDATED
        logger.info(f"{status.value.capitalize()} {rel_path} ({binding_name})")
        return Outcome(
            entry.key,
            status,
            f"pinned to {resolved.label}",
            output_file_path=rel_path,
            sha=resolved.sha,
            wrote_file=wrote,
        )

    # -- file handling --------------------------------------------------------

    def _write(self, target: Path, text: str, undo: list[Callable[[], None]]) -> None:
        previous = target.read_bytes() if target.exists() else None
        created_dirs = [p for p in reversed(target.parents) if not p.exists()]

        def restore() -> None:
            if previous is None:
                target.unlink(missing_ok=True)
                for directory in reversed(created_dirs):
                    if directory.exists() and not any(directory.iterdir()):
                        directory.rmdir()
            else:
                target.write_bytes(previous)

        # Registered first so a partial write is also undone
        undo.append(restore)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        logger.debug(f"Wrote {target}")

    def _discard(self, target: Path, undo: list[Callable[[], None]]) -> None:
        """Delete *target* like delete_binding, keeping its bytes for rollback."""
        try:
            previous = target.read_bytes()
        except OSError:
            previous = None  # delete_binding reports why

        if previous is not None:

            def restore() -> None:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(previous)

            undo.append(restore)
        self.delete_binding(target)

    def delete_binding(self, target: Path) -> bool:
        """Delete a binding file and any directories it leaves empty.

        A missing file or a failed deletion is logged and tolerated.
        """
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning(f"Binding {target} was already missing")
            return False
        except OSError as exc:
            logger.warning(f"Could not delete {target}: {exc}")
            return False
        self.prune_empty_dirs(target.parent)
        return True

    def prune_empty_dirs(self, start: Path) -> None:
        """Remove empty directories from *start* up to the bindings directory."""
        root = self.bindings_dir.resolve()
        current = start.resolve()
        while current != root and root in current.parents:
            try:
                current.rmdir()
            except OSError:
                return  # Not empty
            current = current.parent

    @staticmethod
    def _rollback(undo: list[Callable[[], None]]) -> None:
        for step in reversed(undo):
            try:
                step()
            except Exception as exc:
                logger.error(f"Rollback step failed: {exc}")
        undo.clear()


def _same_pin(existing: ManifestEntry, entry: ManifestEntry) -> bool:
    return (
        existing.requested_ref == entry.requested_ref
        and existing.resolved_sha == entry.resolved_sha
        and existing.resolved_tag == entry.resolved_tag
        and existing.output_file_path == entry.output_file_path
        and existing.binding_name == entry.binding_name
        and existing.content_hash == entry.content_hash
    )


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
