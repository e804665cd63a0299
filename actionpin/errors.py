"""Error taxonomy for reference resolution and manifest synchronization.

Errors local to one reference (resolution, fetch, collision, file conflict)
are turned into failed outcomes by the orchestrator. Manifest corruption is
fatal for the whole invocation.
"""

from __future__ import annotations

from pathlib import Path


class ActionPinError(Exception):
    """Base class for all actionpin errors."""


class ResolutionError(ActionPinError):
    """A reference could not be parsed or resolved to a commit."""


class FetchError(ActionPinError):
    """The source repository provider failed (network, auth, missing ref)."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class MetadataError(FetchError):
    """The fetched action metadata document is missing or malformed."""


class ManifestCorruptError(ActionPinError):
    """The on-disk manifest exists but does not pass validation."""

    def __init__(self, path: str | Path, problems: list[str]):
        self.path = Path(path)
        self.problems = list(problems)
        detail = "; ".join(self.problems) if self.problems else "unknown problem"
        super().__init__(f"Manifest at {self.path} is corrupt: {detail}")


class NameCollisionError(ActionPinError):
    """Two different references would share a binding name or output file."""


class FileConflictError(ActionPinError):
    """A binding would overwrite a file that the manifest does not track."""


class ConfigError(ActionPinError):
    """The project configuration file is unreadable or invalid."""
