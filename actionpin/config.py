"""Project settings — where the manifest and bindings live and how to reach the host.

Precedence, highest first: explicit overrides (CLI options), the optional
``.github/actionpin.yaml`` in the project, then built-in defaults. The
project root is the nearest ancestor of the working directory containing
``.git``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from actionpin.errors import ConfigError

CONFIG_FILE = Path(".github") / "actionpin.yaml"
DEFAULT_MANIFEST = Path(".github") / "actionpin.json"
DEFAULT_BINDINGS_DIR = Path(".github") / "actions"
DEFAULT_GIT_HOST = "github.com"

_CONFIG_KEYS = ("manifest", "bindings_dir", "git_host")


@dataclass
class Settings:
    project_dir: Path
    manifest_path: Path
    bindings_dir: Path
    token: str | None = None
    git_host: str = DEFAULT_GIT_HOST

    @classmethod
    def load(
        cls,
        project_dir: str | Path | None = None,
        manifest: str | Path | None = None,
        bindings_dir: str | Path | None = None,
        token: str | None = None,
        git_host: str | None = None,
    ) -> "Settings":
        """Build settings for *project_dir* (discovered if omitted).

        Relative paths are taken relative to the project directory.

        Raises:
            ConfigError: If ``.github/actionpin.yaml`` exists but is invalid.
        """
        root = Path(project_dir) if project_dir else find_project_root()
        root = root.resolve()
        file_config = read_config_file(root / CONFIG_FILE)

        manifest = manifest or file_config.get("manifest") or DEFAULT_MANIFEST
        bindings_dir = bindings_dir or file_config.get("bindings_dir") or DEFAULT_BINDINGS_DIR
        return cls(
            project_dir=root,
            manifest_path=root / manifest,
            bindings_dir=root / bindings_dir,
            token=token or os.environ.get("GITHUB_TOKEN") or None,
            git_host=git_host or file_config.get("git_host") or DEFAULT_GIT_HOST,
        )


def find_project_root(start: str | Path | None = None) -> Path:
    """Walk up from *start* (default: cwd) to the first directory with ``.git``.

    Falls back to *start* itself when no repository is found.
    """
    origin = Path(start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if (candidate / ".git").exists():
            return candidate
    return origin


def read_config_file(path: Path) -> dict[str, str]:
    """Read the optional YAML config; a missing file yields ``{}``."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    unknown = sorted(set(data) - set(_CONFIG_KEYS))
    if unknown:
        raise ConfigError(f"{path}: unknown keys {', '.join(map(str, unknown))}")
    for key, value in data.items():
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"{path}: '{key}' must be a non-empty string")
    return {key: value.strip() for key, value in data.items()}
