"""Names derived from actions: binding identifiers and module paths."""

from __future__ import annotations

import keyword
import re
from pathlib import PurePosixPath

from actionpin.errors import ResolutionError
from actionpin.models import ActionReference

_NON_IDENT_RE = re.compile(r"[^0-9a-zA-Z]+")
_CAMEL_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")


def to_identifier(text: str) -> str:
    """Convert free text to a snake_case Python identifier.

    ``"Setup Node.js environment"`` becomes ``"setup_node_js_environment"``.
    """
    words = _CAMEL_BOUNDARY_RE.sub(r"\1_\2", text)
    ident = _NON_IDENT_RE.sub("_", words).strip("_").lower()
    if not ident:
        return ""
    if ident[0].isdigit():
        ident = f"_{ident}"
    if keyword.iskeyword(ident):
        ident = f"{ident}_"
    return ident


def to_class_name(identifier: str) -> str:
    """``setup_node`` -> ``SetupNode``."""
    name = "".join(part[:1].upper() + part[1:] for part in identifier.split("_") if part) or "Action"
    return f"_{name}" if name[0].isdigit() else name


def binding_name_for(action_name: str, override: str | None = None) -> str:
    """Return the binding identifier for an action.

    Derived from the ``name`` in ``action.yml`` unless *override* is given.

    Raises:
        ResolutionError: If the result is not a usable Python identifier.
    """
    if override is not None:
        if not override.isidentifier() or keyword.iskeyword(override):
            raise ResolutionError(f"Binding name {override!r} is not a valid Python identifier")
        return override

    name = to_identifier(action_name)
    if not name:
        raise ResolutionError(f"Cannot derive a binding name from action name {action_name!r}")
    return name


def module_path_for(bindings_dir: str, reference: ActionReference) -> str:
    """Return the POSIX path of the binding module for *reference*.

    Root actions map to ``<dir>/<owner>/<repo>.py``; actions in a subpath
    map to ``<dir>/<owner>/<repo>_<sub>_<path>.py`` so every binding stays a
    flat, importable module.
    """
    stem_parts = [reference.repo, *filter(None, reference.subpath.split("/"))]
    stem = "_".join(to_identifier(part) or "_" for part in stem_parts)
    owner = to_identifier(reference.owner) or "_"
    return (PurePosixPath(bindings_dir) / owner / f"{stem}.py").as_posix()
