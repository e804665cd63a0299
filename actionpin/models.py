"""Core data models — action references, resolved versions and action metadata.

Metadata documents come from third-party ``action.yml`` files, so they are
validated once at the provider boundary and carried as fixed types after that.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from actionpin.errors import MetadataError, ResolutionError

# Owner, repo and subpath segments follow GitHub's naming rules.
_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_SHA_RE = re.compile(r"^[0-9a-f]{40}$")

LATEST_ALIAS = "latest"


def is_full_sha(value: str) -> bool:
    """Return True if *value* is a full 40-character lowercase commit SHA."""
    return bool(_SHA_RE.fullmatch(value))


# --- References ---


@dataclass(frozen=True, eq=False)
class ActionReference:
    """Identity of a third-party action plus the ref the user asked for.

    Equality and hashing use only :attr:`key`, so the same action requested
    at two different refs is the same reference.
    """

    owner: str
    repo: str
    subpath: str = ""
    requested_ref: str | None = None

    @classmethod
    def parse(cls, text: str) -> "ActionReference":
        """Parse ``owner/repo[/subpath][@ref]``.

        ``@latest`` is treated the same as no ref at all.

        Raises:
            ResolutionError: If the string is not a well-formed reference.
        """
        raw = text.strip()
        if not raw or raw != text or any(c.isspace() for c in raw):
            raise ResolutionError(f"Invalid action reference: {text!r}")

        ref: str | None = None
        path_part = raw
        if "@" in raw:
            path_part, ref = raw.rsplit("@", 1)
            if not ref:
                raise ResolutionError(f"Empty ref after '@' in {text!r}")
            if ref == LATEST_ALIAS:
                ref = None

        segments = path_part.split("/")
        if len(segments) < 2:
            raise ResolutionError(
                f"Action reference must look like owner/repo[/path][@ref]: {text!r}"
            )
        for segment in segments:
            if not _SEGMENT_RE.fullmatch(segment) or segment in (".", ".."):
                raise ResolutionError(f"Invalid path segment {segment!r} in {text!r}")

        return cls(
            owner=segments[0],
            repo=segments[1],
            subpath="/".join(segments[2:]),
            requested_ref=ref,
        )

    @property
    def name(self) -> str:
        """``owner/repo[/subpath]`` in the case the user wrote it."""
        parts = [self.owner, self.repo]
        if self.subpath:
            parts.append(self.subpath)
        return "/".join(parts)

    @property
    def key(self) -> str:
        """Case-insensitive uniqueness key used by the manifest."""
        return self.name.lower()

    def with_ref(self, ref: str | None) -> "ActionReference":
        return ActionReference(self.owner, self.repo, self.subpath, ref)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ActionReference):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        if self.requested_ref:
            return f"{self.name}@{self.requested_ref}"
        return self.name


@dataclass(frozen=True)
class ResolvedVersion:
    """An immutable pin produced by version resolution."""

    sha: str
    tag: str = ""
    is_floating: bool = False

    def __post_init__(self):
        if not is_full_sha(self.sha):
            raise ResolutionError(f"Resolved ref is not a full commit SHA: {self.sha!r}")

    @property
    def label(self) -> str:
        """Human label: the tag if one matched, else the short SHA."""
        return self.tag or self.sha[:12]


# --- Action metadata ---


@dataclass(frozen=True)
class ActionInput:
    """One declared input of an action."""

    description: str = ""
    required: bool = False
    default: str | None = None


@dataclass(frozen=True)
class ActionMetadata:
    """The parts of ``action.yml`` that bindings are generated from."""

    name: str
    description: str = ""
    inputs: dict[str, ActionInput] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc: Any, source: str = "action.yml") -> "ActionMetadata":
        """Validate a parsed ``action.yml`` document.

        Raises:
            MetadataError: If the document is not a mapping or a field has the
                wrong shape.
        """
        if not isinstance(doc, dict):
            raise MetadataError(f"{source}: expected a mapping at the top level")

        name = doc.get("name")
        if not isinstance(name, str) or not name.strip():
            raise MetadataError(f"{source}: missing required 'name'")

        description = doc.get("description") or ""
        if not isinstance(description, str):
            raise MetadataError(f"{source}: 'description' must be a string")

        return cls(
            name=name.strip(),
            description=description.strip(),
            inputs=_parse_inputs(doc.get("inputs"), source),
            outputs=_parse_outputs(doc.get("outputs"), source),
        )


def _parse_inputs(raw: Any, source: str) -> dict[str, ActionInput]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise MetadataError(f"{source}: 'inputs' must be a mapping")

    inputs: dict[str, ActionInput] = {}
    for input_name, spec in raw.items():
        if not isinstance(input_name, str) or not input_name:
            raise MetadataError(f"{source}: input names must be non-empty strings")
        spec = spec or {}
        if not isinstance(spec, dict):
            raise MetadataError(f"{source}: input '{input_name}' must be a mapping")

        desc = spec.get("description") or ""
        if not isinstance(desc, str):
            raise MetadataError(f"{source}: input '{input_name}' description must be a string")

        inputs[input_name] = ActionInput(
            description=desc.strip(),
            required=_parse_required(spec.get("required", False), input_name, source),
            default=_parse_default(spec.get("default"), input_name, source),
        )
    return inputs


def _parse_required(value: Any, input_name: str, source: str) -> bool:
    # action.yml files in the wild use both booleans and "true"/"false" strings
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    if value is None:
        return False
    raise MetadataError(f"{source}: input '{input_name}' has invalid 'required' value {value!r}")


def _parse_default(value: Any, input_name: str, source: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise MetadataError(f"{source}: input '{input_name}' default must be a scalar")


def _parse_outputs(raw: Any, source: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise MetadataError(f"{source}: 'outputs' must be a mapping")

    outputs: dict[str, str] = {}
    for output_name, spec in raw.items():
        if not isinstance(output_name, str) or not output_name:
            raise MetadataError(f"{source}: output names must be non-empty strings")
        spec = spec or {}
        if not isinstance(spec, dict):
            raise MetadataError(f"{source}: output '{output_name}' must be a mapping")
        desc = spec.get("description") or ""
        if not isinstance(desc, str):
            raise MetadataError(f"{source}: output '{output_name}' description must be a string")
        outputs[output_name] = desc.strip()
    return outputs
