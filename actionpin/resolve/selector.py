"""Version selection — pick the ref to pin from a repo's tag list.

Pure functions only: no provider calls, no file system access. When a
reference carries an explicit ref it is passed through untouched; otherwise
the latest version tag is chosen, preferring floating major tags (``v4``)
over fully pinned releases (``v4.1.2``) because upstream re-points them to
new patch releases.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Union

from actionpin.errors import ResolutionError

# ``v4`` / ``4``
_MAJOR_ONLY_RE = re.compile(r"^v?(\d+)$")
# ``v4.1.2`` / ``4.1.2``; pre-release and build suffixes do not match
_FULL_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


@dataclass(frozen=True)
class Explicit:
    """Use the requested ref as given; the provider resolves its SHA."""

    ref: str


@dataclass(frozen=True)
class Latest:
    """Use the latest version tag of the repository."""

    tag: str


VersionIntent = Union[Explicit, Latest]


def parse_major_tag(tag: str) -> int | None:
    """Return the major number of a major-only tag, or None."""
    match = _MAJOR_ONLY_RE.fullmatch(tag)
    return int(match.group(1)) if match else None


def parse_full_tag(tag: str) -> tuple[int, int, int] | None:
    """Return ``(major, minor, patch)`` for a full release tag, or None."""
    match = _FULL_VERSION_RE.fullmatch(tag)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def select(tags: Iterable[str], requested_ref: str | None = None) -> VersionIntent:
    """Choose what to pin for a reference.

    Args:
        tags: Tag names available in the repository.
        requested_ref: The ref the user asked for, or None for "latest".

    Returns:
        ``Explicit(requested_ref)`` when a ref was requested, otherwise
        ``Latest(tag)`` with the highest major-only tag, falling back to the
        highest full ``major.minor.patch`` tag.

    Raises:
        ResolutionError: If no tag is usable, or two distinct tags share the
            winning version number.
    """
    if requested_ref:
        return Explicit(requested_ref)

    majors: dict[int, list[str]] = {}
    fulls: dict[tuple[int, int, int], list[str]] = {}
    for tag in set(tags):
        major = parse_major_tag(tag)
        if major is not None:
            majors.setdefault(major, []).append(tag)
            continue
        version = parse_full_tag(tag)
        if version is not None:
            fulls.setdefault(version, []).append(tag)

    if majors:
        return Latest(_single(majors[max(majors)]))
    if fulls:
        return Latest(_single(fulls[max(fulls)]))
    raise ResolutionError("no usable version tag")


def _single(candidates: list[str]) -> str:
    if len(candidates) > 1:
        names = ", ".join(sorted(candidates))
        raise ResolutionError(f"ambiguous version tags: {names}")
    return candidates[0]
