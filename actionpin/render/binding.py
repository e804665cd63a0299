"""Binding renderer — typed Python wrappers for pinned actions.

Each binding module exposes an inputs ``TypedDict``, an outputs
``TypedDict`` and a factory that builds a workflow step ``uses``-ing the
pinned commit. Output depends only on the reference, the resolved pin, the
metadata and the binding name, so regenerating from the same inputs yields
the same bytes and the same content hash.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

from actionpin.models import ActionMetadata, ActionReference, ResolvedVersion
from actionpin.render.naming import to_class_name

HEADER = "# Generated by actionpin. Do not edit by hand; run `actionpin regenerate` instead."


def content_hash(text: str) -> str:
    """Return the ``sha256:<hex>`` digest recorded in the manifest."""
    return "sha256:" + hashlib.sha256(text.encode("utf-8")).hexdigest()


def file_hash(path: Path) -> str | None:
    """Digest of the bytes on disk at *path*, or None if there is no file."""
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return None
    return "sha256:" + hashlib.sha256(data).hexdigest()


class BindingRenderer:
    """Renders binding modules."""

    def render(
        self,
        reference: ActionReference,
        resolved: ResolvedVersion,
        metadata: ActionMetadata,
        binding_name: str,
    ) -> str:
        class_name = to_class_name(binding_name)
        # Rendered from the key so regeneration from the manifest is byte-stable
        action = reference.key
        lines: list[str] = [
            HEADER,
            f"# Source: {action}@{resolved.label} ({resolved.sha})",
            f'"""{_docstring(metadata.name)}',
        ]
        if metadata.description:
            lines += ["", *_docstring(metadata.description).splitlines()]
        lines += [
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "from typing import Any, NotRequired, TypedDict",
            "",
            f"ACTION = {_literal(action)}",
            f"SHA = {_literal(resolved.sha)}",
            f"VERSION = {_literal(resolved.label)}",
            'USES = f"{ACTION}@{SHA}"',
            "",
        ]
        lines += _typed_dict(f"{class_name}Inputs", _input_fields(metadata))
        lines += _typed_dict(f"{class_name}Outputs", _output_fields(metadata))
        lines += _defaults(metadata)
        lines += _factory(binding_name, class_name, metadata)
        return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Section builders
# ---------------------------------------------------------------------------


def _input_fields(metadata: ActionMetadata) -> list[tuple[str, str, list[str]]]:
    fields = []
    for name, spec in metadata.inputs.items():
        annotation = "str" if spec.required else "NotRequired[str]"
        notes = spec.description.splitlines()
        if spec.default is not None:
            notes.append(f"Default: {_literal(spec.default)}")
        fields.append((name, annotation, notes))
    return fields


def _output_fields(metadata: ActionMetadata) -> list[tuple[str, str, list[str]]]:
    return [(name, "str", desc.splitlines()) for name, desc in metadata.outputs.items()]


def _typed_dict(class_name: str, fields: list[tuple[str, str, list[str]]]) -> list[str]:
    # Functional syntax: action input names are often not identifiers (node-version)
    if not fields:
        return ["", f"{class_name} = TypedDict({_literal(class_name)}, {{}})", ""]

    lines = ["", f"{class_name} = TypedDict(", f"    {_literal(class_name)},", "    {"]
    for name, annotation, notes in fields:
        # Comments hold one physical line each
        lines += [f"        # {line}".rstrip() for note in notes for line in note.splitlines() or [""]]
        lines.append(f"        {_literal(name)}: {annotation},")
    lines += ["    },", ")", ""]
    return lines


def _defaults(metadata: ActionMetadata) -> list[str]:
    defaults = [(name, spec.default) for name, spec in metadata.inputs.items() if spec.default is not None]
    if not defaults:
        return ["", "DEFAULTS: dict[str, str] = {}", ""]
    lines = ["", "DEFAULTS: dict[str, str] = {"]
    lines += [f"    {_literal(name)}: {_literal(value)}," for name, value in defaults]
    lines += ["}", ""]
    return lines


def _factory(binding_name: str, class_name: str, metadata: ActionMetadata) -> list[str]:
    summary = metadata.description.splitlines()[0] if metadata.description else metadata.name
    required = [name for name, spec in metadata.inputs.items() if spec.required]
    lines = [
        "",
        f"def {binding_name}(",
        f"    inputs: {class_name}Inputs | None = None,",
        "    *,",
        "    ref: str | None = None,",
        "    **step: Any,",
        ") -> dict[str, Any]:",
        f'    """{_docstring(summary)}',
        "",
        "    Returns a workflow step mapping. Extra keyword arguments (name, id,",
        "    if, env, ...) are copied onto the step; *ref* overrides the pinned",
        "    commit.",
        '    """',
    ]
    if required:
        lines += [
            f"    missing = [k for k in {_literal_list(required)} if k not in (inputs or {{}})]",
            "    if missing:",
            f'        raise ValueError(f"{binding_name}: missing required inputs {{missing}}")',
        ]
    lines += [
        '    result: dict[str, Any] = {"uses": USES if ref is None else f"{ACTION}@{ref}"}',
        "    result.update(step)",
        "    if inputs:",
        '        result["with"] = dict(inputs)',
        "    return result",
    ]
    return lines


# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------


def _literal(value: str) -> str:
    # JSON string syntax is a valid Python string literal
    return json.dumps(value, ensure_ascii=False)


def _literal_list(values: list[str]) -> str:
    return "[" + ", ".join(_literal(v) for v in values) + "]"


def _docstring(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if escaped.endswith('"'):
        escaped = escaped[:-1] + '\\"'
    return escaped
