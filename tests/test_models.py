"""Tests for actionpin data models."""

import pytest

from actionpin.errors import MetadataError, ResolutionError
from actionpin.models import ActionMetadata, ActionReference, ResolvedVersion
from conftest import CHECKOUT_YML, make_sha


# --- ActionReference ---


def test_parse_owner_repo():
    ref = ActionReference.parse("actions/checkout")
    assert (ref.owner, ref.repo, ref.subpath, ref.requested_ref) == ("actions", "checkout", "", None)


def test_parse_with_ref_and_subpath():
    ref = ActionReference.parse("github/codeql-action/init@v3")
    assert ref.owner == "github"
    assert ref.repo == "codeql-action"
    assert ref.subpath == "init"
    assert ref.requested_ref == "v3"
    assert str(ref) == "github/codeql-action/init@v3"


def test_latest_alias_means_no_ref():
    assert ActionReference.parse("actions/checkout@latest").requested_ref is None


def test_key_is_case_insensitive():
    a = ActionReference.parse("Azure/Login@v1")
    b = ActionReference.parse("azure/login@v2")
    assert a.key == "azure/login"
    assert a == b
    assert len({a, b}) == 1
    assert a.name == "Azure/Login"


def test_ref_may_contain_slashes():
    assert ActionReference.parse("actions/checkout@release/v4").requested_ref == "release/v4"


@pytest.mark.parametrize(
    "text",
    ["", "checkout", "actions/", "/checkout", "actions/checkout@", "actions/check out", " actions/checkout", "a/../b", "a/b@v1@"],
)
def test_parse_rejects_malformed(text):
    with pytest.raises(ResolutionError):
        ActionReference.parse(text)


def test_with_ref_keeps_identity():
    ref = ActionReference.parse("actions/setup-node@v3").with_ref("v4")
    assert ref.requested_ref == "v4"
    assert ref.key == "actions/setup-node"


# --- ResolvedVersion ---


def test_resolved_version_requires_full_sha():
    with pytest.raises(ResolutionError):
        ResolvedVersion(sha="abc123")
    with pytest.raises(ResolutionError):
        ResolvedVersion(sha=make_sha("A"))
    with pytest.raises(ResolutionError):
        ResolvedVersion(sha=make_sha("a") + "\n")


def test_resolved_version_label():
    sha = make_sha("ab")
    assert ResolvedVersion(sha=sha, tag="v4").label == "v4"
    assert ResolvedVersion(sha=sha).label == sha[:12]


# --- ActionMetadata ---


def test_metadata_from_document():
    meta = ActionMetadata.from_document(CHECKOUT_YML)
    assert meta.name == "Checkout"
    assert meta.inputs["token"].required is True
    assert meta.inputs["repository"].required is False
    assert meta.inputs["fetch-depth"].default == "1"
    assert meta.outputs == {"ref": "The branch, tag or SHA that was checked out"}


def test_metadata_string_required_and_bool_default():
    meta = ActionMetadata.from_document(
        {
            "name": "Cache",
            "inputs": {
                "path": {"required": "true"},
                "lookup-only": {"required": "false", "default": False},
                "key": None,
            },
        }
    )
    assert meta.inputs["path"].required is True
    assert meta.inputs["lookup-only"].default == "false"
    assert meta.inputs["key"].description == ""


@pytest.mark.parametrize(
    "doc",
    [
        None,
        ["name"],
        {"description": "no name"},
        {"name": "x", "inputs": ["a"]},
        {"name": "x", "inputs": {"a": {"required": "sometimes"}}},
        {"name": "x", "inputs": {"a": {"default": {"nested": 1}}}},
        {"name": "x", "outputs": {"o": "not a mapping"}},
    ],
)
def test_metadata_rejects_bad_shapes(doc):
    with pytest.raises(MetadataError):
        ActionMetadata.from_document(doc)
