"""Tests for version selection and SHA resolution."""

import pytest

from actionpin.errors import ResolutionError
from actionpin.models import ActionReference
from actionpin.resolve.resolver import resolve_version
from actionpin.resolve.selector import Explicit, Latest, parse_full_tag, parse_major_tag, select
from conftest import make_sha


# --- Selection ---


def test_major_only_tag_wins():
    assert select(["v4", "v4.1.2", "v3", "v3.6.0"]) == Latest("v4")


def test_highest_full_tag_without_major_tags():
    assert select(["v4.1.2", "v4.1.1", "v3.6.0"]) == Latest("v4.1.2")


def test_major_tag_beats_newer_full_release():
    # A newer full release does not outrank an existing floating major tag
    assert select(["v3", "v4.0.0"]) == Latest("v3")


def test_versions_compare_numerically():
    assert select(["v9", "v10", "v2"]) == Latest("v10")
    assert select(["v1.9.0", "v1.10.0"]) == Latest("v1.10.0")


def test_prerelease_and_other_tags_ignored():
    assert select(["v5.0.0-beta.1", "v4.2.0", "nightly", "release-7"]) == Latest("v4.2.0")


def test_unprefixed_tags_accepted():
    assert select(["3", "2.9.1"]) == Latest("3")


def test_selection_is_order_independent():
    tags = ["v2", "v2.0.1", "v10.1.0", "v1"]
    assert select(tags) == select(list(reversed(tags))) == Latest("v2")


def test_requested_ref_is_explicit_verbatim():
    assert select(["v4"], "main") == Explicit("main")
    assert select([], "v1.2.3") == Explicit("v1.2.3")


def test_no_usable_tag():
    with pytest.raises(ResolutionError, match="no usable version tag"):
        select(["nightly", "v1.0.0-rc1"])
    with pytest.raises(ResolutionError):
        select([])


def test_ambiguous_winning_tags():
    with pytest.raises(ResolutionError, match="ambiguous"):
        select(["v4", "4", "v3"])


def test_ambiguity_outside_winner_is_ignored():
    assert select(["v4", "v3", "3"]) == Latest("v4")


def test_duplicate_entries_are_not_ambiguous():
    assert select(["v4", "v4"]) == Latest("v4")


def test_parse_helpers():
    assert parse_major_tag("v12") == 12
    assert parse_major_tag("v1.2.3") is None
    assert parse_full_tag("1.2.3") == (1, 2, 3)
    assert parse_full_tag("v1.2") is None
    assert parse_major_tag("v4\n") is None
    assert parse_full_tag("v4.1.0\n") is None


# --- Resolution ---


def test_resolve_latest_is_floating(provider):
    provider.publish("actions/checkout", {"v4": make_sha("4"), "v4.1.0": make_sha("41")})
    resolved = resolve_version(provider, ActionReference.parse("actions/checkout"))
    assert resolved.sha == make_sha("4")
    assert resolved.tag == "v4"
    assert resolved.is_floating


def test_resolve_explicit_tag(provider):
    provider.publish("actions/checkout", {"v4": make_sha("4"), "v4.1.0": make_sha("41")})
    resolved = resolve_version(provider, ActionReference.parse("actions/checkout@v4.1.0"))
    assert resolved.sha == make_sha("41")
    assert resolved.tag == "v4.1.0"
    assert not resolved.is_floating


def test_resolve_branch_has_no_tag(provider):
    provider.publish("actions/checkout", {"v4": make_sha("4")}, heads={"main": make_sha("f")})
    resolved = resolve_version(provider, ActionReference.parse("actions/checkout@main"))
    assert resolved.sha == make_sha("f")
    assert resolved.tag == ""


def test_resolve_sha_skips_tag_listing(provider):
    sha = make_sha("c")
    resolved = resolve_version(provider, ActionReference.parse(f"actions/checkout@{sha}"))
    assert resolved.sha == sha
    assert resolved.label == sha[:12]
    assert not any(call[0] == "list_tags" for call in provider.calls)


def test_resolve_unknown_ref(provider):
    provider.publish("actions/checkout", {"v4": make_sha("4")})
    with pytest.raises(ResolutionError):
        resolve_version(provider, ActionReference.parse("actions/checkout@v99"))
