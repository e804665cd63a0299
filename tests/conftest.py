"""Shared test helpers: an in-memory provider standing in for the git host."""

from __future__ import annotations

import pytest
from loguru import logger

from actionpin.errors import FetchError, MetadataError, ResolutionError
from actionpin.models import ActionMetadata, is_full_sha
from actionpin.provider.base import SourceProvider


def make_sha(seed: str) -> str:
    """A deterministic full SHA from a short seed, e.g. ``make_sha("a1")``."""
    return (seed * 40)[:40]


CHECKOUT_YML = {
    "name": "Checkout",
    "description": "Checkout a Git repository at a particular version",
    "inputs": {
        "repository": {"description": "Repository name with owner", "default": "${{ github.repository }}"},
        "fetch-depth": {"description": "Number of commits to fetch", "default": 1},
        "token": {"description": "Token used to fetch the repository", "required": True},
    },
    "outputs": {"ref": {"description": "The branch, tag or SHA that was checked out"}},
}


class FakeProvider(SourceProvider):
    """Tags, branches and action.yml documents held in dictionaries.

    ``calls`` records every provider call so tests can assert on traffic.
    """

    def __init__(self):
        self.tags: dict[str, dict[str, str]] = {}
        self.heads: dict[str, dict[str, str]] = {}
        self.documents: dict[tuple[str, str], dict] = {}
        self.broken: set[str] = set()
        self.calls: list[tuple] = []

    def publish(self, name: str, tags: dict[str, str], document: dict | None = None, heads=None):
        """Register ``owner/repo[/subpath]`` with its tags; *document* is served at every tag SHA."""
        repo = _repo_key(name)
        self.tags.setdefault(repo, {}).update(tags)
        self.heads.setdefault(repo, {}).update(heads or {})
        for sha in list(tags.values()) + list((heads or {}).values()):
            self.documents[(name.lower(), sha)] = document or {"name": name.split("/")[1]}

    def set_document(self, name: str, sha: str, document: dict):
        self.documents[(name.lower(), sha)] = document

    # -- SourceProvider -------------------------------------------------------

    def list_tags(self, owner, repo):
        self.calls.append(("list_tags", owner, repo))
        key = f"{owner}/{repo}".lower()
        self._check(key)
        return sorted(self.tags.get(key, {}))

    def resolve_ref(self, owner, repo, ref):
        self.calls.append(("resolve_ref", owner, repo, ref))
        key = f"{owner}/{repo}".lower()
        self._check(key)
        if is_full_sha(ref.lower()):
            return ref.lower()
        for table in (self.tags.get(key, {}), self.heads.get(key, {})):
            if ref in table:
                return table[ref]
        raise ResolutionError(f"Ref {ref!r} not found in {owner}/{repo}")

    def fetch_action_metadata(self, owner, repo, subpath, sha):
        self.calls.append(("fetch_action_metadata", owner, repo, subpath, sha))
        key = f"{owner}/{repo}".lower()
        self._check(key)
        name = "/".join(filter(None, [owner, repo, subpath])).lower()
        if (name, sha) not in self.documents:
            raise MetadataError(f"No action.yml in {name}@{sha[:12]}")
        return ActionMetadata.from_document(self.documents[(name, sha)], source=name)

    def _check(self, key: str):
        if key in self.broken:
            raise FetchError(f"Could not reach {key}", cause=ConnectionError("offline"))


def _repo_key(name: str) -> str:
    return "/".join(name.lower().split("/")[:2])


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture(autouse=True)
def quiet_logs():
    """Keep loguru's default stderr sink out of test output."""
    logger.remove()
    yield
    logger.remove()
