"""Provider interface consumed by the resolution and sync layers."""

from __future__ import annotations

from actionpin.models import ActionMetadata


class SourceProvider:
    """Read-only access to a hosted action repository.

    Implementations report every network, auth or lookup failure as
    :class:`~actionpin.errors.FetchError`. They may cache within one
    instance but never retry; retry policy belongs to the caller.
    """

    def list_tags(self, owner: str, repo: str) -> list[str]:
        """Return the tag names of ``owner/repo``."""
        raise NotImplementedError

    def resolve_ref(self, owner: str, repo: str, ref: str) -> str:
        """Return the full commit SHA that *ref* (tag, branch or SHA) points to."""
        raise NotImplementedError

    def fetch_action_metadata(
        self, owner: str, repo: str, subpath: str, sha: str
    ) -> ActionMetadata:
        """Return the parsed ``action.yml`` at ``subpath`` as of commit *sha*."""
        raise NotImplementedError
