"""Resolver — combine version selection with the provider to get a commit pin."""

from __future__ import annotations

from loguru import logger

from actionpin.errors import ResolutionError
from actionpin.models import ActionReference, ResolvedVersion, is_full_sha
from actionpin.provider.base import SourceProvider
from actionpin.resolve.selector import Explicit, select


def resolve_version(provider: SourceProvider, reference: ActionReference) -> ResolvedVersion:
    """Resolve *reference* to an immutable commit.

    An explicit ref is handed to the provider as-is; its tag label is kept
    only if the ref names one of the repository's tags. Without a ref, the
    latest version tag is selected and the result is marked floating.

    Raises:
        ResolutionError: If no version can be selected or the provider
            returns something other than a full SHA.
        FetchError: If the provider fails.
    """
    owner, repo = reference.owner, reference.repo
    requested = reference.requested_ref

    if requested and is_full_sha(requested.lower()):
        # Pinning by SHA needs no tag listing
        sha = provider.resolve_ref(owner, repo, requested)
        return _pinned(reference, sha, tag="", floating=False)

    tags = provider.list_tags(owner, repo)
    intent = select(tags, requested)

    if isinstance(intent, Explicit):
        sha = provider.resolve_ref(owner, repo, intent.ref)
        tag = intent.ref if intent.ref in tags else ""
        return _pinned(reference, sha, tag=tag, floating=False)

    logger.info(f"Selected latest tag {intent.tag} for {reference.name}")
    sha = provider.resolve_ref(owner, repo, intent.tag)
    return _pinned(reference, sha, tag=intent.tag, floating=True)


def _pinned(reference: ActionReference, sha: str, tag: str, floating: bool) -> ResolvedVersion:
    if not isinstance(sha, str) or not is_full_sha(sha):
        raise ResolutionError(f"{reference.name}: provider returned a non-SHA ref {sha!r}")
    return ResolvedVersion(sha=sha, tag=tag, is_floating=floating)
