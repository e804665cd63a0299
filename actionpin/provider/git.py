"""Git-backed provider — list tags, resolve refs and read action.yml over git.

Tags and branch heads come from ``git ls-remote``; metadata is read from a
single shallow-fetched commit in a throwaway repository, so nothing but the
pinned commit is ever downloaded.
"""

from __future__ import annotations

import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import yaml
from git import GitCommandError, GitCommandNotFound, Repo
from git.cmd import Git
from loguru import logger

from actionpin.errors import FetchError, MetadataError, ResolutionError
from actionpin.models import ActionMetadata, is_full_sha
from actionpin.provider.base import SourceProvider

ACTION_FILENAMES = ("action.yml", "action.yaml")

_NO_PROMPT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


@dataclass
class TempRepo:
    """An empty repository in a temp directory, removed on exit.

    Use as a context manager::

        with TempRepo.create(url) as handle:
            handle.repo.git.fetch("--depth=1", "origin", sha)
    """

    repo: Repo
    local_path: Path

    @classmethod
    def create(cls, remote_url: str) -> "TempRepo":
        path = Path(tempfile.mkdtemp(prefix="actionpin_"))
        try:
            repo = Repo.init(path)
            repo.create_remote("origin", remote_url)
        except Exception:
            shutil.rmtree(path, ignore_errors=True)
            raise
        repo.git.update_environment(**_NO_PROMPT_ENV)
        return cls(repo=repo, local_path=path)

    def __enter__(self) -> "TempRepo":
        return self

    def __exit__(self, *exc) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        self.repo.close()
        if self.local_path.exists():
            shutil.rmtree(self.local_path, ignore_errors=True)


class GitProvider(SourceProvider):
    """Provider that talks to a git host over HTTPS.

    ``ls-remote`` results are cached per repository for the lifetime of the
    instance, which is one CLI invocation.
    """

    def __init__(self, token: str | None = None, host: str = "github.com"):
        self.token = token or None
        self.host = host
        self._refs_cache: dict[tuple[str, str], dict[str, str]] = {}

    # -- SourceProvider -------------------------------------------------------

    def list_tags(self, owner: str, repo: str) -> list[str]:
        tags = []
        for ref in self._remote_refs(owner, repo):
            if ref.startswith("refs/tags/") and not ref.endswith("^{}"):
                tags.append(ref[len("refs/tags/"):])
        return sorted(tags)

    def resolve_ref(self, owner: str, repo: str, ref: str) -> str:
        if is_full_sha(ref.lower()):
            # A commit SHA cannot be listed by ls-remote; fetching it for
            # metadata later confirms it exists.
            return ref.lower()

        refs = self._remote_refs(owner, repo)
        # Annotated tags have a peeled entry pointing at the commit itself
        for candidate in (f"refs/tags/{ref}^{{}}", f"refs/tags/{ref}", f"refs/heads/{ref}"):
            if candidate in refs:
                return refs[candidate]
        raise ResolutionError(f"Ref {ref!r} not found in {owner}/{repo}")

    def fetch_action_metadata(
        self, owner: str, repo: str, subpath: str, sha: str
    ) -> ActionMetadata:
        label = f"{owner}/{repo}@{sha[:12]}"
        logger.debug(f"Fetching action metadata for {label} ({subpath or 'root'})")
        try:
            with TempRepo.create(self._remote_url(owner, repo)) as handle:
                handle.repo.git.fetch("--depth=1", "origin", sha)
                text = self._read_action_file(handle.repo, sha, subpath)
        except (GitCommandError, GitCommandNotFound) as exc:
            raise FetchError(
                f"Could not fetch {label}: {self._redact(str(exc.stderr).strip())}",
                cause=exc,
            ) from exc
        except OSError as exc:
            raise FetchError(f"Could not fetch {label}: {exc}", cause=exc) from exc

        if text is None:
            where = f"{subpath}/" if subpath else ""
            raise MetadataError(f"No {where}action.yml or action.yaml in {label}")

        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise MetadataError(f"Invalid YAML in action metadata of {label}", cause=exc) from exc
        return ActionMetadata.from_document(doc, source=f"{label} action.yml")

    # -- internals ------------------------------------------------------------

    def _remote_url(self, owner: str, repo: str) -> str:
        if self.token:
            return f"https://x-access-token:{self.token}@{self.host}/{owner}/{repo}.git"
        return f"https://{self.host}/{owner}/{repo}.git"

    def _redact(self, text: str) -> str:
        if self.token:
            return text.replace(self.token, "***")
        return text

    def _remote_refs(self, owner: str, repo: str) -> dict[str, str]:
        """Return ``{ref_name: sha}`` for all tags and branch heads."""
        cache_key = (owner.lower(), repo.lower())
        if cache_key in self._refs_cache:
            return self._refs_cache[cache_key]

        logger.debug(f"Listing remote refs of {owner}/{repo}")
        git = Git()
        git.update_environment(**_NO_PROMPT_ENV)
        try:
            output = git.ls_remote("--tags", "--heads", self._remote_url(owner, repo))
        except (GitCommandError, GitCommandNotFound) as exc:
            raise FetchError(
                f"Could not list refs of {owner}/{repo}: {self._redact(str(exc.stderr).strip())}",
                cause=exc,
            ) from exc

        refs = parse_ls_remote(output)
        self._refs_cache[cache_key] = refs
        return refs

    @staticmethod
    def _read_action_file(repo: Repo, sha: str, subpath: str) -> str | None:
        base = PurePosixPath(subpath) if subpath else PurePosixPath()
        for filename in ACTION_FILENAMES:
            try:
                return repo.git.show(f"{sha}:{(base / filename).as_posix()}")
            except GitCommandError:
                continue
        return None


def parse_ls_remote(output: str) -> dict[str, str]:
    """Parse ``git ls-remote`` output into ``{ref_name: sha}``."""
    refs: dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        sha, _, ref = line.partition("\t")
        if ref and is_full_sha(sha):
            refs[ref] = sha
    return refs
