"""Source repository providers — where tags, commits and action.yml come from."""

from actionpin.provider.base import SourceProvider
from actionpin.provider.git import GitProvider

__all__ = ["SourceProvider", "GitProvider"]
