"""Storage backends behind the filesystem capability."""

from dupe_review.platforms.base import FileSystem
from dupe_review.platforms.local import LocalFileSystem

__all__ = ["FileSystem", "LocalFileSystem"]
