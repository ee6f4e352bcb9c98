"""Filesystem capability used by the query and deletion services."""

from abc import ABC, abstractmethod


class FileSystem(ABC):
    """Abstract file access, so services can run against a fake in tests."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if something exists at ``path``."""

    @abstractmethod
    def is_file(self, path: str) -> bool:
        """Return True if ``path`` is a regular file (following symlinks)."""

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """Return the full contents of ``path``; raise OSError on failure."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Delete the file at ``path``; raise OSError on failure."""

    def close(self) -> None:
        """Release any resources held by the implementation."""
