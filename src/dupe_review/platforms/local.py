"""Local disk implementation of the filesystem capability."""

import errno
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from dupe_review.platforms.base import FileSystem

logger = logging.getLogger(__name__)


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


class LocalFileSystem(FileSystem):
    """Reads and deletes files on the local disk."""

    def __init__(self, read_timeout: Optional[float] = None, max_workers: int = 4):
        """
        Initialize local file access.

        Args:
            read_timeout: Seconds a single file read may take before it is
                reported as an OSError. ``None`` reads inline with no limit.
            max_workers: Reader threads used when a timeout is set
        """
        self.read_timeout = read_timeout
        self._executor: Optional[ThreadPoolExecutor] = None
        if read_timeout:
            self._executor = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="dupe-review-read"
            )

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def read_bytes(self, path: str) -> bytes:
        """
        Read a whole file.

        Raises:
            OSError: If the file cannot be read or the read times out
        """
        if self._executor is None:
            return _read_file(path)

        future = self._executor.submit(_read_file, path)
        try:
            return future.result(timeout=self.read_timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise OSError(
                errno.ETIMEDOUT, f"Timed out after {self.read_timeout}s reading", path
            ) from e

    def remove(self, path: str) -> None:
        os.remove(path)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
