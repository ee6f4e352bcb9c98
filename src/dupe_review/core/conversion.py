"""
Raw camera file to JPEG conversion with a shared, lock-guarded cache.

Conversions shell out to ImageMagick and can take seconds, so each source
path gets its own lock: concurrent requests for the same file convert it once,
while unrelated conversions run in parallel. The cache map itself is guarded
by a single short-held lock.
"""

import hashlib
import logging
import os
import shutil
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from dupe_review.core.errors import ConversionError

logger = logging.getLogger(__name__)

IMAGEMAGICK_COMMANDS = ("magick", "convert")


class ConversionCache:
    """Maps raw source paths to their converted files."""

    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    def key_lock(self, source: str) -> threading.Lock:
        """Lock serializing work on a single source path."""
        with self._lock:
            lock = self._key_locks.get(source)
            if lock is None:
                lock = self._key_locks[source] = threading.Lock()
            return lock

    def get(self, source: str) -> Optional[str]:
        """
        Return the converted path for ``source``.

        An entry whose converted file has disappeared is evicted and None is
        returned.
        """
        with self._lock:
            derived = self._entries.get(source)
            if derived is None:
                return None
            if os.path.exists(derived):
                return derived
            del self._entries[source]
        logger.debug(f"Evicted stale conversion for {source}")
        return None

    def put(self, source: str, derived: str) -> None:
        with self._lock:
            self._entries[source] = derived

    def pop(self, source: str) -> Optional[str]:
        """Remove and return the entry for ``source``, if any. Its key lock is kept."""
        with self._lock:
            return self._entries.pop(source, None)

    def __contains__(self, source: str) -> bool:
        with self._lock:
            return source in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RawImageConverter:
    """Produces browser-viewable JPEGs for raw camera files."""

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        extensions: Iterable[str] = (".cr2",),
        quality: int = 85,
        max_side: int = 2048,
        timeout: Optional[float] = 60.0,
        cache: Optional[ConversionCache] = None,
    ):
        """
        Initialize the converter.

        Args:
            cache_dir: Directory for converted files (default: a fresh temp dir
                owned by this converter and removed by :meth:`cleanup`)
            extensions: Raw file extensions, case-insensitive
            quality: JPEG quality passed to ImageMagick
            max_side: Longest side of the converted image, in pixels
            timeout: Seconds a single conversion may run
            cache: Shared conversion cache (default: a new one)
        """
        self._owns_cache_dir = cache_dir is None
        if cache_dir is None:
            cache_dir = Path(tempfile.mkdtemp(prefix="dupe_review_raw_"))
        else:
            cache_dir.mkdir(parents=True, exist_ok=True)
        self.cache_dir = cache_dir
        self.extensions = {ext.lower() for ext in extensions}
        self.quality = quality
        self.max_side = max_side
        self.timeout = timeout
        self.cache = cache or ConversionCache()
        logger.info(f"Using {self.cache_dir} for raw conversions")

    def is_raw(self, path: str) -> bool:
        """True if ``path`` has a raw-format extension."""
        return Path(path).suffix.lower() in self.extensions

    def derived_path(self, source: str) -> Path:
        """Location of the converted file for ``source``."""
        digest = hashlib.md5(source.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.jpg"

    def viewable_path(self, source: str) -> str:
        """
        Get a viewable JPEG for ``source``, converting it if needed.

        Args:
            source: Absolute path of the raw file

        Returns:
            Path of the converted JPEG

        Raises:
            ConversionError: If ImageMagick is missing, fails or times out
        """
        with self.cache.key_lock(source):
            cached = self.cache.get(source)
            if cached is not None:
                return cached

            target = self.derived_path(source)
            self._run_conversion(source, target)
            self.cache.put(source, str(target))

        logger.info(f"Converted raw image: {Path(source).name} -> {target.name}")
        return str(target)

    def evict(self, source: str) -> None:
        """Forget the conversion of ``source`` and delete its file, best effort."""
        with self.cache.key_lock(source):
            derived = self.cache.pop(source)
            if derived is None:
                return
            try:
                os.remove(derived)
                logger.info(f"Cleaned up converted file for {Path(source).name}")
            except OSError as e:
                logger.warning(f"Failed to remove converted file {derived}: {e}")

    def cleanup(self) -> None:
        """Remove the temporary conversion directory."""
        if self._owns_cache_dir:
            shutil.rmtree(self.cache_dir, ignore_errors=True)
            logger.debug(f"Removed conversion directory {self.cache_dir}")

    def _find_command(self) -> str:
        for name in IMAGEMAGICK_COMMANDS:
            command = shutil.which(name)
            if command:
                return command
        raise ConversionError(
            "ImageMagick not found: neither 'magick' nor 'convert' command available"
        )

    def _build_command(self, source: str, target: Path) -> List[str]:
        return [
            self._find_command(),
            source,
            "-quality",
            str(self.quality),
            "-resize",
            f"{self.max_side}x{self.max_side}>",
            str(target),
        ]

    def _run_conversion(self, source: str, target: Path) -> None:
        command = self._build_command(source, target)
        try:
            subprocess.run(command, check=True, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise ConversionError(
                f"Conversion of {source} timed out after {self.timeout}s"
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
            raise ConversionError(f"Failed to convert {source}: {stderr or e}") from e
        except OSError as e:
            raise ConversionError(f"Failed to run ImageMagick for {source}: {e}") from e
