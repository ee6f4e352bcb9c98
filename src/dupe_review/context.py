"""Explicit wiring of the review engine's components."""

import logging
from dataclasses import dataclass
from typing import Optional

from dupe_review.core.conversion import RawImageConverter
from dupe_review.core.deletion import DeletionService
from dupe_review.core.metadata import MetadataExtractor
from dupe_review.core.query import GroupQueryService
from dupe_review.core.store import GroupStore
from dupe_review.platforms.base import FileSystem
from dupe_review.platforms.local import LocalFileSystem
from dupe_review.utils.config import Config

logger = logging.getLogger(__name__)


@dataclass
class ReviewContext:
    """Owns every long-lived object a request handler needs."""

    image_root: str
    store: GroupStore
    filesystem: FileSystem
    converter: RawImageConverter
    query: GroupQueryService
    deletion: DeletionService

    def close(self) -> None:
        """Release resources and remove temporary converted files."""
        self.converter.cleanup()
        self.filesystem.close()


def create_context(
    image_root: str,
    store: GroupStore,
    filesystem: Optional[FileSystem] = None,
    converter: Optional[RawImageConverter] = None,
) -> ReviewContext:
    """
    Assemble a ReviewContext from its parts.

    Args:
        image_root: Absolute, normalized image root
        store: Loaded group partition
        filesystem: File access (default: LocalFileSystem without read timeout)
        converter: Raw converter (default: one with a private temp directory)

    Returns:
        Wired ReviewContext
    """
    filesystem = filesystem or LocalFileSystem()
    converter = converter or RawImageConverter()
    extractor = MetadataExtractor(filesystem)
    return ReviewContext(
        image_root=image_root,
        store=store,
        filesystem=filesystem,
        converter=converter,
        query=GroupQueryService(store, extractor, filesystem, image_root),
        deletion=DeletionService(filesystem, image_root, converter),
    )


def build_context(config: Config) -> ReviewContext:
    """
    Build a ReviewContext from configuration.

    Raises:
        ConfigError: If the image root or the partition file is unusable
    """
    image_root = config.get_image_root()
    store = GroupStore.load(config.get_groups_file())

    filesystem = LocalFileSystem(read_timeout=config.get("io.read_timeout_seconds"))
    converter = RawImageConverter(
        extensions=config.get("conversion.extensions", [".cr2"]),
        quality=int(config.get("conversion.quality", 85)),
        max_side=int(config.get("conversion.max_side", 2048)),
        timeout=config.get("conversion.timeout_seconds"),
    )
    logger.debug(f"Serving images from {image_root}")
    return create_context(image_root, store, filesystem, converter)
