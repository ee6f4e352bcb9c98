"""Answers "describe group N" by composing the store, extractor and scorer."""

import logging
from typing import List, Tuple

from dupe_review.core.errors import GroupNotFoundError
from dupe_review.core.metadata import MetadataExtractor
from dupe_review.core.models import GroupView, ImageRecord, MetadataDescriptor
from dupe_review.core.scoring import rank, score_group
from dupe_review.core.store import GroupStore
from dupe_review.platforms.base import FileSystem

logger = logging.getLogger(__name__)


def relative_display_path(path: str, image_root: str) -> str:
    """
    Strip the image root from ``path`` for display.

    Args:
        path: Absolute path of an image
        image_root: Configured image root

    Returns:
        Root-relative path, or ``path`` unchanged when it is not under the root
    """
    prefix = image_root.rstrip("/") + "/"
    if path.startswith(prefix):
        return path[len(prefix):]
    return path


class GroupQueryService:
    """Builds ranked, annotated views of stored groups."""

    def __init__(
        self,
        store: GroupStore,
        extractor: MetadataExtractor,
        filesystem: FileSystem,
        image_root: str,
    ):
        """
        Initialize the query service.

        Args:
            store: Loaded group partition (read-only)
            extractor: Metadata extractor
            filesystem: Used to skip files that no longer exist
            image_root: Root used to build display paths
        """
        self.store = store
        self.extractor = extractor
        self.filesystem = filesystem
        self.image_root = image_root

    def __len__(self) -> int:
        return len(self.store)

    def query_group(self, index: int) -> GroupView:
        """
        Describe one group.

        Files missing from disk are skipped. The remaining images are scored
        and ranked by keep score, highest first.

        Args:
            index: Group index in the partition

        Returns:
            GroupView of the surviving images

        Raises:
            GroupNotFoundError: If the index is out of range or no file survives
        """
        try:
            group = self.store.get(index)
        except IndexError:
            raise GroupNotFoundError(index) from None

        candidates: List[Tuple[ImageRecord, MetadataDescriptor]] = []
        for record in group.records:
            if not self.filesystem.exists(record.path):
                logger.info(f"Skipping missing file: {record.path}")
                continue
            candidates.append((record, self.extractor.extract(record.path)))

        if not candidates:
            raise GroupNotFoundError(index, "No images found in group")

        result = score_group(candidates)
        for image in result.images:
            image.display_path = relative_display_path(image.record.path, self.image_root)

        return GroupView(
            index=index,
            group_similarity_score=result.group_score,
            images=rank(result.images),
        )
