"""Validated, irreversible deletion of a single image under the image root."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dupe_review.core.conversion import RawImageConverter
from dupe_review.platforms.base import FileSystem

logger = logging.getLogger(__name__)


class DeleteStatus(str, Enum):
    """Outcome of a delete request."""

    DELETED = "deleted"
    INVALID = "invalid"
    FORBIDDEN = "forbidden"
    NOT_EXIST = "not_exist"
    IO_ERROR = "io_error"


@dataclass
class DeleteResult:
    """
    Outcome of deleting one file.

    Attributes:
        path: Path as requested
        status: Outcome category
        error: Human-readable reason when the delete did not happen
    """

    path: str
    status: DeleteStatus
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is DeleteStatus.DELETED

    def to_dict(self) -> dict:
        """Serialize for the mutation API."""
        if self.success:
            return {"success": True}
        return {"success": False, "error": self.error}


def is_within_root(path: str, image_root: str) -> bool:
    """
    Lexically check that ``path`` lies under ``image_root``.

    Both paths are normalized without touching the filesystem, so ``..``
    segments cannot climb out and ``/photos2`` is not inside ``/photos``.
    """
    if not os.path.isabs(path):
        return False
    root = os.path.normpath(image_root)
    candidate = os.path.normpath(path)
    return candidate == root or candidate.startswith(root.rstrip(os.sep) + os.sep)


class DeletionService:
    """Deletes single files confined to the configured image root."""

    def __init__(
        self,
        filesystem: FileSystem,
        image_root: str,
        converter: Optional[RawImageConverter] = None,
    ):
        """
        Initialize the deletion service.

        Args:
            filesystem: File access used for existence checks and removal
            image_root: Only files under this directory may be deleted
            converter: Raw converter whose cached output is cleaned up after
                deleting a raw source
        """
        self.filesystem = filesystem
        self.image_root = image_root
        self.converter = converter

    def delete_image(self, path: str) -> DeleteResult:
        """
        Delete one file.

        Checks run in order: empty path, root confinement (before any
        filesystem access), existence, then removal. The filesystem only
        ever sees the normalized path, so ``..`` never resolves through a
        symlinked directory.

        Args:
            path: Absolute path of the file to delete

        Returns:
            DeleteResult describing the outcome
        """
        if not path:
            return DeleteResult(path, DeleteStatus.INVALID, "Path is required")

        if not is_within_root(path, self.image_root):
            logger.warning(
                f"Security violation: attempted to delete file outside image root: {path}"
            )
            return DeleteResult(
                path, DeleteStatus.FORBIDDEN, "File is outside allowed directory"
            )

        target = os.path.normpath(path)
        if not self.filesystem.exists(target):
            return DeleteResult(path, DeleteStatus.NOT_EXIST, "File does not exist")

        try:
            self.filesystem.remove(target)
        except OSError as e:
            logger.error(f"Error deleting file {path}: {e}")
            return DeleteResult(path, DeleteStatus.IO_ERROR, str(e))

        if self.converter is not None and self.converter.is_raw(target):
            self.converter.evict(target)

        logger.info(f"Successfully deleted file: {path}")
        return DeleteResult(path, DeleteStatus.DELETED)
