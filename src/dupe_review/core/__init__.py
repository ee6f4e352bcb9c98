"""Core functionality for loading, scoring and deleting duplicate images."""

from dupe_review.core.deletion import DeleteResult, DeleteStatus, DeletionService
from dupe_review.core.errors import ConfigError, ConversionError, GroupNotFoundError
from dupe_review.core.metadata import MetadataExtractor
from dupe_review.core.query import GroupQueryService
from dupe_review.core.store import GroupStore

__all__ = [
    "ConfigError",
    "ConversionError",
    "DeleteResult",
    "DeleteStatus",
    "DeletionService",
    "GroupNotFoundError",
    "GroupQueryService",
    "GroupStore",
    "MetadataExtractor",
]
