"""
dupe-review - Review server for groups of near-duplicate images.

Loads the groups produced by an external similarity tool, ranks the images of
each group by how worth keeping they look, and deletes the rejects on request.
"""

__version__ = "0.1.0"
__author__ = "dupe-review Contributors"

from dupe_review.core.deletion import DeletionService
from dupe_review.core.metadata import MetadataExtractor
from dupe_review.core.query import GroupQueryService
from dupe_review.core.store import GroupStore

__all__ = [
    "DeletionService",
    "GroupQueryService",
    "GroupStore",
    "MetadataExtractor",
    "__version__",
]
