"""Data model for duplicate groups and their scored views."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class ImageRecord:
    """
    One file from the upstream similarity-grouping tool.

    Identity is the absolute path. ``hash`` is the tool's similarity vector,
    carried through untouched.
    """

    path: str
    size: int = 0
    width: int = 0
    height: int = 0
    modified_date: int = 0
    hash: Tuple[int, ...] = ()
    similarity: int = 0

    @property
    def pixel_area(self) -> int:
        """Width times height in pixels."""
        return self.width * self.height


@dataclass(frozen=True)
class Group:
    """An ordered set of suspected near-duplicates, identified by its index."""

    index: int
    records: Tuple[ImageRecord, ...] = ()

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class MetadataDescriptor:
    """Best-effort embedded metadata for one file. Empty strings mean absent."""

    date_taken: str = ""
    camera_make: str = ""
    camera_model: str = ""
    subject: str = ""
    has_metadata: bool = False

    @classmethod
    def empty(cls) -> "MetadataDescriptor":
        """Descriptor for a file with no readable metadata."""
        return cls()


@dataclass
class ScoredImage:
    """An image record annotated with its metadata, keep score and display path."""

    record: ImageRecord
    metadata: MetadataDescriptor
    score: int = 0
    display_path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the query API."""
        return {
            "path": self.display_path or self.record.path,
            "original_path": self.record.path,
            "size": self.record.size,
            "width": self.record.width,
            "height": self.record.height,
            "modified_date": self.record.modified_date,
            "hash": list(self.record.hash),
            "similarity": self.record.similarity,
            "date_taken": self.metadata.date_taken,
            "camera_make": self.metadata.camera_make,
            "camera_model": self.metadata.camera_model,
            "subject": self.metadata.subject,
            "has_exif": self.metadata.has_metadata,
            "score": self.score,
        }


@dataclass
class GroupView:
    """Ranked images of one group plus its similarity score."""

    index: int
    group_similarity_score: float
    images: List[ScoredImage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the query API."""
        return {
            "group_similarity_score": self.group_similarity_score,
            "images": [image.to_dict() for image in self.images],
        }
