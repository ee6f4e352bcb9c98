"""Read-only store of the duplicate groups produced by the upstream tool."""

import json
import logging
from pathlib import Path
from typing import Any, Iterator, List, Sequence

from dupe_review.core.errors import ConfigError
from dupe_review.core.models import Group, ImageRecord

logger = logging.getLogger(__name__)


def _parse_record(raw: Any, group_index: int) -> ImageRecord:
    if not isinstance(raw, dict):
        raise ValueError(f"group {group_index}: image record must be an object")

    path = raw.get("path")
    if not isinstance(path, str) or not path:
        raise ValueError(f"group {group_index}: image record without a path")

    raw_hash = raw.get("hash") or []
    if not isinstance(raw_hash, list):
        raise ValueError(f"group {group_index}: hash of {path} must be a list")

    return ImageRecord(
        path=path,
        size=int(raw.get("size") or 0),
        width=int(raw.get("width") or 0),
        height=int(raw.get("height") or 0),
        modified_date=int(raw.get("modified_date") or 0),
        hash=tuple(int(v) for v in raw_hash),
        similarity=int(raw.get("similarity") or 0),
    )


class GroupStore:
    """Holds the immutable group partition loaded once at startup."""

    def __init__(self, groups: Sequence[Group]):
        """
        Initialize the store.

        Args:
            groups: Groups in partition order; each group's index is its position
        """
        self._groups: List[Group] = list(groups)

    @classmethod
    def from_records(cls, groups: Sequence[Sequence[ImageRecord]]) -> "GroupStore":
        """Build a store from nested record sequences."""
        return cls([Group(index=i, records=tuple(g)) for i, g in enumerate(groups)])

    @classmethod
    def load(cls, path: Path) -> "GroupStore":
        """
        Load the group partition file.

        The file is a JSON array of groups, each an array of image records with
        ``path``, ``size``, ``width``, ``height``, ``modified_date`` and ``hash``.

        Args:
            path: Partition file written by the similarity-grouping tool

        Returns:
            Loaded GroupStore

        Raises:
            ConfigError: If the file is missing, unreadable or malformed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw_groups = json.load(f)
        except OSError as e:
            raise ConfigError(f"Failed to open {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to decode {path}: {e}") from e

        if not isinstance(raw_groups, list):
            raise ConfigError(f"Failed to decode {path}: expected a list of groups")

        groups: List[Group] = []
        try:
            for index, raw_group in enumerate(raw_groups):
                if raw_group is None:
                    raw_group = []
                if not isinstance(raw_group, list):
                    raise ValueError(f"group {index} must be a list")
                records = tuple(_parse_record(raw, index) for raw in raw_group)
                groups.append(Group(index=index, records=records))
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Failed to decode {path}: {e}") from e

        logger.info(
            f"Loaded {len(groups)} groups "
            f"({sum(len(g) for g in groups)} images) from {path}"
        )
        return cls(groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[Group]:
        return iter(self._groups)

    def get(self, index: int) -> Group:
        """
        Get a group by index.

        Raises:
            IndexError: If ``index`` is out of range (negative indices included)
        """
        if index < 0 or index >= len(self._groups):
            raise IndexError(index)
        return self._groups[index]
