"""
Keep-score and group-similarity heuristics.

Pure functions over one group's records and metadata; no I/O.

Per-image keep score:
    +1  the image has any metadata
    +2  the image has a meaningful caption
    +1  the image's pixel area equals the group maximum (ties all get it)
    +1  the oldest image, when no image in the group has metadata

Group similarity score: ``size / (identical_pairs + 1) * 5.0``, or 5.0 for
groups of one image.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from dupe_review.core.metadata import is_meaningful_caption
from dupe_review.core.models import ImageRecord, MetadataDescriptor, ScoredImage

METADATA_BONUS = 1
CAPTION_BONUS = 2
RESOLUTION_BONUS = 1
OLDEST_FALLBACK_BONUS = 1

SINGLE_IMAGE_GROUP_SCORE = 5.0
GROUP_SCORE_SCALE = 5.0
CAPTURE_TIME_TOLERANCE = timedelta(hours=1)


@dataclass
class ScoringResult:
    """Scored images, in input order, plus the group similarity score."""

    images: List[ScoredImage] = field(default_factory=list)
    group_score: float = SINGLE_IMAGE_GROUP_SCORE


def _parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def descriptors_identical(a: MetadataDescriptor, b: MetadataDescriptor) -> bool:
    """
    Decide whether two images look like the same capture.

    Camera models must match exactly (two empty models match). When both
    capture times parse, they must lie within one hour of each other; if
    either does not parse, the time check is skipped.
    """
    if a.camera_model != b.camera_model:
        return False

    taken_a = _parse_timestamp(a.date_taken)
    taken_b = _parse_timestamp(b.date_taken)
    if taken_a is not None and taken_b is not None:
        try:
            delta = abs(taken_a - taken_b)
        except TypeError:
            # One aware and one naive timestamp cannot be compared
            return True
        if delta > CAPTURE_TIME_TOLERANCE:
            return False
    return True


def count_identical_pairs(descriptors: Sequence[MetadataDescriptor]) -> int:
    """Count unordered pairs ``(i, j)``, ``i < j``, whose descriptors are identical."""
    total = len(descriptors)
    identical = 0
    for i in range(total):
        for j in range(i + 1, total):
            if descriptors_identical(descriptors[i], descriptors[j]):
                identical += 1
    return identical


def group_similarity_score(descriptors: Sequence[MetadataDescriptor]) -> float:
    """Similarity/confidence heuristic for a group."""
    size = len(descriptors)
    if size <= 1:
        return SINGLE_IMAGE_GROUP_SCORE
    return size / (count_identical_pairs(descriptors) + 1) * GROUP_SCORE_SCALE


def keep_scores(
    candidates: Sequence[Tuple[ImageRecord, MetadataDescriptor]],
) -> List[int]:
    """
    Compute the keep score of each candidate.

    Args:
        candidates: (record, metadata) pairs of one group, in input order

    Returns:
        Scores in the same order as ``candidates``

    Raises:
        ValueError: If ``candidates`` is empty
    """
    if not candidates:
        raise ValueError("Cannot score an empty group")

    max_area = max(record.pixel_area for record, _ in candidates)

    scores: List[int] = []
    any_metadata = False
    oldest_index = 0
    for index, (record, metadata) in enumerate(candidates):
        score = 0
        if metadata.has_metadata:
            score += METADATA_BONUS
            any_metadata = True
        if is_meaningful_caption(metadata.subject):
            score += CAPTION_BONUS
        if record.pixel_area == max_area:
            score += RESOLUTION_BONUS
        # Strict comparison keeps the first of equally old files
        if record.modified_date < candidates[oldest_index][0].modified_date:
            oldest_index = index
        scores.append(score)

    if not any_metadata:
        scores[oldest_index] += OLDEST_FALLBACK_BONUS

    return scores


def score_group(
    candidates: Sequence[Tuple[ImageRecord, MetadataDescriptor]],
) -> ScoringResult:
    """
    Score every image of a group and the group itself.

    Args:
        candidates: (record, metadata) pairs of one non-empty group

    Returns:
        ScoringResult with images in input order
    """
    scores = keep_scores(candidates)
    images = [
        ScoredImage(record=record, metadata=metadata, score=score)
        for (record, metadata), score in zip(candidates, scores)
    ]
    group_score = group_similarity_score([metadata for _, metadata in candidates])
    return ScoringResult(images=images, group_score=group_score)


def rank(images: Sequence[ScoredImage]) -> List[ScoredImage]:
    """Sort by keep score, highest first; equal scores keep their input order."""
    return sorted(images, key=lambda image: image.score, reverse=True)
