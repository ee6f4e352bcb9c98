"""Shared fixtures: synthetic images, partition files and a recording filesystem."""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest
from PIL import ExifTags, Image

from dupe_review.platforms.base import FileSystem


def make_jpeg(
    path: Path,
    size=(64, 48),
    make: str = "",
    model: str = "",
    date_taken: str = "",
    xp_subject: str = "",
    user_comment: Optional[bytes] = None,
    description: str = "",
    trailer: bytes = b"",
) -> Path:
    """
    Write a small JPEG with the given EXIF fields set in the root directory.

    Args:
        path: Destination file
        size: (width, height) in pixels
        make: Camera make
        model: Camera model
        date_taken: DateTimeOriginal in EXIF ``YYYY:MM:DD HH:MM:SS`` form
        xp_subject: Windows XPSubject text
        user_comment: Raw UserComment bytes, header included
        description: ImageDescription text
        trailer: Bytes appended after the JPEG data (e.g. an XMP packet)

    Returns:
        ``path``
    """
    exif = Image.Exif()
    if make:
        exif[ExifTags.Base.Make] = make
    if model:
        exif[ExifTags.Base.Model] = model
    if date_taken:
        exif[ExifTags.Base.DateTimeOriginal] = date_taken
    if xp_subject:
        exif[ExifTags.Base.XPSubject] = xp_subject.encode("utf-16-le") + b"\x00\x00"
    if user_comment is not None:
        exif[ExifTags.Base.UserComment] = user_comment
    if description:
        exif[ExifTags.Base.ImageDescription] = description

    img = Image.new("RGB", size, color="red")
    if len(exif):
        img.save(path, "JPEG", exif=exif.tobytes())
    else:
        img.save(path, "JPEG")

    if trailer:
        with open(path, "ab") as f:
            f.write(trailer)
    return path


def make_xmp(body: str) -> bytes:
    """Wrap ``body`` in an XMP packet."""
    return (
        '<?xpacket begin="" id="W5M0MpCehiHzreSzNTczkc9d"?>'
        '<x:xmpmeta xmlns:x="adobe:ns:meta/">'
        '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">'
        f"{body}"
        "</rdf:RDF></x:xmpmeta>"
        '<?xpacket end="w"?>'
    ).encode("utf-8")


def record_for(path: Path, modified_date: int = 1_600_000_000, size=None) -> dict:
    """Partition-file record for an image on disk."""
    if size is None:
        with Image.open(path) as img:
            size = img.size
    width, height = size
    return {
        "path": str(path),
        "size": os.path.getsize(path),
        "width": width,
        "height": height,
        "modified_date": modified_date,
        "hash": [1, 2, 3, 4],
    }


def write_groups(path: Path, groups: Sequence[Sequence[dict]]) -> Path:
    """Write a partition file."""
    path.write_text(json.dumps([list(g) for g in groups]), encoding="utf-8")
    return path


class FakeFileSystem(FileSystem):
    """In-memory filesystem that records every call."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        self.files: Dict[str, bytes] = dict(files or {})
        self.calls: List[tuple] = []
        self.remove_errors: Dict[str, OSError] = {}
        self.closed = False

    def exists(self, path: str) -> bool:
        self.calls.append(("exists", path))
        return path in self.files

    def is_file(self, path: str) -> bool:
        self.calls.append(("is_file", path))
        return path in self.files

    def read_bytes(self, path: str) -> bytes:
        self.calls.append(("read_bytes", path))
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def remove(self, path: str) -> None:
        self.calls.append(("remove", path))
        if path in self.remove_errors:
            raise self.remove_errors[path]
        del self.files[path]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def image_root(tmp_path) -> Path:
    """Image root directory inside the test's temp dir."""
    root = tmp_path / "photos"
    root.mkdir()
    return root


@pytest.fixture
def partition(tmp_path, image_root):
    """
    Two groups on disk: group 0 holds two metadata-less copies that differ
    only in modified time, group 1 holds a single image.
    """
    older = make_jpeg(image_root / "older.jpg")
    newer = make_jpeg(image_root / "newer.jpg")
    single = make_jpeg(image_root / "single.jpg")

    groups_file = write_groups(
        tmp_path / "groups.json",
        [
            [record_for(newer, 1_700_000_000), record_for(older, 1_500_000_000)],
            [record_for(single)],
        ],
    )
    return {
        "groups_file": groups_file,
        "older": older,
        "newer": newer,
        "single": single,
    }
