"""
Best-effort metadata extraction from image file bytes.

Two independent extractors run over the same bytes: one scans for an embedded
XMP packet and pulls a caption out of it, the other parses the EXIF tag
directories with Pillow. :func:`combine_metadata` merges their results by a
fixed precedence. Nothing here raises to the caller; any failure degrades to an
empty :class:`MetadataDescriptor`.
"""

import io
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Tuple
from xml.sax.saxutils import unescape

from PIL import ExifTags, Image

from dupe_review.core.models import MetadataDescriptor
from dupe_review.platforms.base import FileSystem

logger = logging.getLogger(__name__)

# Literal a tag reader emits for an ASCII field it could not render.
PLACEHOLDER_CAPTION = "[ASCII]"
# Fragment that appears when an undecoded UserComment leaks into a caption.
SENTINEL_FRAGMENT = "UserComment<"
# Boilerplate written into ImageDescription by many cameras.
CAMERA_BOILERPLATE = "DIGITAL CAMERA"

XMP_START_MARKERS = (b"<x:xmpmeta", b"<?xpacket")
# (end marker, bytes kept past the marker's start)
XMP_END_MARKERS = ((b"</x:xmpmeta>", len(b"</x:xmpmeta>")), (b"<?xpacket end=", 100))

XMP_CAPTION_PATTERNS = (
    re.compile(rb"<dc:subject>\s*<rdf:(?:Bag|Seq|Alt)>\s*<rdf:li[^>]*>(.*?)</rdf:li>", re.S),
    re.compile(rb"<rdf:li>(.*?)</rdf:li>", re.S),
    re.compile(rb"<dc:subject>([^<]*)</", re.S),
    re.compile(rb'dc:subject="([^"]*)"', re.S),
    re.compile(rb"<photoshop:Headline>([^<]*)</", re.S),
    re.compile(rb'photoshop:Headline="([^"]*)"', re.S),
)

TIFF_HEADERS = (b"II*\x00", b"MM\x00*")
EXIF_APP1_MARKER = b"Exif\x00\x00"
USER_COMMENT_HEADER_SIZE = 8

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"
_UTC_OFFSET = re.compile(r"^[+-]\d{2}:\d{2}$")


@dataclass(frozen=True)
class ExifFields:
    """Fields pulled from the EXIF directories. Empty strings mean absent."""

    date_taken: str = ""
    camera_make: str = ""
    camera_model: str = ""
    subject: str = ""


def is_placeholder_caption(caption: str) -> bool:
    """True if ``caption`` is empty or an artifact rather than real text."""
    return not caption or caption == PLACEHOLDER_CAPTION or SENTINEL_FRAGMENT in caption


def is_meaningful_caption(caption: str) -> bool:
    """True if ``caption`` looks human-authored."""
    return not is_placeholder_caption(caption) and CAMERA_BOILERPLATE not in caption.upper()


def normalize_exif_datetime(value: str, offset: str = "") -> str:
    """
    Convert an EXIF ``YYYY:MM:DD HH:MM:SS`` timestamp to ISO-8601.

    Args:
        value: Raw EXIF date/time string
        offset: Optional OffsetTimeOriginal value such as ``+02:00``

    Returns:
        ISO-8601 string, or ``value`` unchanged if it does not parse
    """
    value = value.strip()
    try:
        parsed = datetime.strptime(value, EXIF_DATETIME_FORMAT)
    except ValueError:
        return value

    iso = parsed.isoformat()
    if offset and _UTC_OFFSET.match(offset.strip()):
        iso += offset.strip()
    return iso


# XMP ------------------------------------------------------------------------


def _find_xmp_packet(data: bytes) -> Optional[bytes]:
    start = -1
    for marker in XMP_START_MARKERS:
        start = data.find(marker)
        if start != -1:
            break
    if start == -1:
        return None

    for marker, keep in XMP_END_MARKERS:
        end = data.find(marker, start)
        if end != -1:
            return data[start : end + keep]
    return None


def extract_xmp_caption(data: bytes) -> Optional[str]:
    """
    Find a caption in an embedded XMP packet.

    Args:
        data: Full file contents

    Returns:
        First non-empty caption, whitespace-trimmed, or None
    """
    packet = _find_xmp_packet(data)
    if packet is None:
        return None

    for pattern in XMP_CAPTION_PATTERNS:
        match = pattern.search(packet)
        # Captured markup means the match spanned structured list items
        if not match or b"<" in match.group(1):
            continue
        text = unescape(
            match.group(1).decode("utf-8", errors="replace"),
            {"&quot;": '"', "&apos;": "'"},
        ).strip()
        if text:
            return text
    return None


# EXIF -----------------------------------------------------------------------


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, tuple) and all(isinstance(v, int) for v in value):
        value = bytes(value)
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    return str(value).replace("\x00", "").strip()


def _decode_xp(value: Any) -> str:
    """Windows XP* tags hold UTF-16LE bytes."""
    if isinstance(value, tuple) and all(isinstance(v, int) for v in value):
        value = bytes(value)
    if isinstance(value, bytes):
        value = value.decode("utf-16-le", errors="ignore")
    return _as_text(value)


def _decode_user_comment(value: Any) -> str:
    """UserComment starts with an 8-byte character-code header."""
    if isinstance(value, str):
        return _as_text(value)
    if isinstance(value, tuple) and all(isinstance(v, int) for v in value):
        value = bytes(value)
    if not isinstance(value, bytes) or len(value) <= USER_COMMENT_HEADER_SIZE:
        return ""

    header = value[:USER_COMMENT_HEADER_SIZE]
    body = value[USER_COMMENT_HEADER_SIZE:]
    if header.startswith(b"UNICODE"):
        text = body.decode("utf-16-le", errors="ignore")
    else:
        text = body.decode("utf-8", errors="ignore")
    return text.replace("\x00", "").strip()


def _decode_description(value: Any) -> str:
    text = _as_text(value)
    if CAMERA_BOILERPLATE in text.upper():
        return ""
    return text


# Caption sources, most preferred first.
CAPTION_TAGS: Tuple[Tuple[int, Callable[[Any], str]], ...] = (
    (ExifTags.Base.XPSubject, _decode_xp),
    (ExifTags.Base.XPKeywords, _decode_xp),
    (ExifTags.Base.UserComment, _decode_user_comment),
    (ExifTags.Base.ImageDescription, _decode_description),
)


def _fields_from_exif(exif: Image.Exif) -> ExifFields:
    exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)

    def lookup(tag: int) -> Any:
        value = exif.get(tag)
        if value is None or value == "":
            value = exif_ifd.get(tag)
        return value

    date_taken = _as_text(lookup(ExifTags.Base.DateTimeOriginal))
    if date_taken:
        date_taken = normalize_exif_datetime(
            date_taken, _as_text(lookup(ExifTags.Base.OffsetTimeOriginal))
        )

    subject = ""
    for tag, decode in CAPTION_TAGS:
        subject = decode(lookup(tag))
        if subject:
            break

    return ExifFields(
        date_taken=date_taken,
        camera_make=_as_text(lookup(ExifTags.Base.Make)),
        camera_model=_as_text(lookup(ExifTags.Base.Model)),
        subject=subject,
    )


def _locate_tiff_block(data: bytes) -> Optional[bytes]:
    if data[:4] in TIFF_HEADERS:
        return data
    offset = data.find(EXIF_APP1_MARKER)
    if offset == -1:
        return None
    return data[offset:]


def extract_exif_fields(data: bytes) -> Optional[ExifFields]:
    """
    Parse the EXIF directories embedded in ``data``.

    Formats Pillow can open are read through it; anything else (raw camera
    files, truncated images) is scanned for a TIFF header or an ``Exif``
    APP1 marker and parsed directly.

    Args:
        data: Full file contents

    Returns:
        Extracted fields, or None if no EXIF structure could be parsed
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            exif = img.getexif()
            if len(exif):
                return _fields_from_exif(exif)
    except Exception as e:
        logger.debug(f"Pillow could not read EXIF: {e}")

    block = _locate_tiff_block(data)
    if block is None:
        return None

    try:
        exif = Image.Exif()
        exif.load(block)
        if not len(exif):
            return None
        return _fields_from_exif(exif)
    except Exception as e:
        logger.debug(f"Malformed EXIF block: {e}")
        return None


def combine_metadata(
    exif: Optional[ExifFields], xmp_caption: Optional[str]
) -> MetadataDescriptor:
    """
    Merge extractor results into one descriptor.

    The XMP caption replaces the EXIF caption when the latter is empty or a
    placeholder artifact. ``has_metadata`` is set when any field is non-empty.
    """
    fields = exif or ExifFields()
    subject = fields.subject
    if xmp_caption and is_placeholder_caption(subject):
        subject = xmp_caption

    has_metadata = any(
        (fields.date_taken, fields.camera_make, fields.camera_model, subject)
    )
    return MetadataDescriptor(
        date_taken=fields.date_taken,
        camera_make=fields.camera_make,
        camera_model=fields.camera_model,
        subject=subject,
        has_metadata=has_metadata,
    )


class MetadataExtractor:
    """Extracts a :class:`MetadataDescriptor` for a file path."""

    def __init__(self, filesystem: FileSystem):
        """
        Initialize the extractor.

        Args:
            filesystem: File access used to read image bytes
        """
        self.filesystem = filesystem

    def extract(self, path: str) -> MetadataDescriptor:
        """
        Describe the file at ``path``. Never raises.

        Args:
            path: Absolute path of the image

        Returns:
            Descriptor; empty with ``has_metadata`` False on any failure
        """
        try:
            data = self.filesystem.read_bytes(path)
        except OSError as e:
            logger.debug(f"Could not read {path} for metadata: {e}")
            return MetadataDescriptor.empty()

        return self.extract_from_bytes(data)

    def extract_from_bytes(self, data: bytes) -> MetadataDescriptor:
        """Run both extractors over ``data`` and combine the results."""
        try:
            xmp_caption = extract_xmp_caption(data)
        except Exception as e:
            logger.debug(f"XMP scan failed: {e}")
            xmp_caption = None

        return combine_metadata(extract_exif_fields(data), xmp_caption)
