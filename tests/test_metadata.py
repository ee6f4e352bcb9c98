"""Tests for metadata extraction."""

import pytest

from conftest import FakeFileSystem, make_jpeg, make_xmp
from dupe_review.core.metadata import (
    ExifFields,
    MetadataExtractor,
    combine_metadata,
    extract_exif_fields,
    extract_xmp_caption,
    is_meaningful_caption,
    is_placeholder_caption,
    normalize_exif_datetime,
)


class TestCaptionRules:
    """Test placeholder and boilerplate detection."""

    @pytest.mark.parametrize(
        "caption", ["", "[ASCII]", "abc UserComment<xyz>", "UserComment<"]
    )
    def test_placeholders(self, caption):
        assert is_placeholder_caption(caption)
        assert not is_meaningful_caption(caption)

    @pytest.mark.parametrize("caption", ["DIGITAL CAMERA", "Olympus digital camera"])
    def test_camera_boilerplate_is_not_meaningful(self, caption):
        assert not is_placeholder_caption(caption)
        assert not is_meaningful_caption(caption)

    def test_human_caption(self):
        assert is_meaningful_caption("Grandma's 80th birthday")


class TestNormalizeDatetime:
    """Test EXIF timestamp normalization."""

    def test_exif_format_becomes_iso(self):
        assert normalize_exif_datetime("2021:06:15 14:30:00") == "2021-06-15T14:30:00"

    def test_offset_is_appended(self):
        assert (
            normalize_exif_datetime("2021:06:15 14:30:00", "+02:00")
            == "2021-06-15T14:30:00+02:00"
        )

    def test_garbage_offset_is_ignored(self):
        assert normalize_exif_datetime("2021:06:15 14:30:00", "local") == "2021-06-15T14:30:00"

    def test_unparseable_value_returned_unchanged(self):
        assert normalize_exif_datetime("sometime in June") == "sometime in June"


class TestXmpCaption:
    """Test the XMP packet scan."""

    def test_no_packet(self):
        assert extract_xmp_caption(b"\xff\xd8\xff\xe0 nothing here") is None

    def test_subject_bag_wins(self):
        data = b"junk" + make_xmp(
            "<rdf:Description>"
            "<dc:title><rdf:Alt><rdf:li xml:lang='x-default'>Title</rdf:li></rdf:Alt></dc:title>"
            "<dc:subject><rdf:Bag><rdf:li>  Beach day  </rdf:li></rdf:Bag></dc:subject>"
            "</rdf:Description>"
        )
        assert extract_xmp_caption(data) == "Beach day"

    def test_first_list_item_anywhere(self):
        data = make_xmp(
            "<dc:title><rdf:Alt><rdf:li>Sunset</rdf:li></rdf:Alt></dc:title>"
        )
        assert extract_xmp_caption(data) == "Sunset"

    def test_list_item_with_attributes_outside_subject_is_ignored(self):
        data = make_xmp(
            "<dc:title><rdf:Alt><rdf:li xml:lang='x-default'>Sunset</rdf:li></rdf:Alt></dc:title>"
        )
        assert extract_xmp_caption(data) is None

    def test_history_events_are_not_captions(self):
        data = make_xmp(
            "<xmpMM:History><rdf:Seq>"
            '<rdf:li rdf:parseType="Resource">'
            "<stEvt:action>saved</stEvt:action>"
            "<stEvt:softwareAgent>Adobe Photoshop</stEvt:softwareAgent>"
            "</rdf:li>"
            "</rdf:Seq></xmpMM:History>"
        )
        assert extract_xmp_caption(data) is None

    def test_self_closing_list_item_does_not_swallow_markup(self):
        data = make_xmp(
            "<dc:subject><rdf:Bag>"
            '<rdf:li rdf:resource="urn:a"/>'
            "<rdf:li><ex:tag>x</ex:tag></rdf:li>"
            "</rdf:Bag></dc:subject>"
        )
        assert extract_xmp_caption(data) is None

    def test_history_only_packet_has_no_metadata(self):
        data = b"\xff\xd8" + make_xmp(
            "<xmpMM:History><rdf:Seq>"
            '<rdf:li rdf:parseType="Resource"><stEvt:action>derived</stEvt:action></rdf:li>'
            "</rdf:Seq></xmpMM:History>"
        )
        descriptor = MetadataExtractor(FakeFileSystem()).extract_from_bytes(data)

        assert descriptor.subject == ""
        assert not descriptor.has_metadata

    def test_subject_attribute(self):
        data = make_xmp('<rdf:Description dc:subject="Mountains &amp; lakes"/>')
        assert extract_xmp_caption(data) == "Mountains & lakes"

    def test_headline_element(self):
        data = make_xmp("<photoshop:Headline>Opening night</photoshop:Headline>")
        assert extract_xmp_caption(data) == "Opening night"

    def test_empty_matches_are_skipped(self):
        data = make_xmp(
            "<dc:subject>   </dc:subject>"
            '<rdf:Description photoshop:Headline="Wedding"/>'
        )
        assert extract_xmp_caption(data) == "Wedding"

    def test_packet_without_xmpmeta_end(self):
        data = (
            b'<?xpacket begin=""?><dc:subject>Harbor</dc:subject>'
            b'<?xpacket end="w"?>'
        )
        assert extract_xmp_caption(data) == "Harbor"


class TestExifFields:
    """Test EXIF parsing through Pillow."""

    def test_full_set(self, tmp_path):
        path = make_jpeg(
            tmp_path / "a.jpg",
            make="Canon",
            model="Canon EOS 5D",
            date_taken="2020:01:02 03:04:05",
            description="Family picnic",
        )
        fields = extract_exif_fields(path.read_bytes())

        assert fields == ExifFields(
            date_taken="2020-01-02T03:04:05",
            camera_make="Canon",
            camera_model="Canon EOS 5D",
            subject="Family picnic",
        )

    def test_xp_subject_preferred_over_description(self, tmp_path):
        path = make_jpeg(
            tmp_path / "a.jpg", xp_subject="Graduation", description="Something else"
        )
        assert extract_exif_fields(path.read_bytes()).subject == "Graduation"

    def test_user_comment_header_is_skipped(self, tmp_path):
        path = make_jpeg(
            tmp_path / "a.jpg", user_comment=b"ASCII\x00\x00\x00First steps"
        )
        assert extract_exif_fields(path.read_bytes()).subject == "First steps"

    def test_camera_boilerplate_description_dropped(self, tmp_path):
        path = make_jpeg(tmp_path / "a.jpg", make="OLYMPUS", description="OLYMPUS DIGITAL CAMERA")
        fields = extract_exif_fields(path.read_bytes())
        assert fields.camera_make == "OLYMPUS"
        assert fields.subject == ""

    def test_plain_jpeg_has_no_exif(self, tmp_path):
        path = make_jpeg(tmp_path / "a.jpg")
        assert extract_exif_fields(path.read_bytes()) is None

    def test_garbage_bytes(self):
        assert extract_exif_fields(b"not an image at all") is None


class TestCombineMetadata:
    """Test precedence between EXIF and XMP captions."""

    def test_xmp_replaces_placeholder(self):
        descriptor = combine_metadata(ExifFields(subject="[ASCII]"), "Real caption")
        assert descriptor.subject == "Real caption"
        assert descriptor.has_metadata

    def test_xmp_replaces_sentinel(self):
        descriptor = combine_metadata(ExifFields(subject="UserComment<bytes>"), "Real")
        assert descriptor.subject == "Real"

    def test_exif_caption_kept_when_meaningful(self):
        descriptor = combine_metadata(ExifFields(subject="From EXIF"), "From XMP")
        assert descriptor.subject == "From EXIF"

    def test_xmp_only(self):
        descriptor = combine_metadata(None, "Only XMP")
        assert descriptor.subject == "Only XMP"
        assert descriptor.has_metadata

    def test_nothing(self):
        descriptor = combine_metadata(None, None)
        assert not descriptor.has_metadata
        assert descriptor.subject == ""

    def test_partial_fields(self):
        descriptor = combine_metadata(ExifFields(date_taken="2020-01-01T00:00:00"), None)
        assert descriptor.has_metadata
        assert descriptor.camera_model == ""


class TestMetadataExtractor:
    """Test the extractor against a filesystem double."""

    def test_unreadable_file_degrades_to_empty(self):
        extractor = MetadataExtractor(FakeFileSystem())
        descriptor = extractor.extract("/photos/missing.jpg")
        assert not descriptor.has_metadata
        assert descriptor.date_taken == ""

    def test_extracts_from_filesystem(self, tmp_path):
        data = make_jpeg(tmp_path / "a.jpg", model="Pixel 7").read_bytes()
        fs = FakeFileSystem({"/photos/a.jpg": data})

        descriptor = MetadataExtractor(fs).extract("/photos/a.jpg")

        assert descriptor.camera_model == "Pixel 7"
        assert descriptor.has_metadata
        assert ("read_bytes", "/photos/a.jpg") in fs.calls

    def test_xmp_in_jpeg_trailer(self, tmp_path):
        data = make_jpeg(
            tmp_path / "a.jpg",
            trailer=make_xmp("<dc:subject><rdf:Bag><rdf:li>Lake</rdf:li></rdf:Bag></dc:subject>"),
        ).read_bytes()

        descriptor = MetadataExtractor(FakeFileSystem()).extract_from_bytes(data)

        assert descriptor.subject == "Lake"
        assert descriptor.has_metadata

    def test_raw_bytes_with_exif_marker(self, tmp_path):
        jpeg = make_jpeg(tmp_path / "a.jpg", make="Nikon").read_bytes()
        # Something Pillow cannot open but that still carries an Exif block
        data = b"RAWHEADER" + jpeg[jpeg.find(b"Exif\x00\x00"):]

        descriptor = MetadataExtractor(FakeFileSystem()).extract_from_bytes(data)

        assert descriptor.camera_make == "Nikon"
