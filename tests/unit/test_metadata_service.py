from datetime import UTC, datetime

import pytest
from PIL import Image

from imgvault.domain.services.metadata_service import (
    MetadataService as MS,
    parse_exif_datetime,
    parse_last_modified,
)


def _jpeg_with_datetime(make_image, value: str) -> bytes:
    exif = Image.Exif()
    exif[0x0132] = value  # DateTime
    return make_image(4, fmt="JPEG", quality=90, exif=exif.tobytes())


def test_declared_type_used_when_it_agrees(make_image):
    meta = MS.extract(make_image(1), declared_mime="image/png")
    assert (meta.file_type, meta.file_type_source) == ("image/png", "file-object")


def test_embedded_type_wins_on_disagreement(make_image):
    meta = MS.extract(make_image(1, fmt="JPEG"), declared_mime="image/png")
    assert (meta.file_type, meta.file_type_source) == ("image/jpeg", "exif")


def test_embedded_type_when_nothing_declared(make_image):
    meta = MS.extract(make_image(1))
    assert (meta.file_type, meta.file_type_source) == ("image/png", "exif")


def test_jpg_alias_agrees_with_embedded_jpeg(make_image):
    meta = MS.extract(make_image(1, fmt="JPEG"), declared_mime="image/jpg")
    assert (meta.file_type, meta.file_type_source) == ("image/jpeg", "file-object")


def test_generic_declared_type_is_ignored(make_image):
    meta = MS.extract(make_image(1), declared_mime="application/octet-stream")
    assert meta.file_type == "image/png"


def test_unknown_type_for_undecodable_bytes_without_declaration():
    meta = MS.extract(b"garbage")
    assert (meta.file_type, meta.file_type_source) == ("", "unknown")
    assert meta.width is None and meta.height is None
    assert meta.file_size == len(b"garbage")


def test_declared_type_kept_for_undecodable_bytes():
    meta = MS.extract(b"garbage", declared_mime="image/heic")
    assert (meta.file_type, meta.file_type_source) == ("image/heic", "file-object")


def test_dimensions_and_size(make_image):
    data = make_image(1)
    meta = MS.extract(data)
    assert (meta.width, meta.height) == (64, 64)
    assert meta.file_size == len(data)


def test_exif_date_beats_last_modified(make_image):
    data = _jpeg_with_datetime(make_image, "2021:06:01 12:30:00")
    meta = MS.extract(data, last_modified=1_700_000_000_000)
    assert meta.creation_date == datetime(2021, 6, 1, 12, 30, tzinfo=UTC)
    assert meta.creation_date_source == "exif"
    assert meta.exif_metadata_map["DateTime"] == "2021:06:01 12:30:00"


def test_last_modified_used_without_exif_date(make_image):
    meta = MS.extract(make_image(1), last_modified=1_700_000_000_000)
    assert meta.creation_date == datetime.fromtimestamp(1_700_000_000, tz=UTC)
    assert meta.creation_date_source == "file-last-modified"


def test_creation_date_unknown_without_sources(make_image):
    meta = MS.extract(make_image(1))
    assert meta.creation_date is None
    assert meta.creation_date_source == "unknown"


def test_caller_tags_override_decoded_exif(make_image):
    meta = MS.extract(
        make_image(1),
        declared_mime="image/png",
        embedded_tags={"DateTimeOriginal": "2019:01:02 03:04:05", "MIMEType": "image/webp"},
    )
    assert meta.creation_date == datetime(2019, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert (meta.file_type, meta.file_type_source) == ("image/webp", "exif")


def test_date_tag_precedence():
    exif = {"DateTime": "2020:01:01 00:00:00", "DateTimeOriginal": "2018:05:05 05:05:05"}
    assert MS.resolve_creation_date(exif, None) == (datetime(2018, 5, 5, 5, 5, 5, tzinfo=UTC), "exif")


def test_unparseable_exif_date_falls_through():
    exif = {"DateTimeOriginal": "0000:00:00 00:00:00"}
    date, source = MS.resolve_creation_date(exif, 1_000)
    assert source == "file-last-modified"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2022:03:04 05:06:07", datetime(2022, 3, 4, 5, 6, 7, tzinfo=UTC)),
        ("2022-03-04T05:06:07Z", datetime(2022, 3, 4, 5, 6, 7, tzinfo=UTC)),
        ("", None),
        (None, None),
        ("yesterday", None),
    ],
)
def test_parse_exif_datetime(value, expected):
    assert parse_exif_datetime(value) == expected


def test_parse_last_modified_accepts_millis_and_datetimes():
    assert parse_last_modified(0) is None
    assert parse_last_modified("1000") == datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)
    naive = datetime(2020, 1, 1)
    assert parse_last_modified(naive) == naive.replace(tzinfo=UTC)
