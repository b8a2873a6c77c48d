from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from io import BytesIO
from typing import Any, Mapping

from PIL import ExifTags, Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Embedded capture-time tags, strongest first
EXIF_DATE_TAGS = ("DateTimeOriginal", "DateTime", "CreateDate")
EXIF_TYPE_TAGS = ("MIMEType", "FileType")
_EXIF_IFD = 0x8769

_FILE_TYPE_ALIASES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "heic": "image/heic",
    "heif": "image/heif",
    "avif": "image/avif",
}

# Declared types that say nothing about the content
_GENERIC_TYPES = {"application/octet-stream", "binary/octet-stream", ""}


@dataclass(frozen=True)
class ExtractedMetadata:
    file_type: str
    file_type_source: str
    creation_date: datetime | None
    creation_date_source: str
    width: int | None
    height: int | None
    file_size: int
    exif_metadata_map: dict[str, Any] = field(default_factory=dict)


def _normalize_mime(value: Any) -> str | None:
    if not value:
        return None
    text = str(value).strip().lower()
    if text in _GENERIC_TYPES:
        return None
    if "/" in text:
        kind, _, subtype = text.partition("/")
        if kind == "image":
            return _FILE_TYPE_ALIASES.get(subtype, text)
        return text
    return _FILE_TYPE_ALIASES.get(text.lstrip("."))


def _plain(value: Any) -> Any:
    """Coerce PIL tag values into something an index document can hold."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").rstrip("\x00")
    if isinstance(value, (tuple, list)):
        return [_plain(v) for v in value]
    if isinstance(value, (str, int, bool)) or value is None:
        return value
    try:
        number = float(value)  # IFDRational and friends
    except (TypeError, ValueError):
        return str(value)
    return number if number == number else str(value)


def parse_exif_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not value:
        return None
    text = str(value).strip().rstrip("\x00")
    for fmt in ("%Y:%m:%d %H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y:%m:%d %H:%M:%S%z"):
        try:
            parsed = datetime.strptime(text, fmt)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def parse_last_modified(value: Any) -> datetime | None:
    """OS last-modified, as a datetime or epoch milliseconds (browser File.lastModified)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    try:
        millis = float(value)
    except (TypeError, ValueError):
        return parse_exif_datetime(value)
    if millis <= 0:
        return None
    return datetime.fromtimestamp(millis / 1000.0, tz=UTC)


class MetadataService:
    """Derives file type, creation date, dimensions and the EXIF bag.

    Precedence:
    - file type: declared MIME type of the File object; the embedded type wins
      when it disagrees or when there is no File object; otherwise unknown
    - creation date: embedded capture time, then OS last-modified, then unknown
    """

    @staticmethod
    def read_exif(img: Image.Image) -> dict[str, Any]:
        tags: dict[str, Any] = {}
        try:
            exif = img.getexif()
        except Exception as exc:  # malformed EXIF
            logger.debug("EXIF read failed: %s", exc)
            return tags
        for tag_id, value in exif.items():
            if tag_id == _EXIF_IFD:
                continue
            tags[ExifTags.TAGS.get(tag_id, str(tag_id))] = _plain(value)
        try:
            sub_ifd = exif.get_ifd(_EXIF_IFD)
        except Exception:
            sub_ifd = {}
        for tag_id, value in sub_ifd.items():
            tags[ExifTags.TAGS.get(tag_id, str(tag_id))] = _plain(value)
        return tags

    @staticmethod
    def resolve_file_type(declared_mime: str | None, embedded_type: str | None) -> tuple[str, str]:
        declared = _normalize_mime(declared_mime)
        embedded = _normalize_mime(embedded_type)
        if declared and embedded and declared != embedded:
            logger.warning("File type mismatch: declared %s, embedded %s", declared, embedded)
            return embedded, "exif"
        if declared:
            return declared, "file-object"
        if embedded:
            return embedded, "exif"
        return "", "unknown"

    @staticmethod
    def resolve_creation_date(
        exif: Mapping[str, Any], last_modified: Any
    ) -> tuple[datetime | None, str]:
        for tag in EXIF_DATE_TAGS:
            parsed = parse_exif_datetime(exif.get(tag))
            if parsed is not None:
                return parsed, "exif"
        modified = parse_last_modified(last_modified)
        if modified is not None:
            return modified, "file-last-modified"
        return None, "unknown"

    @classmethod
    def extract(
        cls,
        data: bytes,
        *,
        declared_mime: str | None = None,
        last_modified: Any = None,
        embedded_tags: Mapping[str, Any] | None = None,
    ) -> ExtractedMetadata:
        """Pure transform over the provided inputs; decode failures are tolerated."""
        exif: dict[str, Any] = {}
        width = height = None
        container_mime = None
        try:
            img = Image.open(BytesIO(data))
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            logger.info("Image decode failed, dimensions unknown: %s", exc)
            img = None
        if img is not None:
            width, height = img.size
            container_mime = Image.MIME.get(img.format or "")
            exif = cls.read_exif(img)
        if embedded_tags:
            exif.update({str(k): _plain(v) for k, v in embedded_tags.items()})

        embedded_type = next((exif[t] for t in EXIF_TYPE_TAGS if exif.get(t)), None) or container_mime
        file_type, file_type_source = cls.resolve_file_type(declared_mime, embedded_type)
        creation_date, creation_date_source = cls.resolve_creation_date(exif, last_modified)
        return ExtractedMetadata(
            file_type=file_type,
            file_type_source=file_type_source,
            creation_date=creation_date,
            creation_date_source=creation_date_source,
            width=width,
            height=height,
            file_size=len(data),
            exif_metadata_map=exif,
        )
