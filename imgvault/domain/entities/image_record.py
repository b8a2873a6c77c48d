from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

FILE_TYPE_SOURCES = ("file-object", "exif", "unknown")
CREATION_DATE_SOURCES = ("exif", "file-last-modified", "unknown")


@dataclass(frozen=True)
class ImageRecord:
    id: str  # empty until the index assigns one
    source_image_url: str = ""
    source_page_url: str = ""
    page_title: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    file_name: str = ""
    file_type: str = ""
    file_type_source: str = "unknown"
    file_size: int = 0  # bytes
    width: int | None = None
    height: int | None = None
    creation_date: datetime | None = None
    creation_date_source: str = "unknown"
    # Content fingerprints, fixed at ingest
    sha256: str = ""
    p_hash: str | None = None
    a_hash: str | None = None
    d_hash: str | None = None
    # Required host
    pixvid_url: str = ""
    pixvid_delete_token: str | None = None
    # Optional host
    imgbb_url: str | None = None
    imgbb_delete_token: str | None = None
    imgbb_thumb_url: str | None = None
    collection_id: str | None = None  # weak reference
    internal_added_timestamp: datetime | None = None
    exif_metadata_map: dict[str, Any] = field(default_factory=dict)

    @property
    def perceptual_hashes(self) -> dict[str, str]:
        hashes = {"phash": self.p_hash, "ahash": self.a_hash, "dhash": self.d_hash}
        return {k: v for k, v in hashes.items() if v}


@dataclass(frozen=True)
class TrashRecord:
    id: str
    original_id: str
    deleted_at: datetime
    record: ImageRecord
    # Hosts whose asset has already been removed by a partial permanent delete
    purged_hosts: tuple[str, ...] = ()
