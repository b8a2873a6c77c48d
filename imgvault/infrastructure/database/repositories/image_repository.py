from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from imgvault.domain.entities.image_record import ImageRecord, TrashRecord
from imgvault.infrastructure.database.repositories.document_repository import (
    DocumentRepository,
    parse_datetime,
)

_EPOCH = datetime.min.replace(tzinfo=UTC)

# (attribute, index field) for the plain-valued fields of ImageRecord
_FIELDS = (
    ("source_image_url", "sourceImageUrl"),
    ("source_page_url", "sourcePageUrl"),
    ("page_title", "pageTitle"),
    ("description", "description"),
    ("file_name", "fileName"),
    ("file_type", "fileType"),
    ("file_type_source", "fileTypeSource"),
    ("file_size", "fileSize"),
    ("width", "width"),
    ("height", "height"),
    ("creation_date_source", "creationDateSource"),
    ("sha256", "sha256"),
    ("p_hash", "pHash"),
    ("a_hash", "aHash"),
    ("d_hash", "dHash"),
    ("pixvid_url", "pixvidUrl"),
    ("pixvid_delete_token", "pixvidDeleteToken"),
    ("imgbb_url", "imgbbUrl"),
    ("imgbb_delete_token", "imgbbDeleteToken"),
    ("imgbb_thumb_url", "imgbbThumbUrl"),
    ("collection_id", "collectionId"),
)

# Older documents stored delete URLs under these names
_LEGACY_FIELDS = {
    "pixvidDeleteToken": "pixvidDeleteUrl",
    "imgbbDeleteToken": "imgbbDeleteUrl",
}

_DEFAULTS = {f.name: f.default for f in ImageRecord.__dataclass_fields__.values()}


def record_to_document(record: ImageRecord) -> dict[str, Any]:
    doc: dict[str, Any] = {name: getattr(record, attr) for attr, name in _FIELDS}
    doc["tags"] = list(record.tags)
    doc["creationDate"] = record.creation_date
    doc["internalAddedTimestamp"] = record.internal_added_timestamp
    doc["exifMetadataMap"] = dict(record.exif_metadata_map)
    return doc


def document_to_record(document_id: str, doc: dict[str, Any]) -> ImageRecord:
    values: dict[str, Any] = {}
    for attr, name in _FIELDS:
        value = doc.get(name)
        if value is None and name in _LEGACY_FIELDS:
            value = doc.get(_LEGACY_FIELDS[name])
        # Firestore drops empty optionals; fall back to the dataclass default
        values[attr] = _DEFAULTS[attr] if value is None else value
    for attr in ("file_size", "width", "height"):
        if values[attr] is not None:
            values[attr] = int(values[attr])
    return ImageRecord(
        id=document_id,
        tags=tuple(doc.get("tags") or ()),
        creation_date=parse_datetime(doc.get("creationDate")),
        internal_added_timestamp=parse_datetime(doc.get("internalAddedTimestamp")),
        exif_metadata_map=dict(doc.get("exifMetadataMap") or doc.get("exifMetadata") or {}),
        **values,
    )


class ImageRepository(DocumentRepository[ImageRecord]):
    """Active records (``images`` collection)."""

    collection = "images"

    def to_document(self, entity: ImageRecord) -> dict[str, Any]:
        return record_to_document(entity)

    def from_document(self, document_id: str, doc: dict[str, Any]) -> ImageRecord:
        return document_to_record(document_id, doc)

    def with_id(self, entity: ImageRecord, document_id: str) -> ImageRecord:
        return replace(entity, id=document_id)

    def list_recent(self) -> list[ImageRecord]:
        return sorted(
            self.list_all(), key=lambda r: r.internal_added_timestamp or _EPOCH, reverse=True
        )

    def search(self, query: str) -> list[ImageRecord]:
        needle = query.lower().strip()
        if not needle:
            return self.list_recent()
        return [
            r
            for r in self.list_recent()
            if needle in r.page_title.lower()
            or needle in r.source_page_url.lower()
            or needle in r.description.lower()
            or any(needle in tag.lower() for tag in r.tags)
        ]


class TrashRepository(DocumentRepository[TrashRecord]):
    """Soft-deleted records (``trash`` collection): the record plus deletion bookkeeping."""

    collection = "trash"

    def to_document(self, entity: TrashRecord) -> dict[str, Any]:
        doc = record_to_document(entity.record)
        doc["originalId"] = entity.original_id
        doc["deletedAt"] = entity.deleted_at
        doc["purgedHosts"] = list(entity.purged_hosts)
        return doc

    def from_document(self, document_id: str, doc: dict[str, Any]) -> TrashRecord:
        original_id = doc.get("originalId") or ""
        return TrashRecord(
            id=document_id,
            original_id=original_id,
            deleted_at=parse_datetime(doc.get("deletedAt")) or _EPOCH,
            record=document_to_record(original_id, doc),
            purged_hosts=tuple(doc.get("purgedHosts") or ()),
        )

    def with_id(self, entity: TrashRecord, document_id: str) -> TrashRecord:
        return replace(entity, id=document_id)

    def list_recent(self) -> list[TrashRecord]:
        return sorted(self.list_all(), key=lambda t: t.deleted_at, reverse=True)
