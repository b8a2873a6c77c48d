from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field

from imgvault.application.dtos.common_dto import CamelModel
from imgvault.application.use_cases.ingest_image import IngestAnalysis
from imgvault.domain.entities.image_record import ImageRecord
from imgvault.domain.services.duplicate_detector import DuplicateMatch


class ImageRecordResponse(CamelModel):
    """One stored image: caller context, fingerprints and host locations."""
    id: str = Field(..., description="Record id assigned by the index", examples=["a1b2c3d4e5f6a7b8c9d0"])
    source_image_url: str = Field("", description="Where the image was captured from")
    source_page_url: str = Field("", description="Page the image was found on")
    page_title: str = Field("", description="Title of the source page")
    description: str = Field("", description="Free-text note")
    tags: list[str] = Field(default_factory=list, description="User tags")
    file_name: str = Field("", description="File name", examples=["sunset.jpg"])
    file_type: str = Field("", description="MIME type", examples=["image/jpeg"])
    file_type_source: str = Field("unknown", description="file-object | exif | unknown")
    file_size: int = Field(0, description="Size in bytes", ge=0)
    width: int | None = Field(None, description="Width in pixels")
    height: int | None = Field(None, description="Height in pixels")
    creation_date: datetime | None = Field(None, description="When the picture was taken, if known")
    creation_date_source: str = Field("unknown", description="exif | file-last-modified | unknown")
    sha256: str = Field("", description="Hex SHA-256 of the bytes")
    p_hash: str | None = Field(None, description="64-bit DCT perceptual hash, hex")
    a_hash: str | None = Field(None, description="64-bit average hash, hex")
    d_hash: str | None = Field(None, description="64-bit difference hash, hex")
    pixvid_url: str = Field("", description="URL on the required host")
    pixvid_delete_token: str | None = Field(None, description="Delete credential for the required host")
    imgbb_url: str | None = Field(None, description="URL on the optional host")
    imgbb_delete_token: str | None = Field(None, description="Delete credential for the optional host")
    imgbb_thumb_url: str | None = Field(None, description="Thumbnail URL on the optional host")
    collection_id: str | None = Field(None, description="Collection this image belongs to")
    internal_added_timestamp: datetime | None = Field(None, description="When the record was created")
    exif_metadata_map: dict[str, Any] = Field(default_factory=dict, description="Raw embedded metadata")

    @classmethod
    def from_record(cls, record: ImageRecord) -> ImageRecordResponse:
        return cls(
            id=record.id,
            source_image_url=record.source_image_url,
            source_page_url=record.source_page_url,
            page_title=record.page_title,
            description=record.description,
            tags=list(record.tags),
            file_name=record.file_name,
            file_type=record.file_type,
            file_type_source=record.file_type_source,
            file_size=record.file_size,
            width=record.width,
            height=record.height,
            creation_date=record.creation_date,
            creation_date_source=record.creation_date_source,
            sha256=record.sha256,
            p_hash=record.p_hash,
            a_hash=record.a_hash,
            d_hash=record.d_hash,
            pixvid_url=record.pixvid_url,
            pixvid_delete_token=record.pixvid_delete_token,
            imgbb_url=record.imgbb_url,
            imgbb_delete_token=record.imgbb_delete_token,
            imgbb_thumb_url=record.imgbb_thumb_url,
            collection_id=record.collection_id,
            internal_added_timestamp=record.internal_added_timestamp,
            exif_metadata_map=dict(record.exif_metadata_map),
        )


class ListImagesResponse(CamelModel):
    """Response model for listing images with pagination."""
    images: list[ImageRecordResponse] = Field(..., description="Images, newest first")
    total: int = Field(..., description="Total number of matching images", ge=0)
    limit: int = Field(..., description="Maximum number of images returned", ge=1, le=500)
    offset: int = Field(..., description="Number of images skipped", ge=0)


class DuplicateResponse(CamelModel):
    """Body of a 409: the image already stored that blocked ingest."""
    detail: str = Field(..., description="Human-readable reason")
    kind: str = Field(..., description="exact | perceptual | context")
    in_trash: bool = Field(False, description="The match is a trashed record")
    trash_id: str | None = Field(None, description="Trash record id when in_trash")
    score: float = Field(0.0, description="Mean normalised Hamming distance (0 = identical)")
    distances: dict[str, int] = Field(default_factory=dict, description="Hamming distance per perceptual hash")
    existing: ImageRecordResponse = Field(..., description="The matching record")

    @classmethod
    def from_match(cls, match: DuplicateMatch, detail: str = "") -> DuplicateResponse:
        return cls(
            detail=detail or f"Duplicate of {match.record.id}",
            kind=match.kind,
            in_trash=match.in_trash,
            trash_id=match.trash_id,
            score=match.score,
            distances=dict(match.distances),
            existing=ImageRecordResponse.from_record(match.record),
        )


class IngestFromUrlRequest(CamelModel):
    """Ingest an image the server fetches itself (http(s) or data: URL)."""
    image_url: str = Field(..., description="URL of the image", examples=["https://example.com/cat.jpg"])
    source_page_url: str = Field("", description="Page the image was found on")
    page_title: str = Field("", description="Title of the source page")
    description: str = Field("", description="Free-text note")
    tags: list[str] = Field(default_factory=list, description="User tags")
    file_name: str = Field("", description="Overrides the name derived from the URL")
    collection_id: str | None = Field(None, description="Collection to file the image under")
    ignore_duplicate: bool = Field(False, description="Store even if a duplicate exists")


class UpdateImageRequest(CamelModel):
    """Partial update; only fields that are set are applied."""
    # Unknown keys are kept so the update can reject them by name
    model_config = ConfigDict(extra="allow")

    description: str | None = None
    tags: list[str] | None = None
    source_image_url: str | None = None
    source_page_url: str | None = None
    page_title: str | None = None
    file_name: str | None = None
    collection_id: str | None = None

    def changes(self) -> dict[str, Any]:
        values = self.model_dump(exclude_unset=True, by_alias=True)
        values.update(self.model_extra or {})
        return values


class InspectResponse(CamelModel):
    """What ingest would store, plus the duplicate it would hit, without storing anything."""
    sha256: str
    p_hash: str | None = None
    a_hash: str | None = None
    d_hash: str | None = None
    decode_error: str | None = Field(None, description="Why perceptual hashes are missing")
    file_name: str = ""
    file_type: str = ""
    file_type_source: str = "unknown"
    file_size: int = 0
    width: int | None = None
    height: int | None = None
    creation_date: datetime | None = None
    creation_date_source: str = "unknown"
    exif_metadata_map: dict[str, Any] = Field(default_factory=dict)
    duplicate: DuplicateResponse | None = None

    @classmethod
    def from_analysis(cls, analysis: IngestAnalysis, match: DuplicateMatch | None) -> InspectResponse:
        meta = analysis.metadata
        hashes = analysis.hashes
        return cls(
            sha256=hashes.sha256,
            p_hash=hashes.p_hash,
            a_hash=hashes.a_hash,
            d_hash=hashes.d_hash,
            decode_error=hashes.decode_error,
            file_name=analysis.file_name,
            file_type=meta.file_type,
            file_type_source=meta.file_type_source,
            file_size=meta.file_size,
            width=meta.width,
            height=meta.height,
            creation_date=meta.creation_date,
            creation_date_source=meta.creation_date_source,
            exif_metadata_map=dict(meta.exif_metadata_map),
            duplicate=DuplicateResponse.from_match(match) if match is not None else None,
        )
