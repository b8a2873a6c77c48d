from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Mapping

from imgvault.domain.entities.host_result import (
    IMGBB,
    PIXVID,
    HostFailed,
    HostResult,
    HostSkipped,
    HostSucceeded,
)
from imgvault.domain.entities.image_record import ImageRecord
from imgvault.domain.errors import (
    DuplicateFoundError,
    HostUploadError,
    IndexWriteError,
    IngestCancelledError,
)
from imgvault.domain.services.duplicate_detector import DuplicateDetector, DuplicateMatch
from imgvault.domain.services.hash_service import HashService, HashSet
from imgvault.domain.services.metadata_service import ExtractedMetadata, MetadataService
from imgvault.infrastructure.database.repositories.image_repository import ImageRepository
from imgvault.infrastructure.hosts.base import ImageHost
from imgvault.infrastructure.hosts.pixvid_host import upload_filename

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
}


@dataclass(frozen=True)
class IngestRequest:
    """Caller-supplied context for one image; everything except the bytes."""

    source_image_url: str = ""
    source_page_url: str = ""
    page_title: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    file_name: str = ""
    file_mime_type: str | None = None  # from the File object, if any
    file_last_modified: Any = None  # epoch millis or datetime, if any
    collection_id: str | None = None
    embedded_tags: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IngestAnalysis:
    hashes: HashSet
    metadata: ExtractedMetadata
    file_name: str
    source_image_url: str


def clean_source_url(url: str | None) -> str:
    # Context-menu captures arrive as base64 data URLs; those are not a source
    if not url or url.startswith("data:"):
        return ""
    return url


@dataclass
class ReplicationCoordinator:
    """Hash, dedup, replicate to both hosts, then persist one record.

    Hashing and the duplicate check finish before any upload starts. The
    required host must succeed; the optional host is best effort. Nothing
    is written to the index unless the required upload succeeded.
    """

    images: ImageRepository
    detector: DuplicateDetector
    pixvid: ImageHost
    imgbb: ImageHost | None = None

    def analyze(self, data: bytes, request: IngestRequest) -> IngestAnalysis:
        hashes = HashService.compute(data)
        if hashes.decode_error:
            logger.warning("Perceptual hashing skipped, exact-match dedup only: %s", hashes.decode_error)
        metadata = MetadataService.extract(
            data,
            declared_mime=request.file_mime_type,
            last_modified=request.file_last_modified,
            embedded_tags=request.embedded_tags,
        )
        source_url = clean_source_url(request.source_image_url)
        file_name = request.file_name or (upload_filename(source_url, default="") if source_url else "")
        return IngestAnalysis(hashes=hashes, metadata=metadata, file_name=file_name, source_image_url=source_url)

    def check_duplicate(self, analysis: IngestAnalysis, request: IngestRequest) -> DuplicateMatch | None:
        return self.detector.find_duplicate(
            analysis.hashes.sha256,
            analysis.hashes.perceptual,
            source_image_url=analysis.source_image_url,
            source_page_url=request.source_page_url,
        )

    def inspect(self, data: bytes, request: IngestRequest) -> tuple[IngestAnalysis, DuplicateMatch | None]:
        """Everything ingest computes, without touching the hosts or the index."""
        analysis = self.analyze(data, request)
        return analysis, self.check_duplicate(analysis, request)

    def ingest(
        self,
        data: bytes,
        request: IngestRequest,
        ignore_duplicate: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> ImageRecord:
        analysis = self.analyze(data, request)
        if ignore_duplicate:
            logger.info("Duplicate check skipped at caller's request")
        else:
            match = self.check_duplicate(analysis, request)
            if match is not None:
                raise DuplicateFoundError(match)
        if cancel_event is not None and cancel_event.is_set():
            raise IngestCancelledError()

        pixvid_result, imgbb_result = self._upload_all(data, self._upload_name(analysis))
        if isinstance(pixvid_result, HostFailed):
            if isinstance(imgbb_result, HostSucceeded):
                logger.warning("Pixvid failed; ImgBB asset %s left unreferenced", imgbb_result.url)
            raise HostUploadError(PIXVID, pixvid_result.error)
        if isinstance(imgbb_result, HostFailed):
            logger.warning("ImgBB upload failed, saving without it: %s", imgbb_result.error)

        uploaded = [r for r in (pixvid_result, imgbb_result) if isinstance(r, HostSucceeded)]
        if cancel_event is not None and cancel_event.is_set():
            for r in uploaded:
                logger.warning("Ingest cancelled after upload; orphaned %s asset %s", r.host, r.url)
            raise IngestCancelledError(orphaned=uploaded)

        record = self.build_record(analysis, request, pixvid_result, imgbb_result)
        try:
            saved = self.images.create(record)
        except IndexWriteError as exc:
            for r in uploaded:
                logger.error("Index write failed; orphaned %s asset %s", r.host, r.url)
            raise IndexWriteError(str(exc), orphaned=uploaded) from exc
        logger.info("Saved image %s (pixvid=%s, imgbb=%s)", saved.id, bool(saved.pixvid_url), bool(saved.imgbb_url))
        return saved

    def _upload_name(self, analysis: IngestAnalysis) -> str:
        if analysis.file_name:
            return analysis.file_name
        return f"image.{_EXTENSIONS.get(analysis.metadata.file_type, 'jpg')}"

    @staticmethod
    def _upload_one(host: ImageHost, data: bytes, filename: str) -> HostResult:
        try:
            result = host.upload(data, filename)
        except Exception as exc:
            logger.debug("%s upload error", host.name, exc_info=True)
            return HostFailed(host=host.name, error=str(exc))
        return HostSucceeded(
            host=host.name, url=result.url, delete_token=result.delete_token, thumb_url=result.thumb_url
        )

    def _upload_all(self, data: bytes, filename: str) -> tuple[HostResult, HostResult]:
        """Upload to both hosts concurrently and wait for both."""
        use_imgbb = self.imgbb is not None and self.imgbb.configured
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="host-upload") as pool:
            pixvid_future = pool.submit(self._upload_one, self.pixvid, data, filename)
            imgbb_future = pool.submit(self._upload_one, self.imgbb, data, filename) if use_imgbb else None
            pixvid_result = pixvid_future.result()
            imgbb_result: HostResult = (
                imgbb_future.result() if imgbb_future is not None
                else HostSkipped(host=IMGBB, reason="not configured")
            )
        return pixvid_result, imgbb_result

    @staticmethod
    def build_record(
        analysis: IngestAnalysis,
        request: IngestRequest,
        pixvid_result: HostSucceeded,
        imgbb_result: HostResult,
    ) -> ImageRecord:
        meta = analysis.metadata
        hashes = analysis.hashes
        imgbb = imgbb_result if isinstance(imgbb_result, HostSucceeded) else None
        return ImageRecord(
            id="",
            source_image_url=analysis.source_image_url,
            source_page_url=request.source_page_url,
            page_title=request.page_title,
            description=request.description,
            tags=tuple(request.tags),
            file_name=analysis.file_name,
            file_type=meta.file_type,
            file_type_source=meta.file_type_source,
            file_size=meta.file_size,
            width=meta.width,
            height=meta.height,
            creation_date=meta.creation_date,
            creation_date_source=meta.creation_date_source,
            sha256=hashes.sha256,
            p_hash=hashes.p_hash,
            a_hash=hashes.a_hash,
            d_hash=hashes.d_hash,
            pixvid_url=pixvid_result.url,
            pixvid_delete_token=pixvid_result.delete_token,
            imgbb_url=imgbb.url if imgbb else None,
            imgbb_delete_token=imgbb.delete_token if imgbb else None,
            imgbb_thumb_url=imgbb.thumb_url if imgbb else None,
            collection_id=request.collection_id,
            internal_added_timestamp=datetime.now(UTC),
            exif_metadata_map=dict(meta.exif_metadata_map),
        )
