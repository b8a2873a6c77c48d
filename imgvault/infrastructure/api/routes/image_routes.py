from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from imgvault.application.dtos.image_dto import (
    DuplicateResponse,
    ImageRecordResponse,
    IngestFromUrlRequest,
    InspectResponse,
    ListImagesResponse,
    UpdateImageRequest,
)
from imgvault.application.dtos.trash_dto import TrashRecordResponse
from imgvault.application.use_cases.ingest_image import IngestRequest, ReplicationCoordinator
from imgvault.application.use_cases.manage_trash import LifecycleManager
from imgvault.application.use_cases.update_image import UpdateImageUseCase
from imgvault.domain.errors import ImageNotFoundError
from imgvault.infrastructure.api.dependencies import (
    SettingsDep,
    get_coordinator,
    get_image_repo,
    get_lifecycle,
    get_update_use_case,
    require_token,
)
from imgvault.infrastructure.database.repositories.image_repository import ImageRepository
from imgvault.infrastructure.web.image_fetcher import fetch_image

router = APIRouter(
    prefix="/images",
    tags=["Images"],
    dependencies=[Depends(require_token)],
    responses={
        401: {"description": "Unauthorized - Invalid or missing bearer token"},
        404: {"description": "Not Found - No active image with this id"},
        503: {"description": "Service Unavailable - The record index rejected the write"},
    },
)


def _split_tags(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(t.strip() for t in raw.split(",") if t.strip())


def _read_upload(file: UploadFile) -> bytes:
    data = file.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return data


@router.post(
    "",
    response_model=ImageRecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest Image",
    description="""
    Store a new image in the vault.

    The bytes are fingerprinted (SHA-256 plus average, difference and DCT
    perceptual hashes) and checked for duplicates before anything is uploaded.
    The image is then replicated to Pixvid (required) and ImgBB (optional,
    when configured) and one record is written to the index.

    A duplicate returns 409 with the existing record; resend with
    `ignore_duplicate=true` to store it anyway.
    """,
    response_description="The stored record",
    responses={
        409: {"model": DuplicateResponse, "description": "Conflict - The image is already in the vault or trash"},
        502: {"description": "Bad Gateway - The required host rejected the upload"},
    },
)
def ingest_image(
    file: UploadFile = File(..., description="Image file"),
    source_image_url: str = Form("", description="Where the image was captured from"),
    source_page_url: str = Form("", description="Page the image was found on"),
    page_title: str = Form("", description="Title of the source page"),
    description: str = Form("", description="Free-text note"),
    tags: str = Form("", description="Comma-separated tags"),
    file_name: str = Form("", description="Overrides the uploaded file name"),
    file_last_modified: Optional[int] = Form(None, description="File last-modified time, epoch milliseconds"),
    collection_id: Optional[str] = Form(None, description="Collection to file the image under"),
    ignore_duplicate: bool = Form(False, description="Store even if a duplicate exists"),
    coordinator: ReplicationCoordinator = Depends(get_coordinator),
):
    data = _read_upload(file)
    request = IngestRequest(
        source_image_url=source_image_url,
        source_page_url=source_page_url,
        page_title=page_title,
        description=description,
        tags=_split_tags(tags),
        file_name=file_name or file.filename or "",
        file_mime_type=file.content_type,
        file_last_modified=file_last_modified,
        collection_id=collection_id or None,
    )
    record = coordinator.ingest(data, request, ignore_duplicate=ignore_duplicate)
    return ImageRecordResponse.from_record(record)


@router.post(
    "/from-url",
    response_model=ImageRecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest Image From URL",
    description="Fetch an image from an http(s) or data: URL and ingest it. "
    "data: URLs are never stored as the source image URL.",
    responses={
        400: {"description": "Bad Request - The image could not be fetched"},
        409: {"model": DuplicateResponse, "description": "Conflict - The image is already in the vault or trash"},
        502: {"description": "Bad Gateway - The required host rejected the upload"},
    },
)
def ingest_from_url(
    body: IngestFromUrlRequest,
    settings: SettingsDep,
    coordinator: ReplicationCoordinator = Depends(get_coordinator),
):
    fetched = fetch_image(body.image_url, timeout=settings.http_timeout)
    request = IngestRequest(
        source_image_url=body.image_url,
        source_page_url=body.source_page_url,
        page_title=body.page_title,
        description=body.description,
        tags=tuple(body.tags),
        file_name=body.file_name,
        # No File object here; the type comes from the bytes
        file_mime_type=None,
        collection_id=body.collection_id,
    )
    record = coordinator.ingest(fetched.data, request, ignore_duplicate=body.ignore_duplicate)
    return ImageRecordResponse.from_record(record)


@router.post(
    "/inspect",
    response_model=InspectResponse,
    summary="Inspect Image",
    description="Compute hashes, metadata and the duplicate check without uploading or storing anything.",
)
def inspect_image(
    file: UploadFile = File(..., description="Image file"),
    source_image_url: str = Form(""),
    source_page_url: str = Form(""),
    file_last_modified: Optional[int] = Form(None),
    coordinator: ReplicationCoordinator = Depends(get_coordinator),
):
    data = _read_upload(file)
    request = IngestRequest(
        source_image_url=source_image_url,
        source_page_url=source_page_url,
        file_name=file.filename or "",
        file_mime_type=file.content_type,
        file_last_modified=file_last_modified,
    )
    analysis, match = coordinator.inspect(data, request)
    return InspectResponse.from_analysis(analysis, match)


@router.get(
    "",
    response_model=ListImagesResponse,
    summary="List Images",
    description="Active images, most recently added first.",
)
def list_images(
    limit: int = Query(50, ge=1, le=500, description="Maximum number of images to return"),
    offset: int = Query(0, ge=0, description="Number of images to skip"),
    collection_id: Optional[str] = Query(None, description="Only images in this collection"),
    images: ImageRepository = Depends(get_image_repo),
):
    records = images.list_recent()
    if collection_id:
        records = [r for r in records if r.collection_id == collection_id]
    page = records[offset: offset + limit]
    return ListImagesResponse(
        images=[ImageRecordResponse.from_record(r) for r in page],
        total=len(records),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/search",
    response_model=ListImagesResponse,
    summary="Search Images",
    description="Case-insensitive match on page title, page URL, description and tags.",
)
def search_images(
    q: str = Query("", description="Search text"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    images: ImageRepository = Depends(get_image_repo),
):
    records = images.search(q)
    return ListImagesResponse(
        images=[ImageRecordResponse.from_record(r) for r in records[offset: offset + limit]],
        total=len(records),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{image_id}",
    response_model=ImageRecordResponse,
    summary="Get Image",
)
def get_image(image_id: str, images: ImageRepository = Depends(get_image_repo)):
    record = images.get(image_id)
    if record is None:
        raise ImageNotFoundError("Image", image_id)
    return ImageRecordResponse.from_record(record)


@router.patch(
    "/{image_id}",
    response_model=ImageRecordResponse,
    summary="Update Image",
    description="Edit caller-supplied fields. Hashes, host URLs, delete tokens and timestamps "
    "are fixed at ingest and rejected with 422.",
    responses={422: {"description": "Unprocessable Entity - Field cannot be updated"}},
)
def update_image(
    image_id: str,
    body: UpdateImageRequest,
    use_case: UpdateImageUseCase = Depends(get_update_use_case),
):
    record = use_case.execute(image_id, body.changes())
    return ImageRecordResponse.from_record(record)


@router.delete(
    "/{image_id}",
    response_model=TrashRecordResponse,
    summary="Move Image To Trash",
    description="Soft delete. Host assets are untouched until the trash record is permanently deleted.",
)
def soft_delete_image(image_id: str, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    item = lifecycle.soft_delete(image_id)
    return TrashRecordResponse.from_trash(item)
