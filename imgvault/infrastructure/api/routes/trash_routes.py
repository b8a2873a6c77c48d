from __future__ import annotations

from fastapi import APIRouter, Depends, status

from imgvault.application.dtos.common_dto import SuccessResponse
from imgvault.application.dtos.image_dto import ImageRecordResponse
from imgvault.application.dtos.trash_dto import (
    EmptyTrashResponse,
    HostDeleteErrorResponse,
    ListTrashResponse,
    TrashRecordResponse,
)
from imgvault.application.use_cases.manage_trash import LifecycleManager
from imgvault.infrastructure.api.dependencies import get_lifecycle, require_token

router = APIRouter(
    prefix="/trash",
    tags=["Trash"],
    dependencies=[Depends(require_token)],
    responses={
        401: {"description": "Unauthorized - Invalid or missing bearer token"},
        404: {"description": "Not Found - No trash record with this id"},
    },
)


@router.get("", response_model=ListTrashResponse, summary="List Trash")
def list_trash(lifecycle: LifecycleManager = Depends(get_lifecycle)):
    items = lifecycle.list_trash()
    return ListTrashResponse(items=[TrashRecordResponse.from_trash(i) for i in items], total=len(items))


@router.get("/{trash_id}", response_model=TrashRecordResponse, summary="Get Trashed Image")
def get_trashed(trash_id: str, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return TrashRecordResponse.from_trash(lifecycle.get_trashed(trash_id))


@router.post(
    "/{trash_id}/restore",
    response_model=ImageRecordResponse,
    summary="Restore Image",
    description="Move a trashed record back to the active set with every field unchanged.",
    responses={409: {"description": "Conflict - The required host asset was already deleted"}},
)
def restore(trash_id: str, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return ImageRecordResponse.from_record(lifecycle.restore(trash_id))


@router.delete(
    "/{trash_id}",
    response_model=SuccessResponse,
    summary="Permanently Delete Image",
    description="""
    Delete the image from every host that holds it, then drop the trash record.

    If any host delete fails the record stays in trash and the per-host
    failures are returned with 502. Hosts that did succeed are remembered,
    so a retry only contacts the ones that failed.
    """,
    responses={502: {"model": HostDeleteErrorResponse, "description": "Bad Gateway - A host delete failed"}},
)
def permanently_delete(trash_id: str, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    lifecycle.permanently_delete(trash_id)
    return SuccessResponse(ok=True, message=f"Deleted {trash_id}")


@router.delete(
    "",
    response_model=EmptyTrashResponse,
    status_code=status.HTTP_200_OK,
    summary="Empty Trash",
    description="Permanently delete everything in trash. Records whose host delete failed stay and are listed in errors.",
)
def empty_trash(lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return EmptyTrashResponse.from_result(lifecycle.empty_trash())
