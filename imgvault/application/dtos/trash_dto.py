from __future__ import annotations

from datetime import datetime

from pydantic import Field

from imgvault.application.dtos.common_dto import CamelModel
from imgvault.application.dtos.image_dto import ImageRecordResponse
from imgvault.application.use_cases.manage_trash import EmptyTrashResult
from imgvault.domain.entities.image_record import TrashRecord
from imgvault.domain.errors import HostDeleteError


class TrashRecordResponse(CamelModel):
    """A soft-deleted image and its deletion bookkeeping."""
    id: str = Field(..., description="Trash record id")
    original_id: str = Field(..., description="Id the record had while active")
    deleted_at: datetime = Field(..., description="When it was moved to trash")
    purged_hosts: list[str] = Field(default_factory=list, description="Hosts whose asset is already gone")
    record: ImageRecordResponse

    @classmethod
    def from_trash(cls, item: TrashRecord) -> TrashRecordResponse:
        return cls(
            id=item.id,
            original_id=item.original_id,
            deleted_at=item.deleted_at,
            purged_hosts=list(item.purged_hosts),
            record=ImageRecordResponse.from_record(item.record),
        )


class ListTrashResponse(CamelModel):
    items: list[TrashRecordResponse] = Field(..., description="Trash, most recently deleted first")
    total: int = Field(..., ge=0)


class HostFailureResponse(CamelModel):
    host: str
    error: str


class HostDeleteErrorResponse(CamelModel):
    """Body of a 502 from a permanent delete; the record is still in trash."""
    detail: str
    trash_id: str
    failures: list[HostFailureResponse]

    @classmethod
    def from_error(cls, exc: HostDeleteError) -> HostDeleteErrorResponse:
        return cls(
            detail=str(exc),
            trash_id=exc.trash_id,
            failures=[HostFailureResponse(host=f.host, error=f.error) for f in exc.failures],
        )


class TrashFailureResponse(CamelModel):
    trash_id: str
    message: str


class EmptyTrashResponse(CamelModel):
    deleted_count: int = Field(..., description="Records permanently deleted", ge=0)
    errors: list[TrashFailureResponse] = Field(default_factory=list, description="Records left in trash and why")

    @classmethod
    def from_result(cls, result: EmptyTrashResult) -> EmptyTrashResponse:
        return cls(
            deleted_count=result.deleted_count,
            errors=[TrashFailureResponse(trash_id=e.trash_id, message=e.message) for e in result.errors],
        )
