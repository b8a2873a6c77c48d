from __future__ import annotations

from datetime import datetime

from pydantic import Field

from imgvault.application.dtos.common_dto import CamelModel
from imgvault.domain.entities.collection import CollectionEntity


class CollectionResponse(CamelModel):
    id: str
    name: str = Field(..., examples=["Wallpapers"])
    description: str = ""
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: CollectionEntity) -> CollectionResponse:
        return cls(id=entity.id, name=entity.name, description=entity.description, created_at=entity.created_at)


class ListCollectionsResponse(CamelModel):
    collections: list[CollectionResponse]
    total: int = Field(..., ge=0)


class CreateCollectionRequest(CamelModel):
    name: str = Field(..., min_length=1, description="Display name")
    description: str = Field("", description="Optional description")


class UpdateCollectionRequest(CamelModel):
    name: str | None = Field(None, description="New display name")
    description: str | None = Field(None, description="New description")
