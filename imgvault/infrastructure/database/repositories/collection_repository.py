from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from imgvault.domain.entities.collection import CollectionEntity
from imgvault.infrastructure.database.repositories.document_repository import (
    DocumentRepository,
    parse_datetime,
)


class CollectionRepository(DocumentRepository[CollectionEntity]):
    collection = "collections"

    def to_document(self, entity: CollectionEntity) -> dict[str, Any]:
        return {"name": entity.name, "description": entity.description, "createdAt": entity.created_at}

    def from_document(self, document_id: str, doc: dict[str, Any]) -> CollectionEntity:
        return CollectionEntity(
            id=document_id,
            name=doc.get("name") or "",
            description=doc.get("description") or "",
            created_at=parse_datetime(doc.get("createdAt")) or datetime.now(UTC),
        )

    def with_id(self, entity: CollectionEntity, document_id: str) -> CollectionEntity:
        return replace(entity, id=document_id)
