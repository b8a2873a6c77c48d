from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from imgvault.domain.entities.collection import CollectionEntity
from imgvault.domain.errors import ImageNotFoundError, InvalidUpdateError
from imgvault.infrastructure.database.repositories.collection_repository import CollectionRepository

logger = logging.getLogger(__name__)


@dataclass
class CollectionsUseCase:
    """Named groupings of images.

    Records point at a collection by id only, so deleting a collection leaves
    its members in place with a dangling ``collection_id``.
    """

    collections: CollectionRepository

    def list_all(self) -> list[CollectionEntity]:
        return sorted(self.collections.list_all(), key=lambda c: c.created_at, reverse=True)

    def get(self, collection_id: str) -> CollectionEntity:
        entity = self.collections.get(collection_id)
        if entity is None:
            raise ImageNotFoundError("Collection", collection_id)
        return entity

    def create(self, name: str, description: str = "") -> CollectionEntity:
        name = (name or "").strip()
        if not name:
            raise InvalidUpdateError("Collection name is required")
        entity = CollectionEntity(id="", name=name, description=description or "", created_at=datetime.now(UTC))
        return self.collections.create(entity)

    def update(self, collection_id: str, name: str | None = None, description: str | None = None) -> CollectionEntity:
        entity = self.get(collection_id)
        if name is not None:
            name = name.strip()
            if not name:
                raise InvalidUpdateError("Collection name cannot be empty")
            entity = replace(entity, name=name)
        if description is not None:
            entity = replace(entity, description=description)
        return self.collections.put(collection_id, entity)

    def delete(self, collection_id: str) -> None:
        self.get(collection_id)
        self.collections.delete(collection_id)
        logger.info("Deleted collection %s", collection_id)
