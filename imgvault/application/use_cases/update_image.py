from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from imgvault.domain.entities.image_record import ImageRecord
from imgvault.domain.errors import ImageNotFoundError, InvalidUpdateError
from imgvault.infrastructure.database.repositories.collection_repository import CollectionRepository
from imgvault.infrastructure.database.repositories.image_repository import ImageRepository

# Caller-editable fields; hashes, host URLs, delete tokens and timestamps are fixed at ingest
EDITABLE_FIELDS = {
    "description": "description",
    "tags": "tags",
    "sourceImageUrl": "source_image_url",
    "sourcePageUrl": "source_page_url",
    "pageTitle": "page_title",
    "fileName": "file_name",
    "collectionId": "collection_id",
}


@dataclass
class UpdateImageUseCase:
    images: ImageRepository
    collections: CollectionRepository | None = None

    def execute(self, image_id: str, changes: Mapping[str, Any]) -> ImageRecord:
        """
        Apply a partial update to an active record.

        Keys may be given in index (camelCase) or attribute (snake_case) form.

        Raises:
            ImageNotFoundError: If no active record has this id
            InvalidUpdateError: If a key is not editable or a value is malformed
        """
        record = self.images.get(image_id)
        if record is None:
            raise ImageNotFoundError("Image", image_id)

        attrs = set(EDITABLE_FIELDS.values())
        values: dict[str, Any] = {}
        for key, value in changes.items():
            attr = EDITABLE_FIELDS.get(key, key)
            if attr not in attrs:
                raise InvalidUpdateError(f"Field '{key}' cannot be updated")
            values[attr] = value

        if "tags" in values:
            tags = values["tags"] or ()
            if isinstance(tags, str) or not all(isinstance(t, str) for t in tags):
                raise InvalidUpdateError("tags must be a list of strings")
            values["tags"] = tuple(t.strip() for t in tags if t.strip())
        for attr in ("description", "source_image_url", "source_page_url", "page_title", "file_name"):
            if attr in values:
                if values[attr] is None:
                    values[attr] = ""
                elif not isinstance(values[attr], str):
                    raise InvalidUpdateError(f"{attr} must be a string")
        collection_id = values.get("collection_id")
        if collection_id and self.collections is not None and self.collections.get(collection_id) is None:
            raise InvalidUpdateError(f"Collection not found: {collection_id}")

        if not values:
            return record
        return self.images.put(image_id, replace(record, **values))
