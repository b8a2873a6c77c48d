from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from imgvault.domain.errors import IndexWriteError
from imgvault.infrastructure.config import VaultSettings
from imgvault.infrastructure.database.firestore_client import FirestoreClient, get_firestore_client

if TYPE_CHECKING:  # pragma: no cover
    from imgvault.infrastructure.database.postgres_client import PostgresClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

# module-level in-memory store for disabled mode, keyed by collection then id
_MEM_DOCUMENTS: dict[str, dict[str, dict[str, Any]]] = {}


def reset_memory_store() -> None:
    _MEM_DOCUMENTS.clear()


def parse_datetime(value: Any) -> datetime | None:
    # Firestore returns datetimes, the JSONB store returns ISO strings
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class DocumentRepository(Generic[T]):
    """One index collection, backed by PostgreSQL, memory or Firestore.

    Backend precedence follows the settings: ``use_local_db`` first, then the
    in-memory store when the index is disabled or no Firestore project is
    configured, otherwise Firestore over REST.
    """

    collection: str = ""

    def __init__(
        self,
        settings: VaultSettings,
        *,
        firestore: FirestoreClient | None = None,
        pg_client: PostgresClient | None = None,
    ) -> None:
        self.settings = settings
        self.pg_client = None
        self.firestore = None
        self._mem: dict[str, dict[str, Any]] | None = None
        if settings.use_local_db:
            if pg_client is None:
                from imgvault.infrastructure.database.postgres_client import get_postgres_client

                pg_client = get_postgres_client(settings.postgres_dsn)
            self.pg_client = pg_client
        elif settings.index_in_memory and firestore is None:
            self._mem = _MEM_DOCUMENTS.setdefault(self.collection, {})
        else:
            self.firestore = firestore or get_firestore_client(
                settings.firestore_project_id,
                settings.firestore_api_key,
                timeout=settings.http_timeout,
            )

    # Mapping hooks

    def to_document(self, entity: T) -> dict[str, Any]:
        raise NotImplementedError

    def from_document(self, document_id: str, doc: dict[str, Any]) -> T:
        raise NotImplementedError

    def with_id(self, entity: T, document_id: str) -> T:
        raise NotImplementedError

    # Operations

    def create(self, entity: T) -> T:
        """Persist a new document and return the entity with its assigned id."""
        doc = self.to_document(entity)
        try:
            if self.firestore is not None:
                document_id = self.firestore.create(self.collection, doc)
            else:
                document_id = uuid.uuid4().hex[:20]
                self._write(document_id, doc)
        except Exception as exc:
            raise IndexWriteError(f"Index insert into {self.collection} failed: {exc}") from exc
        return self.with_id(entity, document_id)

    def put(self, document_id: str, entity: T) -> T:
        doc = self.to_document(entity)
        try:
            if self.firestore is not None:
                self.firestore.put(self.collection, document_id, doc)
            else:
                self._write(document_id, doc)
        except Exception as exc:
            raise IndexWriteError(f"Index write {self.collection}/{document_id} failed: {exc}") from exc
        return self.with_id(entity, document_id)

    def _write(self, document_id: str, doc: dict[str, Any]) -> None:
        if self.pg_client is not None:
            self.pg_client.put_document(self.collection, document_id, doc)
        else:
            self._mem[document_id] = copy.deepcopy(doc)

    def get(self, document_id: str) -> T | None:
        if self.pg_client is not None:
            doc = self.pg_client.get_document(self.collection, document_id)
        elif self._mem is not None:
            doc = copy.deepcopy(self._mem.get(document_id))
        else:
            doc = self.firestore.get(self.collection, document_id)
        return self.from_document(document_id, doc) if doc is not None else None

    def delete(self, document_id: str) -> bool:
        try:
            if self.pg_client is not None:
                return self.pg_client.delete_document(self.collection, document_id)
            if self._mem is not None:
                return self._mem.pop(document_id, None) is not None
            self.firestore.delete(self.collection, document_id)
            return True
        except Exception as exc:
            raise IndexWriteError(f"Index delete {self.collection}/{document_id} failed: {exc}") from exc

    def list_all(self) -> list[T]:
        if self.pg_client is not None:
            rows = self.pg_client.list_documents(self.collection)
        elif self._mem is not None:
            rows = [(k, copy.deepcopy(v)) for k, v in self._mem.items()]
        else:
            rows = self.firestore.list(self.collection)
        return [self.from_document(document_id, doc) for document_id, doc in rows]
