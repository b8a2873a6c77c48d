from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from imgvault.domain.entities.host_result import HostFailed, HostSucceeded
    from imgvault.domain.services.duplicate_detector import DuplicateMatch


class VaultError(Exception):
    """Base class for every error the vault core raises."""


class ImageNotFoundError(VaultError, LookupError):
    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class DuplicateFoundError(VaultError):
    """Ingest blocked because the image is already in the vault.

    The caller decides whether to retry with ``ignore_duplicate=True``.
    """

    def __init__(self, match: DuplicateMatch) -> None:
        where = "trash" if match.in_trash else "vault"
        super().__init__(f"Duplicate of {match.record.id} in {where} ({match.kind} match)")
        self.match = match


class HostUploadError(VaultError):
    def __init__(self, host: str, message: str) -> None:
        super().__init__(f"{host} upload failed: {message}")
        self.host = host


class HostDeleteError(VaultError):
    def __init__(self, trash_id: str, failures: Sequence[HostFailed]) -> None:
        detail = "; ".join(f"{f.host}: {f.error}" for f in failures)
        super().__init__(f"Host delete failed for {trash_id}: {detail}")
        self.trash_id = trash_id
        self.failures = list(failures)


class IndexWriteError(VaultError):
    """The record index rejected a write; nothing was persisted.

    ``orphaned`` lists host uploads that succeeded before the write failed.
    """

    def __init__(self, message: str, orphaned: Sequence[HostSucceeded] = ()) -> None:
        super().__init__(message)
        self.orphaned = list(orphaned)


class IngestCancelledError(VaultError):
    def __init__(self, orphaned: Sequence[HostSucceeded] = ()) -> None:
        super().__init__("Ingest cancelled by caller")
        self.orphaned = list(orphaned)


class InvalidUpdateError(VaultError, ValueError):
    pass


class LifecycleStateError(VaultError):
    """The requested transition is not allowed from the record's current state."""


class ImageFetchError(VaultError):
    pass
