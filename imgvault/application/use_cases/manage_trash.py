from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from imgvault.domain.entities.host_result import IMGBB, PIXVID, HostFailed, HostResult, HostSucceeded
from imgvault.domain.entities.image_record import ImageRecord, TrashRecord
from imgvault.domain.errors import (
    HostDeleteError,
    ImageNotFoundError,
    IndexWriteError,
    LifecycleStateError,
)
from imgvault.infrastructure.database.repositories.image_repository import (
    ImageRepository,
    TrashRepository,
)
from imgvault.infrastructure.hosts.base import ImageHost

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrashFailure:
    trash_id: str
    message: str


@dataclass
class EmptyTrashResult:
    deleted_count: int = 0
    errors: list[TrashFailure] = field(default_factory=list)


@dataclass
class LifecycleManager:
    """Active -> Trashed -> (Restored | PermanentlyDeleted).

    Moving to and from the trash only touches the index. Host assets are
    removed solely by a permanent delete, and the trash row survives until
    every host holding the image has confirmed the delete.
    """

    images: ImageRepository
    trash: TrashRepository
    pixvid: ImageHost
    imgbb: ImageHost

    def get_trashed(self, trash_id: str) -> TrashRecord:
        item = self.trash.get(trash_id)
        if item is None:
            raise ImageNotFoundError("Trash record", trash_id)
        return item

    def list_trash(self) -> list[TrashRecord]:
        return self.trash.list_recent()

    def soft_delete(self, image_id: str) -> TrashRecord:
        record = self.images.get(image_id)
        if record is None:
            raise ImageNotFoundError("Image", image_id)

        item = self.trash.create(
            TrashRecord(id="", original_id=image_id, deleted_at=datetime.now(UTC), record=record)
        )
        try:
            removed = self.images.delete(image_id)
        except IndexWriteError:
            self._rollback(self.trash, item.id)
            raise
        if not removed:
            # Someone else got there first
            self._rollback(self.trash, item.id)
            raise ImageNotFoundError("Image", image_id)
        logger.info("Moved image %s to trash as %s", image_id, item.id)
        return item

    def restore(self, trash_id: str) -> ImageRecord:
        item = self.get_trashed(trash_id)
        if PIXVID in item.purged_hosts:
            raise LifecycleStateError(
                f"Trash record {trash_id} was already removed from {PIXVID}; finish the permanent delete"
            )
        record = item.record
        if IMGBB in item.purged_hosts:
            record = replace(record, imgbb_url=None, imgbb_delete_token=None, imgbb_thumb_url=None)

        if item.original_id:
            restored = self.images.put(item.original_id, record)
        else:
            restored = self.images.create(record)
        try:
            self.trash.delete(trash_id)
        except IndexWriteError:
            self._rollback(self.images, restored.id)
            raise
        logger.info("Restored %s as image %s", trash_id, restored.id)
        return restored

    def permanently_delete(self, trash_id: str) -> None:
        item = self.get_trashed(trash_id)
        record = item.record
        targets = []
        for host, token, url in (
            (self.pixvid, record.pixvid_delete_token, record.pixvid_url),
            (self.imgbb, record.imgbb_delete_token, record.imgbb_url),
        ):
            if host.name in item.purged_hosts or not url:
                continue
            if not token:
                logger.warning("No %s delete token for %s; asset %s left on host", host.name, trash_id, url)
                continue
            targets.append((host, token))

        results = self._delete_all(targets)
        failures = [r for r in results if isinstance(r, HostFailed)]
        purged = tuple(item.purged_hosts) + tuple(r.host for r in results if isinstance(r, HostSucceeded))

        if failures:
            if purged != item.purged_hosts:
                try:
                    self.trash.put(trash_id, replace(item, purged_hosts=purged))
                except IndexWriteError:
                    logger.error("Could not record purged hosts %s for %s", purged, trash_id, exc_info=True)
            raise HostDeleteError(trash_id, failures)

        self.trash.delete(trash_id)
        logger.info("Permanently deleted %s (%d host assets removed)", trash_id, len(results))

    def empty_trash(self) -> EmptyTrashResult:
        """Permanently delete every trash row; failures stay in the trash and are reported."""
        result = EmptyTrashResult()
        for item in self.trash.list_all():
            try:
                self.permanently_delete(item.id)
            except (HostDeleteError, IndexWriteError, ImageNotFoundError) as exc:
                logger.warning("Empty trash: %s kept: %s", item.id, exc)
                result.errors.append(TrashFailure(trash_id=item.id, message=str(exc)))
            else:
                result.deleted_count += 1
        return result

    @staticmethod
    def _delete_one(host: ImageHost, token: str) -> HostResult:
        try:
            host.delete(token)
        except Exception as exc:
            logger.debug("%s delete error", host.name, exc_info=True)
            return HostFailed(host=host.name, error=str(exc))
        return HostSucceeded(host=host.name)

    def _delete_all(self, targets: list[tuple[ImageHost, str]]) -> list[HostResult]:
        if not targets:
            return []
        with ThreadPoolExecutor(max_workers=len(targets), thread_name_prefix="host-delete") as pool:
            futures = [pool.submit(self._delete_one, host, token) for host, token in targets]
            return [f.result() for f in futures]

    @staticmethod
    def _rollback(repo: ImageRepository | TrashRepository, document_id: str) -> None:
        try:
            repo.delete(document_id)
        except IndexWriteError:
            logger.error("Rollback of %s/%s failed", repo.collection, document_id, exc_info=True)
