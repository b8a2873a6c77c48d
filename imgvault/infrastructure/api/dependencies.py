from __future__ import annotations

import secrets
from functools import lru_cache
from typing import Annotated, Iterator

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from imgvault.application.use_cases.ingest_image import ReplicationCoordinator
from imgvault.application.use_cases.manage_collections import CollectionsUseCase
from imgvault.application.use_cases.manage_trash import LifecycleManager
from imgvault.application.use_cases.update_image import UpdateImageUseCase
from imgvault.domain.services.duplicate_detector import DuplicateDetector
from imgvault.infrastructure.config import VaultSettings, load_settings
from imgvault.infrastructure.database.repositories.collection_repository import CollectionRepository
from imgvault.infrastructure.database.repositories.image_repository import (
    ImageRepository,
    TrashRepository,
)
from imgvault.infrastructure.hosts.imgbb_host import ImgbbHost
from imgvault.infrastructure.hosts.pixvid_host import PixvidHost

_bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_settings() -> VaultSettings:
    return load_settings()


SettingsDep = Annotated[VaultSettings, Depends(get_settings)]


def require_token(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
) -> None:
    # No token configured means a single-user local deployment
    if not settings.api_token:
        return
    if not credentials or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    if not secrets.compare_digest(credentials.credentials, settings.api_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid bearer token")


def get_image_repo(settings: SettingsDep) -> ImageRepository:
    return ImageRepository(settings)


def get_trash_repo(settings: SettingsDep) -> TrashRepository:
    return TrashRepository(settings)


def get_collection_repo(settings: SettingsDep) -> CollectionRepository:
    return CollectionRepository(settings)


def get_pixvid_host(settings: SettingsDep) -> Iterator[PixvidHost]:
    host = PixvidHost(settings)
    try:
        yield host
    finally:
        host.close()


def get_imgbb_host(settings: SettingsDep) -> Iterator[ImgbbHost]:
    host = ImgbbHost(settings)
    try:
        yield host
    finally:
        host.close()


def get_coordinator(
    settings: SettingsDep,
    images: Annotated[ImageRepository, Depends(get_image_repo)],
    trash: Annotated[TrashRepository, Depends(get_trash_repo)],
    pixvid: Annotated[PixvidHost, Depends(get_pixvid_host)],
    imgbb: Annotated[ImgbbHost, Depends(get_imgbb_host)],
) -> ReplicationCoordinator:
    detector = DuplicateDetector(images, trash, settings.dedup)
    return ReplicationCoordinator(images=images, detector=detector, pixvid=pixvid, imgbb=imgbb)


def get_lifecycle(
    images: Annotated[ImageRepository, Depends(get_image_repo)],
    trash: Annotated[TrashRepository, Depends(get_trash_repo)],
    pixvid: Annotated[PixvidHost, Depends(get_pixvid_host)],
    imgbb: Annotated[ImgbbHost, Depends(get_imgbb_host)],
) -> LifecycleManager:
    return LifecycleManager(images=images, trash=trash, pixvid=pixvid, imgbb=imgbb)


def get_update_use_case(
    images: Annotated[ImageRepository, Depends(get_image_repo)],
    collections: Annotated[CollectionRepository, Depends(get_collection_repo)],
) -> UpdateImageUseCase:
    return UpdateImageUseCase(images=images, collections=collections)


def get_collections_use_case(
    collections: Annotated[CollectionRepository, Depends(get_collection_repo)],
) -> CollectionsUseCase:
    return CollectionsUseCase(collections)
