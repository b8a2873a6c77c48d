from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from imgvault.application.dtos.image_dto import DuplicateResponse
from imgvault.application.dtos.trash_dto import HostDeleteErrorResponse
from imgvault.domain.errors import (
    DuplicateFoundError,
    HostDeleteError,
    HostUploadError,
    ImageFetchError,
    ImageNotFoundError,
    IndexWriteError,
    InvalidUpdateError,
    LifecycleStateError,
)

logger = logging.getLogger(__name__)


def add_default_middlewares(app: FastAPI) -> None:
    # The browser extension calls from a chrome-extension:// origin, the
    # gallery from the dev server
    env = os.getenv("ENV", "development")

    if env in ("development", "staging"):
        allowed_origins = [
            "http://localhost:3000",
            "http://localhost:5173",  # Vite default
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
        origin_regex = r"chrome-extension://.*"
    else:
        allowed_origins = ["*"]
        origin_regex = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_origin_regex=origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _detail(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def add_exception_handlers(app: FastAPI) -> None:
    """Map vault errors onto HTTP statuses."""

    @app.exception_handler(ImageNotFoundError)
    async def not_found(_: Request, exc: ImageNotFoundError):
        return _detail(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(DuplicateFoundError)
    async def duplicate(_: Request, exc: DuplicateFoundError):
        body = DuplicateResponse.from_match(exc.match, detail=str(exc))
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump(mode="json", by_alias=True))

    @app.exception_handler(LifecycleStateError)
    async def bad_state(_: Request, exc: LifecycleStateError):
        return _detail(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(InvalidUpdateError)
    async def invalid_update(_: Request, exc: InvalidUpdateError):
        return _detail(422, exc)

    @app.exception_handler(HostUploadError)
    async def upload_failed(_: Request, exc: HostUploadError):
        logger.warning("Ingest aborted: %s", exc)
        return _detail(status.HTTP_502_BAD_GATEWAY, exc)

    @app.exception_handler(HostDeleteError)
    async def delete_failed(_: Request, exc: HostDeleteError):
        body = HostDeleteErrorResponse.from_error(exc)
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=body.model_dump(mode="json", by_alias=True))

    @app.exception_handler(ImageFetchError)
    async def fetch_failed(_: Request, exc: ImageFetchError):
        return _detail(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(IndexWriteError)
    async def index_failed(_: Request, exc: IndexWriteError):
        logger.error("Index write failed: %s (orphaned uploads: %d)", exc, len(exc.orphaned))
        return _detail(status.HTTP_503_SERVICE_UNAVAILABLE, exc)
