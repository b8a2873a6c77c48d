from __future__ import annotations

import dataclasses

from fastapi import FastAPI

from imgvault.application.dtos.common_dto import HealthResponse, RootResponse
from imgvault.infrastructure.api.dependencies import get_settings
from imgvault.infrastructure.api.middlewares import add_default_middlewares, add_exception_handlers
from imgvault.infrastructure.api.routes.collection_routes import router as collection_router
from imgvault.infrastructure.api.routes.image_routes import router as image_router
from imgvault.infrastructure.api.routes.trash_routes import router as trash_router
from imgvault.utils.logger import log_config, setup_logging


def create_app() -> FastAPI:
    settings = get_settings()
    logger = setup_logging(settings.log_level)
    log_config("vault settings", dataclasses.asdict(settings), logger)

    app = FastAPI(
        title="ImgVault",
        version="0.1.0",
        description="""
        ## ImgVault API

        Personal image vault: images captured from the web are fingerprinted,
        checked for duplicates, replicated to Pixvid (required) and ImgBB
        (optional), and indexed with their source context.

        ### Lifecycle
        Active images move to trash with a soft delete, which never touches
        the hosts. From trash they are either restored unchanged or
        permanently deleted, which removes the hosted copies first.

        ### Authentication
        When `VAULT_API_TOKEN` is set, every endpoint except root and health
        requires it as a bearer token:
        ```
        Authorization: Bearer your-token
        ```

        ### Error Responses
        - **400 Bad Request**: Empty upload or an image URL that could not be fetched
        - **401 Unauthorized**: Missing or invalid bearer token
        - **404 Not Found**: No image, trash record or collection with that id
        - **409 Conflict**: Duplicate image (body carries the existing record)
        - **422 Unprocessable Entity**: Invalid request or non-editable field
        - **502 Bad Gateway**: Required host upload or a host delete failed
        - **503 Service Unavailable**: The record index rejected a write
        """,
    )
    add_default_middlewares(app)
    add_exception_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the ImgVault API",
    )
    def root():
        return {
            "status": "ok",
            "service": "imgvault",
            "version": app.version,
            "default_gallery_source": settings.default_gallery_source,
        }

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
    )
    def health():
        return {"status": "healthy"}

    app.include_router(image_router)
    app.include_router(trash_router)
    app.include_router(collection_router)
    return app


app = create_app()
