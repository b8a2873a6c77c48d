from __future__ import annotations

from fastapi import APIRouter, Depends, status

from imgvault.application.dtos.collection_dto import (
    CollectionResponse,
    CreateCollectionRequest,
    ListCollectionsResponse,
    UpdateCollectionRequest,
)
from imgvault.application.dtos.common_dto import SuccessResponse
from imgvault.application.use_cases.manage_collections import CollectionsUseCase
from imgvault.infrastructure.api.dependencies import get_collections_use_case, require_token

router = APIRouter(
    prefix="/collections",
    tags=["Collections"],
    dependencies=[Depends(require_token)],
    responses={
        401: {"description": "Unauthorized - Invalid or missing bearer token"},
        404: {"description": "Not Found - No collection with this id"},
    },
)


@router.get("", response_model=ListCollectionsResponse, summary="List Collections")
def list_collections(use_case: CollectionsUseCase = Depends(get_collections_use_case)):
    items = use_case.list_all()
    return ListCollectionsResponse(collections=[CollectionResponse.from_entity(c) for c in items], total=len(items))


@router.post("", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED, summary="Create Collection")
def create_collection(body: CreateCollectionRequest, use_case: CollectionsUseCase = Depends(get_collections_use_case)):
    return CollectionResponse.from_entity(use_case.create(body.name, body.description))


@router.get("/{collection_id}", response_model=CollectionResponse, summary="Get Collection")
def get_collection(collection_id: str, use_case: CollectionsUseCase = Depends(get_collections_use_case)):
    return CollectionResponse.from_entity(use_case.get(collection_id))


@router.patch("/{collection_id}", response_model=CollectionResponse, summary="Update Collection")
def update_collection(
    collection_id: str,
    body: UpdateCollectionRequest,
    use_case: CollectionsUseCase = Depends(get_collections_use_case),
):
    return CollectionResponse.from_entity(use_case.update(collection_id, body.name, body.description))


@router.delete(
    "/{collection_id}",
    response_model=SuccessResponse,
    summary="Delete Collection",
    description="Images in the collection are kept; their collection id is left as is.",
)
def delete_collection(collection_id: str, use_case: CollectionsUseCase = Depends(get_collections_use_case)):
    use_case.delete(collection_id)
    return SuccessResponse(ok=True)
