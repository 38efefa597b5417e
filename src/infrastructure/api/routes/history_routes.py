from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.application.dtos.common_dto import ErrorResponse
from src.application.dtos.history_dto import DeleteHistoryResponse, HistoryItem, ListHistoryResponse
from src.application.dtos.image_dto import ImageMetadata
from src.application.use_cases.manage_history import DeleteHistoryUseCase, ListHistoryUseCase
from src.domain.entities.edit_history import EditHistoryEntity
from src.infrastructure.api.dependencies import (
    get_current_user,
    get_history_repo,
    get_image_repo,
    get_storage,
)
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

router = APIRouter(
    prefix="/history",
    tags=["Processing History"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid or missing authentication token"},
        404: {"model": ErrorResponse, "description": "Not Found - History item does not exist or user doesn't have access"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


def _to_item(
    entry: EditHistoryEntity, image_repo: ImageRepository, storage: SupabaseStorage
) -> HistoryItem:
    img = image_repo.get(entry.image_id)
    img_metadata = ImageMetadata.from_entity(img, storage.get_public_url(img.path)) if img else None
    return HistoryItem.from_entity(entry, img_metadata)


@router.get(
    "",
    response_model=ListHistoryResponse,
    summary="List Processing History",
    description="""
    Retrieve a paginated list of executed batches, newest first.

    **Features:**
    - One entry per successful batch, single operation or reset
    - Optional filtering by the produced image ID
    - `total` counts every matching entry, not just this page

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="List of processing history items",
)
async def list_history(
    user=Depends(get_current_user),
    history: HistoryRepository = Depends(get_history_repo),
    image_repo: ImageRepository = Depends(get_image_repo),
    storage: SupabaseStorage = Depends(get_storage),
    limit: int = Query(
        50, ge=1, le=200, description="Maximum number of history items to return (1-200)"
    ),
    offset: int = Query(0, ge=0, description="Number of history items to skip from the beginning"),
    image_id: str | None = Query(None, description="Filter history by specific image ID"),
):
    """Get paginated list of user's processing history."""
    page = ListHistoryUseCase(history).execute(user.id, limit=limit, offset=offset, image_id=image_id)
    return ListHistoryResponse(
        history=[_to_item(h, image_repo, storage) for h in page.entries],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get(
    "/{history_id}",
    response_model=HistoryItem,
    summary="Get History Item Details",
    description="""
    Retrieve one history entry: the operation (or `batch_process` with the full
    ordered operation list), its parameters, the produced image and the original
    it was derived from.

    **Authentication required**: Yes (Bearer token)
    **Access control**: Users can only access their own history items
    """,
    response_description="Detailed information about the processing operation",
)
async def get_history(
    history_id: str,
    user=Depends(get_current_user),
    history: HistoryRepository = Depends(get_history_repo),
    image_repo: ImageRepository = Depends(get_image_repo),
    storage: SupabaseStorage = Depends(get_storage),
):
    """Get detailed information about a specific history item."""
    item = ListHistoryUseCase(history).get(user.id, history_id)
    return _to_item(item, image_repo, storage)


@router.delete(
    "/{history_id}",
    response_model=DeleteHistoryResponse,
    summary="Delete History Item",
    description="""
    Delete a specific processing history record.

    **Note**: This only removes the history record, not the processed image itself.
    To delete the actual image, use the DELETE /images/{image_id} endpoint.

    **Authentication required**: Yes (Bearer token)
    **Access control**: Users can only delete their own history items
    """,
    response_description="Confirmation of successful deletion",
)
async def delete_history(
    history_id: str,
    user=Depends(get_current_user),
    history: HistoryRepository = Depends(get_history_repo),
):
    """Delete a specific history record."""
    ok = DeleteHistoryUseCase(history).execute(user.id, history_id)
    return DeleteHistoryResponse(ok=ok)
