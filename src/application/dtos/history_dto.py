from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.application.dtos.image_dto import ImageMetadata
from src.domain.entities.edit_history import EditHistoryEntity


class HistoryItem(BaseModel):
    """Represents a single executed batch in the history."""
    id: str = Field(..., description="Unique identifier of the history entry", examples=["hist_123456"])
    user_id: str = Field(..., description="ID of the user who performed the operation")
    image_id: str = Field(..., description="ID of the image this batch produced", examples=["img_123456"])
    operation: str = Field(
        ...,
        description="Operation name for single operations, 'batch_process' for batches, 'reset' for resets",
        examples=["brightness"],
    )
    params: dict[str, Any] = Field(..., description="Parameters used for the operation", examples=[{"factor": 1.2}])
    root_image_id: str | None = Field(None, description="ID of the original image the batch was applied to")
    created_at: datetime = Field(..., description="ISO timestamp when the operation was performed")
    image: ImageMetadata | None = Field(None, description="Metadata of the produced image, if it still exists")

    @classmethod
    def from_entity(cls, entity: EditHistoryEntity, image: ImageMetadata | None = None) -> HistoryItem:
        return cls(
            id=entity.id,
            user_id=entity.user_id,
            image_id=entity.image_id,
            operation=entity.operation_type,
            params=entity.parameters,
            root_image_id=entity.root_image_id,
            created_at=entity.created_at,
            image=image,
        )


class ListHistoryResponse(BaseModel):
    """Response model for listing processing history with pagination."""
    history: list[HistoryItem] = Field(..., description="List of history items, newest first")
    total: int = Field(..., description="Total number of matching history items", ge=0)
    limit: int = Field(..., description="Maximum number of items returned", ge=1)
    offset: int = Field(..., description="Number of items skipped", ge=0)


class DeleteHistoryResponse(BaseModel):
    """Response model for history deletion."""
    ok: bool = Field(True, description="Indicates whether the deletion was successful")
