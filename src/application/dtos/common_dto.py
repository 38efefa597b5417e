"""Common DTOs for API responses and error handling."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response model."""
    detail: str = Field(..., description="Error message describing what went wrong")
    kind: Optional[str] = Field(
        None,
        description="Stable error tag (invalid_parameter, unknown_operation, not_found, "
        "forbidden, corrupt_chain, persistence_failure)",
        examples=["invalid_parameter"],
    )


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", examples=["healthy"])


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", examples=["ok"])
    service: str = Field(..., description="Service name", examples=["chromakit-derivation"])
    version: str = Field(..., description="API version", examples=["0.2.0"])


class HistogramResponse(BaseModel):
    """Histogram calculation response model."""
    histogram: dict[str, list[int]] = Field(
        ...,
        description="256 intensity counts per channel: 'gray' for single-channel images, "
        "'red', 'green' and 'blue' otherwise",
        examples=[{"red": [0, 5, 10], "green": [0, 3, 8], "blue": [0, 2, 6]}],
    )


class ProcessingOperationResponse(BaseModel):
    """Response for image processing operations that create new images."""
    id: str = Field(..., description="Unique identifier of the processed image", examples=["img_processed_123456"])
    url: str = Field(..., description="Public URL to access the processed image")
    width: Optional[int] = Field(None, description="Width of the processed image in pixels", examples=[800])
    height: Optional[int] = Field(None, description="Height of the processed image in pixels", examples=[600])
    mime_type: Optional[str] = Field(None, description="MIME type of the processed image", examples=["image/png"])
    operation: str = Field(..., description="The processing operation that was applied", examples=["brightness"])
    parameters: dict[str, Any] = Field(default_factory=dict, description="Parameters used for the processing operation")
    original_image_id: str = Field(..., description="ID of the image the request referenced", examples=["img_123456"])
    root_image_id: Optional[str] = Field(None, description="ID of the root/original image the result derives from")
    created_at: Optional[str] = Field(None, description="ISO timestamp when the processed image was created")
