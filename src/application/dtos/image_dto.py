from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.entities.image import ImageEntity


class ImageMetadata(BaseModel):
    """Comprehensive metadata for an image in the system."""
    id: str = Field(..., description="Unique identifier of the image", examples=["img_123456"])
    user_id: str = Field(..., description="ID of the user who owns this image")
    path: str = Field(..., description="Storage path of the image file", examples=["user123/img_123456.png"])
    width: int = Field(..., description="Width of the image in pixels", examples=[1920], gt=0)
    height: int = Field(..., description="Height of the image in pixels", examples=[1080], gt=0)
    mime_type: str = Field(..., description="MIME type of the image", examples=["image/png"])
    created_at: datetime = Field(..., description="ISO timestamp when the image was created or uploaded")
    original_id: str | None = Field(None, description="ID of the root/original image if this is a processed version")
    original_filename: str | None = Field(None, description="Original filename when uploaded", examples=["photo.jpg"])
    file_size: int | None = Field(None, description="Size of the image file in bytes", examples=[2048576])
    url: str | None = Field(None, description="Public URL to access the image")

    @classmethod
    def from_entity(cls, entity: ImageEntity, url: str | None = None) -> ImageMetadata:
        return cls(
            id=entity.id,
            user_id=entity.user_id,
            path=entity.path,
            width=entity.width,
            height=entity.height,
            mime_type=entity.mime_type,
            created_at=entity.created_at,
            original_id=entity.original_id,
            original_filename=entity.original_filename,
            file_size=entity.file_size,
            url=url,
        )


class UploadImageResponse(BaseModel):
    """Response model for successful image upload."""
    image: ImageMetadata = Field(..., description="Metadata of the uploaded image")


class ListImagesResponse(BaseModel):
    """Response model for listing user images with pagination."""
    images: list[ImageMetadata] = Field(..., description="List of image metadata objects")
    total: int = Field(..., description="Total number of images available", examples=[150], ge=0)
    limit: int = Field(..., description="Maximum number of images returned in this response", examples=[20], ge=1, le=100)
    offset: int = Field(..., description="Number of images skipped from the beginning", examples=[0], ge=0)


class ImageVersionsResponse(BaseModel):
    """Root image of a chain plus every version derived from it."""
    root: ImageMetadata = Field(..., description="The original upload")
    versions: list[ImageMetadata] = Field(..., description="Derived images, oldest first")


class DeleteImageResponse(BaseModel):
    """Response model for image deletion."""
    ok: bool = Field(True, description="Indicates whether the deletion was successful")


# Specific processing request DTOs
class BrightnessRequest(BaseModel):
    """Request model for brightness adjustment."""
    image_id: str = Field(..., description="ID of the image to adjust brightness", examples=["img_123456"])
    factor: float = Field(..., description="Brightness factor (1.0 = no change, >1.0 = brighter, <1.0 = darker)", examples=[1.2], gt=0)


class ContrastRequest(BaseModel):
    """Request model for contrast adjustment."""
    image_id: str = Field(..., description="ID of the image to adjust contrast", examples=["img_123456"])
    type: str = Field(..., description="Type of contrast adjustment", examples=["logarithmic"], pattern="^(logarithmic|exponential)$")
    intensity: float = Field(..., description="Contrast intensity factor k", examples=[1.5], gt=0)


class ChannelRequest(BaseModel):
    """Request model for color channel manipulation."""
    image_id: str = Field(..., description="ID of the image to modify channels", examples=["img_123456"])
    channel: str = Field(..., description="Color channel to manipulate", examples=["red"], pattern="^(red|green|blue|cyan|magenta|yellow)$")
    enabled: bool = Field(..., description="Whether to keep (True) or remove (False) the channel")


class GrayscaleRequest(BaseModel):
    """Request model for grayscale conversion."""
    image_id: str = Field(..., description="ID of the image to convert to grayscale", examples=["img_123456"])
    method: str = Field(..., description="Grayscale conversion method", examples=["luminosity"], pattern="^(average|luminosity|midgray)$")


class NegativeRequest(BaseModel):
    """Request model for negative/invert operation."""
    image_id: str = Field(..., description="ID of the image to invert", examples=["img_123456"])


class ResetImageRequest(BaseModel):
    """Request model for resetting an image to its original upload."""
    image_id: str = Field(..., description="ID of any image in the chain", examples=["img_123456"])


class BinarizeRequest(BaseModel):
    """Request model for image binarization."""
    image_id: str = Field(..., description="ID of the image to binarize", examples=["img_123456"])
    threshold: float = Field(..., description="Binarization threshold (0.0 to 1.0)", examples=[0.5], ge=0.0, le=1.0)


class TranslateRequest(BaseModel):
    """Request model for image translation."""
    image_id: str = Field(..., description="ID of the image to translate", examples=["img_123456"])
    dx: int = Field(..., description="Horizontal offset in pixels", examples=[50])
    dy: int = Field(..., description="Vertical offset in pixels", examples=[30])


class RotateRequest(BaseModel):
    """Request model for image rotation."""
    image_id: str = Field(..., description="ID of the image to rotate", examples=["img_123456"])
    angle: float = Field(..., description="Rotation angle in degrees (positive = counterclockwise)", examples=[45.0])


class CropRequest(BaseModel):
    """Request model for image cropping."""
    image_id: str = Field(..., description="ID of the image to crop", examples=["img_123456"])
    x_start: int = Field(..., description="Starting X coordinate (left edge)", examples=[100], ge=0)
    x_end: int = Field(..., description="Ending X coordinate (right edge, exclusive)", examples=[500], ge=0)
    y_start: int = Field(..., description="Starting Y coordinate (top edge)", examples=[50], ge=0)
    y_end: int = Field(..., description="Ending Y coordinate (bottom edge, exclusive)", examples=[300], ge=0)


class ReduceResolutionRequest(BaseModel):
    """Request model for reducing image resolution."""
    image_id: str = Field(..., description="ID of the image to reduce resolution", examples=["img_123456"])
    factor: int = Field(..., description="Reduction factor (2 = half size, 3 = one third size, etc.)", examples=[2], ge=2, le=10)


class EnlargeRegionRequest(BaseModel):
    """Request model for enlarging a specific region of an image."""
    image_id: str = Field(..., description="ID of the image to enlarge a region from", examples=["img_123456"])
    x_start: int = Field(..., description="Starting X coordinate of the region", examples=[100], ge=0)
    x_end: int = Field(..., description="Ending X coordinate of the region", examples=[300], ge=0)
    y_start: int = Field(..., description="Starting Y coordinate of the region", examples=[50], ge=0)
    y_end: int = Field(..., description="Ending Y coordinate of the region", examples=[200], ge=0)
    zoom_factor: int = Field(..., description="Enlargement factor for the selected region", examples=[2], ge=1, le=10)


class MergeImagesRequest(BaseModel):
    """Request model for merging two images."""
    image1_id: str = Field(..., description="ID of the first image (base image)", examples=["img_123456"])
    image2_id: str = Field(..., description="ID of the second image (overlay image)", examples=["img_789012"])
    transparency: float = Field(..., description="Weight of the overlay (0.0 = base only, 1.0 = overlay only)", examples=[0.5], ge=0.0, le=1.0)
