from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from src.application.dtos.batch_processing_dto import (
    BatchProcessRequest,
    BatchProcessResponse,
    ProcessingOperation,
)
from src.application.dtos.common_dto import (
    ErrorResponse,
    HistogramResponse,
    ProcessingOperationResponse,
)
from src.application.dtos.image_dto import (
    BinarizeRequest,
    BrightnessRequest,
    ChannelRequest,
    ContrastRequest,
    CropRequest,
    EnlargeRegionRequest,
    GrayscaleRequest,
    MergeImagesRequest,
    NegativeRequest,
    ReduceResolutionRequest,
    ResetImageRequest,
    RotateRequest,
    TranslateRequest,
)
from src.application.use_cases.batch_process_image import BatchProcessImageUseCase, BatchResult
from src.application.use_cases.compute_histogram import ComputeHistogramUseCase, HistogramCache
from src.application.use_cases.process_image import ProcessImageUseCase
from src.domain.services.derivation_resolver import DerivationResolver
from src.domain.services.processing_service import ProcessingService
from src.infrastructure.api.dependencies import (
    get_batch_use_case,
    get_current_user,
    get_histogram_cache,
    get_processing_service,
    get_resolver,
    get_storage,
)
from src.infrastructure.storage.supabase_storage import SupabaseStorage

router = APIRouter(
    prefix="/processing",
    tags=["Image Processing"],
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Invalid operation or parameters"},
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid or missing authentication token"},
        404: {"model": ErrorResponse, "description": "Not Found - Image does not exist or user doesn't have access"},
        422: {"description": "Validation Error - Invalid request format"},
        503: {"model": ErrorResponse, "description": "Service Unavailable - Result could not be persisted, nothing was saved"},
    },
)

_SINGLE_OP_RESPONSES = {
    200: {"description": "Successfully processed image, returns URL and metadata"},
    404: {"model": ErrorResponse, "description": "Image not found or access denied"},
}


def _operation_response(
    result: BatchResult,
    storage: SupabaseStorage,
    operation: str,
    parameters: dict[str, Any],
) -> ProcessingOperationResponse:
    entity = result.image
    return ProcessingOperationResponse(
        id=entity.id,
        url=storage.get_public_url(entity.path),
        width=entity.width,
        height=entity.height,
        mime_type=entity.mime_type,
        operation=operation,
        parameters=parameters,
        original_image_id=result.anchor_image_id,
        root_image_id=result.root_image_id,
        created_at=entity.created_at.isoformat(),
    )


def _run_single(
    batch: BatchProcessImageUseCase,
    user_id: str,
    image_id: str,
    operation: str,
    params: dict[str, Any],
    *,
    label: str | None = None,
    echo: dict[str, Any] | None = None,
) -> ProcessingOperationResponse:
    result = ProcessImageUseCase(batch).execute(user_id, image_id, operation, params)
    return _operation_response(
        result, batch.storage, label or operation, params if echo is None else echo
    )


@router.post(
    "/batch",
    response_model=BatchProcessResponse,
    summary="Batch Process Image (Unified Endpoint)",
    description="""
    Apply multiple image processing operations in a single request.

    **Key Features:**
    - All operations are applied to the **root/original** image, not chained modifications
    - Operations are applied strictly in the order given
    - All-or-nothing: a failing operation means no image and no history entry are created
    - Exactly one new image and one history entry per successful request

    **Supported Operations:**
    - `brightness` - params: `{"factor": 1.2}` (factor > 0)
    - `log_contrast` / `exp_contrast` - params: `{"k": 1.5}` (k > 0)
    - `invert` (alias `negative`) - params: `{}`
    - `grayscale_average` / `grayscale_luminosity` / `grayscale_midgray` - params: `{}`
    - `binarize` - params: `{"threshold": 0.5}` (0..1)
    - `channel_red|green|blue|cyan|magenta|yellow` - params: `{"enabled": false}`
    - `translate` - params: `{"dx": 10, "dy": -20}`
    - `rotate` - params: `{"angle": 45.0}` (canvas grows to fit)
    - `crop` - params: `{"x_start": 0, "x_end": 100, "y_start": 0, "y_end": 100}`
    - `reduce_resolution` - params: `{"factor": 2}` (2..10)
    - `enlarge_region` - params: `{"x_start": 0, "x_end": 50, "y_start": 0, "y_end": 50, "factor": 2}` (1..10)
    - `merge_images` - params: `{"other_image_id": "img_xyz", "transparency": 0.5}`

    **Authentication required**: Yes (Bearer token)
    **Access control**: Users can only process their own images
    """,
    response_description="URL and metadata of the final processed image with all operations applied",
)
def batch_process_image(
    body: BatchProcessRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Apply multiple operations to the root/original image in a single request."""
    operations = [{"operation": op.operation, "params": op.params} for op in body.operations]
    result = uc.execute(user.id, body.image_id, operations)
    entity = result.image

    return BatchProcessResponse(
        id=entity.id,
        url=uc.storage.get_public_url(entity.path),
        width=entity.width,
        height=entity.height,
        mime_type=entity.mime_type,
        operations_applied=[ProcessingOperation(**op.to_dict()) for op in result.operations],
        original_image_id=result.anchor_image_id,
        root_image_id=result.root_image_id,
        created_at=entity.created_at.isoformat(),
    )


@router.get(
    "/{image_id}/histogram",
    response_model=HistogramResponse,
    summary="Calculate Image Histogram",
    description="""
    Calculate the intensity histogram of an image.

    - Grayscale images return a single `gray` channel
    - Color images return `red`, `green` and `blue`
    - Each channel holds 256 counts (intensity 0..255) summing to width x height

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Histogram data with frequency distributions per color channel",
)
def get_histogram(
    image_id: str,
    user=Depends(get_current_user),
    storage: SupabaseStorage = Depends(get_storage),
    resolver: DerivationResolver = Depends(get_resolver),
    processing: ProcessingService = Depends(get_processing_service),
    cache: HistogramCache = Depends(get_histogram_cache),
):
    """Calculate and return color histogram for an image."""
    uc = ComputeHistogramUseCase(storage=storage, resolver=resolver, processing=processing, cache=cache)
    return HistogramResponse(histogram=uc.execute(user.id, image_id))


@router.post(
    "/brightness",
    response_model=ProcessingOperationResponse,
    summary="Adjust Image Brightness",
    description="""
    Multiply every channel sample by `factor` and clamp to [0, 255].

    - `1.0` = No change
    - `> 1.0` = Brighter, `< 1.0` = Darker

    Applied to the original upload of the referenced image.
    """,
    response_description="URL and metadata of the processed image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_brightness(
    body: BrightnessRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Adjust image brightness and return URL to the processed image."""
    return _run_single(uc, user.id, body.image_id, "brightness", {"factor": body.factor})


@router.post(
    "/contrast",
    response_model=ProcessingOperationResponse,
    summary="Adjust Image Contrast",
    description="""
    Logarithmic contrast compresses highlights, exponential contrast expands them.
    `intensity` is the curve parameter k (> 0).
    """,
    response_description="URL and metadata of the processed image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_contrast(
    body: ContrastRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Adjust image contrast and return URL to the processed image."""
    operation = "log_contrast" if body.type == "logarithmic" else "exp_contrast"
    return _run_single(
        uc,
        user.id,
        body.image_id,
        operation,
        {"k": body.intensity},
        label=f"contrast_{body.type}",
        echo={"type": body.type, "intensity": body.intensity},
    )


@router.post(
    "/negative",
    response_model=ProcessingOperationResponse,
    summary="Create Image Negative",
    description="Invert every channel sample: `out = 255 - in`.",
    response_description="URL and metadata of the processed negative image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_negative(
    body: NegativeRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Create negative (inverted) version of the image."""
    return _run_single(uc, user.id, body.image_id, "invert", {}, label="negative")


@router.post(
    "/reset",
    response_model=ProcessingOperationResponse,
    summary="Reset Image to Original",
    description="""
    Create a new version whose pixels are exactly the original upload of the
    referenced image. The reset is recorded in the history like any other edit;
    earlier versions are kept.
    """,
    response_description="URL and metadata of the reset image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_reset(
    body: ResetImageRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Reset image to its original (root) version."""
    result = uc.reset(user.id, body.image_id)
    return _operation_response(result, uc.storage, "reset", {})


@router.post(
    "/grayscale",
    response_model=ProcessingOperationResponse,
    summary="Convert Image to Grayscale",
    description="""
    - `average`: (R + G + B) / 3
    - `luminosity`: 0.299 R + 0.587 G + 0.114 B
    - `midgray`: (max(R, G, B) + min(R, G, B)) / 2

    The result is a single-channel image.
    """,
    response_description="URL and metadata of the grayscale image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_grayscale(
    body: GrayscaleRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Convert the image to grayscale with the chosen method."""
    return _run_single(
        uc,
        user.id,
        body.image_id,
        f"grayscale_{body.method}",
        {},
        label="grayscale",
        echo={"method": body.method},
    )


@router.post(
    "/binarize",
    response_model=ProcessingOperationResponse,
    summary="Binarize Image",
    description="Pixels whose luminosity / 255 exceeds `threshold` become 255, all others 0.",
    response_description="URL and metadata of the binary image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_binarize(
    body: BinarizeRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Binarize the image at the given threshold."""
    return _run_single(uc, user.id, body.image_id, "binarize", {"threshold": body.threshold})


@router.post(
    "/translate",
    response_model=ProcessingOperationResponse,
    summary="Translate Image",
    description="Shift by (dx, dy) pixels. Pixels leaving the frame are dropped; vacated area is black.",
    response_description="URL and metadata of the translated image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_translate(
    body: TranslateRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Translate the image."""
    return _run_single(uc, user.id, body.image_id, "translate", {"dx": body.dx, "dy": body.dy})


@router.post(
    "/rotate",
    response_model=ProcessingOperationResponse,
    summary="Rotate Image",
    description="""
    Rotate about the center by `angle` degrees (positive = counterclockwise).
    The canvas grows to contain the whole rotated image; empty corners are black.
    """,
    response_description="URL and metadata of the rotated image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_rotate(
    body: RotateRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Rotate the image."""
    return _run_single(uc, user.id, body.image_id, "rotate", {"angle": body.angle})


@router.post(
    "/crop",
    response_model=ProcessingOperationResponse,
    summary="Crop Image",
    description="Keep the rectangle [x_start, x_end) x [y_start, y_end) of the original image.",
    response_description="URL and metadata of the cropped image",
    responses={
        **_SINGLE_OP_RESPONSES,
        400: {"model": ErrorResponse, "description": "Bounds inverted or outside the image"},
    },
)
def op_crop(
    body: CropRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Crop the image to the given rectangle."""
    params = {
        "x_start": body.x_start,
        "x_end": body.x_end,
        "y_start": body.y_start,
        "y_end": body.y_end,
    }
    return _run_single(uc, user.id, body.image_id, "crop", params)


@router.post(
    "/reduce-resolution",
    response_model=ProcessingOperationResponse,
    summary="Reduce Image Resolution",
    description="Average factor x factor blocks; output is (width // factor) x (height // factor).",
    response_description="URL and metadata of the reduced image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_reduce_resolution(
    body: ReduceResolutionRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Reduce the image resolution."""
    return _run_single(
        uc, user.id, body.image_id, "reduce_resolution", {"factor": body.factor},
        label="reduce_resolution",
    )


@router.post(
    "/enlarge-region",
    response_model=ProcessingOperationResponse,
    summary="Enlarge Image Region",
    description="Crop the given region and enlarge it by `zoom_factor` using pixel replication.",
    response_description="URL and metadata of the enlarged region",
    responses=_SINGLE_OP_RESPONSES,
)
def op_enlarge_region(
    body: EnlargeRegionRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Enlarge a region of the image."""
    region = {
        "x_start": body.x_start,
        "x_end": body.x_end,
        "y_start": body.y_start,
        "y_end": body.y_end,
    }
    return _run_single(
        uc,
        user.id,
        body.image_id,
        "enlarge_region",
        {**region, "factor": body.zoom_factor},
        echo={**region, "zoom_factor": body.zoom_factor},
    )


@router.post(
    "/merge",
    response_model=ProcessingOperationResponse,
    summary="Merge Two Images",
    description="""
    Blend `image2_id` over the original of `image1_id`:
    `out = base * (1 - transparency) + overlay * transparency`.
    If sizes differ, the overlay is resized (nearest neighbor) to the base size,
    so the result always has the base image's dimensions.
    """,
    response_description="URL and metadata of the merged image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_merge(
    body: MergeImagesRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Merge two images with the given transparency."""
    return _run_single(
        uc,
        user.id,
        body.image1_id,
        "merge_images",
        {"other_image_id": body.image2_id, "transparency": body.transparency},
        label="merge",
        echo={"image2_id": body.image2_id, "transparency": body.transparency},
    )


@router.post(
    "/channel",
    response_model=ProcessingOperationResponse,
    summary="Toggle Color Channel",
    description="""
    Remove (`enabled: false`) or keep (`enabled: true`) a color channel.
    Red/green/blue zero the matching sample; cyan/magenta/yellow zero the
    complement, which saturates red/green/blue respectively.
    """,
    response_description="URL and metadata of the channel-processed image",
    responses=_SINGLE_OP_RESPONSES,
)
def op_channel(
    body: ChannelRequest,
    user=Depends(get_current_user),
    uc: BatchProcessImageUseCase = Depends(get_batch_use_case),
):
    """Toggle a color channel on the original image."""
    return _run_single(
        uc,
        user.id,
        body.image_id,
        f"channel_{body.channel.lower()}",
        {"enabled": body.enabled},
        label="channel",
        echo={"channel": body.channel, "enabled": body.enabled},
    )
