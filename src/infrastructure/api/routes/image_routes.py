from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from src.application.dtos.common_dto import ErrorResponse
from src.application.dtos.image_dto import (
    DeleteImageResponse,
    ImageMetadata,
    ImageVersionsResponse,
    ListImagesResponse,
    UploadImageResponse,
)
from src.application.use_cases.manage_images import DeleteImageUseCase, ListVersionsUseCase
from src.application.use_cases.upload_image import UploadImageUseCase
from src.domain.services.derivation_resolver import DerivationResolver
from src.infrastructure.api.dependencies import (
    get_current_user,
    get_history_repo,
    get_image_repo,
    get_resolver,
    get_storage,
)
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage, decode_image

router = APIRouter(
    prefix="/images",
    tags=["Image Management"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid or missing authentication token"},
        404: {"model": ErrorResponse, "description": "Not Found - Image does not exist or user doesn't have access"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.post(
    "/upload",
    response_model=UploadImageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Image",
    description="""
    Upload a new image file to the system.

    **Supported formats**: JPEG, PNG, GIF, BMP, TIFF, WEBP
    **Authentication required**: Yes (Bearer token)

    The uploaded image will be:
    - Decoded to a grayscale or RGB buffer
    - Stored in the user's personal storage space
    - Registered as an original (root) image that edits are always applied to
    """,
    response_description="Metadata of the successfully uploaded image",
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Invalid image file or unsupported format"},
    },
)
async def upload_image(
    file: UploadFile = File(..., description="Image file to upload"),
    user=Depends(get_current_user),
    storage: SupabaseStorage = Depends(get_storage),
    images: ImageRepository = Depends(get_image_repo),
):
    """Upload a new image file and create metadata entry."""
    data = await file.read()
    try:
        arr, _mime = decode_image(data)
    except Exception as exc:
        raise HTTPException(status_code=400, detail=f"Invalid image file: {exc}") from exc
    filename = file.filename or "uploaded_image.png"
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "png"

    uc = UploadImageUseCase(storage=storage, image_repo=images)
    entity = uc.execute(
        user_id=user.id,
        array=arr,
        ext=ext,
        original_filename=filename,
        file_size=len(data),
    )
    return UploadImageResponse(image=ImageMetadata.from_entity(entity, storage.get_public_url(entity.path)))


@router.get(
    "",
    response_model=ListImagesResponse,
    summary="List User Images",
    description="""
    Retrieve a paginated list of all images owned by the authenticated user,
    originals and edited versions alike, newest first.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Paginated list of user images with metadata",
)
async def list_images(
    user=Depends(get_current_user),
    images: ImageRepository = Depends(get_image_repo),
    storage: SupabaseStorage = Depends(get_storage),
    limit: int = Query(20, ge=1, le=100, description="Maximum number of images to return (1-100)"),
    offset: int = Query(0, ge=0, description="Number of images to skip from the beginning"),
):
    """Get paginated list of user's images."""
    items = images.list_by_user(user.id)
    items.sort(key=lambda i: i.created_at, reverse=True)
    page = items[offset : offset + limit]
    payload = [ImageMetadata.from_entity(it, storage.get_public_url(it.path)) for it in page]
    return ListImagesResponse(images=payload, total=len(items), limit=limit, offset=offset)


@router.get(
    "/{image_id}",
    response_model=ImageMetadata,
    summary="Get Image Metadata",
    description="""
    Retrieve complete metadata for a specific image. Edited versions carry the
    id of their original in `original_id`.

    **Authentication required**: Yes (Bearer token)
    **Access control**: Users can only access their own images
    """,
    response_description="Complete metadata for the requested image",
)
async def get_image(
    image_id: str,
    user=Depends(get_current_user),
    storage: SupabaseStorage = Depends(get_storage),
    resolver: DerivationResolver = Depends(get_resolver),
):
    """Get metadata for a specific image."""
    entity = resolver.get_owned(user.id, image_id)
    return ImageMetadata.from_entity(entity, storage.get_public_url(entity.path))


@router.get(
    "/{image_id}/versions",
    response_model=ImageVersionsResponse,
    summary="List Image Versions",
    description="""
    Return the original upload of the chain `image_id` belongs to, together with
    every version derived from it (oldest first). Any image in the chain can be
    passed.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Original image and its derived versions",
)
async def list_versions(
    image_id: str,
    user=Depends(get_current_user),
    images: ImageRepository = Depends(get_image_repo),
    storage: SupabaseStorage = Depends(get_storage),
    resolver: DerivationResolver = Depends(get_resolver),
):
    """List the root image and all of its versions."""
    root, derived = ListVersionsUseCase(image_repo=images, resolver=resolver).execute(user.id, image_id)
    return ImageVersionsResponse(
        root=ImageMetadata.from_entity(root, storage.get_public_url(root.path)),
        versions=[ImageMetadata.from_entity(it, storage.get_public_url(it.path)) for it in derived],
    )


@router.get(
    "/{image_id}/download",
    summary="Download Image File",
    description="""
    Download the actual image file content.

    **Returns:** Raw image file data with appropriate MIME type
    **Authentication required**: Yes (Bearer token)
    **Access control**: Users can only download their own images
    """,
    response_description="Binary image file data",
    responses={200: {"content": {"image/*": {}}, "description": "Image file content"}},
)
async def download_image(
    image_id: str,
    user=Depends(get_current_user),
    storage: SupabaseStorage = Depends(get_storage),
    resolver: DerivationResolver = Depends(get_resolver),
):
    """Download the binary content of an image file."""
    entity = resolver.get_owned(user.id, image_id)
    data = storage.download_bytes(entity.path)
    return Response(content=data, media_type=entity.mime_type)


@router.delete(
    "/{image_id}",
    response_model=DeleteImageResponse,
    summary="Delete Image",
    description="""
    Permanently delete an image, its stored file and its history entries.

    An original that still has edited versions cannot be deleted; delete the
    versions first (400).

    **Authentication required**: Yes (Bearer token)
    **Access control**: Users can only delete their own images
    """,
    response_description="Confirmation of successful deletion",
)
async def delete_image(
    image_id: str,
    user=Depends(get_current_user),
    images: ImageRepository = Depends(get_image_repo),
    storage: SupabaseStorage = Depends(get_storage),
    history: HistoryRepository = Depends(get_history_repo),
    resolver: DerivationResolver = Depends(get_resolver),
):
    """Permanently delete an image and all associated data."""
    uc = DeleteImageUseCase(image_repo=images, history_repo=history, storage=storage, resolver=resolver)
    return DeleteImageResponse(ok=uc.execute(user.id, image_id))
