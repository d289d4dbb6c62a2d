"""Image library API endpoints.

Provides endpoints for uploading standalone images, browsing them and
requesting resized delivery URLs.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from storefront.api.dependencies import get_actor, get_image_library, read_upload
from storefront.api.schemas import (
    ErrorResponse,
    ImageListResponse,
    ImageResponse,
    ImageUpdateRequest,
    OptimizedImageResponse,
    image_page_to_response,
    image_to_response,
    optimized_to_response,
)
from storefront.catalog.images import ImageLibrary

router = APIRouter(prefix="/images", tags=["Images"])


# ============================================================================
# Uploads
# ============================================================================


@router.post(
    "/upload",
    response_model=ImageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Upload image",
)
async def upload_image(
    library: Annotated[ImageLibrary, Depends(get_image_library)],
    actor: Annotated[str | None, Depends(get_actor)],
    image: Annotated[UploadFile | None, File()] = None,
    usage: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
) -> ImageResponse:
    """Upload one image into the library."""
    recorded = await library.upload(
        await read_upload(image),
        usage=usage,
        description=description,
        actor=actor,
    )
    return image_to_response(recorded)


@router.post(
    "/upload-multiple",
    response_model=list[ImageResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Upload several images",
)
async def upload_images(
    library: Annotated[ImageLibrary, Depends(get_image_library)],
    actor: Annotated[str | None, Depends(get_actor)],
    images: Annotated[list[UploadFile] | None, File()] = None,
    usage: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
) -> list[ImageResponse]:
    """Upload up to ten images; either all are kept or none are."""
    uploads = []
    for image in images or []:
        upload = await read_upload(image)
        if upload is not None:
            uploads.append(upload)
    recorded = await library.upload_many(
        uploads,
        usage=usage,
        description=description,
        actor=actor,
    )
    return [image_to_response(i) for i in recorded]


# ============================================================================
# Reads
# ============================================================================


@router.get(
    "",
    response_model=ImageListResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List images",
)
async def list_images(
    library: Annotated[ImageLibrary, Depends(get_image_library)],
    usage: str | None = None,
    is_active: bool | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ImageListResponse:
    """Library images, newest first."""
    result = await library.find(usage=usage, is_active=is_active, page=page, limit=limit)
    return image_page_to_response(result)


@router.get(
    "/info/{image_id}",
    response_model=ImageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get image",
)
async def get_image(
    image_id: str,
    library: Annotated[ImageLibrary, Depends(get_image_library)],
) -> ImageResponse:
    """Get one library image."""
    return image_to_response(await library.get(image_id))


@router.get(
    "/optimized/{image_id}",
    response_model=OptimizedImageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Get resized image URL",
)
async def get_optimized_image(
    image_id: str,
    library: Annotated[ImageLibrary, Depends(get_image_library)],
    width: int | None = None,
    height: int | None = None,
    crop: str | None = None,
) -> OptimizedImageResponse:
    """Delivery URL of a resized variant of a library image."""
    optimized = await library.optimized(image_id, width=width, height=height, crop=crop)
    return optimized_to_response(optimized)


# ============================================================================
# Administration
# ============================================================================


@router.put(
    "/{image_id}",
    response_model=ImageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update image",
)
async def update_image(
    image_id: str,
    body: ImageUpdateRequest,
    library: Annotated[ImageLibrary, Depends(get_image_library)],
    actor: Annotated[str | None, Depends(get_actor)],
) -> ImageResponse:
    """Change description, usage or active flag."""
    changes = body.model_dump(exclude_none=True)
    return image_to_response(await library.update(image_id, changes, actor=actor))


@router.delete(
    "/{image_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete image",
)
async def delete_image(
    image_id: str,
    library: Annotated[ImageLibrary, Depends(get_image_library)],
    actor: Annotated[str | None, Depends(get_actor)],
) -> None:
    """Delete a library image and release its binary."""
    await library.delete(image_id, actor=actor)
