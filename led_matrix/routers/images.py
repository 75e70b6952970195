"""
Image routes - store and retrieve source images
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from led_matrix.database import with_retry
from led_matrix.dependencies import get_image_store, get_pipeline
from led_matrix.device_client import build_http_client
from led_matrix.errors import handle_db_error
from led_matrix.models import ImageFromUrl, ImageMetadata, StoreImageResponse
from led_matrix.pipeline import TransmissionPipeline
from led_matrix.results import Failure, FailureReason
from led_matrix.sources import MAX_IMAGE_BYTES, download_image, size_label
from led_matrix.store import DEFAULT_LIST_LIMIT, ImageStore
from led_matrix.validation import validate_image_url

router = APIRouter(prefix="/images", tags=["Images"])
logger = logging.getLogger(__name__)

# MIME types accepted for direct uploads
ALLOWED_MIME_TYPES = (
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "image/bmp",
)


async def _store(
    store: ImageStore,
    data: bytes,
    mime_type: str,
    original_url: Optional[str] = None,
) -> StoreImageResponse:
    try:
        image_id, is_new = await run_in_threadpool(
            with_retry,
            lambda: store.store_image(data, mime_type, original_url)
        )
    except SQLAlchemyError as e:
        raise handle_db_error(e, "storeImage")
    return StoreImageResponse(id=image_id, is_new=is_new)


@router.post("", response_model=StoreImageResponse, status_code=201)
async def upload_image(
    file: UploadFile,
    store: ImageStore = Depends(get_image_store),
) -> StoreImageResponse:
    """
    Upload an image.

    Identical bytes are stored once; re-uploading returns the existing id
    with ``is_new`` false.
    """
    if file.content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=415,
            detail=(
                f"Unsupported image type: {file.content_type}. "
                f"Allowed types: {', '.join(ALLOWED_MIME_TYPES)}"
            ),
        )

    content = await file.read(MAX_IMAGE_BYTES + 1)
    if not content:
        raise HTTPException(status_code=400, detail="Image data must not be empty")
    if len(content) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Image data exceeds {size_label(MAX_IMAGE_BYTES)} limit",
        )

    return await _store(store, content, file.content_type)


@router.post("/from-url", response_model=StoreImageResponse, status_code=201)
async def store_image_from_url(
    request: ImageFromUrl,
    store: ImageStore = Depends(get_image_store),
    pipeline: TransmissionPipeline = Depends(get_pipeline),
) -> StoreImageResponse:
    """Download an image from a URL and store it."""
    url = validate_image_url(request.url)
    if isinstance(url, Failure):
        raise HTTPException(status_code=400, detail=url.message)

    try:
        async with build_http_client(pipeline.timeout, pipeline.transport) as client:
            downloaded = await download_image(client, url.value, pipeline.timeout)
    except Exception as e:
        logger.warning(f"Downloading {url.value} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e) or "Unknown error")

    if isinstance(downloaded, Failure):
        if downloaded.reason == FailureReason.IMAGE_TOO_LARGE:
            raise HTTPException(status_code=413, detail=downloaded.message)
        if downloaded.reason == FailureReason.TIMEOUT:
            raise HTTPException(status_code=504, detail=downloaded.message)
        raise HTTPException(status_code=502, detail=downloaded.message)

    image = downloaded.value
    if not image.data:
        raise HTTPException(status_code=502, detail="Downloaded image is empty")
    mime_type = image.content_type or "application/octet-stream"
    if not mime_type.startswith(("image/", "application/")):
        raise HTTPException(status_code=415, detail=f"Unsupported image type: {mime_type}")

    return await _store(store, image.data, mime_type, original_url=url.value)


@router.get("", response_model=List[ImageMetadata])
async def list_images(
    limit: int = Query(default=DEFAULT_LIST_LIMIT),
    offset: int = Query(default=0),
    store: ImageStore = Depends(get_image_store),
) -> List[ImageMetadata]:
    """List stored images, newest first. ``limit`` is capped at 100."""
    try:
        images = await run_in_threadpool(
            with_retry, lambda: store.list_images(limit, offset)
        )
    except SQLAlchemyError as e:
        raise handle_db_error(e, "listImages")
    return [ImageMetadata.model_validate(image) for image in images]


@router.get("/{image_id}", response_model=ImageMetadata)
async def get_image(
    image_id: str,
    store: ImageStore = Depends(get_image_store),
) -> ImageMetadata:
    """Get metadata for a stored image."""
    try:
        image = await run_in_threadpool(with_retry, lambda: store.get_image(image_id))
    except SQLAlchemyError as e:
        raise handle_db_error(e, "getImage")

    if not image:
        raise HTTPException(status_code=404, detail="Image not found")
    return ImageMetadata.model_validate(image)


@router.get("/{image_id}/data")
async def get_image_data(
    image_id: str,
    store: ImageStore = Depends(get_image_store),
) -> Response:
    """Fetch the stored image bytes."""
    try:
        image = await run_in_threadpool(with_retry, lambda: store.get_image(image_id))
    except SQLAlchemyError as e:
        raise handle_db_error(e, "getImageData")

    if not image:
        raise HTTPException(status_code=404, detail="Image not found")
    return Response(content=image.data, media_type=image.mime_type)
