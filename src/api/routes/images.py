"""
Project image API endpoints.

Multipart uploads are read fully into memory (images are small and
capped by MAX_UPLOAD_SIZE_MB) and handed to the storage facade:

- POST   /api/v1/images                 store a new image, get key + signed URL
- PUT    /api/v1/images/{key}           overwrite the image at an existing key
- DELETE /api/v1/images?target=...      delete by key or by URL
- GET    /api/v1/images/signed-url      fresh signed URL for a key
"""

import logging
from typing import Annotated

from fastapi import APIRouter, File, HTTPException, Query, Response, UploadFile, status
from pydantic import BaseModel, Field

from ...config.settings import Settings
from ...infrastructure.storage.client import (
    ImageStorage,
    InvalidContentType,
    StorageAuthFailed,
    StorageError,
    StorageSignFailed,
    StorageUnreachable,
)
from ..dependencies import AuthenticatedUser, ImageStorageDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class UploadImageResponse(BaseModel):
    """Response after storing a new image."""
    key: str = Field(description="Object key of the stored image")
    url: str = Field(description="Signed read URL, valid for the configured expiry")


class UpdateImageResponse(BaseModel):
    """Response after overwriting an image."""
    success: bool = Field(description="Always true when returned")
    key: str = Field(description="Object key that was overwritten")


class SignedUrlResponse(BaseModel):
    """A signed read URL for one key."""
    key: str = Field(description="Object key the URL grants access to")
    url: str = Field(description="Signed read URL")
    expires_in: int = Field(description="Seconds until the URL expires")


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def storage_http_error(error: StorageError) -> HTTPException:
    """Map a storage failure onto an HTTP error."""
    if isinstance(error, InvalidContentType):
        return HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported image type: {error.content_type}. Use JPEG, PNG, WebP or GIF.",
        )
    if isinstance(error, (StorageAuthFailed, StorageUnreachable)):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Image storage is unavailable",
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="Image storage request failed",
    )


async def read_image_upload(
    file: UploadFile,
    storage: ImageStorage,
    settings: Settings,
) -> bytes:
    """
    Validate an uploaded file and return its bytes.

    The content type is checked before the body is read.
    """
    if not storage.is_valid_content_type(file.content_type or ""):
        raise storage_http_error(InvalidContentType(file.content_type))

    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file must have a filename",
        )

    payload = await file.read()

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )

    max_size_bytes = settings.max_upload_size_mb * 1024 * 1024
    if len(payload) > max_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image too large. Maximum size: {settings.max_upload_size_mb}MB",
        )

    return payload


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=UploadImageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload image",
    description="Store a new project image and get its key and a signed read URL",
)
async def upload_image(
    file: Annotated[UploadFile, File(description="Image file (JPEG, PNG, WebP, GIF)")],
    api_key: AuthenticatedUser,
    storage: ImageStorageDep,
    settings: SettingsDep,
) -> UploadImageResponse:
    """Upload a new image under a generated key."""
    payload = await read_image_upload(file, storage, settings)

    logger.info(
        "Image upload started",
        extra={
            "original_filename": file.filename,
            "content_type": file.content_type,
            "size_bytes": len(payload),
        }
    )

    try:
        stored = await storage.upload_image(
            payload=payload,
            original_filename=file.filename,
            content_type=file.content_type,
        )
    except StorageSignFailed as e:
        # The object was written; tell the caller where it is
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Image stored at {e.key} but a URL could not be generated",
        ) from e
    except StorageError as e:
        raise storage_http_error(e) from e

    return UploadImageResponse(key=stored.key, url=stored.url)


@router.put(
    "/{key:path}",
    response_model=UpdateImageResponse,
    status_code=status.HTTP_200_OK,
    summary="Replace image",
    description="Overwrite the image stored at an existing key",
)
async def update_image(
    key: str,
    file: Annotated[UploadFile, File(description="Replacement image file")],
    api_key: AuthenticatedUser,
    storage: ImageStorageDep,
    settings: SettingsDep,
) -> UpdateImageResponse:
    """Overwrite the object at `key`. The previous image is not kept."""
    payload = await read_image_upload(file, storage, settings)

    try:
        updated = await storage.update_image(
            key=key,
            payload=payload,
            original_filename=file.filename,
            content_type=file.content_type,
        )
    except StorageError as e:
        raise storage_http_error(e) from e

    return UpdateImageResponse(success=updated.success, key=updated.key)


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete image",
    description="Delete an image by object key or by a URL pointing at it",
)
async def delete_image(
    target: Annotated[str, Query(min_length=1, description="Object key or image URL")],
    api_key: AuthenticatedUser,
    storage: ImageStorageDep,
) -> Response:
    """Delete an image. Deleting a key that doesn't exist still succeeds."""
    try:
        await storage.delete_image(target)
    except StorageError as e:
        raise storage_http_error(e) from e

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/signed-url",
    response_model=SignedUrlResponse,
    status_code=status.HTTP_200_OK,
    summary="Get signed URL",
    description="Generate a time-limited read URL. The key is not checked for existence.",
)
async def get_signed_url(
    key: Annotated[str, Query(min_length=1, description="Object key")],
    api_key: AuthenticatedUser,
    storage: ImageStorageDep,
    settings: SettingsDep,
    expires_in: Annotated[int | None, Query(gt=0, le=604800, description="Expiry in seconds")] = None,
) -> SignedUrlResponse:
    """Sign a read URL for `key`."""
    expiry = expires_in or settings.signed_url_expiry_seconds

    try:
        url = await storage.get_signed_url(key, expiry)
    except StorageError as e:
        raise storage_http_error(e) from e

    return SignedUrlResponse(key=key, url=url, expires_in=expiry)
