"""
FastAPI dependency injection.

Dependencies provide the storage facade and configuration to route
handlers. The storage facade is built once in the application lifespan
(see main.py) and kept on app.state; handlers never construct their own
boto3 clients.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..infrastructure.storage.client import ImageStorage, create_image_storage

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def build_image_storage(settings: Settings) -> ImageStorage:
    """
    Construct the process-wide image storage.

    Called once at startup. In mock mode the in-memory store lives as
    long as the app, so uploaded images persist across requests.
    """
    storage = create_image_storage(
        config=settings.storage_config(),
        mock_mode=settings.r2_mock_mode,
    )
    logger.info(
        "Image storage ready",
        extra={"mock_mode": settings.r2_mock_mode, "bucket": storage.bucket_name}
    )
    return storage


def get_image_storage(request: Request) -> ImageStorage:
    """Provide the image storage created at startup."""
    storage = getattr(request.app.state, "image_storage", None)
    if storage is None:
        # Only reachable if the lifespan didn't run
        logger.error("Image storage requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage not initialized",
        )
    return storage


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
ImageStorageDep = Annotated[ImageStorage, Depends(get_image_storage)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
