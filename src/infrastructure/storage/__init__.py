"""
Object storage integration for project images.

Supports R2 (Cloudflare) and other S3-compatible stores via the S3 API.
Includes mock mode for local development without credentials.
"""

from .client import (
    ImageStorage,
    InvalidContentType,
    MockImageStorage,
    R2ImageStorage,
    StorageAuthFailed,
    StorageConfig,
    StorageDeleteFailed,
    StorageError,
    StorageSignFailed,
    StorageUnreachable,
    StorageWriteFailed,
    create_image_storage,
    create_s3_client,
)

__all__ = [
    "ImageStorage",
    "InvalidContentType",
    "MockImageStorage",
    "R2ImageStorage",
    "StorageAuthFailed",
    "StorageConfig",
    "StorageDeleteFailed",
    "StorageError",
    "StorageSignFailed",
    "StorageUnreachable",
    "StorageWriteFailed",
    "create_image_storage",
    "create_s3_client",
]
