"""
Project image domain: allowed content types, key derivation and
key-or-URL resolution.
"""

from .models import (
    ALLOWED_IMAGE_CONTENT_TYPES,
    DEFAULT_KEY_PREFIX,
    DEFAULT_SIGNED_URL_EXPIRY,
    ImageUpdate,
    UploadedImage,
    build_object_key,
    extract_extension,
    is_valid_content_type,
    resolve_object_key,
)

__all__ = [
    "ALLOWED_IMAGE_CONTENT_TYPES",
    "DEFAULT_KEY_PREFIX",
    "DEFAULT_SIGNED_URL_EXPIRY",
    "ImageUpdate",
    "UploadedImage",
    "build_object_key",
    "extract_extension",
    "is_valid_content_type",
    "resolve_object_key",
]
