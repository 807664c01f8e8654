"""
Domain rules for project images.

Everything here is pure: no boto3, no FastAPI, no settings lookups.
The storage facades and the API both lean on these helpers so that the
real and mock backends derive keys and resolve URLs the same way.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlsplit
from uuid import uuid4

logger = logging.getLogger(__name__)


ALLOWED_IMAGE_CONTENT_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
})

DEFAULT_KEY_PREFIX = "projects"
DEFAULT_SIGNED_URL_EXPIRY = 3600  # 1 hour


@dataclass(frozen=True)
class UploadedImage:
    """A freshly stored image and a signed URL for reading it back."""
    key: str
    url: str


@dataclass(frozen=True)
class ImageUpdate:
    """Result of overwriting an image at a known key."""
    key: str
    success: bool = True


def is_valid_content_type(content_type: Optional[str]) -> bool:
    """Exact, case-insensitive membership in the image allow-list."""
    if not content_type:
        return False
    return content_type.lower() in ALLOWED_IMAGE_CONTENT_TYPES


def extract_extension(filename: str) -> str:
    """
    Return whatever follows the last '.' in the filename.

    Casing is preserved ("photo.PNG" -> "PNG"). A filename without any
    dot yields the whole filename; callers get a warning in the log
    rather than a different key shape.
    """
    if "." not in filename:
        logger.warning(
            "Filename has no extension, using it verbatim",
            extra={"original_filename": filename}
        )
    return filename.rsplit(".", 1)[-1]


def build_object_key(filename: str, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Build a new object key: {prefix}/{uuid4}.{ext}"""
    return f"{prefix}/{uuid4()}.{extract_extension(filename)}"


def resolve_object_key(key_or_url: str, bucket_name: str) -> str:
    """
    Turn a stored key or a URL pointing at it back into the key.

    Path-style endpoints put the bucket in the first path segment
    (https://host/<bucket>/projects/abc.png), so that segment is dropped.
    Anything that doesn't parse as an http(s) URL with a host is used
    as-is.
    """
    if not key_or_url.lower().startswith("http"):
        return key_or_url

    try:
        parts = urlsplit(key_or_url)
    except ValueError:
        logger.warning(
            "Could not parse URL, using as key",
            extra={"key_or_url": key_or_url}
        )
        return key_or_url

    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        logger.warning(
            "Not an http(s) URL, using as key",
            extra={"key_or_url": key_or_url}
        )
        return key_or_url

    path = unquote(parts.path).lstrip("/")

    bucket_prefix = f"{bucket_name}/"
    if bucket_name and path.startswith(bucket_prefix):
        path = path[len(bucket_prefix):]

    return path
