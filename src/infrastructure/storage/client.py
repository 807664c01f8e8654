"""
Object storage client for project images.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
R2 is addressed path-style (https://<endpoint>/<bucket>/<key>), which is
also what MinIO and most self-hosted S3 APIs expect, so nothing here is
R2-specific beyond the default region.

Mock mode stores images in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from ...core.images.models import (
    DEFAULT_KEY_PREFIX,
    DEFAULT_SIGNED_URL_EXPIRY,
    ImageUpdate,
    UploadedImage,
    build_object_key,
    is_valid_content_type,
    resolve_object_key,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StorageError(Exception):
    """Raised when storage operations fail."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class InvalidContentType(StorageError, ValueError):
    """Content type is not an allowed image type. Nothing was sent to the store."""

    def __init__(self, content_type: Optional[str]) -> None:
        super().__init__(f"Invalid image type: {content_type!r}")
        self.content_type = content_type


class StorageWriteFailed(StorageError):
    """Put of an object failed; the key should be treated as not written."""


class StorageDeleteFailed(StorageError):
    """Delete of an object failed."""


class StorageSignFailed(StorageError):
    """
    Signed URL generation failed.

    When raised from an upload, the object was already written and still
    exists at `key`.
    """


class StorageAuthFailed(StorageError):
    """Credentials are missing or could not be used by the client."""


class StorageUnreachable(StorageError):
    """Endpoint or bucket is missing, or the endpoint cannot be reached."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def _check_expiry(expiry_seconds: int) -> None:
    if not isinstance(expiry_seconds, int) or expiry_seconds <= 0:
        raise ValueError(f"expiry_seconds must be a positive integer, got {expiry_seconds!r}")


@dataclass(frozen=True)
class StorageConfig:
    """
    Configuration for R2/S3-compatible storage.

    Built once from Settings at startup. Missing values are allowed here;
    operations fail at call time with StorageAuthFailed/StorageUnreachable.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: Optional[str]
    region: str = "auto"  # R2 uses 'auto' for region
    max_attempts: int = 1  # total attempts per call, 1 = no retries
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    key_prefix: str = DEFAULT_KEY_PREFIX
    signed_url_expiry: int = DEFAULT_SIGNED_URL_EXPIRY

    def __post_init__(self) -> None:
        # Checked up front so an upload never fails on expiry after the put
        _check_expiry(self.signed_url_expiry)

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    @property
    def has_location(self) -> bool:
        return bool(self.endpoint_url and self.bucket_name)


def create_s3_client(config: StorageConfig) -> Any:
    """
    Build the boto3 S3 client shared by every request.

    R2 requires v4 signatures and path-style addressing. Retries are
    handled by botocore's standard retry mode, bounded by max_attempts.
    """
    boto_config = Config(
        signature_version="s3v4",
        s3={"addressing_style": "path"},
        retries={"max_attempts": config.max_attempts, "mode": "standard"},
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
    )

    # Empty strings would be sent as real (invalid) credentials; None lets
    # botocore report NoCredentialsError instead.
    return boto3.client(
        "s3",
        endpoint_url=config.endpoint_url or None,
        aws_access_key_id=config.access_key_id or None,
        aws_secret_access_key=config.secret_access_key or None,
        region_name=config.region,
        config=boto_config,
    )


# ---------------------------------------------------------------------------
# Storage Protocol
# ---------------------------------------------------------------------------

class ImageStorage(Protocol):
    """
    Protocol for image storage operations.

    Tests and mock mode provide an in-memory implementation; the API only
    ever talks to this interface.
    """

    @property
    def bucket_name(self) -> str:
        ...

    def is_valid_content_type(self, content_type: str) -> bool:
        ...

    async def upload_image(
        self,
        payload: bytes,
        original_filename: str,
        content_type: str,
    ) -> UploadedImage:
        """Store a new image under a generated key and return a signed URL."""
        ...

    async def update_image(
        self,
        key: str,
        payload: bytes,
        original_filename: str,
        content_type: str,
    ) -> ImageUpdate:
        """Overwrite the image at an existing key."""
        ...

    async def delete_image(self, key_or_url: str) -> None:
        """Delete by key or by a URL pointing at the object."""
        ...

    async def get_signed_url(
        self,
        key: str,
        expiry_seconds: int = DEFAULT_SIGNED_URL_EXPIRY,
    ) -> str:
        """Generate a temporary read URL. Does not check that the key exists."""
        ...


# ---------------------------------------------------------------------------
# R2 Storage
# ---------------------------------------------------------------------------

class R2ImageStorage:
    """
    Cloudflare R2 image storage.

    Holds a boto3 client created once at startup and the bucket name.
    boto3 is synchronous, so each call runs in a worker thread to keep
    the event loop free. The client is shared read-only across requests.

    Every operation is a single attempt (unless max_attempts says
    otherwise); failures are logged and re-raised as StorageError
    subclasses with the botocore error chained.
    """

    def __init__(self, s3_client: Any, config: StorageConfig) -> None:
        self._s3_client = s3_client
        self._config = config

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
                "configured": config.has_credentials and config.has_location,
            }
        )

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    def is_valid_content_type(self, content_type: str) -> bool:
        return is_valid_content_type(content_type)

    async def upload_image(
        self,
        payload: bytes,
        original_filename: str,
        content_type: str,
    ) -> UploadedImage:
        """
        Upload a new image to R2 storage.

        Path structure: {key_prefix}/{uuid}.{ext}
        The extension comes from the original filename, casing untouched.

        If signing fails after the put succeeded the object stays in the
        bucket; StorageSignFailed carries its key so the caller can clean up.
        """
        if not is_valid_content_type(content_type):
            raise InvalidContentType(content_type)

        key = build_object_key(original_filename, self._config.key_prefix)
        await self._put(key, payload, content_type, "upload")

        try:
            url = await self.get_signed_url(key, self._config.signed_url_expiry)
        except StorageSignFailed:
            logger.warning(
                "Image stored but URL signing failed, object left in place",
                extra={"key": key}
            )
            raise

        logger.info(
            "Uploaded image",
            extra={"key": key, "size_bytes": len(payload), "content_type": content_type}
        )

        return UploadedImage(key=key, url=url)

    async def update_image(
        self,
        key: str,
        payload: bytes,
        original_filename: str,
        content_type: str,
    ) -> ImageUpdate:
        """
        Replace the image at a caller-supplied key.

        This is a plain overwrite, the previous content is gone.
        original_filename is only used for logging.
        """
        if not is_valid_content_type(content_type):
            raise InvalidContentType(content_type)

        await self._put(key, payload, content_type, "update")

        logger.info(
            "Updated image",
            extra={
                "key": key,
                "size_bytes": len(payload),
                "original_filename": original_filename,
            }
        )

        return ImageUpdate(key=key)

    async def delete_image(self, key_or_url: str) -> None:
        """
        Delete an image by key or by URL.

        Deleting a key that doesn't exist is not an error as far as S3 is
        concerned, so it isn't one here either.
        """
        key = resolve_object_key(key_or_url, self._config.bucket_name)
        self._ensure_configured(key)

        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to delete image",
                extra={"key": key, "error": str(e)}
            )
            raise self._translate(e, StorageDeleteFailed, "Failed to delete image", key) from e

        logger.info("Deleted image", extra={"key": key})

    async def get_signed_url(
        self,
        key: str,
        expiry_seconds: int = DEFAULT_SIGNED_URL_EXPIRY,
    ) -> str:
        """
        Generate a temporary download URL.

        Signing happens locally; the object is not looked up. A URL for a
        missing key is valid and simply 404s when fetched.
        """
        _check_expiry(expiry_seconds)
        self._ensure_configured(key)

        try:
            url = await asyncio.to_thread(
                self._s3_client.generate_presigned_url,
                "get_object",
                Params={
                    "Bucket": self._config.bucket_name,
                    "Key": key,
                },
                ExpiresIn=expiry_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"key": key, "error": str(e)}
            )
            raise self._translate(
                e, StorageSignFailed, "Presigned URL generation failed", key
            ) from e

        logger.debug(
            "Generated presigned URL",
            extra={"key": key, "expiry_seconds": expiry_seconds}
        )
        return url

    async def _put(self, key: str, payload: bytes, content_type: str, action: str) -> None:
        self._ensure_configured(key)

        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._config.bucket_name,
                Key=key,
                Body=payload,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                f"Failed to {action} image",
                extra={"key": key, "content_type": content_type, "error": str(e)}
            )
            raise self._translate(e, StorageWriteFailed, f"Failed to {action} image", key) from e

    def _ensure_configured(self, key: Optional[str]) -> None:
        if not self._config.has_credentials:
            logger.error("Storage credentials not configured", extra={"key": key})
            raise StorageAuthFailed(
                "Storage credentials not configured. Set R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY.",
                key=key,
            )
        if not self._config.has_location or self._s3_client is None:
            logger.error("Storage endpoint or bucket not configured", extra={"key": key})
            raise StorageUnreachable(
                "Storage endpoint or bucket not configured. Set R2_ENDPOINT_URL "
                "(or R2_ACCOUNT_ID) and R2_BUCKET_NAME.",
                key=key,
            )

    @staticmethod
    def _translate(
        error: Exception,
        failure: type[StorageError],
        message: str,
        key: str,
    ) -> StorageError:
        """
        Map a botocore error onto our taxonomy.

        Client-side credential, connection and timeout errors get their own types;
        everything the store itself answers with (403s included) is a
        failure of the operation.
        """
        if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
            return StorageAuthFailed(f"{message}: {error}", key=key)
        if isinstance(error, (BotoConnectionError, ReadTimeoutError)):
            return StorageUnreachable(f"{message}: {error}", key=key)
        return failure(f"{message}: {error}", key=key)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockImageStorage:
    """
    In-memory image storage for local development.

    Applies the same content-type rules, key derivation and URL
    resolution as R2ImageStorage. Signed URLs are path-style fakes on a
    local host, so they can be fed back into delete_image.

    Not suitable for production, but perfect for development and testing.
    """

    MOCK_HOST = "http://mock-storage.local"

    def __init__(
        self,
        bucket_name: str = "mock-bucket",
        key_prefix: str = DEFAULT_KEY_PREFIX,
        signed_url_expiry: int = DEFAULT_SIGNED_URL_EXPIRY,
    ) -> None:
        # {key: (payload, content_type)}
        self._objects: dict[str, tuple[bytes, str]] = {}
        self._bucket_name = bucket_name
        self._key_prefix = key_prefix
        _check_expiry(signed_url_expiry)
        self._signed_url_expiry = signed_url_expiry
        logger.info("Initialized mock storage client (in-memory)")

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def get_object(self, key: str) -> Optional[tuple[bytes, str]]:
        """Return (payload, content_type) for a stored key, if any."""
        return self._objects.get(key)

    def is_valid_content_type(self, content_type: str) -> bool:
        return is_valid_content_type(content_type)

    async def upload_image(
        self,
        payload: bytes,
        original_filename: str,
        content_type: str,
    ) -> UploadedImage:
        """Store image in memory."""
        if not is_valid_content_type(content_type):
            raise InvalidContentType(content_type)

        key = build_object_key(original_filename, self._key_prefix)
        self._objects[key] = (payload, content_type)

        logger.debug(
            "Stored image in mock storage",
            extra={"key": key, "size_bytes": len(payload)}
        )

        url = await self.get_signed_url(key, self._signed_url_expiry)
        return UploadedImage(key=key, url=url)

    async def update_image(
        self,
        key: str,
        payload: bytes,
        original_filename: str,
        content_type: str,
    ) -> ImageUpdate:
        """Overwrite image in memory."""
        if not is_valid_content_type(content_type):
            raise InvalidContentType(content_type)

        self._objects[key] = (payload, content_type)
        return ImageUpdate(key=key)

    async def delete_image(self, key_or_url: str) -> None:
        """Delete image from memory. Unknown keys are ignored, like S3."""
        key = resolve_object_key(key_or_url, self._bucket_name)
        self._objects.pop(key, None)

        logger.debug("Deleted image from mock storage", extra={"key": key})

    async def get_signed_url(
        self,
        key: str,
        expiry_seconds: int = DEFAULT_SIGNED_URL_EXPIRY,
    ) -> str:
        """Return a fake path-style URL carrying the expiry."""
        _check_expiry(expiry_seconds)
        return f"{self.MOCK_HOST}/{self._bucket_name}/{key}?X-Amz-Expires={expiry_seconds}"


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_image_storage(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
    s3_client: Any = None,
) -> ImageStorage:
    """
    Create image storage based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return in-memory storage
        s3_client: Pre-built boto3 client; built from config when omitted

    Returns:
        ImageStorage implementation (R2 or Mock)
    """
    if mock_mode:
        if config is None:
            return MockImageStorage()
        return MockImageStorage(
            bucket_name=config.bucket_name or "mock-bucket",
            key_prefix=config.key_prefix,
            signed_url_expiry=config.signed_url_expiry,
        )

    if config is None:
        raise ValueError("config is required when not in mock mode")

    if s3_client is None and config.has_credentials and config.has_location:
        s3_client = create_s3_client(config)
    elif s3_client is None:
        logger.warning(
            "R2 storage not configured, image operations will fail",
            extra={
                "has_credentials": config.has_credentials,
                "has_location": config.has_location,
            }
        )

    return R2ImageStorage(s3_client, config)
