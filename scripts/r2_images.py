#!/usr/bin/env python3
"""
Manage project images in R2 from the command line.

Uses the same storage client as the API, configured from .env.

Usage:
    python scripts/r2_images.py upload path/to/photo.png
    python scripts/r2_images.py update aimock/projects/<uuid>.png path/to/photo.png
    python scripts/r2_images.py delete projects/<uuid>.png
    python scripts/r2_images.py delete https://<endpoint>/<bucket>/projects/<uuid>.png
    python scripts/r2_images.py sign projects/<uuid>.png --expires 600

Requires:
    - .env file with R2 credentials (R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY,
      R2_BUCKET_NAME and R2_ENDPOINT_URL or R2_ACCOUNT_ID)
"""

import asyncio
import mimetypes
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.config.settings import get_settings  # noqa: E402
from src.infrastructure.storage.client import (  # noqa: E402
    ImageStorage,
    StorageError,
    create_image_storage,
)


def guess_content_type(path: Path) -> str:
    """Guess the MIME type from the file extension."""
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or "application/octet-stream"


async def run(args, storage: ImageStorage) -> None:
    if args.command == "upload":
        path = Path(args.file)
        stored = await storage.upload_image(
            path.read_bytes(),
            path.name,
            args.content_type or guess_content_type(path),
        )
        print(f"key: {stored.key}")
        print(f"url: {stored.url}")

    elif args.command == "update":
        path = Path(args.file)
        updated = await storage.update_image(
            args.key,
            path.read_bytes(),
            path.name,
            args.content_type or guess_content_type(path),
        )
        print(f"Updated {updated.key}")

    elif args.command == "delete":
        await storage.delete_image(args.target)
        print(f"Deleted {args.target}")

    elif args.command == "sign":
        print(await storage.get_signed_url(args.key, args.expires))


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Manage project images in R2')
    subparsers = parser.add_subparsers(dest='command', required=True)

    upload = subparsers.add_parser('upload', help='Upload a new image')
    upload.add_argument('file', help='Image file to upload')
    upload.add_argument('--content-type', help='Override the guessed MIME type')

    update = subparsers.add_parser('update', help='Overwrite the image at a key')
    update.add_argument('key', help='Existing object key')
    update.add_argument('file', help='Replacement image file')
    update.add_argument('--content-type', help='Override the guessed MIME type')

    delete = subparsers.add_parser('delete', help='Delete an image by key or URL')
    delete.add_argument('target', help='Object key or image URL')

    sign = subparsers.add_parser('sign', help='Print a signed read URL')
    sign.add_argument('key', help='Object key')
    sign.add_argument('--expires', type=int, default=None, help='Expiry in seconds')

    args = parser.parse_args()

    settings = get_settings()
    if args.command == 'sign' and args.expires is None:
        args.expires = settings.signed_url_expiry_seconds

    missing = settings.validate_required_fields()
    if missing:
        print(f"ERROR: missing configuration: {', '.join(missing)}")
        sys.exit(1)

    if args.command in ('upload', 'update') and not Path(args.file).is_file():
        print(f"ERROR: Cannot find {args.file}")
        sys.exit(1)

    storage = create_image_storage(
        config=settings.storage_config(),
        mock_mode=settings.r2_mock_mode,
    )

    try:
        asyncio.run(run(args, storage))
    except (StorageError, ValueError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
