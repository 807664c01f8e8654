"""
Project Image Store - storage API for user-uploaded project images.

This package contains the complete application:
- core: Framework-agnostic image rules (content types, keys)
- infrastructure: Object storage integration (R2/S3)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
