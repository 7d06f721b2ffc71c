"""Generation and query service layer.

Modules
-------
gallery
    ``GalleryService`` composing the three backends, plus cursor encoding.
providers
    Prompt-to-PNG backends (Bedrock, local diffusers).
storage
    Image file stores (S3, local directory).
table
    Image metadata tables (DynamoDB, local ``gallery.json``).
errors
    Service-layer exception hierarchy.
"""

from promptgallery.services.errors import (
    InvalidCursorError,
    ProviderError,
    ServiceError,
    StorageError,
)
from promptgallery.services.gallery import GalleryService, build_gallery_service

__all__ = [
    "GalleryService",
    "InvalidCursorError",
    "ProviderError",
    "ServiceError",
    "StorageError",
    "build_gallery_service",
]
