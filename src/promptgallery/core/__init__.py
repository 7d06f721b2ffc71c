"""Core data model and configuration for Prompt Gallery.

Modules
-------
config
    Pydantic Settings configuration and the global ``config`` instance.
records
    ``ImageRecord`` and ``Page`` wire types shared by the service and the
    client, plus image identifier generation.
"""

from promptgallery.core.config import GalleryConfig, config
from promptgallery.core.records import ImageRecord, Page, new_image_id, now_ms

__all__ = [
    "GalleryConfig",
    "ImageRecord",
    "Page",
    "config",
    "new_image_id",
    "now_ms",
]
