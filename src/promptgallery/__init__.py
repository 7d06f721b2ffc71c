"""Prompt Gallery - AI image generation with a paginated, cached gallery."""

__version__ = "0.1.0"

from promptgallery.core.config import GalleryConfig, config
from promptgallery.core.records import ImageRecord, Page

__all__ = [
    "GalleryConfig",
    "ImageRecord",
    "Page",
    "config",
]
