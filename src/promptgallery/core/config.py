"""Configuration management for Prompt Gallery.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PROMPTGALLERY_
prefix, so the same code runs against AWS or against local backends without
code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PROMPTGALLERY_* prefix)
2. .env file in the project root
3. Default values defined in GalleryConfig

Example .env file:
    PROMPTGALLERY_IMAGE_PROVIDER=bedrock
    PROMPTGALLERY_OBJECT_STORE=s3
    PROMPTGALLERY_RECORD_TABLE=dynamodb
    PROMPTGALLERY_BUCKET_NAME=ai-image-gallery-dev-ad-visual
    PROMPTGALLERY_API_URL=http://localhost:7860

Backends
--------
The service composes three collaborators, each selected here:

- image_provider: ``bedrock`` (Titan image generator) or ``diffusers``
  (local pipeline, requires the ``local`` extra)
- object_store: ``s3`` or ``local`` (files under ``gallery_dir``)
- record_table: ``dynamodb`` or ``local`` (``gallery.json`` under ``data_dir``)

The client side (orchestrator and UI) reads ``api_url``, ``page_limit``,
``cache_ttl_hours`` and the cache backend settings.

Global Configuration Instance
------------------------------
A global ``config`` instance is created at module import time and serves as
the single source of truth for the application.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GalleryConfig(BaseSettings):
    """Main configuration for Prompt Gallery.

    Values are loaded from environment variables with the PROMPTGALLERY_
    prefix, with fallback to the defaults defined here. Local directories
    (``data_dir``, ``gallery_dir`` and the parent of ``cache_file``) are
    created on initialization.

    Attributes
    ----------
    Backend selection:
        image_provider : Literal["bedrock", "diffusers"]
        object_store : Literal["s3", "local"]
        record_table : Literal["dynamodb", "local"]

    AWS settings:
        aws_region, bucket_name, table_name, bedrock_model_id

    Generation settings:
        image_width, image_height, cfg_scale, generation_seed, image_quality

    Local backend settings:
        data_dir, gallery_dir, image_base_url, diffusers_model_id, device,
        torch_dtype, num_inference_steps, models_dir

    Client settings:
        api_url, page_limit, request_timeout, cache_ttl_hours,
        cache_backend, cache_file

    Server settings:
        cors_origins, server_host, server_port, ui_server_name,
        ui_server_port, ui_share
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PROMPTGALLERY_",
        case_sensitive=False,
    )

    # Backend selection
    image_provider: Literal["bedrock", "diffusers"] = Field(
        default="bedrock",
        description="Generative image backend",
    )
    object_store: Literal["s3", "local"] = Field(
        default="s3",
        description="Where generated PNG files are uploaded",
    )
    record_table: Literal["dynamodb", "local"] = Field(
        default="dynamodb",
        description="Where image metadata records are written and scanned",
    )

    # AWS settings
    aws_region: str = Field(default="us-east-1", description="AWS region for all clients")
    bucket_name: str = Field(
        default="ai-image-gallery-dev-ad-visual",
        description="S3 bucket receiving generated images",
    )
    table_name: str = Field(
        default="ai-image-gallery-dev",
        description="DynamoDB table holding image records",
    )
    bedrock_model_id: str = Field(
        default="amazon.titan-image-generator-v2:0",
        description="Bedrock model used for TEXT_IMAGE generation",
    )

    # Generation settings
    image_width: int = Field(default=512, ge=256, le=2048)
    image_height: int = Field(default=512, ge=256, le=2048)
    cfg_scale: float = Field(default=8.0, ge=0.0, le=20.0)
    generation_seed: int = Field(default=0, ge=0)
    image_quality: Literal["standard", "premium"] = Field(default="standard")

    # Local backend settings
    data_dir: Path = Field(default=Path("data"), description="Directory for gallery.json")
    gallery_dir: Path = Field(
        default=Path("data/gallery"),
        description="Directory receiving generated images when object_store=local",
    )
    image_base_url: str | None = Field(
        default=None,
        description="Public base URL for images; derived from the store when unset",
    )
    diffusers_model_id: str = Field(
        default="stabilityai/sdxl-turbo",
        description="HuggingFace model ID used when image_provider=diffusers",
    )
    models_dir: Path = Field(default=Path("models"), description="HuggingFace cache directory")
    device: str = Field(default="cuda", description="Device to run local inference on")
    torch_dtype: Literal["bfloat16", "float16", "float32"] = Field(default="bfloat16")
    num_inference_steps: int = Field(default=4, ge=1, le=50)

    # Client settings
    api_url: str = Field(
        default="http://localhost:7860",
        description="Base URL of the generation and query service",
    )
    page_limit: int = Field(default=10, ge=1, le=100, description="Images per page")
    request_timeout: float = Field(default=60.0, gt=0.0, description="HTTP timeout (seconds)")
    cache_ttl_hours: float = Field(default=24.0, gt=0.0, description="Page memo lifetime")
    cache_backend: Literal["file", "memory"] = Field(default="file")
    cache_file: Path = Field(
        default=Path("data/client_cache.json"),
        description="Local storage file used when cache_backend=file",
    )

    # Server settings
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Values allowed in Access-Control-Allow-Origin",
    )
    server_host: str = Field(default="0.0.0.0", description="API bind address")
    server_port: int = Field(default=7860, ge=1024, le=65535)
    ui_server_name: str = Field(default="0.0.0.0", description="Gradio bind address")
    ui_server_port: int = Field(default=7861, ge=1024, le=65535)
    ui_share: bool = Field(default=False, description="Create public gradio.live link")

    def __init__(self, **kwargs):
        """Initialize configuration and create local directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        if self.object_store == "local":
            self.gallery_dir.mkdir(parents=True, exist_ok=True)

    @property
    def cache_ttl_ms(self) -> int:
        """Cache time-to-live in epoch milliseconds."""
        return int(self.cache_ttl_hours * 60 * 60 * 1000)

    @property
    def gallery_db(self) -> Path:
        """Path of the local record table file."""
        return self.data_dir / "gallery.json"

    def resolve_image_base_url(self) -> str:
        """Return the fixed base location image URLs are derived from.

        Returns:
            ``image_base_url`` when set, otherwise the public S3 bucket URL
            or the API's static gallery mount.
        """
        if self.image_base_url:
            return self.image_base_url.rstrip("/")
        if self.object_store == "s3":
            return f"https://{self.bucket_name}.s3.amazonaws.com"
        return f"{self.api_url.rstrip('/')}/static/gallery"


# Global configuration instance, loaded from PROMPTGALLERY_* environment
# variables and the .env file.
config = GalleryConfig()
