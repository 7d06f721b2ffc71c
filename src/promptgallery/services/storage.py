"""Object stores for generated image files.

An object store accepts image bytes under a key and knows the fixed public
base location those keys are served from, so ``url_for`` is a pure
function of the key.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from promptgallery.core.config import GalleryConfig
from promptgallery.services.errors import StorageError

logger = logging.getLogger(__name__)


class ObjectStore(ABC):
    """Interface for image file storage."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "image/png") -> None:
        """Store *data* under *key*.

        Raises:
            StorageError: If the upload fails.
        """

    def url_for(self, key: str) -> str:
        """Return the public URL of *key*."""
        return f"{self.base_url}/{key}"


class S3ObjectStore(ObjectStore):
    """Uploads images to an S3 bucket."""

    def __init__(
        self,
        bucket_name: str,
        *,
        region: str = "us-east-1",
        base_url: str | None = None,
        client=None,
    ) -> None:
        super().__init__(base_url or f"https://{bucket_name}.s3.amazonaws.com")
        if client is None:
            import boto3

            client = boto3.client("s3", region_name=region)
        self._client = client
        self.bucket_name = bucket_name

    def put(self, key: str, data: bytes, content_type: str = "image/png") -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except Exception as e:
            logger.exception("Upload of '%s' to bucket '%s' failed.", key, self.bucket_name)
            raise StorageError(f"Upload to bucket '{self.bucket_name}' failed: {e}") from e
        logger.info("Uploaded '%s' (%d bytes) to bucket '%s'.", key, len(data), self.bucket_name)


class LocalObjectStore(ObjectStore):
    """Writes images into a directory served by the API's static mount."""

    def __init__(self, directory: Path, base_url: str) -> None:
        super().__init__(base_url)
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def put(self, key: str, data: bytes, content_type: str = "image/png") -> None:
        # Keys are generated server-side, but never let one escape the directory.
        target = (self.directory / key).resolve()
        if target.parent != self.directory.resolve():
            raise StorageError(f"Invalid object key: {key}")

        try:
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not write '{key}': {e}") from e
        logger.info("Saved '%s' (%d bytes) to %s.", key, len(data), self.directory)


def build_object_store(cfg: GalleryConfig) -> ObjectStore:
    """Instantiate the store selected by ``cfg.object_store``."""
    base_url = cfg.resolve_image_base_url()
    if cfg.object_store == "local":
        return LocalObjectStore(cfg.gallery_dir, base_url)
    return S3ObjectStore(cfg.bucket_name, region=cfg.aws_region, base_url=base_url)
