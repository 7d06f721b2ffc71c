"""Shared pytest fixtures for Prompt Gallery tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from promptgallery.api.main import create_app
from promptgallery.client.cache import MemoryCacheBackend, PageCache
from promptgallery.core.config import GalleryConfig
from promptgallery.services.gallery import GalleryService
from promptgallery.services.providers import ImageProvider
from promptgallery.services.storage import LocalObjectStore
from promptgallery.services.table import LocalRecordTable

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-data"


class FakeImageProvider(ImageProvider):
    """Provider returning fixed bytes and recording every prompt."""

    name = "fake"

    def __init__(self, data: bytes = PNG_BYTES, error: Exception | None = None):
        self.data = data
        self.error = error
        self.prompts: list[str] = []
        self.closed = False

    def generate(self, prompt: str) -> bytes:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.data

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> GalleryConfig:
    """Create a configuration using local backends inside a temp directory."""
    return GalleryConfig(
        _env_file=None,
        object_store="local",
        record_table="local",
        image_provider="diffusers",
        data_dir=temp_dir / "data",
        gallery_dir=temp_dir / "data" / "gallery",
        cache_file=temp_dir / "cache" / "client_cache.json",
        image_base_url="http://testserver/static/gallery",
        api_url="http://testserver",
        device="cpu",
        torch_dtype="float32",
    )


@pytest.fixture
def fake_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def gallery_service(test_config: GalleryConfig, fake_provider: FakeImageProvider) -> GalleryService:
    """Service wired to the fake provider and local store/table."""
    store = LocalObjectStore(test_config.gallery_dir, test_config.resolve_image_base_url())
    table = LocalRecordTable(test_config.gallery_db)
    return GalleryService(fake_provider, store, table)


@pytest.fixture
def test_client(test_config: GalleryConfig, gallery_service: GalleryService):
    """FastAPI TestClient for an app using the local test service."""
    app = create_app(test_config, service=gallery_service)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def page_cache(clock: FakeClock) -> PageCache:
    """In-memory page cache driven by the fake clock."""
    return PageCache(MemoryCacheBackend(), clock=clock)
