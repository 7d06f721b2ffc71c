"""Expiring page memo for the gallery client.

Fetched pages are kept in a single serialised blob under one fixed storage
key, the same way a browser keeps them in local storage::

    {"data": {"<cache key>": {"value": <page>, "timestamp": <epoch ms>}}}

Each entry carries its own timestamp and is valid while
``now - timestamp < ttl``.  Expired, missing and malformed entries are all
reported as a miss; nothing in this module raises on a bad blob.

Blobs written by older clients used one timestamp for the whole blob::

    {"data": {"<cache key>": <page>}, "timestamp": <epoch ms>}

They are still readable (every entry gets the shared timestamp) and are
rewritten in the per-entry shape on the next write.

The clock and the storage backend are injected so the memo can be driven
deterministically in tests.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from promptgallery.core.config import GalleryConfig
from promptgallery.core.records import now_ms

logger = logging.getLogger(__name__)

CACHE_STORAGE_KEY = "ai_image_gallery_cache"
DEFAULT_TTL_MS = 24 * 60 * 60 * 1000
FIRST_PAGE_MARKER = "first"


def make_cache_key(term: str, reset: bool, cursor: str | None = None) -> str:
    """Derive the memo key for a page request.

    A fresh query always keys off the ``"first"`` marker, never the cursor
    left over from a previous listing.  Continuations key off the cursor
    they continue from, so two positions under the same term never share
    a key.

    Args:
        term: Search term; empty for the unfiltered gallery.
        reset: Whether this is the first page of a fresh query.
        cursor: Cursor being continued from when ``reset`` is False.
    """
    marker = FIRST_PAGE_MARKER if reset else cursor
    return f"{term}:{marker}"


class CacheBackend(ABC):
    """String key/value storage holding the serialised blob."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored string for *key*, or ``None``."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete *key* if present."""


class MemoryCacheBackend(CacheBackend):
    """In-process storage; contents are lost when the process exits."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileCacheBackend(CacheBackend):
    """Storage persisted as a JSON object of key -> string in one file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as handle:
                items = json.load(handle)
        except (OSError, ValueError):
            logger.warning("Cache file %s is unreadable, starting empty.", self.path)
            return {}
        if not isinstance(items, dict):
            return {}
        return {k: v for k, v in items.items() if isinstance(v, str)}

    def _write_all(self, items: dict[str, str]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(items, handle)
        tmp_path.replace(self.path)

    def get_item(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if items.pop(key, None) is not None:
            self._write_all(items)


class PageCache:
    """Time-limited memo of fetched pages keyed by :func:`make_cache_key`.

    Attributes:
        ttl_ms: Entry lifetime in milliseconds.
        storage_key: Backend key the blob lives under.
    """

    def __init__(
        self,
        backend: CacheBackend | None = None,
        *,
        clock: Callable[[], int] = now_ms,
        ttl_ms: int = DEFAULT_TTL_MS,
        storage_key: str = CACHE_STORAGE_KEY,
    ) -> None:
        self._backend = backend if backend is not None else MemoryCacheBackend()
        self._clock = clock
        self._lock = threading.RLock()
        self.ttl_ms = ttl_ms
        self.storage_key = storage_key

    def _load_entries(self) -> dict[str, dict]:
        """Read the blob and normalise it to ``{key: {"value", "timestamp"}}``.

        Anything unreadable yields an empty mapping.
        """
        try:
            raw = self._backend.get_item(self.storage_key)
        except OSError:
            logger.warning("Cache backend read failed, treating as empty.", exc_info=True)
            return {}
        if raw is None:
            return {}

        try:
            blob = json.loads(raw)
        except ValueError:
            logger.warning("Discarding malformed cache blob.")
            return {}
        if not isinstance(blob, dict) or not isinstance(blob.get("data"), dict):
            return {}

        shared_timestamp = blob.get("timestamp")
        entries: dict[str, dict] = {}
        for key, entry in blob["data"].items():
            if isinstance(shared_timestamp, int):
                # Legacy blob: one timestamp for every entry.
                entries[key] = {"value": entry, "timestamp": shared_timestamp}
            elif (
                isinstance(entry, dict)
                and "value" in entry
                and isinstance(entry.get("timestamp"), int)
            ):
                entries[key] = {"value": entry["value"], "timestamp": entry["timestamp"]}
        return entries

    def _is_live(self, entry: dict, now: int) -> bool:
        return now - entry["timestamp"] < self.ttl_ms

    def get(self, key: str):
        """Return the value stored under *key*, or ``None`` on a miss."""
        with self._lock:
            entry = self._load_entries().get(key)
            if entry is None or not self._is_live(entry, self._clock()):
                return None
            return entry["value"]

    def set(self, key: str, value) -> None:
        """Store *value* under *key* with a fresh timestamp.

        Expired entries are dropped while the blob is rewritten.  Backend
        failures are logged and otherwise ignored.
        """
        with self._lock:
            now = self._clock()
            entries = {k: e for k, e in self._load_entries().items() if self._is_live(e, now)}
            entries[key] = {"value": value, "timestamp": now}
            try:
                self._backend.set_item(self.storage_key, json.dumps({"data": entries}))
            except (OSError, TypeError, ValueError):
                logger.warning("Could not write cache entry %r.", key, exc_info=True)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            try:
                self._backend.remove_item(self.storage_key)
            except OSError:
                logger.warning("Could not clear the cache.", exc_info=True)


def build_page_cache(cfg: GalleryConfig) -> PageCache:
    """Create the memo described by *cfg*."""
    if cfg.cache_backend == "file":
        backend: CacheBackend = FileCacheBackend(cfg.cache_file)
    else:
        backend = MemoryCacheBackend()
    return PageCache(backend, ttl_ms=cfg.cache_ttl_ms)
