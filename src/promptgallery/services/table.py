"""Record tables holding image metadata.

A record table stores :class:`~promptgallery.core.records.ImageRecord`
entries (without ``imageUrl``) and pages through them with an exclusive
start key, the way a DynamoDB scan does:

- :class:`DynamoRecordTable` forwards to a DynamoDB table.  Listing order
  and page fill are whatever the scan returns.
- :class:`LocalRecordTable` keeps every record in a single ``gallery.json``
  file, newest first.  The start key is ``{"id": <last id returned>}``.

Both return ``(records, last_key)`` where ``last_key`` is ``None`` once the
listing is exhausted.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from promptgallery.core.config import GalleryConfig
from promptgallery.core.records import ImageRecord
from promptgallery.services.errors import InvalidCursorError, StorageError

logger = logging.getLogger(__name__)


class RecordTable(ABC):
    """Interface for image metadata storage."""

    @abstractmethod
    def put(self, record: ImageRecord) -> None:
        """Persist *record*.

        Raises:
            StorageError: If the write fails.
        """

    @abstractmethod
    def scan(
        self,
        term: str = "",
        *,
        start_key: dict | None = None,
        limit: int = 10,
    ) -> tuple[list[ImageRecord], dict | None]:
        """Return one page of records whose prompt contains *term*.

        Args:
            term: Substring filter on the prompt; empty means no filter.
            start_key: Exclusive start key returned by a previous scan.
            limit: Maximum number of records examined.

        Returns:
            Tuple of ``(records, last_key)``.

        Raises:
            InvalidCursorError: If *start_key* is not usable.
            StorageError: If the read fails.
        """


class DynamoRecordTable(RecordTable):
    """DynamoDB-backed record table."""

    def __init__(self, table_name: str, *, region: str = "us-east-1", table=None) -> None:
        if table is None:
            import boto3

            table = boto3.resource("dynamodb", region_name=region).Table(table_name)
        self._table = table
        self.table_name = table_name

    def put(self, record: ImageRecord) -> None:
        item = {"id": record.id, "prompt": record.prompt, "createdAt": record.created_at}
        try:
            self._table.put_item(Item=item)
        except Exception as e:
            logger.exception("put_item failed on table '%s'.", self.table_name)
            raise StorageError(f"Write to table '{self.table_name}' failed: {e}") from e

    def scan(
        self,
        term: str = "",
        *,
        start_key: dict | None = None,
        limit: int = 10,
    ) -> tuple[list[ImageRecord], dict | None]:
        from boto3.dynamodb.conditions import Attr

        params: dict = {"Limit": limit}
        if term:
            params["FilterExpression"] = Attr("prompt").contains(term)
        if start_key:
            params["ExclusiveStartKey"] = start_key

        try:
            result = self._table.scan(**params)
        except Exception as e:
            logger.exception("scan failed on table '%s'.", self.table_name)
            raise StorageError(f"Scan of table '{self.table_name}' failed: {e}") from e

        records = []
        for item in result.get("Items", []):
            try:
                records.append(ImageRecord.from_dict(item))
            except (TypeError, ValueError):
                logger.warning("Skipping malformed item in table '%s': %r", self.table_name, item)

        return records, result.get("LastEvaluatedKey") or None


class LocalRecordTable(RecordTable):
    """File-backed record table stored as a JSON list, newest first.

    The file is read on every call so that several processes (or a user
    editing the file) see the same data.  Writes within one process are
    serialised by a lock.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _load(self) -> list[dict]:
        """Load raw entries, returning an empty list on any read failure."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as handle:
                entries = json.load(handle)
        except (OSError, ValueError):
            logger.warning("Could not read %s, treating it as empty.", self.path)
            return []
        if not isinstance(entries, list):
            return []

        cleaned = []
        for entry in entries:
            try:
                ImageRecord.from_dict(entry)
            except (TypeError, ValueError):
                continue
            cleaned.append(entry)
        return cleaned

    def _save(self, entries: list[dict]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(entries, handle, indent=2)
        tmp_path.replace(self.path)

    def put(self, record: ImageRecord) -> None:
        with self._lock:
            entries = self._load()
            entries.insert(0, record.to_dict())
            try:
                self._save(entries)
            except OSError as e:
                raise StorageError(f"Could not write {self.path}: {e}") from e

    def scan(
        self,
        term: str = "",
        *,
        start_key: dict | None = None,
        limit: int = 10,
    ) -> tuple[list[ImageRecord], dict | None]:
        entries = self._load()

        start = 0
        if start_key:
            last_id = start_key.get("id") if isinstance(start_key, dict) else None
            if not isinstance(last_id, str):
                raise InvalidCursorError("Cursor does not reference an image id")
            position = next((i for i, e in enumerate(entries) if e["id"] == last_id), None)
            if position is None:
                # The anchor record is gone; there is nothing left to page through.
                return [], None
            start = position + 1

        if term:
            matches = [e for e in entries[start:] if term in str(e.get("prompt", ""))]
        else:
            matches = entries[start:]

        page = matches[:limit]
        records = [ImageRecord.from_dict(entry) for entry in page]
        last_key = {"id": page[-1]["id"]} if page and len(matches) > limit else None
        return records, last_key


def build_record_table(cfg: GalleryConfig) -> RecordTable:
    """Instantiate the table selected by ``cfg.record_table``."""
    if cfg.record_table == "local":
        return LocalRecordTable(cfg.gallery_db)
    return DynamoRecordTable(cfg.table_name, region=cfg.aws_region)
