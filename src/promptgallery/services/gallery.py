"""Generation and query service.

:class:`GalleryService` is the whole server-side behaviour with HTTP left
out: it composes an image provider, an object store and a record table.

Generation::

    prompt -> provider.generate() -> store.put(id) -> table.put(record)

Listing::

    (term, cursor, limit) -> table.scan() -> records with imageUrl + next cursor

Cursors are the table's last evaluated key serialised as compact JSON.
Clients must treat them as opaque strings and send them back unchanged.
"""

from __future__ import annotations

import json
import logging

from promptgallery.core.config import GalleryConfig
from promptgallery.core.records import ImageRecord, Page, new_image_id, now_ms
from promptgallery.services.errors import InvalidCursorError
from promptgallery.services.providers import ImageProvider, build_image_provider
from promptgallery.services.storage import ObjectStore, build_object_store
from promptgallery.services.table import RecordTable, build_record_table

logger = logging.getLogger(__name__)


def encode_cursor(last_key: dict | None) -> str | None:
    """Serialise a table start key into an opaque cursor string."""
    if not last_key:
        return None
    return json.dumps(last_key, separators=(",", ":"), sort_keys=True, default=str)


def decode_cursor(cursor: str | None) -> dict | None:
    """Parse a cursor produced by :func:`encode_cursor`.

    Raises:
        InvalidCursorError: If *cursor* is not a JSON object.
    """
    if not cursor:
        return None
    try:
        key = json.loads(cursor)
    except ValueError as e:
        raise InvalidCursorError("Cursor is not valid") from e
    if not isinstance(key, dict) or not key:
        raise InvalidCursorError("Cursor is not valid")
    return key


class GalleryService:
    """Stateless generate/list operations over pluggable backends."""

    def __init__(self, provider: ImageProvider, store: ObjectStore, table: RecordTable) -> None:
        self.provider = provider
        self.store = store
        self.table = table

    def generate(self, prompt: str) -> ImageRecord:
        """Generate, upload and record one image.

        Args:
            prompt: Non-blank prompt text.

        Returns:
            The new record, with ``image_url`` set.

        Raises:
            ValueError: If *prompt* is blank.
            ServiceError: If any backend step fails.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required")

        logger.info("Generating image for prompt: %r", prompt)
        image = self.provider.generate(prompt)

        created_at = now_ms()
        record = ImageRecord(id=new_image_id(created_at), prompt=prompt, created_at=created_at)
        self.store.put(record.id, image, "image/png")
        self.table.put(record)

        logger.info("Image '%s' generated and saved.", record.id)
        return record.with_url(self.store.base_url)

    def list_images(self, term: str = "", cursor: str | None = None, limit: int = 10) -> Page:
        """Return one page of records, newest first where the table allows.

        Args:
            term: Prompt substring filter; empty lists everything.
            cursor: Opaque cursor from a previous page, or ``None``.
            limit: Page size.

        Raises:
            InvalidCursorError: If *cursor* cannot be decoded.
            ServiceError: If the table scan fails.
        """
        start_key = decode_cursor(cursor)
        records, last_key = self.table.scan(term, start_key=start_key, limit=limit)
        next_cursor = encode_cursor(last_key)
        return Page(
            items=tuple(record.with_url(self.store.base_url) for record in records),
            next_cursor=next_cursor,
            has_more=next_cursor is not None,
        )

    def close(self) -> None:
        self.provider.close()


def build_gallery_service(cfg: GalleryConfig) -> GalleryService:
    """Compose a service from the backends selected in *cfg*."""
    logger.info(
        "Building gallery service (provider=%s, store=%s, table=%s).",
        cfg.image_provider,
        cfg.object_store,
        cfg.record_table,
    )
    return GalleryService(
        provider=build_image_provider(cfg),
        store=build_object_store(cfg),
        table=build_record_table(cfg),
    )
