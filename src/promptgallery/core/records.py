"""Image records and result pages.

Both sides of the application exchange the same two shapes:

- :class:`ImageRecord` — one generated image.  The ``imageUrl`` is never
  persisted; the service derives it from the identifier and the object
  store's base location every time a record is read.
- :class:`Page` — one page of a listing plus the opaque cursor for the
  next page.

The wire format is camelCase JSON (``createdAt``, ``imageUrl``,
``nextCursor``, ``hasMore``).  ``to_dict`` / ``from_dict`` convert between
the dataclasses and that format and are the only place the key names are
spelled out.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field


def now_ms() -> int:
    """Return the current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def new_image_id(timestamp_ms: int | None = None) -> str:
    """Generate a time-based image identifier.

    The identifier doubles as the object store key.  A short random suffix
    keeps two images generated in the same millisecond from overwriting
    each other.

    Args:
        timestamp_ms: Epoch milliseconds to embed.  Defaults to now.

    Returns:
        Identifier of the form ``"<millis>-<hex>.png"``.
    """
    stamp = now_ms() if timestamp_ms is None else timestamp_ms
    return f"{stamp}-{secrets.token_hex(4)}.png"


@dataclass(frozen=True)
class ImageRecord:
    """A generated image.

    Attributes:
        id: Time-based identifier, also the object store key.
        prompt: Prompt the image was generated from.
        created_at: Creation time in epoch milliseconds.
        image_url: Public URL, present only on records read back from the
            service.
    """

    id: str
    prompt: str
    created_at: int
    image_url: str | None = None

    def with_url(self, base_url: str) -> ImageRecord:
        """Return a copy with ``image_url`` derived from *base_url* and ``id``."""
        return ImageRecord(
            id=self.id,
            prompt=self.prompt,
            created_at=self.created_at,
            image_url=f"{base_url.rstrip('/')}/{self.id}",
        )

    def to_dict(self) -> dict:
        """Serialise to the camelCase wire format."""
        data = {"id": self.id, "prompt": self.prompt, "createdAt": self.created_at}
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ImageRecord:
        """Build a record from the wire format.

        Raises:
            ValueError: If ``data`` is not a mapping, lacks an ``id`` or has a
                ``createdAt`` that is not a finite number.
        """
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError(f"Invalid image record: {data!r}")
        try:
            created_at = int(data.get("createdAt", 0))
        except (OverflowError, TypeError, ValueError) as e:
            # JSON allows Infinity and NaN, neither of which is a timestamp.
            raise ValueError(f"Invalid createdAt: {data.get('createdAt')!r}") from e
        return cls(
            id=str(data["id"]),
            prompt=str(data.get("prompt", "")),
            created_at=created_at,
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class Page:
    """One page of a gallery or search listing.

    Attributes:
        items: Records on this page, in backend order.
        next_cursor: Opaque token for the following page, or ``None``.
        has_more: Whether the backend reported further pages.
    """

    items: tuple[ImageRecord, ...] = field(default_factory=tuple)
    next_cursor: str | None = None
    has_more: bool = False

    def to_dict(self) -> dict:
        """Serialise to the camelCase wire format."""
        return {
            "items": [item.to_dict() for item in self.items],
            "nextCursor": self.next_cursor,
            "hasMore": self.has_more,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Page:
        """Build a page from the wire format.

        Raises:
            ValueError: If the payload does not have the page shape.
        """
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise ValueError("Invalid page payload")
        next_cursor = data.get("nextCursor")
        if next_cursor is not None and not isinstance(next_cursor, str):
            raise ValueError("Page cursor must be a string")
        has_more = data.get("hasMore", False)
        if not isinstance(has_more, bool):
            raise ValueError("Page hasMore must be a boolean")
        return cls(
            items=tuple(ImageRecord.from_dict(item) for item in data["items"]),
            next_cursor=next_cursor,
            has_more=has_more,
        )
