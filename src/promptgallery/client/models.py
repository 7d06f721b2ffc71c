"""State objects for the gallery client."""

from dataclasses import dataclass, field

from promptgallery.core.records import ImageRecord, Page

# Operation keys for the in-flight guard
GENERATE_OP = "generate"
GALLERY_FETCH_OP = "gallery-fetch"
SEARCH_FETCH_OP = "search-fetch"

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"


@dataclass
class Notification:
    """A transient, dismissible message for the user.

    ``status`` is one of ``"success"``, ``"error"`` or ``"info"``.
    """

    id: int
    title: str
    description: str = ""
    status: str = "info"
    dismissible: bool = True


@dataclass
class GenerateState:
    """State of the generate panel.

    Only the most recent image is kept; each success overwrites it.
    """

    generating: bool = False
    last_image_url: str | None = None
    error: str | None = None


@dataclass
class ListState:
    """State of one paginated list (the gallery or the search results).

    Attributes:
        operation: In-flight guard key for fetches into this list.
        term: Term the current items and cursor belong to.
        items: Visible records, in display order.
        cursor: Cursor for the next page, or ``None``.
        has_more: Whether a further page exists.
        loading: Whether a fetch is in flight.
        error: Text of the last failure, cleared by the next success.
    """

    operation: str
    term: str = ""
    items: list[ImageRecord] = field(default_factory=list)
    cursor: str | None = None
    has_more: bool = False
    loading: bool = False
    error: str | None = None

    def apply_page(self, term: str, page: Page, reset: bool) -> None:
        """Merge *page* into the list: replace on reset, append otherwise."""
        if reset:
            self.items = list(page.items)
        else:
            self.items.extend(page.items)
        self.term = term
        self.cursor = page.next_cursor
        self.has_more = page.has_more
        self.error = None
