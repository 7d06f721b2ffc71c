"""Gallery client orchestrator.

:class:`GalleryOrchestrator` drives the three user-facing operations of the
gallery client and keeps their state consistent:

- :meth:`~GalleryOrchestrator.submit_prompt` — generate one image.
- :meth:`~GalleryOrchestrator.load_page` — first page (``reset=True``) or
  next page (``reset=False``) of the gallery or of a search.
- :meth:`~GalleryOrchestrator.load_more` — next page, if there is one.

Lists
-----
An empty term addresses the gallery list (latest images, no filter); any
other term addresses the search list.  The two lists and the generate
panel keep independent state.

Memo
----
Pages are looked up in a :class:`~promptgallery.client.cache.PageCache`
before the network.  The key is ``term + ":" + ("first" | cursor)`` so a
fresh query never picks up a page keyed off a stale cursor.

In-flight guard
---------------
Each operation key (``generate``, ``gallery-fetch``, ``search-fetch``)
admits one call at a time.  A call arriving while its key is busy is
rejected and returns ``False``; nothing is queued or cancelled.  Two
overlapping fetches into the same list could otherwise apply their
cursors out of order.

Errors
------
Service failures never escape: they become an error notification with the
server's message (or a generic fallback) and leave the visible state as it
was before the call.  Blank input is rejected silently.
"""

from __future__ import annotations

import itertools
import logging
import threading

from promptgallery.client.api import GalleryApiClient, ServiceRequestError
from promptgallery.client.cache import PageCache, make_cache_key
from promptgallery.client.models import (
    DEFAULT_ERROR_MESSAGE,
    GALLERY_FETCH_OP,
    GENERATE_OP,
    SEARCH_FETCH_OP,
    GenerateState,
    ListState,
    Notification,
)
from promptgallery.core.records import Page

logger = logging.getLogger(__name__)


class GalleryOrchestrator:
    """Client-side coordinator for generation, paging, memo and UI state.

    Attributes:
        generate_state: State of the generate panel.
        gallery: State of the unfiltered gallery list.
        search_results: State of the search list.
        notifications: Pending notifications, oldest first.
        page_limit: Page size requested from the service.
    """

    def __init__(self, api: GalleryApiClient, cache: PageCache, *, page_limit: int = 10) -> None:
        self._api = api
        self._cache = cache
        self._in_flight: set[str] = set()
        self._guard = threading.Lock()
        self._notification_ids = itertools.count(1)

        self.page_limit = page_limit
        self.generate_state = GenerateState()
        self.gallery = ListState(operation=GALLERY_FETCH_OP)
        self.search_results = ListState(operation=SEARCH_FETCH_OP)
        self.notifications: list[Notification] = []

    # -- In-flight guard -----------------------------------------------------

    def _begin(self, operation: str) -> bool:
        with self._guard:
            if operation in self._in_flight:
                return False
            self._in_flight.add(operation)
            return True

    def _end(self, operation: str) -> None:
        with self._guard:
            self._in_flight.discard(operation)

    def is_busy(self, operation: str) -> bool:
        """Whether *operation* currently has a call in flight."""
        with self._guard:
            return operation in self._in_flight

    # -- Notifications -------------------------------------------------------

    def _notify(self, title: str, description: str = "", status: str = "info") -> Notification:
        notification = Notification(
            id=next(self._notification_ids),
            title=title,
            description=description,
            status=status,
        )
        self.notifications.append(notification)
        return notification

    def dismiss(self, notification_id: int) -> None:
        """Remove a notification by id; unknown ids are ignored."""
        self.notifications = [n for n in self.notifications if n.id != notification_id]

    def drain_notifications(self) -> list[Notification]:
        """Return and clear all pending notifications."""
        pending, self.notifications = self.notifications, []
        return pending

    # -- Operations ----------------------------------------------------------

    def list_for(self, term: str) -> ListState:
        """Return the list a term addresses: gallery when empty, else search."""
        return self.search_results if term else self.gallery

    async def submit_prompt(self, prompt: str) -> bool:
        """Generate an image for *prompt*.

        Returns:
            True when a new image URL was stored, False when the prompt was
            blank, a generation was already running, or the request failed.
        """
        if not prompt or not prompt.strip():
            return False
        if not self._begin(GENERATE_OP):
            logger.info("Generate already in flight, ignoring duplicate submission.")
            return False

        state = self.generate_state
        state.generating = True
        try:
            image_url = await self._api.generate(prompt)
        except ServiceRequestError as e:
            state.error = e.message or DEFAULT_ERROR_MESSAGE
            self._notify("Error generating image", state.error, "error")
            return False
        else:
            state.last_image_url = image_url
            state.error = None
            self._notify("Image generated successfully", status="success")
            return True
        finally:
            state.generating = False
            self._end(GENERATE_OP)

    async def load_page(self, term: str, reset: bool) -> bool:
        """Load the first or next page of the list *term* addresses.

        Args:
            term: Search term; empty for the gallery.
            reset: True for a fresh query, False to continue from the
                list's cursor.

        Returns:
            True when a page (cached or fetched) was applied.
        """
        state = self.list_for(term)
        if not reset and (state.cursor is None or state.term != term):
            # Nothing to continue from for this term.
            return False
        if not self._begin(state.operation):
            logger.info("%s already in flight, ignoring request for %r.", state.operation, term)
            return False

        cursor = None if reset else state.cursor
        key = make_cache_key(term, reset, cursor)
        state.loading = True
        try:
            page = self._cached_page(key)
            if page is None:
                try:
                    page = await self._api.list_images(term, cursor=cursor, limit=self.page_limit)
                except ServiceRequestError as e:
                    state.error = e.message or DEFAULT_ERROR_MESSAGE
                    title = "Error searching images" if term else "Error fetching gallery images"
                    self._notify(title, state.error, "error")
                    return False
                self._cache.set(key, page.to_dict())
            else:
                logger.debug("Cache hit for %r.", key)

            state.apply_page(term, page, reset)
            if reset and term and not page.items:
                self._notify("No results found", "Try a different search term", "info")
            return True
        finally:
            state.loading = False
            self._end(state.operation)

    async def load_more(self, term: str) -> bool:
        """Load the next page for *term*; a no-op when there is none."""
        if not self.list_for(term).has_more:
            return False
        return await self.load_page(term, reset=False)

    async def load_initial(self) -> bool:
        """Load the first gallery page, as done once when the UI opens."""
        return await self.load_page("", reset=True)

    async def search(self, term: str) -> bool:
        """Start a fresh search; blank terms are rejected without a request."""
        term = (term or "").strip()
        if not term:
            return False
        return await self.load_page(term, reset=True)

    def _cached_page(self, key: str) -> Page | None:
        value = self._cache.get(key)
        if value is None:
            return None
        try:
            return Page.from_dict(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed cache entry %r.", key)
            return None

    async def aclose(self) -> None:
        await self._api.aclose()
