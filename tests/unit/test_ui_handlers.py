"""Unit tests for the Gradio event handlers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from promptgallery.client.api import ServiceRequestError
from promptgallery.client.orchestrator import GalleryOrchestrator
from promptgallery.core.records import ImageRecord, Page
from promptgallery.ui import handlers
from promptgallery.ui.handlers import (
    generate_image,
    load_gallery,
    load_more,
    refresh_gallery,
    render_items,
    search_images,
    select_image,
)
from promptgallery.ui.models import GALLERY_LIST, NO_SELECTION_TEXT, SEARCH_LIST, UIState


class StubApi:
    """Minimal service client returning queued pages and image URLs."""

    def __init__(self):
        self.pages: list = []
        self.images: list = []
        self.list_calls: list = []

    async def list_images(self, term="", cursor=None, limit=10):
        self.list_calls.append((term, cursor))
        result = self.pages.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def generate(self, prompt):
        result = self.images.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self):
        pass


def _page(*ids: str, cursor: str | None = None) -> Page:
    return Page(
        items=tuple(
            ImageRecord(id=i, prompt=f"prompt {i}", created_at=1, image_url=f"http://i/{i}")
            for i in ids
        ),
        next_cursor=cursor,
        has_more=cursor is not None,
    )


@pytest.fixture
def api() -> StubApi:
    return StubApi()


@pytest.fixture
def state(api, page_cache) -> UIState:
    return UIState(orchestrator=GalleryOrchestrator(api, page_cache))


@pytest.fixture
def toasts(monkeypatch):
    """Capture gr.Info / gr.Warning calls made by the handlers."""
    info = MagicMock()
    warning = MagicMock()
    monkeypatch.setattr(handlers.gr, "Info", info)
    monkeypatch.setattr(handlers.gr, "Warning", warning)
    return {"info": info, "warning": warning}


class TestGenerateImage:
    async def test_success_returns_image_and_toast(self, state, api, toasts):
        api.images = ["http://i/new.png"]

        image, new_state = await generate_image("a cat", state)

        assert image == "http://i/new.png"
        assert new_state is state
        toasts["info"].assert_called_once_with("Image generated successfully")

    async def test_failure_shows_server_message(self, state, api, toasts):
        api.images = [ServiceRequestError("boom", 500)]

        image, _ = await generate_image("a cat", state)

        assert image is None
        toasts["warning"].assert_called_once_with("Error generating image: boom")

    async def test_blank_prompt_shows_nothing(self, state, toasts):
        image, _ = await generate_image("  ", state)

        assert image is None
        toasts["info"].assert_not_called()
        toasts["warning"].assert_not_called()


class TestGalleryHandlers:
    async def test_initial_load_runs_once(self, state, api, toasts):
        api.pages = [_page("a", "b", cursor="k1")]

        items, more, state = await load_gallery(state)
        items_again, _, state = await load_gallery(state)

        assert items == [("http://i/a", "prompt a"), ("http://i/b", "prompt b")]
        assert items_again == items
        assert more["visible"] is True
        assert state.initial_load_done is True
        assert len(api.list_calls) == 1

    async def test_refresh_uses_cached_first_page(self, state, api, toasts):
        api.pages = [_page("a")]

        await refresh_gallery(state)
        items, more, _ = await refresh_gallery(state)

        assert items == [("http://i/a", "prompt a")]
        assert more["visible"] is False
        assert len(api.list_calls) == 1

    async def test_load_more_appends(self, state, api, toasts):
        api.pages = [_page("a", cursor="k1"), _page("b")]
        await load_gallery(state)

        items, more, _ = await load_more(GALLERY_LIST, state)

        assert [url for url, _ in items] == ["http://i/a", "http://i/b"]
        assert more["visible"] is False
        assert api.list_calls == [("", None), ("", "k1")]

    async def test_fetch_error_toast(self, state, api, toasts):
        api.pages = [ServiceRequestError(None, 500)]

        items, _, _ = await refresh_gallery(state)

        assert items == []
        toasts["warning"].assert_called_once_with(
            "Error fetching gallery images: An unexpected error occurred"
        )


class TestSearchHandlers:
    async def test_search_then_load_more_keeps_term(self, state, api, toasts):
        api.pages = [_page("a", cursor="k1"), _page("b")]

        await search_images("cats", state)
        items, _, _ = await load_more(SEARCH_LIST, state)

        assert len(items) == 2
        assert api.list_calls == [("cats", None), ("cats", "k1")]

    async def test_no_results_toast(self, state, api, toasts):
        api.pages = [_page()]

        items, more, _ = await search_images("unicorn", state)

        assert items == []
        assert more["visible"] is False
        toasts["info"].assert_called_once_with("No results found: Try a different search term")


class TestSelectImage:
    async def test_shows_prompt_of_selected_item(self, state, api, toasts):
        api.pages = [_page("a", "b")]
        await load_gallery(state)

        text, _ = select_image(MagicMock(index=1), GALLERY_LIST, state)

        assert text == "**Prompt:** prompt b"

    def test_out_of_range_index(self, state):
        text, _ = select_image(MagicMock(index=4), SEARCH_LIST, state)
        assert text == NO_SELECTION_TEXT

    def test_uninitialized_state(self):
        text, _ = select_image(MagicMock(index=0), GALLERY_LIST, UIState())
        assert text == NO_SELECTION_TEXT


def test_render_items_handles_missing_url():
    list_state = MagicMock(items=[ImageRecord(id="x", prompt="p", created_at=1)])
    assert render_items(list_state) == [("", "p")]
