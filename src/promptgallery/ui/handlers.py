"""Event handlers for the Prompt Gallery UI.

Handlers are thin: they make sure the session has an orchestrator, call
one orchestrator operation, surface its notifications as Gradio toasts,
and render the resulting state.  They never raise; the orchestrator has
already turned failures into notifications.
"""

import logging

import gradio as gr

from promptgallery.client.models import ListState

from .models import GALLERY_LIST, NO_SELECTION_TEXT, UIState
from .state import initialize_ui_state

logger = logging.getLogger(__name__)


def _show_notifications(orchestrator) -> None:
    """Emit pending orchestrator notifications as Gradio toasts."""
    for notification in orchestrator.drain_notifications():
        text = notification.title
        if notification.description:
            text = f"{text}: {notification.description}"
        if notification.status == "error":
            gr.Warning(text)
        else:
            gr.Info(text)


def render_items(list_state: ListState) -> list[tuple[str, str]]:
    """Convert list items into ``(image_url, caption)`` pairs for ``gr.Gallery``."""
    return [(item.image_url or "", item.prompt) for item in list_state.items]


def _render_list(list_state: ListState):
    return render_items(list_state), gr.update(visible=list_state.has_more)


def _list_state(state: UIState, list_name: str) -> ListState:
    orchestrator = state.orchestrator
    return orchestrator.gallery if list_name == GALLERY_LIST else orchestrator.search_results


def disable_button():
    """Disable the triggering control while its operation runs."""
    return gr.update(interactive=False)


def enable_button():
    """Re-enable the triggering control."""
    return gr.update(interactive=True)


async def generate_image(prompt: str, state: UIState) -> tuple[str | None, UIState]:
    """Generate an image from the prompt box.

    Args:
        prompt: Prompt text
        state: UI state

    Returns:
        Tuple of (last generated image URL, updated_state)
    """
    state = initialize_ui_state(state)
    orchestrator = state.orchestrator

    await orchestrator.submit_prompt(prompt)
    _show_notifications(orchestrator)
    return orchestrator.generate_state.last_image_url, state


async def load_gallery(state: UIState):
    """Load the first gallery page once per session.

    Returns:
        Tuple of (gallery_items, load_more_button_update, updated_state)
    """
    state = initialize_ui_state(state)
    orchestrator = state.orchestrator

    if not state.initial_load_done:
        state.initial_load_done = True
        await orchestrator.load_initial()
        _show_notifications(orchestrator)

    items, load_more = _render_list(orchestrator.gallery)
    return items, load_more, state


async def refresh_gallery(state: UIState):
    """Reload the first gallery page (served from the memo when fresh).

    Returns:
        Tuple of (gallery_items, load_more_button_update, updated_state)
    """
    state = initialize_ui_state(state)
    orchestrator = state.orchestrator

    await orchestrator.load_page("", reset=True)
    _show_notifications(orchestrator)

    items, load_more = _render_list(orchestrator.gallery)
    return items, load_more, state


async def search_images(term: str, state: UIState):
    """Run a fresh search for the term in the search box.

    Returns:
        Tuple of (gallery_items, load_more_button_update, updated_state)
    """
    state = initialize_ui_state(state)
    orchestrator = state.orchestrator

    await orchestrator.search(term)
    _show_notifications(orchestrator)

    items, load_more = _render_list(orchestrator.search_results)
    return items, load_more, state


async def load_more(list_name: str, state: UIState):
    """Append the next page to the gallery or search list.

    The search list continues with the term its results belong to, not
    whatever is currently typed in the search box.

    Returns:
        Tuple of (gallery_items, load_more_button_update, updated_state)
    """
    state = initialize_ui_state(state)
    orchestrator = state.orchestrator
    list_state = _list_state(state, list_name)

    await orchestrator.load_more(list_state.term)
    _show_notifications(orchestrator)

    items, load_more_update = _render_list(list_state)
    return items, load_more_update, state


def select_image(evt: gr.SelectData, list_name: str, state: UIState) -> tuple[str, UIState]:
    """Show the prompt of the clicked image.

    Returns:
        Tuple of (prompt_markdown, updated_state)
    """
    if not state.is_initialized():
        return NO_SELECTION_TEXT, state

    items = _list_state(state, list_name).items
    index = evt.index
    if not isinstance(index, int) or not 0 <= index < len(items):
        return NO_SELECTION_TEXT, state

    return f"**Prompt:** {items[index].prompt}", state
