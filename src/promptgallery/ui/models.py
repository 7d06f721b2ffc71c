"""Data models for the Prompt Gallery UI."""

from dataclasses import dataclass
from typing import Any

# Named lists shown by the UI
GALLERY_LIST = "gallery"
SEARCH_LIST = "search"

NO_SELECTION_TEXT = "*Select an image to see its prompt*"


@dataclass
class UIState:
    """Per-session state for the Gradio UI.

    Each browser session gets its own copy, and with it its own
    orchestrator, so list positions and notifications never leak between
    users.  The page memo behind the orchestrator is shared process-wide.

    Attributes
    ----------
    orchestrator : Any | None
        GalleryOrchestrator instance, created lazily
    initial_load_done : bool
        Whether the one-time first gallery page has been requested
    """

    orchestrator: Any | None = None  # GalleryOrchestrator instance
    initial_load_done: bool = False

    def is_initialized(self) -> bool:
        """Check whether the orchestrator has been created."""
        return self.orchestrator is not None

    def __repr__(self) -> str:
        return (
            f"UIState(initialized={self.is_initialized()}, "
            f"initial_load_done={self.initial_load_done})"
        )
