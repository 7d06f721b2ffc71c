"""State management utilities for the Prompt Gallery UI.

Sessions get their own orchestrator, but the page memo and the HTTP client
behind it are process-wide, so opening and closing browser tabs never
leaves connection pools behind.
"""

import logging
import threading

from promptgallery.client import build_orchestrator
from promptgallery.client.api import GalleryApiClient
from promptgallery.client.cache import PageCache, build_page_cache
from promptgallery.core.config import config

from .models import UIState

logger = logging.getLogger(__name__)

_page_cache: PageCache | None = None
_api_client: GalleryApiClient | None = None
_shared_lock = threading.Lock()


def get_page_cache() -> PageCache:
    """Return the process-wide page memo, creating it on first use."""
    global _page_cache
    with _shared_lock:
        if _page_cache is None:
            logger.info(f"Creating page cache (backend={config.cache_backend})")
            _page_cache = build_page_cache(config)
        return _page_cache


def get_api_client() -> GalleryApiClient:
    """Return the process-wide service client, creating it on first use."""
    global _api_client
    with _shared_lock:
        if _api_client is None:
            logger.info(f"Creating service client for {config.api_url}")
            _api_client = GalleryApiClient(config.api_url, timeout=config.request_timeout)
        return _api_client


def initialize_ui_state(state: UIState | None = None) -> UIState:
    """Initialize or ensure UI state is ready.

    Args:
        state: Existing UIState or None

    Returns:
        UIState with an orchestrator attached
    """
    if state is None:
        logger.info("Creating new UIState")
        state = UIState()

    if state.is_initialized():
        return state

    state.orchestrator = build_orchestrator(config, cache=get_page_cache(), api=get_api_client())
    return state
