"""Gallery client: orchestrator, service HTTP client and page memo.

Modules
-------
orchestrator
    ``GalleryOrchestrator`` — generate, paginated gallery/search fetches,
    in-flight guard and notifications.
api
    ``GalleryApiClient`` — httpx client for the generation and query service.
cache
    ``PageCache`` — expiring memo with pluggable storage and clock.
models
    Dataclasses for list, generate and notification state.
"""

from promptgallery.client.api import GalleryApiClient, ServiceRequestError
from promptgallery.client.cache import PageCache, build_page_cache, make_cache_key
from promptgallery.client.orchestrator import GalleryOrchestrator
from promptgallery.core.config import GalleryConfig


def build_orchestrator(
    cfg: GalleryConfig,
    cache: PageCache | None = None,
    api: GalleryApiClient | None = None,
) -> GalleryOrchestrator:
    """Create an orchestrator talking to ``cfg.api_url``.

    Args:
        cfg: Client configuration.
        cache: Memo to use; a new one is built from *cfg* when omitted.
        api: Service client to use; a new one is built from *cfg* when omitted.
    """
    if api is None:
        api = GalleryApiClient(cfg.api_url, timeout=cfg.request_timeout)
    return GalleryOrchestrator(api, cache or build_page_cache(cfg), page_limit=cfg.page_limit)


__all__ = [
    "GalleryApiClient",
    "GalleryOrchestrator",
    "PageCache",
    "ServiceRequestError",
    "build_orchestrator",
    "build_page_cache",
    "make_cache_key",
]
