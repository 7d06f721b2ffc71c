"""HTTP client for the generation and query service."""

from __future__ import annotations

import logging

import httpx

from promptgallery.core.records import Page

logger = logging.getLogger(__name__)


class ServiceRequestError(Exception):
    """A request to the service failed.

    Attributes:
        message: Server-provided ``message``, or ``None`` when the response
            carried none (or there was no response at all).
        status_code: HTTP status, or ``None`` for transport failures.
    """

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message or f"Service request failed (status={status_code})")
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"]:
        return body["message"]
    return None


class GalleryApiClient:
    """Async client for ``/generate``, ``/gallery`` and ``/search``.

    Args:
        base_url: Service root, e.g. ``"http://localhost:7860"``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass a ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("Request %s %s timed out", method, path)
            raise ServiceRequestError(None) from e
        except httpx.RequestError as e:
            logger.error("Request %s %s failed: %s", method, path, e)
            raise ServiceRequestError(None) from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "Request %s %s returned %d: %s", method, path, response.status_code, message
            )
            raise ServiceRequestError(message, response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise ServiceRequestError(None, response.status_code) from e
        if not isinstance(body, dict):
            raise ServiceRequestError(None, response.status_code)
        return body

    async def generate(self, prompt: str) -> str:
        """Request one image for *prompt* and return its URL.

        Raises:
            ServiceRequestError: On any failure.
        """
        body = await self._request("POST", "/generate", json={"prompt": prompt})
        image_url = body.get("imageUrl")
        if not isinstance(image_url, str) or not image_url:
            logger.error("Generate response carried no image URL: %r", body)
            raise ServiceRequestError(None)
        return image_url

    async def list_images(self, term: str = "", cursor: str | None = None, limit: int = 10) -> Page:
        """Fetch one page of the gallery (empty *term*) or of a search.

        Args:
            term: Prompt substring; empty lists the latest images.
            cursor: Opaque cursor from the previous page, forwarded verbatim.
            limit: Page size.

        Raises:
            ServiceRequestError: On any failure, including a malformed page.
        """
        params: dict = {"limit": limit}
        if term:
            params["term"] = term
        if cursor is not None:
            params["cursor"] = cursor

        path = "/search" if term else "/gallery"
        body = await self._request("GET", path, params=params)
        try:
            return Page.from_dict(body)
        except (TypeError, ValueError) as e:
            logger.error("Malformed page from %s: %s", path, e)
            raise ServiceRequestError(None) from e

    async def aclose(self) -> None:
        await self._client.aclose()
