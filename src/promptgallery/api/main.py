"""Prompt Gallery — FastAPI application.

This module defines the generation and query service: the FastAPI ``app``
instance, its routes, and the ``main()`` CLI function that launches uvicorn.

Architecture
------------
- **Backends** are composed by :func:`~promptgallery.services.gallery.build_gallery_service`
  from configuration on startup and stored on ``app.state``.  Tests inject
  their own service through :func:`create_app`.
- **CORS** headers are attached to every response, errors included, and
  every ``OPTIONS`` request is answered with an empty 200.
- **Errors** always render as ``{"message": ...}``.
- **Local images** are served from ``/static/gallery`` when the local object
  store is configured.

Endpoints
---------
========  ============  ==========================================
Method    Path          Purpose
========  ============  ==========================================
POST      ``/generate``  Generate, upload and record one image
GET       ``/gallery``   Latest images, one page at a time
GET       ``/search``    Images whose prompt contains ``term``
OPTIONS   any           CORS pre-flight
========  ============  ==========================================

Usage
-----
CLI (installed entry point)::

    promptgallery-api

Direct invocation::

    python -m promptgallery.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from promptgallery import __version__
from promptgallery.api.models import GenerateRequest, GenerateResponse, ListResponse
from promptgallery.core.config import GalleryConfig, config
from promptgallery.services.errors import InvalidCursorError, ServiceError
from promptgallery.services.gallery import GalleryService, build_gallery_service

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 100

CORS_ALLOW_METHODS = "OPTIONS,POST,GET"
CORS_ALLOW_HEADERS = "Content-Type,X-Amz-Date,Authorization,X-Api-Key,X-Amz-Security-Token"


def cors_headers(origin: str | None, allowed_origins: list[str]) -> dict[str, str]:
    """Build the CORS headers attached to every response.

    Args:
        origin: ``Origin`` header of the request, if any.
        allowed_origins: Configured origins; ``"*"`` allows any origin.

    Returns:
        Header dictionary.  Credentials are only allowed for an explicit
        origin, since browsers reject them alongside a wildcard.
    """
    headers = {
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
    }
    if "*" in allowed_origins:
        headers["Access-Control-Allow-Origin"] = "*"
        return headers

    if origin and origin in allowed_origins:
        headers["Access-Control-Allow-Origin"] = origin
    elif allowed_origins:
        headers["Access-Control-Allow-Origin"] = allowed_origins[0]
    headers["Access-Control-Allow-Credentials"] = "true"
    headers["Vary"] = "Origin"
    return headers


def get_service(request: Request) -> GalleryService:
    """Dependency returning the service stored on ``app.state``."""
    service = getattr(request.app.state, "gallery_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service is not ready")
    return service


def create_app(cfg: GalleryConfig | None = None, service: GalleryService | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cfg: Configuration; defaults to the global ``config``.
        service: Pre-built service.  When omitted, one is built from *cfg*
            on startup and closed on shutdown.

    Returns:
        The configured application.
    """
    cfg = cfg or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = app.state.gallery_service is None
        if owned:
            app.state.gallery_service = build_gallery_service(cfg)
            logger.info("Gallery service initialised.")

        yield

        if owned:
            app.state.gallery_service.close()
            app.state.gallery_service = None
            logger.info("Gallery service closed on shutdown.")

    app = FastAPI(
        title="Prompt Gallery",
        description="Generate images from prompts and browse them page by page.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gallery_service = service
    app.state.config = cfg

    # -----------------------------------------------------------------------
    # CORS: headers on every response, empty 200 for every pre-flight.
    # -----------------------------------------------------------------------

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        headers = cors_headers(request.headers.get("origin"), cfg.cors_origins)
        if request.method == "OPTIONS":
            return Response(content=b"", status_code=200, headers=headers)
        response = await call_next(request)
        response.headers.update(headers)
        return response

    # -----------------------------------------------------------------------
    # Error rendering: every failure body is {"message": ...}.
    # -----------------------------------------------------------------------

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            message = f"{location}: {errors[0].get('msg', 'invalid value')}".lstrip(": ")
        else:
            message = "Invalid request"
        return JSONResponse(status_code=400, content={"message": message})

    if cfg.object_store == "local":
        cfg.gallery_dir.mkdir(parents=True, exist_ok=True)
        app.mount(
            "/static/gallery",
            StaticFiles(directory=str(cfg.gallery_dir)),
            name="gallery",
        )

    # -----------------------------------------------------------------------
    # Routes.  Backends are blocking SDK calls, so handlers are plain
    # functions and run in the thread pool.
    # -----------------------------------------------------------------------

    @app.post("/generate", response_model=GenerateResponse)
    def generate_image(
        req: GenerateRequest,
        svc: GalleryService = Depends(get_service),
    ) -> dict:
        """Generate an image from ``prompt``, upload it and record it.

        Returns:
            ``{"message", "imageUrl"}``.

        Raises:
            HTTPException: 400 for a blank prompt, 500 for backend failures.
        """
        if not req.prompt.strip():
            raise HTTPException(status_code=400, detail="prompt is required")

        try:
            record = svc.generate(req.prompt)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except ServiceError as e:
            logger.error("Error generating image: %s", e)
            raise HTTPException(status_code=500, detail="Error generating image") from e

        return {"message": "Image generated and saved", "imageUrl": record.image_url}

    @app.get("/gallery", response_model=ListResponse)
    def get_gallery_images(
        cursor: str | None = None,
        limit: int = Query(default=cfg.page_limit, ge=1, le=MAX_PAGE_LIMIT),
        svc: GalleryService = Depends(get_service),
    ) -> dict:
        """Return the latest images, one page at a time."""
        return _list_page(svc, "", cursor, limit, "Error fetching gallery images")

    @app.get("/search", response_model=ListResponse)
    def search_images(
        term: str = "",
        cursor: str | None = None,
        limit: int = Query(default=cfg.page_limit, ge=1, le=MAX_PAGE_LIMIT),
        svc: GalleryService = Depends(get_service),
    ) -> dict:
        """Return images whose prompt contains ``term``."""
        return _list_page(svc, term, cursor, limit, "Error searching images")

    return app


def _list_page(
    svc: GalleryService,
    term: str,
    cursor: str | None,
    limit: int,
    failure_message: str,
) -> dict:
    """Run a listing and translate service errors into HTTP errors."""
    try:
        page = svc.list_images(term, cursor=cursor, limit=limit)
    except InvalidCursorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ServiceError as e:
        logger.error("%s: %s", failure_message, e)
        raise HTTPException(status_code=500, detail=failure_message) from e
    return page.to_dict()


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server on ``config.server_host:config.server_port``.

    Registered as the ``promptgallery-api`` console script.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "promptgallery.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
