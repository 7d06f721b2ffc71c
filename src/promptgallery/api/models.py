"""Pydantic request and response models for the Prompt Gallery API.

These models define the JSON schema for every endpoint.  Field names are
snake_case in Python and camelCase on the wire (``imageUrl``,
``createdAt``, ``nextCursor``, ``hasMore``), which is what browser clients
of the service already expect.

Models
------
GenerateRequest
    Payload for ``POST /generate``.
GenerateResponse
    Result of a successful generation.
ImageItem
    One record in a listing.
ListResponse
    Result of ``GET /gallery`` and ``GET /search``.
ErrorResponse
    Body of every response with status >= 400.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerateRequest(_WireModel):
    """Request body for the ``POST /generate`` endpoint.

    Attributes:
        prompt: Text describing the image.  Blank prompts are rejected with
            a 400 by the route handler.
    """

    prompt: str = Field(..., description="Text prompt to render.")


class GenerateResponse(_WireModel):
    """Response body for a successful ``POST /generate``."""

    message: str = Field(default="Image generated and saved")
    image_url: str = Field(..., alias="imageUrl", description="Public URL of the new image.")


class ImageItem(_WireModel):
    """One image record as returned by the listing endpoints."""

    id: str
    prompt: str
    created_at: int = Field(..., alias="createdAt", description="Epoch milliseconds.")
    image_url: str = Field(..., alias="imageUrl")


class ListResponse(_WireModel):
    """Response body for ``GET /gallery`` and ``GET /search``.

    Attributes:
        items: Records on this page.
        next_cursor: Opaque token to pass back as ``cursor``, or ``None``.
        has_more: Whether another page exists.
    """

    items: list[ImageItem] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, alias="nextCursor")
    has_more: bool = Field(default=False, alias="hasMore")


class ErrorResponse(_WireModel):
    """Body of every error response."""

    message: str
