"""Integration tests for the FastAPI service.

The app is built with :func:`create_app` around a service that uses the
fake provider and the local object store and record table, so requests go
through routing, validation, CORS and error rendering end to end.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from promptgallery.api.main import create_app
from promptgallery.core.records import ImageRecord
from promptgallery.services.errors import ProviderError, StorageError


def _seed(gallery_service, prompts: list[str]) -> None:
    for index, prompt in enumerate(prompts):
        gallery_service.table.put(ImageRecord(id=f"{index}.png", prompt=prompt, created_at=index))


# ============================================================================
# CORS
# ============================================================================


class TestCors:
    """CORS headers and pre-flight handling."""

    @pytest.mark.parametrize("path", ["/generate", "/gallery", "/search", "/anything"])
    def test_preflight_is_empty_200(self, test_client, path):
        response = test_client.options(path)

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "OPTIONS,POST,GET"
        assert "Content-Type" in response.headers["access-control-allow-headers"]

    def test_headers_on_success(self, test_client):
        response = test_client.get("/gallery")
        assert response.headers["access-control-allow-origin"] == "*"

    def test_headers_on_error(self, test_client):
        response = test_client.post("/generate", json={"prompt": ""})

        assert response.status_code == 400
        assert response.headers["access-control-allow-origin"] == "*"

    def test_explicit_origin_allows_credentials(self, test_config, gallery_service):
        cfg = test_config.model_copy(update={"cors_origins": ["http://app.example"]})

        with TestClient(create_app(cfg, service=gallery_service)) as client:
            response = client.get("/gallery", headers={"Origin": "http://app.example"})

        assert response.headers["access-control-allow-origin"] == "http://app.example"
        assert response.headers["access-control-allow-credentials"] == "true"


# ============================================================================
# POST /generate
# ============================================================================


class TestGenerateEndpoint:
    def test_generate_success(self, test_client, fake_provider, test_config):
        response = test_client.post("/generate", json={"prompt": "a lighthouse"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Image generated and saved"
        assert body["imageUrl"].startswith("http://testserver/static/gallery/")
        assert fake_provider.prompts == ["a lighthouse"]

        image_id = body["imageUrl"].rsplit("/", 1)[-1]
        assert (test_config.gallery_dir / image_id).exists()
        stored = json.loads(test_config.gallery_db.read_text(encoding="utf-8"))
        assert stored[0]["id"] == image_id
        assert stored[0]["prompt"] == "a lighthouse"

    def test_generated_image_is_served(self, test_client, fake_provider):
        image_url = test_client.post("/generate", json={"prompt": "a cat"}).json()["imageUrl"]

        response = test_client.get(image_url.replace("http://testserver", ""))

        assert response.status_code == 200
        assert response.content == fake_provider.data

    @pytest.mark.parametrize("prompt", ["", "   "])
    def test_blank_prompt(self, test_client, fake_provider, prompt):
        response = test_client.post("/generate", json={"prompt": prompt})

        assert response.status_code == 400
        assert response.json() == {"message": "prompt is required"}
        assert fake_provider.prompts == []

    def test_missing_prompt(self, test_client):
        response = test_client.post("/generate", json={})

        assert response.status_code == 400
        assert "prompt" in response.json()["message"]

    def test_invalid_json(self, test_client):
        response = test_client.post(
            "/generate", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert set(response.json()) == {"message"}

    def test_provider_failure(self, test_client, fake_provider, test_config):
        fake_provider.error = ProviderError("model down")

        response = test_client.post("/generate", json={"prompt": "a cat"})

        assert response.status_code == 500
        assert response.json() == {"message": "Error generating image"}
        assert not test_config.gallery_db.exists()


# ============================================================================
# GET /gallery and GET /search
# ============================================================================


class TestListingEndpoints:
    def test_empty_gallery(self, test_client):
        response = test_client.get("/gallery")

        assert response.status_code == 200
        assert response.json() == {"items": [], "nextCursor": None, "hasMore": False}

    def test_gallery_pages_with_cursor(self, test_client, gallery_service):
        _seed(gallery_service, ["p0", "p1", "p2"])

        first = test_client.get("/gallery", params={"limit": 2}).json()
        second = test_client.get(
            "/gallery", params={"limit": 2, "cursor": first["nextCursor"]}
        ).json()

        assert [item["id"] for item in first["items"]] == ["2.png", "1.png"]
        assert first["hasMore"] is True
        assert [item["id"] for item in second["items"]] == ["0.png"]
        assert second["nextCursor"] is None
        assert second["hasMore"] is False

    def test_items_have_wire_fields(self, test_client, gallery_service):
        _seed(gallery_service, ["p0"])

        (item,) = test_client.get("/gallery").json()["items"]

        assert item == {
            "id": "0.png",
            "prompt": "p0",
            "createdAt": 0,
            "imageUrl": "http://testserver/static/gallery/0.png",
        }

    def test_search_filters_by_term(self, test_client, gallery_service):
        _seed(gallery_service, ["a cat", "a dog", "two cats"])

        body = test_client.get("/search", params={"term": "cat"}).json()

        assert [item["prompt"] for item in body["items"]] == ["two cats", "a cat"]

    def test_search_pages_keep_filter(self, test_client, gallery_service):
        _seed(gallery_service, ["cat 0", "dog", "cat 1", "cat 2"])

        first = test_client.get("/search", params={"term": "cat", "limit": 2}).json()
        second = test_client.get(
            "/search", params={"term": "cat", "limit": 2, "cursor": first["nextCursor"]}
        ).json()

        assert [i["prompt"] for i in first["items"] + second["items"]] == ["cat 2", "cat 1", "cat 0"]
        assert second["hasMore"] is False

    def test_search_without_term_lists_everything(self, test_client, gallery_service):
        _seed(gallery_service, ["a", "b"])
        assert len(test_client.get("/search").json()["items"]) == 2

    def test_invalid_cursor(self, test_client):
        response = test_client.get("/gallery", params={"cursor": "garbage"})

        assert response.status_code == 400
        assert set(response.json()) == {"message"}

    @pytest.mark.parametrize("limit", [0, 101, "ten"])
    def test_invalid_limit(self, test_client, limit):
        response = test_client.get("/gallery", params={"limit": limit})

        assert response.status_code == 400
        assert "limit" in response.json()["message"]

    @pytest.mark.parametrize(
        "path, message",
        [("/gallery", "Error fetching gallery images"), ("/search?term=x", "Error searching images")],
    )
    def test_scan_failure(self, test_config, path, message):
        service = MagicMock()
        service.list_images.side_effect = StorageError("scan failed")

        with TestClient(create_app(test_config, service=service)) as client:
            response = client.get(path)

        assert response.status_code == 500
        assert response.json() == {"message": message}


def test_unknown_route_renders_message(test_client):
    response = test_client.get("/does-not-exist")

    assert response.status_code == 404
    assert set(response.json()) == {"message"}


def test_service_not_ready(test_config):
    app = create_app(test_config, service=None)
    # Without entering the lifespan no service is built.
    client = TestClient(app)

    response = client.get("/gallery")

    assert response.status_code == 503
    assert response.json() == {"message": "Service is not ready"}
