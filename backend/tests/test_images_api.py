"""HTTP tests for the image proxy (/api/images and /uploads)."""

import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from tubed.main import create_app


@pytest.fixture
def stored_image(upload, make_image):
    """Relative storage path of a 300x200 png."""
    resp = upload(("photo.png", make_image(300, 200), "image/png"))
    return resp.json()["files"][0]["url"].rsplit("/", 1)[1]


class TestPassthrough:

    def test_original_bytes(self, client, stored_image, make_image):
        resp = client.get(f"/api/images/{stored_image}")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.headers["cache-control"] == "public, max-age=31536000, immutable"
        assert resp.content == make_image(300, 200)

    def test_uploads_alias(self, client, stored_image):
        resp = client.get(f"/uploads/{stored_image}")
        assert resp.status_code == 200
        assert Image.open(io.BytesIO(resp.content)).size == (300, 200)

    def test_no_auth_needed(self, client, stored_image):
        assert client.get(f"/api/images/{stored_image}").status_code == 200

    def test_svg_not_rasterised(self, client, upload):
        svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"/>'
        url = upload(("logo.svg", svg, "image/svg+xml")).json()["files"][0]["url"]
        resp = client.get(url, params={"width": 5, "format": "png"})
        assert resp.status_code == 200
        assert resp.content == svg
        assert resp.headers["content-type"].startswith("image/svg+xml")


class TestTransform:

    def test_width_and_webp(self, client, stored_image):
        resp = client.get(f"/api/images/{stored_image}", params={"width": 100, "format": "webp"})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/webp"
        assert resp.headers["cache-control"] == "public, max-age=31536000, immutable"
        image = Image.open(io.BytesIO(resp.content))
        assert image.format == "WEBP"
        assert image.width <= 100

    def test_short_aliases(self, client, stored_image):
        resp = client.get(f"/uploads/{stored_image}", params={"w": 60, "h": 60, "format": "png"})
        assert Image.open(io.BytesIO(resp.content)).size == (60, 60)

    def test_same_query_same_bytes(self, client, stored_image):
        params = {"width": 120, "format": "jpeg", "quality": 70}
        first = client.get(f"/api/images/{stored_image}", params=params)
        second = client.get(f"/api/images/{stored_image}", params=params)
        assert first.content == second.content

    def test_corrupt_image(self, client, upload):
        url = upload(("broken.png", b"not really a png", "image/png")).json()["files"][0]["url"]
        resp = client.get(url, params={"width": 50})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal Server Error"}

    def test_non_image_ignores_transform(self, client, upload):
        url = upload(("report.pdf", b"%PDF-1.4 body", "application/pdf")).json()["files"][0]["url"]
        resp = client.get(url, params={"w": 100, "format": "webp"})
        assert resp.status_code == 200
        assert resp.content == b"%PDF-1.4 body"
        assert resp.headers["content-type"] == "application/pdf"


class TestUrlPrefix:

    def test_custom_prefix_serves_record_urls(self, settings, auth_headers, make_image):
        app = create_app(settings.model_copy(update={"PUBLIC_URL_PREFIX": "/media"}))
        with TestClient(app) as media_client:
            resp = media_client.post(
                "/api/upload",
                files=[("files", ("a.png", make_image(80, 40), "image/png"))],
                headers=auth_headers,
            )
            url = resp.json()["files"][0]["url"]
            assert url.startswith("/media/a_")

            assert media_client.get(url).status_code == 200
            resized = media_client.get(url, params={"width": 40, "format": "png"})
            assert Image.open(io.BytesIO(resized.content)).size == (40, 20)
            assert media_client.get("/uploads/" + url.rsplit("/", 1)[1]).status_code == 404


class TestErrors:

    def test_missing(self, client):
        resp = client.get("/api/images/nothing-here.png")
        assert resp.status_code == 404

    def test_traversal(self, client):
        resp = client.get("/api/images/..%2F..%2Fetc%2Fpasswd")
        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden"}

    @pytest.mark.parametrize("params", [
        {"quality": 0},
        {"quality": 101},
        {"width": 0},
        {"width": 5000},
        {"format": "tiff"},
        {"fit": "stretch"},
    ])
    def test_bad_parameters(self, client, stored_image, params):
        resp = client.get(f"/api/images/{stored_image}", params=params)
        assert resp.status_code == 400
        assert "error" in resp.json()
