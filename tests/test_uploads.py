"""
Upload Tests

Local storage backend and the image upload endpoint.
"""

import io
from unittest.mock import patch

import pytest
from starlette.datastructures import UploadFile

from app.core.config import settings
from app.core.exceptions import BadRequest, UpstreamFailure
from app.services.storage_service import LocalStorage, stored_type


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestLocalStorage:

    @pytest.mark.asyncio
    async def test_upload_writes_file(self, tmp_path):
        storage = LocalStorage(str(tmp_path), "/static/uploads/", max_bytes=1024)

        stored = await storage.upload(b"hello", "notes.txt")

        assert stored.id.endswith(".txt")
        assert stored.url == f"/static/uploads/{stored.id}"
        assert stored.name == "notes.txt"
        assert stored.content_type == "text/plain"
        assert stored.size == 5
        assert (tmp_path / stored.id).read_bytes() == b"hello"

    @pytest.mark.asyncio
    async def test_rejects_empty_and_oversized(self, tmp_path):
        storage = LocalStorage(str(tmp_path), "/files", max_bytes=4)

        with pytest.raises(BadRequest):
            await storage.upload(b"", "empty.txt")
        with pytest.raises(BadRequest):
            await storage.upload(b"12345", "big.txt")

    @pytest.mark.asyncio
    async def test_write_failure_is_upstream_failure(self, tmp_path):
        storage = LocalStorage(str(tmp_path), "/files", max_bytes=1024)

        with patch.object(LocalStorage, "_write", side_effect=OSError("disk full")):
            with pytest.raises(UpstreamFailure) as exc_info:
                await storage.upload(b"data", "a.txt")

        assert exc_info.value.message == "File storage failed"

    @pytest.mark.asyncio
    async def test_key_extension_follows_content_type_not_filename(self, tmp_path):
        storage = LocalStorage(str(tmp_path), "/files", max_bytes=1024)

        stored = await storage.upload(PNG_BYTES, "evil.html", "image/png")

        assert stored.id.endswith(".png")
        assert stored.content_type == "image/png"
        assert stored.name == "evil.html"

    @pytest.mark.asyncio
    async def test_unlisted_type_is_stored_as_binary(self, tmp_path):
        storage = LocalStorage(str(tmp_path), "/files", max_bytes=1024)

        stored = await storage.upload(b"<script>alert(1)</script>", "evil.html", "text/html")

        assert stored.id.endswith(".bin")
        assert stored.content_type == "application/octet-stream"

    def test_stored_type(self):
        assert stored_type("text/plain; charset=utf-8") == ("text/plain", ".txt")
        assert stored_type("Application/PDF") == ("application/pdf", ".pdf")
        assert stored_type(None, "cv.pdf") == ("application/pdf", ".pdf")
        assert stored_type(None, "page.html") == ("application/octet-stream", ".bin")
        assert stored_type("image/svg+xml", "logo.svg") == ("application/octet-stream", ".bin")

    @pytest.mark.asyncio
    async def test_read_stops_one_byte_past_limit(self, tmp_path):
        storage = LocalStorage(str(tmp_path), "/files", max_bytes=4)
        incoming = UploadFile(io.BytesIO(b"x" * 100), filename="big.txt")

        data = await storage.read(incoming)

        assert len(data) == 5
        with pytest.raises(BadRequest):
            await storage.upload(data, "big.txt")

    @pytest.mark.asyncio
    async def test_delete_removes_file(self, tmp_path):
        storage = LocalStorage(str(tmp_path), "/files", max_bytes=1024)
        stored = await storage.upload(b"hello", "notes.txt")

        await storage.delete(stored.id)
        await storage.delete(stored.id)

        assert not (tmp_path / stored.id).exists()


class TestUploadImageEndpoint:

    @pytest.mark.asyncio
    async def test_upload_image(self, client, user_headers):
        response = await client.post(
            "/api/v1/uploads/image",
            files={"image": ("photo.png", PNG_BYTES, "image/png")},
            headers=user_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["contentType"] == "image/png"
        assert body["size"] == len(PNG_BYTES)
        assert body["url"].endswith(body["id"])

    @pytest.mark.asyncio
    async def test_html_named_image_is_served_as_image(self, client, user_headers):
        response = await client.post(
            "/api/v1/uploads/image",
            files={"image": ("evil.html", PNG_BYTES, "image/png")},
            headers=user_headers,
        )
        assert response.status_code == 201

        served = await client.get(response.json()["url"])

        assert served.status_code == 200
        assert served.headers["content-type"] == "image/png"
        assert served.content == PNG_BYTES

    @pytest.mark.asyncio
    async def test_oversized_image_rejected(self, client, user_headers):
        with patch.object(settings, "UPLOAD_MAX_BYTES", 16):
            response = await client.post(
                "/api/v1/uploads/image",
                files={"image": ("photo.png", PNG_BYTES, "image/png")},
                headers=user_headers,
            )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, client, user_headers):
        response = await client.post(
            "/api/v1/uploads/image",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Only JPEG, PNG, GIF or WebP images are allowed"}

    @pytest.mark.asyncio
    async def test_requires_session(self, client):
        response = await client.post(
            "/api/v1/uploads/image",
            files={"image": ("photo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 401
