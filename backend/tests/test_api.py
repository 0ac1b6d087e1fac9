"""
Valentine Backend: API Integration Tests
==========================================

What:  The HTTP surface end to end: multipart create, get, check, errors,
       landing page, health and request ids.
How:   httpx AsyncClient over ASGITransport with a real SQLite database
       and real Pillow-encoded images.
"""

import io
import re

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from starlette.datastructures import Headers, UploadFile

from valentine.config import settings
from valentine.main import create_app
from valentine.models.surprise import Surprise
from valentine.routes.surprises import read_uploads
from valentine.services.surprise_service import PhotoUpload

LINK_PATTERN = re.compile(r"^https?://.+/valentine\.html\?id=[0-9a-f]{16}$")


def photo_parts(photos):
    return [("photos", (p.filename, p.content, p.content_type)) for p in photos]


def names(partner: str = "Alex", sender: str = "Sam") -> dict:
    return {"partnerName": partner, "senderName": sender}


def surprise_id_from(link: str) -> str:
    return link.split("id=", 1)[1]


async def create(client, photos, data=None, headers=None):
    return await client.post(
        "/api/create-surprise",
        data=names() if data is None else data,
        files=photo_parts(photos),
        headers=headers,
    )


class TestCreateSurprise:

    @pytest.mark.asyncio
    async def test_create_returns_link(self, test_client, sample_photos):
        response = await create(test_client, sample_photos)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Surprise created!"
        assert LINK_PATTERN.match(body["link"])
        assert body["link"].startswith("http://test/valentine.html?id=")

    @pytest.mark.asyncio
    async def test_created_surprise_is_readable(self, test_client, sample_photos):
        link = (await create(test_client, sample_photos)).json()["link"]
        surprise_id = surprise_id_from(link)

        check = await test_client.get(f"/api/check-surprise/{surprise_id}")
        assert check.status_code == 200
        assert check.json() == {"exists": True, "senderName": "Sam"}

        response = await test_client.get(f"/api/get-surprise/{surprise_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["id"] == surprise_id
        assert data["partnerName"] == "Alex"
        assert data["senderName"] == "Sam"
        assert re.fullmatch(r"[0-9A-F]{8}", data["secretKey"])
        assert "createdAt" in data
        assert len(data["photos"]) == 5
        assert all(p["contentType"] == "image/jpeg" for p in data["photos"])

    @pytest.mark.asyncio
    async def test_each_create_gets_new_id(self, test_client, sample_photos):
        first = (await create(test_client, sample_photos)).json()["link"]
        second = (await create(test_client, sample_photos)).json()["link"]

        assert surprise_id_from(first) != surprise_id_from(second)

    @pytest.mark.asyncio
    async def test_forwarded_proto_https(self, test_client, sample_photos):
        response = await create(
            test_client, sample_photos, headers={"X-Forwarded-Proto": "https"}
        )

        assert response.json()["link"].startswith("https://test/valentine.html?id=")

    @pytest.mark.asyncio
    async def test_configured_base_url(self, test_client, sample_photos, monkeypatch):
        monkeypatch.setattr(settings, "base_url", "https://love.example.com/")

        response = await create(test_client, sample_photos)

        assert response.json()["link"].startswith("https://love.example.com/valentine.html?id=")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 4, 6])
    async def test_wrong_photo_count(self, test_client, sample_photos, count):
        photos = (sample_photos * 2)[:count]

        response = await create(test_client, photos)

        assert response.status_code == 400
        assert response.json() == {"error": "Please upload 5 photos."}

    @pytest.mark.asyncio
    async def test_no_photos(self, test_client):
        response = await test_client.post("/api/create-surprise", data=names())

        assert response.status_code == 400
        assert response.json() == {"error": "Please upload 5 photos."}

    @pytest.mark.asyncio
    async def test_photo_count_checked_before_names(self, test_client, sample_photos):
        response = await create(test_client, sample_photos[:4], data={"partnerName": "Alex"})

        assert response.status_code == 400
        assert response.json() == {"error": "Please upload 5 photos."}

    @pytest.mark.asyncio
    async def test_blank_names_are_stored_as_sent(self, test_client, sample_photos):
        response = await create(
            test_client, sample_photos, data={"partnerName": "", "senderName": ""}
        )

        assert response.status_code == 200
        surprise_id = surprise_id_from(response.json()["link"])
        data = (await test_client.get(f"/api/get-surprise/{surprise_id}")).json()["data"]
        assert data["partnerName"] == ""
        assert data["senderName"] == ""

    @pytest.mark.asyncio
    async def test_absent_names_default_to_empty(self, test_client, sample_photos):
        response = await create(test_client, sample_photos, data={})

        assert response.status_code == 200
        surprise_id = surprise_id_from(response.json()["link"])
        check = await test_client.get(f"/api/check-surprise/{surprise_id}")
        assert check.json() == {"exists": True, "senderName": ""}

    @pytest.mark.asyncio
    async def test_oversized_part_rejected(self, test_client, sample_photos, monkeypatch):
        monkeypatch.setattr(settings, "max_file_size", 4096)
        photos = list(sample_photos)
        photos[1] = PhotoUpload("huge.jpg", "image/jpeg", b"\xff" * 20_000)

        response = await create(test_client, photos)

        assert response.status_code == 400
        assert "huge.jpg" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_undecodable_photo_is_server_error(self, test_client, sample_photos):
        photos = list(sample_photos)
        photos[3] = PhotoUpload("fake.jpg", "image/jpeg", b"definitely not a jpeg")

        response = await create(test_client, photos)

        assert response.status_code == 500
        assert response.json()["error"].startswith("Internal Server Error: ")

    @pytest.mark.asyncio
    async def test_failed_create_stores_nothing(self, test_client, store, sample_photos):
        await create(test_client, sample_photos[:4])

        async with store.database.session() as session:
            count = await session.scalar(select(func.count()).select_from(Surprise))
        assert count == 0


class TestReadSurprise:

    @pytest.mark.asyncio
    async def test_get_unknown_id(self, test_client):
        response = await test_client.get("/api/get-surprise/0000000000000000")

        assert response.status_code == 404
        assert response.json() == {"error": "Surprise not found."}

    @pytest.mark.asyncio
    async def test_check_unknown_id(self, test_client):
        response = await test_client.get("/api/check-surprise/0000000000000000")

        assert response.status_code == 200
        assert response.json() == {"exists": False}

    @pytest.mark.asyncio
    async def test_reads_are_idempotent(self, test_client, sample_photos):
        link = (await create(test_client, sample_photos)).json()["link"]
        surprise_id = surprise_id_from(link)

        first = await test_client.get(f"/api/get-surprise/{surprise_id}")
        second = await test_client.get(f"/api/get-surprise/{surprise_id}")

        assert first.json() == second.json()


class TestWithoutDatabase:

    @pytest_asyncio.fixture
    async def bare_client(self):
        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client

    @pytest.mark.asyncio
    async def test_get_reports_storage_error(self, bare_client):
        response = await bare_client.get("/api/get-surprise/0000000000000000")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error: Database not connected"}

    @pytest.mark.asyncio
    async def test_health_unhealthy(self, bare_client):
        response = await bare_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "disconnected"


class TestAmbient:

    @pytest.mark.asyncio
    async def test_landing_page(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")

    @pytest.mark.asyncio
    async def test_static_page_by_name(self, test_client):
        response = await test_client.get("/valentine.html")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_healthy(self, test_client):
        response = await test_client.get("/health")

        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert "uptimeSeconds" in body

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client):
        response = await test_client.get("/api/check-surprise/0000000000000000")

        assert re.fullmatch(r"[0-9a-f]{8}", response.headers["X-Request-ID"])

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_uploads_directory_is_served(self, database, tmp_path, monkeypatch):
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (uploads / "note.txt").write_text("be mine")
        monkeypatch.setattr(settings, "uploads_root", str(uploads))

        app = create_app()
        app.state.database = database
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/uploads/note.txt")

        assert response.status_code == 200
        assert response.text == "be mine"


class TestReadUploads:

    @staticmethod
    def upload(content: bytes, filename="a.jpg") -> UploadFile:
        return UploadFile(
            file=io.BytesIO(content),
            filename=filename,
            headers=Headers({"content-type": "image/jpeg"}),
        )

    @pytest.mark.asyncio
    async def test_parts_within_limit_read_whole(self):
        uploads = await read_uploads([self.upload(b"abc"), self.upload(b"defg", "b.jpg")], 10)

        assert [u.content for u in uploads] == [b"abc", b"defg"]
        assert [u.filename for u in uploads] == ["a.jpg", "b.jpg"]
        assert uploads[0].content_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_oversized_part_read_only_past_limit(self):
        uploads = await read_uploads([self.upload(b"x" * 1000)], 10)

        assert len(uploads[0].content) == 11

    @pytest.mark.asyncio
    async def test_unnamed_part_gets_position_name(self):
        uploads = await read_uploads([self.upload(b"abc", filename=None)], 10)

        assert uploads[0].filename == "photo-1"
