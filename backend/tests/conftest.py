"""
Valentine Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   A real SQLite database (aiosqlite) per test under tmp_path, real
       Pillow images generated in memory, and an httpx AsyncClient talking
       to the ASGI app directly.

Fixture Hierarchy (all function-scoped):
    ├── database:       connected Database on a fresh SQLite file
    ├── store:          SurpriseStore over `database`
    ├── mock_store:     AsyncMock with the SurpriseStore interface
    ├── make_image:     factory for encoded test images
    ├── sample_photos:  five valid PhotoUpload objects
    └── test_client:    AsyncClient bound to an app using `database`
"""

import io
import os

# Settings are read at import time, so the environment is fixed first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["DNS_SERVERS"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("BASE_URL", None)

from typing import AsyncGenerator, Callable, List, Optional  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402

from valentine.database import Database  # noqa: E402
from valentine.services.storage_service import SurpriseStore  # noqa: E402
from valentine.services.surprise_service import PhotoUpload  # noqa: E402


def encode_image(
    width: int,
    height: int,
    fmt: str = "JPEG",
    mode: str = "RGB",
    color: Optional[tuple] = None,
) -> bytes:
    """Encode a solid-color image of the given size and format."""
    if color is None:
        color = (214, 51, 108, 255)[: len(mode)] if mode in ("RGB", "RGBA") else 128
    buf = io.BytesIO()
    Image.new(mode, (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """
    Factory for real encoded images.

    Usage:
        def test_wide(make_image):
            data = make_image(1600, 900, fmt="PNG")
    """
    return encode_image


@pytest.fixture
def sample_photos() -> List[PhotoUpload]:
    """Five small, valid JPEG uploads of different widths."""
    return [
        PhotoUpload(
            filename=f"photo-{i}.jpg",
            content_type="image/jpeg",
            content=encode_image(100 + i * 50, 80),
        )
        for i in range(5)
    ]


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """A connected Database on a throwaway SQLite file."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'valentine.db'}", dns_servers=[])
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
def store(database) -> SurpriseStore:
    return SurpriseStore(database)


@pytest.fixture
def mock_store() -> AsyncMock:
    """
    Store double for service tests.

    find_by_id returns None (not found) unless a test sets return_value.
    """
    mock = AsyncMock(spec=SurpriseStore)
    mock.save = AsyncMock(return_value=None)
    mock.find_by_id = AsyncMock(return_value=None)
    return mock


@pytest_asyncio.fixture
async def test_client(database) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient configured to talk to a fresh app.

    ASGITransport does not run the lifespan, so the connected test database
    is attached to app.state the way the lifespan would.
    """
    from valentine.main import create_app

    app = create_app()
    app.state.database = database
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
