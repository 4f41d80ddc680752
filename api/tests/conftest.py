"""Pytest configuration and shared fixtures.

This module provides:
- A verified fake of the storage bucket (no Google credentials needed)
- A fake rasterizer so route/service tests do not need the Cairo library
- FastAPI test client with the bucket dependency overridden
- A valid certificate request payload
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("BUCKET", "test-certificates")

from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Any, BinaryIO
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from google.api_core.exceptions import NotFound
from httpx import ASGITransport, AsyncClient

from core.config import clear_settings_cache
from core.wide_event import init_wide_event

FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-certificate"

# =============================================================================
# Storage fakes
# =============================================================================


class FakeBlob:
    """Records what CertificateUploader writes through the blob interface."""

    def __init__(self, bucket: "FakeBucket", name: str):
        self.bucket = bucket
        self.name = name
        self.cache_control: str | None = None
        self.content_type: str | None = None
        self.data: bytes | None = None

    def upload_from_file(
        self,
        file_obj: BinaryIO,
        rewind: bool = False,
        size: int | None = None,
        content_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.bucket.upload_calls += 1
        if self.bucket.fail_with is not None:
            raise self.bucket.fail_with
        if rewind:
            file_obj.seek(0)
        self.data = file_obj.read() if size is None else file_obj.read(size)
        self.content_type = content_type
        self.bucket.objects[self.name] = self

    def delete(self) -> None:
        if self.bucket.objects.pop(self.name, None) is None:
            raise NotFound(f"No such object: {self.bucket.name}/{self.name}")


class FakeBucket:
    """In-memory stand-in for google.cloud.storage.Bucket."""

    def __init__(self, name: str = "test-certificates"):
        self.name = name
        self.objects: dict[str, FakeBlob] = {}
        self.upload_calls = 0
        self.fail_with: BaseException | None = None

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)


@pytest.fixture
def fake_bucket() -> FakeBucket:
    return FakeBucket()


# =============================================================================
# Settings / context
# =============================================================================


@pytest.fixture(autouse=True)
def setup_wide_event():
    """Initialize wide_event context for all tests.

    In production this is done by RequestTimingMiddleware.
    """
    init_wide_event()
    yield


@pytest.fixture
def output_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path]:
    """Point OUTPUT_DIR at a fresh directory so leftover images are visible."""
    directory = tmp_path / "output"
    directory.mkdir()
    monkeypatch.setenv("OUTPUT_DIR", str(directory))
    clear_settings_cache()
    yield directory
    clear_settings_cache()


def _write_fake_png(markup: str, output_path: Path, *, scale: float = 1.0) -> None:
    output_path.write_bytes(FAKE_PNG)


@pytest.fixture
def fake_rasterizer() -> Generator[MagicMock]:
    """Replace CairoSVG rasterization with a stub that writes FAKE_PNG."""
    with patch(
        "services.certificates_service.rasterize_markup",
        side_effect=_write_fake_png,
    ) as mock_rasterize:
        yield mock_rasterize


@pytest.fixture
def valid_request() -> dict[str, Any]:
    return {
        "templateName": "classic.svg",
        "name": "Ada Lovelace",
        "date": "2024-05-01",
        "courseName": "Analytical Engines 101",
        "title": "Certificate of Achievement",
        "subtitle": "For outstanding work",
        "orgLogo": "https://example.com/logo.png",
        "orgCode": 42,
        "orgName": "Babbage Institute",
        "signature": "https://example.com/signature.png",
        "courseId": 3,
        "studentId": 7,
    }


# =============================================================================
# App / client
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def app(fake_bucket: FakeBucket, output_dir: Path) -> AsyncGenerator[FastAPI]:
    """FastAPI app with the bucket dependency pointed at ``fake_bucket``."""
    from core.storage import get_certificate_bucket
    from main import app as fastapi_app

    fastapi_app.state.storage_client = MagicMock()
    fastapi_app.state.init_error = None
    fastapi_app.dependency_overrides[get_certificate_bucket] = lambda: fake_bucket

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing routes."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
