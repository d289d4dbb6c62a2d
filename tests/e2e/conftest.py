"""Shared fixtures for E2E tests.

These fixtures run the whole application against a SQLite database
with the Cloudinary SDK mocked out.
"""

from collections.abc import Iterator
from itertools import count
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from storefront.infrastructure.config import Settings
from storefront.main import create_app


# ============================================================================
# Cloudinary Fixtures
# ============================================================================


@pytest.fixture
def cloudinary_uploader(monkeypatch) -> MagicMock:
    """Mocked uploader; each upload gets a fresh public id."""
    ids = count(1)
    uploader = MagicMock()

    def upload(file: Any, **options: Any) -> dict[str, Any]:
        public_id = f"{options['folder']}/img{next(ids)}"
        return {
            "public_id": public_id,
            "secure_url": f"https://res.cloudinary.com/demo/image/upload/{public_id}.png",
            "format": "png",
            "width": 400,
            "height": 400,
            "bytes": 1024,
        }

    uploader.upload.side_effect = upload
    uploader.destroy.return_value = {"result": "ok"}
    monkeypatch.setattr("cloudinary.uploader.upload", uploader.upload)
    monkeypatch.setattr("cloudinary.uploader.destroy", uploader.destroy)
    return uploader


# ============================================================================
# Client Fixtures
# ============================================================================


@pytest.fixture
def e2e_settings(tmp_path: Path) -> Settings:
    """SQL store plus Cloudinary buffer relay."""
    return Settings(
        store_backend="sql",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}",
        asset_backend="cloudinary_stream",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key",
        cloudinary_api_secret="secret",
        log_level="WARNING",
    )


@pytest.fixture
def client(e2e_settings: Settings, cloudinary_uploader: MagicMock) -> Iterator[TestClient]:
    """Client for the fully wired application."""
    with TestClient(
        create_app(e2e_settings),
        headers={"X-Request-ID": "e2e-test-request", "X-Actor-ID": "e2e-admin"},
    ) as test_client:
        yield test_client


@pytest.fixture
def png_file(image) -> dict[str, Any]:
    """Multipart image field."""
    return {"image": (image.filename, image.content, image.content_type)}
