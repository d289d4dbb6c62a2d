"""Shared fixtures for API tests."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from storefront.assets.provider import AssetUpload
from storefront.infrastructure.config import Settings
from storefront.main import create_app


@pytest.fixture
def api_settings(tmp_path: Path) -> Settings:
    """In-memory stores and local image storage under a temporary directory."""
    return Settings(
        store_backend="memory",
        asset_backend="local",
        asset_local_root=str(tmp_path / "images"),
        asset_base_url="http://testserver/uploads/images",
        log_level="WARNING",
    )


@pytest.fixture
def client(api_settings: Settings) -> Iterator[TestClient]:
    """Test client with the application lifespan running."""
    with TestClient(create_app(api_settings)) as test_client:
        yield test_client


@pytest.fixture
def image_file(image: AssetUpload) -> dict[str, Any]:
    """Multipart image field."""
    return {"image": (image.filename, image.content, image.content_type)}


@pytest.fixture
def create_category(client: TestClient):
    """Create a category through the API and return its JSON."""

    def _create(name: str, **fields: Any) -> dict[str, Any]:
        data = {"name": name, **{k: str(v) for k, v in fields.items()}}
        response = client.post("/categories", data=data)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_product(client: TestClient, image_file: dict[str, Any]):
    """Create a product through the API and return its JSON."""

    def _create(name: str, category: str = "milk", **fields: Any) -> dict[str, Any]:
        data = {
            "name": name,
            "category": category,
            "original_price": "100",
            "discounted_price": "80",
            "stock_quantity": "10",
            **{k: str(v) for k, v in fields.items()},
        }
        response = client.post("/products", data=data, files=image_file)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
