"""Shared fixtures for catalog tests."""

from typing import Any
from uuid import uuid4

import pytest

from storefront.assets.provider import AssetProvider, AssetUpload
from storefront.catalog.categories import CategoryTree
from storefront.catalog.images import ImageLibrary
from storefront.catalog.products import ProductCatalog
from storefront.catalog.repository import (
    InMemoryCategoryStore,
    InMemoryImageStore,
    InMemoryProductStore,
)
from storefront.catalog.service import CatalogService
from storefront.domain.exceptions import AssetProviderError
from storefront.domain.value_objects import AssetReference

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class RecordingAssetProvider(AssetProvider):
    """Asset provider that keeps binaries in memory and records calls."""

    def __init__(self) -> None:
        super().__init__()
        self.stored: dict[str, bytes] = {}
        self.hints: list[dict[str, Any]] = []
        self.released: list[str] = []
        self.fail_store = False
        self.fail_release = False

    async def _store(self, upload: AssetUpload, hints: dict[str, Any]) -> AssetReference:
        if self.fail_store:
            raise AssetProviderError("Image upload failed: provider down")
        storage_id = f"test/{uuid4().hex}"
        self.stored[storage_id] = upload.content
        self.hints.append(hints)
        return AssetReference(
            storage_id=storage_id,
            url=f"https://cdn.test/{storage_id}.png",
            format="png",
            size_bytes=upload.size,
        )

    async def release(self, storage_id: str) -> None:
        if self.fail_release:
            raise AssetProviderError("Image release failed: provider down")
        self.released.append(storage_id)
        self.stored.pop(storage_id, None)

    def transformed_url(
        self,
        storage_id: str,
        width: int | None = None,
        height: int | None = None,
        crop: str | None = None,
    ) -> str:
        return f"https://cdn.test/w_{width},h_{height}/{storage_id}.png"


@pytest.fixture
def image() -> AssetUpload:
    """A small PNG upload."""
    return AssetUpload(content=PNG_BYTES, filename="milk.png", content_type="image/png")


@pytest.fixture
def assets() -> RecordingAssetProvider:
    """In-memory asset provider."""
    return RecordingAssetProvider()


@pytest.fixture
def category_store() -> InMemoryCategoryStore:
    """Empty in-memory category store."""
    return InMemoryCategoryStore()


@pytest.fixture
def product_store() -> InMemoryProductStore:
    """Empty in-memory product store."""
    return InMemoryProductStore()


@pytest.fixture
def image_store() -> InMemoryImageStore:
    """Empty in-memory image store."""
    return InMemoryImageStore()


@pytest.fixture
def tree(category_store: InMemoryCategoryStore, assets: RecordingAssetProvider) -> CategoryTree:
    """Category tree over the in-memory store."""
    return CategoryTree(category_store, assets)


@pytest.fixture
def catalog(product_store: InMemoryProductStore, assets: RecordingAssetProvider) -> ProductCatalog:
    """Product catalog over the in-memory store."""
    return ProductCatalog(product_store, assets)


@pytest.fixture
def library(image_store: InMemoryImageStore, assets: RecordingAssetProvider) -> ImageLibrary:
    """Image library over the in-memory store."""
    return ImageLibrary(image_store, assets)


@pytest.fixture
def service(tree: CategoryTree, catalog: ProductCatalog) -> CatalogService:
    """Catalog service over the in-memory tree and catalog."""
    return CatalogService(tree, catalog)


@pytest.fixture
def product_fields() -> dict[str, Any]:
    """Valid fields for a new product."""
    return {
        "name": "Fresh Cow Milk",
        "category": "milk",
        "original_price": "100",
        "discounted_price": "80",
        "description": "Farm fresh full cream milk",
        "tags": "fresh, organic",
        "stock_quantity": 25,
    }
