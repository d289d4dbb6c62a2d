"""Tests for catalog-wide operations."""

import pytest
import pytest_asyncio

from storefront.assets.provider import AssetUpload
from storefront.catalog.products import ProductCatalog
from storefront.catalog.service import CatalogService
from storefront.domain.exceptions import NotFoundError, ValidationError


async def add_product(catalog: ProductCatalog, image: AssetUpload, name: str, category: str):
    """Create an in-stock product in a category."""
    return await catalog.create(
        {
            "name": name,
            "category": category,
            "original_price": "100",
            "discounted_price": "90",
            "stock_quantity": 5,
        },
        image,
    )


@pytest_asyncio.fixture
async def dairy_tree(service: CatalogService) -> CatalogService:
    """Dairy > (Milk, Cheese > Paneer), plus a top-level Ghee."""
    tree = service.categories
    dairy = await tree.create("Dairy", display_order=1)
    await tree.create("Milk", parent_id=dairy.id, display_order=1)
    cheese = await tree.create("Cheese", parent_id=dairy.id, display_order=2)
    await tree.create("Paneer", parent_id=cheese.id)
    await tree.create("Ghee", display_order=2)
    return service


class TestCategoryOverview:
    """Tests for CatalogService.category_overview."""

    @pytest.mark.asyncio
    async def test_counts_roll_up(self, dairy_tree: CatalogService, image: AssetUpload) -> None:
        """Per-node counts come from matching slugs and totals sum the subtree."""
        catalog = dairy_tree.products
        await add_product(catalog, image, "Toned Milk", "milk")
        sold_out = await add_product(catalog, image, "Full Cream Milk", "milk")
        await catalog.update_stock(sold_out.id, stock_quantity=0)
        await add_product(catalog, image, "Malai Paneer", "paneer")
        await add_product(catalog, image, "Desi Ghee", "ghee")

        dairy, ghee = await dairy_tree.category_overview()
        milk, cheese = dairy.children
        paneer = cheese.children[0]

        assert (milk.product_count, milk.available_count) == (2, 1)
        assert (cheese.product_count, cheese.total_count) == (0, 1)
        assert paneer.depth == 2
        assert (dairy.product_count, dairy.total_count, dairy.total_available) == (0, 3, 2)
        assert (ghee.total_count, ghee.total_available) == (1, 1)

    @pytest.mark.asyncio
    async def test_empty_catalog(self, service: CatalogService) -> None:
        """No categories gives an empty overview."""
        assert await service.category_overview() == []


class TestProductsInSubtree:
    """Tests for CatalogService.products_in_subtree."""

    @pytest.mark.asyncio
    async def test_includes_descendant_categories(
        self, dairy_tree: CatalogService, image: AssetUpload
    ) -> None:
        """Products of the category and every active descendant are listed."""
        catalog = dairy_tree.products
        await add_product(catalog, image, "Toned Milk", "milk")
        await add_product(catalog, image, "Malai Paneer", "paneer")
        await add_product(catalog, image, "Desi Ghee", "ghee")

        page = await dairy_tree.products_in_subtree("dairy", {"sort": "name"})
        assert [p.name for p in page.items] == ["Malai Paneer", "Toned Milk"]
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_inactive_branch_excluded(
        self, dairy_tree: CatalogService, image: AssetUpload
    ) -> None:
        """Products under an inactive subcategory drop out."""
        catalog = dairy_tree.products
        await add_product(catalog, image, "Toned Milk", "milk")
        await add_product(catalog, image, "Malai Paneer", "paneer")
        cheese = await dairy_tree.categories.get_by_slug_or_id("cheese")
        await dairy_tree.categories.update(cheese.id, {"status": "inactive"})

        page = await dairy_tree.products_in_subtree("dairy", {})
        assert [p.name for p in page.items] == ["Toned Milk"]

    @pytest.mark.asyncio
    async def test_filters_apply(self, dairy_tree: CatalogService, image: AssetUpload) -> None:
        """Listing parameters still filter and paginate."""
        catalog = dairy_tree.products
        for i in range(3):
            await add_product(catalog, image, f"Milk {i}", "milk")

        page = await dairy_tree.products_in_subtree("milk", {"limit": "2", "page": "2"})
        assert page.total == 3
        assert len(page.items) == 1

    @pytest.mark.asyncio
    async def test_unknown_category(self, dairy_tree: CatalogService) -> None:
        """Unknown identifiers raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await dairy_tree.products_in_subtree("yogurt", {})

    @pytest.mark.asyncio
    async def test_invalid_parameters(self, dairy_tree: CatalogService) -> None:
        """Bad listing parameters raise ValidationError."""
        with pytest.raises(ValidationError):
            await dairy_tree.products_in_subtree("dairy", {"page": "zero"})


class TestSeedDefaultCategories:
    """Tests for CatalogService.seed_default_categories."""

    @pytest.mark.asyncio
    async def test_seed(self, service: CatalogService) -> None:
        """Seeding creates the defaults once."""
        first = await service.seed_default_categories()
        second = await service.seed_default_categories()
        assert [c.id for c in first] == [c.id for c in second]
        assert first[0].slug == "milk"
