"""Tests for the product catalog."""

from decimal import Decimal
from typing import Any

import pytest

from storefront.assets.provider import AssetUpload
from storefront.catalog.products import ProductCatalog
from storefront.catalog.query import CatalogFilterBuilder, CatalogQuery
from storefront.catalog.repository import InMemoryProductStore, ProductCriteria
from storefront.domain import RatingSummary
from storefront.domain.entities import Product
from storefront.domain.exceptions import (
    AssetProviderError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)


async def add_product(
    catalog: ProductCatalog,
    image: AssetUpload,
    name: str,
    category: str = "milk",
    original: str = "100",
    discounted: str = "80",
    **extra: Any,
) -> Product:
    """Create a product with sensible defaults."""
    fields = {
        "name": name,
        "category": category,
        "original_price": original,
        "discounted_price": discounted,
        "stock_quantity": 10,
        **extra,
    }
    return await catalog.create(fields, image, actor="admin-1")


class TestCreate:
    """Tests for ProductCatalog.create."""

    @pytest.mark.asyncio
    async def test_create(
        self, catalog: ProductCatalog, assets, image: AssetUpload, product_fields: dict
    ) -> None:
        """Prices, discount, tags and image are set on creation."""
        product = await catalog.create(product_fields, image, actor="admin-1")

        assert product.original_price == Decimal("100")
        assert product.discounted_price == Decimal("80")
        assert product.discount_percentage == 20
        assert product.saving_amount == Decimal("20")
        assert product.tags == ["fresh", "organic"]
        assert product.created_by == "admin-1"
        assert product.image.storage_id in assets.stored
        assert assets.hints[-1] == {"folder": "products", "tags": ["milk"]}

    @pytest.mark.asyncio
    async def test_image_required(
        self, catalog: ProductCatalog, assets, product_fields: dict
    ) -> None:
        """A product cannot be created without an image."""
        with pytest.raises(ValidationError) as exc_info:
            await catalog.create(product_fields, None)
        assert exc_info.value.field == "image"

    @pytest.mark.asyncio
    async def test_missing_fields_listed(
        self, catalog: ProductCatalog, assets, image: AssetUpload
    ) -> None:
        """Missing required fields are reported together, before any upload."""
        with pytest.raises(ValidationError) as exc_info:
            await catalog.create({"name": "Ghee", "category": " "}, image)
        assert exc_info.value.details["missing"] == [
            "category",
            "original_price",
            "discounted_price",
        ]
        assert assets.stored == {}

    @pytest.mark.asyncio
    async def test_unknown_fields_rejected(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """Derived and unknown fields cannot be supplied."""
        product_fields["discount_percentage"] = 50
        with pytest.raises(ValidationError):
            await catalog.create(product_fields, image)

    @pytest.mark.asyncio
    async def test_discounted_above_original_rejected(
        self, catalog: ProductCatalog, assets, image: AssetUpload, product_fields: dict
    ) -> None:
        """discounted_price > original_price is rejected and nothing is uploaded."""
        product_fields["discounted_price"] = "120"
        with pytest.raises(ValidationError) as exc_info:
            await catalog.create(product_fields, image)
        assert exc_info.value.field == "discounted_price"
        assert assets.stored == {}

    @pytest.mark.asyncio
    async def test_unknown_category_rejected(
        self, catalog: ProductCatalog, assets, image: AssetUpload, product_fields: dict
    ) -> None:
        """Only known product categories are accepted."""
        product_fields["category"] = "yogurt"
        with pytest.raises(ValidationError):
            await catalog.create(product_fields, image)
        assert assets.stored == {}

    @pytest.mark.asyncio
    async def test_failed_upload_creates_nothing(
        self,
        catalog: ProductCatalog,
        product_store: InMemoryProductStore,
        assets,
        image: AssetUpload,
        product_fields: dict,
    ) -> None:
        """An upload failure leaves no product behind."""
        assets.fail_store = True
        with pytest.raises(AssetProviderError):
            await catalog.create(product_fields, image)
        assert await product_store.count(ProductCriteria()) == 0

    @pytest.mark.asyncio
    async def test_failed_insert_releases_image(
        self,
        catalog: ProductCatalog,
        product_store: InMemoryProductStore,
        assets,
        image: AssetUpload,
        product_fields: dict,
        monkeypatch,
    ) -> None:
        """A store failure after upload releases the image and re-raises."""
        async def failing_insert(product):
            raise StoreUnavailableError("Catalog store is unavailable")

        monkeypatch.setattr(product_store, "insert", failing_insert)
        with pytest.raises(StoreUnavailableError):
            await catalog.create(product_fields, image)
        assert assets.stored == {}
        assert len(assets.released) == 1


class TestUpdate:
    """Tests for ProductCatalog.update."""

    @pytest.mark.asyncio
    async def test_reprice_recomputes_discount(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """100 -> 80 is 20% off; moving to 90 makes it 10%."""
        product = await catalog.create(product_fields, image)
        updated = await catalog.update(product.id, {"discounted_price": "90"}, actor="admin-2")
        assert updated.discount_percentage == 10
        assert updated.updated_by == "admin-2"

    @pytest.mark.asyncio
    async def test_invalid_reprice_leaves_product(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """A rejected update changes nothing."""
        product = await catalog.create(product_fields, image)
        with pytest.raises(ValidationError):
            await catalog.update(product.id, {"name": "Other", "discounted_price": "150"})
        stored = await catalog.get_by_id(product.id, count_view=False)
        assert stored.name == "Fresh Cow Milk"
        assert stored.discounted_price == Decimal("80")

    @pytest.mark.asyncio
    async def test_image_replacement_releases_old(
        self, catalog: ProductCatalog, assets, image: AssetUpload, product_fields: dict
    ) -> None:
        """The old image is released once the new one is stored."""
        product = await catalog.create(product_fields, image)
        old_id = product.image.storage_id
        updated = await catalog.update(product.id, {}, image=image)
        assert updated.image.storage_id != old_id
        assert assets.released == [old_id]

    @pytest.mark.asyncio
    async def test_update_does_not_reset_views(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """Updating a stale copy keeps the stored counters."""
        product = await catalog.create(product_fields, image)
        await catalog.get_by_id(product.id)
        await catalog.get_by_id(product.id)
        await catalog.update(product.id, {"description": "Updated"})
        assert (await catalog.get_by_id(product.id, count_view=False)).views == 2

    @pytest.mark.asyncio
    async def test_update_missing(self, catalog: ProductCatalog) -> None:
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await catalog.update("missing", {"name": "x"})


class TestStock:
    """Tests for stock and popularity updates."""

    @pytest.mark.asyncio
    async def test_zero_stock_marks_unavailable(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """Setting stock to 0 flips in_stock."""
        product = await catalog.create(product_fields, image)
        updated = await catalog.update_stock(product.id, stock_quantity=0)
        assert updated.stock_quantity == 0
        assert not updated.in_stock

    @pytest.mark.asyncio
    async def test_explicit_flag_wins(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """An explicit in_stock overrides the derived value."""
        product = await catalog.create(product_fields, image)
        updated = await catalog.update_stock(product.id, stock_quantity=5, in_stock=False)
        assert updated.stock_quantity == 5
        assert not updated.in_stock

    @pytest.mark.asyncio
    async def test_requires_a_value(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """At least one of the two values is needed."""
        product = await catalog.create(product_fields, image)
        with pytest.raises(ValidationError):
            await catalog.update_stock(product.id)

    @pytest.mark.asyncio
    async def test_negative_stock_rejected(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """Stock cannot go negative."""
        product = await catalog.create(product_fields, image)
        with pytest.raises(ValidationError):
            await catalog.update_stock(product.id, stock_quantity=-1)

    @pytest.mark.asyncio
    async def test_mark_popular(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """mark_popular sets the flag and records the actor."""
        product = await catalog.create(product_fields, image)
        updated = await catalog.mark_popular(product.id, actor="admin-3")
        assert updated.is_popular
        assert updated.updated_by == "admin-3"


class TestDelete:
    """Tests for ProductCatalog.delete."""

    @pytest.mark.asyncio
    async def test_delete_releases_image(
        self, catalog: ProductCatalog, assets, image: AssetUpload, product_fields: dict
    ) -> None:
        """The product goes away together with its image."""
        product = await catalog.create(product_fields, image)
        await catalog.delete(product.id)
        assert assets.released == [product.image.storage_id]
        with pytest.raises(NotFoundError):
            await catalog.get_by_id(product.id)

    @pytest.mark.asyncio
    async def test_delete_survives_release_failure(
        self, catalog: ProductCatalog, assets, image: AssetUpload, product_fields: dict
    ) -> None:
        """A failed image release does not undo the delete."""
        product = await catalog.create(product_fields, image)
        assets.fail_release = True
        await catalog.delete(product.id)
        with pytest.raises(NotFoundError):
            await catalog.get_by_id(product.id)

    @pytest.mark.asyncio
    async def test_delete_missing(self, catalog: ProductCatalog) -> None:
        """Deleting an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await catalog.delete("missing")


class TestGetById:
    """Tests for ProductCatalog.get_by_id."""

    @pytest.mark.asyncio
    async def test_counts_views(
        self, catalog: ProductCatalog, image: AssetUpload, product_fields: dict
    ) -> None:
        """Each read counts one view and reflects it."""
        product = await catalog.create(product_fields, image)
        assert (await catalog.get_by_id(product.id)).views == 1
        assert (await catalog.get_by_id(product.id)).views == 2
        assert (await catalog.get_by_id(product.id, count_view=False)).views == 2

    @pytest.mark.asyncio
    async def test_missing(self, catalog: ProductCatalog) -> None:
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await catalog.get_by_id("missing")


class TestListings:
    """Tests for storefront listings."""

    @pytest.mark.asyncio
    async def test_by_category(self, catalog: ProductCatalog, image: AssetUpload) -> None:
        """In-stock products of the category, best discount first."""
        small = await add_product(catalog, image, "Toned Milk", discounted="95")
        big = await add_product(catalog, image, "Full Cream", discounted="60")
        sold_out = await add_product(catalog, image, "Skimmed", discounted="50")
        await catalog.update_stock(sold_out.id, stock_quantity=0)
        await add_product(catalog, image, "Desi Ghee", category="ghee")

        products = await catalog.by_category("Milk")
        assert [p.id for p in products] == [big.id, small.id]

    @pytest.mark.asyncio
    async def test_by_category_empty(self, catalog: ProductCatalog) -> None:
        """A known category without products gives an empty list."""
        assert await catalog.by_category("cheese") == []

    @pytest.mark.asyncio
    async def test_by_category_unknown(self, catalog: ProductCatalog) -> None:
        """An unknown category raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await catalog.by_category("yogurt")

    @pytest.mark.asyncio
    async def test_popular_ordering(
        self,
        catalog: ProductCatalog,
        product_store: InMemoryProductStore,
        image: AssetUpload,
    ) -> None:
        """Discount first, then sales, then rating."""
        a = await add_product(catalog, image, "A", discounted="80", is_popular=True)
        b = await add_product(catalog, image, "B", discounted="80", is_popular=True)
        c = await add_product(catalog, image, "C", discounted="50", is_popular=True)
        d = await add_product(catalog, image, "D", discounted="80", is_popular=True)
        await add_product(catalog, image, "Not Popular", discounted="10")
        await product_store.increment(b.id, "sales_count", by=5)
        await product_store.increment(d.id, "sales_count", by=5)
        rated = await product_store.get(d.id)
        rated.ratings = RatingSummary(average=4.5, count=2)
        await product_store.update(rated)

        products = await catalog.popular()
        assert [p.id for p in products] == [c.id, d.id, b.id, a.id]

    @pytest.mark.asyncio
    async def test_popular_limit(self, catalog: ProductCatalog, image: AssetUpload) -> None:
        """The popular list is capped."""
        for i in range(4):
            await add_product(catalog, image, f"P{i}", is_popular=True)
        assert len(await catalog.popular(limit=3)) == 3

    @pytest.mark.asyncio
    async def test_discounted(self, catalog: ProductCatalog, image: AssetUpload) -> None:
        """Only products at or above the threshold, biggest discount first."""
        ten = await add_product(catalog, image, "Ten", discounted="90")
        await add_product(catalog, image, "Five", discounted="95")
        forty = await add_product(catalog, image, "Forty", discounted="60")

        products = await catalog.discounted(min_discount=10)
        assert [p.id for p in products] == [forty.id, ten.id]

    @pytest.mark.asyncio
    async def test_discounted_invalid_threshold(self, catalog: ProductCatalog) -> None:
        """Thresholds outside 0..100 are rejected."""
        with pytest.raises(ValidationError):
            await catalog.discounted(min_discount=120)

    @pytest.mark.asyncio
    async def test_category_counts(self, catalog: ProductCatalog, image: AssetUpload) -> None:
        """Counts per category with the in-stock share, largest first."""
        await add_product(catalog, image, "Milk 1")
        sold_out = await add_product(catalog, image, "Milk 2")
        await catalog.update_stock(sold_out.id, stock_quantity=0)
        await add_product(catalog, image, "Ghee 1", category="ghee")

        counts = await catalog.category_counts()
        assert [(c.category, c.count, c.available_count) for c in counts] == [
            ("milk", 2, 1),
            ("ghee", 1, 1),
        ]


class TestQuery:
    """Tests for ProductCatalog.query."""

    @pytest.mark.asyncio
    async def test_second_page(self, catalog: ProductCatalog, image: AssetUpload) -> None:
        """Page 2 of 25 products at limit 10 holds items 11-20."""
        for i in range(25):
            await add_product(catalog, image, f"Milk {i:02d}")
        query = CatalogFilterBuilder().build({"page": "2", "limit": "10", "sort": "name"})

        page = await catalog.query(query)
        assert page.total == 25
        assert page.total_pages == 3
        assert [p.name for p in page.items] == [f"Milk {i:02d}" for i in range(10, 20)]

    @pytest.mark.asyncio
    async def test_pages_cover_matches_once(
        self, catalog: ProductCatalog, image: AssetUpload
    ) -> None:
        """Walking every page yields each match exactly once."""
        for i in range(7):
            await add_product(catalog, image, f"Paneer {i}", category="paneer")
        await add_product(catalog, image, "Curd", category="curd")

        query = CatalogQuery(category="paneer", limit=3)
        first = await catalog.query(query)
        seen = []
        for page_number in range(1, first.total_pages + 1):
            seen.extend(p.id for p in (await catalog.query(query.with_page(page_number))).items)
        assert first.total == 7
        assert len(seen) == len(set(seen)) == 7

    @pytest.mark.asyncio
    async def test_filters(self, catalog: ProductCatalog, image: AssetUpload) -> None:
        """Price, discount, stock and search filters combine."""
        match = await add_product(
            catalog, image, "Organic Milk", original="200", discounted="150", tags="organic"
        )
        await add_product(catalog, image, "Cheap Milk", original="40", discounted="30")
        sold_out = await add_product(
            catalog, image, "Organic Ghee", category="ghee", original="200", discounted="100"
        )
        await catalog.update_stock(sold_out.id, stock_quantity=0)

        query = CatalogFilterBuilder().build(
            {"minPrice": "100", "minDiscount": "20", "inStock": "true", "search": "ORGANIC"}
        )
        page = await catalog.query(query)
        assert [p.id for p in page.items] == [match.id]
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_restricted_to_categories(
        self, catalog: ProductCatalog, image: AssetUpload
    ) -> None:
        """A category restriction intersects with a single category filter."""
        await add_product(catalog, image, "Milk")
        await add_product(catalog, image, "Ghee", category="ghee")

        page = await catalog.query(CatalogQuery().restrict_to(["milk", "curd"]))
        assert [p.name for p in page.items] == ["Milk"]
        empty = await catalog.query(CatalogQuery(category="ghee").restrict_to(["milk"]))
        assert empty.total == 0
