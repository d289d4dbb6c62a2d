"""Product catalog.

Product lifecycle on top of a ProductStore, with product images kept in
an AssetProvider. Every product owns exactly one stored image; the image
is released when the product is deleted or its image is replaced.
"""

from typing import Any

import structlog

from storefront.assets.provider import AssetProvider, AssetUpload, release_quietly
from storefront.catalog.query import CatalogQuery, PaginatedResult, SortField
from storefront.catalog.repository import (
    CategoryCount,
    ProductCriteria,
    ProductOrder,
    ProductStore,
)
from storefront.domain.entities import Product
from storefront.domain.exceptions import NotFoundError, ValidationError
from storefront.domain.value_objects import AssetReference, ProductCategory

logger = structlog.get_logger()

REQUIRED_PRODUCT_FIELDS = ("name", "category", "original_price", "discounted_price")
PRODUCT_CREATE_FIELDS = frozenset(
    {
        *REQUIRED_PRODUCT_FIELDS,
        "description",
        "tags",
        "in_stock",
        "stock_quantity",
        "is_featured",
        "is_popular",
    }
)

# Stands in for the image while fields are validated, before any upload.
_PENDING_IMAGE = AssetReference(storage_id="pending", url="pending")

_BY_CATEGORY_ORDER: ProductOrder = (
    (SortField.DISCOUNT_PERCENTAGE, True),
    (SortField.CREATED_AT, True),
)
_POPULAR_ORDER: ProductOrder = (
    (SortField.DISCOUNT_PERCENTAGE, True),
    (SortField.SALES_COUNT, True),
    (SortField.RATING, True),
)
_DISCOUNTED_ORDER: ProductOrder = ((SortField.DISCOUNT_PERCENTAGE, True),)


class ProductCatalog:
    """Service for product lifecycle and storefront listings."""

    def __init__(self, store: ProductStore, assets: AssetProvider) -> None:
        """Initialize catalog.

        Args:
            store: Product store.
            assets: Asset provider for product images.
        """
        self.store = store
        self.assets = assets

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    async def query(self, query: CatalogQuery) -> PaginatedResult[Product]:
        """Filter, sort and paginate products.

        Args:
            query: Validated catalog query.

        Returns:
            One page of products plus the total match count.
        """
        criteria = ProductCriteria.from_query(query)
        order = ((query.sort.field, query.sort.descending),)
        items = await self.store.find(criteria, order, skip=query.skip, limit=query.limit)
        total = await self.store.count(criteria)
        return PaginatedResult(items=items, total=total, page=query.page, limit=query.limit)

    async def by_category(self, category: str, limit: int = 10) -> list[Product]:
        """In-stock products of one category, best discounts first.

        Args:
            category: Product category value.
            limit: Maximum number of products.

        Returns:
            Products, possibly empty.

        Raises:
            NotFoundError: If the category is not a known product category.
        """
        try:
            parsed = ProductCategory.parse(category)
        except ValidationError:
            raise NotFoundError("Category", category) from None
        return await self.store.find(
            ProductCriteria(categories=(parsed.value,), in_stock=True),
            _BY_CATEGORY_ORDER,
            limit=_positive(limit, "limit"),
        )

    async def popular(self, limit: int = 8) -> list[Product]:
        """In-stock products flagged popular."""
        return await self.store.find(
            ProductCriteria(is_popular=True, in_stock=True),
            _POPULAR_ORDER,
            limit=_positive(limit, "limit"),
        )

    async def discounted(self, min_discount: int = 10, limit: int = 6) -> list[Product]:
        """In-stock products with at least ``min_discount`` percent off."""
        if not 0 <= min_discount <= 100:
            raise ValidationError("min_discount must be between 0 and 100", field="min_discount")
        return await self.store.find(
            ProductCriteria(min_discount=min_discount, in_stock=True),
            _DISCOUNTED_ORDER,
            limit=_positive(limit, "limit"),
        )

    async def category_counts(self) -> list[CategoryCount]:
        """Product and in-stock counts per category, largest first."""
        return await self.store.category_counts()

    # -------------------------------------------------------------------------
    # Single product
    # -------------------------------------------------------------------------

    async def get_by_id(self, product_id: str, count_view: bool = True) -> Product:
        """Get a product, counting the view.

        The view counter is incremented atomically in the store; the
        returned product reflects the increment.

        Args:
            product_id: Product id.
            count_view: Increment the view counter.

        Returns:
            Product.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = await self.store.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        if count_view and await self.store.increment(product_id, "views"):
            product.views += 1
        return product

    async def create(
        self,
        fields: dict[str, Any],
        image: AssetUpload | None,
        actor: str | None = None,
    ) -> Product:
        """Create a product with its image.

        Fields are validated before the image is stored. If storing the
        product fails after the upload, the image is released and the
        original error is raised.

        Args:
            fields: Product fields.
            image: Product image upload.
            actor: Creating actor.

        Returns:
            Created product.

        Raises:
            ValidationError: On missing or invalid fields or image.
            AssetProviderError: If the image cannot be stored.
        """
        if image is None:
            raise ValidationError("Product image is required", field="image")
        missing = [
            name for name in REQUIRED_PRODUCT_FIELDS
            if fields.get(name) is None or str(fields.get(name)).strip() == ""
        ]
        if missing:
            raise ValidationError(
                "Please provide all required fields",
                field=missing[0],
                details={"missing": missing},
            )
        unknown = set(fields) - PRODUCT_CREATE_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown product fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )

        product = Product.create(image=_PENDING_IMAGE, created_by=actor, **fields)
        product.image = await self.assets.store(
            image,
            {"folder": "products", "tags": [product.category.value]},
        )
        try:
            product = await self.store.insert(product)
        except Exception:
            await release_quietly(self.assets, product.image)
            raise

        logger.info(
            "Product created",
            product_id=product.id,
            category=product.category.value,
            discount_percentage=product.discount_percentage,
            actor=actor,
        )
        return product

    async def update(
        self,
        product_id: str,
        changes: dict[str, Any],
        image: AssetUpload | None = None,
        actor: str | None = None,
    ) -> Product:
        """Apply a partial update, optionally replacing the image.

        Args:
            product_id: Product id.
            changes: Fields to change.
            image: Optional replacement image.
            actor: Updating actor.

        Returns:
            Updated product.

        Raises:
            NotFoundError: If the product does not exist.
            ValidationError: On invalid changes.
        """
        product = await self._require(product_id)
        product.apply_changes(changes, actor=actor)

        new_image = None
        previous_image = None
        if image is not None:
            new_image = await self.assets.store(
                image,
                {"folder": "products", "tags": [product.category.value]},
            )
            previous_image = product.replace_image(new_image, actor=actor)
        try:
            product = await self.store.update(product)
        except Exception:
            await release_quietly(self.assets, new_image)
            raise
        await release_quietly(self.assets, previous_image)

        logger.info(
            "Product updated",
            product_id=product.id,
            fields=sorted(changes),
            image_replaced=new_image is not None,
            actor=actor,
        )
        return product

    async def update_stock(
        self,
        product_id: str,
        stock_quantity: Any | None = None,
        in_stock: Any | None = None,
        actor: str | None = None,
    ) -> Product:
        """Set stock level and availability.

        Args:
            product_id: Product id.
            stock_quantity: New units on hand.
            in_stock: Explicit availability; overrides the derived value.
            actor: Updating actor.

        Returns:
            Updated product.
        """
        if stock_quantity is None and in_stock is None:
            raise ValidationError("Provide stock_quantity or in_stock", field="stock_quantity")
        product = await self._require(product_id)
        product.set_stock(stock_quantity=stock_quantity, in_stock=in_stock, actor=actor)
        product = await self.store.update(product)
        logger.info(
            "Product stock updated",
            product_id=product.id,
            stock_quantity=product.stock_quantity,
            in_stock=product.in_stock,
        )
        return product

    async def mark_popular(self, product_id: str, actor: str | None = None) -> Product:
        """Flag a product as popular."""
        product = await self._require(product_id)
        product.mark_popular(actor=actor)
        return await self.store.update(product)

    async def delete(self, product_id: str) -> None:
        """Delete a product and release its image.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = await self._require(product_id)
        if not await self.store.delete(product_id):
            raise NotFoundError("Product", product_id)
        await release_quietly(self.assets, product.image)
        logger.info("Product deleted", product_id=product_id)

    async def _require(self, product_id: str) -> Product:
        product = await self.store.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product


def _positive(value: int, field: str) -> int:
    if value < 1:
        raise ValidationError(f"{field} must be at least 1", field=field)
    return value
