"""SQL implementations of the catalog stores.

Rows are mapped to domain entities at this boundary; ORM objects never
leave the store. Each call runs in its own session, so every write is a
single committed transaction.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.catalog.query import SortField
from storefront.catalog.repository import (
    CATEGORY_SORT_FIELDS,
    COUNTER_FIELDS,
    UNSET,
    CategoryCount,
    CategoryCriteria,
    CategoryStore,
    ImageCriteria,
    ImageStore,
    ProductCriteria,
    ProductOrder,
    ProductStore,
)
from storefront.domain.entities import Category, LibraryImage, Product
from storefront.domain.exceptions import ConflictError, NotFoundError, StoreUnavailableError
from storefront.domain.state_machines import CategoryStatus
from storefront.domain.value_objects import AssetReference, RatingSummary
from storefront.infrastructure.database import Database
from storefront.infrastructure.models import (
    TAG_SEPARATOR,
    CategoryModel,
    ImageModel,
    ProductModel,
)

logger = structlog.get_logger()


def _aware(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from SQLite."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class _SqlStore:
    """Shared session handling and driver error mapping."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.database.session() as session:
                yield session
        except IntegrityError as e:
            logger.warning("Store constraint violated", operation=operation, error=str(e.orig))
            raise ConflictError(
                "Record conflicts with an existing one",
                details={"operation": operation},
            ) from e
        except SQLAlchemyError as e:
            logger.error("Store operation failed", operation=operation, error=str(e))
            raise StoreUnavailableError(
                "Catalog store is unavailable",
                details={"operation": operation},
            ) from e


# ============================================================================
# Categories
# ============================================================================


def _category_to_entity(row: CategoryModel) -> Category:
    return Category(
        id=row.id,
        name=row.name,
        slug=row.slug,
        description=row.description,
        icon=row.icon,
        image=AssetReference.from_dict(row.image),
        parent_id=row.parent_id,
        is_featured=row.is_featured,
        display_order=row.display_order,
        status=CategoryStatus(row.status),
        metadata=dict(row.metadata_ or {}),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _category_values(category: Category) -> dict[str, Any]:
    return {
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "icon": category.icon,
        "image": category.image.to_dict() if category.image else None,
        "parent_id": category.parent_id,
        "is_featured": category.is_featured,
        "display_order": category.display_order,
        "status": category.status.value,
        "metadata_": dict(category.metadata),
        "created_at": category.created_at,
        "updated_at": category.updated_at,
    }


class SqlCategoryStore(_SqlStore, CategoryStore):
    """Category store over the categories table."""

    async def get(self, category_id: str) -> Category | None:
        """Get category by id."""
        async with self._session("category.get") as session:
            row = await session.get(CategoryModel, category_id)
            return _category_to_entity(row) if row else None

    async def find_by_slug(self, slug: str) -> Category | None:
        """Get category by slug."""
        async with self._session("category.find_by_slug") as session:
            result = await session.execute(select(CategoryModel).where(CategoryModel.slug == slug))
            row = result.scalar_one_or_none()
            return _category_to_entity(row) if row else None

    async def find_by_name_or_slug(self, name: str, slug: str) -> Category | None:
        """Get a category that has the exact name or the slug."""
        async with self._session("category.find_by_name_or_slug") as session:
            result = await session.execute(
                select(CategoryModel)
                .where(or_(CategoryModel.name == name, CategoryModel.slug == slug))
                .order_by(CategoryModel.created_at.asc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _category_to_entity(row) if row else None

    async def find(
        self,
        criteria: CategoryCriteria,
        sort_field: str = "display_order",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Category]:
        """Find categories; ties break by creation order."""
        if sort_field not in CATEGORY_SORT_FIELDS:
            raise ValueError(f"Unknown category sort field: {sort_field}")
        stmt = select(CategoryModel)
        if criteria.status is not None:
            stmt = stmt.where(CategoryModel.status == criteria.status.value)
        if criteria.parent is not UNSET:
            if criteria.parent is None:
                stmt = stmt.where(CategoryModel.parent_id.is_(None))
            else:
                stmt = stmt.where(CategoryModel.parent_id == criteria.parent)
        if criteria.is_featured is not None:
            stmt = stmt.where(CategoryModel.is_featured.is_(criteria.is_featured))
        column = getattr(CategoryModel, sort_field)
        stmt = stmt.order_by(
            column.desc() if descending else column.asc(),
            CategoryModel.created_at.asc(),
            CategoryModel.id.asc(),
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session("category.find") as session:
            result = await session.execute(stmt)
            return [_category_to_entity(row) for row in result.scalars()]

    async def count(self) -> int:
        """Count all categories."""
        async with self._session("category.count") as session:
            return int(await session.scalar(select(func.count(CategoryModel.id))) or 0)

    async def descendants(self, category_id: str) -> list[Category]:
        """All categories below the given one, at any depth and status.

        UNION drops rows already seen, so the recursion stops even if the
        stored parent links contain a cycle.
        """
        subtree = (
            select(CategoryModel.id)
            .where(CategoryModel.parent_id == category_id)
            .cte("subtree", recursive=True)
        )
        subtree = subtree.union(
            select(CategoryModel.id).where(CategoryModel.parent_id == subtree.c.id)
        )
        stmt = (
            select(CategoryModel)
            .where(CategoryModel.id.in_(select(subtree.c.id)))
            .where(CategoryModel.id != category_id)
            .order_by(CategoryModel.display_order.asc(), CategoryModel.created_at.asc())
        )
        async with self._session("category.descendants") as session:
            result = await session.execute(stmt)
            return [_category_to_entity(row) for row in result.scalars()]

    async def insert(self, category: Category) -> Category:
        """Insert a new category."""
        async with self._session("category.insert") as session:
            session.add(CategoryModel(id=category.id, **_category_values(category)))
            await session.flush()
        return category

    async def update(self, category: Category) -> Category:
        """Write back a category."""
        async with self._session("category.update") as session:
            row = await session.get(CategoryModel, category.id)
            if row is None:
                raise NotFoundError("Category", category.id)
            for name, value in _category_values(category).items():
                setattr(row, name, value)
            await session.flush()
        return category


# ============================================================================
# Products
# ============================================================================


_PRODUCT_SORT_COLUMNS = {
    SortField.CREATED_AT: ProductModel.created_at,
    SortField.UPDATED_AT: ProductModel.updated_at,
    SortField.NAME: ProductModel.name,
    SortField.ORIGINAL_PRICE: ProductModel.original_price,
    SortField.DISCOUNTED_PRICE: ProductModel.discounted_price,
    SortField.DISCOUNT_PERCENTAGE: ProductModel.discount_percentage,
    SortField.VIEWS: ProductModel.views,
    SortField.SALES_COUNT: ProductModel.sales_count,
    SortField.RATING: ProductModel.rating_average,
}


def _product_to_entity(row: ProductModel) -> Product:
    return Product(
        id=row.id,
        image=AssetReference.from_dict(row.image),
        name=row.name,
        category=row.category,
        original_price=row.original_price,
        discounted_price=row.discounted_price,
        discount_percentage=row.discount_percentage,
        description=row.description,
        tags=list(row.tags or []),
        in_stock=row.in_stock,
        stock_quantity=row.stock_quantity,
        ratings=RatingSummary(average=row.rating_average, count=row.rating_count),
        views=row.views,
        sales_count=row.sales_count,
        is_featured=row.is_featured,
        is_popular=row.is_popular,
        created_by=row.created_by,
        updated_by=row.updated_by,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _product_values(product: Product) -> dict[str, Any]:
    return {
        "image": product.image.to_dict(),
        "name": product.name,
        "category": product.category.value,
        "original_price": product.original_price,
        "discounted_price": product.discounted_price,
        "discount_percentage": product.discount_percentage,
        "description": product.description,
        "tags": list(product.tags),
        "tags_text": TAG_SEPARATOR.join(product.tags),
        "in_stock": product.in_stock,
        "stock_quantity": product.stock_quantity,
        "rating_average": product.ratings.average,
        "rating_count": product.ratings.count,
        "views": product.views,
        "sales_count": product.sales_count,
        "is_featured": product.is_featured,
        "is_popular": product.is_popular,
        "created_by": product.created_by,
        "updated_by": product.updated_by,
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }


def _product_filters(criteria: ProductCriteria) -> list[Any]:
    clauses: list[Any] = []
    if criteria.categories is not None:
        clauses.append(ProductModel.category.in_(list(criteria.categories)))
    if criteria.price.min is not None:
        clauses.append(ProductModel.discounted_price >= criteria.price.min)
    if criteria.price.max is not None:
        clauses.append(ProductModel.discounted_price <= criteria.price.max)
    if criteria.min_discount is not None:
        clauses.append(ProductModel.discount_percentage >= criteria.min_discount)
    if criteria.in_stock is not None:
        clauses.append(ProductModel.in_stock.is_(criteria.in_stock))
    if criteria.is_popular is not None:
        clauses.append(ProductModel.is_popular.is_(criteria.is_popular))
    if criteria.search:
        term = criteria.search.lower()
        pattern = f"%{escape_like(term)}%"
        matches = [
            ProductModel.name.ilike(pattern, escape="\\"),
            ProductModel.description.ilike(pattern, escape="\\"),
        ]
        # a term holding the separator could only match across two tags
        if TAG_SEPARATOR not in term:
            matches.append(ProductModel.tags_text.ilike(pattern, escape="\\"))
        clauses.append(or_(*matches))
    return clauses


class SqlProductStore(_SqlStore, ProductStore):
    """Product store over the products table."""

    async def get(self, product_id: str) -> Product | None:
        """Get product by id."""
        async with self._session("product.get") as session:
            row = await session.get(ProductModel, product_id)
            return _product_to_entity(row) if row else None

    async def find(
        self,
        criteria: ProductCriteria,
        order: ProductOrder,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Product]:
        """Find products matching criteria, in the given order."""
        stmt = select(ProductModel).where(*_product_filters(criteria))
        ordering = []
        for sort_field, descending in order:
            column = _PRODUCT_SORT_COLUMNS[sort_field]
            ordering.append(column.desc() if descending else column.asc())
        stmt = stmt.order_by(*ordering, ProductModel.id.asc()).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session("product.find") as session:
            result = await session.execute(stmt)
            return [_product_to_entity(row) for row in result.scalars()]

    async def count(self, criteria: ProductCriteria) -> int:
        """Count products matching criteria."""
        stmt = select(func.count(ProductModel.id)).where(*_product_filters(criteria))
        async with self._session("product.count") as session:
            return int(await session.scalar(stmt) or 0)

    async def insert(self, product: Product) -> Product:
        """Insert a new product."""
        async with self._session("product.insert") as session:
            session.add(ProductModel(id=product.id, **_product_values(product)))
            await session.flush()
        return product

    async def update(self, product: Product) -> Product:
        """Write back a product.

        Counters are left to ``increment`` so concurrent view counts are
        not overwritten by a stale copy.
        """
        values = _product_values(product)
        for counter in COUNTER_FIELDS:
            values.pop(counter)
        async with self._session("product.update") as session:
            result = await session.execute(
                update(ProductModel).where(ProductModel.id == product.id).values(**values)
            )
            if result.rowcount == 0:
                raise NotFoundError("Product", product.id)
        return product

    async def delete(self, product_id: str) -> bool:
        """Delete a product."""
        async with self._session("product.delete") as session:
            result = await session.execute(delete(ProductModel).where(ProductModel.id == product_id))
            return result.rowcount > 0

    async def increment(self, product_id: str, field_name: str, by: int = 1) -> bool:
        """Atomically add to a counter field."""
        if field_name not in COUNTER_FIELDS:
            raise ValueError(f"Not a counter field: {field_name}")
        column = getattr(ProductModel, field_name)
        async with self._session("product.increment") as session:
            result = await session.execute(
                update(ProductModel)
                .where(ProductModel.id == product_id)
                .values({column: column + by})
            )
            return result.rowcount > 0

    async def category_counts(self) -> list[CategoryCount]:
        """Product and in-stock counts per category."""
        total = func.count(ProductModel.id).label("total")
        available = func.sum(case((ProductModel.in_stock.is_(True), 1), else_=0)).label("available")
        stmt = (
            select(ProductModel.category, total, available)
            .group_by(ProductModel.category)
            .order_by(total.desc(), ProductModel.category.asc())
        )
        async with self._session("product.category_counts") as session:
            result = await session.execute(stmt)
            return [
                CategoryCount(category=category, count=int(count), available_count=int(avail or 0))
                for category, count, avail in result.all()
            ]


# ============================================================================
# Image Library
# ============================================================================


def _image_to_entity(row: ImageModel) -> LibraryImage:
    return LibraryImage(
        id=row.id,
        asset=AssetReference.from_dict(row.asset),
        original_name=row.original_name,
        mime_type=row.mime_type,
        size_bytes=row.size_bytes,
        usage=row.usage,
        description=row.description,
        uploaded_by=row.uploaded_by,
        is_active=row.is_active,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _image_values(image: LibraryImage) -> dict[str, Any]:
    return {
        "storage_id": image.asset.storage_id,
        "asset": image.asset.to_dict(),
        "original_name": image.original_name,
        "mime_type": image.mime_type,
        "size_bytes": image.size_bytes,
        "usage": image.usage.value,
        "description": image.description,
        "uploaded_by": image.uploaded_by,
        "is_active": image.is_active,
        "created_at": image.created_at,
        "updated_at": image.updated_at,
    }


def _image_filters(criteria: ImageCriteria) -> list[Any]:
    clauses: list[Any] = []
    if criteria.usage is not None:
        clauses.append(ImageModel.usage == criteria.usage.value)
    if criteria.is_active is not None:
        clauses.append(ImageModel.is_active.is_(criteria.is_active))
    return clauses


class SqlImageStore(_SqlStore, ImageStore):
    """Library image store over the images table."""

    async def get(self, image_id: str) -> LibraryImage | None:
        """Get image by id."""
        async with self._session("image.get") as session:
            row = await session.get(ImageModel, image_id)
            return _image_to_entity(row) if row else None

    async def find(
        self,
        criteria: ImageCriteria,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[LibraryImage]:
        """Find images, newest first; ties break by id."""
        stmt = (
            select(ImageModel)
            .where(*_image_filters(criteria))
            .order_by(ImageModel.created_at.desc(), ImageModel.id.asc())
            .offset(skip)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session("image.find") as session:
            result = await session.execute(stmt)
            return [_image_to_entity(row) for row in result.scalars()]

    async def count(self, criteria: ImageCriteria) -> int:
        """Count images matching criteria."""
        stmt = select(func.count(ImageModel.id)).where(*_image_filters(criteria))
        async with self._session("image.count") as session:
            return int(await session.scalar(stmt) or 0)

    async def insert(self, image: LibraryImage) -> LibraryImage:
        """Insert a new image record."""
        async with self._session("image.insert") as session:
            session.add(ImageModel(id=image.id, **_image_values(image)))
            await session.flush()
        return image

    async def update(self, image: LibraryImage) -> LibraryImage:
        """Write back an image record."""
        async with self._session("image.update") as session:
            result = await session.execute(
                update(ImageModel).where(ImageModel.id == image.id).values(**_image_values(image))
            )
            if result.rowcount == 0:
                raise NotFoundError("Image", image.id)
        return image

    async def delete(self, image_id: str) -> bool:
        """Delete an image record."""
        async with self._session("image.delete") as session:
            result = await session.execute(delete(ImageModel).where(ImageModel.id == image_id))
            return result.rowcount > 0
