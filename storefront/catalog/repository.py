"""Catalog stores.

Defines the document-store capability the catalog runs against and an
in-memory implementation of it. The SQL implementation lives in
``storefront.infrastructure.sql_repository``.

Stores hand out copies: mutating a returned entity changes nothing until
it is written back with ``update``. A single ``update`` is the unit of
atomicity; there are no multi-document transactions.
"""

import copy
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from storefront.catalog.query import CatalogQuery, SortField, StockFilter
from storefront.domain.entities import Category, LibraryImage, Product
from storefront.domain.exceptions import ConflictError, NotFoundError
from storefront.domain.state_machines import CategoryStatus
from storefront.domain.value_objects import ImageUsage, PriceRange


class _Unset(Enum):
    UNSET = "unset"


UNSET = _Unset.UNSET
"""Marker for "no parent filter", as opposed to ``None`` (top-level only)."""


# ============================================================================
# Criteria
# ============================================================================


@dataclass(frozen=True)
class CategoryCriteria:
    """Category filter.

    Attributes:
        status: Required status, or None for any.
        parent: UNSET for any parent, None for top-level only,
            or an id for direct children of that category.
        is_featured: Required featured flag, or None for any.
    """

    status: CategoryStatus | None = CategoryStatus.ACTIVE
    parent: str | None | _Unset = UNSET
    is_featured: bool | None = None

    def matches(self, category: Category) -> bool:
        """Check whether a category satisfies the filter."""
        if self.status is not None and category.status != self.status:
            return False
        if self.parent is not UNSET and category.parent_id != self.parent:
            return False
        if self.is_featured is not None and category.is_featured != self.is_featured:
            return False
        return True


CATEGORY_SORT_FIELDS = ("display_order", "name", "slug", "created_at", "updated_at")


@dataclass(frozen=True)
class ProductCriteria:
    """Product filter; every set field must match.

    Attributes:
        categories: Allowed categories, or None for any.
        price: Bounds on the discounted price.
        min_discount: Lower bound on the discount percentage.
        in_stock: Required availability, or None for any.
        is_popular: Required popular flag, or None for any.
        search: Case-insensitive substring over name, description, tags.
    """

    categories: tuple[str, ...] | None = None
    price: PriceRange = PriceRange()
    min_discount: int | None = None
    in_stock: bool | None = None
    is_popular: bool | None = None
    search: str | None = None

    @classmethod
    def from_query(cls, query: CatalogQuery) -> "ProductCriteria":
        """Derive store criteria from a catalog query.

        A single category and a category restriction intersect.

        Args:
            query: Validated catalog query.

        Returns:
            ProductCriteria.
        """
        categories: tuple[str, ...] | None = query.categories
        if query.category is not None:
            if categories is None or query.category in categories:
                categories = (query.category,)
            else:
                categories = ()
        in_stock = {
            StockFilter.ANY: None,
            StockFilter.IN_STOCK: True,
            StockFilter.OUT_OF_STOCK: False,
        }[query.stock]
        return cls(
            categories=categories,
            price=query.price,
            min_discount=query.min_discount,
            in_stock=in_stock,
            search=query.search,
        )

    def matches(self, product: Product) -> bool:
        """Check whether a product satisfies the filter."""
        if self.categories is not None and product.category.value not in self.categories:
            return False
        if not self.price.contains(product.discounted_price):
            return False
        if self.min_discount is not None and product.discount_percentage < self.min_discount:
            return False
        if self.in_stock is not None and product.in_stock != self.in_stock:
            return False
        if self.is_popular is not None and product.is_popular != self.is_popular:
            return False
        if self.search:
            term = self.search.lower()
            haystacks = [product.name, product.description, *product.tags]
            if not any(term in text.lower() for text in haystacks):
                return False
        return True


ProductOrder = Sequence[tuple[SortField, bool]]
"""Sort keys as (field, descending) pairs; the store appends id ascending."""


def product_sort_value(product: Product, sort_field: SortField) -> Any:
    """Value of a product's sort field."""
    if sort_field == SortField.RATING:
        return product.ratings.average
    return getattr(product, sort_field.value)


@dataclass(frozen=True)
class CategoryCount:
    """Product counts for one category.

    Attributes:
        category: Category value.
        count: Number of products.
        available_count: Number of in-stock products.
    """

    category: str
    count: int
    available_count: int


@dataclass(frozen=True)
class ImageCriteria:
    """Library image filter.

    Attributes:
        usage: Required usage, or None for any.
        is_active: Required active flag, or None for any.
    """

    usage: ImageUsage | None = None
    is_active: bool | None = None

    def matches(self, image: LibraryImage) -> bool:
        """Check whether an image satisfies the filter."""
        if self.usage is not None and image.usage != self.usage:
            return False
        if self.is_active is not None and image.is_active != self.is_active:
            return False
        return True


# ============================================================================
# Store Capabilities
# ============================================================================


class CategoryStore(ABC):
    """Document store for categories."""

    def is_valid_id(self, value: str) -> bool:
        """Check whether a string has the store's id syntax.

        Args:
            value: Candidate identifier.

        Returns:
            True if value looks like an id rather than a slug.
        """
        try:
            UUID(value)
        except (ValueError, TypeError, AttributeError):
            return False
        return True

    @abstractmethod
    async def get(self, category_id: str) -> Category | None:
        """Get category by id."""

    @abstractmethod
    async def find_by_slug(self, slug: str) -> Category | None:
        """Get category by slug."""

    @abstractmethod
    async def find_by_name_or_slug(self, name: str, slug: str) -> Category | None:
        """Get a category that has the exact name or the slug."""

    @abstractmethod
    async def find(
        self,
        criteria: CategoryCriteria,
        sort_field: str = "display_order",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Category]:
        """Find categories; ties break by creation order."""

    @abstractmethod
    async def count(self) -> int:
        """Count all categories."""

    @abstractmethod
    async def descendants(self, category_id: str) -> list[Category]:
        """All categories below the given one, at any depth and status."""

    @abstractmethod
    async def insert(self, category: Category) -> Category:
        """Insert a new category.

        Raises:
            ConflictError: If the name or slug is taken.
        """

    @abstractmethod
    async def update(self, category: Category) -> Category:
        """Write back a category.

        Raises:
            ConflictError: If the name or slug is taken by another category.
        """


class ProductStore(ABC):
    """Document store for products."""

    @abstractmethod
    async def get(self, product_id: str) -> Product | None:
        """Get product by id."""

    @abstractmethod
    async def find(
        self,
        criteria: ProductCriteria,
        order: ProductOrder,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Product]:
        """Find products matching criteria, in the given order."""

    @abstractmethod
    async def count(self, criteria: ProductCriteria) -> int:
        """Count products matching criteria."""

    @abstractmethod
    async def insert(self, product: Product) -> Product:
        """Insert a new product."""

    @abstractmethod
    async def update(self, product: Product) -> Product:
        """Write back a product.

        Counter fields are only changed through ``increment``.

        Raises:
            NotFoundError: If the product does not exist.
        """

    @abstractmethod
    async def delete(self, product_id: str) -> bool:
        """Delete a product; returns False if it did not exist."""

    @abstractmethod
    async def increment(self, product_id: str, field_name: str, by: int = 1) -> bool:
        """Atomically add to a counter field; returns False if missing."""

    @abstractmethod
    async def category_counts(self) -> list[CategoryCount]:
        """Product and in-stock counts per category, by count descending."""


class ImageStore(ABC):
    """Document store for library images."""

    @abstractmethod
    async def get(self, image_id: str) -> LibraryImage | None:
        """Get image by id."""

    @abstractmethod
    async def find(
        self,
        criteria: ImageCriteria,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[LibraryImage]:
        """Find images, newest first; ties break by id."""

    @abstractmethod
    async def count(self, criteria: ImageCriteria) -> int:
        """Count images matching criteria."""

    @abstractmethod
    async def insert(self, image: LibraryImage) -> LibraryImage:
        """Insert a new image record.

        Raises:
            ConflictError: If the id or storage id is taken.
        """

    @abstractmethod
    async def update(self, image: LibraryImage) -> LibraryImage:
        """Write back an image record.

        Raises:
            NotFoundError: If the image does not exist.
        """

    @abstractmethod
    async def delete(self, image_id: str) -> bool:
        """Delete an image record; returns False if it did not exist."""


COUNTER_FIELDS = frozenset({"views", "sales_count"})


# ============================================================================
# In-Memory Stores
# ============================================================================


class InMemoryCategoryStore(CategoryStore):
    """In-memory category store.

    Categories are kept in insertion order, which doubles as creation
    order for tie-breaks.
    """

    def __init__(self) -> None:
        self._categories: dict[str, Category] = {}

    async def get(self, category_id: str) -> Category | None:
        """Get category by id."""
        category = self._categories.get(category_id)
        return copy.deepcopy(category) if category else None

    async def find_by_slug(self, slug: str) -> Category | None:
        """Get category by slug."""
        for category in self._categories.values():
            if category.slug == slug:
                return copy.deepcopy(category)
        return None

    async def find_by_name_or_slug(self, name: str, slug: str) -> Category | None:
        """Get a category that has the exact name or the slug."""
        for category in self._categories.values():
            if category.name == name or category.slug == slug:
                return copy.deepcopy(category)
        return None

    async def find(
        self,
        criteria: CategoryCriteria,
        sort_field: str = "display_order",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Category]:
        """Find categories; ties break by creation order."""
        matches = [c for c in self._categories.values() if criteria.matches(c)]
        matches.sort(key=lambda c: getattr(c, sort_field), reverse=descending)
        if limit is not None:
            matches = matches[:limit]
        return copy.deepcopy(matches)

    async def count(self) -> int:
        """Count all categories."""
        return len(self._categories)

    async def descendants(self, category_id: str) -> list[Category]:
        """All categories below the given one, at any depth and status."""
        found: dict[str, Category] = {}
        frontier = [category_id]
        while frontier:
            parent_id = frontier.pop()
            for category in self._categories.values():
                if category.parent_id == parent_id and category.id not in found:
                    if category.id == category_id:
                        continue
                    found[category.id] = category
                    frontier.append(category.id)
        return copy.deepcopy(list(found.values()))

    async def insert(self, category: Category) -> Category:
        """Insert a new category."""
        self._check_unique(category)
        self._categories[category.id] = copy.deepcopy(category)
        return copy.deepcopy(category)

    async def update(self, category: Category) -> Category:
        """Write back a category."""
        if category.id not in self._categories:
            raise NotFoundError("Category", category.id)
        self._check_unique(category)
        self._categories[category.id] = copy.deepcopy(category)
        return copy.deepcopy(category)

    def _check_unique(self, category: Category) -> None:
        for other in self._categories.values():
            if other.id == category.id:
                continue
            if other.name == category.name or other.slug == category.slug:
                raise ConflictError(
                    "Category with this name or slug already exists",
                    details={"name": category.name, "slug": category.slug},
                )


class InMemoryProductStore(ProductStore):
    """In-memory product store."""

    def __init__(self) -> None:
        self._products: dict[str, Product] = {}

    async def get(self, product_id: str) -> Product | None:
        """Get product by id."""
        product = self._products.get(product_id)
        return copy.deepcopy(product) if product else None

    async def find(
        self,
        criteria: ProductCriteria,
        order: ProductOrder,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Product]:
        """Find products matching criteria, in the given order."""
        matches = [p for p in self._products.values() if criteria.matches(p)]
        # Stable sorts, least significant key first.
        matches.sort(key=lambda p: p.id)
        for sort_field, descending in reversed(list(order)):
            matches.sort(key=lambda p: product_sort_value(p, sort_field), reverse=descending)
        end = None if limit is None else skip + limit
        return copy.deepcopy(matches[skip:end])

    async def count(self, criteria: ProductCriteria) -> int:
        """Count products matching criteria."""
        return sum(1 for p in self._products.values() if criteria.matches(p))

    async def insert(self, product: Product) -> Product:
        """Insert a new product."""
        if product.id in self._products:
            raise ConflictError(f"Product {product.id} already exists")
        self._products[product.id] = copy.deepcopy(product)
        return copy.deepcopy(product)

    async def update(self, product: Product) -> Product:
        """Write back a product; counters keep their stored values."""
        existing = self._products.get(product.id)
        if existing is None:
            raise NotFoundError("Product", product.id)
        stored = copy.deepcopy(product)
        for counter in COUNTER_FIELDS:
            setattr(stored, counter, getattr(existing, counter))
        self._products[product.id] = stored
        return copy.deepcopy(stored)

    async def delete(self, product_id: str) -> bool:
        """Delete a product."""
        return self._products.pop(product_id, None) is not None

    async def increment(self, product_id: str, field_name: str, by: int = 1) -> bool:
        """Atomically add to a counter field."""
        if field_name not in COUNTER_FIELDS:
            raise ValueError(f"Not a counter field: {field_name}")
        product = self._products.get(product_id)
        if product is None:
            return False
        setattr(product, field_name, getattr(product, field_name) + by)
        return True

    async def category_counts(self) -> list[CategoryCount]:
        """Product and in-stock counts per category."""
        totals: dict[str, list[int]] = {}
        for product in self._products.values():
            entry = totals.setdefault(product.category.value, [0, 0])
            entry[0] += 1
            if product.in_stock:
                entry[1] += 1
        counts = [
            CategoryCount(category=name, count=count, available_count=available)
            for name, (count, available) in totals.items()
        ]
        counts.sort(key=lambda c: (-c.count, c.category))
        return counts


class InMemoryImageStore(ImageStore):
    """In-memory library image store."""

    def __init__(self) -> None:
        self._images: dict[str, LibraryImage] = {}

    async def get(self, image_id: str) -> LibraryImage | None:
        """Get image by id."""
        image = self._images.get(image_id)
        return copy.deepcopy(image) if image else None

    async def find(
        self,
        criteria: ImageCriteria,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[LibraryImage]:
        """Find images, newest first; ties break by id."""
        matches = [i for i in self._images.values() if criteria.matches(i)]
        matches.sort(key=lambda i: i.id)
        matches.sort(key=lambda i: i.created_at, reverse=True)
        end = None if limit is None else skip + limit
        return copy.deepcopy(matches[skip:end])

    async def count(self, criteria: ImageCriteria) -> int:
        """Count images matching criteria."""
        return sum(1 for i in self._images.values() if criteria.matches(i))

    async def insert(self, image: LibraryImage) -> LibraryImage:
        """Insert a new image record."""
        for other in self._images.values():
            if other.id == image.id or other.asset.storage_id == image.asset.storage_id:
                raise ConflictError(
                    "Image record already exists",
                    details={"storage_id": image.asset.storage_id},
                )
        self._images[image.id] = copy.deepcopy(image)
        return copy.deepcopy(image)

    async def update(self, image: LibraryImage) -> LibraryImage:
        """Write back an image record."""
        if image.id not in self._images:
            raise NotFoundError("Image", image.id)
        self._images[image.id] = copy.deepcopy(image)
        return copy.deepcopy(image)

    async def delete(self, image_id: str) -> bool:
        """Delete an image record."""
        return self._images.pop(image_id, None) is not None
