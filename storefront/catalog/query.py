"""Catalog query specification.

Turns a loosely-typed parameter bag (the shape of a query string) into a
validated, immutable CatalogQuery. Nothing here touches a store, so every
filter rule can be exercised without one.

Example usage:
    query = CatalogFilterBuilder().build(
        {"category": "Milk", "minPrice": "10", "maxPrice": "50", "page": "2", "limit": "5"}
    )
    result = await product_catalog.query(query)
"""

from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Generic, TypeVar

from storefront.domain.exceptions import ValidationError
from storefront.domain.value_objects import PriceRange

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class StockFilter(str, Enum):
    """Availability filter."""

    ANY = "any"
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"


class SortDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class SortField(str, Enum):
    """Product fields the catalog can be sorted by."""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    NAME = "name"
    ORIGINAL_PRICE = "original_price"
    DISCOUNTED_PRICE = "discounted_price"
    DISCOUNT_PERCENTAGE = "discount_percentage"
    VIEWS = "views"
    SALES_COUNT = "sales_count"
    RATING = "rating"


# Public parameter spellings, including the camelCase ones storefront
# clients already send.
_SORT_ALIASES: dict[str, SortField] = {
    "createdat": SortField.CREATED_AT,
    "created_at": SortField.CREATED_AT,
    "updatedat": SortField.UPDATED_AT,
    "updated_at": SortField.UPDATED_AT,
    "name": SortField.NAME,
    "originalprice": SortField.ORIGINAL_PRICE,
    "original_price": SortField.ORIGINAL_PRICE,
    "price": SortField.DISCOUNTED_PRICE,
    "discountedprice": SortField.DISCOUNTED_PRICE,
    "discounted_price": SortField.DISCOUNTED_PRICE,
    "discount": SortField.DISCOUNT_PERCENTAGE,
    "discountpercentage": SortField.DISCOUNT_PERCENTAGE,
    "discount_percentage": SortField.DISCOUNT_PERCENTAGE,
    "views": SortField.VIEWS,
    "salescount": SortField.SALES_COUNT,
    "sales_count": SortField.SALES_COUNT,
    "rating": SortField.RATING,
    "ratings": SortField.RATING,
}


@dataclass(frozen=True)
class SortSpec:
    """Sort field and direction.

    Attributes:
        field: Field to sort by.
        direction: Ascending or descending.
    """

    field: SortField = SortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC

    @property
    def descending(self) -> bool:
        """True for descending order."""
        return self.direction == SortDirection.DESC


@dataclass(frozen=True)
class CatalogQuery:
    """Normalized filter, sort and pagination for a product listing.

    Filters combine conjunctively. The text search matches name,
    description or any tag.

    Attributes:
        category: Single lowercase category, or None.
        categories: Restrict to any of these categories, or None.
        price: Bounds on the discounted price.
        min_discount: Lower bound on the discount percentage.
        stock: Availability filter.
        search: Case-insensitive search term.
        page: Page number (1-indexed).
        limit: Items per page.
        sort: Sort specification.
    """

    category: str | None = None
    categories: tuple[str, ...] | None = None
    price: PriceRange = PriceRange()
    min_discount: int | None = None
    stock: StockFilter = StockFilter.ANY
    search: str | None = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    sort: SortSpec = SortSpec()

    def __post_init__(self) -> None:
        """Validate pagination."""
        if self.page < 1:
            raise ValidationError("page must be at least 1", field="page")
        if self.limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")

    @property
    def skip(self) -> int:
        """Number of matching items before this page."""
        return (self.page - 1) * self.limit

    def restrict_to(self, categories: list[str] | tuple[str, ...]) -> "CatalogQuery":
        """Return a copy limited to the given categories.

        Args:
            categories: Allowed category values.

        Returns:
            New CatalogQuery.
        """
        return replace(self, categories=tuple(categories))

    def with_page(self, page: int) -> "CatalogQuery":
        """Return the same query for another page."""
        return replace(self, page=page)


@dataclass
class PaginatedResult(Generic[T]):
    """Paginated result container.

    Attributes:
        items: List of items.
        total: Total count for the filter, ignoring pagination.
        page: Current page.
        limit: Items per page.
    """

    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        """Check if there's a previous page."""
        return self.page > 1


class CatalogFilterBuilder:
    """Builds CatalogQuery values from raw request parameters.

    Accepts snake_case keys and the camelCase spellings used by the
    storefront (``minPrice``, ``inStock``, ``sort=-createdAt``). Blank
    values count as absent.
    """

    def __init__(
        self,
        default_limit: int = DEFAULT_PAGE_SIZE,
        max_limit: int = MAX_PAGE_SIZE,
    ) -> None:
        """Initialize builder.

        Args:
            default_limit: Page size when none is given.
            max_limit: Largest accepted page size; larger values are capped.
        """
        self.default_limit = default_limit
        self.max_limit = max_limit

    def build(self, params: Mapping[str, Any] | None = None) -> CatalogQuery:
        """Build a validated query.

        Args:
            params: Raw parameters.

        Returns:
            CatalogQuery.

        Raises:
            ValidationError: On malformed or contradictory parameters.
        """
        params = params or {}
        category = _pick(params, "category")
        search = _pick(params, "search", "q")
        limit = self._int(_pick(params, "limit", "page_size", "pageSize"), "limit", self.default_limit)
        return CatalogQuery(
            category=str(category).strip().lower() if category is not None else None,
            price=PriceRange(
                min=self._decimal(_pick(params, "min_price", "minPrice"), "min_price"),
                max=self._decimal(_pick(params, "max_price", "maxPrice"), "max_price"),
            ),
            min_discount=self._discount(_pick(params, "min_discount", "minDiscount", "discount")),
            stock=self._stock(_pick(params, "in_stock", "inStock")),
            search=str(search).strip() if search is not None else None,
            page=self._int(_pick(params, "page"), "page", 1),
            limit=min(limit, self.max_limit),
            sort=self._sort(params),
        )

    # -------------------------------------------------------------------------
    # Field parsers
    # -------------------------------------------------------------------------

    @staticmethod
    def _int(value: Any, field: str, default: int) -> int:
        if value is None:
            return default
        if isinstance(value, bool):
            raise ValidationError(f"{field} must be an integer", field=field)
        try:
            number = int(str(value).strip())
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field) from None
        if number < 1:
            raise ValidationError(f"{field} must be at least 1", field=field)
        return number

    @staticmethod
    def _decimal(value: Any, field: str) -> Decimal | None:
        if value is None:
            return None
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number", field=field) from None
        if not number.is_finite():
            raise ValidationError(f"{field} must be a number", field=field)
        return number

    @staticmethod
    def _discount(value: Any) -> int | None:
        if value is None:
            return None
        try:
            number = int(str(value).strip())
        except ValueError:
            raise ValidationError("min_discount must be an integer", field="min_discount") from None
        if not 0 <= number <= 100:
            raise ValidationError("min_discount must be between 0 and 100", field="min_discount")
        return number

    @staticmethod
    def _stock(value: Any) -> StockFilter:
        if value is None:
            return StockFilter.ANY
        if isinstance(value, StockFilter):
            return value
        if isinstance(value, bool):
            return StockFilter.IN_STOCK if value else StockFilter.OUT_OF_STOCK
        normalized = str(value).strip().lower()
        if normalized in {"true", "1", "yes", "in_stock"}:
            return StockFilter.IN_STOCK
        if normalized in {"false", "0", "no", "out_of_stock"}:
            return StockFilter.OUT_OF_STOCK
        if normalized in {"any", "all"}:
            return StockFilter.ANY
        raise ValidationError("in_stock must be true, false or any", field="in_stock")

    @staticmethod
    def _sort(params: Mapping[str, Any]) -> SortSpec:
        raw = _pick(params, "sort")
        sort_by = _pick(params, "sort_by", "sortBy")
        sort_order = _pick(params, "sort_order", "sortOrder")

        direction: SortDirection | None = None
        if raw is not None:
            token = str(raw).strip()
            if token.startswith("-"):
                direction = SortDirection.DESC
                token = token[1:]
            elif token.startswith("+"):
                direction = SortDirection.ASC
                token = token[1:]
            else:
                direction = SortDirection.ASC
            sort_by = token
        if sort_by is None:
            field = SortField.CREATED_AT
        else:
            try:
                field = _SORT_ALIASES[str(sort_by).strip().lower()]
            except KeyError:
                raise ValidationError(
                    f"Cannot sort by {sort_by!r}",
                    field="sort",
                    details={"allowed": sorted({f.value for f in SortField})},
                ) from None
        if sort_order is not None:
            try:
                direction = SortDirection(str(sort_order).strip().lower())
            except ValueError:
                raise ValidationError("sort_order must be asc or desc", field="sort_order") from None
        if direction is None:
            direction = SortDirection.DESC
        return SortSpec(field=field, direction=direction)


def _pick(params: Mapping[str, Any], *keys: str) -> Any:
    """First non-blank value among the given keys."""
    for key in keys:
        value = params.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None
