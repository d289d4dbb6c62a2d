"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Self

from storefront.domain.base import ValueObject
from storefront.domain.exceptions import ValidationError


# ============================================================================
# Product Category
# ============================================================================


class ProductCategory(str, Enum):
    """Closed set of product categories.

    Values are lowercase and double as category slugs, which is how
    products are joined onto the category tree.
    """

    MILK = "milk"
    GHEE = "ghee"
    CURD = "curd"
    PANEER = "paneer"
    CHEESE = "cheese"
    BUTTER = "butter"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "ProductCategory":
        """Parse a category value case-insensitively.

        Args:
            value: Raw category value.

        Returns:
            Matching ProductCategory.

        Raises:
            ValidationError: If value is not a known category.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValidationError(
                f"Unknown product category: {value!r}",
                field="category",
                details={"allowed": [c.value for c in cls]},
            ) from None

    @classmethod
    def values(cls) -> list[str]:
        """All category values in declaration order."""
        return [c.value for c in cls]


class ImageUsage(str, Enum):
    """Where a library image is meant to be shown."""

    PRODUCT = "product"
    BANNER = "banner"
    PROFILE = "profile"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "ImageUsage":
        """Parse a usage case-insensitively; blank means ``other``.

        Raises:
            ValidationError: If value is not a known usage.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        if not normalized:
            return cls.OTHER
        try:
            return cls(normalized)
        except ValueError:
            raise ValidationError(
                f"Unknown image usage: {value!r}",
                field="usage",
                details={"allowed": [u.value for u in cls]},
            ) from None


# ============================================================================
# Asset Reference
# ============================================================================


@dataclass(frozen=True)
class AssetReference(ValueObject):
    """Descriptor of a stored binary owned by one category or product.

    Attributes:
        storage_id: Provider-side identifier used for release and transforms.
        url: Public URL of the stored binary.
        format: File format (e.g., 'jpg', 'png').
        width: Pixel width, if known.
        height: Pixel height, if known.
        size_bytes: Stored size in bytes, if known.
    """

    storage_id: str
    url: str
    format: str | None = None
    width: int | None = None
    height: int | None = None
    size_bytes: int | None = None

    def __post_init__(self) -> None:
        """Validate asset reference."""
        if not self.storage_id or not self.storage_id.strip():
            raise ValidationError("Asset storage id cannot be empty", field="image")
        if not self.url or not self.url.strip():
            raise ValidationError("Asset url cannot be empty", field="image")
        for name in ("width", "height", "size_bytes"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError(f"Asset {name} cannot be negative", field="image")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Dictionary representation.
        """
        return {
            "storage_id": self.storage_id,
            "url": self.url,
            "format": self.format,
            "width": self.width,
            "height": self.height,
            "size_bytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Self | None:
        """Create AssetReference from its dictionary form.

        Args:
            data: Dictionary as produced by to_dict, or None.

        Returns:
            AssetReference, or None for empty input.
        """
        if not data:
            return None
        return cls(
            storage_id=data["storage_id"],
            url=data["url"],
            format=data.get("format"),
            width=data.get("width"),
            height=data.get("height"),
            size_bytes=data.get("size_bytes"),
        )


# ============================================================================
# Ratings
# ============================================================================


@dataclass(frozen=True)
class RatingSummary(ValueObject):
    """Aggregate rating of a product.

    Attributes:
        average: Average rating in [0, 5].
        count: Number of ratings.
    """

    average: float = 0.0
    count: int = 0

    def __post_init__(self) -> None:
        """Validate rating bounds."""
        if not 0 <= self.average <= 5:
            raise ValidationError("Rating average must be between 0 and 5", field="ratings")
        if self.count < 0:
            raise ValidationError("Rating count cannot be negative", field="ratings")


# ============================================================================
# Prices
# ============================================================================


CENT = Decimal("0.01")
MAX_PRICE = Decimal("9999999999.99")


def to_price(value: Any, field: str) -> Decimal:
    """Coerce a raw price into a positive Decimal in whole cents.

    Sub-cent amounts round half up, so stored prices always have the
    two decimal places the catalog tables keep.

    Args:
        value: Raw value (str, int, float or Decimal).
        field: Field name for error reporting.

    Returns:
        Decimal price with two decimal places.

    Raises:
        ValidationError: If value is not a number, rounds to zero or
            exceeds ``MAX_PRICE``.
    """
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field=field) from None
    if not price.is_finite():
        raise ValidationError(f"{field} must be a number", field=field)
    price = price.quantize(CENT, rounding=ROUND_HALF_UP)
    if price <= 0:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    if price > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE}", field=field)
    return price


def discount_percentage(original_price: Decimal, discounted_price: Decimal) -> int:
    """Compute the whole-number discount between two prices.

    Halves round up, so 12.5% becomes 13%.

    Args:
        original_price: List price (> 0).
        discounted_price: Selling price.

    Returns:
        Discount percentage in [0, 100].
    """
    raw = (original_price - discounted_price) * 100 / original_price
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PriceRange(ValueObject):
    """Inclusive price bounds; either side may be open.

    Attributes:
        min: Lower bound, or None.
        max: Upper bound, or None.
    """

    min: Decimal | None = None
    max: Decimal | None = None

    def __post_init__(self) -> None:
        """Validate bounds."""
        for name in ("min", "max"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError(f"Price {name} cannot be negative", field=f"{name}_price")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValidationError(
                "Minimum price cannot exceed maximum price",
                field="min_price",
                details={"min_price": str(self.min), "max_price": str(self.max)},
            )

    @property
    def is_open(self) -> bool:
        """True when neither bound is set."""
        return self.min is None and self.max is None

    def contains(self, price: Decimal) -> bool:
        """Check whether a price lies within the bounds.

        Args:
            price: Price to test.

        Returns:
            True if price satisfies both bounds.
        """
        if self.min is not None and price < self.min:
            return False
        if self.max is not None and price > self.max:
            return False
        return True
