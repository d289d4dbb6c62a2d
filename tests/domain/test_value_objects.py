"""Tests for value objects."""

from decimal import Decimal

import pytest

from storefront.domain import (
    AssetReference,
    ImageUsage,
    PriceRange,
    ProductCategory,
    RatingSummary,
)
from storefront.domain.exceptions import ValidationError
from storefront.domain.value_objects import discount_percentage, to_price


class TestAssetReference:
    """Tests for AssetReference."""

    def test_dict_form(self) -> None:
        """to_dict and from_dict agree."""
        ref = AssetReference(
            storage_id="products/abc",
            url="https://cdn.test/abc.png",
            format="png",
            width=400,
            height=400,
            size_bytes=1024,
        )
        assert AssetReference.from_dict(ref.to_dict()) == ref

    def test_from_empty_dict(self) -> None:
        """Empty input means no asset."""
        assert AssetReference.from_dict(None) is None
        assert AssetReference.from_dict({}) is None

    def test_blank_storage_id_rejected(self) -> None:
        """Both storage_id and url are required."""
        with pytest.raises(ValidationError):
            AssetReference(storage_id=" ", url="https://cdn.test/abc.png")

    def test_negative_size_rejected(self) -> None:
        """Sizes cannot be negative."""
        with pytest.raises(ValidationError):
            AssetReference(storage_id="a", url="https://cdn.test/a.png", size_bytes=-1)

    def test_immutable(self) -> None:
        """Value objects are frozen."""
        ref = AssetReference(storage_id="a", url="https://cdn.test/a.png")
        with pytest.raises(AttributeError):
            ref.url = "other"  # type: ignore[misc]


class TestProductCategory:
    """Tests for ProductCategory."""

    def test_parse_is_case_insensitive(self) -> None:
        """Values parse regardless of case and padding."""
        assert ProductCategory.parse(" Paneer ") == ProductCategory.PANEER

    def test_parse_unknown(self) -> None:
        """Unknown values raise with the allowed set."""
        with pytest.raises(ValidationError) as exc_info:
            ProductCategory.parse("yogurt")
        assert exc_info.value.details["allowed"] == ProductCategory.values()

    def test_values(self) -> None:
        """All seven categories are listed in order."""
        assert ProductCategory.values() == [
            "milk", "ghee", "curd", "paneer", "cheese", "butter", "other",
        ]


class TestImageUsage:
    """Tests for ImageUsage."""

    def test_parse_is_case_insensitive(self) -> None:
        """Values parse regardless of case and padding."""
        assert ImageUsage.parse(" Banner ") == ImageUsage.BANNER

    def test_blank_means_other(self) -> None:
        """Missing usage falls back to other."""
        assert ImageUsage.parse(None) == ImageUsage.OTHER
        assert ImageUsage.parse("") == ImageUsage.OTHER

    def test_parse_unknown(self) -> None:
        """Unknown values raise with the allowed set."""
        with pytest.raises(ValidationError) as exc_info:
            ImageUsage.parse("poster")
        assert exc_info.value.details["allowed"] == ["product", "banner", "profile", "other"]


class TestRatingSummary:
    """Tests for RatingSummary."""

    def test_defaults(self) -> None:
        """New products start unrated."""
        assert RatingSummary() == RatingSummary(average=0.0, count=0)

    def test_average_out_of_range(self) -> None:
        """Averages are bounded by 0 and 5."""
        with pytest.raises(ValidationError):
            RatingSummary(average=5.5, count=1)


class TestPrices:
    """Tests for price helpers."""

    def test_to_price_accepts_strings(self) -> None:
        """String input is parsed exactly."""
        assert to_price("19.99", "original_price") == Decimal("19.99")

    def test_to_price_rejects_nan(self) -> None:
        """Non-finite numbers are rejected."""
        with pytest.raises(ValidationError):
            to_price("NaN", "original_price")

    def test_to_price_rounds_to_cents(self) -> None:
        """Sub-cent amounts round half up to two places."""
        assert to_price("0.009", "original_price") == Decimal("0.01")
        assert to_price("19.995", "original_price") == Decimal("20.00")
        assert to_price("19.994", "original_price").as_tuple().exponent == -2

    def test_to_price_rejects_amounts_rounding_to_zero(self) -> None:
        """A price below half a cent is not a positive price."""
        with pytest.raises(ValidationError) as exc_info:
            to_price("0.004", "discounted_price")
        assert exc_info.value.field == "discounted_price"

    def test_to_price_rejects_oversized_amounts(self) -> None:
        """Prices must fit the stored precision."""
        with pytest.raises(ValidationError):
            to_price("10000000000", "original_price")

    @pytest.mark.parametrize(
        ("original", "discounted", "expected"),
        [
            ("100", "80", 20),
            ("100", "90", 10),
            ("100", "100", 0),
            ("80", "70", 13),
            ("3", "2", 33),
        ],
    )
    def test_discount_percentage(self, original: str, discounted: str, expected: int) -> None:
        """Discount rounds half up to a whole number."""
        assert discount_percentage(Decimal(original), Decimal(discounted)) == expected


class TestPriceRange:
    """Tests for PriceRange."""

    def test_open_range_contains_everything(self) -> None:
        """An open range has no bounds."""
        price_range = PriceRange()
        assert price_range.is_open
        assert price_range.contains(Decimal("0.01"))

    def test_bounds_are_inclusive(self) -> None:
        """Both bounds are inclusive."""
        price_range = PriceRange(min=Decimal("10"), max=Decimal("20"))
        assert price_range.contains(Decimal("10"))
        assert price_range.contains(Decimal("20"))
        assert not price_range.contains(Decimal("20.01"))

    def test_min_above_max_rejected(self) -> None:
        """Inverted ranges are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            PriceRange(min=Decimal("30"), max=Decimal("20"))
        assert exc_info.value.field == "min_price"
