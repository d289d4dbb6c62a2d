"""Domain entities for the storefront catalog.

Entities are domain objects with identity that persists across state changes.
This module contains the catalog aggregates Category and Product, and
LibraryImage for images kept outside any catalog entry.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from storefront.domain.base import AggregateRoot, new_id
from storefront.domain.exceptions import ValidationError
from storefront.domain.slugs import slugify
from storefront.domain.state_machines import CategoryStatus, validate_category_transition
from storefront.domain.value_objects import (
    AssetReference,
    ImageUsage,
    ProductCategory,
    RatingSummary,
    discount_percentage,
    to_price,
)

DEFAULT_CATEGORY_ICON = "🥛"


def _default_category_metadata() -> dict[str, Any]:
    return {"color": "#4CAF50"}


def normalize_name(name: Any, field_name: str = "name") -> str:
    """Trim a display name and reject blanks.

    Args:
        name: Raw name value.
        field_name: Field name for error reporting.

    Returns:
        Trimmed name.

    Raises:
        ValidationError: If the name is missing or blank.
    """
    if name is None or not str(name).strip():
        raise ValidationError(f"{field_name} is required", field=field_name)
    return str(name).strip()


def normalize_tags(tags: Any) -> list[str]:
    """Normalize tags to a lowercase, de-duplicated list.

    Accepts either an iterable of strings or a single comma-separated
    string. Order of first appearance is kept.

    Args:
        tags: Raw tags value.

    Returns:
        List of lowercase tags.
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    normalized: list[str] = []
    for tag in tags:
        value = str(tag).strip().lower()
        if value and value not in normalized:
            normalized.append(value)
    return normalized


def _non_negative_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer", field=field_name) from None
    if number < 0:
        raise ValidationError(f"{field_name} cannot be negative", field=field_name)
    return number


def _to_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "0", "no"}:
        return False
    raise ValidationError(f"{field_name} must be a boolean", field=field_name)


# ============================================================================
# Category Aggregate Root
# ============================================================================


@dataclass(kw_only=True, eq=False)
class Category(AggregateRoot[str]):
    """Product category; categories form a forest through parent_id.

    Attributes:
        id: Store identifier.
        name: Unique, trimmed display name.
        slug: Unique lowercase slug, always derived from name.
        description: Free-text description.
        icon: Display icon (emoji or short string).
        image: Owned image asset, if any.
        parent_id: Parent category id, None for top-level categories.
        is_featured: Featured flag for the storefront.
        display_order: Sibling ordering key (ascending).
        status: Lifecycle status; archived is the soft-deleted state.
        metadata: Open key/value map (e.g., display color).
    """

    id: str
    name: str
    slug: str = ""
    description: str = ""
    icon: str = DEFAULT_CATEGORY_ICON
    image: AssetReference | None = None
    parent_id: str | None = None
    is_featured: bool = False
    display_order: int = 0
    status: CategoryStatus = CategoryStatus.ACTIVE
    metadata: dict[str, Any] = field(default_factory=_default_category_metadata)

    def __post_init__(self) -> None:
        """Normalize name and keep the slug in step with it."""
        self.name = normalize_name(self.name)
        self.slug = self.derive_slug(self.name)

    @staticmethod
    def derive_slug(name: str) -> str:
        """Derive the slug for a name, rejecting names without one.

        Args:
            name: Category name.

        Returns:
            Slug.

        Raises:
            ValidationError: If the name yields an empty slug.
        """
        slug = slugify(name.strip())
        if not slug:
            raise ValidationError(
                f"Category name {name!r} does not produce a usable slug",
                field="name",
            )
        return slug

    @classmethod
    def create(
        cls,
        name: str,
        description: str | None = None,
        parent_id: str | None = None,
        is_featured: bool = False,
        display_order: int = 0,
        image: AssetReference | None = None,
        icon: str | None = None,
        metadata: dict[str, Any] | None = None,
        category_id: str | None = None,
    ) -> "Category":
        """Create a new active category.

        Args:
            name: Display name.
            description: Optional description.
            parent_id: Optional parent category id.
            is_featured: Featured flag.
            display_order: Sibling ordering key.
            image: Optional image asset.
            icon: Optional icon, defaults to the catalog icon.
            metadata: Optional metadata, defaults to the catalog color.
            category_id: Optional pre-generated id.

        Returns:
            New Category instance.
        """
        return cls(
            id=category_id or new_id(),
            name=name,
            description=description or "",
            parent_id=parent_id or None,
            is_featured=bool(is_featured),
            display_order=int(display_order or 0),
            image=image,
            icon=icon or DEFAULT_CATEGORY_ICON,
            metadata=dict(metadata) if metadata is not None else _default_category_metadata(),
        )

    @property
    def is_active(self) -> bool:
        """Whether the category is visible in the storefront."""
        return self.status == CategoryStatus.ACTIVE

    @property
    def is_root(self) -> bool:
        """Whether the category is top-level."""
        return self.parent_id is None

    def rename(self, name: str) -> None:
        """Rename the category and re-derive its slug.

        Args:
            name: New display name.
        """
        name = normalize_name(name)
        self.slug = self.derive_slug(name)
        self.name = name
        self._touch()

    def set_status(self, status: CategoryStatus | str) -> None:
        """Move the category to a new lifecycle status.

        Args:
            status: Target status.

        Raises:
            ValidationError: If the status is unknown.
            InvalidStateTransitionError: If leaving the archived state.
        """
        try:
            target = CategoryStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown category status: {status!r}", field="status") from None
        validate_category_transition(self.id, self.status, target)
        if target != self.status:
            self.status = target
            self._touch()

    def archive(self) -> None:
        """Soft-delete the category."""
        self.set_status(CategoryStatus.ARCHIVED)

    def move_to(self, parent_id: str | None) -> None:
        """Attach the category under a new parent (None for top-level).

        Ancestry checks are the tree's responsibility; this only refuses
        the trivial self-parent case.

        Args:
            parent_id: New parent id.
        """
        parent_id = parent_id or None
        if parent_id == self.id:
            raise ValidationError("A category cannot be its own parent", field="parent_id")
        self.parent_id = parent_id
        self._touch()

    def replace_image(self, image: AssetReference | None) -> AssetReference | None:
        """Swap the owned image.

        Args:
            image: New image asset.

        Returns:
            The previous image, for the caller to release.
        """
        previous = self.image
        self.image = image
        self._touch()
        return previous

    def apply_changes(self, changes: dict[str, Any]) -> None:
        """Merge a partial admin update into the category.

        Name, status and parent changes go through their dedicated
        methods; image changes are handled by the caller.

        Args:
            changes: Field name to new value.

        Raises:
            ValidationError: On unknown or read-only fields.
        """
        unknown = set(changes) - _CATEGORY_MUTABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update category fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )
        if "name" in changes:
            self.rename(changes["name"])
        if "description" in changes:
            self.description = changes["description"] or ""
        if "icon" in changes:
            self.icon = changes["icon"] or DEFAULT_CATEGORY_ICON
        if "is_featured" in changes:
            self.is_featured = _to_bool(changes["is_featured"], "is_featured")
        if "display_order" in changes:
            try:
                self.display_order = int(changes["display_order"])
            except (TypeError, ValueError):
                raise ValidationError("display_order must be an integer", field="display_order") from None
        if "metadata" in changes:
            self.metadata = dict(changes["metadata"] or {})
        if "parent_id" in changes:
            self.move_to(changes["parent_id"])
        if "status" in changes:
            self.set_status(changes["status"])
        self._touch()


_CATEGORY_MUTABLE_FIELDS = {
    "name",
    "description",
    "icon",
    "is_featured",
    "display_order",
    "metadata",
    "parent_id",
    "status",
}


# ============================================================================
# Product Aggregate Root
# ============================================================================


@dataclass(kw_only=True, eq=False)
class Product(AggregateRoot[str]):
    """Sellable product.

    discount_percentage is derived from the two prices and recomputed
    whenever either of them changes.

    Attributes:
        id: Store identifier.
        image: Owned product image (required).
        name: Display name.
        category: Product category.
        original_price: List price (> 0).
        discounted_price: Selling price (> 0, <= original_price).
        discount_percentage: Derived whole-number discount.
        description: Free-text description.
        tags: Lowercase search tags.
        in_stock: Availability flag.
        stock_quantity: Units on hand.
        ratings: Aggregate rating.
        views: Detail-view counter.
        sales_count: Units sold counter.
        is_featured: Featured flag.
        is_popular: Popular flag.
        created_by: Actor that created the product.
        updated_by: Actor that last updated the product.
    """

    id: str
    image: AssetReference
    name: str
    category: ProductCategory
    original_price: Decimal
    discounted_price: Decimal
    discount_percentage: int = 0
    description: str = ""
    tags: list[str] = field(default_factory=list)
    in_stock: bool = True
    stock_quantity: int = 0
    ratings: RatingSummary = field(default_factory=RatingSummary)
    views: int = 0
    sales_count: int = 0
    is_featured: bool = False
    is_popular: bool = False
    created_by: str | None = None
    updated_by: str | None = None

    def __post_init__(self) -> None:
        """Validate invariants and derive the discount."""
        self.name = normalize_name(self.name)
        self.category = ProductCategory.parse(self.category)
        self.tags = normalize_tags(self.tags)
        for flag in ("in_stock", "is_featured", "is_popular"):
            setattr(self, flag, _to_bool(getattr(self, flag), flag))
        self.stock_quantity = _non_negative_int(self.stock_quantity, "stock_quantity")
        self.views = _non_negative_int(self.views, "views")
        self.sales_count = _non_negative_int(self.sales_count, "sales_count")
        self._set_prices(self.original_price, self.discounted_price)

    @classmethod
    def create(
        cls,
        image: AssetReference,
        name: str,
        category: ProductCategory | str,
        original_price: Any,
        discounted_price: Any,
        description: str | None = None,
        tags: Any = None,
        in_stock: bool = True,
        stock_quantity: int = 0,
        is_featured: bool = False,
        is_popular: bool = False,
        created_by: str | None = None,
        product_id: str | None = None,
    ) -> "Product":
        """Create a new product.

        Args:
            image: Stored product image.
            name: Display name.
            category: Product category.
            original_price: List price.
            discounted_price: Selling price.
            description: Optional description.
            tags: List of tags or comma-separated string.
            in_stock: Availability flag.
            stock_quantity: Units on hand.
            is_featured: Featured flag.
            is_popular: Popular flag.
            created_by: Creating actor.
            product_id: Optional pre-generated id.

        Returns:
            New Product instance.
        """
        return cls(
            id=product_id or new_id(),
            image=image,
            name=name,
            category=category,
            original_price=original_price,
            discounted_price=discounted_price,
            description=description or "",
            tags=tags,
            in_stock=in_stock,
            stock_quantity=stock_quantity,
            is_featured=is_featured,
            is_popular=is_popular,
            created_by=created_by,
            updated_by=created_by,
        )

    @property
    def saving_amount(self) -> Decimal:
        """Absolute saving against the list price."""
        return self.original_price - self.discounted_price

    def _set_prices(self, original: Any, discounted: Any) -> None:
        original_price = to_price(original, "original_price")
        discounted_price = to_price(discounted, "discounted_price")
        if discounted_price > original_price:
            raise ValidationError(
                "Discounted price cannot be higher than original price",
                field="discounted_price",
                details={
                    "original_price": str(original_price),
                    "discounted_price": str(discounted_price),
                },
            )
        self.original_price = original_price
        self.discounted_price = discounted_price
        self.discount_percentage = discount_percentage(original_price, discounted_price)

    def reprice(
        self,
        original_price: Any | None = None,
        discounted_price: Any | None = None,
    ) -> None:
        """Change either price and re-derive the discount.

        Args:
            original_price: New list price, or None to keep.
            discounted_price: New selling price, or None to keep.
        """
        self._set_prices(
            self.original_price if original_price is None else original_price,
            self.discounted_price if discounted_price is None else discounted_price,
        )
        self._touch()

    def apply_changes(self, changes: dict[str, Any], actor: str | None = None) -> None:
        """Merge a partial admin update into the product.

        Every value is validated before any is assigned, so a rejected
        update leaves the product untouched.

        Args:
            changes: Field name to new value.
            actor: Updating actor.

        Raises:
            ValidationError: On unknown, derived or invalid fields.
        """
        unknown = set(changes) - _PRODUCT_MUTABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update product fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )
        staged: dict[str, Any] = {}
        if "name" in changes:
            staged["name"] = normalize_name(changes["name"])
        if "category" in changes:
            staged["category"] = ProductCategory.parse(changes["category"])
        if "description" in changes:
            staged["description"] = changes["description"] or ""
        if "tags" in changes:
            staged["tags"] = normalize_tags(changes["tags"])
        if "stock_quantity" in changes:
            staged["stock_quantity"] = _non_negative_int(changes["stock_quantity"], "stock_quantity")
        for flag in ("in_stock", "is_featured", "is_popular"):
            if flag in changes:
                staged[flag] = _to_bool(changes[flag], flag)
        if "original_price" in changes or "discounted_price" in changes:
            original = changes.get("original_price", self.original_price)
            discounted = changes.get("discounted_price", self.discounted_price)
            # Validates before anything is assigned.
            self._set_prices(original, discounted)
        for name, value in staged.items():
            setattr(self, name, value)
        self.updated_by = actor or self.updated_by
        self._touch()

    def set_stock(
        self,
        stock_quantity: Any | None = None,
        in_stock: Any | None = None,
        actor: str | None = None,
    ) -> None:
        """Set stock level and availability.

        Setting a quantity derives availability from it unless in_stock
        is given in the same call, in which case the explicit flag wins.

        Args:
            stock_quantity: New units on hand, or None to keep.
            in_stock: Explicit availability, or None to derive/keep.
            actor: Updating actor.
        """
        if stock_quantity is not None:
            self.stock_quantity = _non_negative_int(stock_quantity, "stock_quantity")
            self.in_stock = self.stock_quantity > 0
        if in_stock is not None:
            self.in_stock = _to_bool(in_stock, "in_stock")
        self.updated_by = actor or self.updated_by
        self._touch()

    def mark_popular(self, actor: str | None = None) -> None:
        """Flag the product as popular.

        Args:
            actor: Updating actor.
        """
        self.is_popular = True
        self.updated_by = actor or self.updated_by
        self._touch()

    def replace_image(self, image: AssetReference, actor: str | None = None) -> AssetReference:
        """Swap the owned image.

        Args:
            image: New image asset.
            actor: Updating actor.

        Returns:
            The previous image, for the caller to release.
        """
        previous = self.image
        self.image = image
        self.updated_by = actor or self.updated_by
        self._touch()
        return previous


_PRODUCT_MUTABLE_FIELDS = {
    "name",
    "category",
    "original_price",
    "discounted_price",
    "description",
    "tags",
    "in_stock",
    "stock_quantity",
    "is_featured",
    "is_popular",
}


# ============================================================================
# Library Image Aggregate Root
# ============================================================================


@dataclass(kw_only=True, eq=False)
class LibraryImage(AggregateRoot[str]):
    """Standalone image in the image library.

    Library images are not owned by a category or product; the record
    owns its stored binary and releases it when deleted.

    Attributes:
        id: Store identifier.
        asset: Stored binary.
        original_name: Client-supplied file name.
        mime_type: Uploaded content type.
        size_bytes: Uploaded size.
        usage: Intended placement.
        description: Free-text description.
        uploaded_by: Uploading actor.
        is_active: Whether the image is offered for use.
    """

    id: str
    asset: AssetReference
    original_name: str
    mime_type: str
    size_bytes: int
    usage: ImageUsage = ImageUsage.OTHER
    description: str = ""
    uploaded_by: str | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        self.original_name = normalize_name(self.original_name, "original_name")
        self.usage = ImageUsage.parse(self.usage)
        self.size_bytes = _non_negative_int(self.size_bytes, "size_bytes")
        self.is_active = _to_bool(self.is_active, "is_active")

    @classmethod
    def create(
        cls,
        asset: AssetReference,
        original_name: str,
        mime_type: str,
        size_bytes: int,
        usage: ImageUsage | str | None = None,
        description: str | None = None,
        uploaded_by: str | None = None,
        image_id: str | None = None,
    ) -> "LibraryImage":
        """Record a freshly stored image.

        Args:
            asset: Stored binary.
            original_name: Client-supplied file name.
            mime_type: Uploaded content type.
            size_bytes: Uploaded size.
            usage: Intended placement, ``other`` by default.
            description: Optional description.
            uploaded_by: Uploading actor.
            image_id: Optional pre-generated id.

        Returns:
            New LibraryImage instance.
        """
        return cls(
            id=image_id or new_id(),
            asset=asset,
            original_name=original_name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            usage=usage,
            description=description or "",
            uploaded_by=uploaded_by,
        )

    def apply_changes(self, changes: dict[str, Any]) -> None:
        """Merge a partial update of the descriptive fields.

        Raises:
            ValidationError: On unknown or invalid fields; nothing changes.
        """
        unknown = set(changes) - _IMAGE_MUTABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update image fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )
        staged: dict[str, Any] = {}
        if "description" in changes:
            staged["description"] = changes["description"] or ""
        if "usage" in changes:
            staged["usage"] = ImageUsage.parse(changes["usage"])
        if "is_active" in changes:
            staged["is_active"] = _to_bool(changes["is_active"], "is_active")
        for name, value in staged.items():
            setattr(self, name, value)
        self._touch()


_IMAGE_MUTABLE_FIELDS = {"description", "usage", "is_active"}
