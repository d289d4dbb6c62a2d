"""API schemas for the storefront.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from storefront.catalog.categories import CategoryDetail, CategoryNode
from storefront.catalog.images import OptimizedImage
from storefront.catalog.query import PaginatedResult
from storefront.catalog.repository import CategoryCount
from storefront.catalog.service import CategoryOverviewNode
from storefront.domain.entities import Category, LibraryImage, Product
from storefront.domain.value_objects import AssetReference


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(
        default_factory=dict, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class PaginatedResponse(BaseModel):
    """Base paginated response."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Number of pages")
    has_more: bool = Field(..., description="Whether there are more pages")


class AssetSchema(BaseModel):
    """Stored image."""

    storage_id: str
    url: str
    format: str | None = None
    width: int | None = None
    height: int | None = None
    size_bytes: int | None = None


def asset_to_schema(asset: AssetReference | None) -> AssetSchema | None:
    """Convert an AssetReference to its schema."""
    if asset is None:
        return None
    return AssetSchema(**asset.to_dict())


# ============================================================================
# Category Schemas
# ============================================================================


class CategoryResponse(BaseModel):
    """Category representation."""

    id: str
    name: str
    slug: str
    description: str
    icon: str
    image: AssetSchema | None = None
    parent_id: str | None = None
    is_featured: bool
    display_order: int
    status: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class CategoryDetailResponse(BaseModel):
    """Category with its parent and active subcategories."""

    category: CategoryResponse
    parent: CategoryResponse | None = None
    subcategories: list[CategoryResponse] = Field(default_factory=list)


class CategoryNodeResponse(CategoryResponse):
    """Category placed in the active hierarchy."""

    depth: int
    subcategories: list["CategoryNodeResponse"] = Field(default_factory=list)


class CategoryOverviewResponse(CategoryResponse):
    """Hierarchy node with product counts."""

    depth: int
    product_count: int
    available_count: int
    total_count: int
    total_available: int
    subcategories: list["CategoryOverviewResponse"] = Field(default_factory=list)


def category_to_response(category: Category) -> CategoryResponse:
    """Convert Category entity to response schema."""
    return CategoryResponse(**_category_fields(category))


def detail_to_response(detail: CategoryDetail) -> CategoryDetailResponse:
    """Convert CategoryDetail to response schema."""
    return CategoryDetailResponse(
        category=category_to_response(detail.category),
        parent=category_to_response(detail.parent) if detail.parent else None,
        subcategories=[category_to_response(c) for c in detail.subcategories],
    )


def node_to_response(node: CategoryNode) -> CategoryNodeResponse:
    """Convert a hierarchy node, recursively."""
    return CategoryNodeResponse(
        **_category_fields(node.category),
        depth=node.depth,
        subcategories=[node_to_response(child) for child in node.children],
    )


def overview_to_response(node: CategoryOverviewNode) -> CategoryOverviewResponse:
    """Convert an overview node, recursively."""
    return CategoryOverviewResponse(
        **_category_fields(node.category),
        depth=node.depth,
        product_count=node.product_count,
        available_count=node.available_count,
        total_count=node.total_count,
        total_available=node.total_available,
        subcategories=[overview_to_response(child) for child in node.children],
    )


def _category_fields(category: Category) -> dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "icon": category.icon,
        "image": asset_to_schema(category.image),
        "parent_id": category.parent_id,
        "is_featured": category.is_featured,
        "display_order": category.display_order,
        "status": category.status.value,
        "metadata": dict(category.metadata),
        "created_at": category.created_at,
        "updated_at": category.updated_at,
    }


# ============================================================================
# Product Schemas
# ============================================================================


class RatingSchema(BaseModel):
    """Aggregate rating."""

    average: float = 0.0
    count: int = 0


class ProductResponse(BaseModel):
    """Product representation."""

    id: str
    name: str
    category: str
    image: AssetSchema
    original_price: float
    discounted_price: float
    discount_percentage: int
    saving_amount: float
    description: str
    tags: list[str] = Field(default_factory=list)
    in_stock: bool
    stock_quantity: int
    ratings: RatingSchema
    views: int
    sales_count: int
    is_featured: bool
    is_popular: bool
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime
    updated_at: datetime


class ProductListResponse(PaginatedResponse):
    """One page of products."""

    items: list[ProductResponse]


class CategoryCountSchema(BaseModel):
    """Product counts for one category."""

    category: str
    count: int
    available_count: int


class StockUpdateRequest(BaseModel):
    """Stock level change.

    Setting only the quantity derives availability from it.
    """

    stock_quantity: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("stock_quantity", "stockQuantity"),
    )
    in_stock: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("in_stock", "inStock"),
    )


def product_to_response(product: Product) -> ProductResponse:
    """Convert Product entity to response schema."""
    return ProductResponse(
        id=product.id,
        name=product.name,
        category=product.category.value,
        image=asset_to_schema(product.image),
        original_price=float(product.original_price),
        discounted_price=float(product.discounted_price),
        discount_percentage=product.discount_percentage,
        saving_amount=float(product.saving_amount),
        description=product.description,
        tags=list(product.tags),
        in_stock=product.in_stock,
        stock_quantity=product.stock_quantity,
        ratings=RatingSchema(average=product.ratings.average, count=product.ratings.count),
        views=product.views,
        sales_count=product.sales_count,
        is_featured=product.is_featured,
        is_popular=product.is_popular,
        created_by=product.created_by,
        updated_by=product.updated_by,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def page_to_response(page: PaginatedResult[Product]) -> ProductListResponse:
    """Convert a page of products to response schema."""
    return ProductListResponse(
        items=[product_to_response(p) for p in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
        has_more=page.has_next,
    )


def count_to_schema(count: CategoryCount) -> CategoryCountSchema:
    """Convert a CategoryCount to its schema."""
    return CategoryCountSchema(
        category=count.category,
        count=count.count,
        available_count=count.available_count,
    )


# ============================================================================
# Image Library Schemas
# ============================================================================


class ImageResponse(BaseModel):
    """Library image representation."""

    id: str
    asset: AssetSchema
    original_name: str
    mime_type: str
    size_bytes: int
    usage: str
    description: str
    uploaded_by: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ImageListResponse(PaginatedResponse):
    """One page of library images."""

    items: list[ImageResponse]


class OptimizedImageResponse(BaseModel):
    """Resized delivery URL for a library image."""

    id: str
    url: str
    original_url: str
    width: int | None = None
    height: int | None = None
    crop: str | None = None


class ImageUpdateRequest(BaseModel):
    """Library image change; only sent fields are applied."""

    description: str | None = None
    usage: str | None = Field(
        default=None,
        validation_alias=AliasChoices("usage", "category"),
    )
    is_active: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("is_active", "isActive"),
    )


def image_to_response(image: LibraryImage) -> ImageResponse:
    """Convert LibraryImage entity to response schema."""
    return ImageResponse(
        id=image.id,
        asset=asset_to_schema(image.asset),
        original_name=image.original_name,
        mime_type=image.mime_type,
        size_bytes=image.size_bytes,
        usage=image.usage.value,
        description=image.description,
        uploaded_by=image.uploaded_by,
        is_active=image.is_active,
        created_at=image.created_at,
        updated_at=image.updated_at,
    )


def image_page_to_response(page: PaginatedResult[LibraryImage]) -> ImageListResponse:
    """Convert a page of library images to response schema."""
    return ImageListResponse(
        items=[image_to_response(i) for i in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
        has_more=page.has_next,
    )


def optimized_to_response(optimized: OptimizedImage) -> OptimizedImageResponse:
    """Convert an OptimizedImage to its schema."""
    return OptimizedImageResponse(
        id=optimized.image_id,
        url=optimized.url,
        original_url=optimized.original_url,
        width=optimized.width,
        height=optimized.height,
        crop=optimized.crop,
    )
