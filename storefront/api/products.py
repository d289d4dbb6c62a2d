"""Product API endpoints.

Provides endpoints for storefront product listings and for product
administration.
"""

from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from storefront.api.dependencies import (
    get_actor,
    get_filter_builder,
    get_product_catalog,
    read_upload,
)
from storefront.api.schemas import (
    CategoryCountSchema,
    ErrorResponse,
    ProductListResponse,
    ProductResponse,
    StockUpdateRequest,
    count_to_schema,
    page_to_response,
    product_to_response,
)
from storefront.catalog.products import ProductCatalog
from storefront.catalog.query import CatalogFilterBuilder

router = APIRouter(prefix="/products", tags=["Products"])


# ============================================================================
# Listings
# ============================================================================


@router.get(
    "",
    response_model=ProductListResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List products",
    description=(
        "Filter by category, minPrice/maxPrice, minDiscount, inStock and search; "
        "sort with e.g. sort=-createdAt; paginate with page and limit."
    ),
)
async def list_products(
    request: Request,
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
    filters: Annotated[CatalogFilterBuilder, Depends(get_filter_builder)],
) -> ProductListResponse:
    """List products matching the query parameters."""
    query = filters.build(dict(request.query_params))
    return page_to_response(await catalog.query(query))


@router.get("/popular", response_model=list[ProductResponse], summary="Popular products")
async def popular_products(
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
    limit: Annotated[int, Query(ge=1, le=100)] = 8,
) -> list[ProductResponse]:
    """In-stock popular products."""
    return [product_to_response(p) for p in await catalog.popular(limit=limit)]


@router.get("/discounted", response_model=list[ProductResponse], summary="Discounted products")
async def discounted_products(
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
    min_discount: Annotated[int, Query(ge=0, le=100)] = 10,
    limit: Annotated[int, Query(ge=1, le=100)] = 6,
) -> list[ProductResponse]:
    """In-stock products with at least ``min_discount`` percent off."""
    products = await catalog.discounted(min_discount=min_discount, limit=limit)
    return [product_to_response(p) for p in products]


@router.get(
    "/categories",
    response_model=list[CategoryCountSchema],
    summary="Product counts per category",
)
async def product_category_counts(
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
) -> list[CategoryCountSchema]:
    """Product and in-stock counts per category, largest first."""
    return [count_to_schema(c) for c in await catalog.category_counts()]


@router.get(
    "/category/{category}",
    response_model=list[ProductResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Products by category",
)
async def products_by_category(
    category: str,
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[ProductResponse]:
    """In-stock products of one category, best discounts first."""
    return [product_to_response(p) for p in await catalog.by_category(category, limit=limit)]


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product",
)
async def get_product(
    product_id: str,
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
) -> ProductResponse:
    """Get a product; counts as a view."""
    return product_to_response(await catalog.get_by_id(product_id))


# ============================================================================
# Administration
# ============================================================================


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Create product",
)
async def create_product(
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
    actor: Annotated[str | None, Depends(get_actor)],
    name: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    original_price: Annotated[Decimal | None, Form()] = None,
    discounted_price: Annotated[Decimal | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    tags: Annotated[str | None, Form()] = None,
    in_stock: Annotated[bool, Form()] = True,
    stock_quantity: Annotated[int, Form()] = 0,
    is_featured: Annotated[bool, Form()] = False,
    is_popular: Annotated[bool, Form()] = False,
    image: Annotated[UploadFile | None, File()] = None,
) -> ProductResponse:
    """Create a product; the image is required.

    Tags are sent as a comma-separated string.
    """
    fields: dict[str, Any] = {
        "name": name,
        "category": category,
        "original_price": original_price,
        "discounted_price": discounted_price,
        "description": description,
        "tags": tags,
        "in_stock": in_stock,
        "stock_quantity": stock_quantity,
        "is_featured": is_featured,
        "is_popular": is_popular,
    }
    product = await catalog.create(fields, await read_upload(image), actor=actor)
    return product_to_response(product)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update product",
)
async def update_product(
    product_id: str,
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
    actor: Annotated[str | None, Depends(get_actor)],
    name: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    original_price: Annotated[Decimal | None, Form()] = None,
    discounted_price: Annotated[Decimal | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    tags: Annotated[str | None, Form()] = None,
    in_stock: Annotated[bool | None, Form()] = None,
    stock_quantity: Annotated[int | None, Form()] = None,
    is_featured: Annotated[bool | None, Form()] = None,
    is_popular: Annotated[bool | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> ProductResponse:
    """Partially update a product; only sent fields change."""
    changes = {
        key: value
        for key, value in {
            "name": name,
            "category": category,
            "original_price": original_price,
            "discounted_price": discounted_price,
            "description": description,
            "tags": tags,
            "in_stock": in_stock,
            "stock_quantity": stock_quantity,
            "is_featured": is_featured,
            "is_popular": is_popular,
        }.items()
        if value is not None
    }
    product = await catalog.update(
        product_id,
        changes,
        image=await read_upload(image),
        actor=actor,
    )
    return product_to_response(product)


@router.patch(
    "/{product_id}/popular",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Mark product popular",
)
async def mark_product_popular(
    product_id: str,
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
    actor: Annotated[str | None, Depends(get_actor)],
) -> ProductResponse:
    """Flag a product as popular."""
    return product_to_response(await catalog.mark_popular(product_id, actor=actor))


@router.patch(
    "/{product_id}/stock",
    response_model=ProductResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update product stock",
)
async def update_product_stock(
    product_id: str,
    body: StockUpdateRequest,
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
    actor: Annotated[str | None, Depends(get_actor)],
) -> ProductResponse:
    """Set stock quantity and/or availability."""
    product = await catalog.update_stock(
        product_id,
        stock_quantity=body.stock_quantity,
        in_stock=body.in_stock,
        actor=actor,
    )
    return product_to_response(product)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete product",
)
async def delete_product(
    product_id: str,
    catalog: Annotated[ProductCatalog, Depends(get_product_catalog)],
) -> None:
    """Delete a product and release its image."""
    await catalog.delete(product_id)
