"""Category API endpoints.

Provides endpoints for browsing the category hierarchy and for
category administration.
"""

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from storefront.api.dependencies import (
    get_catalog_service,
    get_category_tree,
    read_upload,
)
from storefront.api.schemas import (
    CategoryDetailResponse,
    CategoryNodeResponse,
    CategoryOverviewResponse,
    CategoryResponse,
    ErrorResponse,
    ProductListResponse,
    category_to_response,
    detail_to_response,
    node_to_response,
    overview_to_response,
    page_to_response,
)
from storefront.catalog.categories import CategoryTree
from storefront.catalog.repository import UNSET
from storefront.catalog.service import CatalogService
from storefront.domain.exceptions import ValidationError

router = APIRouter(prefix="/categories", tags=["Categories"])

# Values of ?parent= that select top-level categories.
_ROOT_PARENT_VALUES = {"", "root", "null", "none"}


def _parse_metadata(raw: str | None) -> dict[str, Any] | None:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("metadata must be a JSON object", field="metadata") from None
    if not isinstance(value, dict):
        raise ValidationError("metadata must be a JSON object", field="metadata")
    return value


# ============================================================================
# Browsing
# ============================================================================


@router.get(
    "",
    response_model=list[CategoryResponse],
    responses={400: {"model": ErrorResponse}},
    summary="List categories",
)
async def list_categories(
    tree: Annotated[CategoryTree, Depends(get_category_tree)],
    status_filter: Annotated[str, Query(alias="status")] = "active",
    featured: bool | None = None,
    parent: str | None = None,
    sort_by: str = "display_order",
    sort_order: str = "asc",
) -> list[CategoryResponse]:
    """List categories.

    Args:
        tree: Category tree.
        status_filter: Status to match, or "any".
        featured: Featured flag to match.
        parent: Parent id, or "root" for top-level categories.
        sort_by: Sort field.
        sort_order: asc or desc.

    Returns:
        Categories.
    """
    if parent is None:
        parent_filter = UNSET
    elif parent.strip().lower() in _ROOT_PARENT_VALUES:
        parent_filter = None
    else:
        parent_filter = parent
    categories = await tree.find(
        status=status_filter,
        parent=parent_filter,
        is_featured=featured,
        sort_field=sort_by,
        sort_dir=sort_order,
    )
    return [category_to_response(c) for c in categories]


@router.get("/featured", response_model=list[CategoryResponse], summary="Featured categories")
async def featured_categories(
    tree: Annotated[CategoryTree, Depends(get_category_tree)],
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[CategoryResponse]:
    """Active featured categories in display order."""
    return [category_to_response(c) for c in await tree.featured(limit=limit)]


@router.get(
    "/hierarchy",
    response_model=list[CategoryNodeResponse],
    summary="Category hierarchy",
)
async def category_hierarchy(
    tree: Annotated[CategoryTree, Depends(get_category_tree)],
) -> list[CategoryNodeResponse]:
    """Active categories as a forest of top-level nodes."""
    return [node_to_response(node) for node in await tree.hierarchy()]


@router.get(
    "/overview",
    response_model=list[CategoryOverviewResponse],
    summary="Category hierarchy with product counts",
)
async def category_overview(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> list[CategoryOverviewResponse]:
    """Active hierarchy annotated with product counts."""
    return [overview_to_response(node) for node in await service.category_overview()]


@router.get(
    "/{identifier}",
    response_model=CategoryDetailResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get category",
)
async def get_category(
    identifier: str,
    tree: Annotated[CategoryTree, Depends(get_category_tree)],
) -> CategoryDetailResponse:
    """Get a category by id or slug, with parent and subcategories."""
    return detail_to_response(await tree.get_detail(identifier))


@router.get(
    "/{identifier}/products",
    response_model=ProductListResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Products in a category subtree",
)
async def category_products(
    identifier: str,
    request: Request,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductListResponse:
    """Products of a category and its active subcategories.

    Accepts the same listing parameters as ``GET /products``.
    """
    page = await service.products_in_subtree(identifier, dict(request.query_params))
    return page_to_response(page)


# ============================================================================
# Administration
# ============================================================================


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Create category",
)
async def create_category(
    tree: Annotated[CategoryTree, Depends(get_category_tree)],
    name: Annotated[str, Form()],
    description: Annotated[str | None, Form()] = None,
    parent_id: Annotated[str | None, Form()] = None,
    is_featured: Annotated[bool, Form()] = False,
    display_order: Annotated[int, Form()] = 0,
    icon: Annotated[str | None, Form()] = None,
    metadata: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> CategoryResponse:
    """Create a category with an optional image."""
    category = await tree.create(
        name=name,
        description=description,
        parent_id=parent_id or None,
        is_featured=is_featured,
        display_order=display_order,
        image=await read_upload(image),
        icon=icon,
        metadata=_parse_metadata(metadata),
    )
    return category_to_response(category)


@router.post(
    "/default",
    response_model=list[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Seed default categories",
)
async def seed_default_categories(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> list[CategoryResponse]:
    """Create the default categories that do not exist yet."""
    return [category_to_response(c) for c in await service.seed_default_categories()]


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Update category",
)
async def update_category(
    category_id: str,
    tree: Annotated[CategoryTree, Depends(get_category_tree)],
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    parent_id: Annotated[str | None, Form()] = None,
    is_featured: Annotated[bool | None, Form()] = None,
    display_order: Annotated[int | None, Form()] = None,
    icon: Annotated[str | None, Form()] = None,
    status_value: Annotated[str | None, Form(alias="status")] = None,
    metadata: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> CategoryResponse:
    """Partially update a category.

    Only sent fields change. A ``parent_id`` of "root" moves the category
    to the top level.
    """
    changes: dict[str, Any] = {
        key: value
        for key, value in {
            "name": name,
            "description": description,
            "is_featured": is_featured,
            "display_order": display_order,
            "icon": icon,
            "status": status_value,
            "metadata": _parse_metadata(metadata),
        }.items()
        if value is not None
    }
    if parent_id is not None:
        changes["parent_id"] = (
            None if parent_id.strip().lower() in _ROOT_PARENT_VALUES else parent_id
        )
    category = await tree.update(category_id, changes, image=await read_upload(image))
    return category_to_response(category)


@router.delete(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Archive category",
)
async def archive_category(
    category_id: str,
    tree: Annotated[CategoryTree, Depends(get_category_tree)],
    cascade: bool = False,
) -> CategoryResponse:
    """Soft-delete a category, optionally with its whole subtree."""
    return category_to_response(await tree.archive(category_id, cascade=cascade))
