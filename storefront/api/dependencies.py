"""Request dependencies.

Services are built once in the application lifespan and stored on
``app.state``; routes receive them through these dependencies.
"""

from typing import Annotated

from fastapi import Header, Request, UploadFile

from storefront.assets.provider import AssetUpload
from storefront.catalog.categories import CategoryTree
from storefront.catalog.images import ImageLibrary
from storefront.catalog.products import ProductCatalog
from storefront.catalog.query import CatalogFilterBuilder
from storefront.catalog.service import CatalogService


def get_category_tree(request: Request) -> CategoryTree:
    """Category tree for the running app."""
    return request.app.state.category_tree


def get_product_catalog(request: Request) -> ProductCatalog:
    """Product catalog for the running app."""
    return request.app.state.product_catalog


def get_catalog_service(request: Request) -> CatalogService:
    """Catalog service for the running app."""
    return request.app.state.catalog_service


def get_image_library(request: Request) -> ImageLibrary:
    """Image library for the running app."""
    return request.app.state.image_library


def get_filter_builder(request: Request) -> CatalogFilterBuilder:
    """Listing parameter builder for the running app."""
    return request.app.state.catalog_service.filters


def get_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
) -> str | None:
    """Acting user, as identified by the upstream gateway."""
    return x_actor_id or None


async def read_upload(image: UploadFile | None) -> AssetUpload | None:
    """Buffer an uploaded file for the asset provider.

    Args:
        image: Uploaded file, if any.

    Returns:
        AssetUpload, or None when no file was sent.
    """
    if image is None:
        return None
    content = await image.read()
    if not content and not image.filename:
        return None
    return AssetUpload(
        content=content,
        filename=image.filename or "upload",
        content_type=image.content_type or "application/octet-stream",
    )
