"""Storefront catalog.

Provides the category tree, the product catalog, the image library,
listing queries and the store capabilities they run on.
"""

from storefront.catalog.categories import CategoryDetail, CategoryNode, CategoryTree
from storefront.catalog.images import ImageLibrary, OptimizedImage
from storefront.catalog.products import ProductCatalog
from storefront.catalog.query import (
    CatalogFilterBuilder,
    CatalogQuery,
    PaginatedResult,
    SortDirection,
    SortField,
    SortSpec,
    StockFilter,
)
from storefront.catalog.repository import (
    UNSET,
    CategoryCount,
    CategoryCriteria,
    CategoryStore,
    ImageCriteria,
    ImageStore,
    InMemoryCategoryStore,
    InMemoryImageStore,
    InMemoryProductStore,
    ProductCriteria,
    ProductStore,
)
from storefront.catalog.service import CatalogService, CategoryOverviewNode

__all__ = [
    # Categories
    "CategoryDetail",
    "CategoryNode",
    "CategoryTree",
    # Products
    "ProductCatalog",
    # Image library
    "ImageLibrary",
    "OptimizedImage",
    # Queries
    "CatalogFilterBuilder",
    "CatalogQuery",
    "PaginatedResult",
    "SortDirection",
    "SortField",
    "SortSpec",
    "StockFilter",
    # Stores
    "UNSET",
    "CategoryCount",
    "CategoryCriteria",
    "CategoryStore",
    "ImageCriteria",
    "ImageStore",
    "InMemoryCategoryStore",
    "InMemoryImageStore",
    "InMemoryProductStore",
    "ProductCriteria",
    "ProductStore",
    # Service
    "CatalogService",
    "CategoryOverviewNode",
]
