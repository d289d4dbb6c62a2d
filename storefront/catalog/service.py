"""Catalog service.

High-level operations that combine the category tree with the product
catalog. Products join onto category nodes by slug: a product whose
category value equals a category's slug belongs to that category.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from storefront.catalog.categories import CategoryNode, CategoryTree
from storefront.catalog.products import ProductCatalog
from storefront.catalog.query import CatalogFilterBuilder, PaginatedResult
from storefront.catalog.repository import CategoryCount
from storefront.domain.entities import Category, Product

logger = structlog.get_logger()


@dataclass
class CategoryOverviewNode:
    """Hierarchy node annotated with product counts.

    Attributes:
        category: The category.
        depth: Distance from the top-level ancestor.
        product_count: Products whose category is this node's slug.
        available_count: In-stock products among them.
        total_count: product_count summed over the subtree.
        total_available: available_count summed over the subtree.
        children: Annotated subcategories.
    """

    category: Category
    depth: int
    product_count: int = 0
    available_count: int = 0
    total_count: int = 0
    total_available: int = 0
    children: list["CategoryOverviewNode"] = field(default_factory=list)


class CatalogService:
    """Service for catalog-wide operations.

    Example usage:
        service = CatalogService(tree, products, CatalogFilterBuilder())
        overview = await service.category_overview()
        page = await service.products_in_subtree("dairy", {"page": "2"})
    """

    def __init__(
        self,
        categories: CategoryTree,
        products: ProductCatalog,
        filters: CatalogFilterBuilder | None = None,
    ) -> None:
        """Initialize service.

        Args:
            categories: Category tree.
            products: Product catalog.
            filters: Builder for query parameters.
        """
        self.categories = categories
        self.products = products
        self.filters = filters or CatalogFilterBuilder()

    async def category_overview(self) -> list[CategoryOverviewNode]:
        """Active hierarchy with per-node and subtree product counts."""
        forest = await self.categories.hierarchy()
        counts = {c.category: c for c in await self.products.category_counts()}
        return [_annotate(node, counts) for node in forest]

    async def products_in_subtree(
        self,
        identifier: str,
        params: Mapping[str, Any] | None = None,
    ) -> PaginatedResult[Product]:
        """Products of a category and its active descendants.

        Args:
            identifier: Category id or slug.
            params: Listing parameters, as accepted by CatalogFilterBuilder.

        Returns:
            One page of products.

        Raises:
            NotFoundError: If the category does not exist.
            ValidationError: On invalid parameters.
        """
        query = self.filters.build(params)
        subtree = await self.categories.subtree(identifier)
        slugs = [category.slug for category in subtree]
        logger.debug("Listing subtree products", identifier=identifier, slugs=slugs)
        return await self.products.query(query.restrict_to(slugs))

    async def seed_default_categories(self) -> list[Category]:
        """Create any missing default categories."""
        return await self.categories.seed_defaults()


def _annotate(node: CategoryNode, counts: dict[str, CategoryCount]) -> CategoryOverviewNode:
    own = counts.get(node.category.slug)
    annotated = CategoryOverviewNode(
        category=node.category,
        depth=node.depth,
        product_count=own.count if own else 0,
        available_count=own.available_count if own else 0,
    )
    annotated.children = [_annotate(child, counts) for child in node.children]
    annotated.total_count = annotated.product_count + sum(
        child.total_count for child in annotated.children
    )
    annotated.total_available = annotated.available_count + sum(
        child.total_available for child in annotated.children
    )
    return annotated
