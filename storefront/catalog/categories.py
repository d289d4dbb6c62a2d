"""Category tree.

Owns category lifecycle and the parent/child hierarchy. Categories form
a forest: top-level categories have no parent, and every other category
points at exactly one parent. Re-parenting is checked so the forest can
never contain a cycle.

Archiving a category does not archive its children by default. The
children stay active but drop out of ``hierarchy()`` because their parent
is no longer active; ``archive(..., cascade=True)`` archives the whole
subtree instead.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog

from storefront.assets.provider import AssetProvider, AssetUpload, release_quietly
from storefront.catalog.defaults import DEFAULT_CATEGORIES
from storefront.catalog.repository import (
    CATEGORY_SORT_FIELDS,
    UNSET,
    CategoryCriteria,
    CategoryStore,
    _Unset,
)
from storefront.domain.entities import Category, normalize_name
from storefront.domain.exceptions import (
    CategoryCycleError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from storefront.domain.state_machines import CategoryStatus

logger = structlog.get_logger()

_SORT_ALIASES = {
    "displayorder": "display_order",
    "createdat": "created_at",
    "updatedat": "updated_at",
}


@dataclass
class CategoryNode:
    """A category placed in the hierarchy.

    Attributes:
        category: The category.
        depth: Distance from the top-level ancestor (roots are 0).
        children: Active subcategories in display order.
    """

    category: Category
    depth: int = 0
    children: list["CategoryNode"] = field(default_factory=list)

    def walk(self) -> list["CategoryNode"]:
        """This node followed by all descendants, depth first."""
        nodes = [self]
        for child in self.children:
            nodes.extend(child.walk())
        return nodes


@dataclass
class CategoryDetail:
    """A category with its parent and active direct children.

    Attributes:
        category: The category.
        parent: Parent category, if any.
        subcategories: Active direct children in display order.
    """

    category: Category
    parent: Category | None = None
    subcategories: list[Category] = field(default_factory=list)


class CategoryTree:
    """Service for category lifecycle and hierarchy queries.

    Example usage:
        tree = CategoryTree(InMemoryCategoryStore(), asset_provider)
        dairy = await tree.create("Dairy")
        milk = await tree.create("Milk", parent_id=dairy.id, display_order=1)
        forest = await tree.hierarchy()
    """

    def __init__(self, store: CategoryStore, assets: AssetProvider) -> None:
        """Initialize tree.

        Args:
            store: Category store.
            assets: Asset provider for category images.
        """
        self.store = store
        self.assets = assets

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_by_slug_or_id(self, identifier: str) -> Category | None:
        """Look up a category by id or slug.

        Identifiers with the store's id syntax are looked up as ids;
        anything else is treated as a case-insensitive slug.

        Args:
            identifier: Category id or slug.

        Returns:
            Category if found, None otherwise.
        """
        identifier = identifier.strip()
        if self.store.is_valid_id(identifier):
            return await self.store.get(identifier)
        return await self.store.find_by_slug(identifier.lower())

    async def get_detail(self, identifier: str) -> CategoryDetail:
        """Get a category with its parent and active subcategories.

        Args:
            identifier: Category id or slug.

        Returns:
            CategoryDetail.

        Raises:
            NotFoundError: If no category matches.
        """
        category = await self.get_by_slug_or_id(identifier)
        if category is None:
            raise NotFoundError("Category", identifier)
        parent = await self.store.get(category.parent_id) if category.parent_id else None
        subcategories = await self.store.find(
            CategoryCriteria(status=CategoryStatus.ACTIVE, parent=category.id),
        )
        return CategoryDetail(category=category, parent=parent, subcategories=subcategories)

    async def find(
        self,
        status: CategoryStatus | str | None = CategoryStatus.ACTIVE,
        parent: str | None | _Unset = UNSET,
        is_featured: bool | None = None,
        sort_field: str = "display_order",
        sort_dir: str = "asc",
    ) -> list[Category]:
        """List categories.

        Args:
            status: Required status; None or "any" for every status.
            parent: UNSET for any parent, None for top-level only,
                or a parent id for its direct children.
            is_featured: Required featured flag, or None for any.
            sort_field: Field to sort by.
            sort_dir: "asc" or "desc".

        Returns:
            Ordered categories.

        Raises:
            ValidationError: On unknown status, sort field or direction.
        """
        return await self.store.find(
            CategoryCriteria(
                status=_parse_status(status),
                parent=parent,
                is_featured=is_featured,
            ),
            sort_field=_parse_sort_field(sort_field),
            descending=_parse_descending(sort_dir),
        )

    async def featured(self, limit: int = 10) -> list[Category]:
        """Active featured categories in display order.

        Args:
            limit: Maximum number of categories.

        Returns:
            Featured categories.
        """
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")
        return await self.store.find(
            CategoryCriteria(status=CategoryStatus.ACTIVE, is_featured=True),
            limit=limit,
        )

    async def hierarchy(self) -> list[CategoryNode]:
        """Build the forest of active categories.

        Roots are active categories without a parent. Each root carries
        its active descendants, siblings ordered by display order and then
        creation order. A category whose parent is not active is left
        out together with its subtree.

        Returns:
            Root nodes in display order.
        """
        active = await self.store.find(CategoryCriteria(status=CategoryStatus.ACTIVE))
        children_of: dict[str | None, list[Category]] = {}
        for category in active:
            children_of.setdefault(category.parent_id, []).append(category)

        visited: set[str] = set()

        def build(category: Category, depth: int) -> CategoryNode:
            visited.add(category.id)
            node = CategoryNode(category=category, depth=depth)
            for child in children_of.get(category.id, []):
                if child.id not in visited:
                    node.children.append(build(child, depth + 1))
            return node

        return [build(root, 0) for root in children_of.get(None, [])]

    async def subtree(self, identifier: str) -> list[Category]:
        """A category followed by its active descendants.

        Only descendants reachable through active categories are
        included, matching what ``hierarchy()`` shows.

        Args:
            identifier: Category id or slug.

        Returns:
            Categories, the requested one first.

        Raises:
            NotFoundError: If no category matches.
        """
        root = await self.get_by_slug_or_id(identifier)
        if root is None:
            raise NotFoundError("Category", identifier)
        descendants = await self.store.descendants(root.id)
        children_of: dict[str | None, list[Category]] = {}
        for category in descendants:
            if category.is_active:
                children_of.setdefault(category.parent_id, []).append(category)

        result = [root]
        seen = {root.id}
        frontier = [root.id]
        while frontier:
            parent_id = frontier.pop(0)
            for child in children_of.get(parent_id, []):
                if child.id not in seen:
                    seen.add(child.id)
                    result.append(child)
                    frontier.append(child.id)
        return result

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def create(
        self,
        name: str,
        description: str | None = None,
        parent_id: str | None = None,
        is_featured: bool = False,
        display_order: int = 0,
        image: AssetUpload | None = None,
        icon: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Category:
        """Create a category.

        Args:
            name: Display name; the slug is derived from it.
            description: Optional description.
            parent_id: Optional parent category id.
            is_featured: Featured flag.
            display_order: Sibling ordering key.
            image: Optional image upload.
            icon: Optional icon.
            metadata: Optional metadata.

        Returns:
            Created category.

        Raises:
            ConflictError: If a category has the same name or slug.
            ValidationError: On invalid input or unknown parent.
            AssetProviderError: If the image cannot be stored.
        """
        category = Category.create(
            name=name,
            description=description,
            parent_id=parent_id,
            is_featured=is_featured,
            display_order=display_order,
            icon=icon,
            metadata=metadata,
        )
        await self._ensure_unique(category.name, category.slug)
        if category.parent_id is not None:
            await self._require_parent(category.parent_id)

        if image is not None:
            category.image = await self.assets.store(image, {"folder": "categories"})
        try:
            category = await self.store.insert(category)
        except Exception:
            await release_quietly(self.assets, category.image)
            raise

        logger.info(
            "Category created",
            category_id=category.id,
            slug=category.slug,
            parent_id=category.parent_id,
        )
        return category

    async def update(
        self,
        category_id: str,
        changes: dict[str, Any],
        image: AssetUpload | None = None,
    ) -> Category:
        """Apply a partial update to a category.

        A rename re-derives the slug. A new image replaces the old one,
        which is released after the update is stored; a failed release
        is logged and does not fail the update.

        Args:
            category_id: Category id.
            changes: Fields to change.
            image: Optional replacement image.

        Returns:
            Updated category.

        Raises:
            NotFoundError: If the category does not exist.
            ConflictError: If the new name or slug is taken.
            CategoryCycleError: If re-parenting would create a cycle.
            ValidationError: On invalid changes.
        """
        category = await self.store.get(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)

        if "name" in changes:
            name = normalize_name(changes["name"])
            await self._ensure_unique(name, Category.derive_slug(name), exclude_id=category.id)
        if changes.get("parent_id"):
            await self._require_parent(changes["parent_id"])
            await self._ensure_no_cycle(category.id, changes["parent_id"])
        category.apply_changes(changes)

        previous_image = None
        new_image = None
        if image is not None:
            new_image = await self.assets.store(image, {"folder": "categories"})
            previous_image = category.replace_image(new_image)
        try:
            category = await self.store.update(category)
        except Exception:
            await release_quietly(self.assets, new_image)
            raise
        await release_quietly(self.assets, previous_image)

        logger.info(
            "Category updated",
            category_id=category.id,
            fields=sorted(changes),
            image_replaced=new_image is not None,
        )
        return category

    async def archive(self, category_id: str, cascade: bool = False) -> Category:
        """Soft-delete a category.

        Args:
            category_id: Category id.
            cascade: Also archive every descendant.

        Returns:
            Archived category.

        Raises:
            NotFoundError: If the category does not exist.
        """
        category = await self.store.get(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        category.archive()
        category = await self.store.update(category)

        archived_descendants = 0
        if cascade:
            for descendant in await self.store.descendants(category.id):
                if descendant.status != CategoryStatus.ARCHIVED:
                    descendant.archive()
                    await self.store.update(descendant)
                    archived_descendants += 1

        logger.info(
            "Category archived",
            category_id=category.id,
            cascade=cascade,
            archived_descendants=archived_descendants,
        )
        return category

    async def seed_defaults(self) -> list[Category]:
        """Create the default categories that do not exist yet.

        Existing categories with the same name or slug are left as they
        are, so running this repeatedly is harmless.

        Returns:
            The default categories, in seed order.
        """
        seeded: list[Category] = []
        created = 0
        for spec in DEFAULT_CATEGORIES:
            category = Category.create(**spec)
            existing = await self.store.find_by_name_or_slug(category.name, category.slug)
            if existing is not None:
                seeded.append(existing)
                continue
            seeded.append(await self.store.insert(category))
            created += 1
        logger.info("Default categories seeded", created=created, total=len(seeded))
        return seeded

    # -------------------------------------------------------------------------
    # Invariant checks
    # -------------------------------------------------------------------------

    async def _ensure_unique(self, name: str, slug: str, exclude_id: str | None = None) -> None:
        existing = await self.store.find_by_name_or_slug(name, slug)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(
                "Category with this name or slug already exists",
                details={"name": name, "slug": slug, "existing_id": existing.id},
            )

    async def _require_parent(self, parent_id: str) -> Category:
        parent = await self.store.get(parent_id)
        if parent is None:
            raise ValidationError(
                f"Parent category not found: {parent_id}",
                field="parent_id",
            )
        return parent

    async def _ensure_no_cycle(self, category_id: str, parent_id: str) -> None:
        """Walk up from the proposed parent; meeting the category is a cycle."""
        budget = await self.store.count()
        current: str | None = parent_id
        while current is not None and budget >= 0:
            if current == category_id:
                raise CategoryCycleError(category_id, parent_id)
            ancestor = await self.store.get(current)
            if ancestor is None:
                return
            current = ancestor.parent_id
            budget -= 1
        if current is not None:
            # Pre-existing cycle above the parent; refuse to attach to it.
            raise CategoryCycleError(category_id, parent_id)


def _parse_status(status: CategoryStatus | str | None) -> CategoryStatus | None:
    if status is None or status == "any":
        return None
    try:
        return CategoryStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown category status: {status!r}", field="status") from None


def _parse_sort_field(sort_field: str) -> str:
    normalized = _SORT_ALIASES.get(sort_field.strip().lower(), sort_field.strip().lower())
    if normalized not in CATEGORY_SORT_FIELDS:
        raise ValidationError(
            f"Cannot sort categories by {sort_field!r}",
            field="sort_by",
            details={"allowed": list(CATEGORY_SORT_FIELDS)},
        )
    return normalized


def _parse_descending(sort_dir: str) -> bool:
    normalized = sort_dir.strip().lower()
    if normalized not in {"asc", "desc"}:
        raise ValidationError("sort_order must be asc or desc", field="sort_order")
    return normalized == "desc"
