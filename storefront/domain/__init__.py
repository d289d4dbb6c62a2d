"""Domain layer - Entities, value objects, state machines, exceptions.

This module exports the core catalog building blocks:

- **Entities**: Objects with identity (Category, Product, LibraryImage)
- **Value Objects**: Immutable objects compared by value (AssetReference,
  RatingSummary, PriceRange)
- **State Machines**: Category lifecycle (CategoryStatus)
- **Exceptions**: Error taxonomy with a stable ``kind`` per error

Example usage:
    from storefront.domain import AssetReference, Product

    product = Product.create(
        image=AssetReference(storage_id="products/abc", url="https://cdn/abc.jpg"),
        name="Cow Milk 1L",
        category="milk",
        original_price="100",
        discounted_price="80",
    )
    print(product.discount_percentage)  # 20
"""

from storefront.domain.base import AggregateRoot, Entity, ValueObject
from storefront.domain.entities import Category, LibraryImage, Product
from storefront.domain.exceptions import (
    AssetProviderError,
    CategoryCycleError,
    ConflictError,
    DomainError,
    InvalidStateTransitionError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from storefront.domain.slugs import slugify
from storefront.domain.state_machines import CategoryStatus
from storefront.domain.value_objects import (
    AssetReference,
    ImageUsage,
    PriceRange,
    ProductCategory,
    RatingSummary,
    discount_percentage,
)

__all__ = [
    # Base
    "AggregateRoot",
    "Entity",
    "ValueObject",
    # Entities
    "Category",
    "LibraryImage",
    "Product",
    # Value objects
    "AssetReference",
    "ImageUsage",
    "PriceRange",
    "ProductCategory",
    "RatingSummary",
    "discount_percentage",
    "slugify",
    # State machines
    "CategoryStatus",
    # Exceptions
    "AssetProviderError",
    "CategoryCycleError",
    "ConflictError",
    "DomainError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "StoreUnavailableError",
    "ValidationError",
]
