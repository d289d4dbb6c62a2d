"""Base classes for domain layer.

Provides foundational abstractions for entities, value objects
and aggregates shared by the category and product models.
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, TypeVar
from uuid import uuid4


def utcnow() -> datetime:
    """Current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new entity identifier."""
    return str(uuid4())


# ============================================================================
# Value Object Base
# ============================================================================


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable value compared by its fields.

    Subclasses are frozen dataclasses that validate in ``__post_init__``:

        @dataclass(frozen=True)
        class RatingSummary(ValueObject):
            average: float
            count: int
    """


# ============================================================================
# Entity Base
# ============================================================================


T = TypeVar("T")


@dataclass
class Entity(ABC, Generic[T]):
    """Object with a persistent identity.

    Equality and hashing use ``id`` only, so two snapshots of the same
    category taken before and after an update compare equal.

    Attributes:
        id: Unique identifier for this entity.
    """

    id: T

    def __eq__(self, other: object) -> bool:
        return isinstance(other, self.__class__) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


# ============================================================================
# Aggregate Root Base
# ============================================================================


@dataclass(kw_only=True, eq=False)
class AggregateRoot(Entity[T], Generic[T]):
    """Entity stored as one document.

    Every mutation goes through the root so that derived fields stay
    consistent before the document is written back.

    Attributes:
        created_at: Timestamp when the aggregate was created.
        updated_at: Timestamp of last modification.
    """

    created_at: datetime = field(default_factory=utcnow, compare=False)
    updated_at: datetime = field(default_factory=utcnow, compare=False)

    def _touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = utcnow()
