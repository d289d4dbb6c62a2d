"""Domain exceptions.

All domain-level errors that represent business rule violations or
collaborator failures. Every error carries a stable ``kind`` so the
transport layer can map it without inspecting messages.
"""

from typing import Any, ClassVar


class DomainError(Exception):
    """Base class for catalog errors.

    ``kind`` is the lowercase error code; ``details`` is echoed to the
    client unchanged, so it must stay JSON-serializable.
    """

    kind: ClassVar[str] = "domain_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Caller Errors
# ============================================================================


class ValidationError(DomainError):
    """Raised for malformed, missing or contradictory input.

    Caller error; retrying the same input always fails.
    """

    kind = "validation_error"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Human-readable error message.
            field: Name of the offending field, if any.
            details: Optional additional context.
        """
        merged = dict(details or {})
        if field is not None:
            merged.setdefault("field", field)
        super().__init__(message, details=merged)
        self.field = field


class CategoryCycleError(ValidationError):
    """Raised when re-parenting would make a category its own ancestor."""

    def __init__(self, category_id: str, parent_id: str) -> None:
        """Initialize cycle error.

        Args:
            category_id: Category being re-parented.
            parent_id: Proposed parent.
        """
        super().__init__(
            f"Category {category_id} cannot be placed under {parent_id}: "
            "the parent is the category itself or one of its descendants",
            field="parent_id",
            details={"category_id": category_id, "parent_id": parent_id},
        )


class InvalidStateTransitionError(ValidationError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Category").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        super().__init__(
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}",
            field="status",
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


class ConflictError(DomainError):
    """Raised on a uniqueness violation (category name or slug)."""

    kind = "conflict"


class NotFoundError(DomainError):
    """Raised when an id, slug or category has no matching live entity."""

    kind = "not_found"

    def __init__(self, entity_type: str, identifier: str) -> None:
        """Initialize not found error.

        Args:
            entity_type: Type of entity looked up.
            identifier: Identifier that did not match.
        """
        super().__init__(
            f"{entity_type} not found: {identifier}",
            details={"entity_type": entity_type, "identifier": identifier},
        )
        self.entity_type = entity_type
        self.identifier = identifier


# ============================================================================
# Collaborator Errors
# ============================================================================


class StoreUnavailableError(DomainError):
    """Raised when the document store fails. Safe to retry with backoff."""

    kind = "store_unavailable"


class AssetProviderError(DomainError):
    """Raised when the asset provider fails to store or release a binary."""

    kind = "asset_provider_error"
