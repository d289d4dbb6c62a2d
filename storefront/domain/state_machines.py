"""State machines for domain entities.

Deterministic state machine for the category lifecycle. Archiving is
the soft delete for categories: an archived category is kept in the
store and never leaves that state.
"""

from enum import Enum

from storefront.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Category State Machine
# ============================================================================


class CategoryStatus(str, Enum):
    """Category lifecycle states.

    State diagram:
        ACTIVE ◄──────────────► INACTIVE
          │                        │
          │ archive                │ archive
          ▼                        ▼
        ARCHIVED ◄─────────────────┘
    """

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"

    def can_transition_to(self, target: "CategoryStatus") -> bool:
        """Check if transition to target state is valid.

        Staying in the current state is allowed and is a no-op.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target == self or target in _CATEGORY_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["CategoryStatus"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return sorted(_CATEGORY_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state.

        Returns:
            True if no further transitions are possible.
        """
        return len(_CATEGORY_TRANSITIONS.get(self, set())) == 0


# Category state transitions (defined outside enum to avoid Enum restrictions)
_CATEGORY_TRANSITIONS: dict[CategoryStatus, set[CategoryStatus]] = {
    CategoryStatus.ACTIVE: {CategoryStatus.INACTIVE, CategoryStatus.ARCHIVED},
    CategoryStatus.INACTIVE: {CategoryStatus.ACTIVE, CategoryStatus.ARCHIVED},
    CategoryStatus.ARCHIVED: set(),  # Terminal state
}


def validate_category_transition(
    category_id: str,
    current_status: CategoryStatus,
    target_status: CategoryStatus,
) -> None:
    """Validate and raise if category state transition is invalid.

    Args:
        category_id: Category identifier for error message.
        current_status: Current category status.
        target_status: Target category status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Category",
            entity_id=category_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
