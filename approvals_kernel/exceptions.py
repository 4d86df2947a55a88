"""
Typed exception hierarchy for the approvals kernel.

===============================================================================
HARD ERRORS VS SOFT OUTCOMES
===============================================================================

Domain-expected outcomes of an approval action are NOT exceptions:

    - no chain exists            -> ProcessApprovalResult.chain_exists = False
    - actor not authorized       -> ProcessApprovalResult.error = "<reason>"
    - another actor won the race -> ProcessApprovalResult.error = "Step already processed"
    - acted on a non-current level -> ProcessApprovalResult.error = "No pending step at level N"

Callers render those without a try/except.  The classes below are for
genuinely broken states: invalid configuration, missing records that must
exist, an attempt to rewrite a terminal step, or an entity type with no
registered adapter.  Persistence failures (connection loss, integrity
errors) propagate unchanged from SQLAlchemy.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ApprovalKernelError (base)
    |
    +-- PolicyError
    |   +-- InvalidPolicyLevelsError
    |
    +-- ChainError
    |   +-- StepNotFoundError
    |
    +-- ImmutabilityError
    |   +-- StepImmutableError
    |
    +-- AdapterError
        +-- EntityAdapterNotFoundError
        +-- EntityNotFoundError

Every class carries a machine-readable ``code`` and keeps its structured
data as attributes so the structured log formatter can emit them.
"""


class ApprovalKernelError(Exception):
    """
    Base exception for all approvals kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "APPROVAL_KERNEL_ERROR"


# Policy-related exceptions


class PolicyError(ApprovalKernelError):
    """Base exception for approval policy errors."""

    code: str = "POLICY_ERROR"


class InvalidPolicyLevelsError(PolicyError):
    """Policy levels are not ordered 1..n without gaps or duplicates."""

    code: str = "INVALID_POLICY_LEVELS"

    def __init__(self, policy_name: str, level_orders: tuple[int, ...]):
        self.policy_name = policy_name
        self.level_orders = level_orders
        super().__init__(
            f"Policy {policy_name!r} has invalid level orders {list(level_orders)}: "
            "levels must be numbered contiguously from 1"
        )


# Chain-related exceptions


class ChainError(ApprovalKernelError):
    """Base exception for approval chain errors."""

    code: str = "CHAIN_ERROR"


class StepNotFoundError(ChainError):
    """Approval step with given ID was not found."""

    code: str = "STEP_NOT_FOUND"

    def __init__(self, step_id: str):
        self.step_id = step_id
        super().__init__(f"Approval step not found: {step_id}")


# Immutability-related exceptions


class ImmutabilityError(ApprovalKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class StepImmutableError(ImmutabilityError):
    """Attempted to modify an approval step that already reached a terminal state."""

    code: str = "STEP_IMMUTABLE"

    def __init__(self, step_id: str, status: str):
        self.step_id = step_id
        self.status = status
        super().__init__(
            f"Approval step {step_id} is {status} and cannot be modified"
        )


# Entity adapter exceptions


class AdapterError(ApprovalKernelError):
    """Base exception for entity adapter errors."""

    code: str = "ADAPTER_ERROR"


class EntityAdapterNotFoundError(AdapterError):
    """No adapter is registered for the entity type."""

    code: str = "ENTITY_ADAPTER_NOT_FOUND"

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"No entity adapter registered for {entity_type}")


class EntityNotFoundError(AdapterError):
    """The owning business entity does not exist."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")
