"""
Typed Exception Hierarchy for the Approval Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval decisions are audited. Callers (UI, API layer, batch jobs) must be
able to tell "not your turn" apart from "the proposal is already closed" or
"the matrix has no step for this status" without parsing message strings.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (proposal_id, status, role, ...)

Example - WRONG way to handle errors:
    try:
        service.approve(actor, proposal)
    except Exception as e:
        if "not your turn" in str(e):  # FRAGILE
            ...

Example - RIGHT way:
    try:
        service.approve(actor, proposal)
    except AuthorizationError as e:
        api_response(code=e.code, required_role=e.required_role)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ApprovalKernelError (base)
    |
    +-- ValidationError
    |   +-- MissingCommentError
    |   +-- MissingRoleError
    |
    +-- AuthorizationError
    |
    +-- WorkflowError
    |   +-- TerminalStateError
    |   +-- InvalidTransitionError
    |
    +-- RoutingError
    +-- LedgerInvariantError
    +-- ProposalNotFoundError
    +-- ActorNotFoundError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityViolationError
    +-- MatrixConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_COMMENT             | Reject without a comment
                | MISSING_ROLE                | Admin override without a role
----------------|-----------------------------|-----------------------------------------
Authorization   | NOT_AUTHORIZED              | Actor may not act at this stage
----------------|-----------------------------|-----------------------------------------
Workflow        | TERMINAL_STATE              | Mutating an Approved/Rejected proposal
                | INVALID_TRANSITION          | Transition not defined from status
----------------|-----------------------------|-----------------------------------------
Routing         | ROUTING_FAILED              | No resolvable approver for the status
----------------|-----------------------------|-----------------------------------------
Ledger          | LEDGER_INVARIANT_VIOLATION  | History would break a ledger invariant
----------------|-----------------------------|-----------------------------------------
Lookup          | PROPOSAL_NOT_FOUND          | Proposal id not in the store
                | ACTOR_NOT_FOUND             | Actor name not in the directory
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Stored version != expected version
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Deleting/updating a decided history row
----------------|-----------------------------|-----------------------------------------
Config          | MATRIX_CONFIG_INVALID       | Approval matrix YAML failed validation

All errors are reported to the caller. Nothing is retried internally, and no
ledger mutation is persisted when any of them is raised.
"""


class ApprovalKernelError(Exception):
    """
    Base exception for all approval kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "APPROVAL_KERNEL_ERROR"


# Validation-related exceptions


class ValidationError(ApprovalKernelError):
    """Caller input is incomplete or malformed."""

    code: str = "VALIDATION_ERROR"


class MissingCommentError(ValidationError):
    """A rejection was attempted without a comment."""

    code: str = "MISSING_COMMENT"

    def __init__(self, proposal_id: str, action: str = "reject"):
        self.proposal_id = proposal_id
        self.action = action
        super().__init__(
            f"A comment is required to {action} proposal {proposal_id}"
        )


class MissingRoleError(ValidationError):
    """An admin override was attempted without selecting a role."""

    code: str = "MISSING_ROLE"

    def __init__(self, proposal_id: str):
        self.proposal_id = proposal_id
        super().__init__(
            f"A role must be selected to act on proposal {proposal_id}"
        )


# Authorization


class AuthorizationError(ApprovalKernelError):
    """The actor is not entitled to act on the proposal at this stage."""

    code: str = "NOT_AUTHORIZED"

    def __init__(
        self,
        proposal_id: str,
        actor_name: str,
        status: str,
        required_role: str | None = None,
        reason: str = "not your turn",
    ):
        self.proposal_id = proposal_id
        self.actor_name = actor_name
        self.status = status
        self.required_role = required_role
        self.reason = reason
        super().__init__(
            f"{actor_name} may not act on proposal {proposal_id} "
            f"at status '{status}': {reason}"
        )


# Workflow-related exceptions


class WorkflowError(ApprovalKernelError):
    """Base exception for state-machine errors."""

    code: str = "WORKFLOW_ERROR"


class TerminalStateError(WorkflowError):
    """
    Attempted mutation of an Approved or Rejected proposal.

    Raised for administrators too: the override never bypasses terminality.
    """

    code: str = "TERMINAL_STATE"

    def __init__(self, proposal_id: str, status: str):
        self.proposal_id = proposal_id
        self.status = status
        super().__init__(
            f"Proposal {proposal_id} is {status} and can no longer change"
        )


class InvalidTransitionError(WorkflowError):
    """No transition is defined between the two statuses."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition from '{from_status}' to '{to_status}'"
        )


# Routing


class RoutingError(ApprovalKernelError):
    """
    No approver role can be resolved for the proposal's status.

    Fails closed: the workflow is never advanced past an unresolved step.
    """

    code: str = "ROUTING_FAILED"

    def __init__(self, proposal_id: str, status: str, reason: str = ""):
        self.proposal_id = proposal_id
        self.status = status
        self.reason = reason
        message = f"No approver can be resolved for proposal {proposal_id} at '{status}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# Ledger


class LedgerInvariantError(ApprovalKernelError):
    """A computed history would break a ledger invariant."""

    code: str = "LEDGER_INVARIANT_VIOLATION"

    def __init__(self, status: str, invariant: str, detail: str):
        self.status = status
        self.invariant = invariant
        self.detail = detail
        super().__init__(
            f"Ledger invariant '{invariant}' violated at status '{status}': {detail}"
        )


# Lookup


class ProposalNotFoundError(ApprovalKernelError):
    """Proposal id does not exist in the store."""

    code: str = "PROPOSAL_NOT_FOUND"

    def __init__(self, proposal_id: str):
        self.proposal_id = proposal_id
        super().__init__(f"Proposal not found: {proposal_id}")


class ActorNotFoundError(ApprovalKernelError):
    """Actor name does not exist in the directory."""

    code: str = "ACTOR_NOT_FOUND"

    def __init__(self, actor_name: str):
        self.actor_name = actor_name
        super().__init__(f"Actor not found: {actor_name}")


# Concurrency-related exceptions


class ConcurrencyError(ApprovalKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """The stored proposal changed since the snapshot was read."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, proposal_id: str, expected_version: int, actual_version: int | None):
        self.proposal_id = proposal_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on proposal {proposal_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Immutability


class ImmutabilityViolationError(ApprovalKernelError):
    """Attempted to modify or delete a decided history record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Configuration


class MatrixConfigError(ApprovalKernelError):
    """The approval matrix configuration failed validation."""

    code: str = "MATRIX_CONFIG_INVALID"

    def __init__(self, errors: list[str], source: str = ""):
        self.errors = list(errors)
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(
            f"Approval matrix configuration invalid{where}: " + "; ".join(self.errors)
        )
