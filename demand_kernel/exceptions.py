"""
Typed exception hierarchy for the demand kernel.

===============================================================================
TYPED EXCEPTIONS
===============================================================================

Every error the kernel raises:
  1. Has its own class, so callers catch by type and never parse messages.
  2. Carries a machine-readable ``code`` class attribute that request
     handlers can hand straight to an API response.
  3. Stores its structured data as attributes (demand id, statuses, source
     name, ...), which the structured log formatter copies into ``exc_*``
     fields.

    try:
        transitions.transition(demand_id, DemandStatus.IN_PROGRESS, actor_id)
    except ConfirmationRequiredError as e:
        prompt_user(e.confirmation_message)
    except TransitionNotAllowedError as e:
        api_response(code=e.code, message=e.reason)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DemandKernelError (base)
    |
    +-- ValidationError
    |   +-- TransitionNotAllowedError
    |   +-- ConfirmationRequiredError
    |   +-- MissingRegulatoryFieldsError
    |   +-- MissingRejectionReasonError
    |   +-- InvalidActionCodeError
    |   +-- InvalidFieldError
    |
    +-- ConflictError
    |   +-- OptimisticLockError
    |
    +-- NotFoundError
    |   +-- DemandNotFoundError
    |   +-- ApprovalRecordNotFoundError
    |
    +-- UpstreamError
    |   +-- ApprovalSourceUnavailableError
    |   +-- RosterUnavailableError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
HANDLING
===============================================================================

* ValidationError: surfaced to the caller verbatim. Never retried.
* ConflictError: the caller re-reads the demand and retries with fresh state.
* NotFoundError: surfaced as-is.
* UpstreamError: a collaborator (database read, roster provider) failed. The
  original exception is chained as ``__cause__``.
* ImmutabilityError: a programming error. Event rows are append-only and
  demands are never hard-deleted.

On every error path no event is appended and no status is mutated; the caller
rolls back its transaction.
"""


class DemandKernelError(Exception):
    """Base exception for all demand kernel errors."""

    code: str = "DEMAND_KERNEL_ERROR"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(DemandKernelError):
    """A request was rejected by a business rule."""

    code: str = "VALIDATION_ERROR"


class TransitionNotAllowedError(ValidationError):
    """The requested status transition is illegal for the demand's state."""

    code: str = "TRANSITION_NOT_ALLOWED"

    def __init__(self, demand_id: str, from_status: str, to_status: str, reason: str):
        self.demand_id = demand_id
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        super().__init__(reason)


class ConfirmationRequiredError(ValidationError):
    """The transition is legal but the caller has not confirmed it."""

    code: str = "CONFIRMATION_REQUIRED"

    def __init__(
        self,
        demand_id: str,
        from_status: str,
        to_status: str,
        confirmation_message: str,
    ):
        self.demand_id = demand_id
        self.from_status = from_status
        self.to_status = to_status
        self.confirmation_message = confirmation_message
        super().__init__(
            f"Transition {from_status} -> {to_status} on demand {demand_id} "
            f"requires confirmation: {confirmation_message}"
        )


class MissingRegulatoryFieldsError(ValidationError):
    """Regulatory flag and deadline must be set together."""

    code: str = "MISSING_REGULATORY_FIELDS"

    def __init__(self, demand_id: str | None, detail: str):
        self.demand_id = demand_id
        self.detail = detail
        super().__init__(f"Regulatory fields required: {detail}")


class MissingRejectionReasonError(ValidationError):
    """A rejection was submitted without a reason."""

    code: str = "MISSING_REJECTION_REASON"

    def __init__(self, demand_id: str, level: str):
        self.demand_id = demand_id
        self.level = level
        super().__init__(
            f"Rejection at level {level} on demand {demand_id} requires a reason"
        )


class InvalidActionCodeError(ValidationError):
    """An event was submitted with a code outside the closed vocabulary."""

    code: str = "INVALID_ACTION_CODE"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown action code: {action!r}")


class InvalidFieldError(ValidationError):
    """A field change targets a field that cannot be changed this way."""

    code: str = "INVALID_FIELD"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid field {field!r}: {reason}")


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class ConflictError(DemandKernelError):
    """A concurrent writer changed the state this request was based on."""

    code: str = "CONFLICT"


class OptimisticLockError(ConflictError):
    """Compare-and-swap on a demand lost the race."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str, expected: str, field: str = "status"):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected = expected
        self.field = field
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            f"{field} is no longer {expected!r}"
        )


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(DemandKernelError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"


class DemandNotFoundError(NotFoundError):
    code: str = "DEMAND_NOT_FOUND"

    def __init__(self, demand_id: str):
        self.demand_id = demand_id
        super().__init__(f"Demand not found: {demand_id}")


class ApprovalRecordNotFoundError(NotFoundError):
    code: str = "APPROVAL_RECORD_NOT_FOUND"

    def __init__(self, demand_id: str, level: str, approver_id: str):
        self.demand_id = demand_id
        self.level = level
        self.approver_id = approver_id
        super().__init__(
            f"No {level} approval by {approver_id} on demand {demand_id}"
        )


# ---------------------------------------------------------------------------
# Upstream
# ---------------------------------------------------------------------------


class UpstreamError(DemandKernelError):
    """A collaborator the kernel depends on failed."""

    code: str = "UPSTREAM_ERROR"


class ApprovalSourceUnavailableError(UpstreamError):
    """One of the reconciliation input streams could not be read."""

    code: str = "APPROVAL_SOURCE_UNAVAILABLE"

    def __init__(self, demand_id: str, source: str, detail: str):
        self.demand_id = demand_id
        self.source = source
        self.detail = detail
        super().__init__(
            f"Approval source {source!r} unavailable for demand {demand_id}: {detail}"
        )


class RosterUnavailableError(UpstreamError):
    code: str = "ROSTER_UNAVAILABLE"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Committee roster unavailable: {detail}")


# ---------------------------------------------------------------------------
# Immutability
# ---------------------------------------------------------------------------


class ImmutabilityError(DemandKernelError):
    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify an event row or hard-delete a demand."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
