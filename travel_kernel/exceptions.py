"""
Typed Exception Hierarchy for the Travel Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval screens must react differently to each failure: re-read and retry,
ask the approver for a missing signature or reason, or show a terminal
message. Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Every exception has a RETRYABLE attribute (safe to re-run ``apply``)
  4. Exceptions carry structured DATA (request id, persisted status, stage)

Example:
    try:
        service.apply(request_id, actor, TransitionAction.APPROVE, payload)
    except StaleStateError as e:
        reload_and_retry(e.request_id)
    except MissingSignatureError as e:
        prompt_for_signature(stage=e.stage)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TravelKernelError (base)
    |
    +-- WorkflowError
    |   +-- RequestNotFoundError
    |   +-- PermissionDeniedError
    |   +-- AlreadyResolvedError
    |   +-- MissingSignatureError
    |   +-- MissingReasonError
    |   +-- InvalidTransitionError
    |
    +-- ConcurrencyError
    |   +-- StaleStateError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                   | Retryable | When Raised
-------------|------------------------|-----------|------------------------------
Workflow     | REQUEST_NOT_FOUND      | no        | Request ID doesn't exist
             | PERMISSION_DENIED      | no        | Actor not the current approver
             | ALREADY_RESOLVED       | no        | Stage already approved (no-op)
             | MISSING_SIGNATURE      | no        | Signature absent or too short
             | MISSING_REASON         | no        | Return without a reason
             | INVALID_TRANSITION     | no        | Action illegal in this status
-------------|------------------------|-----------|------------------------------
Concurrency  | STALE_STATE            | yes       | Conditional write lost a race
-------------|------------------------|-----------|------------------------------
Immutability | IMMUTABILITY_VIOLATION | no        | Audit log row modified

===============================================================================
HANDLING PATTERNS
===============================================================================

1. STALE STATE IS RECOVERABLE: re-read the request and retry. ``apply``
   validates from scratch on every call, so retries are safe.

2. ALREADY RESOLVED IS SUCCESS for idempotent clients (double-tapped
   approve button, replayed request):

    except AlreadyResolvedError:
        return selector.get(request_id)

3. INVALID TRANSITION and PERMISSION DENIED are terminal for the caller:
   surface the message, do not retry.
"""


class TravelKernelError(Exception):
    """
    Base exception for all travel kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TRAVEL_KERNEL_ERROR"
    retryable: bool = False


# Workflow-related exceptions


class WorkflowError(TravelKernelError):
    """Base exception for approval workflow errors."""

    code: str = "WORKFLOW_ERROR"


class RequestNotFoundError(WorkflowError):
    """Travel request with given ID was not found."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Travel request not found: {request_id}")


class PermissionDeniedError(WorkflowError):
    """Actor is not authorized to act on the request's current stage."""

    code: str = "PERMISSION_DENIED"

    def __init__(
        self,
        request_id: str,
        actor_id: str,
        stage: str | None,
        current_status: str,
        reason: str,
    ):
        self.request_id = request_id
        self.actor_id = actor_id
        self.stage = stage
        self.current_status = current_status
        self.reason = reason
        super().__init__(
            f"Actor {actor_id} may not act on request {request_id} "
            f"(stage={stage}, status={current_status}): {reason}"
        )


class AlreadyResolvedError(WorkflowError):
    """
    The stage was already approved.

    Duplicate approve calls (double taps, replays, a second holder of the
    same role losing a race) land here. Idempotent clients treat it as success.
    """

    code: str = "ALREADY_RESOLVED"

    def __init__(self, request_id: str, stage: str, current_status: str):
        self.request_id = request_id
        self.stage = stage
        self.current_status = current_status
        super().__init__(
            f"Stage {stage} of request {request_id} is already approved "
            f"(status={current_status})"
        )


class MissingSignatureError(WorkflowError):
    """Stage requires a signature and none (or a trivial one) was supplied."""

    code: str = "MISSING_SIGNATURE"

    def __init__(
        self,
        request_id: str,
        stage: str,
        current_status: str,
        min_length: int,
    ):
        self.request_id = request_id
        self.stage = stage
        self.current_status = current_status
        self.min_length = min_length
        super().__init__(
            f"Stage {stage} of request {request_id} requires a signature "
            f"of at least {min_length} characters"
        )


class MissingReasonError(WorkflowError):
    """Return-to-requester requires a non-empty reason."""

    code: str = "MISSING_REASON"

    def __init__(self, request_id: str, stage: str, current_status: str):
        self.request_id = request_id
        self.stage = stage
        self.current_status = current_status
        super().__init__(
            f"Returning request {request_id} from stage {stage} requires a reason"
        )


class InvalidTransitionError(WorkflowError):
    """Action is not legal from the request's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        request_id: str,
        action: str,
        current_status: str,
        reason: str = "",
    ):
        self.request_id = request_id
        self.action = action
        self.current_status = current_status
        self.reason = reason
        message = (
            f"Cannot {action} request {request_id} in status {current_status}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# Concurrency-related exceptions


class ConcurrencyError(TravelKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"
    retryable: bool = True


class StaleStateError(ConcurrencyError):
    """
    Optimistic-concurrency conflict.

    Either the caller's expected status no longer matches the persisted one,
    or another transition committed between our read and our conditional
    write.
    """

    code: str = "STALE_STATE"

    def __init__(
        self,
        request_id: str,
        expected_status: str,
        current_status: str,
    ):
        self.request_id = request_id
        self.expected_status = expected_status
        self.current_status = current_status
        super().__init__(
            f"Request {request_id} changed concurrently: expected status "
            f"{expected_status}, found {current_status}"
        )


# Immutability-related exceptions


class ImmutabilityError(TravelKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
