"""
travel_engines.transitions -- Pure transition validator.

Responsibility:
    Decide whether an actor's action (submit / approve / reject / return /
    cancel) is legal against a freshly read request, and compute the next
    request state.  Persistence, conditional writes and notifications are
    the applier's job (``travel_kernel.services.transition_service``).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import travel_kernel/domain/ types and kernel exceptions.

Invariants enforced:
    - Terminal immutability: approved / rejected / cancelled requests
      accept no action.
    - Single cursor: only the stage named by ``current_approver_role`` is
      actionable.
    - At-most-once approval: a stage (or endorsement) already approved
      yields ``AlreadyResolvedError``.
    - Advancement: after an approval the cursor moves to the first
      unapproved pipeline stage, or the request is approved.
    - ``rejection_stage`` is set iff the status becomes rejected.

Check order (shared with ``travel_engines.tracking.can_act``):
    1. terminal / draft status        -> InvalidTransitionError
    2. target stage already approved  -> AlreadyResolvedError
    3. caller's expected status stale -> StaleStateError
    4. target is not the current stage -> PermissionDeniedError
    5. actor fails the stage predicate -> PermissionDeniedError
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from travel_engines.pipeline import resolve
from travel_engines.tracer import traced_engine
from travel_kernel.domain.actor import ActorRoleClaims
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.request import (
    EndorsementRecord,
    StageRecord,
    TravelRequest,
    empty_stage_records,
)
from travel_kernel.domain.stages import (
    RequestStatus,
    Stage,
    pending_status,
    stage_for_status,
    stage_spec,
)
from travel_kernel.domain.transition import (
    TransitionAction,
    TransitionOutcome,
    TransitionPayload,
)
from travel_kernel.exceptions import (
    AlreadyResolvedError,
    InvalidTransitionError,
    MissingReasonError,
    MissingSignatureError,
    PermissionDeniedError,
    StaleStateError,
)

DEFAULT_REJECTION_REASON = "No reason provided"


@dataclass(frozen=True)
class ActionTarget:
    """The stage (and, for ``parent_head``, the department) an actor acts on."""

    stage: Stage
    department_id: UUID | None = None


# ---------------------------------------------------------------------------
# Cursor
# ---------------------------------------------------------------------------


def next_pending_stage(request: TravelRequest) -> Stage | None:
    """First pipeline stage without an approval, or None when all cleared."""
    for stage in request.pipeline:
        if not request.record(stage).is_approved:
            return stage
    return None


def with_cursor(request: TravelRequest) -> TravelRequest:
    """Point ``status`` / ``current_approver_role`` at the next pending stage."""
    stage = next_pending_stage(request)
    if stage is None:
        return replace(
            request, status=RequestStatus.APPROVED, current_approver_role=None,
        )
    return replace(
        request, status=pending_status(stage), current_approver_role=stage,
    )


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


def _endorsement_department(
    request: TravelRequest, actor: ActorRoleClaims,
) -> UUID | None:
    if actor.department_id in request.endorsement_department_ids:
        return actor.department_id
    return None


def _already_approved(
    request: TravelRequest, stage: Stage, department_id: UUID | None,
) -> bool:
    if stage == Stage.PARENT_HEAD and department_id is not None:
        endorsement = request.endorsement(department_id)
        return endorsement is not None and endorsement.is_approved
    return request.record(stage).is_approved


def authorize(
    request: TravelRequest,
    actor: ActorRoleClaims,
    action: TransitionAction,
    payload: TransitionPayload | None = None,
    policy: RoutingPolicy | None = None,
    expected_status: RequestStatus | None = None,
) -> ActionTarget:
    """Check that ``actor`` may perform a stage action right now.

    Applies to approve, reject and return.  Raises the first failing check
    in the documented order; returns the resolved target otherwise.
    """
    payload = payload or TransitionPayload()
    policy = policy or RoutingPolicy()
    request_id = str(request.id)
    status = request.status

    if request.is_terminal:
        raise InvalidTransitionError(
            request_id, action.value, status.value, "request is closed",
        )
    current = stage_for_status(status)
    if current is None:
        raise InvalidTransitionError(
            request_id, action.value, status.value,
            "request has not been submitted",
        )

    target = payload.stage or current
    department_id = (
        _endorsement_department(request, actor)
        if target == Stage.PARENT_HEAD else None
    )

    if action == TransitionAction.APPROVE and _already_approved(
        request, target, department_id,
    ):
        raise AlreadyResolvedError(request_id, target.value, status.value)

    if expected_status is not None and expected_status != status:
        raise StaleStateError(request_id, expected_status.value, status.value)

    if target != current:
        raise PermissionDeniedError(
            request_id, str(actor.user_id), target.value, status.value,
            f"request is waiting on {current.value}",
        )

    spec = stage_spec(current)
    if not spec.authorizes(actor, request, policy):
        raise PermissionDeniedError(
            request_id, str(actor.user_id), current.value, status.value,
            f"actor is not an authorized {spec.role_label}",
        )

    if (
        current == Stage.HEAD
        and not policy.allow_head_self_approval
        and actor.user_id == request.facts.requester_id
    ):
        raise PermissionDeniedError(
            request_id, str(actor.user_id), current.value, status.value,
            "heads may not approve their own requests",
        )

    return ActionTarget(current, department_id)


# ---------------------------------------------------------------------------
# Stage actions
# ---------------------------------------------------------------------------


def _replace_record(
    records: tuple[StageRecord, ...], new: StageRecord,
) -> tuple[StageRecord, ...]:
    return tuple(new if rec.stage == new.stage else rec for rec in records)


def _approve(
    request: TravelRequest,
    actor: ActorRoleClaims,
    target: ActionTarget,
    payload: TransitionPayload,
    policy: RoutingPolicy,
    now: datetime,
) -> TravelRequest:
    spec = stage_spec(target.stage)
    signature = payload.signature
    if spec.requires_signature and (
        not signature or len(signature.strip()) < policy.min_signature_length
    ):
        raise MissingSignatureError(
            str(request.id), target.stage.value, request.status.value,
            policy.min_signature_length,
        )

    stamped = StageRecord(
        stage=target.stage,
        approved_at=now,
        approved_by=actor.user_id,
        comments=payload.comments,
        signature=signature,
    )

    if target.stage == Stage.PARENT_HEAD:
        endorsed = EndorsementRecord(
            department_id=target.department_id,
            approved_at=now,
            approved_by=actor.user_id,
            comments=payload.comments,
            signature=signature,
        )
        endorsements = tuple(
            endorsed if rec.department_id == target.department_id else rec
            for rec in request.endorsements
        )
        request = replace(request, endorsements=endorsements)
        # Siblings still pending: stay on parent_head
        if request.pending_endorsement_department_ids:
            return request

    return with_cursor(
        replace(request, stage_records=_replace_record(request.stage_records, stamped))
    )


def _reject(
    request: TravelRequest,
    actor: ActorRoleClaims,
    target: ActionTarget,
    payload: TransitionPayload,
    now: datetime,
) -> TravelRequest:
    reason = (payload.reason or payload.comments or "").strip()
    return replace(
        request,
        status=RequestStatus.REJECTED,
        current_approver_role=None,
        rejected_at=now,
        rejected_by=actor.user_id,
        rejection_stage=target.stage,
        rejection_reason=reason or DEFAULT_REJECTION_REASON,
    )


def _return(
    request: TravelRequest,
    actor: ActorRoleClaims,
    target: ActionTarget,
    payload: TransitionPayload,
    policy: RoutingPolicy,
    now: datetime,
) -> TravelRequest:
    if target.stage not in policy.return_capable_stages:
        raise InvalidTransitionError(
            str(request.id), TransitionAction.RETURN.value, request.status.value,
            f"stage {target.stage.value} cannot return requests",
        )
    reason = (payload.reason or "").strip()
    if not reason:
        raise MissingReasonError(
            str(request.id), target.stage.value, request.status.value,
        )

    if policy.reapproval_on_return:
        records = empty_stage_records()
        endorsements = tuple(
            EndorsementRecord(department_id=d)
            for d in request.endorsement_department_ids
        )
    else:
        # The requester always signs the revision again
        records = _replace_record(
            request.stage_records, StageRecord(stage=Stage.REQUESTER_SIGNATURE),
        )
        endorsements = request.endorsements

    if policy.return_status == RequestStatus.PENDING_REQUESTER_SIGNATURE:
        pipeline = (Stage.REQUESTER_SIGNATURE,) + tuple(
            s for s in request.pipeline if s != Stage.REQUESTER_SIGNATURE
        )
        current: Stage | None = Stage.REQUESTER_SIGNATURE
    else:
        pipeline = request.pipeline
        current = None

    return replace(
        request,
        status=policy.return_status,
        current_approver_role=current,
        pipeline=pipeline,
        stage_records=records,
        endorsements=endorsements,
        returned_at=now,
        returned_by=actor.user_id,
        return_stage=target.stage,
        return_reason=reason,
        return_count=request.return_count + 1,
    )


# ---------------------------------------------------------------------------
# Requester actions
# ---------------------------------------------------------------------------


def _require_owner(
    request: TravelRequest, actor: ActorRoleClaims, action: TransitionAction,
) -> None:
    owners = (request.facts.requester_id, request.facts.submitted_by_user_id)
    if actor.user_id not in owners:
        raise PermissionDeniedError(
            str(request.id), str(actor.user_id), None, request.status.value,
            f"only the requester or submitter may {action.value}",
        )


def _submit(
    request: TravelRequest,
    actor: ActorRoleClaims,
    policy: RoutingPolicy,
    now: datetime,
) -> TravelRequest:
    if request.status != RequestStatus.DRAFT:
        raise InvalidTransitionError(
            str(request.id), TransitionAction.SUBMIT.value, request.status.value,
            "only drafts can be submitted",
        )
    _require_owner(request, actor, TransitionAction.SUBMIT)

    if not request.pipeline:
        resolved = resolve(request.facts, policy)
        request = replace(
            request,
            pipeline=resolved.stages,
            endorsement_department_ids=resolved.endorsement_department_ids,
            endorsements=tuple(
                EndorsementRecord(department_id=d)
                for d in resolved.endorsement_department_ids
            ),
        )
    # A returned draft resumes at its first unapproved stage
    return with_cursor(replace(request, submitted_at=request.submitted_at or now))


def _cancel(
    request: TravelRequest,
    actor: ActorRoleClaims,
    now: datetime,
) -> TravelRequest:
    _require_owner(request, actor, TransitionAction.CANCEL)
    return replace(
        request,
        status=RequestStatus.CANCELLED,
        current_approver_role=None,
        cancelled_at=now,
        cancelled_by=actor.user_id,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


@traced_engine("transitions", "1.0", fingerprint_fields=("action", "expected_status"))
def evaluate(
    request: TravelRequest,
    actor: ActorRoleClaims,
    action: TransitionAction,
    payload: TransitionPayload | None = None,
    policy: RoutingPolicy | None = None,
    *,
    now: datetime,
    expected_status: RequestStatus | None = None,
) -> TransitionOutcome:
    """Validate ``action`` against ``request`` and compute the next state.

    Raises:
        InvalidTransitionError, AlreadyResolvedError, StaleStateError,
        PermissionDeniedError, MissingSignatureError, MissingReasonError.
    """
    payload = payload or TransitionPayload()
    policy = policy or RoutingPolicy()
    previous = request.status

    if action in (TransitionAction.SUBMIT, TransitionAction.CANCEL):
        if request.is_terminal:
            raise InvalidTransitionError(
                str(request.id), action.value, previous.value, "request is closed",
            )
        if expected_status is not None and expected_status != previous:
            raise StaleStateError(
                str(request.id), expected_status.value, previous.value,
            )
        if action == TransitionAction.SUBMIT:
            updated = _submit(request, actor, policy, now)
        else:
            updated = _cancel(request, actor, now)
        return TransitionOutcome(
            action=action, previous_status=previous, request=updated,
        )

    target = authorize(request, actor, action, payload, policy, expected_status)

    if action == TransitionAction.APPROVE:
        updated = _approve(request, actor, target, payload, policy, now)
    elif action == TransitionAction.REJECT:
        updated = _reject(request, actor, target, payload, now)
    elif action == TransitionAction.RETURN:
        updated = _return(request, actor, target, payload, policy, now)
    else:
        raise InvalidTransitionError(
            str(request.id), action.value, previous.value, "unknown action",
        )

    return TransitionOutcome(
        action=action,
        previous_status=previous,
        request=updated,
        acted_stage=target.stage,
        endorsement_department_id=target.department_id,
    )
