"""
travel_engines.tracking -- Read-only query helpers for approval screens.

Responsibility:
    ``can_act`` answers "may this user act on this request right now" and
    ``stage_history`` renders the full per-stage timeline for tracking
    displays.  Both defer to the resolver and the transition validator;
    no routing rule is re-derived here.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from travel_engines.pipeline import exclusion_reason
from travel_engines.transitions import authorize
from travel_kernel.domain.actor import ActorRoleClaims
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.request import TravelRequest
from travel_kernel.domain.stages import (
    STAGE_ORDER,
    RequestStatus,
    Stage,
    stage_spec,
)
from travel_kernel.domain.transition import TransitionAction
from travel_kernel.exceptions import WorkflowError


def can_act(
    request: TravelRequest,
    actor: ActorRoleClaims,
    policy: RoutingPolicy | None = None,
) -> tuple[bool, Stage | None]:
    """Whether ``actor`` may act on the current stage, and which stage.

    Runs the same checks ``evaluate`` runs for an approve, so the approval
    UI can never disagree with the applier.
    """
    try:
        target = authorize(request, actor, TransitionAction.APPROVE, policy=policy)
    except WorkflowError:
        return False, None
    return True, target.stage


class StageState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"
    SKIPPED = "skipped"
    REJECTED = "rejected"


@dataclass(frozen=True)
class StageHistoryEntry:
    """One row of the tracking timeline."""

    stage: Stage
    label: str
    state: StageState
    skip_reason: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    comments: str | None = None


def _state_for(request: TravelRequest, stage: Stage) -> StageState:
    if request.record(stage).is_approved:
        return StageState.COMPLETED
    if request.status == RequestStatus.REJECTED and request.rejection_stage == stage:
        return StageState.REJECTED
    if request.current_approver_role == stage:
        return StageState.CURRENT
    return StageState.PENDING


def stage_history(
    request: TravelRequest,
    policy: RoutingPolicy | None = None,
) -> tuple[StageHistoryEntry, ...]:
    """Every catalog stage with its state, in catalog order.

    Stages outside the resolved pipeline are ``skipped`` with the reason the
    resolver left them out.  Drafts have no pipeline yet, so every stage is
    reported as ``pending``.
    """
    policy = policy or RoutingPolicy()
    entries = []
    for stage in STAGE_ORDER:
        label = stage_spec(stage).label
        record = request.record(stage)

        if request.pipeline and stage not in request.pipeline:
            entries.append(StageHistoryEntry(
                stage=stage,
                label=label,
                state=StageState.SKIPPED,
                skip_reason=exclusion_reason(stage, request.facts, policy),
            ))
            continue

        state = _state_for(request, stage)
        if state == StageState.REJECTED:
            entries.append(StageHistoryEntry(
                stage=stage,
                label=label,
                state=state,
                approved_by=request.rejected_by,
                approved_at=request.rejected_at,
                comments=request.rejection_reason,
            ))
        else:
            entries.append(StageHistoryEntry(
                stage=stage,
                label=label,
                state=state,
                approved_by=record.approved_by,
                approved_at=record.approved_at,
                comments=record.comments,
            ))
    return tuple(entries)
