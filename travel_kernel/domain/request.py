"""
Travel request domain types (``travel_kernel.domain.request``).

Responsibility
--------------
Immutable submission facts, per-stage approval records, the full request
snapshot routed through the pipeline, and the resolver's output.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``total_budget`` is non-negative and held to cents, the stored precision.
* ``stage_records`` always holds exactly one record per catalog stage,
  in catalog order.
* ``is_representative`` is derived: submitter differs from requester.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from travel_kernel.domain.stages import (
    STAGE_ORDER,
    TERMINAL_STATUSES,
    RequestStatus,
    RequestType,
    Stage,
)


BUDGET_QUANTUM = Decimal("0.01")


# =========================================================================
# Submission facts
# =========================================================================


@dataclass(frozen=True)
class RequestFacts:
    """Everything the resolver needs, fixed at submission.

    Department lookups (parent department, participants' departments) are
    resolved by the caller.  The three review flags are organizational
    policy decisions consumed as booleans.
    """

    request_type: RequestType
    requester_id: UUID
    requester_name: str
    requester_is_head: bool
    submitted_by_user_id: UUID
    department_id: UUID
    parent_department_id: UUID | None = None
    has_budget: bool = False
    total_budget: Decimal = Decimal("0")
    participant_department_ids: frozenset[UUID] = frozenset()
    hr_review_required: bool = False
    escalation_required: bool = False
    executive_review_required: bool = False

    def __post_init__(self) -> None:
        if self.total_budget < 0:
            raise ValueError(
                f"total_budget must be non-negative, got {self.total_budget}"
            )
        object.__setattr__(
            self,
            "total_budget",
            Decimal(self.total_budget).quantize(BUDGET_QUANTUM, rounding=ROUND_HALF_UP),
        )
        object.__setattr__(
            self, "participant_department_ids", frozenset(self.participant_department_ids)
        )

    @property
    def is_representative(self) -> bool:
        return self.submitted_by_user_id != self.requester_id


# =========================================================================
# Approval records
# =========================================================================


@dataclass(frozen=True)
class StageRecord:
    """The ``{stage}_approved_at/_by/_comments/_signature`` quad."""

    stage: Stage
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    comments: str | None = None
    signature: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None


@dataclass(frozen=True)
class EndorsementRecord:
    """A ``parent_head`` sub-stage for one department."""

    department_id: UUID
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    comments: str | None = None
    signature: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None


def empty_stage_records() -> tuple[StageRecord, ...]:
    return tuple(StageRecord(stage=s) for s in STAGE_ORDER)


# =========================================================================
# Resolver output
# =========================================================================


@dataclass(frozen=True)
class ResolvedPipeline:
    """Ordered stages plus the initial cursor position."""

    stages: tuple[Stage, ...]
    endorsement_department_ids: tuple[UUID, ...]
    initial_status: RequestStatus
    initial_current_approver_role: Stage | None


# =========================================================================
# Request snapshot
# =========================================================================


@dataclass(frozen=True)
class TravelRequest:
    """Immutable snapshot of a request and its workflow state.

    Produced by the ORM model's ``to_dto`` and by the transition engine;
    ``version`` is the optimistic-concurrency counter of the persisted row.
    """

    id: UUID
    request_number: str
    facts: RequestFacts
    status: RequestStatus
    current_approver_role: Stage | None = None
    pipeline: tuple[Stage, ...] = ()
    endorsement_department_ids: tuple[UUID, ...] = ()
    stage_records: tuple[StageRecord, ...] = field(default_factory=empty_stage_records)
    endorsements: tuple[EndorsementRecord, ...] = ()
    rejected_at: datetime | None = None
    rejected_by: UUID | None = None
    rejection_stage: Stage | None = None
    rejection_reason: str | None = None
    returned_at: datetime | None = None
    returned_by: UUID | None = None
    return_stage: Stage | None = None
    return_reason: str | None = None
    return_count: int = 0
    cancelled_at: datetime | None = None
    cancelled_by: UUID | None = None
    submitted_at: datetime | None = None
    created_at: datetime | None = None
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def record(self, stage: Stage) -> StageRecord:
        for rec in self.stage_records:
            if rec.stage == stage:
                return rec
        raise KeyError(stage)

    def endorsement(self, department_id: UUID) -> EndorsementRecord | None:
        for rec in self.endorsements:
            if rec.department_id == department_id:
                return rec
        return None

    @property
    def pending_endorsement_department_ids(self) -> tuple[UUID, ...]:
        return tuple(
            dept_id for dept_id in self.endorsement_department_ids
            if not (rec := self.endorsement(dept_id)) or not rec.is_approved
        )

    @property
    def approved_stages(self) -> tuple[Stage, ...]:
        return tuple(rec.stage for rec in self.stage_records if rec.is_approved)

    def pipeline_index(self, stage: Stage | None) -> int | None:
        if stage is None or stage not in self.pipeline:
            return None
        return self.pipeline.index(stage)
