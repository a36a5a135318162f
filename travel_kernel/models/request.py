"""
Module: travel_kernel.models.request
Responsibility: ORM persistence for travel / seminar requests and their
    workflow state.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - Status values are limited by a DB check constraint to the
      ``RequestStatus`` lifecycle.
    - Every catalog stage has its own ``{stage}_approved_at / _approved_by /
      _comments / _signature`` columns.
    - ``version`` is bumped by every conditional write; it is the
      optimistic-concurrency token read back by ``to_dto``.
    - Per-department endorsements and the resolved pipeline live on the row
      itself so one UPDATE changes the whole workflow state atomically.

Failure modes:
    - IntegrityError on a duplicate ``request_number``.
    - IntegrityError on an unknown status value (check constraint).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from travel_kernel.db.base import TrackedBase, UUIDString, aware_utc
from travel_kernel.domain.request import (
    EndorsementRecord,
    RequestFacts,
    StageRecord,
    TravelRequest,
)
from travel_kernel.domain.stages import (
    STAGE_ORDER,
    RequestStatus,
    RequestType,
    Stage,
)

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in RequestStatus)


def _parse_dt(value: str | None) -> datetime | None:
    if value is None:
        return None
    return aware_utc(datetime.fromisoformat(value))


def _uuid_or_none(value: str | None) -> UUID | None:
    return UUID(value) if value is not None else None


class TravelRequestModel(TrackedBase):
    """Persistent travel / seminar request.

    Contract:
        Rows are written on submission and mutated only through the
        transition service's conditional UPDATE.  Submission facts never
        change after INSERT.
    """

    __tablename__ = "travel_requests"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_travel_requests_valid_status",
        ),
        CheckConstraint(
            "total_budget >= 0",
            name="ck_travel_requests_budget_non_negative",
        ),
        Index("ix_travel_requests_status", "status"),
        Index("ix_travel_requests_requester", "requester_id"),
        Index("ix_travel_requests_current_role", "current_approver_role"),
    )

    request_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True,
    )
    request_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Submission facts
    requester_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    requester_name: Mapped[str] = mapped_column(String(200), nullable=False)
    requester_is_head: Mapped[bool] = mapped_column(Boolean, nullable=False)
    submitted_by_user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    is_representative: Mapped[bool] = mapped_column(Boolean, nullable=False)
    department_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    parent_department_id: Mapped[UUID | None]
    has_budget: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_budget: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    participant_department_ids: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    hr_review_required: Mapped[bool] = mapped_column(Boolean, default=False)
    escalation_required: Mapped[bool] = mapped_column(Boolean, default=False)
    executive_review_required: Mapped[bool] = mapped_column(Boolean, default=False)

    # Workflow state
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    current_approver_role: Mapped[str | None] = mapped_column(String(50))
    pipeline: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    endorsement_department_ids: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    endorsements: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Stage quads, in catalog order
    requester_signature_approved_at: Mapped[datetime | None]
    requester_signature_approved_by: Mapped[UUID | None]
    requester_signature_comments: Mapped[str | None] = mapped_column(Text)
    requester_signature_signature: Mapped[str | None] = mapped_column(Text)

    head_approved_at: Mapped[datetime | None]
    head_approved_by: Mapped[UUID | None]
    head_comments: Mapped[str | None] = mapped_column(Text)
    head_signature: Mapped[str | None] = mapped_column(Text)

    parent_head_approved_at: Mapped[datetime | None]
    parent_head_approved_by: Mapped[UUID | None]
    parent_head_comments: Mapped[str | None] = mapped_column(Text)
    parent_head_signature: Mapped[str | None] = mapped_column(Text)

    admin_approved_at: Mapped[datetime | None]
    admin_approved_by: Mapped[UUID | None]
    admin_comments: Mapped[str | None] = mapped_column(Text)
    admin_signature: Mapped[str | None] = mapped_column(Text)

    comptroller_approved_at: Mapped[datetime | None]
    comptroller_approved_by: Mapped[UUID | None]
    comptroller_comments: Mapped[str | None] = mapped_column(Text)
    comptroller_signature: Mapped[str | None] = mapped_column(Text)

    hr_approved_at: Mapped[datetime | None]
    hr_approved_by: Mapped[UUID | None]
    hr_comments: Mapped[str | None] = mapped_column(Text)
    hr_signature: Mapped[str | None] = mapped_column(Text)

    vp_approved_at: Mapped[datetime | None]
    vp_approved_by: Mapped[UUID | None]
    vp_comments: Mapped[str | None] = mapped_column(Text)
    vp_signature: Mapped[str | None] = mapped_column(Text)

    president_approved_at: Mapped[datetime | None]
    president_approved_by: Mapped[UUID | None]
    president_comments: Mapped[str | None] = mapped_column(Text)
    president_signature: Mapped[str | None] = mapped_column(Text)

    exec_approved_at: Mapped[datetime | None]
    exec_approved_by: Mapped[UUID | None]
    exec_comments: Mapped[str | None] = mapped_column(Text)
    exec_signature: Mapped[str | None] = mapped_column(Text)

    # Rejection facts
    rejected_at: Mapped[datetime | None]
    rejected_by: Mapped[UUID | None]
    rejection_stage: Mapped[str | None] = mapped_column(String(50))
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    # Return facts
    returned_at: Mapped[datetime | None]
    returned_by: Mapped[UUID | None]
    return_stage: Mapped[str | None] = mapped_column(String(50))
    return_reason: Mapped[str | None] = mapped_column(Text)
    return_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Cancellation facts
    cancelled_at: Mapped[datetime | None]
    cancelled_by: Mapped[UUID | None]

    submitted_at: Mapped[datetime | None]

    def __repr__(self) -> str:
        return (
            f"<TravelRequest {self.request_number} "
            f"status={self.status} v{self.version}>"
        )

    def to_dto(self) -> TravelRequest:
        """Convert ORM model to frozen domain DTO."""
        facts = RequestFacts(
            request_type=RequestType(self.request_type),
            requester_id=self.requester_id,
            requester_name=self.requester_name,
            requester_is_head=self.requester_is_head,
            submitted_by_user_id=self.submitted_by_user_id,
            department_id=self.department_id,
            parent_department_id=self.parent_department_id,
            has_budget=self.has_budget,
            total_budget=Decimal(self.total_budget),
            participant_department_ids=frozenset(
                UUID(d) for d in self.participant_department_ids
            ),
            hr_review_required=bool(self.hr_review_required),
            escalation_required=bool(self.escalation_required),
            executive_review_required=bool(self.executive_review_required),
        )
        stage_records = tuple(
            StageRecord(
                stage=stage,
                approved_at=aware_utc(getattr(self, f"{stage.value}_approved_at")),
                approved_by=getattr(self, f"{stage.value}_approved_by"),
                comments=getattr(self, f"{stage.value}_comments"),
                signature=getattr(self, f"{stage.value}_signature"),
            )
            for stage in STAGE_ORDER
        )
        endorsements = tuple(
            EndorsementRecord(
                department_id=UUID(item["department_id"]),
                approved_at=_parse_dt(item.get("approved_at")),
                approved_by=_uuid_or_none(item.get("approved_by")),
                comments=item.get("comments"),
                signature=item.get("signature"),
            )
            for item in self.endorsements
        )
        return TravelRequest(
            id=self.id,
            request_number=self.request_number,
            facts=facts,
            status=RequestStatus(self.status),
            current_approver_role=(
                Stage(self.current_approver_role)
                if self.current_approver_role else None
            ),
            pipeline=tuple(Stage(s) for s in self.pipeline),
            endorsement_department_ids=tuple(
                UUID(d) for d in self.endorsement_department_ids
            ),
            stage_records=stage_records,
            endorsements=endorsements,
            rejected_at=aware_utc(self.rejected_at),
            rejected_by=self.rejected_by,
            rejection_stage=(
                Stage(self.rejection_stage) if self.rejection_stage else None
            ),
            rejection_reason=self.rejection_reason,
            returned_at=aware_utc(self.returned_at),
            returned_by=self.returned_by,
            return_stage=Stage(self.return_stage) if self.return_stage else None,
            return_reason=self.return_reason,
            return_count=self.return_count,
            cancelled_at=aware_utc(self.cancelled_at),
            cancelled_by=self.cancelled_by,
            submitted_at=aware_utc(self.submitted_at),
            created_at=aware_utc(self.created_at),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: TravelRequest) -> TravelRequestModel:
        """Create ORM model from domain DTO."""
        facts = dto.facts
        model = cls(
            id=dto.id,
            request_number=dto.request_number,
            request_type=facts.request_type.value,
            requester_id=facts.requester_id,
            requester_name=facts.requester_name,
            requester_is_head=facts.requester_is_head,
            submitted_by_user_id=facts.submitted_by_user_id,
            is_representative=facts.is_representative,
            department_id=facts.department_id,
            parent_department_id=facts.parent_department_id,
            has_budget=facts.has_budget,
            total_budget=facts.total_budget,
            participant_department_ids=sorted(
                str(d) for d in facts.participant_department_ids
            ),
            hr_review_required=facts.hr_review_required,
            escalation_required=facts.escalation_required,
            executive_review_required=facts.executive_review_required,
            **workflow_columns(dto),
        )
        if dto.created_at is not None:
            model.created_at = dto.created_at
            model.updated_at = dto.created_at
        return model


def workflow_columns(dto: TravelRequest) -> dict[str, Any]:
    """Column values for every engine-owned field of ``dto``.

    Used for the INSERT on submission and for the SET clause of the
    conditional UPDATE; ``version`` is left to the caller.
    """
    values: dict[str, Any] = {
        "status": dto.status.value,
        "current_approver_role": (
            dto.current_approver_role.value if dto.current_approver_role else None
        ),
        "pipeline": [s.value for s in dto.pipeline],
        "endorsement_department_ids": [
            str(d) for d in dto.endorsement_department_ids
        ],
        "endorsements": [
            {
                "department_id": str(rec.department_id),
                "approved_at": (
                    rec.approved_at.isoformat() if rec.approved_at else None
                ),
                "approved_by": str(rec.approved_by) if rec.approved_by else None,
                "comments": rec.comments,
                "signature": rec.signature,
            }
            for rec in dto.endorsements
        ],
        "rejected_at": dto.rejected_at,
        "rejected_by": dto.rejected_by,
        "rejection_stage": (
            dto.rejection_stage.value if dto.rejection_stage else None
        ),
        "rejection_reason": dto.rejection_reason,
        "returned_at": dto.returned_at,
        "returned_by": dto.returned_by,
        "return_stage": dto.return_stage.value if dto.return_stage else None,
        "return_reason": dto.return_reason,
        "return_count": dto.return_count,
        "cancelled_at": dto.cancelled_at,
        "cancelled_by": dto.cancelled_by,
        "submitted_at": dto.submitted_at,
    }
    for rec in dto.stage_records:
        prefix = rec.stage.value
        values[f"{prefix}_approved_at"] = rec.approved_at
        values[f"{prefix}_approved_by"] = rec.approved_by
        values[f"{prefix}_comments"] = rec.comments
        values[f"{prefix}_signature"] = rec.signature
    return values
