"""
Module: travel_kernel.models.audit
Responsibility: ORM persistence for the append-only approval audit log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit rows are append-only; ORM listeners reject UPDATE and DELETE.
    - One row per committed transition, written in the same transaction
      as the request's conditional UPDATE.
    - ``version`` is the request version the transition produced, so
      (request_id, version) is unique and orders the trail.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from travel_kernel.db.base import Base, UUIDString, aware_utc
from travel_kernel.domain.events import AuditEntry
from travel_kernel.domain.stages import RequestStatus, Stage
from travel_kernel.domain.transition import TransitionAction
from travel_kernel.exceptions import ImmutabilityViolationError


class ApprovalAuditModel(Base):
    """One committed transition on a travel request. Append-only."""

    __tablename__ = "approval_audit_log"

    __table_args__ = (
        UniqueConstraint(
            "request_id", "version",
            name="uq_approval_audit_request_version",
        ),
        Index("ix_approval_audit_actor", "actor_id"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("travel_requests.id"),
        nullable=False,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    stage: Mapped[str | None] = mapped_column(String(50))
    department_id: Mapped[UUID | None]
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    from_status: Mapped[str] = mapped_column(String(50), nullable=False)
    to_status: Mapped[str] = mapped_column(String(50), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ApprovalAudit {self.action} request={self.request_id} "
            f"{self.from_status}->{self.to_status}>"
        )

    def to_dto(self) -> AuditEntry:
        """Convert ORM model to frozen domain DTO."""
        return AuditEntry(
            request_id=self.request_id,
            version=self.version,
            stage=Stage(self.stage) if self.stage else None,
            department_id=self.department_id,
            actor_id=self.actor_id,
            action=TransitionAction(self.action),
            from_status=RequestStatus(self.from_status),
            to_status=RequestStatus(self.to_status),
            comments=self.comments,
            created_at=aware_utc(self.created_at),
        )


# =============================================================================
# ORM-Level Immutability (Append-Only)
# =============================================================================


@event.listens_for(ApprovalAuditModel, "before_update")
def prevent_audit_update(mapper, connection, target):
    """Prevent updates to approval audit records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalAudit",
        entity_id=str(target.id),
        reason="Approval audit records are immutable -- cannot modify",
    )


@event.listens_for(ApprovalAuditModel, "before_delete")
def prevent_audit_delete(mapper, connection, target):
    """Prevent deletion of approval audit records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalAudit",
        entity_id=str(target.id),
        reason="Approval audit records are immutable -- cannot delete",
    )
