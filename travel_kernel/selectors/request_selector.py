"""
Module: travel_kernel.selectors.request_selector
Responsibility: Read-only queries over travel requests: lookup, approver
    inbox, "can this user act now", tracking timeline and audit trail.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Inbox membership is decided by ``travel_engines.tracking.can_act``,
      the same checks the transition validator runs; no routing rule is
      re-derived in SQL.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from travel_engines.tracking import StageHistoryEntry, can_act, stage_history
from travel_kernel.domain.actor import ActorRoleClaims
from travel_kernel.domain.events import AuditEntry
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.request import TravelRequest
from travel_kernel.domain.stages import PENDING_STATUSES, Stage
from travel_kernel.exceptions import RequestNotFoundError
from travel_kernel.models.audit import ApprovalAuditModel
from travel_kernel.models.request import TravelRequestModel
from travel_kernel.selectors.base import BaseSelector


class RequestSelector(BaseSelector[TravelRequestModel]):
    """Queries for approval and tracking screens."""

    def __init__(self, session: Session, policy: RoutingPolicy | None = None):
        super().__init__(session)
        self.policy = policy or RoutingPolicy()

    def get(self, request_id: UUID) -> TravelRequest:
        """Fresh snapshot of a request.

        Raises:
            RequestNotFoundError: If no request has this id.
        """
        model = self.session.execute(
            select(TravelRequestModel)
            .where(TravelRequestModel.id == request_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RequestNotFoundError(str(request_id))
        return model.to_dto()

    def get_by_number(self, request_number: str) -> TravelRequest | None:
        model = self.session.execute(
            select(TravelRequestModel)
            .where(TravelRequestModel.request_number == request_number)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def for_requester(self, requester_id: UUID) -> list[TravelRequest]:
        """Requests filed by or for ``requester_id``, newest first."""
        models = self.session.execute(
            select(TravelRequestModel)
            .where(TravelRequestModel.requester_id == requester_id)
            .order_by(TravelRequestModel.created_at.desc())
            .execution_options(populate_existing=True)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def actionable_for(
        self,
        actor: ActorRoleClaims,
        limit: int | None = None,
    ) -> list[TravelRequest]:
        """The approver inbox: pending requests ``actor`` may act on now.

        Oldest submission first.
        """
        stmt = (
            select(TravelRequestModel)
            .where(TravelRequestModel.status.in_([s.value for s in PENDING_STATUSES]))
            .order_by(
                TravelRequestModel.submitted_at,
                TravelRequestModel.request_number,
            )
            .execution_options(populate_existing=True)
        )
        inbox = []
        for model in self.session.execute(stmt).scalars():
            request = model.to_dto()
            allowed, _ = can_act(request, actor, self.policy)
            if allowed:
                inbox.append(request)
                if limit is not None and len(inbox) >= limit:
                    break
        return inbox

    def can_act(
        self,
        request_id: UUID,
        actor: ActorRoleClaims,
    ) -> tuple[bool, Stage | None]:
        return can_act(self.get(request_id), actor, self.policy)

    def stage_history(self, request_id: UUID) -> tuple[StageHistoryEntry, ...]:
        return stage_history(self.get(request_id), self.policy)

    def audit_trail(self, request_id: UUID) -> list[AuditEntry]:
        """Every committed transition on the request, oldest first."""
        rows = self.session.execute(
            select(ApprovalAuditModel)
            .where(ApprovalAuditModel.request_id == request_id)
            .order_by(ApprovalAuditModel.version)
        ).scalars().all()
        return [row.to_dto() for row in rows]
