"""
travel_kernel.services.transition_service -- Transition applier.

Responsibility:
    Persist new requests with their resolved pipeline, and apply approver
    and requester actions through a conditional (optimistic-concurrency)
    UPDATE.  Legality is decided by the pure validator in
    ``travel_engines.transitions``; this service owns I/O only.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and the
    pure engines.

Invariants enforced:
    - Every apply re-reads the row and validates from scratch.
    - The write predicate is ``id AND version AND status``; at most one
      concurrent transition per read state can win.
    - Status, cursor, stage fields and version change in one statement;
      the audit row is written in the same transaction.
    - Notifications are published only after the transaction commits.

Failure modes:
    - RequestNotFoundError if the request does not exist.
    - Every validator error (PermissionDeniedError, AlreadyResolvedError,
      StaleStateError, MissingSignatureError, MissingReasonError,
      InvalidTransitionError) propagates unchanged.
    - AlreadyResolvedError / StaleStateError when the conditional UPDATE
      loses a race.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from travel_engines.pipeline import resolve
from travel_engines.transitions import evaluate
from travel_kernel.domain.actor import ActorRoleClaims
from travel_kernel.domain.clock import Clock, SystemClock
from travel_kernel.domain.events import TransitionEvent
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.request import (
    EndorsementRecord,
    RequestFacts,
    TravelRequest,
)
from travel_kernel.domain.stages import RequestStatus, RequestType, stage_for_status
from travel_kernel.domain.transition import (
    TransitionAction,
    TransitionOutcome,
    TransitionPayload,
)
from travel_kernel.exceptions import (
    AlreadyResolvedError,
    RequestNotFoundError,
    StaleStateError,
    TravelKernelError,
)
from travel_kernel.logging_config import LogContext, get_logger
from travel_kernel.models.audit import ApprovalAuditModel
from travel_kernel.models.request import TravelRequestModel, workflow_columns
from travel_kernel.services.notification_hook import NotificationHook
from travel_kernel.services.sequence_service import SequenceService

logger = get_logger("services.transition_service")

_NUMBER_PREFIX = {
    RequestType.TRAVEL_ORDER: "TO",
    RequestType.SEMINAR: "SM",
}


class TransitionService:
    """Creates requests and applies workflow transitions."""

    def __init__(
        self,
        session: Session,
        policy: RoutingPolicy | None = None,
        notifier: NotificationHook | None = None,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ) -> None:
        self._session = session
        self._policy = policy or RoutingPolicy()
        self._notifier = notifier or NotificationHook()
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._sequences = SequenceService(session)

    @property
    def policy(self) -> RoutingPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def submit_request(
        self,
        facts: RequestFacts,
        request_number: str | None = None,
        *,
        draft: bool = False,
        request_id: UUID | None = None,
    ) -> TravelRequest:
        """Persist a new request, routed into its pipeline unless ``draft``.

        Args:
            facts: Pre-resolved submission facts.
            request_number: Display code; generated as ``TO-2025-0001`` /
                ``SM-2025-0001`` when omitted.
            draft: Save without routing; ``submit`` routes it later.
            request_id: Explicit id, for callers that pre-allocate one.

        Returns:
            The persisted request snapshot.
        """
        now = self._clock.now()
        request_id = request_id or uuid4()
        resolved = resolve(facts, self._policy, draft=draft)
        request = TravelRequest(
            id=request_id,
            request_number=(
                request_number or self._next_request_number(facts.request_type, now)
            ),
            facts=facts,
            status=resolved.initial_status,
            current_approver_role=resolved.initial_current_approver_role,
            pipeline=resolved.stages,
            endorsement_department_ids=resolved.endorsement_department_ids,
            endorsements=tuple(
                EndorsementRecord(department_id=d)
                for d in resolved.endorsement_department_ids
            ),
            submitted_at=None if draft else now,
            created_at=now,
        )

        with LogContext.bind(request_id=str(request_id)):
            self._session.add(TravelRequestModel.from_dto(request))
            self._session.flush()

            logger.info(
                "pipeline_resolved",
                extra={
                    "request_number": request.request_number,
                    "request_type": facts.request_type,
                    "pipeline": [s.value for s in request.pipeline],
                    "status": request.status,
                    "endorsement_departments": len(
                        request.endorsement_department_ids
                    ),
                    "draft": draft,
                },
            )

            if not draft:
                self._record(
                    TransitionOutcome(
                        action=TransitionAction.SUBMIT,
                        previous_status=RequestStatus.DRAFT,
                        request=request,
                    ),
                    actor_id=facts.submitted_by_user_id,
                    comments=None,
                    now=now,
                )
            if self._auto_commit:
                self._session.commit()

        return request

    def _next_request_number(self, request_type: RequestType, now: datetime) -> str:
        series = f"{_NUMBER_PREFIX[request_type]}-{now.year}"
        return f"{series}-{self._sequences.next_value(series):04d}"

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit(
        self,
        request_id: UUID,
        actor: ActorRoleClaims,
        expected_status: RequestStatus | None = None,
    ) -> TravelRequest:
        """Route a draft (or a request returned to draft) into its pipeline."""
        return self.apply(
            request_id, actor, TransitionAction.SUBMIT,
            expected_status=expected_status,
        )

    def cancel(
        self,
        request_id: UUID,
        actor: ActorRoleClaims,
        expected_status: RequestStatus | None = None,
    ) -> TravelRequest:
        """Withdraw a non-terminal request."""
        return self.apply(
            request_id, actor, TransitionAction.CANCEL,
            expected_status=expected_status,
        )

    def apply(
        self,
        request_id: UUID,
        actor: ActorRoleClaims,
        action: TransitionAction,
        payload: TransitionPayload | None = None,
        expected_status: RequestStatus | None = None,
    ) -> TravelRequest:
        """Validate ``action`` against the persisted request and write it.

        Args:
            request_id: Request to act on.
            actor: Pre-resolved role claims of the acting user.
            action: submit / approve / reject / return / cancel.
            payload: Comments, signature, reason and the stage the actor
                believes is current.
            expected_status: Status the caller last saw; a mismatch raises
                StaleStateError before anything is written.

        Returns:
            The updated request snapshot, with the bumped version.
        """
        payload = payload or TransitionPayload()

        with LogContext.bind(
            request_id=str(request_id),
            actor_id=str(actor.user_id),
        ):
            current = self._load(request_id)
            now = self._clock.now()
            waiting_on = stage_for_status(current.status)

            with LogContext.bind(stage=waiting_on.value if waiting_on else None):
                return self._apply(current, actor, action, payload, expected_status, now)

    def _apply(
        self,
        current: TravelRequest,
        actor: ActorRoleClaims,
        action: TransitionAction,
        payload: TransitionPayload,
        expected_status: RequestStatus | None,
        now: datetime,
    ) -> TravelRequest:
        try:
            outcome = evaluate(
                current, actor, action, payload, self._policy,
                now=now, expected_status=expected_status,
            )
        except TravelKernelError as exc:
            logger.warning(
                "transition_refused",
                extra={
                    "action": action,
                    "status": current.status,
                    "error_code": exc.code,
                },
            )
            raise

        written = self._conditional_write(current, outcome, now)
        self._record(
            replace(outcome, request=written),
            actor_id=actor.user_id,
            comments=payload.reason or payload.comments,
            now=now,
        )
        if self._auto_commit:
            self._session.commit()

        logger.info(
            "transition_applied",
            extra={
                "action": action,
                "from_status": outcome.previous_status,
                "to_status": written.status,
                "current_approver_role": written.current_approver_role,
                "version": written.version,
            },
        )
        return written

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, request_id: UUID) -> TravelRequest:
        model = self._session.execute(
            select(TravelRequestModel)
            .where(TravelRequestModel.id == request_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RequestNotFoundError(str(request_id))
        return model.to_dto()

    def _conditional_write(
        self,
        current: TravelRequest,
        outcome: TransitionOutcome,
        now: datetime,
    ) -> TravelRequest:
        new_version = current.version + 1
        result = self._session.execute(
            update(TravelRequestModel)
            .where(
                TravelRequestModel.id == current.id,
                TravelRequestModel.version == current.version,
                TravelRequestModel.status == current.status.value,
            )
            .values(
                **workflow_columns(outcome.request),
                version=new_version,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._raise_conflict(current, outcome)
        return replace(outcome.request, version=new_version)

    def _raise_conflict(
        self,
        current: TravelRequest,
        outcome: TransitionOutcome,
    ) -> None:
        fresh = self._load(current.id)
        logger.warning(
            "transition_conflict",
            extra={
                "action": outcome.action,
                "read_status": current.status,
                "read_version": current.version,
                "found_status": fresh.status,
                "found_version": fresh.version,
            },
        )
        stage = outcome.acted_stage
        if outcome.action == TransitionAction.APPROVE and stage is not None:
            department_id = outcome.endorsement_department_id
            if department_id is not None:
                endorsement = fresh.endorsement(department_id)
                approved = endorsement is not None and endorsement.is_approved
            else:
                approved = fresh.record(stage).is_approved
            if approved:
                raise AlreadyResolvedError(
                    str(current.id), stage.value, fresh.status.value,
                )
        raise StaleStateError(
            str(current.id), current.status.value, fresh.status.value,
        )

    def _record(
        self,
        outcome: TransitionOutcome,
        actor_id: UUID,
        comments: str | None,
        now: datetime,
    ) -> None:
        request = outcome.request
        self._session.add(ApprovalAuditModel(
            request_id=request.id,
            version=request.version,
            stage=outcome.acted_stage.value if outcome.acted_stage else None,
            department_id=outcome.endorsement_department_id,
            actor_id=actor_id,
            action=outcome.action.value,
            from_status=outcome.previous_status.value,
            to_status=request.status.value,
            comments=comments,
            created_at=now,
        ))
        self._session.flush()

        self._notifier.defer(
            self._session,
            TransitionEvent(
                request_id=request.id,
                request_number=request.request_number,
                action=outcome.action,
                previous_status=outcome.previous_status,
                new_status=request.status,
                new_current_approver_role=request.current_approver_role,
                previous_stage=outcome.acted_stage,
                previous_stage_actor=actor_id,
                requester_id=request.facts.requester_id,
                requester_name=request.facts.requester_name,
                occurred_at=now,
                reason=(
                    request.return_reason
                    if outcome.action == TransitionAction.RETURN else None
                ),
            ),
            request,
        )
