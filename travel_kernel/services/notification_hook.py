"""
travel_kernel.services.notification_hook -- Post-commit transition events.

Responsibility:
    Turn every committed transition into addressed notification messages
    (the requester, and whoever must act next) and hand them to a
    ``NotificationSink`` once the surrounding transaction has committed.

Architecture position:
    Kernel > Services.  May import from domain/ and logging_config.
    Delivery (email, push, in-app rows) belongs to the sink implementation.

Invariants enforced:
    - Nothing is published for a transaction that rolls back.
    - A failing sink never undoes a committed transition; the failure is
      logged with its traceback.

Failure modes:
    - Sink exceptions are logged as ``notification_dispatch_failed`` and
      not re-raised.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session

from travel_kernel.domain.events import (
    NotificationMessage,
    NotificationPriority,
    TransitionEvent,
)
from travel_kernel.domain.request import TravelRequest
from travel_kernel.domain.stages import RequestStatus, Stage, stage_spec
from travel_kernel.domain.transition import TransitionAction
from travel_kernel.logging_config import get_logger

logger = get_logger("services.notification_hook")

_PENDING_KEY = "travel_kernel.pending_notifications"
_LISTENING_KEY = "travel_kernel.notification_listeners"


class NotificationSink(Protocol):
    """Receives events and their messages after commit."""

    def publish(
        self,
        event: TransitionEvent,
        messages: tuple[NotificationMessage, ...],
    ) -> None: ...


class LoggingNotificationSink:
    """Default sink: records each message as a structured log line."""

    def publish(
        self,
        event: TransitionEvent,
        messages: tuple[NotificationMessage, ...],
    ) -> None:
        for message in messages:
            logger.info(
                "notification_published",
                extra={
                    "request_id": str(event.request_id),
                    "notification_type": message.notification_type,
                    "recipient_user_id": message.recipient_user_id,
                    "recipient_role": message.recipient_role,
                    "priority": message.priority,
                },
            )


class CollectingNotificationSink:
    """In-memory sink; keeps everything it receives."""

    def __init__(self) -> None:
        self.events: list[TransitionEvent] = []
        self.messages: list[NotificationMessage] = []

    def publish(
        self,
        event: TransitionEvent,
        messages: tuple[NotificationMessage, ...],
    ) -> None:
        self.events.append(event)
        self.messages.extend(messages)


# =============================================================================
# Message construction
# =============================================================================


def _requester_message(
    event: TransitionEvent,
    notification_type: str,
    title: str,
    body: str,
    priority: NotificationPriority,
) -> NotificationMessage:
    return NotificationMessage(
        notification_type=notification_type,
        title=title,
        message=body,
        request_id=event.request_id,
        action_url=f"/request/{event.request_id}",
        priority=priority,
        recipient_user_id=event.requester_id,
    )


def _approver_messages(
    event: TransitionEvent,
    request: TravelRequest,
) -> list[NotificationMessage]:
    role = event.new_current_approver_role
    if role is None:
        return []

    if role == Stage.REQUESTER_SIGNATURE:
        return [_requester_message(
            event,
            "signature_required",
            "Signature Required",
            f"Request {event.request_number} submitted on your behalf "
            f"needs your signature.",
            NotificationPriority.HIGH,
        )]

    role_label = stage_spec(role).role_label
    body = (
        f"Request {event.request_number} from {event.requester_name} "
        f"is pending your {role_label} review."
    )
    if role == Stage.HEAD:
        departments = (request.facts.department_id,)
    elif role == Stage.PARENT_HEAD:
        departments = request.pending_endorsement_department_ids
    else:
        departments = (None,)

    return [
        NotificationMessage(
            notification_type="request_pending_review",
            title="New Request for Review",
            message=body,
            request_id=event.request_id,
            action_url=f"/review/{event.request_id}?role={role.value}",
            priority=NotificationPriority.HIGH,
            recipient_role=role,
            recipient_department_id=department_id,
        )
        for department_id in departments
    ]


def build_notifications(
    event: TransitionEvent,
    request: TravelRequest,
) -> tuple[NotificationMessage, ...]:
    """Address the messages a committed transition produces.

    The requester hears about final approval, rejection, return, and
    intermediate progress.  The role now holding the cursor is prompted
    to review, one message per department for head-level stages.
    """
    messages: list[NotificationMessage] = []
    actor_label = (
        stage_spec(event.previous_stage).role_label
        if event.previous_stage else "Requester"
    )
    number = event.request_number

    if event.action == TransitionAction.APPROVE:
        if event.new_status == RequestStatus.APPROVED:
            messages.append(_requester_message(
                event,
                "request_approved",
                "Request Approved",
                f"Your request {number} has been approved by the {actor_label}.",
                NotificationPriority.NORMAL,
            ))
        elif (
            event.previous_stage != Stage.REQUESTER_SIGNATURE
            and event.new_status != event.previous_status
        ):
            messages.append(_requester_message(
                event,
                "request_progress",
                "Request Update",
                f"Your request {number} was approved by the {actor_label} "
                f"and moved to the next stage.",
                NotificationPriority.LOW,
            ))
    elif event.action == TransitionAction.REJECT:
        messages.append(_requester_message(
            event,
            "request_rejected",
            "Request Rejected",
            f"Your request {number} has been rejected by the {actor_label}.",
            NotificationPriority.HIGH,
        ))
    elif event.action == TransitionAction.RETURN:
        messages.append(_requester_message(
            event,
            "request_returned",
            "Request Returned",
            f"Your request {number} has been returned by the {actor_label} "
            f"for revision: {event.reason}",
            NotificationPriority.NORMAL,
        ))
        # The requester is already told to revise
        return tuple(messages)

    # A sibling endorsement leaves the cursor in place: nobody new to prompt
    if (
        event.action != TransitionAction.CANCEL
        and event.new_status != event.previous_status
    ):
        messages.extend(_approver_messages(event, request))

    return tuple(messages)


# =============================================================================
# Post-commit publishing
# =============================================================================


def _publish_pending(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, [])
    for hook, transition_event, request in pending:
        hook.publish(transition_event, request)


def _discard_pending(session: Session) -> None:
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.info(
            "notifications_discarded",
            extra={"count": len(dropped)},
        )


class NotificationHook:
    """Defers transition events until the session commits."""

    def __init__(self, sink: NotificationSink | None = None) -> None:
        self._sink = sink or LoggingNotificationSink()

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    def defer(
        self,
        session: Session,
        transition_event: TransitionEvent,
        request: TravelRequest,
    ) -> None:
        """Queue an event for publication when ``session`` commits."""
        if not session.info.get(_LISTENING_KEY):
            sa_event.listen(session, "after_commit", _publish_pending)
            sa_event.listen(session, "after_rollback", _discard_pending)
            session.info[_LISTENING_KEY] = True
        session.info.setdefault(_PENDING_KEY, []).append(
            (self, transition_event, request)
        )

    def publish(
        self,
        transition_event: TransitionEvent,
        request: TravelRequest,
    ) -> None:
        """Build and deliver messages now; failures are logged only."""
        messages: tuple[NotificationMessage, ...] = ()
        try:
            messages = build_notifications(transition_event, request)
            self._sink.publish(transition_event, messages)
        except Exception:
            logger.exception(
                "notification_dispatch_failed",
                extra={
                    "request_id": str(transition_event.request_id),
                    "action": transition_event.action,
                    "message_count": len(messages),
                },
            )
