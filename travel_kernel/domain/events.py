"""
Notification events (``travel_kernel.domain.events``).

Responsibility
--------------
The abstract event emitted after every successful transition, and the
addressed notification messages an external dispatcher delivers.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from travel_kernel.domain.stages import RequestStatus, Stage
from travel_kernel.domain.transition import TransitionAction


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class TransitionEvent:
    """Who must act next, emitted once per committed transition."""

    request_id: UUID
    request_number: str
    action: TransitionAction
    previous_status: RequestStatus
    new_status: RequestStatus
    new_current_approver_role: Stage | None
    previous_stage: Stage | None
    previous_stage_actor: UUID
    requester_id: UUID
    requester_name: str
    occurred_at: datetime
    reason: str | None = None


@dataclass(frozen=True)
class NotificationMessage:
    """A notification addressed to a user or to every holder of a role.

    Exactly one of ``recipient_user_id`` / ``recipient_role`` is set.
    """

    notification_type: str
    title: str
    message: str
    request_id: UUID
    action_url: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    recipient_user_id: UUID | None = None
    recipient_role: Stage | None = None
    recipient_department_id: UUID | None = None


@dataclass(frozen=True)
class AuditEntry:
    """One row of the append-only approval audit log."""

    request_id: UUID
    version: int
    stage: Stage | None
    department_id: UUID | None
    actor_id: UUID
    action: TransitionAction
    from_status: RequestStatus
    to_status: RequestStatus
    comments: str | None
    created_at: datetime
