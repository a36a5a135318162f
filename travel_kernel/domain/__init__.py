"""
Pure domain layer.

Value objects and static catalog data with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (beyond the injectable Clock interface)
- I/O

All domain objects are immutable and deterministic.
"""

from travel_kernel.domain.actor import ActorRoleClaims
from travel_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from travel_kernel.domain.events import (
    AuditEntry,
    NotificationMessage,
    NotificationPriority,
    TransitionEvent,
)
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.request import (
    EndorsementRecord,
    RequestFacts,
    ResolvedPipeline,
    StageRecord,
    TravelRequest,
)
from travel_kernel.domain.stages import (
    PENDING_STATUSES,
    STAGE_CATALOG,
    STAGE_ORDER,
    TERMINAL_STATUSES,
    RequestStatus,
    RequestType,
    Stage,
    StageSpec,
    pending_status,
    stage_for_status,
    stage_spec,
)
from travel_kernel.domain.transition import (
    TransitionAction,
    TransitionOutcome,
    TransitionPayload,
)

__all__ = [
    # Stage catalog
    "Stage",
    "StageSpec",
    "STAGE_CATALOG",
    "STAGE_ORDER",
    "stage_spec",
    # Status lifecycle
    "RequestStatus",
    "RequestType",
    "PENDING_STATUSES",
    "TERMINAL_STATUSES",
    "pending_status",
    "stage_for_status",
    # Request
    "RequestFacts",
    "StageRecord",
    "EndorsementRecord",
    "TravelRequest",
    "ResolvedPipeline",
    # Actors and policy
    "ActorRoleClaims",
    "RoutingPolicy",
    # Transitions
    "TransitionAction",
    "TransitionPayload",
    "TransitionOutcome",
    # Events
    "TransitionEvent",
    "AuditEntry",
    "NotificationMessage",
    "NotificationPriority",
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
