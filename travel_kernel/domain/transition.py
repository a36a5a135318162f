"""
Transition commands and results (``travel_kernel.domain.transition``).

Pure value objects describing an approver's requested action and the
outcome the transition engine computed for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from travel_kernel.domain.request import TravelRequest
from travel_kernel.domain.stages import RequestStatus, Stage


class TransitionAction(str, Enum):
    """Actions accepted by the transition engine."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    RETURN = "return"
    CANCEL = "cancel"


@dataclass(frozen=True)
class TransitionPayload:
    """Optional inputs carried with an action.

    ``stage`` names the stage the actor believes they are acting on (the UI
    passes the role it rendered); when omitted the current stage is used.
    """

    stage: Stage | None = None
    comments: str | None = None
    signature: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of evaluating a legal transition.

    ``request`` is the next state with the same ``version`` as the state it
    was computed from; the applier bumps the version when it writes.
    """

    action: TransitionAction
    previous_status: RequestStatus
    request: TravelRequest
    acted_stage: Stage | None = None
    endorsement_department_id: UUID | None = None

    @property
    def new_status(self) -> RequestStatus:
        return self.request.status

    @property
    def advanced(self) -> bool:
        return self.request.status != self.previous_status
