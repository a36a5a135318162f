"""
Stage catalog (``travel_kernel.domain.stages``).

Responsibility
--------------
The fixed enumeration of approval stages, the request status lifecycle,
and per-stage metadata: display labels, whether a signature is mandatory
to approve, and the predicate over actor claims that authorizes acting on
the stage.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``STAGE_ORDER`` is the catalog order; every pipeline is a subsequence
  of it.
* Every stage has exactly one ``pending_{stage}`` status, and every
  pending status maps back to exactly one stage.
* Terminal statuses have no stage.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from travel_kernel.domain.actor import ActorRoleClaims
    from travel_kernel.domain.policy import RoutingPolicy
    from travel_kernel.domain.request import TravelRequest


# =========================================================================
# Stages
# =========================================================================


class Stage(str, Enum):
    """Approval stages, declared in catalog order."""

    REQUESTER_SIGNATURE = "requester_signature"
    HEAD = "head"
    PARENT_HEAD = "parent_head"
    ADMIN = "admin"
    COMPTROLLER = "comptroller"
    HR = "hr"
    VP = "vp"
    PRESIDENT = "president"
    EXEC = "exec"


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


def catalog_index(stage: Stage) -> int:
    """Position of ``stage`` in the catalog order."""
    return STAGE_ORDER.index(stage)


# =========================================================================
# Status lifecycle
# =========================================================================


class RequestStatus(str, Enum):
    """Request lifecycle states."""

    DRAFT = "draft"
    PENDING_REQUESTER_SIGNATURE = "pending_requester_signature"
    PENDING_HEAD = "pending_head"
    PENDING_PARENT_HEAD = "pending_parent_head"
    PENDING_ADMIN = "pending_admin"
    PENDING_COMPTROLLER = "pending_comptroller"
    PENDING_HR = "pending_hr"
    PENDING_VP = "pending_vp"
    PENDING_PRESIDENT = "pending_president"
    PENDING_EXEC = "pending_exec"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


TERMINAL_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.CANCELLED,
})

_PENDING_BY_STAGE: dict[Stage, RequestStatus] = {
    Stage.REQUESTER_SIGNATURE: RequestStatus.PENDING_REQUESTER_SIGNATURE,
    Stage.HEAD: RequestStatus.PENDING_HEAD,
    Stage.PARENT_HEAD: RequestStatus.PENDING_PARENT_HEAD,
    Stage.ADMIN: RequestStatus.PENDING_ADMIN,
    Stage.COMPTROLLER: RequestStatus.PENDING_COMPTROLLER,
    Stage.HR: RequestStatus.PENDING_HR,
    Stage.VP: RequestStatus.PENDING_VP,
    Stage.PRESIDENT: RequestStatus.PENDING_PRESIDENT,
    Stage.EXEC: RequestStatus.PENDING_EXEC,
}

_STAGE_BY_PENDING: dict[RequestStatus, Stage] = {
    status: stage for stage, status in _PENDING_BY_STAGE.items()
}

PENDING_STATUSES: frozenset[RequestStatus] = frozenset(_STAGE_BY_PENDING)


def pending_status(stage: Stage) -> RequestStatus:
    """The ``pending_{stage}`` status for ``stage``."""
    return _PENDING_BY_STAGE[stage]


def stage_for_status(status: RequestStatus) -> Stage | None:
    """The stage a pending status waits on; None for draft and terminal states."""
    return _STAGE_BY_PENDING.get(status)


class RequestType(str, Enum):
    """Kinds of request routed by the engine."""

    TRAVEL_ORDER = "travel_order"
    SEMINAR = "seminar"


# =========================================================================
# Authorization predicates
# =========================================================================

Authorizer = Callable[["ActorRoleClaims", "TravelRequest", "RoutingPolicy"], bool]


def _is_requester(claims, request, policy) -> bool:
    return claims.user_id == request.facts.requester_id


def _is_department_head(claims, request, policy) -> bool:
    return claims.is_head and claims.department_id == request.facts.department_id


def _is_endorsing_head(claims, request, policy) -> bool:
    return (
        claims.is_head
        and claims.department_id is not None
        and claims.department_id in request.pending_endorsement_department_ids
    )


def _is_admin(claims, request, policy) -> bool:
    return claims.is_admin


def _is_comptroller(claims, request, policy) -> bool:
    # Comptrollers are identified by flag or by the email allow-list
    return claims.is_comptroller or policy.is_comptroller_email(claims.email)


def _is_hr(claims, request, policy) -> bool:
    return claims.is_hr


def _is_vp(claims, request, policy) -> bool:
    return claims.is_vp or claims.is_exec


def _is_president(claims, request, policy) -> bool:
    return claims.is_president or claims.is_exec


def _is_exec(claims, request, policy) -> bool:
    return claims.is_exec


# =========================================================================
# Catalog
# =========================================================================


@dataclass(frozen=True)
class StageSpec:
    """Static metadata for one approval stage.

    ``authorizes`` is evaluated against pre-resolved actor claims; it never
    looks anything up.
    """

    stage: Stage
    label: str
    role_label: str
    requires_signature: bool
    authorizes: Authorizer


STAGE_CATALOG: dict[Stage, StageSpec] = {
    Stage.REQUESTER_SIGNATURE: StageSpec(
        Stage.REQUESTER_SIGNATURE, "Requester Signature", "Requester", True,
        _is_requester,
    ),
    Stage.HEAD: StageSpec(
        Stage.HEAD, "Department Head", "Department Head", True,
        _is_department_head,
    ),
    Stage.PARENT_HEAD: StageSpec(
        Stage.PARENT_HEAD, "College Dean", "Parent Head", True,
        _is_endorsing_head,
    ),
    Stage.ADMIN: StageSpec(
        Stage.ADMIN, "Admin (Assignment)", "Administrator", False,
        _is_admin,
    ),
    Stage.COMPTROLLER: StageSpec(
        Stage.COMPTROLLER, "Comptroller", "Comptroller", True,
        _is_comptroller,
    ),
    Stage.HR: StageSpec(
        Stage.HR, "Human Resources", "HR", True,
        _is_hr,
    ),
    Stage.VP: StageSpec(
        Stage.VP, "Vice President", "VP", True,
        _is_vp,
    ),
    Stage.PRESIDENT: StageSpec(
        Stage.PRESIDENT, "President", "President", True,
        _is_president,
    ),
    Stage.EXEC: StageSpec(
        Stage.EXEC, "Executive Review", "Executive", True,
        _is_exec,
    ),
}


def stage_spec(stage: Stage) -> StageSpec:
    return STAGE_CATALOG[stage]
