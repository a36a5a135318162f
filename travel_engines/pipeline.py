"""
travel_engines.pipeline -- Pure pipeline resolver.

Responsibility:
    Given a request's submission facts, compute the ordered list of
    approval stages and the initial status / current approver role.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import travel_kernel/domain/ types.

Invariants enforced:
    - Determinism: the same facts and policy always yield the same
      pipeline (endorsement departments are sorted).
    - Catalog order: the pipeline is a subsequence of ``STAGE_ORDER``.
    - Budget rules: a total above the policy threshold forces
      ``comptroller``, ``vp`` and ``president``; ``comptroller`` appears
      only for budgeted requests.
    - ``current_approver_role`` is the first pipeline stage.

Entry point precedence (first match wins):
    1. draft save                         -> draft, no pipeline yet
    2. representative, requester is head  -> head
    3. representative, requester not head -> requester_signature, head
    4. requester is head                  -> admin (head skipped)
    5. otherwise                          -> head
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID

from travel_engines.tracer import traced_engine
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.request import RequestFacts, ResolvedPipeline
from travel_kernel.domain.stages import (
    STAGE_ORDER,
    RequestStatus,
    Stage,
    catalog_index,
    pending_status,
)

_Predicate = Callable[[RequestFacts, RoutingPolicy], bool]


def endorsement_departments(facts: RequestFacts) -> tuple[UUID, ...]:
    """Departments whose head must endorse: the parent department plus every
    participant department other than the requester's own."""
    departments: set[UUID] = set(facts.participant_department_ids)
    if facts.parent_department_id is not None:
        departments.add(facts.parent_department_id)
    departments.discard(facts.department_id)
    return tuple(sorted(departments, key=str))


def requires_budget_review(facts: RequestFacts, policy: RoutingPolicy) -> bool:
    # Above-threshold totals are budgeted even when has_budget was left unset
    return facts.has_budget or policy.exceeds_threshold(facts.total_budget)


def requires_hr_review(facts: RequestFacts, policy: RoutingPolicy) -> bool:
    return (
        facts.hr_review_required
        or facts.request_type in policy.hr_review_request_types
    )


# Stages appended after the entry point, with the reason shown when skipped.
_INCLUSION: dict[Stage, tuple[_Predicate, str]] = {
    Stage.PARENT_HEAD: (
        lambda f, p: bool(endorsement_departments(f)),
        "No parent department or external participants",
    ),
    Stage.ADMIN: (lambda f, p: True, ""),
    Stage.COMPTROLLER: (requires_budget_review, "No budget requested"),
    Stage.HR: (requires_hr_review, "HR review not required"),
    Stage.VP: (
        lambda f, p: p.exceeds_threshold(f.total_budget) or f.escalation_required,
        "Budget below threshold",
    ),
    Stage.PRESIDENT: (
        lambda f, p: p.exceeds_threshold(f.total_budget),
        "Budget below threshold",
    ),
    Stage.EXEC: (
        lambda f, p: f.executive_review_required,
        "Executive review not required",
    ),
}


def entry_stages(facts: RequestFacts) -> tuple[Stage, ...]:
    """The stages a submitted request starts with (rules 2-5)."""
    if facts.is_representative:
        if facts.requester_is_head:
            return (Stage.HEAD,)
        return (Stage.REQUESTER_SIGNATURE, Stage.HEAD)
    if facts.requester_is_head:
        return (Stage.ADMIN,)
    return (Stage.HEAD,)


@traced_engine("pipeline", "1.0", fingerprint_fields=("facts", "policy", "draft"))
def resolve(
    facts: RequestFacts,
    policy: RoutingPolicy | None = None,
    *,
    draft: bool = False,
) -> ResolvedPipeline:
    """Compute the pipeline and initial state for a request.

    Args:
        facts: Pre-resolved submission facts.
        policy: Routing policy (defaults to ``RoutingPolicy()``).
        draft: True for a draft save; the pipeline is then resolved at
            actual submission.

    Returns:
        ResolvedPipeline with stages, endorsement departments, initial
        status and initial current approver role.
    """
    policy = policy or RoutingPolicy()

    if draft:
        return ResolvedPipeline(
            stages=(),
            endorsement_department_ids=(),
            initial_status=RequestStatus.DRAFT,
            initial_current_approver_role=None,
        )

    entry = entry_stages(facts)
    last_entry = catalog_index(entry[-1])
    stages = list(entry)
    for stage in STAGE_ORDER[last_entry + 1:]:
        predicate, _ = _INCLUSION[stage]
        if predicate(facts, policy):
            stages.append(stage)

    departments = (
        endorsement_departments(facts) if Stage.PARENT_HEAD in stages else ()
    )
    first = stages[0]
    return ResolvedPipeline(
        stages=tuple(stages),
        endorsement_department_ids=departments,
        initial_status=pending_status(first),
        initial_current_approver_role=first,
    )


def exclusion_reason(
    stage: Stage,
    facts: RequestFacts,
    policy: RoutingPolicy,
) -> str:
    """Why ``stage`` is absent from the pipeline resolved for ``facts``."""
    if stage == Stage.REQUESTER_SIGNATURE and not facts.is_representative:
        return "Submitted by the requester"
    entry = entry_stages(facts)
    if catalog_index(stage) <= catalog_index(entry[-1]):
        return "Requester is department head"
    _, reason = _INCLUSION[stage]
    return reason
