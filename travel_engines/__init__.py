"""
Module: travel_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    routing engines: the pipeline resolver, the transition validator and
    the tracking queries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import travel_kernel/domain/ (and sibling engine modules).
    MUST NOT import travel_kernel services, models or selectors.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``.  The current time is
      passed in by the service layer.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from travel_engines import resolve, evaluate, can_act, stage_history
"""

from travel_engines.pipeline import (
    endorsement_departments,
    entry_stages,
    exclusion_reason,
    requires_budget_review,
    requires_hr_review,
    resolve,
)
from travel_engines.tracer import traced_engine
from travel_engines.tracking import (
    StageHistoryEntry,
    StageState,
    can_act,
    stage_history,
)
from travel_engines.transitions import (
    ActionTarget,
    authorize,
    evaluate,
    next_pending_stage,
    with_cursor,
)

__all__ = [
    # Pipeline resolver
    "resolve",
    "entry_stages",
    "endorsement_departments",
    "exclusion_reason",
    "requires_budget_review",
    "requires_hr_review",
    # Transition validator
    "ActionTarget",
    "authorize",
    "evaluate",
    "next_pending_stage",
    "with_cursor",
    # Tracking
    "StageHistoryEntry",
    "StageState",
    "can_act",
    "stage_history",
    # Tracing
    "traced_engine",
]
