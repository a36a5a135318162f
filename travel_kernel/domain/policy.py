"""
Routing policy (``travel_kernel.domain.policy``).

Organizational knobs consumed by the pipeline resolver and the transition
validator.  Built from YAML by ``travel_config``; the kernel never reads
configuration files itself.

Invariants enforced
-------------------
* ``budget_threshold`` is non-negative.
* ``return_status`` is ``pending_requester_signature`` or ``draft``.
* ``min_signature_length`` is non-negative.
* ``comptroller_emails`` are stored lower-cased.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from travel_kernel.domain.stages import RequestStatus, RequestType, Stage

DEFAULT_BUDGET_THRESHOLD = Decimal("50000")

RETURN_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.PENDING_REQUESTER_SIGNATURE,
    RequestStatus.DRAFT,
})


@dataclass(frozen=True)
class RoutingPolicy:
    """Organizational routing policy.

    ``allow_head_self_approval`` decides whether a head who is also the
    requester may clear the ``head`` stage of their own request.
    ``reapproval_on_return`` decides whether a return wipes the approvals
    already collected.
    """

    budget_threshold: Decimal = DEFAULT_BUDGET_THRESHOLD
    hr_review_request_types: frozenset[RequestType] = frozenset()
    return_capable_stages: frozenset[Stage] = frozenset({Stage.ADMIN, Stage.HR})
    return_status: RequestStatus = RequestStatus.PENDING_REQUESTER_SIGNATURE
    reapproval_on_return: bool = False
    allow_head_self_approval: bool = True
    min_signature_length: int = 64
    comptroller_emails: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.budget_threshold < 0:
            raise ValueError(
                f"budget_threshold must be non-negative, got {self.budget_threshold}"
            )
        if self.return_status not in RETURN_STATUSES:
            raise ValueError(
                f"return_status must be one of "
                f"{sorted(s.value for s in RETURN_STATUSES)}, "
                f"got {self.return_status.value}"
            )
        if self.min_signature_length < 0:
            raise ValueError("min_signature_length must be non-negative")
        object.__setattr__(
            self,
            "comptroller_emails",
            frozenset(e.strip().lower() for e in self.comptroller_emails),
        )

    def is_comptroller_email(self, email: str | None) -> bool:
        if not email:
            return False
        return email.strip().lower() in self.comptroller_emails

    def exceeds_threshold(self, amount: Decimal) -> bool:
        return amount > self.budget_threshold
