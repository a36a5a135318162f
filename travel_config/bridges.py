"""
Config -> Kernel Bridges.

Converts parsed routing configuration into the kernel's ``RoutingPolicy``.
These live in travel_config (the producer) because the kernel must NEVER
import travel_config.

Usage:
    from travel_config.bridges import to_routing_policy

    config_set = load_config_set(path)
    policy = to_routing_policy(config_set.policy)
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TypeVar

from travel_config.schema import RoutingPolicyDef
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.stages import RequestStatus, RequestType, Stage

_E = TypeVar("_E", bound=Enum)


def _enum_value(enum_cls: type[_E], value: str, key: str) -> _E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValueError(
            f"routing_policy.{key}: {value!r} is not one of [{allowed}]"
        ) from None


def to_routing_policy(definition: RoutingPolicyDef) -> RoutingPolicy:
    """Build the kernel ``RoutingPolicy`` from its authored definition.

    Raises:
        ValueError: on an unknown stage, status or request type, or a
            budget threshold that is not a non-negative decimal.
    """
    try:
        threshold = Decimal(definition.budget_threshold)
    except InvalidOperation:
        raise ValueError(
            f"routing_policy.budget_threshold: {definition.budget_threshold!r} "
            f"is not a decimal"
        ) from None

    return RoutingPolicy(
        budget_threshold=threshold,
        hr_review_request_types=frozenset(
            _enum_value(RequestType, v, "hr_review_request_types")
            for v in definition.hr_review_request_types
        ),
        return_capable_stages=frozenset(
            _enum_value(Stage, v, "return_capable_stages")
            for v in definition.return_capable_stages
        ),
        return_status=_enum_value(
            RequestStatus, definition.return_status, "return_status",
        ),
        reapproval_on_return=definition.reapproval_on_return,
        allow_head_self_approval=definition.allow_head_self_approval,
        min_signature_length=definition.min_signature_length,
        comptroller_emails=frozenset(definition.comptroller_emails),
    )
