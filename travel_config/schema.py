"""
Routing policy configuration schema.

Defines the human-authored, reviewable source artifact for routing
configuration.  YAML files are parsed into these types by the loader and
converted into the kernel's ``RoutingPolicy`` by the bridges.

Key distinction:
  RoutingConfigSet / RoutingPolicyDef = source artifact (plain strings)
  travel_kernel RoutingPolicy         = runtime artifact (typed, validated)
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RoutingPolicyDef:
    """Routing knobs exactly as authored.  Stage and status names are
    validated by the bridge, not here."""

    budget_threshold: str = "50000"
    hr_review_request_types: tuple[str, ...] = ()
    return_capable_stages: tuple[str, ...] = ("admin", "hr")
    return_status: str = "pending_requester_signature"
    reapproval_on_return: bool = False
    allow_head_self_approval: bool = True
    min_signature_length: int = 64
    comptroller_emails: tuple[str, ...] = ()


@dataclass(frozen=True)
class RoutingConfigSet:
    """A versioned routing configuration file."""

    config_id: str
    version: int
    policy: RoutingPolicyDef = field(default_factory=RoutingPolicyDef)
    description: str = ""
    checksum: str = ""
