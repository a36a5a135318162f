"""
Configuration Loader (``travel_config.loader``).

Responsibility
--------------
Loads routing-policy YAML files and parses them into typed
``travel_config.schema`` dataclass instances.  The public entry point
for runtime config is ``travel_config.get_active_policy()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown keys under ``routing_policy`` are rejected, so a typo never
  silently falls back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown or mistyped keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from travel_config.schema import RoutingConfigSet, RoutingPolicyDef

_POLICY_KEYS = frozenset(f.name for f in fields(RoutingPolicyDef))


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _string_list(data: dict[str, Any], key: str) -> tuple[str, ...] | None:
    if key not in data:
        return None
    value = data[key] or []
    if isinstance(value, str) or not isinstance(value, list):
        raise ValueError(f"routing_policy.{key} must be a list, got {value!r}")
    return tuple(str(v) for v in value)


def _flag(data: dict[str, Any], key: str) -> bool | None:
    if key not in data:
        return None
    value = data[key]
    if not isinstance(value, bool):
        raise ValueError(f"routing_policy.{key} must be true or false, got {value!r}")
    return value


def parse_routing_policy(data: dict[str, Any]) -> RoutingPolicyDef:
    """
    Parse a ``RoutingPolicyDef`` from the ``routing_policy`` mapping.

    Keys that are absent keep their schema defaults.

    Raises:
        ValueError: on unknown keys or values of the wrong shape.
    """
    unknown = set(data) - _POLICY_KEYS
    if unknown:
        raise ValueError(f"Unknown routing_policy keys: {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    if "budget_threshold" in data:
        kwargs["budget_threshold"] = str(data["budget_threshold"])
    for key in ("hr_review_request_types", "return_capable_stages", "comptroller_emails"):
        value = _string_list(data, key)
        if value is not None:
            kwargs[key] = value
    if "return_status" in data:
        kwargs["return_status"] = str(data["return_status"])
    for key in ("reapproval_on_return", "allow_head_self_approval"):
        value = _flag(data, key)
        if value is not None:
            kwargs[key] = value
    if "min_signature_length" in data:
        length = data["min_signature_length"]
        if isinstance(length, bool) or not isinstance(length, int):
            raise ValueError(
                f"routing_policy.min_signature_length must be an integer, got {length!r}"
            )
        kwargs["min_signature_length"] = length

    return RoutingPolicyDef(**kwargs)


def parse_config_set(data: dict[str, Any]) -> RoutingConfigSet:
    """Parse a whole routing configuration file."""
    return RoutingConfigSet(
        config_id=data["config_id"],
        version=int(data["version"]),
        policy=parse_routing_policy(data.get("routing_policy") or {}),
        description=data.get("description", ""),
        checksum=compute_checksum(data),
    )


def load_config_set(path: Path) -> RoutingConfigSet:
    """Load and parse a routing configuration YAML file."""
    return parse_config_set(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
