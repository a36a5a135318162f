"""
travel_config -- single public entrypoint for routing configuration.

Responsibility:
    Provides the ONLY way to obtain the routing policy at runtime through
    ``get_active_policy()``.  Services receive the returned
    ``RoutingPolicy``; nothing else reads configuration files.

Architecture position:
    Configuration -- YAML-driven policy loading.  This package sits above
    ``travel_kernel``; the kernel MUST NEVER import from ``travel_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``KeyError`` / ``ValueError`` -- missing keys, unknown keys, or
      values the kernel policy rejects (unknown stage, negative threshold).

Audit relevance:
    Every successful ``get_active_policy()`` call emits a
    ``routing_policy_loaded`` log entry with the config id, version and
    checksum, tying each routing decision to the exact file that
    governed it.
"""

from __future__ import annotations

from pathlib import Path

from travel_config.bridges import to_routing_policy
from travel_config.loader import load_config_set
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_POLICY_FILE = _DEFAULT_CONFIG_DIR / "default.yaml"


def get_active_policy(path: Path | str | None = None) -> RoutingPolicy:
    """Load, validate and return the routing policy.

    Args:
        path: YAML file to load.  Defaults to travel_config/sets/default.yaml.

    Returns:
        The kernel ``RoutingPolicy``.
    """
    policy_file = Path(path) if path is not None else DEFAULT_POLICY_FILE
    config_set = load_config_set(policy_file)
    policy = to_routing_policy(config_set.policy)

    _logger.info(
        "routing_policy_loaded",
        extra={
            "config_id": config_set.config_id,
            "config_version": config_set.version,
            "checksum": config_set.checksum,
            "path": str(policy_file),
            "budget_threshold": policy.budget_threshold,
            "return_status": policy.return_status,
            "reapproval_on_return": policy.reapproval_on_return,
        },
    )
    return policy


__all__ = [
    "DEFAULT_POLICY_FILE",
    "get_active_policy",
]
