"""
Tests for routing policy configuration.

Covers:
- The shipped default set matches the kernel defaults
- Overrides authored in YAML reach the kernel RoutingPolicy
- Unknown keys, stages, statuses and malformed values are rejected
- Checksums identify a configuration; loading is logged
"""

from decimal import Decimal

import pytest
import yaml

from travel_config import DEFAULT_POLICY_FILE, get_active_policy
from travel_config.bridges import to_routing_policy
from travel_config.loader import (
    compute_checksum,
    load_config_set,
    parse_config_set,
    parse_routing_policy,
)
from travel_config.schema import RoutingPolicyDef
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.stages import RequestStatus, RequestType, Stage


@pytest.fixture
def write_config(tmp_path):
    """Write a config set to a temp file and return its path."""

    def _write(routing_policy=None, **top_level):
        data = {"config_id": "test", "version": 3, **top_level}
        if routing_policy is not None:
            data["routing_policy"] = routing_policy
        path = tmp_path / "routing.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


class TestDefaultSet:

    def test_default_matches_kernel_defaults(self):
        assert get_active_policy() == RoutingPolicy()

    def test_default_set_metadata(self):
        config_set = load_config_set(DEFAULT_POLICY_FILE)
        assert config_set.config_id == "default"
        assert config_set.version == 1
        assert len(config_set.checksum) == 64

    def test_load_is_logged(self, captured_logs):
        get_active_policy()
        (record,) = [r for r in captured_logs() if r["message"] == "routing_policy_loaded"]
        assert record["config_id"] == "default"
        assert record["config_version"] == 1
        assert record["budget_threshold"] == "50000"
        assert record["return_status"] == "pending_requester_signature"


class TestOverrides:

    def test_full_override(self, write_config):
        path = write_config({
            "budget_threshold": 25000,
            "hr_review_request_types": ["seminar"],
            "return_capable_stages": ["admin", "comptroller"],
            "return_status": "draft",
            "reapproval_on_return": True,
            "allow_head_self_approval": False,
            "min_signature_length": 16,
            "comptroller_emails": ["Budget@Example.edu"],
        })
        policy = get_active_policy(path)
        assert policy.budget_threshold == Decimal("25000")
        assert policy.hr_review_request_types == frozenset({RequestType.SEMINAR})
        assert policy.return_capable_stages == frozenset({Stage.ADMIN, Stage.COMPTROLLER})
        assert policy.return_status == RequestStatus.DRAFT
        assert policy.reapproval_on_return is True
        assert policy.allow_head_self_approval is False
        assert policy.min_signature_length == 16
        assert policy.is_comptroller_email("budget@example.edu")

    def test_partial_override_keeps_defaults(self, write_config):
        policy = get_active_policy(write_config({"budget_threshold": "75000.50"}))
        assert policy.budget_threshold == Decimal("75000.50")
        assert policy.return_capable_stages == frozenset({Stage.ADMIN, Stage.HR})

    def test_missing_policy_section(self, write_config):
        assert get_active_policy(write_config()) == RoutingPolicy()

    def test_empty_list(self, write_config):
        policy = get_active_policy(write_config({"return_capable_stages": None}))
        assert policy.return_capable_stages == frozenset()


class TestValidation:

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="budget_treshold"):
            parse_routing_policy({"budget_treshold": "1"})

    def test_unknown_stage(self, write_config):
        path = write_config({"return_capable_stages": ["dean"]})
        with pytest.raises(ValueError, match="return_capable_stages"):
            get_active_policy(path)

    def test_unknown_request_type(self):
        definition = RoutingPolicyDef(hr_review_request_types=("conference",))
        with pytest.raises(ValueError, match="hr_review_request_types"):
            to_routing_policy(definition)

    def test_return_status_must_be_a_return_target(self):
        with pytest.raises(ValueError, match="return_status"):
            to_routing_policy(RoutingPolicyDef(return_status="pending_admin"))

    def test_negative_threshold(self):
        with pytest.raises(ValueError, match="non-negative"):
            to_routing_policy(RoutingPolicyDef(budget_threshold="-1"))

    def test_threshold_not_a_number(self):
        with pytest.raises(ValueError, match="not a decimal"):
            to_routing_policy(RoutingPolicyDef(budget_threshold="lots"))

    @pytest.mark.parametrize(
        "data",
        [
            {"return_capable_stages": "admin"},
            {"reapproval_on_return": "yes"},
            {"min_signature_length": "64"},
            {"min_signature_length": True},
        ],
    )
    def test_wrong_shapes(self, data):
        with pytest.raises(ValueError):
            parse_routing_policy(data)

    def test_missing_config_id(self):
        with pytest.raises(KeyError):
            parse_config_set({"version": 1})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_policy(tmp_path / "absent.yaml")


class TestChecksum:

    def test_deterministic_and_order_independent(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})

    def test_changes_with_content(self, write_config):
        first = load_config_set(write_config({"budget_threshold": "1"})).checksum
        second = load_config_set(write_config({"budget_threshold": "2"})).checksum
        assert first != second
