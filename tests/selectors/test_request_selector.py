"""
Tests for RequestSelector -- read side for approval and tracking screens.

Covers:
- get / get_by_number / for_requester
- actionable_for: the approver inbox agrees with can_act
- stage_history and audit_trail over persisted requests
"""

from uuid import uuid4

import pytest

from travel_engines.tracking import StageState
from travel_kernel.domain.actor import ActorRoleClaims
from travel_kernel.domain.policy import RoutingPolicy
from travel_kernel.domain.stages import RequestStatus, Stage
from travel_kernel.domain.transition import TransitionAction, TransitionPayload
from travel_kernel.exceptions import RequestNotFoundError
from travel_kernel.selectors.request_selector import RequestSelector

APPROVE = TransitionAction.APPROVE


class TestLookup:

    def test_get_unknown(self, selector):
        with pytest.raises(RequestNotFoundError) as exc_info:
            selector.get(uuid4())
        assert exc_info.value.code == "REQUEST_NOT_FOUND"

    def test_get_by_number(self, transition_service, selector, make_facts):
        created = transition_service.submit_request(make_facts())
        assert selector.get_by_number(created.request_number).id == created.id
        assert selector.get_by_number("TO-1999-0001") is None

    def test_get_reflects_latest_transition(
        self, transition_service, selector, make_facts, org, signature,
    ):
        created = transition_service.submit_request(make_facts())
        assert selector.get_by_number(created.request_number).version == 0
        transition_service.apply(
            created.id, org.head, APPROVE, TransitionPayload(signature=signature),
        )
        assert selector.get_by_number(created.request_number).version == 1

    def test_for_requester_newest_first(
        self, transition_service, selector, make_facts, org, deterministic_clock,
    ):
        older = transition_service.submit_request(make_facts())
        deterministic_clock.advance(60)
        newer = transition_service.submit_request(make_facts(), draft=True)
        transition_service.submit_request(make_facts(
            requester_id=org.secretary.user_id,
            submitted_by_user_id=org.secretary.user_id,
        ))

        mine = selector.for_requester(org.requester.user_id)
        assert [r.id for r in mine] == [newer.id, older.id]


class TestInbox:

    @pytest.fixture
    def requests(self, transition_service, make_facts, org, signature, deterministic_clock):
        at_head = transition_service.submit_request(make_facts())
        deterministic_clock.advance(60)
        at_admin = transition_service.submit_request(make_facts())
        transition_service.apply(
            at_admin.id, org.head, APPROVE, TransitionPayload(signature=signature),
        )
        deterministic_clock.advance(60)
        other_dept = transition_service.submit_request(
            make_facts(department_id=org.partner_dept),
        )
        draft = transition_service.submit_request(make_facts(), draft=True)
        return at_head, at_admin, other_dept, draft

    def test_department_head_inbox(self, selector, requests, org):
        at_head, _, other_dept, _ = requests
        assert [r.id for r in selector.actionable_for(org.head)] == [at_head.id]
        assert [r.id for r in selector.actionable_for(org.partner_head)] == [other_dept.id]

    def test_admin_inbox(self, selector, requests, org):
        _, at_admin, _, _ = requests
        assert [r.id for r in selector.actionable_for(org.admin)] == [at_admin.id]

    def test_nothing_for_outsider(self, selector, requests, org):
        assert selector.actionable_for(org.outsider) == []
        assert selector.actionable_for(org.requester) == []

    def test_oldest_first_with_limit(
        self, transition_service, selector, make_facts, org, deterministic_clock,
    ):
        first = transition_service.submit_request(make_facts())
        deterministic_clock.advance(60)
        second = transition_service.submit_request(make_facts())

        assert [r.id for r in selector.actionable_for(org.head)] == [first.id, second.id]
        assert [r.id for r in selector.actionable_for(org.head, limit=1)] == [first.id]

    def test_signature_inbox_is_the_requester(
        self, transition_service, selector, make_facts, org,
    ):
        request = transition_service.submit_request(
            make_facts(submitted_by_user_id=org.secretary.user_id),
        )
        assert [r.id for r in selector.actionable_for(org.requester)] == [request.id]
        assert selector.actionable_for(org.secretary) == []

    def test_can_act(self, selector, requests, org):
        at_head, at_admin, _, draft = requests
        assert selector.can_act(at_head.id, org.head) == (True, Stage.HEAD)
        assert selector.can_act(at_admin.id, org.head) == (False, None)
        assert selector.can_act(at_admin.id, org.admin) == (True, Stage.ADMIN)
        assert selector.can_act(draft.id, org.head) == (False, None)


class TestTracking:

    def test_stage_history(self, transition_service, selector, make_facts, org, signature):
        request = transition_service.submit_request(make_facts())
        transition_service.apply(
            request.id, org.head, APPROVE,
            TransitionPayload(signature=signature, comments="Fine"),
        )

        by_stage = {e.stage: e for e in selector.stage_history(request.id)}
        assert by_stage[Stage.HEAD].state == StageState.COMPLETED
        assert by_stage[Stage.HEAD].comments == "Fine"
        assert by_stage[Stage.ADMIN].state == StageState.CURRENT
        assert by_stage[Stage.VP].state == StageState.SKIPPED
        assert by_stage[Stage.VP].skip_reason == "Budget below threshold"

    def test_audit_trail_is_per_request(
        self, transition_service, selector, make_facts, org, signature,
    ):
        first = transition_service.submit_request(make_facts())
        second = transition_service.submit_request(make_facts())
        transition_service.apply(
            first.id, org.head, APPROVE, TransitionPayload(signature=signature),
        )

        assert len(selector.audit_trail(first.id)) == 2
        assert len(selector.audit_trail(second.id)) == 1
        assert selector.audit_trail(uuid4()) == []

    def test_policy_flows_into_can_act(self, session, transition_service, make_facts, org):
        request = transition_service.submit_request(make_facts(
            requester_id=org.head.user_id,
            requester_is_head=True,
            submitted_by_user_id=org.secretary.user_id,
        ))
        strict = RequestSelector(session, RoutingPolicy(allow_head_self_approval=False))
        assert strict.can_act(request.id, org.head) == (False, None)
        assert RequestSelector(session).can_act(request.id, org.head) == (True, Stage.HEAD)

    def test_unused_claims_do_not_matter(self, transition_service, selector, make_facts):
        request = transition_service.submit_request(make_facts(has_budget=True))
        clerk = ActorRoleClaims(user_id=uuid4(), is_comptroller=True, is_hr=True)
        assert selector.can_act(request.id, clerk) == (False, None)
        assert selector.get(request.id).status == RequestStatus.PENDING_HEAD
