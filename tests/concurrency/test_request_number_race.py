"""
Concurrent request submissions drawing request numbers.

Every submitter reaches the counter at the same moment (a barrier sits in
front of the allocation).  The counter row serializes them, so each
request gets its own number and the series has no holes.
"""

import threading

import pytest

from travel_kernel.selectors.request_selector import RequestSelector
from travel_kernel.services.sequence_service import SequenceService
from travel_kernel.services.transition_service import TransitionService


@pytest.mark.parametrize("submitters", [2, 6])
def test_concurrent_submissions_get_distinct_numbers(
    monkeypatch, session_factory, deterministic_clock, make_facts, submitters,
):
    session = session_factory()
    try:
        TransitionService(
            session, clock=deterministic_clock, auto_commit=True,
        ).submit_request(make_facts())
    finally:
        session.close()

    barrier = threading.Barrier(submitters, timeout=30)
    real_next_value = SequenceService.next_value

    def synchronized_next_value(self, name):
        barrier.wait()
        return real_next_value(self, name)

    monkeypatch.setattr(SequenceService, "next_value", synchronized_next_value)

    results = [None] * submitters

    def worker(index):
        session = session_factory()
        try:
            service = TransitionService(
                session, clock=deterministic_clock, auto_commit=True,
            )
            results[index] = service.submit_request(make_facts()).request_number
        except Exception as exc:
            session.rollback()
            results[index] = exc
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(submitters)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    assert not any(thread.is_alive() for thread in threads)

    assert not [r for r in results if isinstance(r, Exception)]
    expected = {f"TO-2024-{n:04d}" for n in range(2, submitters + 2)}
    assert set(results) == expected

    session = session_factory()
    try:
        selector = RequestSelector(session)
        for number in expected:
            assert selector.get_by_number(number) is not None
    finally:
        session.close()
