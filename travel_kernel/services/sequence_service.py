"""
SequenceService -- request-number allocation via locked counter rows.

Responsibility:
    Hands out the running number in ``TO-2025-0001`` style request
    numbers.  Each series (prefix and year) has one counter row that is
    locked (``SELECT ... FOR UPDATE``) while it is incremented, so two
    concurrent submissions never draw the same number.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by TransitionService when a request is created without an
    explicit number.

Invariants enforced:
    - Numbers within a series are strictly increasing and never handed
      out twice.  Counting the existing rows is never used.
    - The increment becomes visible only when the caller's transaction
      commits.

Failure modes:
    - IntegrityError: two callers create the same series at once.  The
      loser rolls back its savepoint and increments the winner's row.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from travel_kernel.logging_config import get_logger
from travel_kernel.models.sequence import RequestNumberCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Transactional counters for request-number series.

    Does NOT commit; the caller owns the transaction.
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, name: str) -> RequestNumberCounter | None:
        return self._session.execute(
            select(RequestNumberCounter)
            .where(RequestNumberCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, name: str) -> int:
        """
        Increment series ``name`` and return the new value (first call: 1).

        The counter row stays locked until the caller's transaction ends.
        """
        counter = self._locked_counter(name)

        if counter is None:
            # First number of the series; another caller may be creating it too
            savepoint = self._session.begin_nested()
            try:
                self._session.add(RequestNumberCounter(name=name, current_value=1))
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": name},
                )
                savepoint.rollback()
                counter = self._locked_counter(name)
                if counter is None:
                    raise

        # Incremented in SQL and re-read after the flush; SQLite ignores FOR UPDATE
        counter.current_value = RequestNumberCounter.current_value + 1
        self._session.flush()
        value = counter.current_value
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": name, "value": value},
        )
        return value

    def current_value(self, name: str) -> int | None:
        """Last value handed out for ``name``, or None before the first."""
        counter = self._session.execute(
            select(RequestNumberCounter)
            .where(RequestNumberCounter.name == name)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
