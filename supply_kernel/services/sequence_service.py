"""
SequenceService -- named counters that hand out 1, 2, 3, ...

Responsibility:
    Numbers audit history entries.  Newest-first history order is the
    descending order of these numbers, so they must never repeat or go
    backwards, even when entries are written from several threads.

Architecture position:
    Kernel > Services.  Used by AuditHistoryService inside the ledger
    transaction; never commits.

Invariants enforced:
    - The next value comes from the locked counter row, never from
      MAX(sequence) + 1 over the history table.
    - A rolled-back transaction hands its value back.

Failure modes:
    - IntegrityError when two first-ever allocations race to create the
      counter row; the loser re-reads the winner's row inside a savepoint.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from supply_kernel.logging_config import get_logger
from supply_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    AUDIT_HISTORY = "audit_history"

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """Increment ``sequence_name`` and return the new value (first is 1)."""
        counter = self._lock(sequence_name) or self._create(sequence_name)
        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Last value handed out, or None for a sequence never used."""
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

    def _lock(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create(self, sequence_name: str) -> SequenceCounter:
        try:
            with self._session.begin_nested():
                counter = SequenceCounter(name=sequence_name, current_value=0)
                self._session.add(counter)
            return counter
        except IntegrityError:
            logger.debug("sequence_counter_race_retry", extra={"sequence_name": sequence_name})
            counter = self._lock(sequence_name)
            if counter is None:
                raise
            return counter
