"""
SequenceService -- monotonic counters via locked rows.

Responsibility:
    Allocates per-demand event sequence numbers and per-company-month demand
    code numbers.  The counter row is locked (``SELECT ... FOR UPDATE``) and
    incremented; max()+1 over the target table is never used.

Failure modes:
    - IntegrityError on a concurrent first use of the same counter; handled
      by rolling back a savepoint and re-reading the row the winner created.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from demand_kernel.logging_config import get_logger
from demand_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Contract:
        ``next_value(name)`` returns an integer strictly greater than every
        value previously returned for ``name`` in committed transactions.

    Non-goals:
        - Does NOT commit; a rolled-back caller returns its value.
    """

    def __init__(self, session: Session):
        self._session = session

    @staticmethod
    def event_sequence(demand_id) -> str:
        return f"demand_event:{demand_id}"

    @staticmethod
    def code_sequence(company: str, month: int, year: int) -> str:
        return f"demand_code:{company.upper()}:{month:02d}{year:04d}"

    def _locked(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        counter = self._locked(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
