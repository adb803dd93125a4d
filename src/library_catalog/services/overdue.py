"""
Overdue sweeper.

Ages ACTIVE loans whose due date has passed into OVERDUE. The sweep first
selects candidate IDs, then gives every loan its own short transaction with a
conditional ``UPDATE ... WHERE status = 'ACTIVE'``:

- a loan returned between selection and update is skipped, not resurrected
- a database error on one loan is logged and counted; the sweep goes on
- running the sweep twice for the same date changes nothing the second time
"""

import logging
from collections.abc import Callable
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..clock import Clock, SystemClock
from ..database.loan_repository import LoanRepository
from ..models.loan import SweepResult
from ..observability import trace_operation
from ..observability.metrics import record_sweep

logger = logging.getLogger(__name__)


class OverdueSweeper:
    """Ages loans past their due date from ACTIVE to OVERDUE."""

    def __init__(self, session_factory: Callable[[], Session], clock: Clock | None = None):
        self.session_factory = session_factory
        self.clock = clock or SystemClock()

    def _select_candidates(self, reference_date: date) -> list[int]:
        with self.session_factory() as session:
            return LoanRepository(session).ids_due_before(reference_date)

    def _age_one(self, loan_id: int) -> bool:
        with self.session_factory() as session, session.begin():
            return LoanRepository(session).mark_overdue(loan_id)

    @trace_operation("overdue.age_check")
    def age_check(self, reference_date: date | None = None) -> SweepResult:
        """
        Mark every ACTIVE loan due before ``reference_date`` as OVERDUE.

        Args:
            reference_date: Date to age against; defaults to the clock's today

        Returns:
            How many loans were scanned, transitioned and failed
        """
        reference_date = reference_date or self.clock.today()
        loan_ids = self._select_candidates(reference_date)
        result = SweepResult(reference_date=reference_date, scanned=len(loan_ids))

        for loan_id in loan_ids:
            try:
                changed = self._age_one(loan_id)
            except SQLAlchemyError:
                logger.exception("Failed to mark loan %s overdue", loan_id)
                result.failed += 1
                continue
            if changed:
                result.transitioned += 1
                result.loan_ids.append(loan_id)

        record_sweep(result.transitioned, result.failed)
        logger.info(
            "Overdue sweep for %s: %d scanned, %d transitioned, %d failed",
            reference_date,
            result.scanned,
            result.transitioned,
            result.failed,
        )
        return result
