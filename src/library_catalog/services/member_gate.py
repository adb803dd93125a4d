"""
Member gate: decides whether a member may start another loan.

A member may borrow when they exist, their status is ACTIVE and their count
of outstanding loans is below ``max_active_loans``. With
``count_overdue_toward_limit`` (the default) OVERDUE loans count as
outstanding; otherwise only ACTIVE ones do.

When the gate runs as part of loan creation it locks the member row
(``SELECT ... FOR UPDATE``), so two concurrent loans for the same member
serialise and the count cannot be read stale between check and insert.
SQLite has no row locks; there the transaction already holds the database
write lock (see ``database.session``).
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import CatalogConfig, get_config
from ..database.loan_repository import LoanRepository
from ..database.schema import LoanStatusEnum
from ..database.schema import Member as MemberDB
from ..database.session import safe_query
from ..errors import LoanLimitExceededError, MemberNotActiveError, MemberNotFoundError
from ..models.loan import BorrowDecision

logger = logging.getLogger(__name__)


class MemberGate:
    """Borrowing eligibility checks for members."""

    def __init__(self, session: Session, config: CatalogConfig | None = None):
        self.session = session
        self.config = config or get_config()
        self.loans = LoanRepository(session)

    @property
    def counted_statuses(self) -> tuple[LoanStatusEnum, ...]:
        if self.config.count_overdue_toward_limit:
            return (LoanStatusEnum.ACTIVE, LoanStatusEnum.OVERDUE)
        return (LoanStatusEnum.ACTIVE,)

    def _load_member(self, member_id: int, lock: bool) -> MemberDB:
        query = (
            select(MemberDB)
            .where(MemberDB.id == member_id)
            .execution_options(populate_existing=True)
        )
        if lock:
            query = query.with_for_update()
        member = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to load member",
        )
        if member is None:
            raise MemberNotFoundError(f"Member with ID {member_id} not found")
        return member

    def active_loan_count(self, member_id: int) -> int:
        """Outstanding loans counted against the member's limit."""
        return self.loans.count_for_member(member_id, self.counted_statuses)

    def can_borrow(self, member_id: int, lock: bool = False) -> BorrowDecision:
        """
        Check that a member may start a new loan.

        Args:
            member_id: The member asking to borrow
            lock: Lock the member row for the rest of the transaction

        Raises:
            MemberNotFoundError: If the member does not exist
            MemberNotActiveError: If the member is SUSPENDED or EXPIRED
            LoanLimitExceededError: If the member is at their loan limit
        """
        member = self._load_member(member_id, lock)

        if not member.is_active:
            raise MemberNotActiveError(
                f"Member {member_id} is {member.status.value} and cannot borrow books"
            )

        active = self.active_loan_count(member_id)
        limit = self.config.max_active_loans
        if active >= limit:
            logger.info("Member %s is at the loan limit (%s/%s)", member_id, active, limit)
            raise LoanLimitExceededError(
                f"Member {member_id} already has {active} active loans (limit {limit})"
            )

        return BorrowDecision(member_id=member_id, active_loans=active, max_active_loans=limit)
