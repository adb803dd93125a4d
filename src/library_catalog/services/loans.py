"""
Loan service: the loan state machine.

Every write to the ``loans`` table goes through here, together with the
copy-count changes it implies:

- ``create``: member gate, book availability, ledger -1, new ACTIVE loan
- ``return_loan``: ACTIVE/OVERDUE -> RETURNED, return date = today, ledger +1
- ``update``: administrative edit of due date, notes and status
- ``delete``: administrative removal of a loan record
- ``age_check``: ACTIVE -> OVERDUE for loans past due (overdue sweeper)

Each write is one transaction: a failed precondition or database error rolls
back the loan row and the ledger adjustment together.

How ``update`` and ``delete`` treat copy counts depends on
``loan_admin_policy``:

- ``reconcile``: marking an outstanding loan RETURNED behaves like a return,
  deleting an outstanding loan gives its copy back, and a RETURNED loan cannot
  be reopened
- ``bypass``: the loan row is written as given and copy counts are untouched
"""

import logging
from datetime import date, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from ..clock import Clock, SystemClock
from ..config import CatalogConfig, LoanAdminPolicy, get_config
from ..database.loan_repository import (
    LoanCreateSchema,
    LoanRepository,
    LoanUpdateSchema,
    to_db_status,
)
from ..database.repository import PaginatedResponse, PaginationParams
from ..database.schema import OUTSTANDING_LOAN_STATUSES, LoanStatusEnum
from ..database.schema import Book as BookDB
from ..database.schema import Loan as LoanDB
from ..database.session import safe_commit, safe_query
from ..errors import (
    BookNotFoundError,
    BookUnavailableError,
    InvalidCopyCountError,
    InvalidLoanTransitionError,
    LoanAlreadyReturnedError,
    LoanNotFoundError,
    ValidationFailure,
)
from ..models.loan import Loan, LoanStatus, SweepResult
from ..observability import trace_operation
from ..observability.metrics import record_loan_event
from .ledger import CopyCountLedger
from .member_gate import MemberGate
from .overdue import OverdueSweeper

logger = logging.getLogger(__name__)


class LoanService:
    """Creates, returns, edits, deletes and ages loans."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: CatalogConfig | None = None,
        sweeper: OverdueSweeper | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.config = config or get_config()
        self.loans = LoanRepository(session)
        self.ledger = CopyCountLedger(session)
        self.gate = MemberGate(session, self.config)
        self.sweeper = sweeper or OverdueSweeper(
            sessionmaker(bind=session.get_bind(), expire_on_commit=False), self.clock
        )

    @property
    def reconcile(self) -> bool:
        return self.config.loan_admin_policy == LoanAdminPolicy.RECONCILE

    def _load_for_update(self, loan_id: int) -> LoanDB:
        query = (
            select(LoanDB)
            .where(LoanDB.id == loan_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        loan = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to load loan",
        )
        if loan is None:
            raise LoanNotFoundError(f"Loan with ID {loan_id} not found")
        return loan

    def _close(self, loan: LoanDB) -> None:
        """Mark an outstanding loan RETURNED and put its copy back."""
        self.session.flush()
        stmt = (
            update(LoanDB)
            .where(LoanDB.id == loan.id, LoanDB.status.in_(OUTSTANDING_LOAN_STATUSES))
            .values(status=LoanStatusEnum.RETURNED, return_date=self.clock.today())
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount != 1:
            raise LoanAlreadyReturnedError(f"Loan {loan.id} has already been returned")
        self.ledger.give_back(loan.book_id)
        self.session.expire(loan)

    # === State machine ===

    @trace_operation("loan.create")
    def create(self, data: LoanCreateSchema) -> Loan:
        """
        Lend a book to a member.

        Checks run in order: member gate, book existence, book availability.
        The loan is dated today and due ``loan_period_days`` later.

        Raises:
            MemberNotFoundError, MemberNotActiveError, LoanLimitExceededError:
                From the member gate
            BookNotFoundError: If the book does not exist
            BookUnavailableError: If no copy is on the shelf
        """
        try:
            self.gate.can_borrow(data.member_id, lock=True)

            book = safe_query(
                self.session,
                lambda s: s.execute(
                    select(BookDB)
                    .where(BookDB.id == data.book_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                .unique()
                .scalar_one_or_none(),
                "Failed to get book for loan",
            )
            if book is None:
                raise BookNotFoundError(f"Book with ID {data.book_id} not found")
            if book.available_copies <= 0:
                raise BookUnavailableError(f"No copies of '{book.title}' are available")

            try:
                self.ledger.take(book.id)
            except InvalidCopyCountError as e:
                # Last copy taken by a concurrent loan since the read above
                raise BookUnavailableError(f"No copies of '{book.title}' are available") from e

            today = self.clock.today()
            loan = LoanDB(
                book_id=book.id,
                member_id=data.member_id,
                loan_date=today,
                due_date=today + timedelta(days=self.config.loan_period_days),
                status=LoanStatusEnum.ACTIVE,
                notes=data.notes,
            )
            self.session.add(loan)
            safe_commit(self.session, "create loan")
        except Exception:
            self.session.rollback()
            raise

        logger.info(
            "Loan %s created: book %s to member %s, due %s",
            loan.id,
            loan.book_id,
            loan.member_id,
            loan.due_date,
        )
        record_loan_event("create")
        return self.loans.get_or_raise(loan.id)

    @trace_operation("loan.return")
    def return_loan(self, loan_id: int) -> Loan:
        """
        Return a loaned book.

        Raises:
            LoanNotFoundError: If the loan does not exist
            LoanAlreadyReturnedError: If the loan is already RETURNED
        """
        try:
            loan = self._load_for_update(loan_id)
            if loan.status == LoanStatusEnum.RETURNED:
                raise LoanAlreadyReturnedError(f"Loan {loan_id} has already been returned")
            self._close(loan)
            safe_commit(self.session, "return loan")
        except Exception:
            self.session.rollback()
            raise

        logger.info("Loan %s returned", loan_id)
        record_loan_event("return")
        return self.loans.get_or_raise(loan_id)

    def age_check(self, reference_date: date | None = None) -> SweepResult:
        """
        Age ACTIVE loans past due into OVERDUE. See ``OverdueSweeper``.

        The sweeper writes through its own sessions, so the transaction this
        service's session may still hold from an earlier read is ended first.
        A file-backed SQLite database would otherwise refuse the sweeper's
        write lock.
        """
        if self.session.in_transaction():
            self.session.rollback()
        return self.sweeper.age_check(reference_date)

    # === Administrative edits ===

    @trace_operation("loan.update")
    def update(self, loan_id: int, data: LoanUpdateSchema) -> Loan:
        """
        Edit a loan's due date, notes or status.

        Raises:
            LoanNotFoundError: If the loan does not exist
            ValidationFailure: If the new due date precedes the loan date
            InvalidLoanTransitionError: If a RETURNED loan would be reopened
                (``reconcile`` policy)
        """
        changes = data.model_dump(exclude_unset=True)
        try:
            loan = self._load_for_update(loan_id)

            if changes.get("due_date") is not None:
                if changes["due_date"] < loan.loan_date:
                    raise ValidationFailure(
                        f"Due date {changes['due_date']} is before loan date {loan.loan_date}"
                    )
                loan.due_date = changes["due_date"]

            if "notes" in changes:
                loan.notes = changes["notes"]

            new_status = changes.get("status")
            if new_status is not None:
                self._change_status(loan, new_status)

            safe_commit(self.session, "update loan")
        except Exception:
            self.session.rollback()
            raise

        logger.info("Loan %s updated: %s", loan_id, sorted(changes))
        return self.loans.get_or_raise(loan_id)

    def _change_status(self, loan: LoanDB, new_status: LoanStatus) -> None:
        target = to_db_status(new_status)
        current = loan.status

        if not self.reconcile or target == current:
            loan.status = target
            return

        if current == LoanStatusEnum.RETURNED:
            raise InvalidLoanTransitionError(
                f"Loan {loan.id} is RETURNED and cannot be set to {target.value}"
            )
        if target == LoanStatusEnum.RETURNED:
            self._close(loan)
            record_loan_event("return")
            return
        # ACTIVE <-> OVERDUE
        loan.status = target

    @trace_operation("loan.delete")
    def delete(self, loan_id: int) -> None:
        """
        Delete a loan record.

        Under the ``reconcile`` policy an outstanding loan gives its copy back.

        Raises:
            LoanNotFoundError: If the loan does not exist
        """
        try:
            loan = self._load_for_update(loan_id)
            if self.reconcile and loan.status in OUTSTANDING_LOAN_STATUSES:
                self.ledger.give_back(loan.book_id)
            self.session.delete(loan)
            safe_commit(self.session, "delete loan")
        except Exception:
            self.session.rollback()
            raise

        logger.info("Loan %s deleted", loan_id)
        record_loan_event("delete")

    # === Queries ===

    def get(self, loan_id: int) -> Loan:
        return self.loans.get_or_raise(loan_id)

    def list_loans(self, pagination: PaginationParams) -> PaginatedResponse[Loan]:
        return self.loans.get_all(pagination, order_by="id")

    def by_member(self, member_id: int) -> list[Loan]:
        return self.loans.get_by_member(member_id)

    def by_book(self, book_id: int) -> list[Loan]:
        return self.loans.get_by_book(book_id)

    def by_status(self, status: LoanStatus) -> list[Loan]:
        return self.loans.get_by_status(status)

    def by_date_range(self, start_date: date, end_date: date) -> list[Loan]:
        return self.loans.get_by_date_range(start_date, end_date)

    def find_overdue(self) -> list[Loan]:
        """Loans overdue today, whether or not a sweep has marked them yet."""
        return self.loans.get_overdue(self.clock.today())
