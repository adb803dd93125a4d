"""Tests for the loan state machine (create, return, edit, delete)."""

from datetime import date, timedelta

import pytest

from library_catalog.config import LoanAdminPolicy
from library_catalog.database.book_repository import BookRepository
from library_catalog.database.loan_repository import LoanCreateSchema, LoanUpdateSchema
from library_catalog.database.member_repository import MemberRepository
from library_catalog.errors import (
    BookNotFoundError,
    BookUnavailableError,
    InvalidLoanTransitionError,
    LoanAlreadyReturnedError,
    LoanLimitExceededError,
    LoanNotFoundError,
    MemberNotActiveError,
    MemberNotFoundError,
    ValidationFailure,
)
from library_catalog.models import LoanStatus, MembershipStatus
from library_catalog.services.loans import LoanService

from conftest import TODAY


def available_copies(session, book_id: int) -> int:
    return BookRepository(session).get_or_raise(book_id).available_copies


def lend(service: LoanService, book_id: int, member_id: int, notes: str | None = None):
    return service.create(LoanCreateSchema(book_id=book_id, member_id=member_id, notes=notes))


class TestCreateLoan:
    """Lending a book."""

    def test_create_assigns_dates_and_takes_a_copy(
        self, session, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=2)
        member = make_member()

        loan = lend(loan_service, book.id, member.id, notes="Gift wrap")

        assert loan.status == LoanStatus.ACTIVE
        assert loan.loan_date == TODAY
        assert loan.due_date == TODAY + timedelta(days=14)
        assert loan.return_date is None
        assert loan.notes == "Gift wrap"
        assert loan.book.title == book.title
        assert loan.book.author_name is not None
        assert loan.member.email == member.email
        assert available_copies(session, book.id) == 1

    def test_loan_period_comes_from_config(
        self, session, clock, test_config, make_book, make_member
    ):
        config = test_config.model_copy(update={"loan_period_days": 21})
        service = LoanService(session, clock=clock, config=config)

        loan = lend(service, make_book().id, make_member().id)

        assert loan.due_date == TODAY + timedelta(days=21)

    def test_unknown_member(self, loan_service, make_book):
        with pytest.raises(MemberNotFoundError):
            lend(loan_service, make_book().id, 999)

    def test_unknown_book(self, loan_service, make_member):
        with pytest.raises(BookNotFoundError):
            lend(loan_service, 999, make_member().id)

    @pytest.mark.parametrize("status", [MembershipStatus.SUSPENDED, MembershipStatus.EXPIRED])
    def test_inactive_member_cannot_borrow(
        self, session, loan_service, make_book, make_member, status
    ):
        book = make_book()
        member = make_member(status=status)

        with pytest.raises(MemberNotActiveError) as exc_info:
            lend(loan_service, book.id, member.id)

        assert exc_info.value.code == "MEMBER_NOT_ACTIVE"
        assert available_copies(session, book.id) == book.total_copies

    def test_member_gate_runs_before_availability(self, loan_service, make_book, make_member):
        book = make_book(total_copies=1, available_copies=0)
        member = make_member(status=MembershipStatus.SUSPENDED)

        with pytest.raises(MemberNotActiveError):
            lend(loan_service, book.id, member.id)

    def test_book_without_copies_is_unavailable(
        self, session, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=2, available_copies=0)

        with pytest.raises(BookUnavailableError) as exc_info:
            lend(loan_service, book.id, make_member().id)

        assert exc_info.value.code == "BOOK_UNAVAILABLE"
        assert available_copies(session, book.id) == 0

    def test_sixth_loan_exceeds_limit_without_taking_a_copy(
        self, session, loan_service, make_book, make_member
    ):
        member = make_member()
        for _ in range(5):
            lend(loan_service, make_book().id, member.id)
        extra = make_book(total_copies=4)

        with pytest.raises(LoanLimitExceededError) as exc_info:
            lend(loan_service, extra.id, member.id)

        assert exc_info.value.code == "LOAN_LIMIT_EXCEEDED"
        assert available_copies(session, extra.id) == 4
        assert len(loan_service.by_member(member.id)) == 5

    def test_returned_loans_free_up_the_limit(self, loan_service, make_book, make_member):
        member = make_member()
        loans = [lend(loan_service, make_book().id, member.id) for _ in range(5)]

        loan_service.return_loan(loans[0].id)
        loan = lend(loan_service, make_book().id, member.id)

        assert loan.status == LoanStatus.ACTIVE

    def test_overdue_loans_count_toward_limit(self, clock, loan_service, make_book, make_member):
        member = make_member()
        for _ in range(5):
            lend(loan_service, make_book().id, member.id)
        clock.advance(days=30)
        assert loan_service.age_check().transitioned == 5

        with pytest.raises(LoanLimitExceededError):
            lend(loan_service, make_book().id, member.id)

    def test_overdue_loans_can_be_excluded_from_limit(
        self, session, clock, test_config, db_manager, make_book, make_member
    ):
        config = test_config.model_copy(update={"count_overdue_toward_limit": False})
        service = LoanService(session, clock=clock, config=config)
        member = make_member()
        for _ in range(5):
            lend(service, make_book().id, member.id)
        clock.advance(days=30)
        service.age_check()

        loan = lend(service, make_book().id, member.id)

        assert loan.status == LoanStatus.ACTIVE


class TestReturnLoan:
    """Returning a loaned book."""

    def test_return_sets_date_and_gives_copy_back(
        self, session, clock, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=1)
        loan = lend(loan_service, book.id, make_member().id)
        clock.advance(days=3)

        returned = loan_service.return_loan(loan.id)

        assert returned.status == LoanStatus.RETURNED
        assert returned.return_date == TODAY + timedelta(days=3)
        assert available_copies(session, book.id) == 1

    def test_returning_twice_fails_and_counts_once(
        self, session, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=2)
        loan = lend(loan_service, book.id, make_member().id)

        loan_service.return_loan(loan.id)
        with pytest.raises(LoanAlreadyReturnedError) as exc_info:
            loan_service.return_loan(loan.id)

        assert exc_info.value.code == "LOAN_ALREADY_RETURNED"
        assert available_copies(session, book.id) == 2

    def test_overdue_loan_can_be_returned(
        self, session, clock, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=1)
        loan = lend(loan_service, book.id, make_member().id)
        clock.advance(days=20)
        loan_service.age_check()

        returned = loan_service.return_loan(loan.id)

        assert returned.status == LoanStatus.RETURNED
        assert returned.returned_late is True
        assert available_copies(session, book.id) == 1

    def test_unknown_loan(self, loan_service):
        with pytest.raises(LoanNotFoundError):
            loan_service.return_loan(12345)


class TestSingleCopyScenario:
    def test_single_copy_passes_between_members(
        self, session, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=1)
        m = make_member()
        n = make_member()

        loan = lend(loan_service, book.id, m.id)
        assert loan.status == LoanStatus.ACTIVE
        assert loan.due_date == loan.loan_date + timedelta(days=14)
        assert available_copies(session, book.id) == 0

        with pytest.raises(BookUnavailableError):
            lend(loan_service, book.id, n.id)

        returned = loan_service.return_loan(loan.id)
        assert returned.status == LoanStatus.RETURNED
        assert returned.return_date == TODAY
        assert available_copies(session, book.id) == 1

        second = lend(loan_service, book.id, n.id)
        assert second.member_id == n.id
        assert available_copies(session, book.id) == 0


class TestUpdateLoan:
    """Administrative edits under both ledger policies."""

    def test_edit_due_date_and_notes(self, loan_service, make_book, make_member):
        loan = lend(loan_service, make_book().id, make_member().id)
        new_due = TODAY + timedelta(days=30)

        updated = loan_service.update(loan.id, LoanUpdateSchema(due_date=new_due, notes="Extended"))

        assert updated.due_date == new_due
        assert updated.notes == "Extended"
        assert updated.book_id == loan.book_id
        assert updated.loan_date == loan.loan_date

    def test_due_date_before_loan_date_is_rejected(self, loan_service, make_book, make_member):
        loan = lend(loan_service, make_book().id, make_member().id)

        with pytest.raises(ValidationFailure):
            loan_service.update(loan.id, LoanUpdateSchema(due_date=TODAY - timedelta(days=1)))

        assert loan_service.get(loan.id).due_date == loan.due_date

    def test_reconcile_marks_returned_like_a_return(
        self, session, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=1)
        loan = lend(loan_service, book.id, make_member().id)

        updated = loan_service.update(loan.id, LoanUpdateSchema(status=LoanStatus.RETURNED))

        assert updated.status == LoanStatus.RETURNED
        assert updated.return_date == TODAY
        assert available_copies(session, book.id) == 1

    def test_reconcile_refuses_to_reopen(self, session, loan_service, make_book, make_member):
        book = make_book(total_copies=1)
        loan = lend(loan_service, book.id, make_member().id)
        loan_service.return_loan(loan.id)

        with pytest.raises(InvalidLoanTransitionError):
            loan_service.update(loan.id, LoanUpdateSchema(status=LoanStatus.ACTIVE))

        assert loan_service.get(loan.id).status == LoanStatus.RETURNED
        assert available_copies(session, book.id) == 1

    def test_active_overdue_edits_leave_copies_alone(
        self, session, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=2)
        loan = lend(loan_service, book.id, make_member().id)

        updated = loan_service.update(loan.id, LoanUpdateSchema(status=LoanStatus.OVERDUE))
        assert updated.status == LoanStatus.OVERDUE
        updated = loan_service.update(loan.id, LoanUpdateSchema(status=LoanStatus.ACTIVE))
        assert updated.status == LoanStatus.ACTIVE

        assert available_copies(session, book.id) == 1

    def test_bypass_writes_status_without_ledger(
        self, session, clock, test_config, make_book, make_member
    ):
        config = test_config.model_copy(update={"loan_admin_policy": LoanAdminPolicy.BYPASS})
        service = LoanService(session, clock=clock, config=config)
        book = make_book(total_copies=1)
        loan = lend(service, book.id, make_member().id)

        updated = service.update(loan.id, LoanUpdateSchema(status=LoanStatus.RETURNED))

        assert updated.status == LoanStatus.RETURNED
        assert updated.return_date is None
        assert available_copies(session, book.id) == 0

    def test_unknown_loan(self, loan_service):
        with pytest.raises(LoanNotFoundError):
            loan_service.update(404, LoanUpdateSchema(notes="x"))


class TestDeleteLoan:
    def test_reconcile_delete_gives_copy_back(self, session, loan_service, make_book, make_member):
        book = make_book(total_copies=1)
        loan = lend(loan_service, book.id, make_member().id)

        loan_service.delete(loan.id)

        assert available_copies(session, book.id) == 1
        with pytest.raises(LoanNotFoundError):
            loan_service.get(loan.id)

    def test_reconcile_delete_of_returned_loan_keeps_count(
        self, session, loan_service, make_book, make_member
    ):
        book = make_book(total_copies=1)
        loan = lend(loan_service, book.id, make_member().id)
        loan_service.return_loan(loan.id)

        loan_service.delete(loan.id)

        assert available_copies(session, book.id) == 1

    def test_bypass_delete_leaves_copies_alone(
        self, session, clock, test_config, make_book, make_member
    ):
        config = test_config.model_copy(update={"loan_admin_policy": LoanAdminPolicy.BYPASS})
        service = LoanService(session, clock=clock, config=config)
        book = make_book(total_copies=1)
        loan = lend(service, book.id, make_member().id)

        service.delete(loan.id)

        assert available_copies(session, book.id) == 0

    def test_unknown_loan(self, loan_service):
        with pytest.raises(LoanNotFoundError):
            loan_service.delete(404)


class TestLoanQueries:
    def test_filters(self, clock, loan_service, make_book, make_member):
        member = make_member()
        other = make_member()
        book = make_book(total_copies=5)
        first = lend(loan_service, book.id, member.id)
        clock.advance(days=2)
        second = lend(loan_service, book.id, other.id)
        loan_service.return_loan(first.id)

        assert [loan.id for loan in loan_service.by_member(member.id)] == [first.id]
        assert [loan.id for loan in loan_service.by_book(book.id)] == [second.id, first.id]
        assert [loan.id for loan in loan_service.by_status(LoanStatus.RETURNED)] == [first.id]
        assert [loan.id for loan in loan_service.by_date_range(TODAY, TODAY)] == [first.id]
        assert loan_service.by_date_range(TODAY, TODAY + timedelta(days=5))[-1].id == second.id

    def test_date_range_must_be_ordered(self, loan_service):
        with pytest.raises(ValidationFailure):
            loan_service.by_date_range(date(2024, 2, 1), date(2024, 1, 1))

    def test_filters_check_parents_exist(self, loan_service):
        with pytest.raises(MemberNotFoundError):
            loan_service.by_member(999)
        with pytest.raises(BookNotFoundError):
            loan_service.by_book(999)

    def test_find_overdue_includes_unswept_loans(self, clock, loan_service, make_book, make_member):
        loan = lend(loan_service, make_book().id, make_member().id)
        assert loan_service.find_overdue() == []

        clock.advance(days=15)
        assert [item.id for item in loan_service.find_overdue()] == [loan.id]

        loan_service.age_check()
        overdue = loan_service.find_overdue()
        assert [item.id for item in overdue] == [loan.id]
        assert overdue[0].status == LoanStatus.OVERDUE

    def test_member_status_change_blocks_new_loans(
        self, session, clock, loan_service, make_book, make_member
    ):
        member = make_member()
        MemberRepository(session, clock).update_status(member.id, MembershipStatus.SUSPENDED)

        with pytest.raises(MemberNotActiveError):
            lend(loan_service, make_book().id, member.id)
