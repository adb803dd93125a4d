"""
Loan repository for the Library Catalog service.

Read side of the loan lifecycle: lookups, filtered listings and the queries
the member gate and overdue sweeper run. Every loan read joins the book, its
author and the member in one statement so responses can embed their
summaries without further round trips.

Loans are written only by ``services.loans.LoanService``, which owns the
transaction that also moves the copy-count ledger; the generic write methods
are disabled here.
"""

from datetime import date

from pydantic import Field
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import joinedload

from ..errors import (
    BookNotFoundError,
    LoanNotFoundError,
    MemberNotFoundError,
    UnsupportedOperationError,
    ValidationFailure,
)
from ..models.base import CatalogModel
from ..models.book import BookSummary
from ..models.loan import Loan as LoanModel
from ..models.loan import LoanStatus
from ..models.member import MemberSummary
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Book as BookDB
from .schema import Loan as LoanDB
from .schema import LoanStatusEnum
from .schema import Member as MemberDB
from .session import safe_query


class LoanCreateSchema(CatalogModel):
    """Request body for lending a book."""

    book_id: int
    member_id: int
    notes: str | None = Field(None, max_length=500)


class LoanUpdateSchema(CatalogModel):
    """Administrative edit of a loan. Book, member and loan date are immutable."""

    due_date: date | None = None
    notes: str | None = Field(None, max_length=500)
    status: LoanStatus | None = None


def to_db_status(status: LoanStatus) -> LoanStatusEnum:
    return LoanStatusEnum(status.value)


class LoanRepository(BaseRepository[LoanDB, LoanCreateSchema, LoanUpdateSchema, LoanModel]):
    """Repository for loan reads."""

    not_found_error = LoanNotFoundError

    @property
    def model_class(self):
        return LoanDB

    @property
    def response_schema(self):
        return LoanModel

    def _select(self):
        return (
            select(LoanDB)
            .options(joinedload(LoanDB.book), joinedload(LoanDB.member))
            .execution_options(populate_existing=True)
        )

    def _to_response_model(self, db_obj: LoanDB) -> LoanModel:
        book = db_obj.book
        member = db_obj.member
        return LoanModel(
            id=db_obj.id,
            book_id=db_obj.book_id,
            member_id=db_obj.member_id,
            loan_date=db_obj.loan_date,
            due_date=db_obj.due_date,
            return_date=db_obj.return_date,
            status=LoanStatus(db_obj.status.value),
            notes=db_obj.notes,
            book=BookSummary(
                id=book.id,
                title=book.title,
                isbn=book.isbn,
                author_name=book.author.full_name if book.author else None,
            ),
            member=MemberSummary(
                id=member.id,
                first_name=member.first_name,
                last_name=member.last_name,
                email=member.email,
            ),
            created_at=db_obj.created_at,
            updated_at=db_obj.updated_at,
        )

    def _get_db_obj(self, id: int) -> LoanDB | None:
        query = self._select().where(LoanDB.id == id)
        return safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            "Failed to get Loan by ID",
        )

    def get_all(
        self,
        pagination: PaginationParams | None = None,
        order_by: str = "id",
        order_desc: bool = False,
    ) -> list[LoanModel] | PaginatedResponse[LoanModel]:
        order_field = getattr(LoanDB, order_by, LoanDB.id)
        query = self._select().order_by(order_field.desc() if order_desc else order_field)
        if pagination:
            return self._paginate(query, pagination)
        return self._list(query, "Failed to get all loans")

    def create(self, data: LoanCreateSchema) -> LoanModel:
        raise UnsupportedOperationError("Loans are created through LoanService.create")

    def update(self, id: int, data: LoanUpdateSchema) -> LoanModel:
        raise UnsupportedOperationError("Loans are updated through LoanService.update")

    def delete(self, id: int) -> None:
        raise UnsupportedOperationError("Loans are deleted through LoanService.delete")

    # === Filtered listings ===

    def get_by_member(self, member_id: int) -> list[LoanModel]:
        """All loans of a member, newest first."""
        if self.session.get(MemberDB, member_id) is None:
            raise MemberNotFoundError(f"Member with ID {member_id} not found")
        query = (
            self._select()
            .where(LoanDB.member_id == member_id)
            .order_by(LoanDB.loan_date.desc(), LoanDB.id.desc())
        )
        return self._list(query, "Failed to get loans by member")

    def get_by_book(self, book_id: int) -> list[LoanModel]:
        """All loans of a book, newest first."""
        if self.session.get(BookDB, book_id) is None:
            raise BookNotFoundError(f"Book with ID {book_id} not found")
        query = (
            self._select()
            .where(LoanDB.book_id == book_id)
            .order_by(LoanDB.loan_date.desc(), LoanDB.id.desc())
        )
        return self._list(query, "Failed to get loans by book")

    def get_by_status(self, status: LoanStatus) -> list[LoanModel]:
        query = (
            self._select()
            .where(LoanDB.status == to_db_status(status))
            .order_by(LoanDB.due_date, LoanDB.id)
        )
        return self._list(query, "Failed to get loans by status")

    def get_by_date_range(self, start_date: date, end_date: date) -> list[LoanModel]:
        """Loans whose loan date falls within ``[start_date, end_date]``."""
        if start_date > end_date:
            raise ValidationFailure("startDate must not be after endDate")
        query = (
            self._select()
            .where(LoanDB.loan_date.between(start_date, end_date))
            .order_by(LoanDB.loan_date, LoanDB.id)
        )
        return self._list(query, "Failed to get loans by date range")

    def get_overdue(self, reference_date: date) -> list[LoanModel]:
        """
        Loans that are overdue on ``reference_date``: already marked OVERDUE,
        or still ACTIVE past their due date because no sweep has run yet.
        """
        query = (
            self._select()
            .where(
                or_(
                    LoanDB.status == LoanStatusEnum.OVERDUE,
                    and_(
                        LoanDB.status == LoanStatusEnum.ACTIVE,
                        LoanDB.due_date < reference_date,
                    ),
                )
            )
            .order_by(LoanDB.due_date, LoanDB.id)
        )
        return self._list(query, "Failed to get overdue loans")

    # === Queries for the lifecycle services ===

    def count_for_member(self, member_id: int, statuses: tuple[LoanStatusEnum, ...]) -> int:
        query = (
            select(func.count())
            .select_from(LoanDB)
            .where(LoanDB.member_id == member_id, LoanDB.status.in_(statuses))
        )
        return (
            safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                "Failed to count member loans",
            )
            or 0
        )

    def ids_due_before(self, reference_date: date) -> list[int]:
        """IDs of ACTIVE loans whose due date is before ``reference_date``."""
        query = (
            select(LoanDB.id)
            .where(LoanDB.status == LoanStatusEnum.ACTIVE, LoanDB.due_date < reference_date)
            .order_by(LoanDB.id)
        )
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to select loans to age",
            )
        )

    def mark_overdue(self, loan_id: int) -> bool:
        """
        Flip one loan from ACTIVE to OVERDUE.

        Conditional on the row still being ACTIVE, so a loan returned since it
        was selected is left alone. Returns whether the row changed. Does not
        commit.
        """
        stmt = (
            update(LoanDB)
            .where(LoanDB.id == loan_id, LoanDB.status == LoanStatusEnum.ACTIVE)
            .values(status=LoanStatusEnum.OVERDUE)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1
