"""
Loan models for the Library Catalog service.

A loan moves through three states:

    ACTIVE --return--> RETURNED (terminal)
    ACTIVE --age check--> OVERDUE --return--> RETURNED

OVERDUE is an aged ACTIVE loan: it still holds a copy of its book and still
counts as outstanding.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import Field

from .base import CatalogModel
from .book import BookSummary
from .member import MemberSummary


class LoanStatus(str, Enum):
    """Status of a loan."""

    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"
    OVERDUE = "OVERDUE"

    @property
    def is_outstanding(self) -> bool:
        """True while the loan still holds a copy of its book."""
        return self is not LoanStatus.RETURNED


class Loan(CatalogModel):
    """A book lent to a member."""

    id: int

    book_id: int

    member_id: int

    loan_date: date = Field(..., description="Date the book was lent")

    due_date: date = Field(..., description="Date the book should be back")

    return_date: date | None = Field(None, description="Date the book came back")

    status: LoanStatus = LoanStatus.ACTIVE

    notes: str | None = Field(None, max_length=500)

    book: BookSummary | None = None

    member: MemberSummary | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_overdue_on(self, reference_date: date) -> bool:
        """Check whether the loan is past due on ``reference_date``."""
        return self.status.is_outstanding and self.due_date < reference_date

    def days_overdue_on(self, reference_date: date) -> int:
        """Days past the due date on ``reference_date`` (0 if not overdue)."""
        if not self.is_overdue_on(reference_date):
            return 0
        return (reference_date - self.due_date).days

    @property
    def returned_late(self) -> bool:
        """Late returns are implied by a return date after the due date."""
        return self.return_date is not None and self.return_date > self.due_date


class BorrowDecision(CatalogModel):
    """Outcome of a successful member gate check."""

    member_id: int
    active_loans: int
    max_active_loans: int

    @property
    def remaining(self) -> int:
        return max(0, self.max_active_loans - self.active_loans)


class SweepResult(CatalogModel):
    """Summary of one overdue sweep."""

    reference_date: date
    scanned: int = 0
    transitioned: int = 0
    failed: int = 0
    loan_ids: list[int] = Field(default_factory=list)
