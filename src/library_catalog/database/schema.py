"""
SQLAlchemy database schema for the Library Catalog service.

Tables:
- authors, categories: catalog metadata
- books: catalog items carrying the copy-count ledger (total vs. available)
- book_categories: many-to-many association between books and categories
- members: library members and their membership status
- loans: one row per loan, the only table with temporal state

Relationships are plain foreign keys. ORM relationships are declared one way
(child -> parent) so rows never carry live back-references; collections such
as "all loans of a member" are fetched with explicit queries.
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class MembershipStatusEnum(str, enum.Enum):
    """Database enum for member status."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"


class LoanStatusEnum(str, enum.Enum):
    """Database enum for loan status."""

    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"
    OVERDUE = "OVERDUE"


# Loans that still hold a copy of their book
OUTSTANDING_LOAN_STATUSES = (LoanStatusEnum.ACTIVE, LoanStatusEnum.OVERDUE)


book_categories = Table(
    "book_categories",
    Base.metadata,
    Column("book_id", Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True
    ),
)


class Author(Base):
    """Authors table - one author may have written many books."""

    __tablename__ = "authors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, index=True)
    nationality = Column(String(100), nullable=True)
    birth_date = Column(Date, nullable=True)
    biography = Column(String(1000), nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    __table_args__ = (Index("idx_author_nationality", "nationality"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Category(Base):
    """Categories table - free-form book classification."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())


class Book(Base):
    """
    Books table - the catalog and its copy-count ledger.

    ``available_copies`` is only moved by the ledger (loan create/return) or by
    an explicit catalog edit; the CHECK constraints reject any write that would
    leave it outside ``[0, total_copies]``.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    isbn = Column(String(20), nullable=False, unique=True)
    title = Column(String(200), nullable=False, index=True)
    description = Column(String(1000), nullable=True)
    publication_date = Column(Date, nullable=False)
    total_copies = Column(Integer, nullable=False)
    available_copies = Column(Integer, nullable=False)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    author = relationship("Author", lazy="joined", innerjoin=True)
    categories = relationship("Category", secondary=book_categories, lazy="selectin")

    __table_args__ = (
        Index("idx_book_author", "author_id"),
        Index("idx_book_availability", "available_copies"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies", name="check_available_not_exceed_total"
        ),
        CheckConstraint("total_copies > 0", name="check_total_copies_positive"),
    )


class Member(Base):
    """Members table - people allowed to borrow books while ACTIVE."""

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, index=True)
    email = Column(String(150), nullable=False, unique=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(200), nullable=True)
    membership_date = Column(Date, nullable=False)
    status = Column(
        Enum(MembershipStatusEnum), nullable=False, default=MembershipStatusEnum.ACTIVE
    )

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    __table_args__ = (Index("idx_member_status", "status"),)

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatusEnum.ACTIVE


class Loan(Base):
    """
    Loans table - one row per borrowed copy.

    ``book_id``, ``member_id`` and ``loan_date`` never change after insert.
    ``return_date`` is set exactly when the status becomes RETURNED.
    """

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    loan_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)
    status = Column(Enum(LoanStatusEnum), nullable=False, default=LoanStatusEnum.ACTIVE)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    book = relationship("Book")
    member = relationship("Member")

    __table_args__ = (
        Index("idx_loan_member_status", "member_id", "status"),
        Index("idx_loan_book", "book_id"),
        Index("idx_loan_status_due", "status", "due_date"),
        CheckConstraint("due_date >= loan_date", name="check_due_after_loan"),
    )
