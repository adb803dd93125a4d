"""
Library Catalog models.

Pydantic models for every entity the service exposes. They validate data,
serialize to camelCase JSON and are built straight from ORM rows
(``from_attributes``).
"""

from .author import Author, AuthorSummary
from .base import CatalogModel
from .book import Book, BookSummary
from .category import Category, CategorySummary
from .loan import BorrowDecision, Loan, LoanStatus, SweepResult
from .member import Member, MembershipStatus, MemberSummary

__all__ = [
    "Author",
    "AuthorSummary",
    "Book",
    "BookSummary",
    "BorrowDecision",
    "CatalogModel",
    "Category",
    "CategorySummary",
    "Loan",
    "LoanStatus",
    "Member",
    "MemberSummary",
    "MembershipStatus",
    "SweepResult",
]
