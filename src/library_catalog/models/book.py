"""
Book model for the Library Catalog service.

A book is a catalog entry plus its copy-count ledger: ``total_copies`` owned
by the library and ``available_copies`` currently on the shelf. The ledger
invariant ``0 <= available_copies <= total_copies`` is checked here, in the
database CHECK constraints and by the ledger service that moves the counter.
"""

import re
from datetime import date, datetime

from pydantic import Field, model_validator

from .author import AuthorSummary
from .base import CatalogModel
from .category import CategorySummary

# ISBN-10 or ISBN-13: digits with optional hyphens
ISBN_PATTERN = re.compile(r"^(?=(?:\D*\d){10}(?:(?:\D*\d){3})?$)[\d-]+$")


def validate_isbn(v: str) -> str:
    """Accept ISBN-10/13 digits with optional hyphens, stored as given."""
    if len(v) > 20 or not ISBN_PATTERN.match(v):
        raise ValueError("Invalid ISBN format")
    return v


def validate_publication_date(v: date) -> date:
    if v > date.today():
        raise ValueError("Publication date cannot be in the future")
    return v


class Book(CatalogModel):
    """Represents a book in the library catalog."""

    id: int = Field(..., description="Unique identifier of the book")

    isbn: str = Field(
        ...,
        description="ISBN-10 or ISBN-13, hyphens allowed",
        examples=["978-0-452-28423-4", "0452284236"],
    )

    title: str = Field(..., min_length=1, max_length=200, examples=["1984"])

    description: str | None = Field(None, max_length=1000)

    publication_date: date = Field(..., examples=["1949-06-08"])

    total_copies: int = Field(
        ...,
        description="Total number of copies owned by the library",
        ge=1,
        le=1000,
    )

    available_copies: int = Field(
        ...,
        description="Number of copies currently available for loan",
        ge=0,
    )

    author_id: int

    author: AuthorSummary | None = None

    category_ids: list[int] = Field(default_factory=list)

    categories: list[CategorySummary] = Field(default_factory=list)

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_copies(self) -> "Book":
        """Ensure available copies doesn't exceed total copies."""
        if self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def is_available(self) -> bool:
        """Check if the book has any available copies."""
        return self.available_copies > 0

    @property
    def checked_out_copies(self) -> int:
        """Number of copies currently out on loan."""
        return self.total_copies - self.available_copies


class BookSummary(CatalogModel):
    """Book fields embedded in loan responses."""

    id: int
    title: str
    isbn: str
    author_name: str | None = None
