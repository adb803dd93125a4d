"""
Author model for the Library Catalog service.

Authors are exposed under ``/api/authors``. Books reference their author by
``authorId``; the author model itself carries no list of books.
"""

from datetime import date, datetime

from pydantic import Field

from .base import CatalogModel


class Author(CatalogModel):
    """Represents an author in the catalog."""

    id: int = Field(..., description="Unique identifier of the author")

    first_name: str = Field(..., min_length=1, max_length=100, examples=["George"])

    last_name: str = Field(..., min_length=1, max_length=100, examples=["Orwell"])

    nationality: str | None = Field(None, max_length=100, examples=["British"])

    birth_date: date | None = Field(None, examples=["1903-06-25"])

    biography: str | None = Field(None, max_length=1000)

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class AuthorSummary(CatalogModel):
    """Author fields embedded in book responses."""

    id: int
    first_name: str
    last_name: str
