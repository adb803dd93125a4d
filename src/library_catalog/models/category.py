"""Category model for the Library Catalog service."""

from datetime import datetime

from pydantic import Field

from .base import CatalogModel


class Category(CatalogModel):
    """A named classification books can belong to."""

    id: int
    name: str = Field(..., min_length=1, max_length=100, examples=["Science Fiction"])
    description: str | None = Field(None, max_length=500)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CategorySummary(CatalogModel):
    """Category fields embedded in book responses."""

    id: int
    name: str
