"""Category repository for the Library Catalog service."""

from pydantic import Field
from sqlalchemy import func, or_, select

from ..errors import CategoryNotFoundError
from ..models.base import CatalogModel
from ..models.category import Category as CategoryModel
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Category as CategoryDB
from .session import safe_query


class CategoryCreateSchema(CatalogModel):
    """Schema for creating a new category."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)


class CategoryUpdateSchema(CatalogModel):
    """Schema for updating a category - all fields optional."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)


class CategoryRepository(
    BaseRepository[CategoryDB, CategoryCreateSchema, CategoryUpdateSchema, CategoryModel]
):
    """
    Repository for category data access.

    Deleting a category only removes its book associations; the books stay.
    """

    not_found_error = CategoryNotFoundError

    @property
    def model_class(self):
        return CategoryDB

    @property
    def response_schema(self):
        return CategoryModel

    def get_by_name(self, name: str) -> CategoryModel:
        """Exact, case-insensitive name lookup."""
        query = select(CategoryDB).where(func.lower(CategoryDB.name) == name.lower())
        db_obj = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get Category by name",
        )
        if db_obj is None:
            raise CategoryNotFoundError(f"Category with name '{name}' not found")
        return self._to_response_model(db_obj)

    def list_all(self) -> list[CategoryModel]:
        """Every category, ordered by name (no pagination)."""
        return self._list(select(CategoryDB).order_by(CategoryDB.name), "Failed to list categories")

    def search(
        self, keyword: str, pagination: PaginationParams
    ) -> PaginatedResponse[CategoryModel]:
        term = f"%{keyword.lower()}%"
        query = (
            select(CategoryDB)
            .where(
                or_(
                    func.lower(CategoryDB.name).like(term),
                    func.lower(CategoryDB.description).like(term),
                )
            )
            .order_by(CategoryDB.name)
        )
        return self._paginate(query, pagination)
