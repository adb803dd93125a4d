"""Author repository for the Library Catalog service."""

from datetime import date

from pydantic import Field, field_validator
from sqlalchemy import func, or_, select

from ..errors import AuthorNotFoundError, ResourceInUseError
from ..models.author import Author as AuthorModel
from ..models.base import CatalogModel
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Author as AuthorDB
from .schema import Book as BookDB


def _birth_date_in_past(v: date | None) -> date | None:
    if v is not None and v >= date.today():
        raise ValueError("Birth date must be in the past")
    return v


class AuthorCreateSchema(CatalogModel):
    """Schema for creating a new author."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    nationality: str | None = Field(None, max_length=100)
    birth_date: date | None = None
    biography: str | None = Field(None, max_length=1000)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, v: date | None) -> date | None:
        return _birth_date_in_past(v)


class AuthorUpdateSchema(CatalogModel):
    """Schema for updating an author - all fields optional."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    nationality: str | None = Field(None, max_length=100)
    birth_date: date | None = None
    biography: str | None = Field(None, max_length=1000)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, v: date | None) -> date | None:
        return _birth_date_in_past(v)


class AuthorRepository(
    BaseRepository[AuthorDB, AuthorCreateSchema, AuthorUpdateSchema, AuthorModel]
):
    """Repository for author data access."""

    not_found_error = AuthorNotFoundError

    @property
    def model_class(self):
        return AuthorDB

    @property
    def response_schema(self):
        return AuthorModel

    def search(
        self, keyword: str, pagination: PaginationParams
    ) -> PaginatedResponse[AuthorModel]:
        """Case-insensitive match on first name, last name or nationality."""
        term = f"%{keyword.lower()}%"
        query = (
            select(AuthorDB)
            .where(
                or_(
                    func.lower(AuthorDB.first_name).like(term),
                    func.lower(AuthorDB.last_name).like(term),
                    func.lower(AuthorDB.nationality).like(term),
                )
            )
            .order_by(AuthorDB.last_name, AuthorDB.first_name)
        )
        return self._paginate(query, pagination)

    def get_by_nationality(
        self, nationality: str, pagination: PaginationParams
    ) -> PaginatedResponse[AuthorModel]:
        query = (
            select(AuthorDB)
            .where(func.lower(AuthorDB.nationality) == nationality.lower())
            .order_by(AuthorDB.last_name, AuthorDB.first_name)
        )
        return self._paginate(query, pagination)

    def _check_can_delete(self, db_obj: AuthorDB) -> None:
        books = self._count_where(BookDB, BookDB.author_id == db_obj.id)
        if books:
            raise ResourceInUseError(
                f"Author {db_obj.id} still has {books} book(s) in the catalog"
            )
