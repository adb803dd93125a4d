"""
Book repository for the Library Catalog service.

Handles catalog CRUD and lookups for books. ``available_copies`` is only set
here when a book is created or explicitly edited; loans move it through the
copy-count ledger (``services.ledger``).
"""

from datetime import date

from pydantic import Field, field_validator, model_validator
from sqlalchemy import func, or_, select

from ..errors import (
    AuthorNotFoundError,
    BookNotFoundError,
    CategoryNotFoundError,
    InvalidCopyCountError,
    ResourceInUseError,
)
from ..models.base import CatalogModel
from ..models.book import Book as BookModel
from ..models.book import validate_isbn, validate_publication_date
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Author as AuthorDB
from .schema import Book as BookDB
from .schema import Category as CategoryDB
from .schema import Loan as LoanDB
from .schema import book_categories
from .session import safe_query


class BookCreateSchema(CatalogModel):
    """
    Schema for creating a new book.

    ``available_copies`` defaults to ``total_copies``: a new title starts with
    every copy on the shelf.
    """

    isbn: str = Field(..., max_length=20)
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    publication_date: date
    total_copies: int = Field(..., ge=1, le=1000)
    available_copies: int | None = Field(None, ge=0)
    author_id: int
    category_ids: list[int] = Field(default_factory=list)

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v: str) -> str:
        return validate_isbn(v)

    @field_validator("publication_date")
    @classmethod
    def check_publication_date(cls, v: date) -> date:
        return validate_publication_date(v)

    @model_validator(mode="after")
    def default_available_copies(self) -> "BookCreateSchema":
        if self.available_copies is None:
            self.available_copies = self.total_copies
        elif self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self


class BookUpdateSchema(CatalogModel):
    """Schema for updating a book - all fields optional."""

    isbn: str | None = Field(None, max_length=20)
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    publication_date: date | None = None
    total_copies: int | None = Field(None, ge=1, le=1000)
    available_copies: int | None = Field(None, ge=0)
    author_id: int | None = None
    category_ids: list[int] | None = None

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v: str | None) -> str | None:
        return validate_isbn(v) if v is not None else v

    @field_validator("publication_date")
    @classmethod
    def check_publication_date(cls, v: date | None) -> date | None:
        return validate_publication_date(v) if v is not None else v

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "BookUpdateSchema":
        # description may be cleared; these columns are NOT NULL
        for field in ("isbn", "title", "publication_date", "total_copies", "author_id"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookModel]):
    """Repository for book data access."""

    not_found_error = BookNotFoundError

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def _to_response_model(self, db_obj: BookDB) -> BookModel:
        book = BookModel.model_validate(db_obj, from_attributes=True)
        book.category_ids = sorted(c.id for c in db_obj.categories)
        return book

    def _ensure_author(self, author_id: int) -> None:
        if self.session.get(AuthorDB, author_id) is None:
            raise AuthorNotFoundError(f"Author with ID {author_id} not found")

    def _load_categories(self, category_ids: list[int]) -> list[CategoryDB]:
        wanted = set(category_ids)
        if not wanted:
            return []
        query = select(CategoryDB).where(CategoryDB.id.in_(wanted))
        found = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to load categories",
        )
        missing = wanted - {c.id for c in found}
        if missing:
            raise CategoryNotFoundError(
                f"Category with ID {min(missing)} not found"
            )
        return list(found)

    def create(self, data: BookCreateSchema) -> BookModel:
        """
        Create a new book.

        Raises:
            AuthorNotFoundError: If ``author_id`` does not exist
            CategoryNotFoundError: If any of ``category_ids`` does not exist
            DuplicateError: If the ISBN is already in the catalog
        """
        self._ensure_author(data.author_id)
        categories = self._load_categories(data.category_ids)

        db_obj = BookDB(**data.model_dump(exclude={"category_ids"}))
        db_obj.categories = categories
        self.session.add(db_obj)
        self._commit("create Book")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def update(self, id: int, data: BookUpdateSchema) -> BookModel:
        """
        Update a book.

        Changing ``total_copies`` without an explicit ``available_copies``
        shifts the available count by the same amount, so copies out on loan
        stay accounted for.

        Raises:
            BookNotFoundError: If the book does not exist
            InvalidCopyCountError: If the copy counts would break
                ``0 <= available <= total``
        """
        query = select(BookDB).where(BookDB.id == id).with_for_update()
        db_obj = safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            "Failed to get Book for update",
        )
        if db_obj is None:
            raise BookNotFoundError(f"Book with ID {id} not found")

        values = data.model_dump(exclude_unset=True)
        category_ids = values.pop("category_ids", None)

        if values.get("author_id") is not None:
            self._ensure_author(values["author_id"])

        total = values.get("total_copies", db_obj.total_copies)
        if "available_copies" in values and values["available_copies"] is not None:
            available = values["available_copies"]
        else:
            available = db_obj.available_copies + (total - db_obj.total_copies)
        if not 0 <= available <= total:
            raise InvalidCopyCountError(
                f"Available copies ({available}) must be between 0 and total copies ({total})"
            )
        values["total_copies"] = total
        values["available_copies"] = available

        self._apply(db_obj, values)
        if category_ids is not None:
            db_obj.categories = self._load_categories(category_ids)

        self._commit("update Book")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def _check_can_delete(self, db_obj: BookDB) -> None:
        loans = self._count_where(LoanDB, LoanDB.book_id == db_obj.id)
        if loans:
            raise ResourceInUseError(f"Book {db_obj.id} has {loans} loan record(s)")

    def get_by_isbn(self, isbn: str) -> BookModel:
        query = select(BookDB).where(BookDB.isbn == isbn)
        db_obj = safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            "Failed to get Book by ISBN",
        )
        if db_obj is None:
            raise BookNotFoundError(f"Book with ISBN {isbn} not found")
        return self._to_response_model(db_obj)

    def search(self, keyword: str, pagination: PaginationParams) -> PaginatedResponse[BookModel]:
        """
        Case-insensitive search across title, ISBN, description and author name.
        """
        term = f"%{keyword.lower()}%"
        query = (
            select(BookDB)
            .join(AuthorDB, BookDB.author_id == AuthorDB.id)
            .where(
                or_(
                    func.lower(BookDB.title).like(term),
                    func.lower(BookDB.isbn).like(term),
                    func.lower(BookDB.description).like(term),
                    func.lower(AuthorDB.first_name).like(term),
                    func.lower(AuthorDB.last_name).like(term),
                )
            )
            .order_by(BookDB.title, BookDB.id)
        )
        return self._paginate(query, pagination)

    def get_available(self, pagination: PaginationParams) -> PaginatedResponse[BookModel]:
        """Books with at least one copy on the shelf."""
        query = (
            select(BookDB).where(BookDB.available_copies > 0).order_by(BookDB.title, BookDB.id)
        )
        return self._paginate(query, pagination)

    def get_by_category(
        self, category_id: int, pagination: PaginationParams
    ) -> PaginatedResponse[BookModel]:
        if self.session.get(CategoryDB, category_id) is None:
            raise CategoryNotFoundError(f"Category with ID {category_id} not found")
        query = (
            select(BookDB)
            .join(book_categories, book_categories.c.book_id == BookDB.id)
            .where(book_categories.c.category_id == category_id)
            .order_by(BookDB.title, BookDB.id)
        )
        return self._paginate(query, pagination)
