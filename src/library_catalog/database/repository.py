"""
Repository pattern implementation for the Library Catalog service.

Repositories are the data access layer between the HTTP routers and the
database. They take a SQLAlchemy session, run queries through ``safe_query``
and ``safe_commit`` and hand back Pydantic models, so callers never touch ORM
rows directly.

The base repository provides the common CRUD operations; entity repositories
add their own lookups and searches. The loan lifecycle does not go through
``BaseRepository.create``: loans are written by the loan service, which owns
the transaction that also moves the copy-count ledger.
"""

import math
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel, Field
from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import DuplicateError, NotFoundError, RepositoryException, ResourceInUseError
from ..models.base import CatalogModel
from .schema import Base
from .session import safe_commit, safe_query

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

MAX_PAGE_SIZE = 100

__all__ = [
    "BaseRepository",
    "DuplicateError",
    "NotFoundError",
    "PaginatedResponse",
    "PaginationParams",
    "RepositoryException",
    "ResourceInUseError",
]


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations (1-based pages)."""

    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        """Calculate offset for SQL queries."""
        return (self.page - 1) * self.page_size


class PaginatedResponse(CatalogModel, Generic[ResponseSchemaType]):
    """Standard paginated response for list endpoints."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(
        cls, items: list, total: int, pagination: PaginationParams
    ) -> "PaginatedResponse":
        total_pages = math.ceil(total / pagination.page_size) if total else 0
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=total_pages,
            has_next=pagination.page < total_pages,
            has_previous=pagination.page > 1,
        )


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    Abstract base repository providing common CRUD operations.

    Subclasses declare the ORM class, the response schema and the
    ``NotFoundError`` subclass raised by ``get_or_raise``.
    """

    not_found_error: type[NotFoundError] = NotFoundError

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_db_obj(self, id: int) -> ModelType | None:
        query = select(self.model_class).where(self.model_class.id == id).execution_options(
            populate_existing=True
        )
        return safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def _get_db_obj_or_raise(self, id: int) -> ModelType:
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            raise self.not_found_error(
                f"{self.model_class.__name__} with ID {id} not found"
            )
        return db_obj

    def _list(self, query: Select, error_msg: str) -> list[ResponseSchemaType]:
        results = safe_query(
            self.session, lambda s: s.execute(query).unique().scalars().all(), error_msg
        )
        return [self._to_response_model(item) for item in results]

    def _paginate(
        self, query: Select, pagination: PaginationParams
    ) -> PaginatedResponse[ResponseSchemaType]:
        """Run ``query`` for one page and count the rows it would return in total."""
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (
            safe_query(
                self.session,
                lambda s: s.execute(count_query).scalar(),
                "Failed to get total count",
            )
            or 0
        )
        page_query = query.offset(pagination.offset).limit(pagination.page_size)
        items = self._list(page_query, "Failed to get paginated results")
        return PaginatedResponse[self.response_schema].build(items, total, pagination)

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found

        Raises:
            RepositoryException: On database errors
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_or_raise(self, id: int) -> ResponseSchemaType:
        """Get entity by ID, raising the repository's ``NotFoundError`` if missing."""
        return self._to_response_model(self._get_db_obj_or_raise(id))

    def get_all(
        self,
        pagination: PaginationParams | None = None,
        order_by: str = "id",
        order_desc: bool = False,
    ) -> list[ResponseSchemaType] | PaginatedResponse[ResponseSchemaType]:
        """
        Get all entities with optional pagination and sorting.

        Returns a plain list without ``pagination``, a ``PaginatedResponse``
        with it.
        """
        query = select(self.model_class)
        if hasattr(self.model_class, order_by):
            order_field = getattr(self.model_class, order_by)
            query = query.order_by(desc(order_field) if order_desc else asc(order_field))
        query = query.order_by(self.model_class.id)

        if pagination:
            return self._paginate(query, pagination)
        return self._list(query, "Failed to get all results")

    def _apply(self, db_obj: ModelType, values: dict) -> None:
        for field, value in values.items():
            setattr(db_obj, field, value)

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Create new entity.

        Raises:
            DuplicateError: If a unique column already holds the value
            RepositoryException: On other database errors
        """
        db_obj = self.model_class()
        self._apply(db_obj, data.model_dump())
        self.session.add(db_obj)
        self._commit(f"create {self.model_class.__name__}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def update(self, id: int, data: UpdateSchemaType) -> ResponseSchemaType:
        """
        Update an existing entity with the fields set on ``data``.

        Raises:
            NotFoundError: If the entity does not exist
            DuplicateError: If the change collides with a unique column
        """
        db_obj = self._get_db_obj_or_raise(id)
        self._apply(db_obj, data.model_dump(exclude_unset=True))
        self._commit(f"update {self.model_class.__name__}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def _check_can_delete(self, db_obj: ModelType) -> None:  # noqa: B027
        """Hook for subclasses: raise ``ResourceInUseError`` while referenced."""

    def delete(self, id: int) -> None:
        """
        Delete entity by ID.

        Raises:
            NotFoundError: If the entity does not exist
            ResourceInUseError: If other rows still reference it
        """
        db_obj = self._get_db_obj_or_raise(id)
        self._check_can_delete(db_obj)
        self.session.delete(db_obj)
        self._commit(f"delete {self.model_class.__name__}")

    def exists(self, id: int) -> bool:
        """Check if entity exists by ID."""
        query = select(func.count()).select_from(self.model_class).where(self.model_class.id == id)
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
        )
        return count > 0

    def _count_where(self, model, *criteria) -> int:
        query = select(func.count()).select_from(model).where(*criteria)
        return safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to count references"
        ) or 0

    def _commit(self, operation: str) -> None:
        try:
            safe_commit(self.session, operation)
        except IntegrityError as e:
            raise DuplicateError(
                f"{self.model_class.__name__} violates a uniqueness or integrity rule"
            ) from e
