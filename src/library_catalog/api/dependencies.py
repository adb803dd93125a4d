"""FastAPI dependencies: request-scoped session, clock, config and services."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from ..clock import Clock
from ..config import CatalogConfig
from ..database.author_repository import AuthorRepository
from ..database.book_repository import BookRepository
from ..database.category_repository import CategoryRepository
from ..database.member_repository import MemberRepository
from ..database.repository import MAX_PAGE_SIZE, PaginationParams
from ..database.session import DatabaseManager
from ..services.loans import LoanService
from ..services.overdue import OverdueSweeper


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_settings(request: Request) -> CatalogConfig:
    return request.app.state.config


def get_session(
    db_manager: Annotated[DatabaseManager, Depends(get_db_manager)],
) -> Generator[Session, None, None]:
    """One session per request, committed on success and always closed."""
    with db_manager.session_scope() as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
ClockDep = Annotated[Clock, Depends(get_clock)]
ConfigDep = Annotated[CatalogConfig, Depends(get_settings)]


def get_pagination(
    config: ConfigDep,
    page: Annotated[int, Query(ge=1, description="1-based page number")] = 1,
    page_size: Annotated[
        int | None, Query(alias="pageSize", ge=1, le=MAX_PAGE_SIZE, description="Items per page")
    ] = None,
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size or config.default_page_size)


PaginationDep = Annotated[PaginationParams, Depends(get_pagination)]


def get_sweeper(
    db_manager: Annotated[DatabaseManager, Depends(get_db_manager)], clock: ClockDep
) -> OverdueSweeper:
    return OverdueSweeper(db_manager.session_factory, clock)


def get_loan_service(
    session: SessionDep,
    clock: ClockDep,
    config: ConfigDep,
    sweeper: Annotated[OverdueSweeper, Depends(get_sweeper)],
) -> LoanService:
    return LoanService(session, clock=clock, config=config, sweeper=sweeper)


def get_author_repository(session: SessionDep) -> AuthorRepository:
    return AuthorRepository(session)


def get_category_repository(session: SessionDep) -> CategoryRepository:
    return CategoryRepository(session)


def get_book_repository(session: SessionDep) -> BookRepository:
    return BookRepository(session)


def get_member_repository(session: SessionDep, clock: ClockDep) -> MemberRepository:
    return MemberRepository(session, clock)


LoanServiceDep = Annotated[LoanService, Depends(get_loan_service)]
SweeperDep = Annotated[OverdueSweeper, Depends(get_sweeper)]
AuthorRepoDep = Annotated[AuthorRepository, Depends(get_author_repository)]
CategoryRepoDep = Annotated[CategoryRepository, Depends(get_category_repository)]
BookRepoDep = Annotated[BookRepository, Depends(get_book_repository)]
MemberRepoDep = Annotated[MemberRepository, Depends(get_member_repository)]
