"""Test configuration and fixtures for the Library Catalog service.

1. Isolated databases - every test gets its own in-memory SQLite database
2. Configuration overrides - explicit ``CatalogConfig`` instances, no env leakage
3. Deterministic time - a ``FixedClock`` pinned to ``TODAY``
4. HTTP clients - FastAPI ``TestClient`` over the same database
"""

import os
from collections.abc import Callable, Generator
from datetime import date
from pathlib import Path

import logfire
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from library_catalog.api import create_app
from library_catalog.clock import FixedClock
from library_catalog.config import CatalogConfig, reset_config
from library_catalog.database.author_repository import AuthorCreateSchema, AuthorRepository
from library_catalog.database.book_repository import BookCreateSchema, BookRepository
from library_catalog.database.category_repository import CategoryCreateSchema, CategoryRepository
from library_catalog.database.member_repository import MemberCreateSchema, MemberRepository
from library_catalog.database.session import DatabaseManager
from library_catalog.models import Author, Book, Category, Member, MembershipStatus
from library_catalog.services.loans import LoanService
from library_catalog.services.overdue import OverdueSweeper

TODAY = date(2024, 3, 1)


def pytest_configure(config):
    """Keep spans local during tests."""
    logfire.configure(send_to_logfire=False, console=False)


# === Configuration Fixtures ===


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide an environment without LIBRARY_CATALOG_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_CATALOG_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def test_config(tmp_path: Path) -> Generator[CatalogConfig, None, None]:
    """Catalog configuration pointing at an in-memory database."""
    reset_config()

    config = CatalogConfig(
        service_name="test-library-catalog",
        service_version="0.0.1-test",
        database_url="sqlite:///:memory:",
        database_path=tmp_path / "unused.db",
        max_active_loans=5,
        loan_period_days=14,
    )

    yield config

    reset_config()


# === Database Fixtures ===


@pytest.fixture
def db_manager(test_config: CatalogConfig) -> Generator[DatabaseManager, None, None]:
    """A fresh in-memory database with the schema created."""
    manager = DatabaseManager(test_config.get_database_url())
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def loan_service(session, clock, test_config, db_manager) -> LoanService:
    sweeper = OverdueSweeper(db_manager.session_factory, clock)
    return LoanService(session, clock=clock, config=test_config, sweeper=sweeper)


# === Test Data Factories ===


@pytest.fixture
def make_author(session) -> Callable[..., Author]:
    repo = AuthorRepository(session)
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> Author:
        n = next(counter)
        data = {
            "first_name": f"Author{n}",
            "last_name": f"Writer{n}",
            "nationality": "British",
            "birth_date": date(1950, 1, 1),
        }
        data.update(overrides)
        return repo.create(AuthorCreateSchema(**data))

    return _make


@pytest.fixture
def make_category(session) -> Callable[..., Category]:
    repo = CategoryRepository(session)
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> Category:
        data = {"name": f"Category {next(counter)}"}
        data.update(overrides)
        return repo.create(CategoryCreateSchema(**data))

    return _make


@pytest.fixture
def make_book(session, make_author) -> Callable[..., Book]:
    repo = BookRepository(session)
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> Book:
        n = next(counter)
        data = {
            "isbn": f"978000000{n:04d}",
            "title": f"Book {n}",
            "publication_date": date(2000, 1, 1),
            "total_copies": 3,
        }
        data.update(overrides)
        if "author_id" not in data:
            data["author_id"] = make_author().id
        return repo.create(BookCreateSchema(**data))

    return _make


@pytest.fixture
def make_member(session, clock) -> Callable[..., Member]:
    repo = MemberRepository(session, clock)
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> Member:
        n = next(counter)
        data = {
            "first_name": f"Reader{n}",
            "last_name": f"Member{n}",
            "email": f"reader{n}@example.com",
            "membership_date": date(2023, 1, 1),
            "status": MembershipStatus.ACTIVE,
        }
        data.update(overrides)
        return repo.create(MemberCreateSchema(**data))

    return _make


# === HTTP Fixtures ===


@pytest.fixture
def app(test_config, db_manager, clock):
    return create_app(test_config, db_manager=db_manager, clock=clock)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
