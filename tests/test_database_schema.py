"""
Tests for the database schema and session management.

These tests verify:
1. Tables are created
2. CHECK, UNIQUE and foreign key constraints are enforced by the database
3. Session scopes commit and roll back
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError

from library_catalog.database import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    session_scope,
)
from library_catalog.database.schema import (
    Author,
    Book,
    Category,
    Loan,
    LoanStatusEnum,
    Member,
    MembershipStatusEnum,
)


@pytest.fixture
def author(session) -> Author:
    author = Author(first_name="Ursula", last_name="Le Guin", nationality="American")
    session.add(author)
    session.commit()
    return author


@pytest.fixture
def member(session) -> Member:
    member = Member(
        first_name="Ada",
        last_name="Reader",
        email="ada@example.com",
        membership_date=date(2023, 1, 1),
    )
    session.add(member)
    session.commit()
    return member


def new_book(author: Author, isbn: str = "9780000000011", **overrides) -> Book:
    data = {
        "isbn": isbn,
        "title": "The Dispossessed",
        "publication_date": date(1974, 5, 1),
        "total_copies": 2,
        "available_copies": 2,
        "author_id": author.id,
    }
    data.update(overrides)
    return Book(**data)


class TestDatabaseSchema:
    """Schema creation and constraints."""

    def test_tables_created(self, session):
        tables = set(inspect(session.bind).get_table_names())

        assert tables == {"authors", "categories", "books", "book_categories", "members", "loans"}

    def test_member_defaults_to_active(self, session, member):
        assert member.status == MembershipStatusEnum.ACTIVE
        assert member.is_active
        assert member.created_at is not None

    def test_book_with_categories(self, session, author):
        fiction = Category(name="Fiction")
        sf = Category(name="Science Fiction")
        book = new_book(author)
        book.categories = [fiction, sf]
        session.add(book)
        session.commit()

        loaded = session.execute(select(Book).where(Book.isbn == "9780000000011")).scalar_one()
        assert {c.name for c in loaded.categories} == {"Fiction", "Science Fiction"}
        assert loaded.author.full_name == "Ursula Le Guin"

    @pytest.mark.parametrize(
        "copies",
        [
            {"total_copies": 2, "available_copies": -1},
            {"total_copies": 2, "available_copies": 3},
            {"total_copies": 0, "available_copies": 0},
        ],
    )
    def test_copy_count_checks(self, session, author, copies):
        session.add(new_book(author, **copies))

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_isbn_is_unique(self, session, author):
        session.add(new_book(author))
        session.commit()

        session.add(new_book(author, title="Another"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_email_is_unique(self, session, member):
        session.add(
            Member(
                first_name="Other",
                last_name="Reader",
                email="ada@example.com",
                membership_date=date(2023, 2, 1),
            )
        )

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_due_date_not_before_loan_date(self, session, author, member):
        book = new_book(author)
        session.add(book)
        session.commit()

        session.add(
            Loan(
                book_id=book.id,
                member_id=member.id,
                loan_date=date(2024, 3, 1),
                due_date=date(2024, 3, 1) - timedelta(days=1),
                status=LoanStatusEnum.ACTIVE,
            )
        )
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_foreign_keys_enforced(self, session, member):
        session.add(
            Loan(
                book_id=999,
                member_id=member.id,
                loan_date=date(2024, 3, 1),
                due_date=date(2024, 3, 15),
            )
        )

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


class TestSessionManagement:
    def test_session_scope_commits(self, db_manager):
        with db_manager.session_scope() as session:
            session.add(Category(name="Poetry"))

        with db_manager.session_scope() as session:
            names = session.execute(select(Category.name)).scalars().all()
        assert names == ["Poetry"]

    def test_session_scope_rolls_back_on_error(self, db_manager):
        with pytest.raises(RuntimeError), db_manager.session_scope() as session:
            session.add(Category(name="History"))
            session.flush()
            raise RuntimeError("boom")

        with db_manager.session_scope() as session:
            assert session.execute(select(Category)).first() is None

    def test_verify_connection(self, db_manager):
        assert db_manager.verify_connection() is True

    def test_file_database(self, tmp_path):
        manager = DatabaseManager(f"sqlite:///{tmp_path / 'catalog.db'}")
        manager.init_database()
        try:
            with manager.session_scope() as session:
                session.add(Category(name="Drama"))
            with manager.session_scope() as session:
                assert session.execute(select(Category.name)).scalar_one() == "Drama"
        finally:
            manager.close()

    def test_global_manager(self, tmp_path):
        reset_db_manager()
        manager = get_db_manager(f"sqlite:///{tmp_path / 'global.db'}")
        try:
            assert get_db_manager() is manager
            manager.init_database()
            with session_scope() as session:
                session.add(Category(name="Essays"))
            with session_scope() as session:
                assert session.execute(select(Category.name)).scalar_one() == "Essays"
        finally:
            reset_db_manager()
