"""
Database package for the Library Catalog service.

- schema.py: SQLAlchemy table definitions
- session.py: engine, session factory and transaction helpers
- repository.py and the entity repositories: data access returning Pydantic models
- seed.py: Faker-based sample data
"""

from .author_repository import AuthorRepository
from .book_repository import BookRepository
from .category_repository import CategoryRepository
from .loan_repository import LoanRepository
from .member_repository import MemberRepository
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import (
    Author,
    Base,
    Book,
    Category,
    Loan,
    LoanStatusEnum,
    Member,
    MembershipStatusEnum,
)
from .session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_commit,
    safe_query,
    session_scope,
)

__all__ = [
    "Author",
    "AuthorRepository",
    "Base",
    "BaseRepository",
    "Book",
    "BookRepository",
    "Category",
    "CategoryRepository",
    "DatabaseManager",
    "Loan",
    "LoanRepository",
    "LoanStatusEnum",
    "Member",
    "MemberRepository",
    "MembershipStatusEnum",
    "PaginatedResponse",
    "PaginationParams",
    "get_db_manager",
    "reset_db_manager",
    "safe_commit",
    "safe_query",
    "session_scope",
]
