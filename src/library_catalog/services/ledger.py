"""
Copy-count ledger.

Moves a book's ``available_copies`` by a signed delta with a single
conditional UPDATE, so concurrent loans and returns of the same book can
never drive the counter outside ``[0, total_copies]``:

    UPDATE books SET available_copies = available_copies + :delta
     WHERE id = :id AND available_copies + :delta BETWEEN 0 AND total_copies

The ledger runs inside the caller's transaction and never commits; if the
surrounding loan operation fails, the adjustment rolls back with it.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..database.book_repository import BookRepository
from ..database.schema import Book as BookDB
from ..errors import BookNotFoundError, InvalidCopyCountError
from ..models.book import Book
from ..observability import trace_repository_operation

logger = logging.getLogger(__name__)


class CopyCountLedger:
    """Atomic adjustments of per-book available copy counts."""

    def __init__(self, session: Session):
        self.session = session
        self.books = BookRepository(session)

    def adjust(self, book_id: int, delta: int) -> Book:
        """
        Add ``delta`` (usually -1 or +1) to a book's available copies.

        Returns:
            The book with its new available copy count

        Raises:
            BookNotFoundError: If the book does not exist
            InvalidCopyCountError: If the result would leave ``[0, total_copies]``
        """
        with trace_repository_operation("ledger", "adjust", "books") as span:
            span.set_attribute("book_id", book_id)
            span.set_attribute("delta", delta)

            new_count = BookDB.available_copies + delta
            stmt = (
                update(BookDB)
                .where(
                    BookDB.id == book_id,
                    new_count >= 0,
                    new_count <= BookDB.total_copies,
                )
                .values(available_copies=new_count)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)

            row = self.session.execute(
                select(BookDB.available_copies, BookDB.total_copies).where(BookDB.id == book_id)
            ).one_or_none()
            if row is None:
                raise BookNotFoundError(f"Book with ID {book_id} not found")
            if result.rowcount != 1:
                logger.info(
                    "Rejected copy adjustment of %+d for book %s (%s/%s available)",
                    delta,
                    book_id,
                    row.available_copies,
                    row.total_copies,
                )
                raise InvalidCopyCountError(
                    f"Adjusting book {book_id} by {delta:+d} would leave "
                    f"{row.available_copies + delta} of {row.total_copies} copies available"
                )

            logger.debug(
                "Book %s available copies now %s/%s",
                book_id,
                row.available_copies,
                row.total_copies,
            )
            span.set_attribute("available_copies", row.available_copies)
            # Reloads any Book this session already holds
            return self.books.get_or_raise(book_id)

    def take(self, book_id: int) -> Book:
        """Check one copy out."""
        return self.adjust(book_id, -1)

    def give_back(self, book_id: int) -> Book:
        """Put one copy back on the shelf."""
        return self.adjust(book_id, +1)
