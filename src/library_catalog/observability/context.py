"""Context managers for tracing database operations."""

from contextlib import contextmanager

import logfire


@contextmanager
def trace_repository_operation(repository: str, operation: str, table: str | None = None):
    """Context manager for tracing repository and ledger operations."""
    with logfire.span(
        "db.{repository}.{operation}",
        repository=repository,
        operation=operation,
        db_table=table or repository,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.set_attribute("db.error", str(e))
            raise
