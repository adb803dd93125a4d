"""Decorators for tracing lifecycle operations."""

import functools
from collections.abc import Callable
from datetime import datetime

import logfire

from ..errors import RepositoryException


def trace_operation(operation_name: str):
    """
    Decorator to trace a service operation in a Logfire span.

    Simple keyword arguments become span attributes. Domain errors are
    recorded with their stable error code before being re-raised.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with logfire.span(
                "service.{operation}",
                operation=operation_name,
                category=_categorize_operation(operation_name),
            ) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", kwargs)

                try:
                    result = func(*args, **kwargs)
                except RepositoryException as e:
                    span.set_attribute("operation.success", False)
                    span.set_attribute("operation.error_code", e.code)
                    raise
                except Exception as e:
                    span.set_attribute("operation.success", False)
                    span.set_attribute("operation.error", str(e))
                    raise

                span.set_attribute("operation.success", True)
                span.set_attribute(
                    "operation.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                return result

        return wrapper

    return decorator


def _categorize_operation(operation_name: str) -> str:
    if operation_name.startswith("loan."):
        return "circulation"
    if operation_name.startswith("overdue."):
        return "maintenance"
    return "general"


def _add_attributes(span, prefix: str, data: dict):
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)
