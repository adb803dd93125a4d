"""Custom metrics for the Library Catalog service."""

import logfire

loan_events = logfire.metric_counter(
    "library.loans.events", description="Loan lifecycle events (create/return/delete)"
)

overdue_transitions = logfire.metric_counter(
    "library.loans.overdue_transitions", description="Loans moved from ACTIVE to OVERDUE"
)

sweep_failures = logfire.metric_counter(
    "library.loans.sweep_failures", description="Loans the overdue sweep failed to age"
)


def record_loan_event(event_type: str) -> None:
    """Record a loan lifecycle event."""
    loan_events.add(1, {"event_type": event_type})


def record_sweep(transitioned: int, failed: int) -> None:
    if transitioned:
        overdue_transitions.add(transitioned)
    if failed:
        sweep_failures.add(failed)
