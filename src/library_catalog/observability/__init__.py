"""Logfire observability for the Library Catalog service."""

import logging

import logfire

from .config import ObservabilityConfig
from .context import trace_repository_operation
from .decorators import trace_operation

logger = logging.getLogger(__name__)


def initialize_observability(config: ObservabilityConfig | None = None) -> None:
    """Initialize Logfire with configuration."""
    config = config or ObservabilityConfig()

    if not config.enabled:
        logger.debug("Observability disabled via configuration")
        return

    logfire.configure(
        token=config.token or None,
        service_name=config.service_name,
        environment=config.environment,
        send_to_logfire=config.send_to_logfire,
        console=None if config.console_output else False,
    )
    logger.info("Logfire configured for environment %s", config.environment)


__all__ = [
    "ObservabilityConfig",
    "initialize_observability",
    "trace_operation",
    "trace_repository_operation",
]
