"""
Entry point for the Library Catalog HTTP server.

Run with ``library-catalog`` (console script) or ``python -m library_catalog``.
"""

import logging
import sys

import uvicorn

from .api import create_app
from .config import CatalogConfig, get_config
from .observability import initialize_observability

logger = logging.getLogger(__name__)


def configure_logging(config: CatalogConfig) -> None:
    """Send log records to stderr at the configured level."""
    logging.basicConfig(
        level=logging.DEBUG if config.debug else config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def main() -> None:
    """Start the HTTP server."""
    config = get_config()
    configure_logging(config)
    initialize_observability()

    try:
        logger.info("=" * 60)
        logger.info("Library Catalog")
        logger.info("Version: %s", config.service_version)
        logger.info("Database: %s", config.get_database_url())
        logger.info("Listening on %s:%s", config.http_host, config.http_port)
        logger.info("=" * 60)

        uvicorn.run(
            create_app(config),
            host=config.http_host,
            port=config.http_port,
            log_level=config.log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start Library Catalog server")
        sys.exit(1)


if __name__ == "__main__":
    main()
