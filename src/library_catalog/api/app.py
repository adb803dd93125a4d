"""
FastAPI application factory.

``create_app`` wires configuration, the database manager and the clock onto
``app.state`` and maps every ``RepositoryException`` to a JSON error body:

    {"code": "BOOK_UNAVAILABLE", "message": "...", "status": 409}
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..clock import Clock, SystemClock
from ..config import CatalogConfig, get_config
from ..database.session import DatabaseManager
from ..errors import RepositoryException, ValidationFailure
from .routers import authors, books, categories, loans, members

logger = logging.getLogger(__name__)


def error_body(code: str, message: str, status: int) -> dict:
    return {"code": code, "message": message, "status": status}


async def handle_repository_exception(request: Request, exc: RepositoryException) -> JSONResponse:
    if exc.status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected with %s: %s", request.method, request.url.path, exc.code, exc)
    return JSONResponse(
        status_code=exc.status, content=error_body(exc.code, exc.message, exc.status)
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    logger.info("%s %s invalid request: %s", request.method, request.url.path, details)
    return JSONResponse(
        status_code=ValidationFailure.status,
        content=error_body(
            ValidationFailure.code, details or "Invalid request", ValidationFailure.status
        ),
    )


def create_app(
    config: CatalogConfig | None = None,
    db_manager: DatabaseManager | None = None,
    clock: Clock | None = None,
    init_schema: bool = True,
) -> FastAPI:
    """
    Build the Library Catalog API.

    Args:
        config: Settings; defaults to the global configuration
        db_manager: Database manager; defaults to one built from ``config`` and
            disposed on shutdown
        clock: Time source for loan dates; defaults to the system clock
        init_schema: Create missing tables on startup
    """
    config = config or get_config()
    owns_db_manager = db_manager is None
    db_manager = db_manager or DatabaseManager(config.get_database_url(), echo=config.debug)
    clock = clock or SystemClock()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_schema:
            db_manager.init_database()
        logger.info("%s v%s ready", config.service_name, config.service_version)
        try:
            yield
        finally:
            if owns_db_manager:
                db_manager.close()

    app = FastAPI(
        title="Library Catalog API",
        version=__version__,
        description="Authors, categories, books, members and loans of a lending library.",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.db_manager = db_manager
    app.state.clock = clock

    app.add_exception_handler(RepositoryException, handle_repository_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    for router in (loans.router, books.router, members.router, authors.router, categories.router):
        app.include_router(router, prefix="/api")

    @app.get("/health", tags=["health"])
    def health() -> dict:
        """Liveness plus a quick database round trip."""
        connected = db_manager.verify_connection()
        return {
            "status": "UP" if connected else "DOWN",
            "database": "connected" if connected else "disconnected",
        }

    return app
