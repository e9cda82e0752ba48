"""Application configuration and router setup."""

from contextlib import asynccontextmanager
from typing import Optional

import fastapi
from fastapi import Request, status
from fastapi.middleware import cors
from fastapi.responses import JSONResponse

from components.core import config
from components.core import init_db
from components.core.database import DatabaseManager
from components.core import exceptions
from components.core import schemas
from components.core.logging import get_logger, setup_logging
from restapi.endpoints import health_check, contracts, installments, payments

logger = get_logger(__name__)

ERROR_STATUS = (
    (exceptions.EntityNotFoundError, status.HTTP_404_NOT_FOUND),
    (exceptions.ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (exceptions.InvalidStateError, status.HTTP_409_CONFLICT),
    (exceptions.ConcurrentModificationError, status.HTTP_409_CONFLICT),
    (exceptions.ConsistencyError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: exceptions.LedgerServiceError) -> int:
    for error_cls, status_code in ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def service_error_handler(request: Request, exc: exceptions.LedgerServiceError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc)
    body = schemas.ErrorResponse(error=exc.code, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(db_manager: Optional[DatabaseManager] = None) -> fastapi.FastAPI:
    """Create and configure the FastAPI application."""
    settings = config.get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    @asynccontextmanager
    async def lifespan(app: fastapi.FastAPI):
        if settings.CREATE_TABLES_ON_STARTUP:
            await app.state.db_manager.create_tables()
        yield
        await app.state.db_manager.engine.dispose()

    app = fastapi.FastAPI(
        title="Installment Ledger",
        description="Installment amortization and ledger reconciliation service",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Initialize database
    init_db.init_db(app, db_manager)

    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(exceptions.LedgerServiceError, service_error_handler)

    # Include routers
    app.include_router(health_check.router)
    app.include_router(contracts.router, prefix=settings.api_prefix)
    app.include_router(installments.router, prefix=settings.api_prefix)
    app.include_router(payments.router, prefix=settings.api_prefix)

    return app
