"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from academy_payroll import __version__
from academy_payroll.api.routes import health_router, salaries_router, teachers_router
from academy_payroll.config import configure_logging
from academy_payroll.database import create_schema, dispose_db, init_db
from academy_payroll.errors import (
    ConcurrentModificationError,
    DuplicateSalaryError,
    NotConfiguredError,
    PayrollError,
    PayrollValidationError,
    PermissionDeniedError,
    SalaryNotFoundError,
    TeacherNotFoundError,
)
from academy_payroll.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins
ERROR_STATUS: list[tuple[type[PayrollError], int]] = [
    (NotConfiguredError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (PayrollValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (TeacherNotFoundError, status.HTTP_404_NOT_FOUND),
    (SalaryNotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateSalaryError, status.HTTP_409_CONFLICT),
    (ConcurrentModificationError, status.HTTP_409_CONFLICT),
]


def status_for(exc: PayrollError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def error_content(exc: PayrollError) -> dict:
    content: dict = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, NotConfiguredError):
        content["fallback"] = "manual_entry"
    if isinstance(exc, PayrollValidationError) and exc.field:
        content["context"] = {"field": exc.field}
    return content


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    engine, _ = init_db()
    await create_schema(engine)
    logger.info("Academy payroll %s started", __version__)
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Academy Payroll API",
        description="Teacher salary calculation and approval workflow",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_exception_handler(
        request: Request, exc: PayrollError
    ) -> JSONResponse:
        """Map domain errors to HTTP responses."""
        status_code = status_for(exc)
        if status_code != status.HTTP_404_NOT_FOUND:
            logger.warning(
                "%s %s rejected: %s %s", request.method, request.url.path, exc.code, exc
            )
        return JSONResponse(status_code=status_code, content=error_content(exc))

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(salaries_router, prefix="/api/v1")
    app.include_router(teachers_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
