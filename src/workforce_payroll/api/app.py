"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from workforce_payroll.api.routes import (
    health_router,
    payroll_router,
    schedules_router,
    timesheets_router,
)
from workforce_payroll.calculators.aggregator import (
    NoActiveProjectAssignmentError,
    UnattributedClockEventsError,
)
from workforce_payroll.calculators.clock_normalizer import MalformedEventSequenceError
from workforce_payroll.calculators.pay_period import InvalidScheduleConfigurationError
from workforce_payroll.config import get_settings
from workforce_payroll.database import dispose_db, init_db
from workforce_payroll.logging_config import configure_logging
from workforce_payroll.repository.base import NotFoundError
from workforce_payroll.services.payroll_service import PayrollRegenerationFailure
from workforce_payroll.services.state_machine import (
    InvalidTransitionError,
    TimesheetLockedError,
)

logger = logging.getLogger(__name__)

# Domain error -> (HTTP status, error code)
ERROR_STATUS: dict[type[Exception], tuple[int, str]] = {
    MalformedEventSequenceError: (status.HTTP_400_BAD_REQUEST, "MALFORMED_EVENT_SEQUENCE"),
    NoActiveProjectAssignmentError: (status.HTTP_400_BAD_REQUEST, "NO_ACTIVE_PROJECT_ASSIGNMENT"),
    UnattributedClockEventsError: (status.HTTP_400_BAD_REQUEST, "UNATTRIBUTED_CLOCK_EVENTS"),
    InvalidScheduleConfigurationError: (
        status.HTTP_400_BAD_REQUEST,
        "INVALID_SCHEDULE_CONFIGURATION",
    ),
    ValueError: (status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR"),
    NotFoundError: (status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    InvalidTransitionError: (status.HTTP_409_CONFLICT, "INVALID_TRANSITION"),
    TimesheetLockedError: (status.HTTP_409_CONFLICT, "PERIOD_LOCKED"),
    PayrollRegenerationFailure: (status.HTTP_500_INTERNAL_SERVER_ERROR, "PAYROLL_WRITE_FAILED"),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    init_db()
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(get_settings().log_level)

    app = FastAPI(
        title="Workforce Payroll API",
        description="Timesheet approval and payroll generation",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Exception handlers
    async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Map domain errors to status codes."""
        status_code, code = next(
            ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS
        )
        content = {"detail": str(exc), "code": code}
        if isinstance(exc, InvalidScheduleConfigurationError):
            content["context"] = {"errors": exc.errors}
        return JSONResponse(status_code=status_code, content=content)

    for exc_class in ERROR_STATUS:
        app.add_exception_handler(exc_class, domain_exception_handler)

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
    app.include_router(timesheets_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(schedules_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
