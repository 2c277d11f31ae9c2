"""Main FastAPI application."""

import os

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from affinity_intake import __version__
from affinity_intake.api.routes import router as runs_router
from affinity_intake.errors import IntakeError
from affinity_intake.log_config import setup_logging

logger = structlog.get_logger()


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    """Render pipeline errors as {"error": message} with their status."""
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
        )
    else:
        logger.info(
            "request_rejected",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    return f"Invalid request field {field}: {first.get('msg', 'invalid value')}"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed form, file and query fields as 400 {"error": message}."""
    message = _describe_validation_error(exc)
    logger.info(
        "request_rejected",
        path=request.url.path,
        status_code=400,
        error=message,
    )
    return JSONResponse(status_code=400, content={"error": message})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unexpected_error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="affinity-intake",
        description="Ligand x target run intake API",
        version=__version__,
    )

    app.add_exception_handler(IntakeError, intake_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(runs_router)

    @app.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


def create_logged_app() -> FastAPI:
    """App factory for uvicorn: configures logging before creating the app."""
    setup_logging(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        json_logs=os.environ.get("APP_ENV", "development") != "development",
    )
    return create_app()


app = create_app()
