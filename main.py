"""Main FastAPI application."""

from contextlib import asynccontextmanager
from pathlib import Path

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings
from core.database import engine, init_database
from core.exceptions import AppException
from core.logging import setup_logging
from core.middleware import LoggingMiddleware, SessionMiddleware
from routers import auth, clients, files, health, projects, spa, storage, tasks
from services.storage_service import get_storage_provider

INSECURE_SESSION_SECRETS = (
    "INSECURE-DEFAULT-CHANGE-ME-32CHARS-MIN",
    "INSECURE-DEFAULT-CHANGE-ME",
    "change-me",
)

# Get settings
settings = get_settings()

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    _validate_security_config()
    _validate_storage_config()

    logger.info(
        "Starting Entipedia API",
        version=settings.app_version,
        environment=settings.environment,
    )

    if settings.database_auto_create:
        await init_database()

    if settings.sentry_dsn and settings.environment != "development":
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry_profiles_sample_rate,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
            ],
        )
        logger.info("Sentry initialized")

    yield

    logger.info("Shutting down Entipedia API")
    await engine.dispose()


def _validate_security_config():
    """Validate security configuration on startup."""
    if settings.is_test:
        logger.info("Skipping security validation in test environment")
        return

    errors = []
    if settings.is_production:
        if settings.session_secret in INSECURE_SESSION_SECRETS:
            errors.append(
                "CRITICAL: Using default SESSION_SECRET! Set a secure random key in environment variables."
            )
        if len(settings.session_secret) < 32:
            errors.append(
                f"CRITICAL: SESSION_SECRET too short ({len(settings.session_secret)} chars). Must be at least 32 characters."
            )
    elif settings.session_secret in INSECURE_SESSION_SECRETS:
        logger.warning("Using the default SESSION_SECRET; do not deploy this configuration.")

    if errors:
        for error in errors:
            logger.error(error)
        raise RuntimeError(
            f"Security validation failed with {len(errors)} error(s). Fix configuration and restart."
        )


def _validate_storage_config():
    """Fail fast when the object store is misconfigured."""
    missing = settings.missing_storage_settings()
    if missing:
        for name in missing:
            logger.error("storage_config_missing", variable=name)
        raise RuntimeError(f"Missing {missing[0]} environment variable.")
    get_storage_provider()


def _error_response(status_code: int, code: str, message: str, details=None):
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
    )


def _validation_message(errors) -> str:
    """Short human readable message from the first pydantic error."""
    if not errors:
        return "Invalid request."
    error = errors[0]
    error_type = error.get("type", "")
    message = str(error.get("msg", "Invalid value."))

    if error_type == "json_invalid":
        return "Invalid JSON body."
    if error_type == "value_error":
        return message.removeprefix("Value error, ")

    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    if error_type == "missing" and not loc:
        return "Request body is required."
    if loc:
        return f"{'.'.join(loc)}: {message}"
    return message


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    openapi_url="/api/openapi.json" if settings.debug else None,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_credentials,
    allow_methods=settings.cors_methods,
    allow_headers=settings.cors_headers,
)

# Add custom middleware (the last one added runs first)
app.add_middleware(SessionMiddleware)
app.add_middleware(LoggingMiddleware)


# Exception handlers
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle application exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "business_error",
        code=exc.code,
        message=exc.message,
        details=exc.details,
        status_code=exc.status_code,
    )
    return _error_response(exc.status_code, exc.code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """Malformed bodies, bad enums and unparseable values are 400s."""
    message = _validation_message(exc.errors())
    logger.warning("validation_error", message=message)
    return _error_response(400, "VALIDATION_ERROR", message)


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(
    request: Request, exc: PydanticValidationError
):
    message = _validation_message(exc.errors())
    logger.warning("validation_error", message=message)
    return _error_response(400, "VALIDATION_ERROR", message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(
        exc.status_code,
        "HTTP_ERROR",
        str(exc.detail),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database_error", error=str(exc), exc_info=True)
    message = str(exc) if settings.debug else "Database operation failed."
    return _error_response(500, "DATABASE_ERROR", message)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error("unhandled_error", error=str(exc), exc_info=True)

    # Don't expose internal errors in production
    error_message = str(exc) if settings.debug else "Internal server error."
    return _error_response(500, "INTERNAL_ERROR", error_message)


# Include routers
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(projects.router, prefix="/api/projects", tags=["Projects"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["Tasks"])
app.include_router(clients.router, prefix="/api/clients", tags=["Clients"])
app.include_router(files.router, prefix="/api/files", tags=["Files"])
app.include_router(storage.router, prefix="/api/storage", tags=["Storage"])

# Built frontend assets, then the SPA catch-all last
_assets_dir = Path(settings.frontend_dist_dir) / "assets"
if not settings.frontend_dev_server_url and _assets_dir.is_dir():
    app.mount("/assets", StaticFiles(directory=_assets_dir), name="assets")
app.include_router(spa.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
