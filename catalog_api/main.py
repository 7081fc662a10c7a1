"""
FastAPI main application for the Storefront Catalog API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog.database import MongoDBManager
from catalog.errors import CatalogError
from utilities.config import AppConfig
from utilities.config import config as default_config
from utilities.logger import RequestLogger, setup_logging

from .config import config as api_config
from .models import ErrorResponse, HealthResponse, dump
from .routers import authors, categories, currencies, subcategories, users
from .services import ServiceContainer, build_mongo_services

logger = structlog.get_logger(__name__)


def error_body(status_code: int, error: str, message: str, **extra) -> dict:
    return dump(ErrorResponse(status_code=status_code, error=error, message=message, **extra), exclude_none=True)


def register_exception_handlers(app: FastAPI, app_config: AppConfig) -> None:
    """Map domain errors and framework errors onto ``{statusCode, error, message}`` bodies."""

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message, error_type=exc.error_name)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        missing = []
        problems = []
        for error in exc.errors():
            location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
            name = ".".join(location) or "body"
            if error.get("type") == "missing":
                missing.append(name)
            else:
                problems.append(f"{name}: {error.get('msg')}")

        if missing and not problems:
            message = f"Missing required field(s): {', '.join(missing)}"
        else:
            message = f"Invalid field(s): {'; '.join(problems + [f'{name}: Field required' for name in missing])}"

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(400, "ValidationError", message, missing=missing or None),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle routing and framework HTTP errors (unknown paths, wrong methods)."""
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, "HTTPException", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions; details are hidden in production."""
        logger.error("Unhandled exception", error=str(exc), error_type=type(exc).__name__, path=request.url.path)
        message = "Internal Server Error" if app_config.is_production() else str(exc) or "Internal Server Error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(500, "InternalError", message),
        )


def create_app(app_config: Optional[AppConfig] = None, services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Args:
        app_config: Process configuration (environment defaults when omitted)
        services: Pre-built services; when given, no database connection
            is opened at startup

    Returns:
        Configured FastAPI application
    """
    app_config = app_config or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        setup_logging(
            log_level=app_config.log_level,
            log_format=app_config.log_format,
            log_file=app_config.get_log_file_path(),
            debug=app_config.debug,
        )
        logger.info("Starting Storefront Catalog API", environment=app_config.environment)

        db_manager = None
        if getattr(app.state, "services", None) is None:
            db_manager = MongoDBManager(
                connection_url=app_config.mongodb_url,
                database_name=app_config.mongodb_database,
                username=app_config.mongodb_username,
                password=app_config.mongodb_password,
            )
            try:
                await db_manager.connect()
            except Exception as e:
                logger.error("Failed to connect to database", error=str(e))
                raise
            app.state.services = build_mongo_services(app_config, db_manager)

        app_config.get_upload_root_path().mkdir(parents=True, exist_ok=True)

        yield

        logger.info("Shutting down Storefront Catalog API")
        if db_manager is not None:
            await db_manager.disconnect()

    app = FastAPI(
        title=api_config.api_title,
        description=api_config.api_description,
        version=api_config.api_version,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=api_config.cors_allow_credentials,
        allow_methods=api_config.cors_allow_methods,
        allow_headers=api_config.cors_allow_headers,
        expose_headers=api_config.cors_expose_headers,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_logger = RequestLogger(request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.log_failure(e)
            raise
        request_logger.log_response(response.status_code)
        return response

    register_exception_handlers(app, app_config)

    # Health check endpoint (no authentication required)
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        services = getattr(request.app.state, "services", None)
        db_status = "unknown"
        collections = None
        if services is not None and services.health_check is not None:
            health_info = await services.health_check()
            db_status = health_info.get("status", "unknown")
            collections = health_info.get("counts")

        result = HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=api_config.api_version,
            database_status=db_status,
            collections=collections,
        )
        return JSONResponse(content=dump(result))

    # Subcategory routes live below /category and must match before /category/{id}
    for module in (users, subcategories, categories, authors, currencies):
        app.include_router(module.router, prefix=api_config.api_prefix)

    app.mount(
        api_config.uploads_mount,
        StaticFiles(directory=str(app_config.get_upload_root_path()), check_dir=False),
        name="uploads",
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "catalog_api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=default_config.debug,
        log_level=default_config.log_level.lower()
    )
