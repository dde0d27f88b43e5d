"""
FastAPI main application for the e-libro API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import dependencies
from api.config import config as api_config
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes import auth, books, reports, users
from library.database import MongoDBManager
from utilities.config import config
from utilities.errors import ApiError, TokenExpiredError, Unauthorized
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug,
    )
    logger.info("Starting e-libro API")

    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        users_collection=config.users_collection,
        books_collection=config.books_collection,
    )
    try:
        await db_manager.connect()
        container = dependencies.ServiceContainer.build(
            db_manager.users, db_manager.books, config.security(), db_manager=db_manager
        )
        await container.store.ensure_indexes()
        dependencies.services = container
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    yield

    logger.info("Shutting down e-libro API")
    dependencies.services = None
    await db_manager.disconnect()


app = FastAPI(
    title=api_config.api_title,
    description="""
    REST backend for the e-libro digital library.

    ## Features

    * **Accounts**: signup, signin, refresh-token rotation, signout, password change
    * **Books**: browse and filter the catalog, track downloads
    * **Reports**: top downloads, language distribution, monthly signups
    * **Users**: administration (admin role)

    ## Authentication

    Protected endpoints require the access token returned by signin:

    ```
    Authorization: Bearer <accessToken>
    ```

    Access tokens are short lived; call `/auth/refresh` (cookie) or
    `/auth/mobile/refresh` (`x-refresh-token` header) for a new one.
    """,
    version=api_config.api_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=api_config.cors_allow_methods,
    allow_headers=api_config.cors_allow_headers,
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(books.router)
app.include_router(reports.router)


def error_response(
    status_code: int,
    message: str,
    error_type: str,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Render the standard error envelope."""
    body = ErrorResponse(
        message=message,
        error=ErrorDetail(code=status_code, type=error_type, details=details),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


# Exception handlers
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    """Handle typed service errors."""
    logger.warning(
        "Request failed",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.code,
        message=exc.message,
    )

    headers = None
    if isinstance(exc, TokenExpiredError):
        headers = {"WWW-Authenticate": 'Bearer error="invalid_token", error_description="expired"'}
    elif isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}

    details = exc.details if exc.details is not None else exc.message
    if exc.status_code >= 500 and not api_config.debug:
        details = None
    return error_response(exc.status_code, exc.message, exc.code, details, headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Handle request body/query validation failures as 400."""
    details = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Bad Request", "validation_error", details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle routing errors (unknown path, wrong method)."""
    error_type = "not_found" if exc.status_code == status.HTTP_404_NOT_FOUND else "http_error"
    return error_response(exc.status_code, str(exc.detail), error_type, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions without leaking internals."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "internal_error",
        str(exc) if api_config.debug else None,
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    services = dependencies.services
    if services is not None and services.db_manager is not None:
        health_info = await services.db_manager.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=api_config.api_version,
        database_status=db_status,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level="info"
    )
