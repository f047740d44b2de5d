"""
FastAPI main application for the Book Club API.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth import TokenManager
from api.config import APIConfig, config as api_config
from api.models import ErrorResponse, HealthResponse
from api.oauth import GitHubOAuthClient
from api.routers import auth, books, clubs, meetings, posts, progress
from storage.database import MongoDBManager, create_indexes, health_check as database_health_check
from utilities.config import config
from utilities.errors import BookClubError
from utilities.logger import RequestLogger, setup_logging

# Setup logging
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Book Club API", production=config.is_production())

    manager: Optional[MongoDBManager] = None
    if app.state.database is None:
        manager = MongoDBManager(config.mongodb_url, config.mongodb_database, config.mongodb_timeout_ms)
        app.state.database = await manager.connect()
    else:
        # Injected database (tests, embedding): the caller owns the client
        await create_indexes(app.state.database)

    yield

    # Shutdown
    logger.info("Shutting down Book Club API")
    if manager:
        await manager.disconnect()
        app.state.database = None


def _error_response(status_code: int, error: str, detail: Optional[str] = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail, status_code=status_code).model_dump(),
        headers=headers,
    )


def create_app(
    settings: Optional[APIConfig] = None,
    database: Optional[AsyncIOMotorDatabase] = None,
    oauth_client: Optional[GitHubOAuthClient] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: API settings (defaults to the environment-driven config)
        database: Already-connected database; when omitted the lifespan connects
            using MONGODB_URL and closes the client on shutdown
        oauth_client: GitHub OAuth client; when omitted it is built from settings

    Returns:
        Configured FastAPI application
    """
    settings = settings or api_config
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug,
    )

    app = FastAPI(
        title=settings.api_title,
        description="""
    REST API for book clubs.

    ## Features

    * **Accounts**: Registration, login by username or email, optional GitHub login
    * **Clubs, Books, Meetings, Posts**: CRUD with owner-only edits and deletes
    * **Attendance**: Join or leave a meeting
    * **Reading Progress**: One record per reader, book and club

    ## Authentication

    Write endpoints require a token from `/login`. Send it in the Authorization header:

    ```
    Authorization: Bearer your_token_here
    ```

    or rely on the `jwt` cookie set by `/login`.
    """,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.state.api_config = settings
    app.state.database = database
    app.state.token_manager = TokenManager.from_config(settings)
    app.state.oauth_client = oauth_client or GitHubOAuthClient.from_config(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    request_logger = RequestLogger()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Access log with a request id bound to every event of the request."""
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        started_at = request_logger.bind_request(request_id, request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            request_logger.log_response(status.HTTP_500_INTERNAL_SERVER_ERROR, started_at)
            request_logger.clear()
            raise
        response.headers["X-Request-ID"] = request_id
        request_logger.log_response(response.status_code, started_at)
        request_logger.clear()
        return response

    # Exception handlers
    @app.exception_handler(BookClubError)
    async def book_club_error_handler(request: Request, exc: BookClubError):
        """Handle expected application errors."""
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report request validation failures as 400."""
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
        logger.info("Request validation failed", path=request.url.path, errors=messages)
        return _error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", "; ".join(messages))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            str(exc) if settings.debug else None,
        )

    # Health check endpoint (no authentication required)
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        db_status = "unavailable"
        if request.app.state.database is not None:
            health_info = await database_health_check(request.app.state.database)
            db_status = health_info.get("status", "unknown")

        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.utcnow(),
            version=settings.api_version,
            database_status=db_status,
        )

    for module in (auth, books, clubs, meetings, posts, progress):
        app.include_router(module.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level="info"
    )
