"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from trackhub.api import router as api_router
from trackhub.api.envelope import error
from trackhub.config import Settings, get_settings
from trackhub.db.session import close_db, create_engine, create_session_factory, init_db
from trackhub.middleware import RequestContextMiddleware
from trackhub.services.container import Container
from trackhub.services.exceptions import InternalError, TrackHubError, UnauthenticatedError
from trackhub.services.schemas import format_errors

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    settings: Settings = app.state.settings
    owns_engine = getattr(app.state, "container", None) is None

    if owns_engine:
        logger.info("starting_trackhub", version=settings.app_version, environment=settings.environment)
        engine = create_engine(settings)
        await init_db(engine)
        app.state.engine = engine
        app.state.container = Container.from_session_factory(settings, create_session_factory(engine))
        logger.info("database_initialized")

    yield

    if owns_engine:
        await close_db(app.state.engine)
        logger.info("database_closed")


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(TrackHubError)
    async def trackhub_error_handler(request: Request, exc: TrackHubError) -> ORJSONResponse:
        if isinstance(exc, InternalError):
            logger.error("internal_error", error=exc.message, error_type=type(exc).__name__)
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
        return error(exc.message, exc.status_code, errors=exc.errors, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
        return error("Validation error", 400, errors=format_errors(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = f"Route {request.url.path} not found"
        return error(message, exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("unhandled_error", error_type=type(exc).__name__)
        detail = str(exc) if settings.expose_error_details else None
        return error("Internal server error", 500, detail=detail)


def create_app(settings: Settings | None = None, container: Container | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Passing a container skips database setup; the container's repositories
    are used as they are.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant project tracking API",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if container is not None:
        app.state.container = container

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    # Trust proxy headers (X-Forwarded-Proto, X-Forwarded-For) from the reverse proxy
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    register_exception_handlers(app, settings)
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()
