"""FastAPI application entrypoint. No business logic; only wiring, middleware and error mapping."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import router as v1_router
from app.core.config import Settings, get_settings
from app.core.errors import InputValidationError, InternalError, ServiceError
from app.core.log import configure_logging
from app.services.identity import seed_bootstrap_admin
from app.services.kv_store import (
    KeyValueStore,
    SqlKeyValueStore,
    StoreUnavailableError,
    build_store,
)

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], KeyValueStore | None]


def _error_response(error: ServiceError, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.error, "message": error.message},
        headers=headers,
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error_response(exc, headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted(
        {".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors()}
    )
    return _error_response(InputValidationError(f"Invalid or missing fields: {', '.join(fields)}"))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    detail = f"{type(exc).__name__}: {exc}" if request.app.state.settings.DEBUG else None
    return _error_response(InternalError(detail))


def create_app(
    settings: Settings | None = None,
    store_factory: StoreFactory | None = None,
) -> FastAPI:
    """
    Build the application. store_factory defaults to the DATABASE_URL-backed store;
    tests pass an in-memory store (or one returning None for "not configured").
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    factory = store_factory or (lambda: build_store(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store = factory()
        app.state.store = store
        try:
            if isinstance(store, SqlKeyValueStore) and store.engine.dialect.name == "sqlite":
                store.ensure_schema()
            seed_bootstrap_admin(store, settings)
        except StoreUnavailableError:
            logger.exception("User storage unavailable at startup")
        yield

    app = FastAPI(
        title="Admin Auth API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    # Routes read app.state.store; set it before lifespan runs for clients that skip startup.
    app.state.store = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    @app.middleware("http")
    async def no_store_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Cache-Control", "no-cache, no-store, must-revalidate")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        return response

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(v1_router, prefix=settings.API_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Admin Auth API"}

    return app


app = create_app()
