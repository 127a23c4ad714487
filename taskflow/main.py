# taskflow/main.py

"""
Application factory.

Every store client (database engine, Redis connection) is created here and
handed to the repositories and services explicitly; the lifespan closes them
on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.adapters.configuration.config import Settings, settings as default_settings
from taskflow.adapters.inbound.api.v1.router import api_router
from taskflow.adapters.outbound.cache.redis_cache import RedisRevocationCache
from taskflow.adapters.outbound.persistence.database import Database, get_db
from taskflow.adapters.outbound.persistence.repositories import AsyncTokenRepository, AsyncUserRepository
from taskflow.adapters.outbound.security.password_hasher import PasswordHasher
from taskflow.adapters.outbound.security.token_codec import TokenCodec
from taskflow.application.ports.outbound import IRevocationCache
from taskflow.application.use_cases.attempt_limiter import AuthAttemptLimiter
from taskflow.application.use_cases.auth_use_cases import AsyncAuthService
from taskflow.application.use_cases.session_use_cases import SessionManager
from taskflow.domain.exceptions import CacheUnavailableException
from taskflow.shared.middleware import (
    AsyncRequestLoggingMiddleware,
    ErrorHandlerMiddleware,
    register_exception_handlers,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(app_settings: Settings) -> None:
    """Configure the root logger from LOG_LEVEL."""
    logging.basicConfig(level=app_settings.LOG_LEVEL, format=LOG_FORMAT)
    logging.getLogger().setLevel(app_settings.LOG_LEVEL)
    # SQL echo only when explicitly debugging
    if not app_settings.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def build_session_manager(
        app_settings: Settings,
        database: Database,
        cache: IRevocationCache,
        codec: Optional[TokenCodec] = None,
) -> SessionManager:
    codec = codec or TokenCodec.from_settings(app_settings)
    users = AsyncUserRepository(
        database.session_factory, operation_timeout=app_settings.DB_OPERATION_TIMEOUT_SECONDS
    )
    ledger = AsyncTokenRepository(
        database.session_factory, operation_timeout=app_settings.DB_OPERATION_TIMEOUT_SECONDS
    )
    return SessionManager(
        codec,
        ledger,
        cache,
        users,
        token_hash_key=app_settings.token_hash_key,
        whitelist_ttl_seconds=app_settings.REFRESH_WHITELIST_TTL_SECONDS,
    )


def create_app(
        app_settings: Optional[Settings] = None,
        database: Optional[Database] = None,
        cache: Optional[IRevocationCache] = None,
        codec: Optional[TokenCodec] = None,
        hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Collaborators not given are built from the settings (Postgres, Redis).
    """
    app_settings = app_settings or default_settings
    setup_logging(app_settings)

    database = database or Database.from_settings(app_settings)
    cache = cache or RedisRevocationCache(
        app_settings.REDIS_URL, operation_timeout=app_settings.REDIS_OPERATION_TIMEOUT_SECONDS
    )
    hasher = hasher or PasswordHasher(
        rounds=app_settings.BCRYPT_ROUNDS, timeout=app_settings.HASHER_TIMEOUT_SECONDS
    )
    session_manager = build_session_manager(app_settings, database, cache, codec)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cache.connect()
        logger.info(f"{app_settings.PROJECT_NAME} started (environment={app_settings.ENVIRONMENT})")
        yield
        await cache.close()
        await database.dispose()
        logger.info(f"{app_settings.PROJECT_NAME} stopped")

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.VERSION,
        description="Token-based session management: access tokens, refresh tokens and revocation.",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.database = database
    app.state.cache = cache
    app.state.session_manager = session_manager
    app.state.auth_service = AsyncAuthService(session_manager.users, session_manager, hasher)
    app.state.attempt_limiter = AuthAttemptLimiter(
        cache,
        max_attempts=app_settings.AUTH_RATE_LIMIT_ATTEMPTS,
        window_seconds=app_settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
    )

    # Middlewares: the last one added runs first
    app.add_middleware(AsyncRequestLoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health(request: Request, db: AsyncSession = Depends(get_db)):
        checks = {"database": "ok", "cache": "ok"}
        try:
            await db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Health check: database unavailable ({type(e).__name__})")
            checks["database"] = "unavailable"
        try:
            await request.app.state.cache.ping()
        except CacheUnavailableException:
            checks["cache"] = "unavailable"

        healthy = all(v == "ok" for v in checks.values())
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={"success": healthy, "data": {"status": "ok" if healthy else "degraded", **checks}},
        )

    return app


app = create_app()
