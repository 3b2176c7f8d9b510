"""AssetSync API - FastAPI application entrypoint."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import AppConfig, load_config, log_config_snapshot
from app.correlation import (
    REQUEST_ID_HEADER,
    CorrelationIdMiddleware,
    RequestIdLogFilter,
    bind_request_id,
    get_request_id,
)
from app.rate_limiter import build_rate_limiter
from app.routers import assets as asset_routes
from app.routers import auth as auth_routes
from app.routers import categories as category_routes
from app.routers import users as user_routes
from auth.accounts import AccountStore
from auth.errors import AuthError, AuthErrorKind, error_body
from auth.middleware import AuthGate
from auth.notifications import ResetNotifier
from auth.password import PasswordHasher
from auth.resets import ResetTicketStore
from auth.service import AccountService
from auth.sessions import SessionStore
from auth.sweeper import SessionSweeper
from auth.tokens import TokenCodec
from inventory.assets import AssetStore
from inventory.categories import CategoryStore
from inventory.service import InventoryService
from persistence.db import Database

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging with the request ID on every line."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdLogFilter) for f in handler.filters):
            handler.addFilter(RequestIdLogFilter())


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests exceeding size limit to prevent payload bombs."""

    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_bytes:
            return JSONResponse(
                status_code=413,
                content=error_body(AuthErrorKind.VALIDATION_FAILED, "Request entity too large"),
            )
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Cache-Control"] = "no-store"
        return response


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.kind, exc.message),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        return JSONResponse(
            status_code=AuthErrorKind.VALIDATION_FAILED.status_code,
            content=error_body(AuthErrorKind.VALIDATION_FAILED, message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Runs in ServerErrorMiddleware, outside CorrelationIdMiddleware
        request_id = get_request_id(request)
        with bind_request_id(request_id):
            logger.exception(
                f"Unhandled error on {request.method} {request.url.path} "
                f"(request_id={request_id})"
            )
        return JSONResponse(
            status_code=AuthErrorKind.INTERNAL.status_code,
            content=error_body(AuthErrorKind.INTERNAL),
            headers={REQUEST_ID_HEADER: request_id} if request_id else None,
        )


def create_app(
    config: Optional[AppConfig] = None,
    notifier: Optional[ResetNotifier] = None,
) -> FastAPI:
    """
    Build the application and wire its collaborators.

    Every stateful object (database, stores, codec, limiter, sweeper) is
    created here and hung on ``app.state``; nothing is module-global.
    """
    configure_logging()
    if config is None:
        config = load_config()
    log_config_snapshot(config)

    db = Database(config.db_path)
    accounts = AccountStore(db)
    sessions = SessionStore(db)
    resets = ResetTicketStore(db)
    codec = TokenCodec(
        config.jwt_secret,
        access_ttl=timedelta(seconds=config.access_token_ttl_seconds),
        refresh_ttl=timedelta(seconds=config.refresh_token_ttl_seconds),
    )
    service = AccountService(
        accounts,
        sessions,
        resets,
        codec,
        PasswordHasher(rounds=config.bcrypt_rounds),
        notifier=notifier,
        reset_ttl=timedelta(seconds=config.reset_ticket_ttl_seconds),
    )
    sweeper = SessionSweeper(
        sessions,
        resets,
        interval_seconds=config.session_sweep_interval_seconds,
    )

    app = FastAPI(
        title="AssetSync API",
        description="Account authentication, sessions and asset inventory",
        version=config.service_version,
    )

    app.state.config = config
    app.state.db = db
    app.state.account_service = service
    app.state.inventory_service = InventoryService(CategoryStore(db), AssetStore(db))
    app.state.auth_gate = AuthGate(codec, sessions, accounts)
    app.state.rate_limiter = build_rate_limiter(
        config.auth_rate_limit_per_minute,
        config.auth_rate_limit_burst,
    )
    app.state.sweeper = sweeper
    app.state.started_at = datetime.now(timezone.utc)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware stack (the last one added runs first)
    # 1. CorrelationId: wraps everything, adds X-Request-Id to responses
    # 2. SecurityHeaders: adds security headers to responses
    # 3. RequestSizeLimit: rejects oversized requests before routing
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=config.max_request_size_bytes)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _install_exception_handlers(app)

    app.include_router(auth_routes.router)
    app.include_router(user_routes.router)
    app.include_router(asset_routes.router)
    app.include_router(category_routes.router)

    @app.on_event("startup")
    async def startup_event():
        db.init()
        sweeper.start()
        logger.info(f"{config.service_name} started")

    @app.on_event("shutdown")
    async def shutdown_event():
        await sweeper.stop()
        db.dispose()
        logger.info(f"{config.service_name} stopped")

    @app.get("/health")
    async def health():
        """Health check with service observability."""
        return {
            "status": "healthy" if db.is_open else "starting",
            "service": config.service_name,
            "version": config.service_version,
            "environment": config.environment,
            "database": "connected" if db.is_open else "closed",
            "started_at": app.state.started_at.isoformat(),
        }

    return app


app = create_app()
