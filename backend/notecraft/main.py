"""
NoteCraft Backend: FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the process-scoped handles (LLM provider, grammar
       client, login limiter) onto app.state, registers middleware and
       exception handlers, and mounts the routers.
Who:   uvicorn imports `notecraft.main:app`; tests call create_app() directly.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                     FastAPI App                      │
    │                                                      │
    │  Middleware: CORS → Request ID → Access Log          │
    │              → Rate Limit → GZip                     │
    │                                                      │
    │  Routes: /api/auth  /api/notes  /api/ai  /health     │
    │                                                      │
    │  app.state: llm_service, grammar_service,            │
    │             login_limiter                            │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate configuration (logged, not fatal)
    Shutdown: close the provider clients, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from notecraft import __version__
from notecraft.config import settings
from notecraft.database import dispose_engine
from notecraft.exceptions import (
    AuthError,
    CircuitBreakerOpenError,
    InternalError,
    NoteCraftError,
    NotFoundError,
    RateLimitExceededError,
    StaleSnapshotError,
    UpstreamError,
    ValidationError,
)
from notecraft.middleware.logging import RequestLoggingMiddleware
from notecraft.middleware.rate_limit import (
    InMemoryRateLimitStore,
    RateLimitMiddleware,
    SlidingWindowLimiter,
)
from notecraft.middleware.request_id import RequestIDMiddleware, request_id_var
from notecraft.routes import ai, auth, health, notes
from notecraft.services.gemini_service import GeminiService
from notecraft.services.grammar_service import GrammarService
from notecraft.services.llm_base import LLMService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once: level from settings, one line per
    record on stdout (containers collect stdout).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    for name in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("NoteCraft Backend %s starting up...", __version__)

    # Logged instead of raised: /health and the notes API still work
    # without an AI key, and the logs say exactly what is missing
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", e)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("NoteCraft Backend shutting down...")
    await app.state.grammar_service.aclose()
    await app.state.llm_service.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
        "request_id": getattr(request.state, "request_id", None) or request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    message = str(errors[0].get("msg", "Invalid request"))
    # Messages from our own field validators come prefixed by pydantic
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return message


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to JSON error responses.

        ValidationError, RequestValidationError → 400
        AuthError                               → 401 + WWW-Authenticate
        NotFoundError                           → 404
        StaleSnapshotError                      → 409
        RateLimitExceededError                  → 429 + Retry-After
        CircuitBreakerOpenError                 → 503 + Retry-After
        UpstreamError                           → its own status (413/429/502)
        InternalError, anything else            → 500, generic message

    Internal details (stack traces, SQL, provider payloads) are logged,
    never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return _error_response(request, 400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        message = _first_validation_message(exc)
        errors = exc.errors()
        field = ".".join(str(part) for part in errors[0].get("loc", ())[1:]) if errors else ""
        logger.warning("Request validation failed on %s: %s", field or "body", message)
        return _error_response(
            request, 400, "validation_error", message, {"field": field} if field else None
        )

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return _error_response(
            request,
            401,
            "unauthorized",
            exc.message,
            {"reason": exc.reason.value},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(request, 404, "not_found", exc.message)

    @app.exception_handler(StaleSnapshotError)
    async def handle_stale_snapshot(request: Request, exc: StaleSnapshotError):
        return _error_response(request, 409, "stale_snapshot", exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            request,
            429,
            "rate_limit_exceeded",
            exc.message,
            {"retry_after": exc.retry_after},
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("Circuit breaker open: %s", exc.message)
        return _error_response(
            request,
            503,
            "service_unavailable",
            exc.message,
            {"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        logger.error("Upstream error (%d): %s | Context: %s", exc.status_code, exc.message, exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return _error_response(
            request, exc.status_code, "upstream_error", exc.message, headers=headers
        )

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        logger.error("%s: %s | Context: %s", type(exc).__name__, exc.message, exc.context)
        return _error_response(
            request, 500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(NoteCraftError)
    async def handle_app_error(request: Request, exc: NoteCraftError):
        logger.error("Unhandled application error %s: %s", type(exc).__name__, exc.message)
        return _error_response(
            request, 500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", exc, exc_info=True)
        return _error_response(
            request,
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    llm_service: Optional[LLMService] = None,
    grammar_service: Optional[GrammarService] = None,
    login_limiter: Optional[SlidingWindowLimiter] = None,
    request_limiter: Optional[SlidingWindowLimiter] = None,
) -> FastAPI:
    """
    Assemble the application.

    Every process-scoped handle can be passed in; tests use this to supply
    fakes and fresh limiters. The handles are created here rather than in
    the lifespan so they exist even when the ASGI lifespan is not run
    (httpx ASGITransport).
    """
    app = FastAPI(
        title="NoteCraft API",
        description=(
            "Notes with AI assistance: summaries, grammar checks with safe "
            "correction application, and style rewrites."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.llm_service = llm_service or GeminiService()
    app.state.grammar_service = grammar_service or GrammarService()
    app.state.login_limiter = login_limiter or SlidingWindowLimiter(
        InMemoryRateLimitStore(),
        limit=settings.login_max_failures,
        window=settings.login_failure_window,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: CORS → Request ID → Access Log → Rate Limit → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware, limiter=request_limiter)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    # Outermost, so 429s and other early answers still carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(ai.router)
    app.include_router(health.router)

    return app


app = create_app()
