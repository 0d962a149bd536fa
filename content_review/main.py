"""
Content Review API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .database import engine, Base
from .lifecycle import LifecycleError
from .limiter import limiter
from .logging_config import api_logger, configure_logging
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware, RequestTimeoutMiddleware
from .policies import AuthorizationDenied
from .responses import (
    ApiException,
    api_exception_handler,
    authorization_exception_handler,
    backend_exception_handler,
    lifecycle_exception_handler,
    request_validation_exception_handler,
)
from .routes import (
    auth_router,
    profiles_router,
    content_items_router,
    health_router,
)
from . import models  # noqa: F401  registers tables and insert hooks

settings = get_settings()
configure_logging(settings.log_level, settings.log_format)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup (in production, use migrations instead)."""
    Base.metadata.create_all(bind=engine)
    api_logger.info(
        "Content Review API started",
        environment=settings.environment,
        bootstrap_admin_configured=bool(settings.admin_bootstrap_email),
    )
    yield


app = FastAPI(
    title="Content Review API",
    description="Review and approval of scheduled social media content",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_exception_handler(ApiException, api_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(AuthorizationDenied, authorization_exception_handler)
app.add_exception_handler(LifecycleError, lifecycle_exception_handler)
app.add_exception_handler(SQLAlchemyError, backend_exception_handler)

# Innermost first: a timed-out request still passes the logging and header layers
app.add_middleware(RequestTimeoutMiddleware, timeout=settings.request_timeout_seconds)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Request-ID",
    ],
    expose_headers=["X-Request-ID"],
    max_age=3600,  # Cache preflight requests for 1 hour
)

# Routes
app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(content_items_router)
app.include_router(health_router)


@app.get("/")
def root():
    return {
        "message": "Content Review API",
        "docs": "/api/docs" if settings.debug else "Disabled in production",
    }
