"""
ChirpyNosh web client
Server-rendered FastAPI application in front of the ChirpyNosh REST API
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from pathlib import Path
import logging
import uvicorn
from contextlib import asynccontextmanager

from api.routes import admin, auth, dashboard, health, hub, kyc, pages, supplier

# Import configuration
from app.config import settings

# Import middleware
from api.middleware import (
    AuthGateMiddleware,
    RequestLoggingMiddleware,
    redirect_required_handler,
    unauthorized_exception_handler,
    api_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    general_exception_handler,
)
from app.exceptions import ApiError, RedirectRequired, UnauthorizedError
from services.backend_client import create_http_client

# Setup logging with configured level and format
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()), format=settings.log_format
)
_logger = logging.getLogger("chirpynosh.main")

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup and shutdown.
    Opens the shared backend connection pool and closes it on the way out.
    """
    _logger.info(
        f"Starting {settings.app_name} in {settings.environment.value} mode "
        f"(backend: {settings.api_base_url})"
    )
    app.state.http_client = create_http_client()
    try:
        yield
    finally:
        _logger.info(f"Shutting down {settings.app_name}")
        await app.state.http_client.aclose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    debug=settings.debug,
    openapi_url=None,
    docs_url=None,
    redoc_url=None,
)

# Middleware runs outermost-last: logging wraps the session, the session wraps the auth gate
app.add_middleware(AuthGateMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    session_cookie=settings.session_cookie_name,
    max_age=settings.session_max_age_sec,
    https_only=settings.cookie_secure,
    same_site="lax",
)
app.add_middleware(RequestLoggingMiddleware)

# Register exception handlers
app.add_exception_handler(RedirectRequired, redirect_required_handler)
app.add_exception_handler(UnauthorizedError, unauthorized_exception_handler)
app.add_exception_handler(ApiError, api_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# Supplier routes go before the generic /dashboard/{segment} routes
app.include_router(health.router)
app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(hub.router)
app.include_router(supplier.router)
app.include_router(dashboard.router)
app.include_router(kyc.router)
app.include_router(admin.router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development(),
        log_level=settings.log_level.lower(),
    )
