"""
Consolidated middleware for the ChirpyNosh web client
"""

import time
import logging
from uuid import uuid4

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import settings
from app.exceptions import ApiError, RedirectRequired, UnauthorizedError
from api.dependencies import login_redirect
from api.templating import render
from domain.routing import get_dashboard_path
from services.backend_client import BackendClient, clear_auth_cookies, forward_set_cookies
from stores.auth_store import AuthStore

logger = logging.getLogger("chirpynosh.middleware")


# ============================================================================
# Helper Functions
# ============================================================================


def is_gate_exempt(path: str) -> bool:
    """Static assets, API proxies, health checks and file requests skip the gate."""
    return (
        path.startswith("/static")
        or path.startswith("/api")
        or path.startswith("/health-check")
        or "." in path
    )


def _matches(path: str, prefixes) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


def see_other(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)


# ============================================================================
# Request Logging Middleware
# ============================================================================


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all HTTP requests and responses"""

    async def dispatch(self, request: Request, call_next):
        # Generate unique request ID
        request_id = str(uuid4())
        request.state.request_id = request_id

        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else None,
            },
        )

        start_time = time.time()

        try:
            response: Response = await call_next(request)
            process_time = time.time() - start_time

            logger.info(
                "Request completed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "url": str(request.url),
                    "status_code": response.status_code,
                    "process_time": f"{process_time:.4f}s",
                },
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{process_time:.4f}"

            return response

        except Exception as exc:
            process_time = time.time() - start_time
            logger.error(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "url": str(request.url),
                    "error": str(exc),
                    "process_time": f"{process_time:.4f}s",
                },
                exc_info=True,
            )
            raise


# ============================================================================
# Auth Gate Middleware
# ============================================================================


class AuthGateMiddleware(BaseHTTPMiddleware):
    """
    Cookie-based route gate.

    Signed-in users are bounced off /login and /signup to their dashboard,
    anonymous users are sent from protected areas to /login with a redirect
    back. Whatever cookies the backend rotated during the request are relayed
    to the browser on the way out.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if is_gate_exempt(path):
            return await call_next(request)

        backend = BackendClient.for_request(request)
        store = AuthStore.for_request(request)
        clear_stale = False

        if _matches(path, settings.auth_routes) and backend.has_tokens:
            user = await store.verify(backend)
            if user is not None:
                response = see_other(get_dashboard_path(user.role))
                forward_set_cookies(response, backend.set_cookie_headers)
                return response
            logger.info("Clearing stale auth cookies on %s", path)
            clear_stale = True

        elif _matches(path, settings.protected_routes):
            if not backend.has_tokens:
                return see_other(login_redirect(request))
            user = await store.verify(backend)
            if user is None:
                logger.info("Session expired, redirecting %s to login", path)
                response = see_other(login_redirect(request))
                clear_auth_cookies(response)
                return response
            request.state.user = user

        if clear_stale:
            backend.drop_tokens()
            store.set_user(None)

        response = await call_next(request)
        if clear_stale:
            clear_auth_cookies(response)
        forward_set_cookies(response, backend.set_cookie_headers)
        return response


# ============================================================================
# Error Handlers
# ============================================================================


async def redirect_required_handler(request: Request, exc: RedirectRequired):
    return see_other(exc.location)


async def unauthorized_exception_handler(request: Request, exc: UnauthorizedError):
    """Session could not be refreshed: start over at the login page."""
    logger.info(f"Unauthorized on {request.url}: {exc.message}")
    AuthStore.for_request(request).set_user(None)
    response = see_other(login_redirect(request))
    clear_auth_cookies(response)
    return response


async def api_exception_handler(request: Request, exc: ApiError):
    """Backend errors pass their status through to the error page"""
    logger.warning(f"Backend error {exc.http_status} on {request.url}: {exc.message}")

    return render(
        request,
        "error.html",
        {"status_code": exc.http_status, "message": exc.message},
        status_code=exc.http_status,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle malformed form or query input"""
    logger.warning(f"Validation error on {request.url}: {exc.errors()}")

    return render(
        request,
        "error.html",
        {"status_code": 400, "message": "Some of the submitted values were invalid."},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions"""
    logger.warning(f"HTTP {exc.status_code} on {request.url}: {exc.detail}")

    message = "Page not found" if exc.status_code == 404 else str(exc.detail)
    return render(
        request,
        "error.html",
        {"status_code": exc.status_code, "message": message},
        status_code=exc.status_code,
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.exception(f"Unexpected error on {request.url}: {str(exc)}")

    return render(
        request,
        "error.html",
        {"status_code": 500, "message": "An unexpected error occurred"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
