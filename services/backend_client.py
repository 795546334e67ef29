"""
HTTP client for the ChirpyNosh REST API.

One ``BackendClient`` is bound to each incoming browser request. It forwards
the user's auth cookies, keeps any rotated cookies the backend sends so later
calls in the same request use them, and transparently refreshes an expired
access token once before giving up.
"""

import asyncio
import logging
from http.cookiejar import CookieJar, DefaultCookiePolicy
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, List, Mapping, Optional

import httpx
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings
from app.exceptions import ApiError, BackendUnavailableError, extract_error_message

logger = logging.getLogger("chirpynosh.backend")

# Calls that must never trigger the refresh-and-retry path
NO_REFRESH_ENDPOINTS = ("/auth/refresh", "/auth/signin", "/auth/logout")

MAX_REFRESH_FAILURES = 2

LEGACY_REFRESH_COOKIE_PATH = "/api/auth"


def auth_cookie_names() -> tuple:
    return (settings.access_cookie_name, settings.refresh_cookie_name)


def create_http_client() -> httpx.AsyncClient:
    """Shared connection pool for all backend calls.

    The client is shared across users, so its cookie jar refuses to store
    anything; cookies travel only through the per-request ``Cookie`` header.
    """
    jar = CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))
    return httpx.AsyncClient(
        timeout=settings.request_timeout_sec,
        cookies=httpx.Cookies(jar),
        headers={"Accept": "application/json"},
    )


def parse_set_cookie(raw: str) -> Optional[SimpleCookie]:
    cookie = SimpleCookie()
    try:
        cookie.load(raw)
    except CookieError:
        logger.warning("Ignoring unparsable Set-Cookie header from backend")
        return None
    return cookie


def _is_deletion(morsel) -> bool:
    return morsel.value == "" or morsel["max-age"] in ("0", "-1")


class BackendClient:
    """Per-request view of the backend API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cookies: Optional[Mapping[str, str]] = None,
        base_url: Optional[str] = None,
    ):
        self._http = http_client
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        names = auth_cookie_names()
        self.cookies: Dict[str, str] = {
            k: v for k, v in (cookies or {}).items() if k in names and v
        }
        self.set_cookie_headers: List[str] = []
        self._refresh_lock = asyncio.Lock()
        self._refresh_failures = 0
        self._rejected_header: Optional[str] = None

    @classmethod
    def for_request(cls, request: Request) -> "BackendClient":
        """Return the request's client, creating it on first use."""
        backend = getattr(request.state, "backend", None)
        if backend is None:
            backend = cls(request.app.state.http_client, cookies=request.cookies)
            request.state.backend = backend
        return backend

    @property
    def has_tokens(self) -> bool:
        return bool(self.cookies)

    @property
    def refresh_token(self) -> Optional[str]:
        return self.cookies.get(settings.refresh_cookie_name)

    def cookie_header(self) -> str:
        return "; ".join(f"{k}={v}" for k, v in self.cookies.items())

    def drop_tokens(self) -> None:
        self.cookies.clear()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _absorb_cookies(self, response: httpx.Response) -> None:
        names = auth_cookie_names()
        for raw in response.headers.get_list("set-cookie"):
            self.set_cookie_headers.append(raw)
            parsed = parse_set_cookie(raw)
            if parsed is None:
                continue
            for name, morsel in parsed.items():
                if name not in names:
                    continue
                if _is_deletion(morsel):
                    self.cookies.pop(name, None)
                else:
                    self.cookies[name] = morsel.value

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        files: Any = None,
    ) -> httpx.Response:
        headers = {}
        if self.cookies:
            headers["Cookie"] = self.cookie_header()
        url = f"{self._base_url}{path}"
        try:
            response = await self._http.request(
                method, url, params=params, json=json, files=files, headers=headers
            )
        except httpx.RequestError as exc:
            logger.error("Backend request %s %s failed: %s", method, path, exc)
            raise BackendUnavailableError(
                "Unable to connect to server. Please try again later."
            ) from exc
        self._absorb_cookies(response)
        logger.debug("Backend %s %s -> %s", method, path, response.status_code)
        return response

    async def _refresh_session(self, stale_header: str) -> bool:
        """Refresh tokens once for all callers that saw the same stale cookies."""
        async with self._refresh_lock:
            if self.cookie_header() != stale_header and self.cookies:
                # another call already rotated the tokens
                return True
            if stale_header == self._rejected_header:
                # the refresh for these cookies already failed
                return False
            if not self.refresh_token or self._refresh_failures >= MAX_REFRESH_FAILURES:
                return False
            response = await self._send("POST", "/auth/refresh")
            body = _safe_json(response)
            if response.is_success and isinstance(body, dict) and body.get("success"):
                self._refresh_failures = 0
                logger.info("Backend session refreshed")
                return True
            self._refresh_failures += 1
            self._rejected_header = stale_header
            logger.info("Backend session refresh rejected (%s)", response.status_code)
            return False

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        files: Any = None,
        allow_refresh: bool = True,
    ) -> Any:
        """Call the backend and return the decoded JSON body.

        Raises:
            ApiError: subclass chosen from the backend status code
            BackendUnavailableError: if the backend cannot be reached
        """
        sent_with = self.cookie_header()
        response = await self._send(method, path, params=params, json=json, files=files)

        if (
            response.status_code == 401
            and allow_refresh
            and not path.startswith(NO_REFRESH_ENDPOINTS)
            and await self._refresh_session(sent_with)
        ):
            response = await self._send(
                method, path, params=params, json=json, files=files
            )

        body = _safe_json(response)
        if response.is_error:
            message = extract_error_message(body)
            logger.warning(
                "Backend %s %s returned %s: %s",
                method,
                path,
                response.status_code,
                message,
            )
            details = body if isinstance(body, dict) else None
            raise ApiError.from_status(response.status_code, message, details=details)
        return body if body is not None else {}

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None, **kw) -> Any:
        return await self.request("GET", path, params=_clean(params), **kw)

    async def post(self, path: str, json: Any = None, **kw) -> Any:
        return await self.request("POST", path, json=json, **kw)

    async def patch(self, path: str, json: Any = None, **kw) -> Any:
        return await self.request("PATCH", path, json=json, **kw)

    async def delete(self, path: str, json: Any = None, **kw) -> Any:
        return await self.request("DELETE", path, json=json, **kw)


def _safe_json(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _clean(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Drop unset query parameters; booleans go out as true/false."""
    if params is None:
        return None
    cleaned: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif hasattr(value, "value"):
            value = value.value
        cleaned[key] = value
    return cleaned


# ----------------------------------------------------------------------
# Relaying cookies to the browser
# ----------------------------------------------------------------------


def forward_set_cookies(response: Response, raw_headers: List[str]) -> None:
    """Re-issue backend cookies on our own origin.

    Domain is dropped and Path forced to ``/`` so the browser sends the tokens
    back on every page navigation. Only the auth cookies are relayed.
    """
    names = auth_cookie_names()
    for raw in raw_headers:
        parsed = parse_set_cookie(raw)
        if parsed is None:
            continue
        for name, morsel in parsed.items():
            if name not in names:
                continue
            if _is_deletion(morsel):
                response.delete_cookie(name, path="/")
                continue
            max_age = morsel["max-age"]
            samesite = (morsel["samesite"] or "lax").lower()
            if samesite not in ("lax", "strict", "none"):
                samesite = "lax"
            response.set_cookie(
                name,
                morsel.value,
                max_age=int(max_age) if max_age else None,
                expires=morsel["expires"] or None,
                path="/",
                secure=settings.cookie_secure or bool(morsel["secure"]),
                httponly=bool(morsel["httponly"]),
                samesite=samesite,
            )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(settings.access_cookie_name, path="/")
    response.delete_cookie(settings.refresh_cookie_name, path="/")
    response.delete_cookie(settings.refresh_cookie_name, path=LEGACY_REFRESH_COOKIE_PATH)
