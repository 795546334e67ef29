"""
Backend client tests: cookie relay, token refresh and error mapping.
"""

import asyncio

import httpx
import pytest
from starlette.responses import Response

from app.exceptions import (
    ApiError,
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
    ServiceValidationError,
    UnauthorizedError,
)
from services.backend_client import (
    BackendClient,
    clear_auth_cookies,
    forward_set_cookies,
)
from test_fixtures import (
    ACCESS,
    API,
    REFRESH,
    anonymous_backend,
    backend,
    token_cookie,
)


# =============================================================================
# COOKIES
# =============================================================================


@pytest.mark.asyncio
async def test_only_auth_cookies_are_kept():
    async with httpx.AsyncClient() as http_client:
        client = BackendClient(
            http_client, cookies={ACCESS: "a", REFRESH: "r", "theme": "dark", "_ga": "x"}
        )
    assert client.cookies == {ACCESS: "a", REFRESH: "r"}
    assert client.has_tokens
    assert client.refresh_token == "r"


@pytest.mark.asyncio
async def test_cookie_header_is_sent(backend, respx_mock):
    route = respx_mock.get(f"{API}/profile").mock(
        return_value=httpx.Response(200, json={"success": True})
    )

    await backend.get("/profile")

    cookie = route.calls[0].request.headers["cookie"]
    assert f"{ACCESS}=access-token" in cookie
    assert f"{REFRESH}=refresh-token" in cookie


@pytest.mark.asyncio
async def test_anonymous_request_sends_no_cookie(anonymous_backend, respx_mock):
    route = respx_mock.get(f"{API}/hub/categories").mock(
        return_value=httpx.Response(200, json={"categories": []})
    )

    await anonymous_backend.get("/hub/categories")

    assert "cookie" not in route.calls[0].request.headers
    assert not anonymous_backend.has_tokens


@pytest.mark.asyncio
async def test_rotated_cookies_are_absorbed(backend, respx_mock):
    respx_mock.get(f"{API}/profile").mock(
        return_value=httpx.Response(
            200,
            json={"success": True},
            headers=[("set-cookie", token_cookie(ACCESS, "rotated"))],
        )
    )

    await backend.get("/profile")

    assert backend.cookies[ACCESS] == "rotated"
    assert len(backend.set_cookie_headers) == 1


@pytest.mark.asyncio
async def test_deleted_cookie_is_dropped(backend, respx_mock):
    respx_mock.post(f"{API}/auth/logout").mock(
        return_value=httpx.Response(
            200,
            json={"success": True},
            headers=[("set-cookie", f"{ACCESS}=; Path=/api; Max-Age=0")],
        )
    )

    await backend.post("/auth/logout", allow_refresh=False)

    assert ACCESS not in backend.cookies
    assert backend.cookies[REFRESH] == "refresh-token"


@pytest.mark.asyncio
async def test_get_drops_empty_params_and_lowercases_booleans(backend, respx_mock):
    route = respx_mock.get(f"{API}/admin/users").mock(
        return_value=httpx.Response(200, json={"data": {}})
    )

    await backend.get(
        "/admin/users", params={"search": "", "role": None, "isRestricted": True, "page": 2}
    )

    params = route.calls[0].request.url.params
    assert params.get("isRestricted") == "true"
    assert params.get("page") == "2"
    assert "search" not in params
    assert "role" not in params


# =============================================================================
# REFRESH AND RETRY
# =============================================================================


@pytest.mark.asyncio
async def test_expired_access_token_is_refreshed_once(backend, respx_mock):
    listings = respx_mock.get(f"{API}/listings").mock(
        side_effect=[
            httpx.Response(401, json={"success": False, "message": "Token expired"}),
            httpx.Response(200, json={"listings": [], "pagination": {"total": 0}}),
        ]
    )
    refresh = respx_mock.post(f"{API}/auth/refresh").mock(
        return_value=httpx.Response(
            200,
            json={"success": True},
            headers=[("set-cookie", token_cookie(ACCESS, "fresh-token"))],
        )
    )

    body = await backend.get("/listings")

    assert body["listings"] == []
    assert refresh.call_count == 1
    assert listings.call_count == 2
    assert f"{ACCESS}=fresh-token" in listings.calls[1].request.headers["cookie"]


@pytest.mark.asyncio
async def test_refresh_rejected_raises_unauthorized(backend, respx_mock):
    respx_mock.get(f"{API}/listings").mock(
        return_value=httpx.Response(401, json={"message": "Token expired"})
    )
    respx_mock.post(f"{API}/auth/refresh").mock(
        return_value=httpx.Response(401, json={"success": False})
    )

    with pytest.raises(UnauthorizedError) as exc_info:
        await backend.get("/listings")

    assert exc_info.value.message == "Token expired"
    assert exc_info.value.http_status == 401


@pytest.mark.asyncio
async def test_signin_failure_never_refreshes(backend, respx_mock):
    respx_mock.post(f"{API}/auth/signin").mock(
        return_value=httpx.Response(401, json={"message": "Invalid credentials"})
    )
    refresh = respx_mock.post(f"{API}/auth/refresh")

    with pytest.raises(UnauthorizedError):
        await backend.post("/auth/signin", json={"email": "a@b.c", "password": "x"})

    assert refresh.call_count == 0


@pytest.mark.asyncio
async def test_no_refresh_without_refresh_cookie(respx_mock):
    respx_mock.get(f"{API}/profile").mock(return_value=httpx.Response(401, json={}))
    refresh = respx_mock.post(f"{API}/auth/refresh")

    async with httpx.AsyncClient() as http_client:
        client = BackendClient(http_client, cookies={ACCESS: "only-access"})
        with pytest.raises(UnauthorizedError):
            await client.get("/profile")

    assert refresh.call_count == 0


# =============================================================================
# ERROR MAPPING
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code,error_cls",
    [
        (400, ServiceValidationError),
        (404, NotFoundError),
        (409, ConflictError),
        (422, ServiceValidationError),
    ],
)
async def test_status_maps_to_error_class(anonymous_backend, respx_mock, status_code, error_cls):
    respx_mock.get(f"{API}/hub/listings/missing").mock(
        return_value=httpx.Response(status_code, json={"success": False, "message": "Nope"})
    )

    with pytest.raises(error_cls) as exc_info:
        await anonymous_backend.get("/hub/listings/missing")

    assert exc_info.value.http_status == status_code
    assert exc_info.value.message == "Nope"


@pytest.mark.asyncio
async def test_first_field_error_is_used_without_message(anonymous_backend, respx_mock):
    respx_mock.post(f"{API}/auth/signup").mock(
        return_value=httpx.Response(
            400, json={"success": False, "errors": [{"field": "email", "message": "Invalid email"}]}
        )
    )

    with pytest.raises(ServiceValidationError, match="Invalid email"):
        await anonymous_backend.post("/auth/signup", json={})


@pytest.mark.asyncio
async def test_server_error_keeps_status(anonymous_backend, respx_mock):
    respx_mock.get(f"{API}/hub/categories").mock(return_value=httpx.Response(502, text="Bad gateway"))

    with pytest.raises(ApiError) as exc_info:
        await anonymous_backend.get("/hub/categories")

    assert exc_info.value.http_status == 502
    assert exc_info.value.message == "Something went wrong. Please try again."


@pytest.mark.asyncio
async def test_unreachable_backend(anonymous_backend, respx_mock):
    respx_mock.get(f"{API}/hub/categories").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(BackendUnavailableError) as exc_info:
        await anonymous_backend.get("/hub/categories")

    assert exc_info.value.http_status == 503


@pytest.mark.asyncio
async def test_empty_body_returns_empty_dict(backend, respx_mock):
    respx_mock.delete(f"{API}/profile/avatar").mock(return_value=httpx.Response(204))

    assert await backend.delete("/profile/avatar") == {}


# =============================================================================
# RELAYING COOKIES TO THE BROWSER
# =============================================================================


def test_forwarded_cookie_moves_to_root_path():
    response = Response()
    forward_set_cookies(
        response,
        [
            f"{ACCESS}=abc; Path=/api; Domain=api.chirpynosh.example; Max-Age=900; HttpOnly; SameSite=Lax",
            "tracking=1; Path=/",
        ],
    )

    headers = response.headers.getlist("set-cookie")
    assert len(headers) == 1
    header = headers[0]
    assert header.startswith(f"{ACCESS}=abc")
    assert "Path=/;" in header or header.endswith("Path=/")
    assert "Domain" not in header
    assert "HttpOnly" in header
    assert "Max-Age=900" in header


def test_forwarded_deletion_expires_cookie():
    response = Response()
    forward_set_cookies(response, [f"{REFRESH}=; Path=/api/auth; Max-Age=0"])

    header = response.headers.getlist("set-cookie")[0]
    assert header.startswith(f'{REFRESH}=""')
    assert "Max-Age=0" in header


def test_clear_auth_cookies_covers_legacy_refresh_path():
    response = Response()
    clear_auth_cookies(response)

    headers = response.headers.getlist("set-cookie")
    assert len(headers) == 3
    assert any("Path=/api/auth" in h for h in headers)
    assert all("Max-Age=0" in h for h in headers)


@pytest.mark.asyncio
async def test_concurrent_401s_share_one_rejected_refresh(backend, respx_mock):
    respx_mock.get(f"{API}/claims").mock(
        return_value=httpx.Response(401, json={"message": "Token expired"})
    )
    refresh = respx_mock.post(f"{API}/auth/refresh").mock(
        return_value=httpx.Response(401, json={"success": False})
    )

    results = await asyncio.gather(
        backend.get("/claims"),
        backend.get("/claims"),
        backend.get("/claims"),
        return_exceptions=True,
    )

    assert all(isinstance(r, UnauthorizedError) for r in results)
    assert refresh.call_count == 1


@pytest.mark.asyncio
async def test_concurrent_401s_share_one_successful_refresh(backend, respx_mock):
    respx_mock.get(f"{API}/claims").mock(
        side_effect=lambda request: httpx.Response(
            200 if "fresh-token" in request.headers.get("cookie", "") else 401,
            json={"claims": []},
        )
    )
    refresh = respx_mock.post(f"{API}/auth/refresh").mock(
        return_value=httpx.Response(
            200,
            json={"success": True},
            headers=[("set-cookie", token_cookie(ACCESS, "fresh-token"))],
        )
    )

    results = await asyncio.gather(
        backend.get("/claims"), backend.get("/claims"), backend.get("/claims")
    )

    assert [r["claims"] for r in results] == [[], [], []]
    assert refresh.call_count == 1
