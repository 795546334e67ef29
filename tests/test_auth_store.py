"""
Persisted auth store tests (session-backed user snapshot).
"""

import httpx
import pytest

from domain.enums import UserRole
from domain.schemas import UserProfile
from stores.auth_store import STORE_KEY, AuthStore
from test_fixtures import API, backend, envelope, make_user_json


def test_empty_session_has_no_user():
    assert AuthStore({}).user is None


def test_set_user_persists_camel_case_snapshot():
    session = {}
    user = UserProfile.model_validate(make_user_json("NGO_RECIPIENT"))

    AuthStore(session).set_user(user)

    snapshot = session[STORE_KEY]["user"]
    assert snapshot["id"] == user.id
    assert snapshot["isEmailVerified"] is True
    assert AuthStore(session).user.model_dump() == user.model_dump()


def test_set_user_none_clears_snapshot():
    session = {STORE_KEY: {"user": make_user_json()}}
    store = AuthStore(session)

    store.set_user(None)

    assert STORE_KEY not in session
    assert store.user is None


def test_unreadable_snapshot_is_discarded():
    session = {STORE_KEY: {"user": {"id": "u1", "role": "SPACE_CADET"}}}

    assert AuthStore(session).user is None
    assert STORE_KEY not in session


@pytest.mark.asyncio
async def test_fetch_user_updates_snapshot(backend, respx_mock):
    user = make_user_json("FOOD_SUPPLIER")
    respx_mock.get(f"{API}/auth/me").mock(return_value=httpx.Response(200, json=envelope(user)))
    session = {}
    store = AuthStore(session)

    profile = await store.fetch_user(backend)

    assert profile.role == UserRole.FOOD_SUPPLIER
    assert session[STORE_KEY]["user"]["id"] == user["id"]


@pytest.mark.asyncio
async def test_logout_clears_snapshot_when_backend_fails(backend, respx_mock):
    respx_mock.post(f"{API}/auth/logout").mock(return_value=httpx.Response(503, json={}))
    session = {STORE_KEY: {"user": make_user_json()}}
    store = AuthStore(session)

    await store.logout(backend)

    assert STORE_KEY not in session
    assert not backend.has_tokens


@pytest.mark.asyncio
async def test_initialize_refreshes_first_and_runs_once(backend, respx_mock):
    user = make_user_json()
    refresh = respx_mock.post(f"{API}/auth/refresh").mock(
        return_value=httpx.Response(200, json=envelope(user))
    )
    me = respx_mock.get(f"{API}/auth/me")
    store = AuthStore({})

    first = await store.initialize(backend)
    second = await store.initialize(backend)

    assert first.id == user["id"]
    assert second.id == user["id"]
    assert store.is_initialized
    assert refresh.call_count == 1
    assert me.call_count == 0


@pytest.mark.asyncio
async def test_initialize_falls_back_to_me(backend, respx_mock):
    user = make_user_json()
    respx_mock.post(f"{API}/auth/refresh").mock(return_value=httpx.Response(401, json={}))
    respx_mock.get(f"{API}/auth/me").mock(return_value=httpx.Response(200, json=envelope(user)))
    store = AuthStore({})

    assert (await store.initialize(backend)).id == user["id"]


@pytest.mark.asyncio
async def test_refresh_auth_reports_failure(backend, respx_mock):
    respx_mock.post(f"{API}/auth/refresh").mock(return_value=httpx.Response(401, json={}))
    session = {STORE_KEY: {"user": make_user_json()}}
    store = AuthStore(session)

    assert await store.refresh_auth(backend) is False
    assert store.user is not None


@pytest.mark.asyncio
async def test_verify_falls_back_to_refresh(backend, respx_mock):
    user = make_user_json()
    me = respx_mock.get(f"{API}/auth/me").mock(
        return_value=httpx.Response(401, json={"message": "jwt expired"})
    )
    refresh = respx_mock.post(f"{API}/auth/refresh").mock(
        return_value=httpx.Response(200, json=envelope(user))
    )
    session = {}

    profile = await AuthStore(session).verify(backend)

    assert profile is not None and profile.id == user["id"]
    assert me.call_count == 1
    assert refresh.call_count == 1
    assert session[STORE_KEY]["user"]["id"] == user["id"]


@pytest.mark.asyncio
async def test_verify_clears_snapshot_when_both_fail(backend, respx_mock):
    respx_mock.get(f"{API}/auth/me").mock(return_value=httpx.Response(401, json={}))
    respx_mock.post(f"{API}/auth/refresh").mock(return_value=httpx.Response(401, json={}))
    session = {STORE_KEY: {"user": make_user_json()}}

    assert await AuthStore(session).verify(backend) is None
    assert STORE_KEY not in session
