"""
Persisted auth store.

Keeps a snapshot of the signed-in user's profile in the signed session cookie
so the header and menus can render without a backend round trip. Only the
user is persisted; ``is_initialized`` lives for a single request.
"""

import logging
from typing import MutableMapping, Optional

from starlette.requests import Request

from domain.schemas import UserProfile
from services.auth_service import AuthService
from services.backend_client import BackendClient

logger = logging.getLogger("chirpynosh.stores.auth")

STORE_KEY = "chirpynosh-auth"


class AuthStore:
    def __init__(self, session: MutableMapping):
        self._session = session
        self._user: Optional[UserProfile] = None
        self._loaded = False
        self.is_initialized = False

    @classmethod
    def for_request(cls, request: Request) -> "AuthStore":
        store = getattr(request.state, "auth_store", None)
        if store is None:
            store = cls(request.session)
            request.state.auth_store = store
        return store

    @property
    def user(self) -> Optional[UserProfile]:
        if not self._loaded:
            self._loaded = True
            snapshot = (self._session.get(STORE_KEY) or {}).get("user")
            if snapshot:
                try:
                    self._user = UserProfile.model_validate(snapshot)
                except ValueError:
                    logger.warning("Discarding unreadable persisted user snapshot")
                    self._session.pop(STORE_KEY, None)
        return self._user

    def set_user(self, user: Optional[UserProfile]) -> None:
        self._user = user
        self._loaded = True
        if user is None:
            self._session.pop(STORE_KEY, None)
        else:
            self._session[STORE_KEY] = {
                "user": user.model_dump(mode="json", by_alias=True)
            }

    async def fetch_user(self, backend: BackendClient) -> Optional[UserProfile]:
        user = await AuthService.me(backend)
        self.set_user(user)
        return user

    async def logout(self, backend: BackendClient) -> None:
        try:
            await AuthService.logout(backend)
        finally:
            self.set_user(None)

    async def verify(self, backend: BackendClient) -> Optional[UserProfile]:
        """Validate the session for the auth gate: /auth/me first, then one
        refresh attempt."""
        user = await self.fetch_user(backend)
        if user is None and await self.refresh_auth(backend):
            user = self.user
        return user

    async def initialize(self, backend: BackendClient) -> Optional[UserProfile]:
        """Load the user once per request: refresh first to extend the session,
        then fall back to /auth/me."""
        if self.is_initialized:
            return self.user
        user = await AuthService.refresh(backend)
        if user is None:
            user = await AuthService.me(backend)
        self.set_user(user)
        self.is_initialized = True
        return user

    async def refresh_auth(self, backend: BackendClient) -> bool:
        user = await AuthService.refresh(backend)
        if user is None:
            return False
        self.set_user(user)
        return True
