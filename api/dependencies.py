"""
API dependencies for dependency injection
"""

from typing import Optional
from urllib.parse import urlencode

from fastapi import Depends, Request

from app.exceptions import RedirectRequired
from domain.enums import UserRole
from domain.routing import get_dashboard_path, get_kyc_redirect_path, is_organization_role
from domain.schemas import UserProfile
from services.auth_service import KycService
from services.backend_client import BackendClient
from stores.auth_store import AuthStore


def get_backend(request: Request) -> BackendClient:
    """
    Backend client bound to the current request.

    Usage:
        @router.get("/example")
        async def example(backend: BackendClient = Depends(get_backend)):
            body = await backend.get("/hub/listings")
    """
    return BackendClient.for_request(request)


def get_auth_store(request: Request) -> AuthStore:
    return AuthStore.for_request(request)


def login_redirect(request: Request) -> str:
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return "/login?" + urlencode({"redirect": target})


async def get_current_user(
    request: Request, backend: BackendClient = Depends(get_backend)
) -> Optional[UserProfile]:
    """The verified user, or None for anonymous visitors.

    Protected routes are verified by the auth gate already; other routes
    initialize the auth store here on demand, which also refreshes the
    snapshot the page header renders from.
    """
    user = getattr(request.state, "user", None)
    if user is None and backend.has_tokens:
        user = await AuthStore.for_request(request).initialize(backend)
        if user is not None:
            request.state.user = user
    return user


async def require_user(
    request: Request, user: Optional[UserProfile] = Depends(get_current_user)
) -> UserProfile:
    if user is None:
        raise RedirectRequired(login_redirect(request))
    return user


async def require_kyc_approved(
    user: UserProfile, backend: BackendClient
) -> None:
    """Organization users may only reach dashboards once KYC is approved."""
    if not is_organization_role(user.role):
        return
    kyc = await KycService.get_status(backend)
    kyc_path = get_kyc_redirect_path(kyc.status if kyc else None)
    if kyc_path:
        raise RedirectRequired(kyc_path)


def require_role(*roles: UserRole):
    """Dependency factory: the user must hold one of ``roles`` (and pass KYC)."""

    async def dependency(
        user: UserProfile = Depends(require_user),
        backend: BackendClient = Depends(get_backend),
    ) -> UserProfile:
        if user.role not in roles:
            raise RedirectRequired(get_dashboard_path(user.role))
        await require_kyc_approved(user, backend)
        return user

    return dependency


async def require_organization_user(
    user: UserProfile = Depends(require_user),
) -> UserProfile:
    """KYC pages only make sense for NGO and supplier accounts."""
    if not is_organization_role(user.role):
        raise RedirectRequired(get_dashboard_path(user.role))
    return user


async def require_admin(user: UserProfile = Depends(require_user)) -> UserProfile:
    if user.role != UserRole.ADMIN:
        raise RedirectRequired(get_dashboard_path(user.role))
    return user


require_supplier = require_role(UserRole.FOOD_SUPPLIER)
