"""Recipient and NGO dashboards, claims and profile pages"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse

from app.exceptions import ApiError, RedirectRequired
from api.dependencies import get_auth_store, get_backend, require_kyc_approved, require_user
from api.middleware import see_other
from api.templating import flash, render
from domain.enums import ClaimStatus, UserRole
from domain.routing import get_claims_path, get_dashboard_path
from domain.schemas import ProfileStats, UserProfile
from services.backend_client import BackendClient
from services.claims_service import ClaimsService, calculate_stats_from_claims
from services.profile_service import ProfileService
from stores.auth_store import AuthStore

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])
logger = logging.getLogger("chirpynosh.api.dashboard")

CLAIMER_SEGMENTS = {
    "recipient": UserRole.SIMPLE_RECIPIENT,
    "ngo-recipient": UserRole.NGO_RECIPIENT,
}
PROFILE_SEGMENTS = {**CLAIMER_SEGMENTS, "food-supplier": UserRole.FOOD_SUPPLIER}

CLAIM_TABS = [
    ("all", "All"),
    (ClaimStatus.PENDING.value, "Pending"),
    (ClaimStatus.COMPLETED.value, "Completed"),
    (ClaimStatus.CANCELLED.value, "Cancelled"),
]


async def _segment_user(
    segments: dict, segment: str, user: UserProfile, backend: BackendClient
) -> UserProfile:
    role = segments.get(segment)
    if role is None:
        raise HTTPException(status_code=404)
    if user.role != role:
        raise RedirectRequired(get_dashboard_path(user.role))
    await require_kyc_approved(user, backend)
    return user


async def claimer_for_segment(
    segment: str,
    user: UserProfile = Depends(require_user),
    backend: BackendClient = Depends(get_backend),
) -> UserProfile:
    return await _segment_user(CLAIMER_SEGMENTS, segment, user, backend)


async def profile_owner_for_segment(
    segment: str,
    user: UserProfile = Depends(require_user),
    backend: BackendClient = Depends(get_backend),
) -> UserProfile:
    return await _segment_user(PROFILE_SEGMENTS, segment, user, backend)


# ============================================================================
# Role redirects
# ============================================================================


@router.get("")
async def dashboard_root(user: UserProfile = Depends(require_user)):
    """Send the user to their role's dashboard"""
    return see_other(get_dashboard_path(user.role))


@router.get("/claims")
async def claims_root(user: UserProfile = Depends(require_user)):
    return see_other(get_claims_path(user.role))


# ============================================================================
# Profile (shared by every dashboard role)
# ============================================================================


@router.get("/{segment}/profile", response_class=HTMLResponse)
async def profile_page(
    request: Request,
    segment: str,
    user: UserProfile = Depends(profile_owner_for_segment),
    backend: BackendClient = Depends(get_backend),
):
    profile, stats = await asyncio.gather(
        ProfileService.get_profile(backend),
        ProfileService.get_stats(backend),
        return_exceptions=True,
    )
    if isinstance(profile, BaseException):
        if not isinstance(profile, ApiError):
            raise profile
        logger.warning("Profile unavailable, using session copy: %s", profile)
        profile = user
    if isinstance(stats, BaseException):
        stats = ProfileStats()
    return render(
        request,
        "dashboard/profile.html",
        {"profile": profile, "stats": stats, "segment": segment},
    )


@router.post("/{segment}/profile")
async def profile_update(
    request: Request,
    segment: str,
    name: str = Form(""),
    user: UserProfile = Depends(profile_owner_for_segment),
    backend: BackendClient = Depends(get_backend),
    store: AuthStore = Depends(get_auth_store),
):
    try:
        updated = await ProfileService.update_profile(backend, name)
    except ApiError as e:
        flash(request, e.message or "Failed to update profile", "error")
    else:
        store.set_user(updated)
        flash(request, "Profile updated successfully!")
    return see_other(f"/dashboard/{segment}/profile")


@router.post("/{segment}/profile/avatar")
async def profile_avatar_upload(
    request: Request,
    segment: str,
    avatar: UploadFile = File(...),
    user: UserProfile = Depends(profile_owner_for_segment),
    backend: BackendClient = Depends(get_backend),
    store: AuthStore = Depends(get_auth_store),
):
    content = await avatar.read()
    try:
        updated = await ProfileService.upload_avatar(
            backend, avatar.filename or "avatar", content, avatar.content_type
        )
    except ApiError as e:
        flash(request, e.message or "Failed to upload photo", "error")
    else:
        store.set_user(updated)
        flash(request, "Profile photo updated!")
    return see_other(f"/dashboard/{segment}/profile")


@router.post("/{segment}/profile/avatar/delete")
async def profile_avatar_delete(
    request: Request,
    segment: str,
    user: UserProfile = Depends(profile_owner_for_segment),
    backend: BackendClient = Depends(get_backend),
    store: AuthStore = Depends(get_auth_store),
):
    try:
        updated = await ProfileService.delete_avatar(backend)
    except ApiError as e:
        flash(request, e.message or "Failed to remove photo", "error")
    else:
        store.set_user(updated)
        flash(request, "Profile photo removed")
    return see_other(f"/dashboard/{segment}/profile")


# ============================================================================
# Claimer dashboards (individual and NGO recipients)
# ============================================================================


@router.get("/{segment}/claims", response_class=HTMLResponse)
async def my_claims_page(
    request: Request,
    segment: str,
    tab: str = "all",
    page: int = 1,
    user: UserProfile = Depends(claimer_for_segment),
    backend: BackendClient = Depends(get_backend),
):
    status: Optional[ClaimStatus] = None
    if tab != "all":
        try:
            status = ClaimStatus(tab)
        except ValueError:
            tab = "all"

    error = None
    claims, pagination = [], None
    try:
        result = await ClaimsService.get_claims(backend, status=status, page=max(page, 1))
        claims, pagination = result.claims, result.pagination
    except ApiError as e:
        logger.warning("Claims unavailable: %s", e)
        error = "Failed to load claims"

    return render(
        request,
        "dashboard/claims.html",
        {
            "claims": claims,
            "pagination": pagination,
            "tab": tab,
            "tabs": CLAIM_TABS,
            "segment": segment,
            "error": error,
        },
    )


@router.post("/{segment}/claims/{claim_id}/cancel")
async def cancel_claim(
    request: Request,
    segment: str,
    claim_id: str,
    reason: str = Form(""),
    tab: str = Form("all"),
    user: UserProfile = Depends(claimer_for_segment),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await ClaimsService.cancel_claim(backend, claim_id, reason.strip() or None)
        flash(request, "Claim cancelled")
    except ApiError as e:
        logger.warning("Cancel failed for claim %s: %s", claim_id, e)
        flash(request, "Failed to cancel claim. Please try again.", "error")
    return see_other(f"/dashboard/{segment}/claims?" + urlencode({"tab": tab}))


@router.post("/{segment}/claims/{claim_id}/resend-otp")
async def resend_claim_otp(
    request: Request,
    segment: str,
    claim_id: str,
    tab: str = Form("all"),
    user: UserProfile = Depends(claimer_for_segment),
    backend: BackendClient = Depends(get_backend),
):
    try:
        flash(request, await ClaimsService.resend_otp(backend, claim_id))
    except ApiError as e:
        logger.warning("OTP resend failed for claim %s: %s", claim_id, e)
        flash(request, "Failed to resend OTP. Please try again.", "error")
    return see_other(f"/dashboard/{segment}/claims?" + urlencode({"tab": tab}))


@router.get("/{segment}", response_class=HTMLResponse)
async def claimer_dashboard(
    request: Request,
    segment: str,
    user: UserProfile = Depends(claimer_for_segment),
    backend: BackendClient = Depends(get_backend),
):
    """Overview: stats derived from the most recent claims"""
    error = None
    claims = []
    try:
        claims = (await ClaimsService.get_claims(backend, limit=5)).claims
    except ApiError as e:
        logger.warning("Recent claims unavailable: %s", e)
        error = "Failed to load your claims"
    return render(
        request,
        "dashboard/claimer.html",
        {
            "claims": claims,
            "stats": calculate_stats_from_claims(claims),
            "segment": segment,
            "is_ngo": user.role == UserRole.NGO_RECIPIENT,
            "error": error,
        },
    )
