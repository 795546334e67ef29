"""Admin dashboard: users, organizations and KYC review"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse

from app.exceptions import ApiError
from api.dependencies import get_backend, require_admin
from api.middleware import see_other
from api.templating import flash, render
from domain.enums import KycDocumentType, KycStatus, OrgType, UserRole
from domain.schemas import (
    AdminUserUpdate,
    KycFilters,
    OrgFilters,
    UserFilters,
    UserProfile,
)
from services.admin_service import AdminService
from services.backend_client import BackendClient

router = APIRouter(prefix="/admin-dash", tags=["Admin"])
logger = logging.getLogger("chirpynosh.api.admin")

BASE_PATH = "/admin-dash"
PAGE_SIZE = 10


def _enum_or_none(enum_cls, value: str):
    try:
        return enum_cls(value) if value else None
    except ValueError:
        return None


def _bool_or_none(value: str) -> Optional[bool]:
    return {"true": True, "false": False}.get(value)


def _back(next_url: str, default: str):
    """Only redirect back inside the admin area."""
    return see_other(next_url if next_url.startswith(BASE_PATH) else default)


@router.get("", response_class=HTMLResponse)
async def admin_dashboard(
    request: Request,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    stats = await AdminService.get_dashboard_stats(backend)
    return render(request, "admin/dashboard.html", {"stats": stats})


# ============================================================================
# Users
# ============================================================================


@router.get("/users", response_class=HTMLResponse)
async def admin_users(
    request: Request,
    search: str = "",
    role: str = "",
    restricted: str = "",
    page: int = 1,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    filters = UserFilters(
        page=max(page, 1),
        limit=PAGE_SIZE,
        role=_enum_or_none(UserRole, role),
        is_restricted=_bool_or_none(restricted),
        search=search.strip() or None,
    )
    result = await AdminService.list_users(backend, filters)
    return render(
        request,
        "admin/users.html",
        {
            "result": result,
            "roles": list(UserRole),
            "filters": {"search": search, "role": role, "restricted": restricted},
        },
    )


@router.get("/users/{user_id}", response_class=HTMLResponse)
async def admin_user_detail(
    request: Request,
    user_id: str,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    user = await AdminService.get_user(backend, user_id)
    return render(request, "admin/user_detail.html", {"user": user, "roles": list(UserRole)})


@router.post("/users/{user_id}")
async def admin_user_update(
    request: Request,
    user_id: str,
    name: str = Form(""),
    role: str = Form(""),
    is_email_verified: str = Form(""),
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    updates = AdminUserUpdate(
        name=name.strip() or None,
        role=_enum_or_none(UserRole, role),
        is_email_verified=_bool_or_none(is_email_verified),
    )
    try:
        await AdminService.update_user(backend, user_id, updates)
        flash(request, "User updated")
    except ApiError as e:
        flash(request, e.message or "Failed to update user", "error")
    return see_other(f"{BASE_PATH}/users/{user_id}")


@router.post("/users/{user_id}/restrict")
async def admin_user_restrict(
    request: Request,
    user_id: str,
    reason: str = Form(""),
    next_url: str = Form(f"{BASE_PATH}/users", alias="next"),
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await AdminService.restrict_user(backend, user_id, reason)
        flash(request, "User restricted")
    except ApiError as e:
        flash(request, e.message or "Failed to restrict user", "error")
    return _back(next_url, f"{BASE_PATH}/users")


@router.post("/users/{user_id}/unrestrict")
async def admin_user_unrestrict(
    request: Request,
    user_id: str,
    next_url: str = Form(f"{BASE_PATH}/users", alias="next"),
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await AdminService.unrestrict_user(backend, user_id)
        flash(request, "User unrestricted")
    except ApiError as e:
        flash(request, e.message or "Failed to unrestrict user", "error")
    return _back(next_url, f"{BASE_PATH}/users")


@router.post("/users/{user_id}/delete")
async def admin_user_delete(
    request: Request,
    user_id: str,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await AdminService.delete_user(backend, user_id)
        flash(request, "User deleted")
    except ApiError as e:
        flash(request, e.message or "Failed to delete user", "error")
    return see_other(f"{BASE_PATH}/users")


# ============================================================================
# Organizations
# ============================================================================


@router.get("/organizations", response_class=HTMLResponse)
async def admin_organizations(
    request: Request,
    search: str = "",
    type: str = "",
    verified: str = "",
    restricted: str = "",
    page: int = 1,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    filters = OrgFilters(
        page=max(page, 1),
        limit=PAGE_SIZE,
        type=_enum_or_none(OrgType, type),
        is_verified=_bool_or_none(verified),
        is_restricted=_bool_or_none(restricted),
        search=search.strip() or None,
    )
    result = await AdminService.list_organizations(backend, filters)
    return render(
        request,
        "admin/organizations.html",
        {
            "result": result,
            "org_types": [OrgType.NGO, OrgType.SUPPLIER],
            "filters": {
                "search": search,
                "type": type,
                "verified": verified,
                "restricted": restricted,
            },
        },
    )


@router.get("/organizations/{org_id}", response_class=HTMLResponse)
async def admin_organization_detail(
    request: Request,
    org_id: str,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    org = await AdminService.get_organization(backend, org_id)
    return render(request, "admin/organization_detail.html", {"org": org})


@router.post("/organizations/{org_id}/restrict")
async def admin_organization_restrict(
    request: Request,
    org_id: str,
    reason: str = Form(""),
    next_url: str = Form(f"{BASE_PATH}/organizations", alias="next"),
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await AdminService.restrict_organization(backend, org_id, reason)
        flash(request, "Organization restricted")
    except ApiError as e:
        flash(request, e.message or "Failed to restrict organization", "error")
    return _back(next_url, f"{BASE_PATH}/organizations")


@router.post("/organizations/{org_id}/unrestrict")
async def admin_organization_unrestrict(
    request: Request,
    org_id: str,
    next_url: str = Form(f"{BASE_PATH}/organizations", alias="next"),
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await AdminService.unrestrict_organization(backend, org_id)
        flash(request, "Organization unrestricted")
    except ApiError as e:
        flash(request, e.message or "Failed to unrestrict organization", "error")
    return _back(next_url, f"{BASE_PATH}/organizations")


@router.post("/organizations/{org_id}/delete")
async def admin_organization_delete(
    request: Request,
    org_id: str,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await AdminService.delete_organization(backend, org_id)
        flash(request, "Organization deleted")
    except ApiError as e:
        flash(request, e.message or "Failed to delete organization", "error")
    return see_other(f"{BASE_PATH}/organizations")


# ============================================================================
# KYC review
# ============================================================================


@router.get("/kyc", response_class=HTMLResponse)
async def admin_kyc_list(
    request: Request,
    search: str = "",
    status: str = "",
    org_type: str = "",
    page: int = 1,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    filters = KycFilters(
        page=max(page, 1),
        limit=PAGE_SIZE,
        status=_enum_or_none(KycStatus, status),
        org_type=_enum_or_none(OrgType, org_type),
        search=search.strip() or None,
    )
    result = await AdminService.list_kyc_submissions(backend, filters)
    return render(
        request,
        "admin/kyc.html",
        {
            "result": result,
            "statuses": [KycStatus.PENDING, KycStatus.APPROVED, KycStatus.REJECTED],
            "org_types": [OrgType.NGO, OrgType.SUPPLIER],
            "filters": {"search": search, "status": status, "org_type": org_type},
        },
    )


@router.get("/kyc/{kyc_id}", response_class=HTMLResponse)
async def admin_kyc_detail(
    request: Request,
    kyc_id: str,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    submission = await AdminService.get_kyc_submission(backend, kyc_id)
    return render(
        request,
        "admin/kyc_detail.html",
        {"submission": submission, "document_types": list(KycDocumentType)},
    )


@router.get("/kyc/{kyc_id}/document/{doc_type}")
async def admin_kyc_document(
    kyc_id: str,
    doc_type: KycDocumentType,
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    """Redirect to the short-lived signed document URL"""
    url = await AdminService.get_kyc_document_url(backend, kyc_id, doc_type.value)
    return see_other(url)


@router.post("/kyc/{kyc_id}/approve")
async def admin_kyc_approve(
    request: Request,
    kyc_id: str,
    notes: str = Form(""),
    next_url: str = Form(f"{BASE_PATH}/kyc", alias="next"),
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await AdminService.approve_kyc(backend, kyc_id, notes.strip() or None)
        flash(request, "KYC approved")
    except ApiError as e:
        flash(request, e.message or "Failed to approve KYC", "error")
    return _back(next_url, f"{BASE_PATH}/kyc")


@router.post("/kyc/{kyc_id}/reject")
async def admin_kyc_reject(
    request: Request,
    kyc_id: str,
    reason: str = Form(""),
    next_url: str = Form(f"{BASE_PATH}/kyc", alias="next"),
    admin: UserProfile = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await AdminService.reject_kyc(backend, kyc_id, reason)
        flash(request, "KYC rejected")
    except ApiError as e:
        flash(request, e.message or "Failed to reject KYC", "error")
    return _back(next_url, f"{BASE_PATH}/kyc")
