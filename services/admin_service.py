"""Administration calls under /admin. Every response wraps its payload in ``data``."""

import logging
from typing import Optional

from app.exceptions import ServiceValidationError
from domain.schemas import (
    AdminOrganization,
    AdminOrganizationsPage,
    AdminUser,
    AdminUsersPage,
    AdminUserUpdate,
    DashboardStats,
    KycFilters,
    KycSubmission,
    KycSubmissionsPage,
    OrgFilters,
    UserFilters,
)
from services.backend_client import BackendClient

logger = logging.getLogger("chirpynosh.admin")


def _require_reason(reason: Optional[str], message: str) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ServiceValidationError(message)
    return reason


class AdminService:
    @staticmethod
    async def get_dashboard_stats(backend: BackendClient) -> DashboardStats:
        body = await backend.get("/admin/dashboard")
        return DashboardStats.model_validate(body.get("data") or {})

    # Users

    @staticmethod
    async def list_users(
        backend: BackendClient, filters: Optional[UserFilters] = None
    ) -> AdminUsersPage:
        params = filters.to_wire() if filters else None
        body = await backend.get("/admin/users", params=params)
        return AdminUsersPage.model_validate(body.get("data") or {})

    @staticmethod
    async def get_user(backend: BackendClient, user_id: str) -> AdminUser:
        body = await backend.get(f"/admin/users/{user_id}")
        return AdminUser.model_validate(body["data"])

    @staticmethod
    async def update_user(
        backend: BackendClient, user_id: str, updates: AdminUserUpdate
    ) -> AdminUser:
        body = await backend.patch(f"/admin/users/{user_id}", json=updates.to_wire())
        return AdminUser.model_validate(body["data"])

    @staticmethod
    async def restrict_user(backend: BackendClient, user_id: str, reason: str) -> None:
        reason = _require_reason(reason, "A restriction reason is required")
        await backend.patch(f"/admin/users/{user_id}/restrict", json={"reason": reason})
        logger.info("Restricted user %s", user_id)

    @staticmethod
    async def unrestrict_user(backend: BackendClient, user_id: str) -> None:
        await backend.patch(f"/admin/users/{user_id}/unrestrict")

    @staticmethod
    async def delete_user(backend: BackendClient, user_id: str) -> None:
        await backend.delete(f"/admin/users/{user_id}")
        logger.info("Deleted user %s", user_id)

    # Organizations

    @staticmethod
    async def list_organizations(
        backend: BackendClient, filters: Optional[OrgFilters] = None
    ) -> AdminOrganizationsPage:
        params = filters.to_wire() if filters else None
        body = await backend.get("/admin/organizations", params=params)
        return AdminOrganizationsPage.model_validate(body.get("data") or {})

    @staticmethod
    async def get_organization(backend: BackendClient, org_id: str) -> AdminOrganization:
        body = await backend.get(f"/admin/organizations/{org_id}")
        return AdminOrganization.model_validate(body["data"])

    @staticmethod
    async def restrict_organization(backend: BackendClient, org_id: str, reason: str) -> None:
        reason = _require_reason(reason, "A restriction reason is required")
        await backend.patch(
            f"/admin/organizations/{org_id}/restrict", json={"reason": reason}
        )
        logger.info("Restricted organization %s", org_id)

    @staticmethod
    async def unrestrict_organization(backend: BackendClient, org_id: str) -> None:
        await backend.patch(f"/admin/organizations/{org_id}/unrestrict")

    @staticmethod
    async def delete_organization(backend: BackendClient, org_id: str) -> None:
        await backend.delete(f"/admin/organizations/{org_id}")
        logger.info("Deleted organization %s", org_id)

    # KYC review

    @staticmethod
    async def list_kyc_submissions(
        backend: BackendClient, filters: Optional[KycFilters] = None
    ) -> KycSubmissionsPage:
        params = filters.to_wire() if filters else None
        body = await backend.get("/admin/kyc", params=params)
        return KycSubmissionsPage.model_validate(body.get("data") or {})

    @staticmethod
    async def get_kyc_submission(backend: BackendClient, kyc_id: str) -> KycSubmission:
        body = await backend.get(f"/admin/kyc/{kyc_id}")
        return KycSubmission.model_validate(body["data"])

    @staticmethod
    async def get_kyc_document_url(backend: BackendClient, kyc_id: str, doc_type: str) -> str:
        body = await backend.get(f"/admin/kyc/{kyc_id}/document/{doc_type}")
        return body["data"]["url"]

    @staticmethod
    async def approve_kyc(backend: BackendClient, kyc_id: str, notes: Optional[str] = None) -> None:
        await backend.patch(f"/admin/kyc/{kyc_id}/approve", json={"reviewNotes": notes or ""})
        logger.info("Approved KYC %s", kyc_id)

    @staticmethod
    async def reject_kyc(backend: BackendClient, kyc_id: str, reason: str) -> None:
        reason = _require_reason(reason, "A rejection reason is required")
        await backend.patch(
            f"/admin/kyc/{kyc_id}/reject", json={"rejectionReason": reason}
        )
        logger.info("Rejected KYC %s", kyc_id)
