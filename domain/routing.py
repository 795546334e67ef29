"""Role- and KYC-driven navigation targets."""

from typing import Optional, Union

from domain.enums import KycStatus, UserRole

_DASHBOARD_PATHS = {
    UserRole.SIMPLE_RECIPIENT: "/dashboard/recipient",
    UserRole.NGO_RECIPIENT: "/dashboard/ngo-recipient",
    UserRole.FOOD_SUPPLIER: "/dashboard/food-supplier",
    UserRole.ADMIN: "/admin-dash",
}

_CLAIMS_PATHS = {
    UserRole.SIMPLE_RECIPIENT: "/dashboard/recipient/claims",
    UserRole.NGO_RECIPIENT: "/dashboard/ngo-recipient/claims",
    UserRole.FOOD_SUPPLIER: "/dashboard/food-supplier/claims",
}


def _as_role(role: Union[UserRole, str, None]) -> Optional[UserRole]:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def get_dashboard_path(role: Union[UserRole, str, None]) -> str:
    """Landing dashboard for a role; unknown roles go to /dashboard."""
    return _DASHBOARD_PATHS.get(_as_role(role), "/dashboard")


def get_claims_path(role: Union[UserRole, str, None]) -> str:
    return _CLAIMS_PATHS.get(_as_role(role), get_dashboard_path(role))


def is_organization_role(role: Union[UserRole, str, None]) -> bool:
    """NGO recipients and food suppliers act for an organization and need KYC."""
    return _as_role(role) in (UserRole.NGO_RECIPIENT, UserRole.FOOD_SUPPLIER)


def get_kyc_redirect_path(status: Union[KycStatus, str, None]) -> Optional[str]:
    """Where an organization user with the given KYC status belongs.

    Returns None once KYC is approved.
    """
    try:
        status = KycStatus(status) if status is not None else KycStatus.NOT_SUBMITTED
    except ValueError:
        return "/kyc/submit"
    if status == KycStatus.APPROVED:
        return None
    if status == KycStatus.PENDING:
        return "/kyc/status"
    return "/kyc/submit"
