from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from domain.enums import AuthProvider, KycStatus, OrgType, UserRole
from domain.schemas.base import WireModel


class MembershipOrg(WireModel):
    id: str
    name: str
    type: OrgType
    is_verified: bool = False


class OrgMembership(WireModel):
    org: MembershipOrg


class AdminUser(WireModel):
    id: str
    email: str
    name: Optional[str] = None
    role: UserRole
    avatar: Optional[str] = None
    auth_provider: AuthProvider = AuthProvider.EMAIL
    is_email_verified: bool = False
    is_restricted: bool = False
    restricted_at: Optional[datetime] = None
    restriction_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    org_memberships: List[OrgMembership] = Field(default_factory=list)


class OrgOwner(WireModel):
    id: str
    email: str
    name: Optional[str] = None


class AdminOrganization(WireModel):
    id: str
    name: str
    type: OrgType
    is_verified: bool = False
    is_restricted: bool = False
    restriction_reason: Optional[str] = None
    kyc_status: KycStatus = KycStatus.NOT_SUBMITTED
    member_count: int = 0
    owner: Optional[OrgOwner] = None
    created_at: Optional[datetime] = None


class KycSubmission(WireModel):
    id: str
    org_id: str
    org_name: str
    org_type: OrgType
    status: KycStatus
    business_registered_name: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    is_org_restricted: bool = False


class AdminPage(WireModel):
    """Pagination envelope used by the /admin list endpoints"""

    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0
    has_more: bool = False

    @property
    def page_count(self) -> int:
        return self.total_pages

    @property
    def has_next(self) -> bool:
        return self.has_more or self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


class AdminUsersPage(AdminPage):
    users: List[AdminUser] = Field(default_factory=list)


class AdminOrganizationsPage(AdminPage):
    organizations: List[AdminOrganization] = Field(default_factory=list)


class KycSubmissionsPage(AdminPage):
    submissions: List[KycSubmission] = Field(default_factory=list)


class DashboardOverview(WireModel):
    total_users: int = 0
    total_orgs: int = 0
    pending_kyc: int = 0
    restricted_users: int = 0
    restricted_orgs: int = 0


class RecentActivity(WireModel):
    new_users_this_week: int = 0
    kyc_submissions_this_week: int = 0


class DashboardStats(WireModel):
    overview: DashboardOverview = Field(default_factory=DashboardOverview)
    users_by_role: Dict[str, int] = Field(default_factory=dict)
    orgs_by_type: Dict[str, int] = Field(default_factory=dict)
    recent: RecentActivity = Field(default_factory=RecentActivity)


class UserFilters(WireModel):
    page: Optional[int] = None
    limit: Optional[int] = None
    role: Optional[UserRole] = None
    is_restricted: Optional[bool] = None
    is_email_verified: Optional[bool] = None
    search: Optional[str] = None


class OrgFilters(WireModel):
    page: Optional[int] = None
    limit: Optional[int] = None
    type: Optional[OrgType] = None
    is_verified: Optional[bool] = None
    is_restricted: Optional[bool] = None
    search: Optional[str] = None


class KycFilters(WireModel):
    page: Optional[int] = None
    limit: Optional[int] = None
    status: Optional[KycStatus] = None
    org_type: Optional[OrgType] = None
    search: Optional[str] = None


class AdminUserUpdate(WireModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    is_email_verified: Optional[bool] = None
