"""
Domain schemas package - Pydantic view-models mirroring backend JSON.
"""

from domain.schemas.base import WireModel, Pagination
from domain.schemas.auth_schemas import (
    OrgInfo,
    UserProfile,
    SignupPayload,
    LoginPayload,
    GoogleAuthPayload,
    GoogleAuthResult,
    KycDocuments,
    KycStatusResponse,
    KycSubmitPayload,
)
from domain.schemas.listing_schemas import (
    LISTING_CATEGORIES,
    LISTING_UNITS,
    FoodListing,
    FoodClaim,
    ListingPayload,
    ListingForm,
    BrowseListingsParams,
    ListingsPage,
    SupplierClaimsPage,
    CategoryCount,
    SupplierSummary,
    NgoSummary,
    UploadResult,
)
from domain.schemas.claim_schemas import (
    MyClaim,
    ClaimsPage,
    ClaimStats,
    CreateClaimPayload,
)
from domain.schemas.profile_schemas import UpdateProfilePayload, ProfileStats
from domain.schemas.admin_schemas import (
    AdminUser,
    AdminOrganization,
    KycSubmission,
    AdminUsersPage,
    AdminOrganizationsPage,
    KycSubmissionsPage,
    DashboardStats,
    UserFilters,
    OrgFilters,
    KycFilters,
    AdminUserUpdate,
)

__all__ = [
    "WireModel",
    "Pagination",
    # Auth schemas
    "OrgInfo",
    "UserProfile",
    "SignupPayload",
    "LoginPayload",
    "GoogleAuthPayload",
    "GoogleAuthResult",
    "KycDocuments",
    "KycStatusResponse",
    "KycSubmitPayload",
    # Listing schemas
    "LISTING_CATEGORIES",
    "LISTING_UNITS",
    "FoodListing",
    "FoodClaim",
    "ListingPayload",
    "ListingForm",
    "BrowseListingsParams",
    "ListingsPage",
    "SupplierClaimsPage",
    "CategoryCount",
    "SupplierSummary",
    "NgoSummary",
    "UploadResult",
    # Claim schemas
    "MyClaim",
    "ClaimsPage",
    "ClaimStats",
    "CreateClaimPayload",
    # Profile schemas
    "UpdateProfilePayload",
    "ProfileStats",
    # Admin schemas
    "AdminUser",
    "AdminOrganization",
    "KycSubmission",
    "AdminUsersPage",
    "AdminOrganizationsPage",
    "KycSubmissionsPage",
    "DashboardStats",
    "UserFilters",
    "OrgFilters",
    "KycFilters",
    "AdminUserUpdate",
]
