"""Services package - calls against the ChirpyNosh backend API"""

from services.backend_client import BackendClient
from services.auth_service import AuthService, KycService
from services.listings_service import HubService, ListingsService
from services.claims_service import ClaimsService
from services.profile_service import ProfileService
from services.admin_service import AdminService

__all__ = [
    "BackendClient",
    "AuthService",
    "KycService",
    "ListingsService",
    "HubService",
    "ClaimsService",
    "ProfileService",
    "AdminService",
]
