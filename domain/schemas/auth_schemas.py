from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from domain.enums import (
    AuthProvider,
    KycStatus,
    OrgMemberRole,
    OrgType,
    UserRole,
)
from domain.schemas.base import WireModel


class OrgInfo(WireModel):
    """Organization the user belongs to"""

    id: str
    name: str
    type: OrgType
    is_verified: bool = False
    user_role: Optional[OrgMemberRole] = None


class UserProfile(WireModel):
    """User profile as returned by /auth/me, /auth/signin and /profile"""

    id: str
    email: str
    name: Optional[str] = None
    role: UserRole
    avatar: Optional[str] = None
    auth_provider: AuthProvider = AuthProvider.EMAIL
    is_email_verified: bool = False
    organization: Optional[OrgInfo] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]

    @property
    def initials(self) -> str:
        parts = self.display_name.split()
        return "".join(p[0] for p in parts[:2]).upper() or "?"


class SignupPayload(WireModel):
    email: str
    password: str
    name: Optional[str] = None
    role: UserRole
    organization_name: Optional[str] = None

    @field_validator("role")
    @classmethod
    def role_not_admin(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            raise ValueError("ADMIN accounts cannot be created through signup")
        return v


class LoginPayload(WireModel):
    email: str
    password: str


class GoogleAuthPayload(WireModel):
    google_token: str
    role: UserRole
    organization_name: Optional[str] = None


class GoogleAuthResult(WireModel):
    user: UserProfile
    is_new_user: bool = False


class KycDocuments(WireModel):
    tax_document: bool = False
    registration_doc: bool = False
    business_license: bool = False
    id_proof: bool = False


class KycStatusResponse(WireModel):
    status: KycStatus = KycStatus.NOT_SUBMITTED
    business_registered_name: Optional[str] = None
    tax_id: Optional[str] = None
    phone_number: Optional[str] = None
    business_address: Optional[str] = None
    has_documents: KycDocuments = Field(default_factory=KycDocuments)
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class KycSubmitPayload(WireModel):
    business_registered_name: str
    tax_id: str
    phone_number: str
    business_address: str

    @field_validator("*")
    @classmethod
    def required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Please fill in all business information")
        return v.strip()
