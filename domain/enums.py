"""
Domain enums for the ChirpyNosh web client.
Values match the strings the backend sends on the wire.
"""

import enum


class UserRole(str, enum.Enum):
    """Account roles"""

    SIMPLE_RECIPIENT = "SIMPLE_RECIPIENT"
    NGO_RECIPIENT = "NGO_RECIPIENT"
    FOOD_SUPPLIER = "FOOD_SUPPLIER"
    ADMIN = "ADMIN"


SIGNUP_ROLES = (
    UserRole.SIMPLE_RECIPIENT,
    UserRole.NGO_RECIPIENT,
    UserRole.FOOD_SUPPLIER,
)


class AuthProvider(str, enum.Enum):
    EMAIL = "EMAIL"
    GOOGLE = "GOOGLE"


class OrgType(str, enum.Enum):
    """Organization type as reported on the user profile"""

    NGO = "NGO"
    FOOD_SUPPLIER = "FOOD_SUPPLIER"
    # admin endpoints use the short form
    SUPPLIER = "SUPPLIER"


class OrgMemberRole(str, enum.Enum):
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


class ClaimerType(str, enum.Enum):
    """Who may claim a listing"""

    NGO = "NGO"
    INDIVIDUAL = "INDIVIDUAL"
    BOTH = "BOTH"


class ListingStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    SOLD_OUT = "SOLD_OUT"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class ClaimStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class KycStatus(str, enum.Enum):
    NOT_SUBMITTED = "NOT_SUBMITTED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class KycDocumentType(str, enum.Enum):
    """Upload slots accepted by /kyc/upload/{docType}"""

    TAX_DOCUMENT = "taxDocument"
    REGISTRATION_DOC = "registrationDoc"
    BUSINESS_LICENSE = "businessLicense"
    ID_PROOF = "idProof"


class WizardStep(str, enum.Enum):
    """Signup wizard steps"""

    ROLE = "role"
    ORGANIZATION = "organization"
    AUTH_METHOD = "auth-method"
    EMAIL_FORM = "email-form"
    OTP_VERIFICATION = "otp-verification"


class AuthMethod(str, enum.Enum):
    EMAIL = "email"
    GOOGLE = "google"
