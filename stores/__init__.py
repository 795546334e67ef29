"""Client-side state kept in the signed session."""

from stores.auth_store import AuthStore
from stores.signup_wizard import SignupWizard, SignupState, validate_password

__all__ = ["AuthStore", "SignupWizard", "SignupState", "validate_password"]
