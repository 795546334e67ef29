"""
Signup wizard state machine.

Steps run role -> organization (organization roles only) -> auth-method ->
email-form or Google -> otp-verification. Everything stays in the session
until the final backend call; the password is never persisted.
"""

import logging
import re
from typing import Any, MutableMapping, Optional

from pydantic import BaseModel

from app.exceptions import ApiError
from domain.enums import AuthMethod, UserRole, WizardStep
from domain.routing import is_organization_role
from domain.schemas import GoogleAuthPayload, SignupPayload, UserProfile
from services.auth_service import AuthService
from services.backend_client import BackendClient

logger = logging.getLogger("chirpynosh.stores.signup")

SESSION_KEY = "signup-wizard"

_UPPERCASE = re.compile(r"[A-Z]")
_LOWERCASE = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")


def validate_password(password: str) -> Optional[str]:
    """Return the first password-strength problem, or None."""
    if len(password) < 8:
        return "Password must be at least 8 characters"
    if not _UPPERCASE.search(password):
        return "Password must contain at least one uppercase letter"
    if not _LOWERCASE.search(password):
        return "Password must contain at least one lowercase letter"
    if not _DIGIT.search(password):
        return "Password must contain at least one number"
    return None


class SignupState(BaseModel):
    role: Optional[UserRole] = None
    organization_name: str = ""
    auth_method: Optional[AuthMethod] = None
    name: str = ""
    email: str = ""

    @property
    def normalized_email(self) -> str:
        return self.email.strip().lower()


class SignupWizard:
    EDITABLE_FIELDS = ("organization_name", "name", "email")

    def __init__(
        self,
        state: Optional[SignupState] = None,
        step: WizardStep = WizardStep.ROLE,
        error: Optional[str] = None,
        success_message: Optional[str] = None,
    ):
        self.state = state or SignupState()
        self.step = step
        self.error = error
        self.success_message = success_message

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, session: MutableMapping) -> "SignupWizard":
        raw = session.get(SESSION_KEY)
        if not raw:
            return cls()
        try:
            return cls(
                state=SignupState.model_validate(raw.get("state") or {}),
                step=WizardStep(raw.get("step", WizardStep.ROLE.value)),
                error=raw.get("error"),
                success_message=raw.get("success_message"),
            )
        except ValueError:
            logger.warning("Discarding unreadable signup wizard state")
            return cls()

    def save(self, session: MutableMapping) -> None:
        session[SESSION_KEY] = {
            "state": self.state.model_dump(mode="json"),
            "step": self.step.value,
            "error": self.error,
            "success_message": self.success_message,
        }

    @staticmethod
    def clear(session: MutableMapping) -> None:
        session.pop(SESSION_KEY, None)

    # ------------------------------------------------------------------
    # Synchronous transitions
    # ------------------------------------------------------------------

    @property
    def needs_organization(self) -> bool:
        return is_organization_role(self.state.role)

    def update_field(self, field: str, value: Any) -> None:
        if field not in self.EDITABLE_FIELDS:
            raise ValueError(f"Unknown signup field: {field}")
        setattr(self.state, field, value)
        self.error = None

    def select_role(self, role: UserRole) -> None:
        if role == UserRole.ADMIN:
            self.error = "Please select a valid role"
            return
        self.state.role = role
        self.error = None
        self.step = WizardStep.ORGANIZATION if self.needs_organization else WizardStep.AUTH_METHOD

    def submit_organization(self) -> bool:
        name = self.state.organization_name.strip()
        if not name:
            self.error = "Organization name is required"
            return False
        if len(name) < 2:
            self.error = "Organization name must be at least 2 characters"
            return False
        self.error = None
        self.step = WizardStep.AUTH_METHOD
        return True

    def select_auth_method(self, method: AuthMethod) -> None:
        self.state.auth_method = method
        self.error = None
        if method == AuthMethod.EMAIL:
            self.step = WizardStep.EMAIL_FORM
        # Google continues through the OAuth redirect

    def go_back(self) -> None:
        if self.step == WizardStep.ORGANIZATION:
            self.step = WizardStep.ROLE
        elif self.step == WizardStep.AUTH_METHOD:
            self.step = WizardStep.ORGANIZATION if self.needs_organization else WizardStep.ROLE
        elif self.step == WizardStep.EMAIL_FORM:
            self.step = WizardStep.AUTH_METHOD
        elif self.step == WizardStep.OTP_VERIFICATION:
            self.step = WizardStep.EMAIL_FORM
        self.error = None
        self.success_message = None

    def reset(self) -> None:
        self.state = SignupState()
        self.step = WizardStep.ROLE
        self.error = None
        self.success_message = None

    def _organization_name(self) -> Optional[str]:
        return self.state.organization_name.strip() if self.needs_organization else None

    # ------------------------------------------------------------------
    # Backend-backed transitions
    # ------------------------------------------------------------------

    async def submit_email_signup(self, backend: BackendClient, password: str) -> bool:
        """Validate the email form and ask the backend to send the OTP."""
        name = self.state.name.strip()
        if not name:
            self.error = "Name is required"
            return False
        if len(name) < 2:
            self.error = "Name must be at least 2 characters"
            return False
        if not self.state.email.strip():
            self.error = "Email is required"
            return False
        password_error = validate_password(password or "")
        if password_error:
            self.error = password_error
            return False
        if not self.state.role:
            self.error = "Please select a role"
            return False

        self.error = None
        payload = SignupPayload(
            email=self.state.normalized_email,
            password=password,
            name=name,
            role=self.state.role,
            organization_name=self._organization_name(),
        )
        try:
            self.success_message = await AuthService.signup(backend, payload)
        except ApiError as exc:
            self.error = exc.message or "Signup failed. Please try again."
            return False
        self.step = WizardStep.OTP_VERIFICATION
        return True

    async def handle_google_signup(
        self, backend: BackendClient, google_token: str
    ) -> Optional[UserProfile]:
        if not self.state.role:
            self.error = "Please select a role first"
            return None
        self.error = None
        payload = GoogleAuthPayload(
            google_token=google_token,
            role=self.state.role,
            organization_name=self._organization_name(),
        )
        try:
            result = await AuthService.google_auth(backend, payload)
        except ApiError as exc:
            self.error = exc.message or "Google signup failed"
            return None
        logger.info(
            "Google signup finished for %s (new user: %s)", result.user.id, result.is_new_user
        )
        return result.user

    async def verify_otp(self, backend: BackendClient, otp: str) -> Optional[UserProfile]:
        otp = (otp or "").strip()
        if len(otp) != 6:
            self.error = "Please enter a valid 6-digit OTP"
            return None
        self.error = None
        try:
            return await AuthService.verify_otp(backend, self.state.normalized_email, otp)
        except ApiError as exc:
            self.error = exc.message or "Invalid OTP"
            return None

    async def resend_otp(self, backend: BackendClient) -> bool:
        self.error = None
        try:
            self.success_message = await AuthService.resend_otp(
                backend, self.state.normalized_email
            )
        except ApiError as exc:
            self.error = exc.message or "Failed to resend OTP"
            return False
        return True
