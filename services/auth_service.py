"""Authentication and KYC calls against the backend."""

import logging
from typing import Optional

from pydantic import ValidationError

from app.exceptions import ApiError, ServiceValidationError
from domain.enums import KycDocumentType
from domain.schemas import (
    GoogleAuthPayload,
    GoogleAuthResult,
    KycStatusResponse,
    KycSubmitPayload,
    LoginPayload,
    SignupPayload,
    UserProfile,
)
from services.backend_client import BackendClient

logger = logging.getLogger("chirpynosh.auth")


def _user_from_envelope(body: dict, failure_message: str) -> UserProfile:
    if body.get("success") and body.get("data"):
        return UserProfile.model_validate(body["data"])
    raise ServiceValidationError(body.get("message") or failure_message)


class AuthService:
    """Session lifecycle. Tokens live in httpOnly cookies, never in our state."""

    @staticmethod
    async def signup(backend: BackendClient, payload: SignupPayload) -> str:
        """Create the account and trigger the email OTP. Issues no tokens.

        Returns:
            The backend's confirmation message
        """
        body = await backend.post("/auth/signup", json=payload.to_wire())
        return body.get("message") or "OTP sent to your email"

    @staticmethod
    async def verify_otp(backend: BackendClient, email: str, otp: str) -> UserProfile:
        body = await backend.post("/auth/verify-otp", json={"email": email, "otp": otp})
        return _user_from_envelope(body, "Verification failed")

    @staticmethod
    async def resend_otp(backend: BackendClient, email: str) -> str:
        body = await backend.post("/auth/resend-otp", json={"email": email})
        return body.get("message") or "OTP resent successfully"

    @staticmethod
    async def login(backend: BackendClient, payload: LoginPayload) -> UserProfile:
        """Sign in with email and password; the account must be verified."""
        body = await backend.post("/auth/signin", json=payload.to_wire())
        user = _user_from_envelope(body, "Login failed")
        logger.info("User %s signed in", user.id)
        return user

    @staticmethod
    async def google_auth(
        backend: BackendClient, payload: GoogleAuthPayload
    ) -> GoogleAuthResult:
        """
        Google sign-up or sign-in.

        New users are created with the requested role; for existing users the
        backend ignores the role and signs them in.
        """
        body = await backend.post("/auth/google", json=payload.to_wire())
        if not (body.get("success") and body.get("data")):
            raise ServiceValidationError(
                body.get("message") or "Google authentication failed"
            )
        data = dict(body["data"])
        is_new_user = bool(data.pop("isNewUser", False))
        return GoogleAuthResult(
            user=UserProfile.model_validate(data), is_new_user=is_new_user
        )

    @staticmethod
    async def me(backend: BackendClient) -> Optional[UserProfile]:
        """Current user, or None when the session is missing or invalid."""
        if not backend.has_tokens:
            return None
        try:
            body = await backend.get("/auth/me", allow_refresh=False)
        except ApiError:
            return None
        if body.get("success") and body.get("data"):
            return UserProfile.model_validate(body["data"])
        return None

    @staticmethod
    async def refresh(backend: BackendClient) -> Optional[UserProfile]:
        """Rotate tokens using the refresh cookie; None when that fails."""
        if not backend.refresh_token:
            return None
        try:
            body = await backend.post("/auth/refresh", allow_refresh=False)
        except ApiError:
            return None
        if body.get("success") and body.get("data"):
            return UserProfile.model_validate(body["data"])
        return None

    @staticmethod
    async def logout(backend: BackendClient) -> None:
        try:
            await backend.post("/auth/logout", allow_refresh=False)
        except ApiError as exc:
            logger.info("Backend logout failed, clearing local session anyway: %s", exc)
        backend.drop_tokens()


class KycService:
    @staticmethod
    async def get_status(backend: BackendClient) -> Optional[KycStatusResponse]:
        try:
            body = await backend.get("/kyc/status")
        except ApiError as exc:
            logger.info("KYC status unavailable: %s", exc)
            return None
        data = body.get("data")
        return KycStatusResponse.model_validate(data) if data else None

    @staticmethod
    async def upload_document(
        backend: BackendClient,
        doc_type: KycDocumentType,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> bool:
        body = await backend.request(
            "POST",
            f"/kyc/upload/{doc_type.value}",
            files={
                "document": (filename, content, content_type or "application/octet-stream")
            },
        )
        return bool(body.get("success"))

    @staticmethod
    async def submit(backend: BackendClient, payload: KycSubmitPayload) -> KycStatusResponse:
        body = await backend.post("/kyc/submit", json=payload.to_wire())
        if body.get("success") and body.get("data"):
            return KycStatusResponse.model_validate(body["data"])
        raise ServiceValidationError(body.get("message") or "KYC submission failed")

    @staticmethod
    def build_submission(**fields: str) -> KycSubmitPayload:
        """Validate the business information form."""
        try:
            return KycSubmitPayload(**fields)
        except ValidationError:
            raise ServiceValidationError("Please fill in all business information")
