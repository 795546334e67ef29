"""Profile calls under /profile."""

import logging
from typing import Optional

from app.exceptions import ServiceValidationError
from domain.schemas import ProfileStats, UpdateProfilePayload, UserProfile
from services.backend_client import BackendClient

logger = logging.getLogger("chirpynosh.profile")

MAX_AVATAR_BYTES = 5 * 1024 * 1024


def _profile(body: dict, failure_message: str) -> UserProfile:
    if body.get("success") and body.get("data"):
        return UserProfile.model_validate(body["data"])
    raise ServiceValidationError(body.get("message") or failure_message)


class ProfileService:
    @staticmethod
    async def get_profile(backend: BackendClient) -> UserProfile:
        body = await backend.get("/profile")
        return _profile(body, "Failed to get profile")

    @staticmethod
    async def update_profile(backend: BackendClient, name: Optional[str]) -> UserProfile:
        name = (name or "").strip()
        if len(name) < 2:
            raise ServiceValidationError("Name must be at least 2 characters")
        payload = UpdateProfilePayload(name=name)
        body = await backend.patch("/profile", json=payload.to_wire())
        return _profile(body, "Failed to update profile")

    @staticmethod
    async def upload_avatar(
        backend: BackendClient, filename: str, content: bytes, content_type: Optional[str]
    ) -> UserProfile:
        if not (content_type or "").startswith("image/"):
            raise ServiceValidationError("Please choose an image file")
        if len(content) > MAX_AVATAR_BYTES:
            raise ServiceValidationError("Photo must be less than 5MB")
        body = await backend.request(
            "POST", "/profile/avatar", files={"avatar": (filename, content, content_type)}
        )
        logger.info("Avatar uploaded")
        return _profile(body, "Failed to upload avatar")

    @staticmethod
    async def delete_avatar(backend: BackendClient) -> UserProfile:
        body = await backend.delete("/profile/avatar")
        return _profile(body, "Failed to delete avatar")

    @staticmethod
    async def get_stats(backend: BackendClient) -> ProfileStats:
        body = await backend.get("/profile/stats")
        if body.get("success") and body.get("data"):
            return ProfileStats.model_validate(body["data"])
        raise ServiceValidationError(body.get("message") or "Failed to get profile stats")
