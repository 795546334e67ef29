from typing import Optional

from pydantic import Field

from domain.schemas.base import WireModel


class UpdateProfilePayload(WireModel):
    name: Optional[str] = Field(default=None, max_length=100)


class ProfileStats(WireModel):
    total_claims: int = 0
    completed_claims: int = 0
    pending_claims: int = 0
    cancelled_claims: int = 0
    total_listings: Optional[int] = None
    active_listings: Optional[int] = None
