from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from domain.enums import ClaimStatus
from domain.schemas.base import Pagination, WireModel
from domain.schemas.listing_schemas import ListingSummary


class MyClaim(WireModel):
    """A claim as seen by the recipient who made it"""

    id: str
    listing_id: str
    quantity: int
    unit_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    status: ClaimStatus
    created_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    listing: Optional[ListingSummary] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ClaimStatus.PENDING


class ClaimsPage(WireModel):
    claims: List[MyClaim] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class ClaimStats(WireModel):
    total_claims: int = 0
    pending_claims: int = 0
    completed_claims: int = 0
    total_food_saved: int = 0
    impact_score: int = 0


class CreateClaimPayload(WireModel):
    listing_id: str
    quantity: int = Field(..., ge=1)
