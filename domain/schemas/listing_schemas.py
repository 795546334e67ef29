from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field

from domain.enums import ClaimerType, ClaimStatus, ListingStatus
from domain.schemas.base import Pagination, WireModel

LISTING_CATEGORIES = [
    "Cooked Meals",
    "Bakery & Bread",
    "Fresh Produce",
    "Dairy Products",
    "Packaged Foods",
    "Beverages",
    "Snacks",
    "Groceries",
    "Other",
]

LISTING_UNITS = ["Portions", "Boxes", "Plates", "KG", "Packs", "Bags", "Liters", "Units"]


class OrganizationRef(WireModel):
    id: Optional[str] = None
    name: str


class ListingCounts(WireModel):
    claims: int = 0


class FoodListing(WireModel):
    """A supplier's food listing"""

    id: str
    org_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    category: str
    total_stock: int
    remaining_stock: int
    unit: str
    original_price: Decimal
    subsidized_price: Decimal
    claimer_type: ClaimerType = ClaimerType.BOTH
    pickup_start_at: datetime
    pickup_end_at: datetime
    expires_at: datetime
    status: ListingStatus = ListingStatus.ACTIVE
    image_keys: List[str] = Field(default_factory=list)
    video_key: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    organization: Optional[OrganizationRef] = None
    counts: Optional[ListingCounts] = Field(default=None, alias="_count")

    @property
    def is_free(self) -> bool:
        return self.subsidized_price == 0

    @property
    def discount_percent(self) -> int:
        if not self.original_price:
            return 0
        saved = (self.original_price - self.subsidized_price) / self.original_price
        return int(round(saved * 100))

    @property
    def claimed_count(self) -> int:
        return self.total_stock - self.remaining_stock

    def hours_until_expiry(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return (expires_at - now).total_seconds() / 3600


class ListingSummary(WireModel):
    """Partial listing embedded in claims"""

    id: Optional[str] = None
    title: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    image_keys: List[str] = Field(default_factory=list)
    pickup_start_at: Optional[datetime] = None
    pickup_end_at: Optional[datetime] = None
    organization: Optional[OrganizationRef] = None


class ClaimerRef(WireModel):
    id: str
    name: Optional[str] = None
    email: str
    organization: Optional[OrganizationRef] = None


class FoodClaim(WireModel):
    """A claim as seen by the supplier who owns the listing"""

    id: str
    listing_id: str
    claimer_id: Optional[str] = None
    claimer_org_id: Optional[str] = None
    claimer_type: Optional[Literal["NGO", "INDIVIDUAL"]] = None
    quantity: int
    unit_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    status: ClaimStatus
    completed_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    listing: Optional[ListingSummary] = None
    claimer: Optional[ClaimerRef] = None
    claimer_org: Optional[OrganizationRef] = None

    @property
    def claimer_label(self) -> str:
        if self.claimer_org:
            return self.claimer_org.name
        if self.claimer:
            return self.claimer.name or self.claimer.email
        return "Unknown"


class ListingPayload(WireModel):
    """Body for POST /listings and PATCH /listings/{id}"""

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    total_stock: Optional[int] = None
    unit: Optional[str] = None
    original_price: Optional[float] = None
    subsidized_price: Optional[float] = None
    claimer_type: Optional[ClaimerType] = None
    pickup_start_at: Optional[datetime] = None
    pickup_end_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    status: Optional[Literal["ACTIVE", "PAUSED"]] = None
    image_keys: Optional[List[str]] = None
    video_key: Optional[str] = None


class ListingForm(WireModel):
    """Raw listing form as posted by the add/edit pages"""

    title: str = ""
    description: str = ""
    category: str = ""
    total_stock: int = 1
    unit: str = "Portions"
    original_price: float = 0
    subsidized_price: float = 0
    claimer_type: ClaimerType = ClaimerType.BOTH
    pickup_start_at: Optional[datetime] = None
    pickup_end_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    image_keys: List[str] = Field(default_factory=list)
    video_key: Optional[str] = None

    @classmethod
    def from_listing(cls, listing: FoodListing) -> "ListingForm":
        return cls(
            title=listing.title,
            description=listing.description or "",
            category=listing.category,
            total_stock=listing.total_stock,
            unit=listing.unit,
            original_price=float(listing.original_price),
            subsidized_price=float(listing.subsidized_price),
            claimer_type=listing.claimer_type,
            pickup_start_at=listing.pickup_start_at,
            pickup_end_at=listing.pickup_end_at,
            expires_at=listing.expires_at,
            image_keys=list(listing.image_keys),
            video_key=listing.video_key,
        )

    def in_utc(self, tz_offset: Optional[int] = None) -> "ListingForm":
        """Pin the pickup and expiry times to UTC.

        ``datetime-local`` inputs post wall-clock times without an offset;
        ``tz_offset`` is the browser's ``Date.getTimezoneOffset()`` (minutes
        to add to local time to reach UTC). Without it, naive values are
        taken as UTC.
        """
        shift = timedelta(minutes=tz_offset or 0)

        def pin(value: Optional[datetime]) -> Optional[datetime]:
            if value is None:
                return None
            if value.tzinfo is not None:
                return value.astimezone(timezone.utc)
            return (value + shift).replace(tzinfo=timezone.utc)

        return self.model_copy(
            update={
                "pickup_start_at": pin(self.pickup_start_at),
                "pickup_end_at": pin(self.pickup_end_at),
                "expires_at": pin(self.expires_at),
            }
        )

    def to_payload(self) -> ListingPayload:
        return ListingPayload(
            title=self.title.strip(),
            description=self.description.strip() or None,
            category=self.category,
            total_stock=self.total_stock,
            unit=self.unit,
            original_price=self.original_price,
            subsidized_price=self.subsidized_price,
            claimer_type=self.claimer_type,
            pickup_start_at=self.pickup_start_at,
            pickup_end_at=self.pickup_end_at,
            expires_at=self.expires_at,
            image_keys=self.image_keys,
            video_key=self.video_key or None,
        )


class BrowseListingsParams(WireModel):
    search: Optional[str] = None
    category: Optional[str] = None
    claimer_type: Optional[Literal["NGO", "INDIVIDUAL"]] = None
    supplier_id: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort_by: Optional[Literal["price", "createdAt", "expiresAt"]] = None
    sort_order: Optional[Literal["asc", "desc"]] = None
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, le=100)

    def to_params(self) -> dict:
        return {k: v for k, v in self.to_wire().items() if v != ""}


class ListingsPage(WireModel):
    listings: List[FoodListing] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class SupplierClaimsPage(WireModel):
    claims: List[FoodClaim] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class CategoryCount(WireModel):
    name: str
    count: int = 0


class SupplierSummary(WireModel):
    id: str
    name: str
    listing_count: int = 0


class NgoSummary(WireModel):
    id: str
    name: str
    claim_count: int = 0


class UploadResult(WireModel):
    success: bool = True
    public_id: str
    url: str
