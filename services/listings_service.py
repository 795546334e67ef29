"""Supplier listing management, public hub browsing and media helpers."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from app.config import settings
from app.exceptions import ServiceValidationError
from domain.enums import ClaimStatus, ListingStatus
from domain.schemas import (
    BrowseListingsParams,
    CategoryCount,
    FoodClaim,
    FoodListing,
    ListingForm,
    ListingPayload,
    ListingsPage,
    NgoSummary,
    SupplierClaimsPage,
    SupplierSummary,
    UploadResult,
)
from services.backend_client import BackendClient

logger = logging.getLogger("chirpynosh.listings")

MAX_IMAGES = 5
MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_VIDEO_BYTES = 50 * 1024 * 1024

NEAR_EXPIRY_HOURS = 48


def validate_listing_form(form: ListingForm, now: Optional[datetime] = None) -> Optional[str]:
    """Return the first problem with a listing form, or None when it is valid."""
    now = now or datetime.now(timezone.utc)
    if not form.title.strip():
        return "Title is required"
    if not form.category:
        return "Category is required"
    if form.total_stock < 1:
        return "Stock must be at least 1"
    if form.subsidized_price > form.original_price:
        return "Subsidized price cannot exceed original price"
    if not form.pickup_start_at:
        return "Pickup start time is required"
    if not form.pickup_end_at:
        return "Pickup end time is required"
    if not form.expires_at:
        return "Expiry time is required"
    if _aware(form.pickup_end_at) <= _aware(form.pickup_start_at):
        return "Pickup end time must be after start time"
    if _aware(form.expires_at) <= now:
        return "Expiry time must be in the future"
    if not form.image_keys:
        return "At least one image is required"
    return None


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class ListingsService:
    """Calls under /listings, all scoped to the signed-in supplier's organization."""

    @staticmethod
    async def get_my_listings(
        backend: BackendClient,
        status: Optional[ListingStatus] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> ListingsPage:
        body = await backend.get(
            "/listings", params={"status": status, "page": page, "limit": limit}
        )
        return ListingsPage.model_validate(body)

    @staticmethod
    async def get_listing(backend: BackendClient, listing_id: str) -> FoodListing:
        body = await backend.get(f"/listings/{listing_id}")
        return FoodListing.model_validate(body["listing"])

    @staticmethod
    async def create_listing(backend: BackendClient, form: ListingForm) -> FoodListing:
        error = validate_listing_form(form)
        if error:
            raise ServiceValidationError(error)
        body = await backend.post("/listings", json=form.to_payload().to_wire())
        listing = FoodListing.model_validate(body["listing"])
        logger.info("Created listing %s", listing.id)
        return listing

    @staticmethod
    async def update_listing(
        backend: BackendClient, listing_id: str, payload: ListingPayload
    ) -> FoodListing:
        body = await backend.patch(f"/listings/{listing_id}", json=payload.to_wire())
        return FoodListing.model_validate(body["listing"])

    @staticmethod
    async def save_listing_form(
        backend: BackendClient, listing_id: str, form: ListingForm
    ) -> FoodListing:
        """Validate an edit form and send it as a full update."""
        error = validate_listing_form(form)
        if error:
            raise ServiceValidationError(error)
        return await ListingsService.update_listing(backend, listing_id, form.to_payload())

    @staticmethod
    async def pause_listing(backend: BackendClient, listing_id: str) -> FoodListing:
        body = await backend.patch(f"/listings/{listing_id}/pause")
        return FoodListing.model_validate(body["listing"])

    @staticmethod
    async def resume_listing(backend: BackendClient, listing_id: str) -> FoodListing:
        body = await backend.patch(f"/listings/{listing_id}/resume")
        return FoodListing.model_validate(body["listing"])

    @staticmethod
    async def toggle_pause(backend: BackendClient, listing: FoodListing) -> FoodListing:
        if listing.status == ListingStatus.ACTIVE:
            return await ListingsService.pause_listing(backend, listing.id)
        return await ListingsService.resume_listing(backend, listing.id)

    @staticmethod
    async def delete_listing(backend: BackendClient, listing_id: str) -> str:
        """Cancel a listing. Returns the backend message."""
        body = await backend.delete(f"/listings/{listing_id}")
        logger.info("Cancelled listing %s", listing_id)
        return body.get("message") or "Listing cancelled"

    # ------------------------------------------------------------------
    # Claims on the supplier's listings
    # ------------------------------------------------------------------

    @staticmethod
    async def get_supplier_claims(
        backend: BackendClient,
        status: Optional[ClaimStatus] = None,
        listing_id: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> SupplierClaimsPage:
        body = await backend.get(
            "/listings/claims",
            params={
                "status": status,
                "listingId": listing_id,
                "page": page,
                "limit": limit,
            },
        )
        return SupplierClaimsPage.model_validate(body)

    @staticmethod
    async def verify_pickup_otp(
        backend: BackendClient, claim_id: str, otp: str
    ) -> FoodClaim:
        """Confirm a pickup with the code the recipient shows at the counter."""
        otp = (otp or "").strip()
        if len(otp) != 6:
            raise ServiceValidationError("Please enter a valid 6-digit OTP")
        body = await backend.post(f"/listings/claims/{claim_id}/verify", json={"otp": otp})
        logger.info("Pickup verified for claim %s", claim_id)
        return FoodClaim.model_validate(body["claim"])

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    @staticmethod
    async def upload_image(
        backend: BackendClient, filename: str, content: bytes, content_type: Optional[str]
    ) -> UploadResult:
        if not (content_type or "").startswith("image/"):
            raise ServiceValidationError("Only image files are allowed")
        if len(content) > MAX_IMAGE_BYTES:
            raise ServiceValidationError("Image must be less than 10MB")
        body = await backend.request(
            "POST", "/listings/upload/image", files={"image": (filename, content, content_type)}
        )
        return UploadResult.model_validate(body)

    @staticmethod
    async def upload_video(
        backend: BackendClient, filename: str, content: bytes, content_type: Optional[str]
    ) -> UploadResult:
        if not (content_type or "").startswith("video/"):
            raise ServiceValidationError("Only video files are allowed")
        if len(content) > MAX_VIDEO_BYTES:
            raise ServiceValidationError("Video must be less than 50MB")
        body = await backend.request(
            "POST", "/listings/upload/video", files={"video": (filename, content, content_type)}
        )
        return UploadResult.model_validate(body)

    @staticmethod
    async def delete_media(backend: BackendClient, public_id: str) -> str:
        # public ids contain slashes, so they travel in the body
        body = await backend.delete("/listings/upload", json={"publicId": public_id})
        return body.get("message") or "Media deleted"


class HubService:
    """Public marketplace reads under /hub."""

    @staticmethod
    async def browse_listings(
        backend: BackendClient, params: Optional[BrowseListingsParams] = None
    ) -> ListingsPage:
        query = params.to_params() if params else None
        body = await backend.get("/hub/listings", params=query)
        return ListingsPage.model_validate(body)

    @staticmethod
    async def get_public_listing(backend: BackendClient, listing_id: str) -> FoodListing:
        body = await backend.get(f"/hub/listings/{listing_id}")
        return FoodListing.model_validate(body["listing"])

    @staticmethod
    async def get_categories(backend: BackendClient) -> List[CategoryCount]:
        body = await backend.get("/hub/categories")
        return [CategoryCount.model_validate(c) for c in body.get("categories") or []]

    @staticmethod
    async def get_verified_suppliers(backend: BackendClient) -> List[SupplierSummary]:
        body = await backend.get("/hub/suppliers")
        return [SupplierSummary.model_validate(s) for s in body.get("suppliers") or []]

    @staticmethod
    async def get_verified_ngos(backend: BackendClient) -> List[NgoSummary]:
        body = await backend.get("/hub/ngos")
        return [NgoSummary.model_validate(n) for n in body.get("ngos") or []]

    @staticmethod
    async def get_near_expiry(
        backend: BackendClient,
        hours: int = NEAR_EXPIRY_HOURS,
        now: Optional[datetime] = None,
    ) -> List[FoodListing]:
        """Listings expiring within the next ``hours``, soonest first."""
        page = await HubService.browse_listings(
            backend,
            BrowseListingsParams(page=1, limit=50, sort_by="expiresAt", sort_order="asc"),
        )
        now = now or datetime.now(timezone.utc)
        return [
            listing
            for listing in page.listings
            if 0 < listing.hours_until_expiry(now) <= hours
        ]


# ----------------------------------------------------------------------
# Cloudinary URL helpers
# ----------------------------------------------------------------------


def _transforms(width: Optional[int], height: Optional[int]) -> str:
    parts = []
    if width:
        parts.append(f"w_{width}")
    if height:
        parts.append(f"h_{height}")
    parts += ["c_fill", "f_auto", "q_auto"]
    return ",".join(parts) + "/"


def listing_image_url(
    public_id: str, width: Optional[int] = None, height: Optional[int] = None
) -> str:
    return (
        f"https://res.cloudinary.com/{settings.cloudinary_cloud_name}/image/upload/"
        f"{_transforms(width, height)}{public_id}"
    )


def listing_video_url(public_id: str) -> str:
    return f"https://res.cloudinary.com/{settings.cloudinary_cloud_name}/video/upload/{public_id}"


def video_thumbnail_url(
    public_id: str, width: Optional[int] = None, height: Optional[int] = None
) -> str:
    return (
        f"https://res.cloudinary.com/{settings.cloudinary_cloud_name}/video/upload/"
        f"{_transforms(width, height)}{public_id}.jpg"
    )
