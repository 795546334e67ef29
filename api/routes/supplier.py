"""Food supplier dashboard: listings, media and incoming claims"""

import asyncio
import logging
from typing import List, Optional, Tuple
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from app.exceptions import ApiError
from api.dependencies import get_backend, require_supplier
from api.middleware import see_other
from api.templating import flash, render
from domain.enums import ClaimStatus, ClaimerType, ListingStatus
from domain.schemas import (
    LISTING_CATEGORIES,
    LISTING_UNITS,
    ListingForm,
    ProfileStats,
    UserProfile,
)
from services.backend_client import BackendClient
from services.listings_service import MAX_IMAGES, ListingsService
from services.profile_service import ProfileService

router = APIRouter(prefix="/dashboard/food-supplier", tags=["Supplier"])
logger = logging.getLogger("chirpynosh.api.supplier")

BASE_PATH = "/dashboard/food-supplier"

LISTING_TABS = [
    ("all", "All"),
    (ListingStatus.ACTIVE.value, "Active"),
    (ListingStatus.PAUSED.value, "Paused"),
    (ListingStatus.SOLD_OUT.value, "Sold Out"),
    (ListingStatus.EXPIRED.value, "Expired"),
]

CLAIM_TABS = [
    ("all", "All"),
    (ClaimStatus.PENDING.value, "Pending"),
    (ClaimStatus.COMPLETED.value, "Completed"),
    (ClaimStatus.CANCELLED.value, "Cancelled"),
]

LISTING_FIELDS = (
    "title",
    "description",
    "category",
    "total_stock",
    "unit",
    "original_price",
    "subsidized_price",
    "claimer_type",
    "pickup_start_at",
    "pickup_end_at",
    "expires_at",
)


# zones span UTC-12 to UTC+14
MAX_TZ_OFFSET = 14 * 60


def _tz_offset(raw) -> Optional[int]:
    try:
        offset = int(raw)
    except (TypeError, ValueError):
        return None
    return offset if abs(offset) <= MAX_TZ_OFFSET else None


def _tab_status(tab: str, enum_cls):
    if tab == "all":
        return "all", None
    try:
        return tab, enum_cls(tab)
    except ValueError:
        return "all", None


# ============================================================================
# Dashboard
# ============================================================================


@router.get("", response_class=HTMLResponse)
async def supplier_dashboard(
    request: Request,
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    stats, listings, pending = await asyncio.gather(
        ProfileService.get_stats(backend),
        ListingsService.get_my_listings(backend, status=ListingStatus.ACTIVE, limit=4),
        ListingsService.get_supplier_claims(backend, status=ClaimStatus.PENDING, limit=1),
        return_exceptions=True,
    )
    for result in (stats, listings, pending):
        if isinstance(result, BaseException) and not isinstance(result, ApiError):
            raise result
    return render(
        request,
        "supplier/dashboard.html",
        {
            "stats": stats if isinstance(stats, ProfileStats) else ProfileStats(),
            "listings": [] if isinstance(listings, ApiError) else listings.listings,
            "pending_claims": 0 if isinstance(pending, ApiError) else pending.pagination.total,
        },
    )


# ============================================================================
# Listings
# ============================================================================


@router.get("/listings", response_class=HTMLResponse)
async def listings_page(
    request: Request,
    tab: str = "all",
    page: int = 1,
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    tab, status = _tab_status(tab, ListingStatus)
    error = None
    listings, pagination = [], None
    try:
        result = await ListingsService.get_my_listings(backend, status=status, page=max(page, 1))
        listings, pagination = result.listings, result.pagination
    except ApiError as e:
        logger.warning("Supplier listings unavailable: %s", e)
        error = "Failed to load listings"
    return render(
        request,
        "supplier/listings.html",
        {
            "listings": listings,
            "pagination": pagination,
            "tab": tab,
            "tabs": LISTING_TABS,
            "error": error,
        },
    )


@router.get("/listings/{listing_id}", response_class=HTMLResponse)
async def listing_detail(
    request: Request,
    listing_id: str,
    image: int = 0,
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    listing = await ListingsService.get_listing(backend, listing_id)
    selected = image if 0 <= image < len(listing.image_keys) else 0
    return render(
        request,
        "supplier/listing_detail.html",
        {"listing": listing, "selected_image": selected},
    )


@router.post("/listings/{listing_id}/toggle")
async def toggle_listing(
    request: Request,
    listing_id: str,
    next_url: str = Form(f"{BASE_PATH}/listings", alias="next"),
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    """Pause an active listing or resume a paused one"""
    try:
        listing = await ListingsService.get_listing(backend, listing_id)
        updated = await ListingsService.toggle_pause(backend, listing)
        flash(
            request,
            "Listing paused" if updated.status == ListingStatus.PAUSED else "Listing resumed",
        )
    except ApiError as e:
        flash(request, e.message or "Failed to update listing", "error")
    return see_other(next_url if next_url.startswith(BASE_PATH) else f"{BASE_PATH}/listings")


@router.post("/listings/{listing_id}/delete")
async def delete_listing(
    request: Request,
    listing_id: str,
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    try:
        flash(request, await ListingsService.delete_listing(backend, listing_id))
    except ApiError as e:
        flash(request, e.message or "Failed to delete listing", "error")
    return see_other(f"{BASE_PATH}/listings")


# ============================================================================
# Add / edit with media
# ============================================================================


def _form_context(form: ListingForm, error: Optional[str], listing_id: Optional[str] = None):
    return {
        "form": form,
        "error": error,
        "listing_id": listing_id,
        "categories": LISTING_CATEGORIES,
        "units": LISTING_UNITS,
        "claimer_types": list(ClaimerType),
        "max_images": MAX_IMAGES,
    }


async def _read_listing_form(
    request: Request,
) -> Tuple[dict, List[str], List[UploadFile], Optional[UploadFile], List[str]]:
    """Split the multipart listing form into fields, kept media and new uploads."""
    data = await request.form()
    fields = {}
    for name in LISTING_FIELDS:
        value = data.get(name)
        fields[name] = value if value not in (None, "") else None
    fields["description"] = fields["description"] or ""
    fields["title"] = fields["title"] or ""
    fields["category"] = fields["category"] or ""

    removed = [k for k in data.getlist("remove_media") if isinstance(k, str)]
    kept_images = [
        k for k in data.getlist("image_keys") if isinstance(k, str) and k and k not in removed
    ]
    video_key = data.get("video_key") or None
    if video_key in removed:
        video_key = None
    fields["video_key"] = video_key
    fields["tz_offset"] = _tz_offset(data.get("tz_offset"))

    new_images = [
        f for f in data.getlist("images") if isinstance(f, UploadFile) and f.filename
    ]
    video = data.get("video")
    new_video = video if isinstance(video, UploadFile) and video.filename else None
    return fields, kept_images, new_images, new_video, removed


async def _apply_media(
    backend: BackendClient,
    fields: dict,
    image_keys: List[str],
    new_images: List[UploadFile],
    new_video: Optional[UploadFile],
    removed: List[str],
) -> Optional[str]:
    """Delete removed media and upload new files. Returns an error message or None."""
    for public_id in removed:
        try:
            await ListingsService.delete_media(backend, public_id)
        except ApiError as e:
            logger.warning("Failed to delete media %s: %s", public_id, e)

    error = None
    if len(image_keys) + len(new_images) > MAX_IMAGES:
        error = f"Maximum {MAX_IMAGES} images allowed"
        new_images = new_images[: max(MAX_IMAGES - len(image_keys), 0)]
    for upload in new_images:
        try:
            result = await ListingsService.upload_image(
                backend, upload.filename, await upload.read(), upload.content_type
            )
            image_keys.append(result.public_id)
        except ApiError as e:
            logger.warning("Image upload failed: %s", e)
            error = e.message or "Failed to upload image"

    if new_video is not None:
        try:
            result = await ListingsService.upload_video(
                backend, new_video.filename, await new_video.read(), new_video.content_type
            )
            if fields.get("video_key"):
                await ListingsService.delete_media(backend, fields["video_key"])
            fields["video_key"] = result.public_id
        except ApiError as e:
            logger.warning("Video upload failed: %s", e)
            error = e.message or "Failed to upload video"
    return error


def _build_form(fields: dict, image_keys: List[str]) -> Tuple[ListingForm, Optional[str]]:
    """Validate the posted fields; times are pinned to UTC with the browser offset."""
    try:
        values = {k: v for k, v in fields.items() if v is not None and k != "tz_offset"}
        form = ListingForm(**values, image_keys=image_keys)
        return form.in_utc(fields.get("tz_offset")), None
    except ValidationError as e:
        logger.info("Listing form rejected: %s", e.errors())
        safe = {
            k: fields[k]
            for k in ("title", "description", "category", "unit", "video_key")
            if fields.get(k) is not None
        }
        return ListingForm(**safe, image_keys=image_keys), "Please enter valid numbers and dates"


@router.get("/add", response_class=HTMLResponse)
async def add_listing_page(request: Request, user: UserProfile = Depends(require_supplier)):
    return render(request, "supplier/listing_form.html", _form_context(ListingForm(), None))


@router.post("/add", response_class=HTMLResponse)
async def add_listing_submit(
    request: Request,
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    fields, image_keys, new_images, new_video, removed = await _read_listing_form(request)
    media_error = await _apply_media(backend, fields, image_keys, new_images, new_video, removed)
    form, error = _build_form(fields, image_keys)
    if error or media_error:
        return render(
            request, "supplier/listing_form.html", _form_context(form, error or media_error)
        )
    try:
        listing = await ListingsService.create_listing(backend, form)
    except ApiError as e:
        return render(
            request,
            "supplier/listing_form.html",
            _form_context(form, e.message or "Failed to create listing"),
        )
    flash(request, "Listing created successfully!")
    return see_other(f"{BASE_PATH}/listings/{listing.id}")


@router.get("/listings/{listing_id}/edit", response_class=HTMLResponse)
async def edit_listing_page(
    request: Request,
    listing_id: str,
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    listing = await ListingsService.get_listing(backend, listing_id)
    return render(
        request,
        "supplier/listing_form.html",
        _form_context(ListingForm.from_listing(listing), None, listing_id),
    )


@router.post("/listings/{listing_id}/edit", response_class=HTMLResponse)
async def edit_listing_submit(
    request: Request,
    listing_id: str,
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    fields, image_keys, new_images, new_video, removed = await _read_listing_form(request)
    media_error = await _apply_media(backend, fields, image_keys, new_images, new_video, removed)
    form, error = _build_form(fields, image_keys)
    if error or media_error:
        return render(
            request,
            "supplier/listing_form.html",
            _form_context(form, error or media_error, listing_id),
        )
    try:
        await ListingsService.save_listing_form(backend, listing_id, form)
    except ApiError as e:
        return render(
            request,
            "supplier/listing_form.html",
            _form_context(form, e.message or "Failed to update listing", listing_id),
        )
    flash(request, "Listing updated successfully!")
    return see_other(f"{BASE_PATH}/listings/{listing_id}")


# ============================================================================
# Incoming claims
# ============================================================================


@router.get("/claims", response_class=HTMLResponse)
async def supplier_claims_page(
    request: Request,
    tab: str = "all",
    listing_id: Optional[str] = None,
    page: int = 1,
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    tab, status = _tab_status(tab, ClaimStatus)
    error = None
    claims, pagination = [], None
    try:
        result = await ListingsService.get_supplier_claims(
            backend, status=status, listing_id=listing_id, page=max(page, 1)
        )
        claims, pagination = result.claims, result.pagination
    except ApiError as e:
        logger.warning("Supplier claims unavailable: %s", e)
        error = "Failed to load claims"
    return render(
        request,
        "supplier/claims.html",
        {
            "claims": claims,
            "pagination": pagination,
            "tab": tab,
            "tabs": CLAIM_TABS,
            "listing_id": listing_id,
            "error": error,
        },
    )


@router.post("/claims/{claim_id}/verify")
async def verify_pickup(
    request: Request,
    claim_id: str,
    otp: str = Form(""),
    tab: str = Form("all"),
    user: UserProfile = Depends(require_supplier),
    backend: BackendClient = Depends(get_backend),
):
    """Confirm a pickup with the recipient's OTP"""
    try:
        await ListingsService.verify_pickup_otp(backend, claim_id, otp)
        flash(request, "Pickup verified! Claim marked as completed.")
    except ApiError as e:
        flash(request, e.message or "Invalid OTP", "error")
    return see_other(f"{BASE_PATH}/claims?" + urlencode({"tab": tab}))
