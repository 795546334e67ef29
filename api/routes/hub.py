"""Donation hub: public browsing, listing detail and claiming"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse

from app.exceptions import ApiError
from api.dependencies import get_backend, require_user
from api.templating import render
from domain.schemas import BrowseListingsParams, UserProfile
from services.backend_client import BackendClient
from services.claims_service import ClaimsService, clamp_claim_quantity
from services.listings_service import HubService

router = APIRouter(prefix="/hub", tags=["Hub"])
logger = logging.getLogger("chirpynosh.api.hub")

PAGE_SIZE = 12

SORT_OPTIONS = {
    "createdAt-desc": "Newest",
    "createdAt-asc": "Oldest",
    "price-asc": "Price: Low to High",
    "price-desc": "Price: High to Low",
    "expiresAt-asc": "Expiring Soon",
}


def _optional_float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except ValueError:
        return None


@router.get("", response_class=HTMLResponse)
async def hub_page(
    request: Request,
    search: str = "",
    category: str = "",
    claimer_type: str = "",
    supplier_id: str = "",
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    sort: str = "createdAt-desc",
    page: int = 1,
    backend: BackendClient = Depends(get_backend),
):
    """Browse active listings with filters; filters live in the query string"""
    if sort not in SORT_OPTIONS:
        sort = "createdAt-desc"
    sort_by, sort_order = sort.split("-")
    params = BrowseListingsParams(
        search=search.strip() or None,
        category=category or None,
        claimer_type=claimer_type if claimer_type in ("NGO", "INDIVIDUAL") else None,
        supplier_id=supplier_id or None,
        min_price=_optional_float(min_price),
        max_price=_optional_float(max_price),
        sort_by=sort_by,
        sort_order=sort_order,
        page=max(page, 1),
        limit=PAGE_SIZE,
    )

    listings_result, categories, suppliers = await asyncio.gather(
        HubService.browse_listings(backend, params),
        HubService.get_categories(backend),
        HubService.get_verified_suppliers(backend),
        return_exceptions=True,
    )
    error = None
    if isinstance(listings_result, ApiError):
        logger.warning("Hub listings unavailable: %s", listings_result)
        error = "Failed to load listings. Please try again."
        listings, pagination = [], None
    elif isinstance(listings_result, BaseException):
        raise listings_result
    else:
        listings, pagination = listings_result.listings, listings_result.pagination
    if isinstance(categories, BaseException):
        categories = []
    if isinstance(suppliers, BaseException):
        suppliers = []

    return render(
        request,
        "hub/index.html",
        {
            "listings": listings,
            "pagination": pagination,
            "categories": categories,
            "suppliers": suppliers,
            "sort_options": SORT_OPTIONS,
            "filters": {
                "search": search,
                "category": category,
                "claimer_type": claimer_type,
                "supplier_id": supplier_id,
                "min_price": min_price or "",
                "max_price": max_price or "",
                "sort": sort,
            },
            "error": error,
        },
    )


@router.get("/{listing_id}", response_class=HTMLResponse)
async def listing_detail(
    request: Request, listing_id: str, backend: BackendClient = Depends(get_backend)
):
    listing = await HubService.get_public_listing(backend, listing_id)
    return render(request, "hub/detail.html", {"listing": listing})


def _claim_context(listing, quantity: int, error: Optional[str] = None) -> dict:
    return {
        "listing": listing,
        "quantity": quantity,
        "total_price": listing.subsidized_price * quantity,
        "error": error,
        "success": False,
    }


@router.get("/{listing_id}/claim", response_class=HTMLResponse)
async def claim_page(
    request: Request,
    listing_id: str,
    user: UserProfile = Depends(require_user),
    backend: BackendClient = Depends(get_backend),
):
    listing = await HubService.get_public_listing(backend, listing_id)
    return render(request, "hub/claim.html", _claim_context(listing, 1))


@router.post("/{listing_id}/claim", response_class=HTMLResponse)
async def claim_submit(
    request: Request,
    listing_id: str,
    quantity: int = Form(1),
    user: UserProfile = Depends(require_user),
    backend: BackendClient = Depends(get_backend),
):
    """Submit a claim; the backend emails the pickup OTP"""
    listing = await HubService.get_public_listing(backend, listing_id)
    quantity = clamp_claim_quantity(quantity, listing.remaining_stock)

    try:
        await ClaimsService.create_claim(backend, listing.id, quantity)
    except ApiError as e:
        return render(
            request,
            "hub/claim.html",
            _claim_context(
                listing, quantity, e.message or "Failed to create claim. Please try again."
            ),
        )

    context = _claim_context(listing, quantity)
    context["success"] = True
    return render(request, "hub/claim.html", context)
