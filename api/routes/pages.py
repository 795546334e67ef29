"""Public marketing and discovery pages"""

import asyncio
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from app.exceptions import ApiError
from api.dependencies import get_backend
from api.templating import render
from domain.recipes import find_recipes, normalize_ingredients, suggest_ingredients
from domain.schemas import BrowseListingsParams
from services.backend_client import BackendClient
from services.listings_service import HubService

router = APIRouter(tags=["Pages"])
logger = logging.getLogger("chirpynosh.api.pages")

STATIC_PAGES = {
    "/about": "pages/about.html",
    "/careers": "pages/careers.html",
    "/contact": "pages/contact.html",
    "/impact": "pages/impact.html",
    "/privacy": "pages/privacy.html",
    "/terms": "pages/terms.html",
}


@router.get("/", response_class=HTMLResponse)
async def landing_page(request: Request, backend: BackendClient = Depends(get_backend)):
    """Landing page with a strip of the newest listings"""
    try:
        page = await HubService.browse_listings(
            backend, BrowseListingsParams(limit=6, sort_by="createdAt", sort_order="desc")
        )
        listings = page.listings
    except ApiError as e:
        logger.warning("Landing listings unavailable: %s", e)
        listings = []
    return render(request, "pages/landing.html", {"listings": listings})


def _static_page(template_name: str):
    async def page(request: Request):
        return render(request, template_name)

    return page


for _path, _template in STATIC_PAGES.items():
    router.add_api_route(
        _path,
        _static_page(_template),
        methods=["GET"],
        response_class=HTMLResponse,
        name=_template.split("/")[-1].removesuffix(".html"),
    )


@router.get("/partners", response_class=HTMLResponse)
async def partners_page(
    request: Request,
    tab: Literal["all", "suppliers", "ngos"] = "all",
    backend: BackendClient = Depends(get_backend),
):
    """Verified suppliers and NGOs, fetched together"""
    error = None
    try:
        suppliers, ngos = await asyncio.gather(
            HubService.get_verified_suppliers(backend),
            HubService.get_verified_ngos(backend),
        )
    except ApiError as e:
        logger.warning("Partner lists unavailable: %s", e)
        suppliers, ngos = [], []
        error = "Failed to load partners"

    partners = []
    if tab in ("all", "suppliers"):
        partners += [
            {"id": s.id, "name": s.name, "kind": "supplier", "count": s.listing_count}
            for s in suppliers
        ]
    if tab in ("all", "ngos"):
        partners += [
            {"id": n.id, "name": n.name, "kind": "ngo", "count": n.claim_count}
            for n in ngos
        ]
    return render(
        request,
        "pages/partners.html",
        {
            "partners": partners,
            "tab": tab,
            "supplier_count": len(suppliers),
            "ngo_count": len(ngos),
            "error": error,
        },
    )


@router.get("/near-expiry", response_class=HTMLResponse)
async def near_expiry_page(request: Request, backend: BackendClient = Depends(get_backend)):
    error = None
    try:
        listings = await HubService.get_near_expiry(backend)
    except ApiError as e:
        logger.warning("Near-expiry listings unavailable: %s", e)
        listings = []
        error = "Failed to load listings"
    return render(request, "pages/near_expiry.html", {"listings": listings, "error": error})


@router.get("/recipes", response_class=HTMLResponse)
async def recipes_page(
    request: Request,
    ingredient: List[str] = Query(default=[]),
    q: str = "",
    recipe: Optional[str] = None,
):
    """Ingredient-based recipe finder; the chosen ingredients live in the query string"""
    chosen = normalize_ingredients(ingredient)
    matches = find_recipes(chosen) if chosen else []
    selected = next((m for m in matches if m.recipe.id == recipe), None)
    return render(
        request,
        "pages/recipes.html",
        {
            "ingredients": chosen,
            "query": q,
            "suggestions": suggest_ingredients(q, chosen) if q else [],
            "matches": matches,
            "selected": selected,
        },
    )
