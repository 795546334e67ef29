"""
Template rendering utilities
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import urlencode

from fastapi import Request
from fastapi.templating import Jinja2Templates

from app.config import settings
from domain.routing import get_claims_path, get_dashboard_path
from services.listings_service import (
    listing_image_url,
    listing_video_url,
    video_thumbnail_url,
)
from stores.auth_store import AuthStore

BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = BASE_DIR / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

FLASH_KEY = "_flashes"


def format_price(value: Union[Decimal, float, str, None]) -> str:
    """``Free`` for zero, otherwise dollars with two decimals."""
    try:
        amount = Decimal(str(value if value is not None else 0))
    except InvalidOperation:
        return str(value)
    if amount == 0:
        return "Free"
    return f"${amount:.2f}"


def format_date(value: Optional[datetime], fmt: str = "%b %d, %Y") -> str:
    if value is None:
        return ""
    return value.strftime(fmt)


def format_datetime(value: Optional[datetime]) -> str:
    return format_date(value, "%b %d, %Y %I:%M %p")


def datetime_local(value: Optional[datetime]) -> str:
    """UTC value for an ``<input type="datetime-local">``; the page script
    shifts it to the browser's zone."""
    if value is None:
        return ""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M")


def time_left(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    seconds = (value - datetime.now(timezone.utc)).total_seconds()
    if seconds <= 0:
        return "Expired"
    hours = int(seconds // 3600)
    if hours >= 24:
        return f"{hours // 24}d {hours % 24}h left"
    if hours >= 1:
        return f"{hours}h left"
    return f"{int(seconds // 60)}m left"


def query_prefix(params: Optional[dict]) -> str:
    """Non-empty params as ``k=v&`` so a page number can be appended."""
    pairs = {k: v for k, v in (params or {}).items() if v not in (None, "")}
    return urlencode(pairs) + "&" if pairs else ""


templates.env.filters["price"] = format_price
templates.env.filters["date"] = format_date
templates.env.filters["datetime"] = format_datetime
templates.env.filters["datetime_local"] = datetime_local
templates.env.filters["time_left"] = time_left
templates.env.filters["query"] = query_prefix
templates.env.globals["image_url"] = listing_image_url
templates.env.globals["video_url"] = listing_video_url
templates.env.globals["video_thumbnail_url"] = video_thumbnail_url
templates.env.globals["dashboard_path"] = get_dashboard_path
templates.env.globals["claims_path"] = get_claims_path
templates.env.globals["app_name"] = settings.app_name


# ----------------------------------------------------------------------
# Flash messages
# ----------------------------------------------------------------------


def flash(request: Request, message: str, category: str = "success") -> None:
    """Queue a one-shot message for the next rendered page."""
    request.session.setdefault(FLASH_KEY, []).append(
        {"message": message, "category": category}
    )


def pop_flashes(request: Request) -> list:
    if "session" not in request.scope:
        return []
    return request.session.pop(FLASH_KEY, [])


def render(
    request: Request, template_name: str, context: Optional[dict] = None, status_code: int = 200
):
    """Render a page with the signed-in user (if any) and pending flashes."""
    user = getattr(request.state, "user", None)
    if user is None and "session" in request.scope:
        user = AuthStore.for_request(request).user
    page: dict[str, Any] = {
        "current_user": user,
        "flashes": pop_flashes(request),
        "current_path": request.url.path,
    }
    page.update(context or {})
    return templates.TemplateResponse(
        request, template_name, page, status_code=status_code
    )
