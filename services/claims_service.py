"""Recipient-side claim calls under /claims."""

import logging
from typing import Iterable, Optional

from app.exceptions import ApiError
from domain.enums import ClaimStatus
from domain.schemas import ClaimsPage, ClaimStats, CreateClaimPayload, MyClaim
from services.backend_client import BackendClient

logger = logging.getLogger("chirpynosh.claims")

DEFAULT_CANCEL_REASON = "Cancelled by user"


def clamp_claim_quantity(requested: Optional[int], remaining_stock: int) -> int:
    """Keep a requested quantity within 1..remaining_stock."""
    if not requested or requested < 1:
        return 1
    return max(1, min(remaining_stock, requested))


def calculate_stats_from_claims(claims: Iterable[MyClaim]) -> ClaimStats:
    """Dashboard stats derived locally from a list of claims.

    Impact score is completed claims x 10 plus units saved x 2.
    """
    claims = list(claims)
    completed = [c for c in claims if c.status == ClaimStatus.COMPLETED]
    pending = sum(1 for c in claims if c.status == ClaimStatus.PENDING)
    food_saved = sum(c.quantity for c in completed)
    return ClaimStats(
        total_claims=len(claims),
        pending_claims=pending,
        completed_claims=len(completed),
        total_food_saved=food_saved,
        impact_score=len(completed) * 10 + food_saved * 2,
    )


class ClaimsService:
    @staticmethod
    async def create_claim(
        backend: BackendClient, listing_id: str, quantity: int
    ) -> Optional[MyClaim]:
        """Claim part of a listing; the backend issues the pickup OTP by email."""
        payload = CreateClaimPayload(listing_id=listing_id, quantity=quantity)
        body = await backend.post("/claims", json=payload.to_wire())
        logger.info("Claimed %d from listing %s", quantity, listing_id)
        claim = body.get("claim") or body.get("data")
        return MyClaim.model_validate(claim) if claim else None

    @staticmethod
    async def get_claims(
        backend: BackendClient,
        status: Optional[ClaimStatus] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> ClaimsPage:
        body = await backend.get(
            "/claims", params={"status": status, "page": page, "limit": limit}
        )
        return ClaimsPage.model_validate(body)

    @staticmethod
    async def get_claim(backend: BackendClient, claim_id: str) -> MyClaim:
        body = await backend.get(f"/claims/{claim_id}")
        return MyClaim.model_validate(body["claim"])

    @staticmethod
    async def cancel_claim(
        backend: BackendClient, claim_id: str, reason: Optional[str] = None
    ) -> MyClaim:
        body = await backend.post(
            f"/claims/{claim_id}/cancel", json={"reason": reason or DEFAULT_CANCEL_REASON}
        )
        logger.info("Cancelled claim %s", claim_id)
        return MyClaim.model_validate(body["claim"])

    @staticmethod
    async def resend_otp(backend: BackendClient, claim_id: str) -> str:
        body = await backend.post(f"/claims/{claim_id}/resend-otp", json={})
        return body.get("message") or "OTP resent to your email!"

    @staticmethod
    async def get_claim_stats(backend: BackendClient) -> ClaimStats:
        """Server-side stats; zeros when the endpoint is unavailable."""
        try:
            body = await backend.get("/claims/stats")
        except ApiError as exc:
            logger.info("Claim stats unavailable, using defaults: %s", exc)
            return ClaimStats()
        return ClaimStats.model_validate(body.get("stats") or {})
