"""KYC status and submission pages for organization accounts"""

import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse

from app.exceptions import ApiError
from api.dependencies import get_backend, require_organization_user
from api.middleware import see_other
from api.templating import flash, render
from domain.enums import KycDocumentType, KycStatus
from domain.schemas import KycStatusResponse, UserProfile
from services.auth_service import KycService
from services.backend_client import BackendClient

router = APIRouter(prefix="/kyc", tags=["KYC"])
logger = logging.getLogger("chirpynosh.api.kyc")

DOCUMENT_LABELS = {
    KycDocumentType.TAX_DOCUMENT: "Tax Document",
    KycDocumentType.REGISTRATION_DOC: "Registration Document",
    KycDocumentType.BUSINESS_LICENSE: "Business License",
    KycDocumentType.ID_PROOF: "ID Proof",
}


def _submit_context(kyc: KycStatusResponse, error=None, values=None) -> dict:
    return {
        "kyc": kyc,
        "documents": DOCUMENT_LABELS,
        "uploaded": kyc.has_documents.model_dump(by_alias=True),
        "values": values
        or {
            "business_registered_name": kyc.business_registered_name or "",
            "tax_id": kyc.tax_id or "",
            "phone_number": kyc.phone_number or "",
            "business_address": kyc.business_address or "",
        },
        "error": error,
    }


@router.get("/status", response_class=HTMLResponse)
async def kyc_status_page(
    request: Request,
    user: UserProfile = Depends(require_organization_user),
    backend: BackendClient = Depends(get_backend),
):
    kyc = await KycService.get_status(backend)
    if kyc is None or kyc.status in (KycStatus.NOT_SUBMITTED, KycStatus.REJECTED):
        return see_other("/kyc/submit")
    if kyc.status == KycStatus.APPROVED:
        return see_other("/dashboard")
    return render(request, "kyc/status.html", {"kyc": kyc})


@router.get("/submit", response_class=HTMLResponse)
async def kyc_submit_page(
    request: Request,
    user: UserProfile = Depends(require_organization_user),
    backend: BackendClient = Depends(get_backend),
):
    kyc = await KycService.get_status(backend) or KycStatusResponse()
    if kyc.status == KycStatus.PENDING:
        return see_other("/kyc/status")
    if kyc.status == KycStatus.APPROVED:
        return see_other("/dashboard")
    return render(request, "kyc/submit.html", _submit_context(kyc))


@router.post("/documents/{doc_type}")
async def kyc_upload_document(
    request: Request,
    doc_type: KycDocumentType,
    document: UploadFile = File(...),
    user: UserProfile = Depends(require_organization_user),
    backend: BackendClient = Depends(get_backend),
):
    """Upload one supporting document; documents are optional"""
    label = DOCUMENT_LABELS[doc_type]
    try:
        await KycService.upload_document(
            backend,
            doc_type,
            document.filename or doc_type.value,
            await document.read(),
            document.content_type,
        )
        flash(request, f"{label} uploaded")
    except ApiError as e:
        flash(request, f"Failed to upload {doc_type.value}: {e.message}", "error")
    return see_other("/kyc/submit")


@router.post("/submit", response_class=HTMLResponse)
async def kyc_submit(
    request: Request,
    business_registered_name: str = Form(""),
    tax_id: str = Form(""),
    phone_number: str = Form(""),
    business_address: str = Form(""),
    user: UserProfile = Depends(require_organization_user),
    backend: BackendClient = Depends(get_backend),
):
    values = {
        "business_registered_name": business_registered_name,
        "tax_id": tax_id,
        "phone_number": phone_number,
        "business_address": business_address,
    }
    try:
        payload = KycService.build_submission(**values)
        await KycService.submit(backend, payload)
    except ApiError as e:
        kyc = await KycService.get_status(backend) or KycStatusResponse()
        return render(
            request,
            "kyc/submit.html",
            _submit_context(kyc, e.message or "Submission failed", values),
        )
    logger.info("KYC submitted for user %s", user.id)
    return see_other("/kyc/status")
