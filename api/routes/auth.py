"""Login, logout, signup wizard and Google sign-in pages"""

import logging
import secrets
from typing import Literal, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse

from app.config import settings
from app.exceptions import ApiError
from api.dependencies import get_auth_store, get_backend
from api.middleware import see_other
from api.templating import flash, render
from domain.enums import SIGNUP_ROLES, AuthMethod, UserRole
from domain.routing import get_dashboard_path
from domain.schemas import GoogleAuthPayload, LoginPayload
from services.auth_service import AuthService
from services.backend_client import BackendClient, clear_auth_cookies
from stores.auth_store import AuthStore
from stores.signup_wizard import SignupWizard

router = APIRouter(tags=["Auth"])
logger = logging.getLogger("chirpynosh.api.auth")

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_SESSION_KEY = "google-oauth"


def safe_redirect(target: Optional[str]) -> Optional[str]:
    """Only same-site absolute paths are honoured as post-login targets."""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return None


# ============================================================================
# Login / Logout
# ============================================================================


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, redirect: Optional[str] = None):
    return render(
        request,
        "auth/login.html",
        {
            "redirect": safe_redirect(redirect),
            "email": "",
            "error": None,
            "google_enabled": bool(settings.google_client_id),
        },
    )


@router.post("/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    redirect: Optional[str] = Form(None),
    backend: BackendClient = Depends(get_backend),
    store: AuthStore = Depends(get_auth_store),
):
    def form_error(message: str):
        return render(
            request,
            "auth/login.html",
            {
                "redirect": safe_redirect(redirect),
                "email": email,
                "error": message,
                "google_enabled": bool(settings.google_client_id),
            },
        )

    if not email.strip() or not password:
        return form_error("Please enter your email and password")

    try:
        user = await AuthService.login(
            backend, LoginPayload(email=email.strip(), password=password)
        )
    except ApiError as e:
        return form_error(e.message or "Invalid email or password")

    store.set_user(user)
    return see_other(safe_redirect(redirect) or get_dashboard_path(user.role))


@router.post("/logout")
async def logout(
    request: Request,
    backend: BackendClient = Depends(get_backend),
    store: AuthStore = Depends(get_auth_store),
):
    await store.logout(backend)
    SignupWizard.clear(request.session)
    response = see_other("/")
    clear_auth_cookies(response)
    return response


# ============================================================================
# Signup wizard
# ============================================================================


def _wizard_redirect(request: Request, wizard: SignupWizard):
    wizard.save(request.session)
    return see_other("/signup")


@router.get("/signup", response_class=HTMLResponse)
async def signup_page(request: Request):
    wizard = SignupWizard.load(request.session)
    return render(
        request,
        "auth/signup.html",
        {
            "wizard": wizard,
            "state": wizard.state,
            "step": wizard.step.value,
            "roles": SIGNUP_ROLES,
            "google_enabled": bool(settings.google_client_id),
        },
    )


@router.post("/signup/role")
async def signup_select_role(request: Request, role: UserRole = Form(...)):
    wizard = SignupWizard.load(request.session)
    wizard.select_role(role)
    return _wizard_redirect(request, wizard)


@router.post("/signup/organization")
async def signup_organization(request: Request, organization_name: str = Form("")):
    wizard = SignupWizard.load(request.session)
    wizard.update_field("organization_name", organization_name)
    wizard.submit_organization()
    return _wizard_redirect(request, wizard)


@router.post("/signup/auth-method")
async def signup_auth_method(request: Request, method: AuthMethod = Form(...)):
    wizard = SignupWizard.load(request.session)
    wizard.select_auth_method(method)
    if method == AuthMethod.GOOGLE:
        if not settings.google_client_id:
            wizard.error = "Google signup not configured"
            return _wizard_redirect(request, wizard)
        wizard.save(request.session)
        return see_other("/auth/google?intent=signup")
    return _wizard_redirect(request, wizard)


@router.post("/signup/email")
async def signup_email(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    backend: BackendClient = Depends(get_backend),
):
    wizard = SignupWizard.load(request.session)
    wizard.update_field("name", name)
    wizard.update_field("email", email)
    await wizard.submit_email_signup(backend, password)
    return _wizard_redirect(request, wizard)


@router.post("/signup/verify")
async def signup_verify(
    request: Request,
    otp: str = Form(""),
    backend: BackendClient = Depends(get_backend),
    store: AuthStore = Depends(get_auth_store),
):
    wizard = SignupWizard.load(request.session)
    user = await wizard.verify_otp(backend, otp)
    if user is None:
        return _wizard_redirect(request, wizard)
    SignupWizard.clear(request.session)
    store.set_user(user)
    logger.info("Signup completed for %s", user.id)
    return see_other(get_dashboard_path(user.role))


@router.post("/signup/resend")
async def signup_resend(request: Request, backend: BackendClient = Depends(get_backend)):
    wizard = SignupWizard.load(request.session)
    await wizard.resend_otp(backend)
    return _wizard_redirect(request, wizard)


@router.post("/signup/back")
async def signup_back(request: Request):
    wizard = SignupWizard.load(request.session)
    wizard.go_back()
    return _wizard_redirect(request, wizard)


@router.post("/signup/reset")
async def signup_reset(request: Request):
    wizard = SignupWizard.load(request.session)
    wizard.reset()
    return _wizard_redirect(request, wizard)


# ============================================================================
# Google sign-in (implicit flow, ID token in the URL fragment)
# ============================================================================


def build_google_auth_url(state: str, nonce: str) -> str:
    query = urlencode(
        {
            "client_id": settings.google_client_id,
            "redirect_uri": f"{settings.public_url}/auth/google/callback",
            "response_type": "id_token",
            "scope": "openid email profile",
            "nonce": nonce,
            "prompt": "select_account",
            "state": state,
        }
    )
    return f"{GOOGLE_AUTH_URL}?{query}"


@router.get("/auth/google")
async def google_start(request: Request, intent: Literal["login", "signup"] = "login"):
    fallback = "/signup" if intent == "signup" else "/login"
    if not settings.google_client_id:
        flash(request, "Google login not configured", "error")
        return see_other(fallback)
    state = secrets.token_urlsafe(16)
    nonce = secrets.token_urlsafe(16)
    request.session[GOOGLE_SESSION_KEY] = {"state": state, "intent": intent}
    return see_other(build_google_auth_url(state, nonce))


@router.get("/auth/google/callback", response_class=HTMLResponse)
async def google_callback(request: Request):
    """The token arrives in the fragment; the page posts it back to us."""
    return render(request, "auth/google_callback.html")


@router.post("/auth/google/complete")
async def google_complete(
    request: Request,
    id_token: str = Form(""),
    state: str = Form(""),
    error: str = Form(""),
    backend: BackendClient = Depends(get_backend),
    store: AuthStore = Depends(get_auth_store),
):
    pending = request.session.pop(GOOGLE_SESSION_KEY, None) or {}
    intent = pending.get("intent", "login")
    fallback = "/signup" if intent == "signup" else "/login"

    if error:
        flash(request, f"Authentication failed: {error}", "error")
        return see_other(fallback)
    if not id_token:
        flash(request, "No authentication token received", "error")
        return see_other(fallback)
    if not pending or not secrets.compare_digest(pending.get("state", ""), state):
        logger.warning("Google sign-in state mismatch")
        flash(request, "Google sign-in expired, please try again", "error")
        return see_other(fallback)

    if intent == "signup":
        wizard = SignupWizard.load(request.session)
        user = await wizard.handle_google_signup(backend, id_token)
        if user is None:
            return _wizard_redirect(request, wizard)
        SignupWizard.clear(request.session)
    else:
        try:
            result = await AuthService.google_auth(
                backend,
                GoogleAuthPayload(google_token=id_token, role=UserRole.SIMPLE_RECIPIENT),
            )
        except ApiError as e:
            flash(request, e.message or "Google login failed", "error")
            return see_other("/login")
        user = result.user

    store.set_user(user)
    return see_other(get_dashboard_path(user.role))
