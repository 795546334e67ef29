"""
Page route tests through the full app: auth gate, login, signup wizard,
dashboards with role and KYC checks, hub claiming and supplier pickups.

The browser talks to the app through TestClient; the backend API is mocked
with respx.
"""

import json

import httpx
import pytest

from app.config import settings
from test_fixtures import (
    ACCESS,
    API,
    client,
    envelope,
    make_claim_json,
    make_listing_json,
    make_user_json,
    mock_kyc,
    mock_me,
    mock_refresh,
    pagination_json,
    sign_in,
    token_cookie,
)


def mock_session_expired(respx_mock):
    respx_mock.get(f"{API}/auth/me").mock(return_value=httpx.Response(401, json={}))
    respx_mock.post(f"{API}/auth/refresh").mock(return_value=httpx.Response(401, json={}))


def cleared(response, name: str) -> bool:
    return any(
        h.startswith(f"{name}=") and "Max-Age=0" in h
        for h in response.headers.get_list("set-cookie")
    )


# =============================================================================
# PUBLIC PAGES
# =============================================================================


def test_health_check(client):
    response = client.get("/health-check")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": settings.app_name}
    assert "X-Request-ID" in response.headers


def test_landing_survives_backend_outage(client, respx_mock):
    respx_mock.get(f"{API}/hub/listings").mock(return_value=httpx.Response(500, json={}))

    response = client.get("/")

    assert response.status_code == 200


@pytest.mark.parametrize("path", ["/about", "/careers", "/contact", "/impact", "/privacy", "/terms"])
def test_static_pages(client, path):
    assert client.get(path).status_code == 200


def test_recipe_finder_uses_query_ingredients(client):
    response = client.get("/recipes", params=[("ingredient", "tomato"), ("ingredient", "garlic")])

    assert response.status_code == 200
    assert "Tomato Pasta" in response.text


def test_unknown_page_renders_not_found(client):
    response = client.get("/no-such-page")

    assert response.status_code == 404
    assert "Page not found" in response.text


def test_hub_lists_listings(client, respx_mock):
    listing = make_listing_json(title="Sourdough Loaves")
    route = respx_mock.get(f"{API}/hub/listings").mock(
        return_value=httpx.Response(
            200, json={"listings": [listing], "pagination": pagination_json(1)}
        )
    )
    respx_mock.get(f"{API}/hub/categories").mock(
        return_value=httpx.Response(200, json={"categories": []})
    )
    respx_mock.get(f"{API}/hub/suppliers").mock(
        return_value=httpx.Response(200, json={"suppliers": []})
    )

    response = client.get("/hub", params={"search": " bread ", "sort": "price-asc"})

    assert response.status_code == 200
    assert "Sourdough Loaves" in response.text
    params = route.calls[0].request.url.params
    assert params["search"] == "bread"
    assert params["sortBy"] == "price"
    assert params["sortOrder"] == "asc"


# =============================================================================
# AUTH GATE
# =============================================================================


def test_protected_route_requires_login(client):
    response = client.get("/dashboard/recipient")

    assert response.status_code == 303
    assert response.headers["location"] == "/login?redirect=%2Fdashboard%2Frecipient"


def test_signed_in_user_is_bounced_off_login(client, respx_mock):
    mock_me(respx_mock, make_user_json("FOOD_SUPPLIER"))
    sign_in(client)

    response = client.get("/login")

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/food-supplier"


def test_stale_tokens_on_login_page_are_cleared(client, respx_mock):
    mock_session_expired(respx_mock)
    sign_in(client)

    response = client.get("/login")

    assert response.status_code == 200
    assert cleared(response, ACCESS)


def test_expired_session_on_protected_route(client, respx_mock):
    mock_session_expired(respx_mock)
    sign_in(client)

    response = client.get("/dashboard/recipient")

    assert response.status_code == 303
    assert response.headers["location"].startswith("/login?redirect=")
    assert cleared(response, ACCESS)


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


def test_login_requires_both_fields(client):
    response = client.post("/login", data={"email": "", "password": ""})

    assert response.status_code == 200
    assert "Please enter your email and password" in response.text


def test_login_shows_backend_error(client, respx_mock):
    respx_mock.post(f"{API}/auth/signin").mock(
        return_value=httpx.Response(401, json={"success": False, "message": "Invalid credentials"})
    )

    response = client.post("/login", data={"email": "a@example.com", "password": "Wrong123"})

    assert response.status_code == 200
    assert "Invalid credentials" in response.text


def test_login_redirects_to_dashboard_and_relays_cookies(client, respx_mock):
    user = make_user_json("NGO_RECIPIENT")
    respx_mock.post(f"{API}/auth/signin").mock(
        return_value=httpx.Response(
            200,
            json=envelope(user),
            headers=[("set-cookie", token_cookie(ACCESS, "fresh-access"))],
        )
    )

    response = client.post("/login", data={"email": user["email"], "password": "Secret123"})

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/ngo-recipient"
    relayed = [h for h in response.headers.get_list("set-cookie") if h.startswith(f"{ACCESS}=")]
    assert relayed and "Path=/" in relayed[0] and "Path=/api" not in relayed[0]


def test_login_honours_local_redirect_only(client, respx_mock):
    user = make_user_json()
    respx_mock.post(f"{API}/auth/signin").mock(
        return_value=httpx.Response(200, json=envelope(user))
    )

    response = client.post(
        "/login",
        data={"email": user["email"], "password": "Secret123", "redirect": "//evil.example"},
    )

    assert response.headers["location"] == "/dashboard/recipient"


def test_logout_clears_cookies_even_if_backend_fails(client, respx_mock):
    respx_mock.post(f"{API}/auth/logout").mock(return_value=httpx.Response(500, json={}))
    sign_in(client)

    response = client.post("/logout")

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert cleared(response, ACCESS)


# =============================================================================
# SIGNUP WIZARD
# =============================================================================


def test_email_signup_flow(client, respx_mock):
    user = make_user_json()
    signup = respx_mock.post(f"{API}/auth/signup").mock(
        return_value=httpx.Response(201, json=envelope(message="OTP sent to your email"))
    )
    respx_mock.post(f"{API}/auth/verify-otp").mock(
        return_value=httpx.Response(200, json=envelope(user))
    )

    assert client.post("/signup/role", data={"role": "SIMPLE_RECIPIENT"}).status_code == 303
    assert "How would you like to sign up?" in client.get("/signup").text

    client.post("/signup/auth-method", data={"method": "email"})
    client.post(
        "/signup/email",
        data={"name": user["name"], "email": user["email"], "password": "Secret123"},
    )
    assert "We sent a 6-digit code" in client.get("/signup").text
    assert json.loads(signup.calls[0].request.content)["role"] == "SIMPLE_RECIPIENT"

    response = client.post("/signup/verify", data={"otp": "123456"})

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/recipient"


def test_signup_rejects_admin_role(client):
    client.post("/signup/role", data={"role": "ADMIN"})

    page = client.get("/signup")

    assert page.status_code == 200
    assert "How would you like to sign up?" not in page.text


def test_google_signup_without_client_id(client, monkeypatch):
    monkeypatch.setattr(settings, "google_client_id", None)
    client.post("/signup/role", data={"role": "SIMPLE_RECIPIENT"})

    response = client.post("/signup/auth-method", data={"method": "google"})

    assert response.headers["location"] == "/signup"
    assert "Google signup not configured" in client.get("/signup").text


# =============================================================================
# DASHBOARDS
# =============================================================================


def test_dashboard_root_redirects_by_role(client, respx_mock):
    mock_me(respx_mock, make_user_json("NGO_RECIPIENT"))
    sign_in(client)

    response = client.get("/dashboard")

    assert response.headers["location"] == "/dashboard/ngo-recipient"


def test_recipient_dashboard(client, respx_mock):
    user = make_user_json()
    mock_me(respx_mock, user)
    respx_mock.get(f"{API}/claims").mock(
        return_value=httpx.Response(
            200,
            json={"claims": [make_claim_json("COMPLETED")], "pagination": pagination_json(1)},
        )
    )
    sign_in(client)

    response = client.get("/dashboard/recipient")

    assert response.status_code == 200
    assert "Welcome back, Sarah Martinez" in response.text
    assert "Vegetable Lasagna Trays" in response.text


def test_wrong_role_segment_redirects_home(client, respx_mock):
    mock_me(respx_mock, make_user_json())
    sign_in(client)

    response = client.get("/dashboard/ngo-recipient")

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/recipient"


def test_unknown_dashboard_segment_is_404(client, respx_mock):
    mock_me(respx_mock, make_user_json())
    sign_in(client)

    assert client.get("/dashboard/bogus").status_code == 404


@pytest.mark.parametrize(
    "role,path,kyc_status,target",
    [
        ("NGO_RECIPIENT", "/dashboard/ngo-recipient", "PENDING", "/kyc/status"),
        ("NGO_RECIPIENT", "/dashboard/ngo-recipient", "REJECTED", "/kyc/submit"),
        ("FOOD_SUPPLIER", "/dashboard/food-supplier", "NOT_SUBMITTED", "/kyc/submit"),
    ],
)
def test_organization_dashboards_wait_for_kyc(client, respx_mock, role, path, kyc_status, target):
    mock_me(respx_mock, make_user_json(role))
    mock_kyc(respx_mock, kyc_status)
    sign_in(client)

    response = client.get(path)

    assert response.status_code == 303
    assert response.headers["location"] == target


def test_admin_area_is_admin_only(client, respx_mock):
    mock_me(respx_mock, make_user_json("FOOD_SUPPLIER"))
    sign_in(client)

    response = client.get("/admin-dash")

    assert response.headers["location"] == "/dashboard/food-supplier"


# =============================================================================
# HUB CLAIMS
# =============================================================================


def test_claim_requires_login(client):
    response = client.post("/hub/listing-1/claim", data={"quantity": "1"})

    assert response.status_code == 303
    assert response.headers["location"].startswith("/login?redirect=%2Fhub%2Flisting-1%2Fclaim")


def test_claim_is_clamped_to_remaining_stock(client, respx_mock):
    listing = make_listing_json()
    mock_refresh(respx_mock, make_user_json())
    respx_mock.get(f"{API}/hub/listings/{listing['id']}").mock(
        return_value=httpx.Response(200, json={"listing": listing})
    )
    claim = respx_mock.post(f"{API}/claims").mock(
        return_value=httpx.Response(201, json={"success": True, "claim": make_claim_json()})
    )
    sign_in(client)

    response = client.post(f"/hub/{listing['id']}/claim", data={"quantity": "9"})

    assert response.status_code == 200
    assert "pickup OTP" in response.text
    assert json.loads(claim.calls[0].request.content) == {
        "listingId": listing["id"],
        "quantity": 6,
    }


def test_claim_failure_is_shown(client, respx_mock):
    listing = make_listing_json()
    mock_refresh(respx_mock, make_user_json("NGO_RECIPIENT"))
    respx_mock.get(f"{API}/hub/listings/{listing['id']}").mock(
        return_value=httpx.Response(200, json={"listing": listing})
    )
    respx_mock.post(f"{API}/claims").mock(
        return_value=httpx.Response(
            400, json={"success": False, "message": "This listing is for individuals only"}
        )
    )
    sign_in(client)

    response = client.post(f"/hub/{listing['id']}/claim", data={"quantity": "1"})

    assert "This listing is for individuals only" in response.text


def test_claim_relays_cookies_rotated_while_loading_user(client, respx_mock):
    listing = make_listing_json()
    refresh = mock_refresh(respx_mock, make_user_json(), access="rotated-access")
    respx_mock.get(f"{API}/hub/listings/{listing['id']}").mock(
        return_value=httpx.Response(200, json={"listing": listing})
    )
    respx_mock.post(f"{API}/claims").mock(
        return_value=httpx.Response(201, json={"success": True, "claim": make_claim_json()})
    )
    sign_in(client)

    response = client.post(f"/hub/{listing['id']}/claim", data={"quantity": "1"})

    assert refresh.call_count == 1
    relayed = [h for h in response.headers.get_list("set-cookie") if h.startswith(f"{ACCESS}=")]
    assert relayed and relayed[0].startswith(f"{ACCESS}=rotated-access")


def test_claim_loads_user_from_me_when_refresh_fails(client, respx_mock):
    listing = make_listing_json()
    respx_mock.post(f"{API}/auth/refresh").mock(return_value=httpx.Response(401, json={}))
    me = mock_me(respx_mock, make_user_json())
    respx_mock.get(f"{API}/hub/listings/{listing['id']}").mock(
        return_value=httpx.Response(200, json={"listing": listing})
    )
    respx_mock.post(f"{API}/claims").mock(
        return_value=httpx.Response(201, json={"success": True, "claim": make_claim_json()})
    )
    sign_in(client)

    response = client.post(f"/hub/{listing['id']}/claim", data={"quantity": "1"})

    assert response.status_code == 200
    assert "pickup OTP" in response.text
    assert me.call_count == 1


# =============================================================================
# SUPPLIER PICKUPS
# =============================================================================


def test_supplier_verifies_pickup(client, respx_mock):
    mock_me(respx_mock, make_user_json("FOOD_SUPPLIER"))
    mock_kyc(respx_mock, "APPROVED")
    verify = respx_mock.post(f"{API}/listings/claims/claim-1/verify").mock(
        return_value=httpx.Response(200, json={"success": True, "message": "Pickup verified"})
    )
    sign_in(client)

    response = client.post(
        "/dashboard/food-supplier/claims/claim-1/verify",
        data={"otp": "123456", "tab": "PENDING"},
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/food-supplier/claims?tab=PENDING"
    assert json.loads(verify.calls[0].request.content) == {"otp": "123456"}


def test_supplier_pickup_rejects_short_code(client, respx_mock):
    mock_me(respx_mock, make_user_json("FOOD_SUPPLIER"))
    mock_kyc(respx_mock, "APPROVED")
    verify = respx_mock.post(f"{API}/listings/claims/claim-1/verify")
    respx_mock.get(f"{API}/listings/claims").mock(
        return_value=httpx.Response(200, json={"claims": [], "pagination": pagination_json(0)})
    )
    sign_in(client)

    response = client.post(
        "/dashboard/food-supplier/claims/claim-1/verify", data={"otp": "123"}
    )

    assert response.status_code == 303
    assert verify.call_count == 0
    page = client.get(response.headers["location"])
    assert "Please enter a valid 6-digit OTP" in page.text


# =============================================================================
# SUPPLIER LISTING FORMS
# =============================================================================


def supplier_signed_in(client, respx_mock):
    mock_me(respx_mock, make_user_json("FOOD_SUPPLIER"))
    mock_kyc(respx_mock, "APPROVED")
    sign_in(client)


def listing_fields(**overrides) -> dict:
    fields = {
        "title": "Sourdough loaves",
        "description": "Day-old, still great for toast.",
        "category": "Bakery & Bread",
        "total_stock": "8",
        "unit": "Pieces",
        "original_price": "6",
        "subsidized_price": "1.5",
        "claimer_type": "BOTH",
        "pickup_start_at": "2030-06-01T14:00",
        "pickup_end_at": "2030-06-01T17:00",
        "expires_at": "2030-06-02T10:00",
        "tz_offset": "-120",
    }
    fields.update(overrides)
    return fields


def test_add_listing_uploads_images_and_creates(client, respx_mock):
    supplier_signed_in(client, respx_mock)
    upload = respx_mock.post(f"{API}/listings/upload/image").mock(
        return_value=httpx.Response(
            200, json={"success": True, "publicId": "chirpynosh/listings/loaf", "url": "u"}
        )
    )
    create = respx_mock.post(f"{API}/listings").mock(
        return_value=httpx.Response(
            201, json={"success": True, "listing": make_listing_json(id="listing-9")}
        )
    )

    response = client.post(
        "/dashboard/food-supplier/add",
        data=listing_fields(),
        files={"images": ("loaf.jpg", b"jpeg-bytes", "image/jpeg")},
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/food-supplier/listings/listing-9"
    assert upload.call_count == 1
    payload = json.loads(create.calls[0].request.content)
    assert payload["imageKeys"] == ["chirpynosh/listings/loaf"]
    assert payload["totalStock"] == 8
    assert payload["pickupStartAt"].startswith("2030-06-01T12:00:00")
    assert payload["expiresAt"].startswith("2030-06-02T08:00:00")


def test_add_listing_rejects_non_image_upload(client, respx_mock):
    supplier_signed_in(client, respx_mock)
    upload = respx_mock.post(f"{API}/listings/upload/image")
    create = respx_mock.post(f"{API}/listings")

    response = client.post(
        "/dashboard/food-supplier/add",
        data=listing_fields(),
        files={"images": ("menu.pdf", b"%PDF", "application/pdf")},
    )

    assert response.status_code == 200
    assert "Only image files are allowed" in response.text
    assert upload.call_count == 0
    assert create.call_count == 0


def test_add_listing_requires_an_image(client, respx_mock):
    supplier_signed_in(client, respx_mock)
    create = respx_mock.post(f"{API}/listings")

    response = client.post("/dashboard/food-supplier/add", data=listing_fields())

    assert response.status_code == 200
    assert "At least one image is required" in response.text
    assert create.call_count == 0


def test_edit_listing_removes_and_replaces_media(client, respx_mock):
    supplier_signed_in(client, respx_mock)
    deleted = respx_mock.delete(f"{API}/listings/upload").mock(
        return_value=httpx.Response(200, json={"success": True, "message": "Media deleted"})
    )
    respx_mock.post(f"{API}/listings/upload/video").mock(
        return_value=httpx.Response(
            200, json={"success": True, "publicId": "chirpynosh/videos/new", "url": "u"}
        )
    )
    update = respx_mock.patch(f"{API}/listings/listing-9").mock(
        return_value=httpx.Response(
            200, json={"success": True, "listing": make_listing_json(id="listing-9")}
        )
    )

    response = client.post(
        "/dashboard/food-supplier/listings/listing-9/edit",
        data=listing_fields(
            image_keys=["chirpynosh/listings/old", "chirpynosh/listings/keep"],
            remove_media="chirpynosh/listings/old",
            video_key="chirpynosh/videos/old",
        ),
        files={"video": ("tour.mp4", b"mp4-bytes", "video/mp4")},
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/food-supplier/listings/listing-9"
    assert [json.loads(c.request.content) for c in deleted.calls] == [
        {"publicId": "chirpynosh/listings/old"},
        {"publicId": "chirpynosh/videos/old"},
    ]
    payload = json.loads(update.calls[0].request.content)
    assert payload["imageKeys"] == ["chirpynosh/listings/keep"]
    assert payload["videoKey"] == "chirpynosh/videos/new"


# =============================================================================
# KYC
# =============================================================================


@pytest.mark.parametrize(
    "kyc_status,target",
    [
        ("NOT_SUBMITTED", "/kyc/submit"),
        ("REJECTED", "/kyc/submit"),
        ("APPROVED", "/dashboard"),
    ],
)
def test_kyc_status_page_redirects(client, respx_mock, kyc_status, target):
    mock_me(respx_mock, make_user_json("NGO_RECIPIENT"))
    mock_kyc(respx_mock, kyc_status)
    sign_in(client)

    response = client.get("/kyc/status")

    assert response.status_code == 303
    assert response.headers["location"] == target


def test_kyc_status_page_shows_pending(client, respx_mock):
    mock_me(respx_mock, make_user_json("FOOD_SUPPLIER"))
    mock_kyc(respx_mock, "PENDING")
    sign_in(client)

    response = client.get("/kyc/status")

    assert response.status_code == 200
    assert "Pending" in response.text


def test_kyc_submit_page_redirects_while_pending(client, respx_mock):
    mock_me(respx_mock, make_user_json("FOOD_SUPPLIER"))
    mock_kyc(respx_mock, "PENDING")
    sign_in(client)

    response = client.get("/kyc/submit")

    assert response.headers["location"] == "/kyc/status"


def test_kyc_pages_are_for_organizations(client, respx_mock):
    mock_me(respx_mock, make_user_json())
    sign_in(client)

    response = client.get("/kyc/submit")

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard/recipient"


KYC_FORM = {
    "business_registered_name": "City Food Bank Ltd",
    "tax_id": "TX-4411",
    "phone_number": "+1 555 0100",
    "business_address": "12 Harbour Road",
}


def test_kyc_submit_redirects_to_status(client, respx_mock):
    mock_me(respx_mock, make_user_json("NGO_RECIPIENT"))
    submit = respx_mock.post(f"{API}/kyc/submit").mock(
        return_value=httpx.Response(200, json=envelope({"status": "PENDING"}))
    )
    sign_in(client)

    response = client.post("/kyc/submit", data=KYC_FORM)

    assert response.status_code == 303
    assert response.headers["location"] == "/kyc/status"
    assert json.loads(submit.calls[0].request.content) == {
        "businessRegisteredName": "City Food Bank Ltd",
        "taxId": "TX-4411",
        "phoneNumber": "+1 555 0100",
        "businessAddress": "12 Harbour Road",
    }


def test_kyc_submit_with_missing_field_stays_on_form(client, respx_mock):
    mock_me(respx_mock, make_user_json("NGO_RECIPIENT"))
    mock_kyc(respx_mock, "NOT_SUBMITTED")
    submit = respx_mock.post(f"{API}/kyc/submit")
    sign_in(client)

    response = client.post("/kyc/submit", data={**KYC_FORM, "tax_id": "  "})

    assert response.status_code == 200
    assert "Please fill in all business information" in response.text
    assert "City Food Bank Ltd" in response.text
    assert submit.call_count == 0


def test_kyc_submit_shows_backend_error(client, respx_mock):
    mock_me(respx_mock, make_user_json("FOOD_SUPPLIER"))
    mock_kyc(respx_mock, "REJECTED")
    respx_mock.post(f"{API}/kyc/submit").mock(
        return_value=httpx.Response(409, json={"success": False, "message": "KYC already pending"})
    )
    sign_in(client)

    response = client.post("/kyc/submit", data=KYC_FORM)

    assert response.status_code == 200
    assert "KYC already pending" in response.text
