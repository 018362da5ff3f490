from datetime import date

import pytest
from fastapi.testclient import TestClient

from clientdesk.api.v1.auth import FORGOT_PASSWORD_MESSAGE
from clientdesk.core.config import settings
from clientdesk.main import create_app
from clientdesk.services.password_reset_service import PasswordResetService


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_login_sets_cookie_and_me_reads_it(client, admin):
    response = client.post("/api/v1/auth/login", json={"email": admin.email, "password": admin.password})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "admin"
    assert "access_token" in response.cookies

    me = client.get("/api/v1/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["email"] == admin.email


def test_login_with_wrong_password_is_401_envelope(client, admin):
    response = client.post("/api/v1/auth/login", json={"email": admin.email, "password": "nope"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid email or password"}


def test_protected_route_without_token(client):
    response = client.get("/api/v1/clients")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_request_validation_is_400_envelope(client, admin_headers):
    response = client.post("/api/v1/invoices", json={"description": "No client"}, headers=admin_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "client_id" in body["error"]


def test_forgot_password_is_generic_for_unknown_email(client):
    response = client.post("/api/v1/auth/forgot-password", json={"email": "ghost@clientdesk.io"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": FORGOT_PASSWORD_MESSAGE}


def test_forgot_password_requires_email(client):
    response = client.post("/api/v1/auth/forgot-password", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Email is required"


def test_reset_password_marks_client_and_clears_cached_password(client, db, make_client, admin_headers):
    created = make_client()
    client_id = created["client"].id
    token = PasswordResetService(db).issue("billing@acme.io").token

    response = client.post("/api/v1/auth/reset-password", json={"token": token, "password": "Fresh123!"})
    assert response.status_code == 200

    lookup = client.get(f"/api/v1/clients/{client_id}/password", headers=admin_headers)
    assert lookup.status_code == 404

    login = client.post("/api/v1/auth/login", json={"email": "billing@acme.io", "password": "Fresh123!"})
    assert login.status_code == 200

    again = client.post("/api/v1/auth/reset-password", json={"token": token, "password": "Other123!"})
    assert again.status_code == 400
    assert again.json()["error"] == "Invalid or expired token"


def test_client_role_cannot_use_admin_routes(client, make_client, headers_for):
    user = make_client()["user"]
    response = client.get("/api/v1/invoices", headers=headers_for(user.id))
    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Admin access required"}


def test_client_lifecycle_over_http(client, admin_headers):
    created = client.post("/api/v1/clients", json={
        "company_name": "Acme Corp", "company_email": "billing@acme.io", "contact_person_name": "Jane"
    }, headers=admin_headers)
    assert created.status_code == 201
    body = created.json()
    assert body["message"] == "Client created successfully!"
    client_id = body["client"]["id"]

    password = client.get(f"/api/v1/clients/{client_id}/password", headers=admin_headers).json()
    assert password["password"] == body["password"]

    summary = client.get(f"/api/v1/clients/{client_id}/delete-summary", headers=admin_headers).json()
    assert summary["summary"]["client_name"] == "Acme Corp"
    assert summary["summary"]["invoices"] == 0

    deleted = client.delete(f"/api/v1/clients/{client_id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert deleted.json()["client_name"] == "Acme Corp"

    assert client.get(f"/api/v1/clients/{client_id}", headers=admin_headers).status_code == 404


def test_invoice_receipt_flow_over_http(client, make_client, admin_headers):
    client_id = make_client()["client"].id

    assert client.get("/api/v1/invoices/next-number", headers=admin_headers).json()["invoice_number"] == "INV-001"

    invoice = client.post("/api/v1/invoices", json={
        "client_id": client_id, "description": "Retainer", "total_amount": "250.00",
        "issue_date": "2026-03-01", "due_date": "2026-03-31"
    }, headers=admin_headers).json()["invoice"]
    assert invoice["status"] == "unpaid"

    over = client.post("/api/v1/receipts", json={
        "client_id": client_id, "invoice_id": invoice["id"], "payment_date": "2026-03-05",
        "amount": "300.00", "payment_method": "cash"
    }, headers=admin_headers)
    assert over.status_code == 400

    paid = client.post("/api/v1/receipts", json={
        "client_id": client_id, "invoice_id": invoice["id"], "payment_date": "2026-03-05",
        "amount": "250.00", "payment_method": "bank_transfer"
    }, headers=admin_headers)
    assert paid.status_code == 201
    assert paid.json()["invoice"]["status"] == "paid"

    html = client.get(f"/api/v1/invoices/{invoice['id']}/pdf", params={"format": "html"}, headers=admin_headers)
    assert html.status_code == 200
    assert "INV-001" in html.text
    assert "Bank Transfer" in html.text


def test_quotation_approve_and_convert_over_http(client, admin_headers):
    quotation = client.post("/api/v1/quotations", json={
        "company_name": "Initech", "company_email": "ops@initech.io", "description": "TPS reports",
        "total_amount": "75.00", "issue_date": date.today().isoformat()
    }, headers=admin_headers).json()["quotation"]

    approved = client.post(f"/api/v1/quotations/{quotation['id']}/approve", headers=admin_headers)
    assert approved.status_code == 200
    assert approved.json()["client_created"] is True

    again = client.post(f"/api/v1/quotations/{quotation['id']}/approve", headers=admin_headers)
    assert again.status_code == 400

    converted = client.post(f"/api/v1/quotations/{quotation['id']}/convert", headers=admin_headers).json()
    assert converted["message"] == "Quotation converted to invoice successfully"
    assert converted["invoice"]["quotation_id"] == quotation["id"]


def test_quotation_update_with_unknown_client_is_404(client, admin_headers):
    quotation = client.post("/api/v1/quotations", json={
        "company_name": "Initech", "company_email": "ops@initech.io", "description": "TPS reports",
        "total_amount": "75.00", "issue_date": date.today().isoformat()
    }, headers=admin_headers).json()["quotation"]

    response = client.put(f"/api/v1/quotations/{quotation['id']}", json={"client_id": 9999}, headers=admin_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Client not found"}


def test_portal_sees_own_records_and_opens_ticket(client, make_client, headers_for, admin_headers, storage):
    created = make_client()
    headers = headers_for(created["user"].id)
    client.post("/api/v1/updates", json={
        "title": "Welcome", "content": "Portal is live", "update_type": "announcement"
    }, headers=admin_headers)

    summary = client.get("/api/v1/portal/summary", headers=headers).json()
    assert summary["client"]["company_name"] == "Acme Corp"
    assert [u["title"] for u in summary["updates"]] == ["Welcome"]

    ticket = client.post(
        "/api/v1/portal/tickets",
        data={"subject": "VPN down", "description": "Cannot connect", "priority": "high"},
        files={"file": ("trace.log", b"timeout", "text/plain")},
        headers=headers,
    )
    assert ticket.status_code == 201
    file_url = ticket.json()["ticket"]["file_url"]
    assert file_url.startswith("/uploads/tickets/")
    assert storage.path_for(file_url).read_bytes() == b"timeout"

    tickets = client.get("/api/v1/tickets", headers=admin_headers).json()["tickets"]
    assert [t["subject"] for t in tickets] == ["VPN down"]


def test_admin_without_client_record_has_no_portal(client, admin_headers):
    response = client.get("/api/v1/portal/summary", headers=admin_headers)
    assert response.status_code == 404


def test_branding_save_validates_colour(client, admin_headers):
    bad = client.post("/api/v1/branding", json={"company_name": "Road Runner", "primary_color": "red"},
                      headers=admin_headers)
    assert bad.status_code == 400

    saved = client.post("/api/v1/branding", json={"company_name": "Road Runner", "primary_color": "#aa0000"},
                        headers=admin_headers)
    assert saved.status_code == 200

    branding = client.get("/api/v1/branding", headers=admin_headers).json()["branding"]
    assert branding["company_name"] == "Road Runner"
    assert branding["primary_color"] == "#aa0000"
    assert branding["footer_text"] == "Thank you for your business!"


def test_cleanup_purges_expired_passwords(client, make_client, admin_headers, clock):
    make_client()
    clock.advance(days=31)

    response = client.post("/api/v1/admin/cleanup-passwords", headers=admin_headers)

    assert response.json()["passwords_removed"] == 1


@pytest.fixture
def limited_client(engine, session_factory, password_cache, storage):
    config = settings.model_copy(update={"RATE_LIMIT_ENABLED": True, "UPLOAD_DIR": str(storage.base_dir)})
    app = create_app(config=config, bind=engine, session_factory=session_factory, password_cache=password_cache)
    return TestClient(app)


def test_login_is_rate_limited(limited_client):
    payload = {"email": "ghost@clientdesk.io", "password": "wrong"}
    statuses = [limited_client.post("/api/v1/auth/login", json=payload).status_code for _ in range(6)]

    assert statuses == [401] * 5 + [429]
    blocked = limited_client.post("/api/v1/auth/login", json=payload)
    assert blocked.json()["success"] is False
    assert "Retry-After" in blocked.headers


def test_portal_ticket_rejects_unknown_priority(client, make_client, headers_for):
    headers = headers_for(make_client()["user"].id)

    response = client.post(
        "/api/v1/portal/tickets",
        data={"subject": "VPN down", "description": "Cannot connect", "priority": "whenever"},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "priority" in response.json()["error"]


def test_requests_use_the_session_factory_given_to_the_app(engine, session_factory, password_cache, admin, admin_headers):
    opened = []

    def counting_factory():
        opened.append(1)
        return session_factory()

    config = settings.model_copy(update={"RATE_LIMIT_ENABLED": False})
    app = create_app(config=config, bind=engine, session_factory=counting_factory, password_cache=password_cache)

    response = TestClient(app).get("/api/v1/clients", headers=admin_headers)

    assert response.status_code == 200
    assert opened
