"""
HTTP-level tests for the JSON API.

Verifies:
- Unauthenticated requests return 401, authenticated-but-wrong-role return 403
- Login, bootstrap and token use end to end
- Multipart sale creation with a proof of payment
- Approve -> generate invoice -> download PDF flow
- CSV export and health check responses
"""

import io

import pytest

from salesdesk.models import SaleStatus

from conftest import PASSWORD


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/users"),
            ("GET", "/api/clients"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("POST", "/api/sales/1/approve"),
            ("GET", "/api/invoices"),
            ("POST", "/api/invoices/generate/1"),
            ("GET", "/api/commission-payments"),
            ("GET", "/api/settings"),
            ("GET", "/api/analytics/dashboard"),
            ("GET", "/api/analytics/export/sales"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"]

    def test_garbage_token(self, client):
        resp = client.get("/api/sales", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_wrong_scheme(self, client, journalist):
        resp = client.get("/api/sales", headers={"Authorization": "Basic amFuZTpwdw=="})
        assert resp.status_code == 401


# =============================================================================
# JOURNALIST DENIED ADMIN OPERATIONS - 403
# =============================================================================


class TestJournalistDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("POST", "/api/sales/1/approve"),
            ("POST", "/api/sales/1/reject"),
            ("POST", "/api/invoices/generate/1"),
            ("POST", "/api/commission-payments"),
            ("GET", "/api/commission-payments/stats/all-journalists"),
            ("PUT", "/api/settings/company_name"),
            ("POST", "/api/settings/reset-defaults"),
            ("DELETE", "/api/clients/1"),
            ("GET", "/api/analytics/leaderboard"),
            ("GET", "/api/analytics/export/sales"),
        ],
    )
    def test_admin_only(self, client, jane_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=jane_headers, json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["required_roles"] == ["admin"]

    def test_cannot_read_colleagues_sale(self, client, tom_headers, jane, make_sale):
        sale = make_sale(jane.user_id)
        resp = client.get(f"/api/sales/{sale.id}", headers=tom_headers)
        assert resp.status_code == 403

    def test_cannot_read_colleagues_commission_summary(self, client, jane_headers, tom):
        resp = client.get(f"/api/commission-payments/journalist/{tom.user_id}/summary", headers=jane_headers)
        assert resp.status_code == 403


# =============================================================================
# AUTH FLOW
# =============================================================================


class TestAuthFlow:

    def test_login_and_me(self, client, journalist):
        resp = client.post("/api/auth/login", json={"email": journalist.email, "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["role"] == "journalist"
        assert "password_hash" not in body["user"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.get_json()["user"]["email"] == journalist.email

    def test_bad_credentials(self, client, journalist):
        resp = client.post("/api/auth/login", json={"email": journalist.email, "password": "wrong-password"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid credentials"}

    def test_inactive_account(self, client, admin_headers, journalist):
        client.put(f"/api/users/{journalist.id}", headers=admin_headers, json={"is_active": False})

        resp = client.post("/api/auth/login", json={"email": journalist.email, "password": PASSWORD})
        assert resp.status_code == 403

    def test_bootstrap_once(self, client):
        payload = {"first_name": "Grace", "last_name": "Owner", "email": "owner@example.com", "password": "Sup3rSecret"}
        first = client.post("/api/auth/bootstrap", json=payload)
        assert first.status_code == 201
        assert first.get_json()["user"]["role"] == "admin"

        second = client.post("/api/auth/bootstrap", json={**payload, "email": "other@example.com"})
        assert second.status_code == 403

    def test_non_object_body(self, client):
        resp = client.post("/api/auth/login", json=["email", "password"])
        assert resp.status_code == 400


# =============================================================================
# SALES -> INVOICE FLOW
# =============================================================================


def _sale_form(client_id, **extra):
    form = {
        "client_id": str(client_id),
        "amount": "500",
        "payment_method": "Cash",
        "payment_date": "2026-05-04",
        "ad_type": "Print",
    }
    form.update(extra)
    return form


class TestSalesFlow:

    def test_multipart_create_with_proof(self, client, jane_headers, ad_client):
        form = _sale_form(ad_client.id, proof_of_payment=(io.BytesIO(b"%PDF-1.4 receipt"), "receipt.pdf", "application/pdf"))
        resp = client.post("/api/sales", data=form, headers=jane_headers, content_type="multipart/form-data")

        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["status"] == "pending"
        assert sale["commission_amount"] == "50.00"

        proof = client.get(f"/api/sales/{sale['id']}/proof", headers=jane_headers)
        assert proof.status_code == 200
        assert proof.data == b"%PDF-1.4 receipt"

    def test_rejects_executable_upload(self, client, jane_headers, ad_client):
        form = _sale_form(ad_client.id, proof_of_payment=(io.BytesIO(b"MZ"), "tool.exe", "application/octet-stream"))
        resp = client.post("/api/sales", data=form, headers=jane_headers, content_type="multipart/form-data")
        assert resp.status_code == 400

    def test_json_create_and_validation_error(self, client, jane_headers, ad_client):
        ok = client.post("/api/sales", json=_sale_form(ad_client.id), headers=jane_headers)
        assert ok.status_code == 201

        bad = client.post("/api/sales", json=_sale_form(ad_client.id, amount="-3"), headers=jane_headers)
        assert bad.status_code == 400
        assert "amount" in bad.get_json()["error"]

        huge = client.post("/api/sales", json=_sale_form(ad_client.id, amount="1e30"), headers=jane_headers)
        assert huge.status_code == 400
        assert "amount" in huge.get_json()["error"]

    def test_approve_generate_download(self, client, admin_headers, jane_headers, jane, make_sale):
        sale = make_sale(jane.user_id, amount="120.00")

        not_yet = client.post(f"/api/invoices/generate/{sale.id}", headers=admin_headers)
        assert not_yet.status_code == 400

        approved = client.post(f"/api/sales/{sale.id}/approve", headers=admin_headers)
        assert approved.status_code == 200
        assert approved.get_json()["sale"]["status"] == "approved"

        again = client.post(f"/api/sales/{sale.id}/approve", headers=admin_headers)
        assert again.status_code == 400

        generated = client.post(f"/api/invoices/generate/{sale.id}", headers=admin_headers)
        assert generated.status_code == 201
        invoice = generated.get_json()["invoice"]

        duplicate = client.post(f"/api/invoices/generate/{sale.id}", headers=admin_headers)
        assert duplicate.status_code == 409

        download = client.get(f"/api/invoices/{invoice['id']}/download", headers=jane_headers)
        assert download.status_code == 200
        assert download.mimetype == "application/pdf"
        assert f"{invoice['invoice_number']}.pdf" in download.headers["Content-Disposition"]
        assert download.data.startswith(b"%PDF-")

    def test_generate_for_missing_sale(self, client, admin_headers):
        assert client.post("/api/invoices/generate/12345", headers=admin_headers).status_code == 404

    def test_reject_requires_reason(self, client, admin_headers, jane, make_sale):
        sale = make_sale(jane.user_id)

        missing = client.post(f"/api/sales/{sale.id}/reject", headers=admin_headers, json={})
        assert missing.status_code == 400

        rejected = client.post(
            f"/api/sales/{sale.id}/reject", headers=admin_headers, json={"rejection_reason": "No receipt"}
        )
        assert rejected.status_code == 200
        assert rejected.get_json()["sale"]["rejection_reason"] == "No receipt"

    def test_client_with_sales_cannot_be_deleted(self, client, admin_headers, ad_client, jane, make_sale):
        make_sale(jane.user_id)
        resp = client.delete(f"/api/clients/{ad_client.id}", headers=admin_headers)
        assert resp.status_code == 409


# =============================================================================
# COMMISSIONS, SETTINGS, ANALYTICS
# =============================================================================


class TestReporting:

    def test_commission_balance(self, client, admin_headers, jane_headers, jane, make_sale):
        make_sale(jane.user_id, amount="200.00", status=SaleStatus.APPROVED)
        created = client.post(
            "/api/commission-payments",
            headers=admin_headers,
            json={"journalist_id": jane.user_id, "amount": "25.00", "payment_date": "2026-05-31"},
        )
        assert created.status_code == 201

        summary = client.get(f"/api/commission-payments/journalist/{jane.user_id}/summary", headers=jane_headers)
        assert summary.get_json()["summary"]["balance"] == "-5.00"

    def test_settings_bulk_update(self, client, admin_headers, jane_headers):
        resp = client.post(
            "/api/settings/bulk-update",
            headers=admin_headers,
            json={"settings": {"company_name": "AfroGazette", "default_commission_rate": "12"}},
        )
        assert resp.status_code == 200

        listed = client.get("/api/settings", headers=jane_headers).get_json()["settings"]
        assert listed["company_name"] == "AfroGazette"
        assert listed["default_commission_rate"] == "12.00"

    def test_delete_protected_setting(self, client, admin_headers):
        assert client.delete("/api/settings/invoice_prefix", headers=admin_headers).status_code == 400

    def test_csv_export(self, client, admin_headers, jane, make_sale):
        make_sale(jane.user_id)
        resp = client.get("/api/analytics/export/sales?status=pending", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "sales-export.csv" in resp.headers["Content-Disposition"]
        assert resp.data.decode().startswith("ID,Created At,Payment Date")

    def test_dashboard_for_journalist(self, client, jane_headers):
        resp = client.get("/api/analytics/dashboard", headers=jane_headers)
        assert resp.status_code == 200
        assert resp.get_json()["stats"]["sales"]["total"] == 0

    def test_bad_limit(self, client, admin_headers):
        assert client.get("/api/analytics/leaderboard?limit=0", headers=admin_headers).status_code == 400


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "ok"
        assert body["checks"]["database"]["status"] == "healthy"

    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_cors_allowed_origin(self, client):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        other = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers
