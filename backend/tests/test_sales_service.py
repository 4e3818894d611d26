"""
Sale lifecycle tests.

Verifies:
- Commission is computed from amount and rate on create and update
- Only PENDING sales can be updated, approved, rejected or deleted
- Journalists act only on their own sales; admins act on any
- Proof-of-payment files are stored, replaced and removed with the sale
"""

import io
import os
from decimal import Decimal

import pytest
from sqlalchemy import text
from werkzeug.datastructures import FileStorage

from salesdesk.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from salesdesk.extensions import db
from salesdesk.models import Sale, SaleStatus
from salesdesk.services import sales_service, storage_service


def _payload(client_id, **overrides):
    data = {
        "client_id": client_id,
        "amount": "500.00",
        "payment_method": "Ecocash",
        "payment_date": "2026-03-01",
        "ad_type": "WhatsApp Channel",
        "description": "Weekend promo",
    }
    data.update(overrides)
    return data


def _pdf(name="receipt.pdf", content=b"%PDF-1.4 proof", content_type="application/pdf"):
    return FileStorage(stream=io.BytesIO(content), filename=name, content_type=content_type)


def _stored(app, relative):
    return os.path.isfile(os.path.join(app.config["UPLOAD_FOLDER"], relative))


# =============================================================================
# CREATE
# =============================================================================


class TestCreateSale:

    def test_commission_uses_default_rate(self, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id))

        assert sale.status is SaleStatus.PENDING
        assert sale.journalist_id == jane.user_id
        assert sale.commission_rate == Decimal("10.00")
        assert sale.commission_amount == Decimal("50.00")
        assert sale.to_dict()["commission_amount"] == "50.00"

    def test_journalist_supplied_rate_is_ignored(self, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id, commission_rate="50"))
        assert sale.commission_rate == Decimal("10.00")
        assert sale.commission_amount == Decimal("50.00")

    def test_admin_records_sale_for_journalist_with_custom_rate(self, admin, jane, ad_client):
        sale = sales_service.create_sale(
            admin, _payload(ad_client.id, journalist_id=jane.user_id, commission_rate="15")
        )
        assert sale.journalist_id == jane.user_id
        assert sale.commission_amount == Decimal("75.00")

    def test_admin_cannot_attribute_sale_to_admin(self, admin, ad_client):
        with pytest.raises(ValidationError):
            sales_service.create_sale(admin, _payload(ad_client.id, journalist_id=admin.user_id))

    def test_journalist_cannot_record_for_colleague(self, jane, tom, ad_client):
        with pytest.raises(ForbiddenError):
            sales_service.create_sale(jane, _payload(ad_client.id, journalist_id=tom.user_id))

    def test_missing_required_fields(self, jane, ad_client):
        with pytest.raises(ValidationError) as exc:
            sales_service.create_sale(jane, {"client_id": ad_client.id})
        assert "amount" in exc.value.message

    @pytest.mark.parametrize("amount", ["0", "-5", "abc"])
    def test_amount_must_be_positive_number(self, jane, ad_client, amount):
        with pytest.raises(ValidationError):
            sales_service.create_sale(jane, _payload(ad_client.id, amount=amount))

    @pytest.mark.parametrize("amount", ["1e30", "9" * 29, "100000000", "1e21"])
    def test_oversized_amount_is_a_validation_error(self, jane, ad_client, amount):
        with pytest.raises(ValidationError):
            sales_service.create_sale(jane, _payload(ad_client.id, amount=amount))
        assert db.session.query(Sale).count() == 0

    def test_oversized_amount_on_update(self, jane, make_sale):
        sale = make_sale(jane.user_id)
        with pytest.raises(ValidationError):
            sales_service.update_sale(jane, sale.id, {"amount": "1e30"})
        assert db.session.get(Sale, sale.id).amount == Decimal("100.00")

    def test_rejects_unknown_payment_method(self, jane, ad_client):
        with pytest.raises(ValidationError):
            sales_service.create_sale(jane, _payload(ad_client.id, payment_method="Cheque"))

    def test_unknown_client(self, jane):
        with pytest.raises(NotFoundError):
            sales_service.create_sale(jane, _payload(9999))

    def test_stores_proof_of_payment(self, app, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id), _pdf())

        assert sale.proof_of_payment_path.startswith("proof-of-payment/proof-")
        assert sale.proof_of_payment_path.endswith(".pdf")
        assert _stored(app, sale.proof_of_payment_path)

    def test_rejects_disallowed_upload_type(self, app, jane, ad_client):
        exe = _pdf(name="payload.exe", content=b"MZ", content_type="application/octet-stream")
        with pytest.raises(ValidationError):
            sales_service.create_sale(jane, _payload(ad_client.id), exe)

        assert db.session.query(Sale).count() == 0
        proof_dir = os.path.join(app.config["UPLOAD_FOLDER"], storage_service.PROOF_DIR)
        assert not os.path.isdir(proof_dir) or os.listdir(proof_dir) == []

    def test_rejects_oversized_upload(self, app, jane, ad_client):
        app.config["PROOF_MAX_BYTES"] = 10
        with pytest.raises(ValidationError):
            sales_service.create_sale(jane, _payload(ad_client.id), _pdf(content=b"x" * 11))
        assert db.session.query(Sale).count() == 0


# =============================================================================
# UPDATE / DELETE
# =============================================================================


class TestUpdateSale:

    def test_recomputes_commission(self, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id))
        updated = sales_service.update_sale(jane, sale.id, {"amount": "200"})
        assert updated.commission_amount == Decimal("20.00")

    def test_admin_rate_change_recomputes(self, admin, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id))
        updated = sales_service.update_sale(admin, sale.id, {"commission_rate": "12.5"})
        assert updated.commission_amount == Decimal("62.50")

    def test_journalist_cannot_change_rate(self, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id))
        with pytest.raises(ForbiddenError):
            sales_service.update_sale(jane, sale.id, {"commission_rate": "20"})

    def test_other_journalist_is_forbidden_admin_is_not(self, admin, jane, tom, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id))

        with pytest.raises(ForbiddenError):
            sales_service.update_sale(tom, sale.id, {"description": "hijack"})

        updated = sales_service.update_sale(admin, sale.id, {"description": "Corrected"})
        assert updated.description == "Corrected"

    def test_approved_sale_is_immutable(self, admin, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id))
        sales_service.approve_sale(admin, sale.id)

        with pytest.raises(InvalidStateError):
            sales_service.update_sale(jane, sale.id, {"amount": "1"})
        with pytest.raises(InvalidStateError):
            sales_service.delete_sale(admin, sale.id)

    @pytest.mark.parametrize("operation", ["update", "delete"])
    def test_approval_landing_before_the_write_blocks_the_edit(self, monkeypatch, jane, make_sale, operation):
        sale = make_sale(jane.user_id)
        # row is now in the identity map as PENDING
        assert sales_service.get_sale(jane, sale.id).status is SaleStatus.PENDING

        real_lock = sales_service.lock_for_update

        def approved_meanwhile(query):
            db.session.execute(text("UPDATE sales SET status = 'approved' WHERE id = :id"), {"id": sale.id})
            return real_lock(query)

        monkeypatch.setattr(sales_service, "lock_for_update", approved_meanwhile)

        with pytest.raises(InvalidStateError):
            if operation == "update":
                sales_service.update_sale(jane, sale.id, {"amount": "9999"})
            else:
                sales_service.delete_sale(jane, sale.id)

        row = db.session.get(Sale, sale.id)
        assert row.status is SaleStatus.APPROVED
        assert row.amount == Decimal("100.00")
        assert row.commission_amount == Decimal("10.00")

    def test_replacing_proof_removes_old_file(self, app, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id), _pdf())
        old_path = sale.proof_of_payment_path

        png = _pdf(name="receipt.png", content=b"\x89PNG data", content_type="image/png")
        updated = sales_service.update_sale(jane, sale.id, {}, png)

        assert updated.proof_of_payment_path != old_path
        assert _stored(app, updated.proof_of_payment_path)
        assert not _stored(app, old_path)

    def test_delete_removes_row_and_proof(self, app, jane, ad_client):
        sale = sales_service.create_sale(jane, _payload(ad_client.id), _pdf())
        path = sale.proof_of_payment_path

        sales_service.delete_sale(jane, sale.id)

        assert db.session.get(Sale, sale.id) is None
        assert not _stored(app, path)

    def test_delete_other_journalists_sale_forbidden(self, jane, tom, make_sale):
        sale = make_sale(jane.user_id)
        with pytest.raises(ForbiddenError):
            sales_service.delete_sale(tom, sale.id)


# =============================================================================
# APPROVE / REJECT
# =============================================================================


class TestDecisions:

    def test_approve_records_approver(self, admin, jane, make_sale):
        sale = make_sale(jane.user_id)
        approved = sales_service.approve_sale(admin, sale.id)

        assert approved.status is SaleStatus.APPROVED
        assert approved.approved_by_user_id == admin.user_id
        assert approved.approved_at is not None

    def test_approve_twice_fails(self, admin, jane, make_sale):
        sale = make_sale(jane.user_id)
        sales_service.approve_sale(admin, sale.id)
        with pytest.raises(InvalidStateError):
            sales_service.approve_sale(admin, sale.id)

    def test_journalist_cannot_approve(self, jane, make_sale):
        sale = make_sale(jane.user_id)
        with pytest.raises(ForbiddenError):
            sales_service.approve_sale(jane, sale.id)

    def test_approve_unknown_sale(self, admin):
        with pytest.raises(NotFoundError):
            sales_service.approve_sale(admin, 4242)

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reject_requires_reason(self, admin, jane, make_sale, reason):
        sale = make_sale(jane.user_id)
        with pytest.raises(ValidationError):
            sales_service.reject_sale(admin, sale.id, reason)
        assert db.session.get(Sale, sale.id).status is SaleStatus.PENDING

    def test_reject_stores_reason_verbatim(self, admin, jane, make_sale):
        sale = make_sale(jane.user_id)
        rejected = sales_service.reject_sale(admin, sale.id, "Receipt unreadable ")

        assert rejected.status is SaleStatus.REJECTED
        assert rejected.rejection_reason == "Receipt unreadable "
        assert rejected.approved_by_user_id == admin.user_id

    def test_cannot_reject_approved_sale(self, admin, jane, make_sale):
        sale = make_sale(jane.user_id, status=SaleStatus.APPROVED)
        with pytest.raises(InvalidStateError):
            sales_service.reject_sale(admin, sale.id, "Too late")

    @pytest.mark.parametrize("operation", ["update", "delete", "approve", "reject"])
    def test_rejected_sale_is_terminal(self, admin, jane, make_sale, operation):
        sale = make_sale(jane.user_id)
        sales_service.reject_sale(admin, sale.id, "Duplicate entry")

        attempts = {
            "update": lambda: sales_service.update_sale(admin, sale.id, {"amount": "250"}),
            "delete": lambda: sales_service.delete_sale(admin, sale.id),
            "approve": lambda: sales_service.approve_sale(admin, sale.id),
            "reject": lambda: sales_service.reject_sale(admin, sale.id, "Second thoughts"),
        }
        with pytest.raises(InvalidStateError):
            attempts[operation]()

        row = db.session.get(Sale, sale.id)
        assert row.status is SaleStatus.REJECTED
        assert row.rejection_reason == "Duplicate entry"
        assert row.amount == Decimal("100.00")


# =============================================================================
# READ SCOPE
# =============================================================================


class TestListSales:

    def test_journalist_sees_only_own_sales(self, jane, tom, make_sale):
        mine = make_sale(jane.user_id)
        make_sale(tom.user_id)

        sales = sales_service.list_sales(jane)
        assert [s.id for s in sales] == [mine.id]

    def test_journalist_id_filter_does_not_widen_journalist_scope(self, jane, tom, make_sale):
        make_sale(tom.user_id)
        assert sales_service.list_sales(jane, journalist_id=tom.user_id) == []

    def test_admin_sees_all_and_can_filter(self, admin, jane, tom, make_sale):
        make_sale(jane.user_id)
        toms = make_sale(tom.user_id, status=SaleStatus.APPROVED)

        assert len(sales_service.list_sales(admin)) == 2
        assert [s.id for s in sales_service.list_sales(admin, journalist_id=tom.user_id)] == [toms.id]
        assert [s.id for s in sales_service.list_sales(admin, status="approved")] == [toms.id]

    def test_search_matches_client_name(self, admin, jane, make_sale):
        make_sale(jane.user_id)
        assert len(sales_service.list_sales(admin, search="acme")) == 1
        assert sales_service.list_sales(admin, search="nobody") == []

    def test_search_matches_description_ignoring_case(self, admin, jane, make_sale):
        banner = make_sale(jane.user_id)
        banner.description = "Front Page Banner"
        make_sale(jane.user_id)
        db.session.commit()

        assert [s.id for s in sales_service.list_sales(admin, search="page BANNER")] == [banner.id]
        assert [s.id for s in sales_service.list_sales(jane, search="front")] == [banner.id]
        assert sales_service.list_sales(admin, search="back page") == []

    def test_invalid_status_filter(self, admin):
        with pytest.raises(ValidationError):
            sales_service.list_sales(admin, status="archived")

    def test_get_other_journalists_sale_forbidden(self, tom, jane, make_sale):
        sale = make_sale(jane.user_id)
        with pytest.raises(ForbiddenError):
            sales_service.get_sale(tom, sale.id)
