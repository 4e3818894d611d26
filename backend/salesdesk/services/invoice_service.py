# Overview: Service-layer operations for invoices; numbering, generation, lookup and deletion.

"""
Invoices are immutable billing documents, one per APPROVED sale.

Numbering: <prefix>-<year>-<NNN>, sequence restarting every calendar year.
The next number is read from the highest existing number for the year, so
two concurrent generators can pick the same value. The unique constraint on
invoice_number turns that race into an IntegrityError, and generation is
retried with a fresh number. The unique constraint on sale_id guarantees at
most one invoice per sale even when two requests race for the same sale.

WHY the PDF is rendered after flush: once the INSERT has gone through, this
transaction owns the number, so the file name cannot belong to anyone else
and may be removed safely if the commit fails.
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from ..extensions import db
from ..models import Invoice, Sale, SaleStatus
from ..roles import Actor, ensure_admin, journalist_scope
from salesdesk.time_utils import today, utcnow
from . import settings_service, storage_service
from .concurrency import run_with_retry
from .invoice_pdf import render_invoice

logger = logging.getLogger(__name__)

NUMBER_ATTEMPTS = 5
SEQUENCE_WIDTH = 3


def next_invoice_number(*, prefix: str | None = None, year: int | None = None) -> str:
    """
    Next number for the year: highest existing sequence + 1, or 001.

    Ordering by length first keeps the numeric order once sequences pass 999.
    """
    prefix = prefix or settings_service.invoice_prefix()
    year = year or today().year
    base = f"{prefix}-{year}-"

    last = (
        db.session.query(Invoice.invoice_number)
        .filter(Invoice.invoice_number.startswith(base, autoescape=True))
        .order_by(func.length(Invoice.invoice_number).desc(), Invoice.invoice_number.desc())
        .first()
    )

    sequence = 1
    if last is not None:
        suffix = last[0][len(base):]
        if suffix.isdigit():
            sequence = int(suffix) + 1
        else:
            logger.warning("Ignoring malformed invoice number %s", last[0])

    return f"{base}{sequence:0{SEQUENCE_WIDTH}d}"


def _existing_for_sale(sale_id: int) -> Invoice | None:
    return db.session.query(Invoice).filter(Invoice.sale_id == sale_id).first()


def generate_invoice(actor: Actor, sale_id: int) -> Invoice:
    """
    Create the invoice and PDF for an approved sale. Admin only.

    NotFoundError if the sale is absent, InvalidStateError unless it is
    APPROVED, ConflictError if it already has an invoice.
    """
    ensure_admin(actor, "generate invoices")

    def _attempt() -> Invoice:
        sale = db.session.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError("Sale not found")
        if sale.status is not SaleStatus.APPROVED:
            raise InvalidStateError(
                "Only approved sales can have invoices generated",
                {"sale_id": sale.id, "status": sale.status.value},
            )
        existing = _existing_for_sale(sale.id)
        if existing is not None:
            raise ConflictError(
                "Invoice already exists for this sale",
                {"invoice_id": existing.id, "invoice_number": existing.invoice_number},
            )

        client = sale.client
        invoice = Invoice(
            sale_id=sale.id,
            invoice_number=next_invoice_number(),
            client_name=client.client_name if client else "",
            client_phone=client.phone_number if client else None,
            amount=sale.amount,
            payment_method=sale.payment_method,
            payment_date=sale.payment_date,
            ad_type=sale.ad_type,
            description=sale.description,
            generated_by_user_id=actor.user_id,
            generated_at=utcnow(),
        )
        db.session.add(invoice)
        db.session.flush()

        relative, absolute = storage_service.prepare_invoice_path(invoice.invoice_number)
        try:
            render_invoice(invoice, settings_service.get_all(), absolute)
            invoice.pdf_path = relative
            db.session.commit()
        except Exception:
            storage_service.remove_file(relative)
            raise
        return invoice

    try:
        invoice = run_with_retry(_attempt, attempts=NUMBER_ATTEMPTS, backoff_base=0.05, retry_on=(IntegrityError,))
    except IntegrityError:
        logger.error("Could not allocate a unique invoice number for sale %s", sale_id)
        raise ConflictError("Could not allocate a unique invoice number; please retry")
    except Exception:
        db.session.rollback()
        raise

    logger.info("Invoice %s generated for sale %s by %s", invoice.invoice_number, sale_id, actor.user_id)
    return invoice


def _query():
    return db.session.query(Invoice).options(joinedload(Invoice.generated_by), joinedload(Invoice.sale))


def list_invoices(actor: Actor) -> list[Invoice]:
    """Journalists only see invoices of their own sales."""
    query = _query().join(Sale, Sale.id == Invoice.sale_id)
    scope = journalist_scope(actor)
    if scope is not None:
        query = query.filter(Sale.journalist_id == scope)
    return query.order_by(Invoice.generated_at.desc(), Invoice.id.desc()).all()


def get_invoice(actor: Actor, invoice_id: int) -> Invoice:
    invoice = _query().filter(Invoice.id == invoice_id).first()
    if invoice is None:
        raise NotFoundError("Invoice not found")
    scope = journalist_scope(actor)
    if scope is not None and (invoice.sale is None or invoice.sale.journalist_id != scope):
        raise ForbiddenError("You can only access invoices for your own sales")
    return invoice


def invoice_pdf(actor: Actor, invoice_id: int) -> tuple[str, str]:
    """(absolute path, download name) of the rendered PDF."""
    invoice = get_invoice(actor, invoice_id)
    if not invoice.pdf_path:
        raise NotFoundError("PDF not available for this invoice")
    if not storage_service.file_exists(invoice.pdf_path):
        raise NotFoundError("PDF file not found")
    return storage_service.resolve_path(invoice.pdf_path), f"{invoice.invoice_number}.pdf"


def delete_invoice(actor: Actor, invoice_id: int) -> None:
    """Removes the row and its PDF. Admin only."""
    ensure_admin(actor, "delete invoices")
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")

    pdf_path = invoice.pdf_path
    number = invoice.invoice_number
    db.session.delete(invoice)
    db.session.commit()
    storage_service.remove_file(pdf_path)

    logger.info("Invoice %s deleted by %s", number, actor.user_id)
