# Overview: Renders an invoice record to a one-page A4 PDF with reportlab platypus.

from __future__ import annotations

from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..money import fmt

BRAND_COLOR = colors.HexColor("#dc2626")
MUTED_COLOR = colors.HexColor("#666666")

DEFAULT_LINE_ITEM = "Advertising Service"


class InvoicePDF:
    """
    Layout: company header, invoice number and date, bill-to block,
    payment-details block, one line item, total, footer.
    """

    def __init__(self, invoice, company: dict):
        self.invoice = invoice
        # Settings may hold None for unset keys
        self.company = {k: (v if v is not None else "") for k, v in company.items()}

        styles = getSampleStyleSheet()
        self.normal = ParagraphStyle("InvNormal", parent=styles["Normal"], fontName="Helvetica", fontSize=10, leading=14)
        self.muted = ParagraphStyle("InvMuted", parent=self.normal, textColor=MUTED_COLOR)
        self.bold = ParagraphStyle("InvBold", parent=self.normal, fontName="Helvetica-Bold", fontSize=12)
        self.company_style = ParagraphStyle("InvCompany", parent=styles["Heading1"], fontName="Helvetica-Bold",
                                            fontSize=20, leading=24, textColor=BRAND_COLOR)
        self.title = ParagraphStyle("InvTitle", parent=styles["Heading1"], fontName="Helvetica-Bold",
                                    fontSize=20, leading=24, alignment=TA_RIGHT)
        self.right_muted = ParagraphStyle("InvRightMuted", parent=self.muted, alignment=TA_RIGHT)
        self.white_bold = ParagraphStyle("InvWhiteBold", parent=self.normal, fontName="Helvetica-Bold",
                                         textColor=colors.white)
        self.total_style = ParagraphStyle("InvTotal", parent=self.normal, fontName="Helvetica-Bold", fontSize=14, leading=18)
        self.footer = ParagraphStyle("InvFooter", parent=self.muted, fontSize=9, alignment=TA_CENTER)

    def _p(self, text, style) -> Paragraph:
        return Paragraph(escape(str(text or "")), style)

    def _header(self) -> list:
        inv = self.invoice
        generated = inv.generated_at.strftime("%Y-%m-%d") if inv.generated_at else ""

        company_block = [
            self._p(self.company.get("company_name"), self.company_style),
            self._p(self.company.get("company_address"), self.muted),
        ]
        title_block = [
            self._p("INVOICE", self.title),
            self._p(f"#{inv.invoice_number}", self.right_muted),
            self._p(f"Date: {generated}", self.right_muted),
        ]

        table = Table([[company_block, title_block]], colWidths=[3.6 * inch, 2.8 * inch])
        table.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
            ("RIGHTPADDING", (0, 0), (-1, -1), 0),
        ]))
        return [table, Spacer(1, 0.2 * inch), HRFlowable(width="100%", thickness=2, color=BRAND_COLOR), Spacer(1, 0.2 * inch)]

    def _parties(self) -> list:
        inv = self.invoice
        payment_date = inv.payment_date.isoformat() if inv.payment_date else ""

        bill_to = [
            self._p("Bill To:", self.bold),
            self._p(inv.client_name, self.muted),
            self._p(f"Phone: {inv.client_phone or 'N/A'}", self.muted),
        ]
        payment = [
            self._p("Payment Details:", self.bold),
            self._p(f"Method: {inv.payment_method}", self.muted),
            self._p(f"Date: {payment_date}", self.muted),
            self._p(f"Ad Type: {inv.ad_type or 'N/A'}", self.muted),
        ]

        table = Table([[bill_to, payment]], colWidths=[3.6 * inch, 2.8 * inch])
        table.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ]))
        return [table, Spacer(1, 0.4 * inch)]

    def _line_items(self) -> list:
        inv = self.invoice
        amount = f"${fmt(inv.amount)}"

        rows = [
            [self._p("Description", self.white_bold), self._p("Amount", self.white_bold)],
            [self._p(inv.description or DEFAULT_LINE_ITEM, self.normal), self._p(amount, self.normal)],
            [self._p("TOTAL", self.total_style), self._p(amount, self.total_style)],
        ]
        table = Table(rows, colWidths=[4.9 * inch, 1.5 * inch])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), BRAND_COLOR),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("LINEBELOW", (0, 1), (-1, 1), 1, colors.HexColor("#cccccc")),
            ("TOPPADDING", (0, 0), (-1, -1), 8),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
        ]))
        return [table, Spacer(1, 1.2 * inch)]

    def _footer(self) -> list:
        return [
            self._p("Thank you for your business!", self.footer),
            self._p("For inquiries, please contact us at the address above.", self.footer),
        ]

    def generate(self, filename: str) -> str:
        doc = SimpleDocTemplate(
            filename,
            pagesize=A4,
            rightMargin=50,
            leftMargin=50,
            topMargin=50,
            bottomMargin=50,
            title=f"Invoice {self.invoice.invoice_number}",
        )
        story = self._header() + self._parties() + self._line_items() + self._footer()
        doc.build(story)
        return filename


def render_invoice(invoice, company: dict, filename: str) -> str:
    return InvoicePDF(invoice, company).generate(filename)
