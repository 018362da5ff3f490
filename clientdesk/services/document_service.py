"""
Document Service - invoices, quotations and receipts as HTML and PDF

Two output paths:

* ``DocumentRenderer`` fills the Jinja2 templates in ``clientdesk/templates/pdf``
  and ``render_pdf`` turns that HTML into an A4 PDF with WeasyPrint. Used by
  the download endpoints.
* ``build_invoice_attachment`` / ``build_receipt_attachment`` draw a compact
  PDF with reportlab into a buffer for email attachments.

Stored totals are printed as they are; nothing is recalculated here.
"""
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Dict, Any
from xml.sax.saxutils import escape
import logging

from jinja2 import Environment, PackageLoader, select_autoescape

from clientdesk.core.config import settings
from clientdesk.core.exceptions import UpstreamError
from clientdesk.services.branding_service import DEFAULT_BRANDING, branding_css

logger = logging.getLogger(__name__)


# ==================== FORMATTING ====================

def format_currency(value, symbol: str = None) -> str:
    """Symbol, thousands separators and exactly two decimals: $1,234.50"""
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    amount = Decimal(str(value if value is not None else 0))
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_long_date(value) -> str:
    """October 19, 2026"""
    if not value:
        return ""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    if isinstance(value, datetime):
        value = value.date()
    return f"{value:%B} {value.day}, {value.year}"


def humanize(value) -> str:
    return str(value or "").replace("_", " ").title()


template_env = Environment(
    loader=PackageLoader("clientdesk", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
template_env.filters["currency"] = format_currency
template_env.filters["long_date"] = format_long_date
template_env.filters["humanize"] = humanize


# ==================== HTML ====================

class DocumentRenderer:
    def __init__(self, branding: Dict[str, Any] = None, currency_symbol: str = None):
        self.branding = branding or dict(DEFAULT_BRANDING)
        self.currency_symbol = currency_symbol if currency_symbol is not None else settings.CURRENCY_SYMBOL

    def _render(self, template_name: str, **context) -> str:
        template = template_env.get_template(f"pdf/{template_name}")
        return template.render(
            branding=self.branding,
            branding_css=branding_css(self.branding),
            symbol=self.currency_symbol,
            page_size=settings.PDF_PAGE_SIZE,
            page_margin=settings.PDF_MARGIN,
            **context
        )

    def render_invoice_html(self, related: Dict[str, Any]) -> str:
        """``related`` as returned by InvoiceService.get_with_related"""
        return self._render(
            "invoice.html",
            invoice=related["invoice"],
            client=related["client"],
            items=related.get("items") or [],
            receipts=related.get("receipts") or [],
        )

    def render_quotation_html(self, related: Dict[str, Any]) -> str:
        quotation = related["quotation"]
        client = related.get("client")
        return self._render(
            "quotation.html",
            quotation=quotation,
            bill_to=_quotation_bill_to(quotation, client),
            items=related.get("items") or [],
        )

    def render_receipt_html(self, related: Dict[str, Any]) -> str:
        return self._render(
            "receipt.html",
            receipt=related["receipt"],
            client=related["client"],
            invoice=related["invoice"],
        )


def _quotation_bill_to(quotation, client) -> Dict[str, Any]:
    """Prospect data on the quotation, falling back to the linked client"""
    def pick(field):
        value = getattr(quotation, field, None)
        if not value and client is not None:
            value = getattr(client, field, None)
        return value

    return {field: pick(field) for field in (
        "company_name", "company_email", "contact_person_name", "contact_phone", "address"
    )}


def render_pdf(html: str) -> bytes:
    """Render HTML to PDF bytes with the configured page size and margins"""
    from weasyprint import HTML, CSS

    page_css = CSS(string=(
        f"@page {{ size: {settings.PDF_PAGE_SIZE}; margin: {settings.PDF_MARGIN}; }}\n"
        "html { -weasy-print-color-adjust: exact; print-color-adjust: exact; }"
    ))
    try:
        return HTML(string=html).write_pdf(stylesheets=[page_css])
    except Exception as exc:
        logger.error(f"PDF rendering failed: {exc}", exc_info=True)
        raise UpstreamError(f"Failed to generate PDF: {exc}")


# ==================== EMAIL ATTACHMENTS ====================

def _attachment_styles(branding: Dict[str, Any]):
    from reportlab.lib import colors
    from reportlab.lib.enums import TA_RIGHT
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle

    styles = getSampleStyleSheet()
    primary = colors.HexColor(_six_digit(branding.get("primary_color") or DEFAULT_BRANDING["primary_color"]))
    return {
        "primary": primary,
        "title": ParagraphStyle('DocTitle', parent=styles['Heading1'], textColor=colors.white, fontSize=18),
        "company": ParagraphStyle('Company', parent=styles['Normal'], textColor=colors.white, alignment=TA_RIGHT, fontSize=9),
        "label": ParagraphStyle('Label', parent=styles['Heading4'], textColor=primary, spaceAfter=2),
        "normal": styles['Normal'],
        "footer": ParagraphStyle('Footer', parent=styles['Italic'], fontSize=9, textColor=colors.grey),
    }


def _six_digit(color: str) -> str:
    if len(color) == 4:
        return "#" + "".join(ch * 2 for ch in color[1:])
    return color


def _header_band(title: str, number: str, branding: Dict[str, Any], styles):
    from reportlab.lib.units import mm
    from reportlab.platypus import Paragraph, Table, TableStyle

    company_lines = [branding.get("company_name") or DEFAULT_BRANDING["company_name"]]
    for key in ("company_address", "company_phone", "company_email", "company_website"):
        if branding.get(key):
            company_lines.append(str(branding[key]))

    band = Table(
        [[Paragraph(f"{title}<br/><font size=11>{number}</font>", styles["title"]),
          Paragraph("<br/>".join(escape(line) for line in company_lines), styles["company"])]],
        colWidths=[85 * mm, 85 * mm]
    )
    band.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), styles["primary"]),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('TOPPADDING', (0, 0), (-1, -1), 10),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 10),
    ]))
    return band


def _build(elements) -> bytes:
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.units import mm
    from reportlab.platypus import SimpleDocTemplate

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4,
                            leftMargin=20 * mm, rightMargin=20 * mm,
                            topMargin=20 * mm, bottomMargin=20 * mm)
    doc.build(elements)
    return buffer.getvalue()


def build_invoice_attachment(related: Dict[str, Any], branding: Dict[str, Any]) -> bytes:
    """Invoice PDF for an email attachment"""
    from reportlab.lib import colors
    from reportlab.lib.units import mm
    from reportlab.platypus import Paragraph, Spacer, Table, TableStyle

    invoice, client = related["invoice"], related["client"]
    items = related.get("items") or []
    styles = _attachment_styles(branding)
    money = format_currency

    elements = [_header_band("INVOICE", invoice.invoice_number, branding, styles), Spacer(1, 8 * mm)]

    elements.append(Paragraph("Invoice Details", styles["label"]))
    elements.append(Paragraph(f"Issue date: {format_long_date(invoice.issue_date)}", styles["normal"]))
    if invoice.due_date:
        elements.append(Paragraph(f"Due date: {format_long_date(invoice.due_date)}", styles["normal"]))
    elements.append(Paragraph(f"Status: {humanize(invoice.status)}", styles["normal"]))
    elements.append(Spacer(1, 5 * mm))

    elements.extend(_bill_to(client, styles))

    if invoice.uses_items and items:
        table_data = [['#', 'Item', 'Description', 'Price']]
        for item in items:
            table_data.append([str(item.position), item.title, item.description or '', money(item.price)])
    else:
        table_data = [['Description', 'Amount'], [invoice.description, money(invoice.total_amount)]]

    elements.append(_items_table(table_data, styles))
    elements.append(Spacer(1, 5 * mm))

    totals = Table([
        ['Total', money(invoice.total_amount)],
        ['Amount paid', money(invoice.amount_paid)],
        ['Balance due', money(invoice.balance_due)],
    ], colWidths=[40 * mm, 40 * mm], hAlign='RIGHT')
    totals.setStyle(TableStyle([
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('LINEABOVE', (0, -1), (-1, -1), 1, styles["primary"]),
        ('TEXTCOLOR', (0, 1), (-1, 1), colors.HexColor(_six_digit(branding.get("accent_color") or DEFAULT_BRANDING["accent_color"]))),
    ]))
    elements.append(totals)
    elements.extend(_footer(branding, styles))

    return _build(elements)


def build_receipt_attachment(related: Dict[str, Any], branding: Dict[str, Any]) -> bytes:
    """Receipt PDF for an email attachment"""
    from reportlab.lib.units import mm
    from reportlab.platypus import Paragraph, Spacer

    receipt, client, invoice = related["receipt"], related["client"], related["invoice"]
    styles = _attachment_styles(branding)

    elements = [_header_band("RECEIPT", receipt.receipt_number, branding, styles), Spacer(1, 8 * mm)]

    elements.append(Paragraph("Payment Details", styles["label"]))
    elements.append(Paragraph(f"Payment date: {format_long_date(receipt.payment_date)}", styles["normal"]))
    elements.append(Paragraph(f"Payment method: {humanize(receipt.payment_method)}", styles["normal"]))
    if invoice is not None:
        elements.append(Paragraph(f"For invoice: {invoice.invoice_number}", styles["normal"]))
    elements.append(Spacer(1, 5 * mm))

    elements.extend(_bill_to(client, styles, heading="Received From"))

    table_data = [['Description', 'Amount'], [
        invoice.description if invoice is not None else 'Payment', format_currency(receipt.amount)
    ]]
    elements.append(_items_table(table_data, styles))
    if invoice is not None:
        elements.append(Spacer(1, 4 * mm))
        elements.append(Paragraph(
            f"Remaining balance on {invoice.invoice_number}: {format_currency(invoice.balance_due)}",
            styles["normal"]
        ))
    if receipt.notes:
        elements.append(Spacer(1, 4 * mm))
        elements.append(Paragraph(f"Notes: {escape(receipt.notes)}", styles["normal"]))
    elements.extend(_footer(branding, styles))

    return _build(elements)


def _bill_to(client, styles, heading: str = "Bill To"):
    from reportlab.lib.units import mm
    from reportlab.platypus import Paragraph, Spacer

    lines = [Paragraph(heading, styles["label"])]
    if client is not None:
        for value in (client.company_name, client.contact_person_name, client.company_email,
                      client.contact_phone, client.address):
            if value:
                lines.append(Paragraph(escape(str(value)), styles["normal"]))
    lines.append(Spacer(1, 5 * mm))
    return lines


def _items_table(table_data, styles):
    from reportlab.lib import colors
    from reportlab.platypus import Table, TableStyle

    table = Table(table_data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), styles["primary"]),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (-1, 0), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f9fafb')]),
    ]))
    return table


def _footer(branding, styles):
    from reportlab.lib.units import mm
    from reportlab.platypus import Paragraph, Spacer

    text = branding.get("footer_text") or DEFAULT_BRANDING["footer_text"]
    return [Spacer(1, 10 * mm), Paragraph(escape(text), styles["footer"])]
