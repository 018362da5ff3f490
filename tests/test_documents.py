import sys
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from clientdesk.core.exceptions import UpstreamError
from clientdesk.services.branding_service import DEFAULT_BRANDING, branding_css
from clientdesk.services.document_service import (
    DocumentRenderer,
    build_invoice_attachment,
    build_receipt_attachment,
    format_currency,
    format_long_date,
    render_pdf,
)


def sample_client(**overrides):
    fields = dict(
        company_name="Acme <Corp>", contact_person_name="Jane Doe", company_email="billing@acme.io",
        contact_phone="555-0101", address="1 Road Runner Way",
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def sample_invoice(**overrides):
    fields = dict(
        invoice_number="INV-042", issue_date=date(2026, 3, 1), due_date=date(2026, 3, 31),
        description="Rocket skates", total_amount=Decimal("1234.5"), amount_paid=Decimal("234.50"),
        balance_due=Decimal("1000.00"), status="partially_paid", uses_items=False,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def sample_receipt(**overrides):
    fields = dict(
        receipt_number="RCT-007", payment_date=date(2026, 3, 9), amount=Decimal("234.50"),
        payment_method="bank_transfer", notes="Thanks & see you",
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


@pytest.mark.parametrize("value, expected", [
    (Decimal("1234.5"), "$1,234.50"),
    (0, "$0.00"),
    (None, "$0.00"),
    (Decimal("-12"), "-$12.00"),
    (1000000, "$1,000,000.00"),
])
def test_format_currency(value, expected):
    assert format_currency(value, "$") == expected


def test_format_long_date_accepts_dates_datetimes_and_strings():
    assert format_long_date(date(2026, 10, 9)) == "October 9, 2026"
    assert format_long_date(datetime(2026, 1, 31, 17, 45)) == "January 31, 2026"
    assert format_long_date("2026-02-03") == "February 3, 2026"
    assert format_long_date(None) == ""


def test_invoice_html_uses_stored_totals_and_branding():
    branding = dict(DEFAULT_BRANDING, company_name="Road Runner Supplies", primary_color="#aa0000")
    html = DocumentRenderer(branding, "$").render_invoice_html({
        "invoice": sample_invoice(), "client": sample_client(), "items": [], "receipts": [],
    })

    assert "INV-042" in html
    assert "Road Runner Supplies" in html
    assert "$1,234.50" in html
    assert "$1,000.00" in html
    assert "#aa0000" in html
    assert "March 1, 2026" in html
    assert "Acme &lt;Corp&gt;" in html


def test_invoice_html_lists_items_when_used():
    items = [
        SimpleNamespace(position=1, title="Skates", description="Pair", price=Decimal("1000")),
        SimpleNamespace(position=2, title="Helmet", description=None, price=Decimal("234.5")),
    ]
    html = DocumentRenderer(dict(DEFAULT_BRANDING), "$").render_invoice_html({
        "invoice": sample_invoice(uses_items=True), "client": sample_client(), "items": items, "receipts": [],
    })

    assert "Skates" in html
    assert "Helmet" in html
    assert "$234.50" in html


def test_quotation_html_falls_back_to_client_details():
    quotation = SimpleNamespace(
        quotation_number="QUO-003", company_name=None, company_email=None, contact_person_name=None,
        contact_phone=None, address=None, description="Website", terms_and_conditions="50% upfront",
        total_amount=Decimal("800"), issue_date=date(2026, 3, 1), due_date=None, status="Sent",
        uses_items=False,
    )
    html = DocumentRenderer(dict(DEFAULT_BRANDING), "$").render_quotation_html({
        "quotation": quotation, "client": sample_client(company_name="Globex"), "items": [],
    })

    assert "QUO-003" in html
    assert "Globex" in html
    assert "50% upfront" in html
    assert "$800.00" in html


def test_receipt_html_shows_payment():
    html = DocumentRenderer(dict(DEFAULT_BRANDING), "$").render_receipt_html({
        "receipt": sample_receipt(), "client": sample_client(), "invoice": sample_invoice(),
    })

    assert "RCT-007" in html
    assert "INV-042" in html
    assert "$234.50" in html
    assert "Bank Transfer" in html


def test_branding_css_falls_back_to_defaults():
    css = branding_css({"primary_color": "#123456"})
    assert "--primary: #123456" in css
    assert DEFAULT_BRANDING["secondary_color"] in css


class FakeHTML:
    rendered = []

    def __init__(self, string):
        self.string = string

    def write_pdf(self, stylesheets=None):
        FakeHTML.rendered.append((self.string, stylesheets))
        return b"%PDF-fake"


class FakeCSS:
    def __init__(self, string):
        self.string = string


def test_render_pdf_passes_page_css(monkeypatch):
    FakeHTML.rendered = []
    monkeypatch.setitem(sys.modules, "weasyprint", SimpleNamespace(HTML=FakeHTML, CSS=FakeCSS))

    assert render_pdf("<h1>INV-042</h1>") == b"%PDF-fake"
    html, stylesheets = FakeHTML.rendered[0]
    assert html == "<h1>INV-042</h1>"
    assert "@page" in stylesheets[0].string


def test_render_pdf_failure_is_upstream_error(monkeypatch):
    class BrokenHTML(FakeHTML):
        def write_pdf(self, stylesheets=None):
            raise RuntimeError("no fonts")

    monkeypatch.setitem(sys.modules, "weasyprint", SimpleNamespace(HTML=BrokenHTML, CSS=FakeCSS))

    with pytest.raises(UpstreamError, match="Failed to generate PDF"):
        render_pdf("<p>x</p>")


def test_reportlab_attachments_are_pdfs():
    branding = dict(DEFAULT_BRANDING, company_address="PO Box 1 & Co")
    invoice_pdf = build_invoice_attachment(
        {"invoice": sample_invoice(), "client": sample_client(), "items": []}, branding
    )
    receipt_pdf = build_receipt_attachment(
        {"receipt": sample_receipt(), "client": sample_client(), "invoice": sample_invoice()}, branding
    )

    assert invoice_pdf.startswith(b"%PDF")
    assert receipt_pdf.startswith(b"%PDF")
