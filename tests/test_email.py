from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from clientdesk.core.config import settings
from clientdesk.core.exceptions import UpstreamError
from clientdesk.services import email_service
from clientdesk.services.branding_service import DEFAULT_BRANDING
from clientdesk.services.email_service import EmailService


def mail_config(**overrides):
    values = dict(EMAIL_USER="billing@clientdesk.io", EMAIL_PASS="app-password", SMTP_USE_TLS=True)
    values.update(overrides)
    return settings.model_copy(update=values)


@pytest.fixture
def sent_messages(monkeypatch):
    sent = []

    class DummySMTP:
        def __init__(self, host, port, timeout=10):
            self.host = host
            self.port = port
            self.timeout = timeout
            self.started_tls = False

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def ehlo(self):
            pass

        def starttls(self, context=None):
            self.started_tls = True

        def login(self, username, password):
            assert username == "billing@clientdesk.io"
            assert password == "app-password"

        def send_message(self, message):
            assert self.started_tls
            sent.append(message)

    monkeypatch.setattr(email_service.smtplib, "SMTP", DummySMTP)
    return sent


def related_invoice():
    return {
        "invoice": SimpleNamespace(
            invoice_number="INV-005", issue_date=date(2026, 3, 1), due_date=None, description="Hosting",
            total_amount=Decimal("99.00"), amount_paid=Decimal("0"), balance_due=Decimal("99.00"),
            status="unpaid", uses_items=False,
        ),
        "client": SimpleNamespace(
            company_name="Acme Corp", contact_person_name="Jane", company_email="billing@acme.io",
            contact_phone=None, address=None,
        ),
        "items": [],
    }


def test_invoice_email_attaches_pdf(sent_messages):
    branding = dict(DEFAULT_BRANDING, company_name="Road Runner", company_email="hello@roadrunner.io")

    EmailService(mail_config(), branding).send_invoice_email("billing@acme.io", related_invoice())

    assert len(sent_messages) == 1
    message = sent_messages[0]
    assert message["Subject"] == "Invoice INV-005 from Road Runner"
    assert message["To"] == "billing@acme.io"
    assert message["Reply-To"] == "hello@roadrunner.io"
    attachments = list(message.iter_attachments())
    assert [part.get_filename() for part in attachments] == ["invoice-INV-005.pdf"]
    assert attachments[0].get_content().startswith(b"%PDF")


def test_receipt_email_subject_and_attachment(sent_messages):
    related = related_invoice()
    related["receipt"] = SimpleNamespace(
        receipt_number="RCT-002", payment_date=date(2026, 3, 4), amount=Decimal("40.00"),
        payment_method="cash", notes=None,
    )

    EmailService(mail_config(), dict(DEFAULT_BRANDING)).send_receipt_email("billing@acme.io", related)

    message = sent_messages[0]
    assert message["Subject"] == f"Receipt RCT-002 from {DEFAULT_BRANDING['company_name']}"
    assert [part.get_filename() for part in message.iter_attachments()] == ["receipt-RCT-002.pdf"]


def test_password_reset_email_contains_link(sent_messages):
    config = mail_config(APP_BASE_URL="https://portal.clientdesk.io/")

    EmailService(config).send_password_reset_email("pat@clientdesk.io", "abc123", "Pat")

    body = sent_messages[0].get_body(preferencelist=("html",)).get_content()
    assert "https://portal.clientdesk.io/reset-password?token=abc123" in body


def test_missing_credentials_fail_before_connecting(sent_messages):
    with pytest.raises(UpstreamError, match="EMAIL_USER"):
        EmailService(mail_config(EMAIL_PASS=None)).send("x@clientdesk.io", "Hi", "<p>Hi</p>")
    assert sent_messages == []


def test_smtp_failure_is_upstream_error(monkeypatch):
    class RefusingSMTP:
        def __init__(self, host, port, timeout=10):
            raise OSError("connection refused")

    monkeypatch.setattr(email_service.smtplib, "SMTP", RefusingSMTP)

    with pytest.raises(UpstreamError, match="Failed to send email"):
        EmailService(mail_config()).send("x@clientdesk.io", "Hi", "<p>Hi</p>")
