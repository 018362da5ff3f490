"""
Email Service - invoice, receipt and password reset messages over SMTP
"""
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr, format_datetime, make_msgid
from typing import Dict, Any, List, Tuple
import logging
import smtplib
import ssl

from clientdesk.core.exceptions import UpstreamError
from clientdesk.services.branding_service import DEFAULT_BRANDING
from clientdesk.services.document_service import (
    build_invoice_attachment, build_receipt_attachment, template_env
)

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self, config, branding: Dict[str, Any] = None):
        self.config = config
        self.branding = branding or dict(DEFAULT_BRANDING)

    @property
    def company_name(self) -> str:
        return self.branding.get("company_name") or DEFAULT_BRANDING["company_name"]

    def send_invoice_email(self, to: str, related: Dict[str, Any]):
        invoice = related["invoice"]
        pdf = build_invoice_attachment(related, self.branding)
        html = self._render("invoice.html", invoice=invoice, client=related["client"])
        self.send(
            to,
            f"Invoice {invoice.invoice_number} from {self.company_name}",
            html,
            text=f"Please find attached invoice {invoice.invoice_number}.",
            attachments=[(f"invoice-{invoice.invoice_number}.pdf", pdf)]
        )

    def send_receipt_email(self, to: str, related: Dict[str, Any]):
        receipt = related["receipt"]
        pdf = build_receipt_attachment(related, self.branding)
        html = self._render("receipt.html", receipt=receipt, client=related["client"], invoice=related["invoice"])
        self.send(
            to,
            f"Receipt {receipt.receipt_number} from {self.company_name}",
            html,
            text=f"Thank you for your payment. Receipt {receipt.receipt_number} is attached.",
            attachments=[(f"receipt-{receipt.receipt_number}.pdf", pdf)]
        )

    def send_password_reset_email(self, to: str, token: str, name: str = None):
        reset_link = f"{self.config.APP_BASE_URL.rstrip('/')}/reset-password?token={token}"
        html = self._render("password_reset.html", reset_link=reset_link, name=name)
        self.send(
            to,
            f"Reset your {self.company_name} password",
            html,
            text=f"Use this link to reset your password (valid for one hour): {reset_link}"
        )

    def send(self, to: str, subject: str, html: str, text: str = None,
             attachments: List[Tuple[str, bytes]] = None):
        """Deliver one message. Raises UpstreamError on any failure; no retries."""
        username = self.config.EMAIL_USER
        password = self.config.EMAIL_PASS
        if not username or not password:
            raise UpstreamError("Email credentials are not configured (EMAIL_USER / EMAIL_PASS)")

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.company_name, username))
        message["To"] = to
        message["Date"] = format_datetime(datetime.now(timezone.utc))
        message["Message-ID"] = make_msgid(domain=username.split("@")[-1])
        if self.branding.get("company_email"):
            message["Reply-To"] = self.branding["company_email"]

        message.set_content(text or subject)
        message.add_alternative(html, subtype="html")
        for filename, content in attachments or []:
            message.add_attachment(content, maintype="application", subtype="pdf", filename=filename)

        try:
            with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=10) as smtp:
                smtp.ehlo()
                if self.config.SMTP_USE_TLS:
                    smtp.starttls(context=ssl.create_default_context())
                    smtp.ehlo()
                smtp.login(username, password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"Email delivery to {to} failed: {exc}")
            raise UpstreamError(f"Failed to send email: {exc}")

        logger.info(f"Email '{subject}' sent to {to}")

    def _render(self, template_name: str, **context) -> str:
        return template_env.get_template(f"email/{template_name}").render(branding=self.branding, **context)
