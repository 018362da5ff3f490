"""
Field checks shared by the services. Each raises ``ValidationFailed`` with a
message fit for the response body.
"""
import re
from decimal import Decimal, InvalidOperation

from email_validator import validate_email, EmailNotValidError

from clientdesk.core.exceptions import ValidationFailed

HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(message: str, *values):
    if any(is_blank(value) for value in values):
        raise ValidationFailed(message)


def validate_email_address(email: str) -> str:
    """Return the normalised address or raise"""
    if is_blank(email):
        raise ValidationFailed("Email is required")
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        raise ValidationFailed("Invalid email address")
    return result.normalized.lower()


def validate_hex_color(value: str, field: str = "Primary color") -> str:
    if is_blank(value) or not HEX_COLOR_RE.match(value.strip()):
        raise ValidationFailed(f"{field} must be a hex color like #01303F")
    return value.strip()


def positive_amount(value, message: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailed(message)
    if amount <= 0:
        raise ValidationFailed(message)
    return amount.quantize(Decimal("0.01"))
