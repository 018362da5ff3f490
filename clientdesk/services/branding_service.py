"""
Branding Service - company identity used on documents and emails
"""
from typing import Dict, Any

from sqlalchemy.orm import Session

from clientdesk.core.validators import require_fields, validate_hex_color, is_blank
from clientdesk.models import BrandingSettings
from clientdesk.schemas import BrandingUpdate

DEFAULT_BRANDING = {
    "company_name": "QWERTY",
    "company_address": None,
    "company_phone": None,
    "company_email": None,
    "company_website": None,
    "primary_color": "#01303F",
    "secondary_color": "#014a5f",
    "accent_color": "#059669",
    "font_family": "Arial, sans-serif",
    "logo_url": None,
    "footer_text": "Thank you for your business!",
}


class BrandingService:
    def __init__(self, db: Session):
        self.db = db

    def get_row(self):
        return self.db.query(BrandingSettings).order_by(BrandingSettings.id).first()

    def get(self) -> Dict[str, Any]:
        """Stored branding with defaults filled in for empty fields"""
        branding = dict(DEFAULT_BRANDING)
        row = self.get_row()
        if row:
            for key in DEFAULT_BRANDING:
                value = getattr(row, key)
                if not is_blank(value):
                    branding[key] = value
        return branding

    def save(self, data: BrandingUpdate) -> Dict[str, Any]:
        require_fields("Company name and primary color are required", data.company_name, data.primary_color)
        fields = data.model_dump()
        fields["primary_color"] = validate_hex_color(data.primary_color)
        for key in ("secondary_color", "accent_color"):
            if not is_blank(fields.get(key)):
                fields[key] = validate_hex_color(fields[key], key.replace("_", " ").capitalize())

        row = self.get_row()
        if row is None:
            row = BrandingSettings(**fields)
            self.db.add(row)
        else:
            for key, value in fields.items():
                setattr(row, key, value)
        self.db.commit()
        return self.get()


def branding_css(branding: Dict[str, Any]) -> str:
    """Stylesheet variables and header/footer rules for the document templates"""
    primary = branding.get("primary_color") or DEFAULT_BRANDING["primary_color"]
    secondary = branding.get("secondary_color") or DEFAULT_BRANDING["secondary_color"]
    accent = branding.get("accent_color") or DEFAULT_BRANDING["accent_color"]
    font = branding.get("font_family") or DEFAULT_BRANDING["font_family"]
    return (
        f":root {{ --primary: {primary}; --secondary: {secondary}; --accent: {accent}; }}\n"
        f"body {{ font-family: {font}; color: #1f2937; }}\n"
        f".doc-header {{ background: {primary}; color: #ffffff; }}\n"
        f".doc-title, th {{ color: {primary}; }}\n"
        f"table.items thead tr {{ background: {secondary}; }}\n"
        f"table.items thead th {{ color: #ffffff; }}\n"
        f".amount-paid, .status-paid {{ color: {accent}; }}\n"
        f".totals .grand {{ border-top: 2px solid {primary}; }}\n"
    )
