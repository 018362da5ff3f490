"""
Quotation Service - quotations, approval and conversion to invoices
"""
from datetime import date, timedelta
from typing import Optional, List, Dict, Any, Tuple
import logging

from sqlalchemy.orm import Session, joinedload

from clientdesk.core.database import utcnow
from clientdesk.core.exceptions import NotFound, ValidationFailed
from clientdesk.core.validators import is_blank, positive_amount, require_fields
from clientdesk.models import Client, Invoice, Quotation, QuotationItem, QuotationStatus
from clientdesk.schemas import ClientCreate, LineItemIn, QuotationCreate, QuotationUpdate
from clientdesk.services.invoice_service import InvoiceService, validate_line_items
from clientdesk.services.numbering_service import NumberingService

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_TERM_DAYS = 30

# Statuses an admin may set directly; Approved and Converted have their own operations
EDITABLE_STATUSES = {
    QuotationStatus.DRAFT.value,
    QuotationStatus.SENT.value,
    QuotationStatus.REJECTED.value,
}

PROSPECT_FIELDS = (
    "company_name", "company_email", "contact_person_name", "contact_person_email",
    "contact_phone", "address", "mof_number", "notes",
)


class QuotationService:
    def __init__(self, db: Session, clients=None):
        """``clients`` is the ClientLifecycleService used to create clients on approval"""
        self.db = db
        self.clients = clients

    def get_by_id(self, quotation_id: int) -> Optional[Quotation]:
        return self.db.query(Quotation).filter(Quotation.id == quotation_id).first()

    def get(self, quotation_id: int) -> Quotation:
        quotation = self.get_by_id(quotation_id)
        if not quotation:
            raise NotFound("Quotation not found")
        return quotation

    def list(self, status: str = None, client_id: int = None) -> List[Quotation]:
        query = self.db.query(Quotation)
        if status:
            query = query.filter(Quotation.status == status)
        if client_id is not None:
            query = query.filter(Quotation.client_id == client_id)
        return query.order_by(Quotation.created_at.desc(), Quotation.id.desc()).all()

    def create(self, data: QuotationCreate, created_by: str = None) -> Quotation:
        fields = data.model_dump()

        if fields.get("client_id") is not None:
            client = self.db.query(Client).filter(Client.id == fields["client_id"]).first()
            if not client:
                raise NotFound("Client not found")
            if is_blank(fields.get("company_name")):
                fields["company_name"] = client.company_name
            if is_blank(fields.get("company_email")):
                fields["company_email"] = client.company_email

        require_fields(
            "Company name, description, total amount and issue date are required",
            fields.get("company_name"), fields.get("description"),
            fields.get("total_amount"), fields.get("issue_date")
        )
        fields["total_amount"] = positive_amount(fields["total_amount"], "Total amount must be greater than zero")

        quotation = Quotation(
            quotation_number=NumberingService(self.db).next_quotation_number(),
            status=QuotationStatus.DRAFT.value,
            created_by=created_by,
            **fields
        )
        self.db.add(quotation)
        self._commit()
        logger.info(f"Quotation {quotation.quotation_number} created")
        return quotation

    def update(self, quotation_id: int, data: QuotationUpdate) -> Quotation:
        quotation = self.get(quotation_id)
        if quotation.is_converted:
            raise ValidationFailed("Converted quotations cannot be edited")

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("client_id") is not None:
            if not self.db.query(Client).filter(Client.id == update_data["client_id"]).first():
                raise NotFound("Client not found")
        status = update_data.get("status")
        if status is not None and status not in EDITABLE_STATUSES:
            raise ValidationFailed(f"Status must be one of: {', '.join(sorted(EDITABLE_STATUSES))}")
        if update_data.get("total_amount") is not None:
            update_data["total_amount"] = positive_amount(
                update_data["total_amount"], "Total amount must be greater than zero"
            )

        merged = {key: getattr(quotation, key) for key in ("company_name", "company_email", "description", "issue_date")}
        merged.update({key: value for key, value in update_data.items() if key in merged})
        require_fields(
            "Company name, company email, description and issue date are required",
            *merged.values()
        )

        for key, value in update_data.items():
            setattr(quotation, key, value)
        self._commit()
        return quotation

    # ==================== LINE ITEMS ====================

    def get_items(self, quotation_id: int) -> List[QuotationItem]:
        self.get(quotation_id)
        return self.db.query(QuotationItem)\
            .filter(QuotationItem.quotation_id == quotation_id)\
            .order_by(QuotationItem.position)\
            .all()

    def set_items(self, quotation_id: int, items: List[LineItemIn]) -> List[QuotationItem]:
        quotation = self.get(quotation_id)
        if quotation.is_converted:
            raise ValidationFailed("Converted quotations cannot be edited")
        validate_line_items(items)

        quotation.items.clear()
        self.db.flush()
        for position, item in enumerate(items, start=1):
            quotation.items.append(QuotationItem(
                position=position,
                title=item.title.strip(),
                description=item.description,
                price=item.price
            ))
        quotation.uses_items = True
        self._commit()
        return quotation.items

    # ==================== WORKFLOW ====================

    def approve(self, quotation_id: int) -> Dict[str, Any]:
        """
        Mark the quotation approved, attaching a client.

        A quotation without a client is matched to an existing client of the
        same company name, or a new client is created from the prospect data.
        Approving twice is rejected, so at most one client is created.
        """
        quotation = self.get(quotation_id)
        if quotation.status == QuotationStatus.APPROVED.value:
            raise ValidationFailed("Quotation is already approved")
        if quotation.is_converted:
            raise ValidationFailed("Quotation is already converted")

        client_id, created = self._resolve_client(quotation)

        quotation.status = QuotationStatus.APPROVED.value
        quotation.approved_at = utcnow()
        quotation.client_id = client_id
        self._commit()

        result = {"client_id": client_id, "client_created": created is not None}
        if created and created.get("password"):
            result["password"] = created["password"]
        return result

    def convert(self, quotation_id: int, created_by: str = None) -> Tuple[Invoice, int]:
        """Create an invoice from an approved quotation. Returns (invoice, client_id)."""
        quotation = self.get(quotation_id)
        if quotation.is_converted:
            raise ValidationFailed("Quotation is already converted")
        if quotation.status != QuotationStatus.APPROVED.value:
            raise ValidationFailed("Quotation must be approved before conversion")

        client_id, _ = self._resolve_client(quotation)
        if not client_id:
            raise ValidationFailed("No client available for invoice creation")

        due_date = quotation.due_date or date.today() + timedelta(days=DEFAULT_PAYMENT_TERM_DAYS)
        invoice = InvoiceService(self.db).create_from_quotation(quotation, client_id, due_date, created_by)

        quotation.status = QuotationStatus.CONVERTED.value
        quotation.is_converted = True
        quotation.converted_to_invoice_id = invoice.id
        quotation.client_id = client_id
        self._commit()

        logger.info(f"Quotation {quotation.quotation_number} converted to {invoice.invoice_number}")
        return invoice, client_id

    def get_with_related(self, quotation_id: int) -> Dict[str, Any]:
        quotation = self.db.query(Quotation)\
            .options(joinedload(Quotation.client), joinedload(Quotation.items))\
            .filter(Quotation.id == quotation_id)\
            .first()
        if not quotation:
            raise NotFound("Quotation not found")
        return {"quotation": quotation, "client": quotation.client, "items": list(quotation.items)}

    def _resolve_client(self, quotation: Quotation) -> Tuple[Optional[int], Optional[Dict[str, Any]]]:
        """Return (client_id, creation result or None)"""
        if quotation.client_id:
            return quotation.client_id, None
        if is_blank(quotation.company_name):
            return None, None

        existing = self.clients.get_by_company_name(quotation.company_name)
        if existing:
            return existing.id, None

        prospect = {field: getattr(quotation, field) for field in PROSPECT_FIELDS}
        prospect["company_name"] = quotation.company_name.strip()

        # An email that already has a login gets a record-only client
        if not is_blank(quotation.company_email) and not self.clients.auth.get_by_email(quotation.company_email):
            created = self.clients.create(ClientCreate(**prospect))
            return created["client"].id, created

        client = self.clients.create_record(**prospect)
        return client.id, {"client": client}

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
