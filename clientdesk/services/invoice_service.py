"""
Invoice Service - Business Logic for Invoices and their line items
"""
from datetime import date
from decimal import Decimal
from typing import Optional, List, Dict, Any
import logging

from sqlalchemy.orm import Session, joinedload

from clientdesk.core.exceptions import NotFound, ValidationFailed
from clientdesk.core.validators import is_blank, positive_amount, require_fields
from clientdesk.models import Client, Invoice, InvoiceItem, InvoiceStatus, Receipt
from clientdesk.schemas import InvoiceCreate, InvoiceUpdate, LineItemIn
from clientdesk.services.numbering_service import NumberingService

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def validate_line_items(items: List[LineItemIn]) -> List[LineItemIn]:
    """At least one item, every item titled, no negative prices"""
    if not items:
        raise ValidationFailed("At least one item is required")
    for index, item in enumerate(items, start=1):
        if is_blank(item.title):
            raise ValidationFailed(f"Item {index}: title is required")
        if item.price is None or item.price < 0:
            raise ValidationFailed(f"Item {index}: price must be zero or more")
    return items


def adjust_client_balance(db: Session, client_id: int, regular_delta: Decimal = ZERO,
                          paid_delta: Decimal = ZERO):
    """
    Move amounts on the client's running totals. Callers treat this as a
    secondary write: a failure is logged and the document stays saved.
    """
    try:
        client = db.query(Client).filter(Client.id == client_id).first()
        if not client:
            logger.warning(f"Balance update skipped, client {client_id} not found")
            return
        client.regular_balance = (client.regular_balance or ZERO) + regular_delta
        client.paid_amount = (client.paid_amount or ZERO) + paid_delta
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(f"Failed to update balance of client {client_id}: {exc}")


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, invoice_id: int) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def get(self, invoice_id: int) -> Invoice:
        invoice = self.get_by_id(invoice_id)
        if not invoice:
            raise NotFound("Invoice not found")
        return invoice

    def list(self, client_id: int = None, status: str = None) -> List[Invoice]:
        query = self.db.query(Invoice)
        if client_id is not None:
            query = query.filter(Invoice.client_id == client_id)
        if status:
            query = query.filter(Invoice.status == status)
        return query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()

    def next_number(self) -> str:
        return NumberingService(self.db).next_invoice_number()

    def create(self, data: InvoiceCreate, created_by: str = None) -> Invoice:
        require_fields("Client and description are required", data.client_id, data.description)
        total = positive_amount(data.total_amount, "Total amount must be greater than zero")

        if not self.db.query(Client).filter(Client.id == data.client_id).first():
            raise NotFound("Client not found")

        invoice = Invoice(
            invoice_number=self.next_number(),
            client_id=data.client_id,
            issue_date=data.issue_date or date.today(),
            due_date=data.due_date,
            description=data.description,
            total_amount=total,
            amount_paid=ZERO,
            balance_due=total,
            status=InvoiceStatus.UNPAID.value,
            created_by=created_by
        )
        self.db.add(invoice)
        self._commit()

        adjust_client_balance(self.db, invoice.client_id, regular_delta=total)
        logger.info(f"Invoice {invoice.invoice_number} created for client {invoice.client_id}")
        return invoice

    def create_from_quotation(self, quotation, client_id: int, due_date: date,
                              created_by: str = None) -> Invoice:
        """Invoice carrying over a quotation's amounts and items"""
        total = Decimal(quotation.total_amount or ZERO)
        invoice = Invoice(
            invoice_number=self.next_number(),
            client_id=client_id,
            quotation_id=quotation.id,
            issue_date=quotation.issue_date,
            due_date=due_date,
            description=quotation.description,
            total_amount=total,
            amount_paid=ZERO,
            balance_due=total,
            status=InvoiceStatus.UNPAID.value,
            uses_items=bool(quotation.uses_items),
            created_by=created_by
        )
        if quotation.uses_items:
            for position, item in enumerate(quotation.items, start=1):
                invoice.items.append(InvoiceItem(
                    position=position,
                    title=item.title,
                    description=item.description,
                    price=item.price
                ))
        self.db.add(invoice)
        self._commit()

        adjust_client_balance(self.db, client_id, regular_delta=total)
        return invoice

    def update(self, invoice_id: int, data: InvoiceUpdate) -> Invoice:
        invoice = self.get(invoice_id)
        update_data = data.model_dump(exclude_unset=True)

        if "description" in update_data and is_blank(update_data["description"]):
            raise ValidationFailed("Description is required")

        old_total = Decimal(invoice.total_amount)
        if update_data.get("total_amount") is not None:
            total = positive_amount(update_data["total_amount"], "Total amount must be greater than zero")
            if total < Decimal(invoice.amount_paid or ZERO):
                raise ValidationFailed("Total amount cannot be less than the amount already paid")
            update_data["total_amount"] = total
        else:
            update_data.pop("total_amount", None)

        for key, value in update_data.items():
            setattr(invoice, key, value)
        self._recalculate(invoice)
        self._commit()

        delta = Decimal(invoice.total_amount) - old_total
        if delta:
            adjust_client_balance(self.db, invoice.client_id, regular_delta=delta)
        return invoice

    def apply_payment(self, invoice: Invoice, amount: Decimal) -> Invoice:
        """Record ``amount`` as paid. The only place paid amounts change."""
        if amount <= 0:
            raise ValidationFailed("Amount must be greater than zero")
        if amount > Decimal(invoice.balance_due):
            raise ValidationFailed("Payment amount exceeds the invoice balance")

        invoice.amount_paid = Decimal(invoice.amount_paid or ZERO) + amount
        self._recalculate(invoice)
        self._commit()
        return invoice

    # ==================== LINE ITEMS ====================

    def get_items(self, invoice_id: int) -> List[InvoiceItem]:
        self.get(invoice_id)
        return self.db.query(InvoiceItem)\
            .filter(InvoiceItem.invoice_id == invoice_id)\
            .order_by(InvoiceItem.position)\
            .all()

    def set_items(self, invoice_id: int, items: List[LineItemIn]) -> List[InvoiceItem]:
        """Replace all items; positions are renumbered from 1"""
        invoice = self.get(invoice_id)
        validate_line_items(items)

        invoice.items.clear()
        self.db.flush()
        for position, item in enumerate(items, start=1):
            invoice.items.append(InvoiceItem(
                position=position,
                title=item.title.strip(),
                description=item.description,
                price=item.price
            ))
        invoice.uses_items = True
        self._commit()
        return invoice.items

    # ==================== DOCUMENTS ====================

    def get_with_related(self, invoice_id: int) -> Dict[str, Any]:
        invoice = self.db.query(Invoice)\
            .options(joinedload(Invoice.client), joinedload(Invoice.items))\
            .filter(Invoice.id == invoice_id)\
            .first()
        if not invoice:
            raise NotFound("Invoice not found")

        receipts = self.db.query(Receipt)\
            .filter(Receipt.invoice_id == invoice_id)\
            .order_by(Receipt.payment_date.desc(), Receipt.id.desc())\
            .all()
        return {"invoice": invoice, "client": invoice.client, "items": list(invoice.items), "receipts": receipts}

    def _recalculate(self, invoice: Invoice):
        invoice.balance_due = Decimal(invoice.total_amount) - Decimal(invoice.amount_paid or ZERO)
        if invoice.balance_due == 0:
            invoice.status = InvoiceStatus.PAID.value
        elif Decimal(invoice.amount_paid or ZERO) > 0:
            invoice.status = InvoiceStatus.PARTIALLY_PAID.value
        else:
            invoice.status = InvoiceStatus.UNPAID.value

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
