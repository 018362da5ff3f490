"""
Receipt Service - payments recorded against invoices
"""
from typing import Optional, List, Dict, Any
import logging

from sqlalchemy.orm import Session, joinedload

from clientdesk.core.exceptions import NotFound, ValidationFailed
from clientdesk.core.validators import is_blank, positive_amount, require_fields
from clientdesk.models import Invoice, Receipt
from clientdesk.schemas import ReceiptCreate
from clientdesk.services.invoice_service import InvoiceService, adjust_client_balance
from clientdesk.services.numbering_service import NumberingService

logger = logging.getLogger(__name__)


class ReceiptService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, receipt_id: int) -> Optional[Receipt]:
        return self.db.query(Receipt)\
            .options(joinedload(Receipt.client), joinedload(Receipt.invoice))\
            .filter(Receipt.id == receipt_id)\
            .first()

    def get(self, receipt_id: int) -> Receipt:
        receipt = self.get_by_id(receipt_id)
        if not receipt:
            raise NotFound("Receipt not found")
        return receipt

    def list(self, client_id: int = None, invoice_id: int = None) -> List[Receipt]:
        query = self.db.query(Receipt)
        if client_id is not None:
            query = query.filter(Receipt.client_id == client_id)
        if invoice_id is not None:
            query = query.filter(Receipt.invoice_id == invoice_id)
        return query.order_by(Receipt.payment_date.desc(), Receipt.id.desc()).all()

    def create(self, data: ReceiptCreate, created_by: str = None) -> Receipt:
        """
        Record a payment: insert the receipt, apply it to the invoice, then
        move the amount from the client's open balance to paid.
        """
        require_fields(
            "Client, invoice, payment date, amount and payment method are required",
            data.client_id, data.invoice_id, data.payment_date, data.payment_method
        )
        amount = positive_amount(data.amount, "Amount must be greater than zero")

        invoice = self.db.query(Invoice).filter(Invoice.id == data.invoice_id).first()
        if not invoice:
            raise NotFound("Invoice not found")
        if invoice.client_id != data.client_id:
            raise ValidationFailed("Invoice does not belong to this client")
        if amount > invoice.balance_due:
            raise ValidationFailed("Payment amount exceeds the invoice balance")

        receipt_number = data.receipt_number
        if is_blank(receipt_number):
            receipt_number = NumberingService(self.db).next_receipt_number()

        receipt = Receipt(
            receipt_number=receipt_number.strip(),
            client_id=data.client_id,
            invoice_id=invoice.id,
            payment_date=data.payment_date,
            amount=amount,
            payment_method=data.payment_method.value,
            notes=data.notes,
            created_by=created_by
        )
        self.db.add(receipt)
        self._commit()

        InvoiceService(self.db).apply_payment(invoice, amount)
        adjust_client_balance(self.db, data.client_id, regular_delta=-amount, paid_delta=amount)

        logger.info(f"Receipt {receipt.receipt_number} recorded for invoice {invoice.invoice_number}")
        return receipt

    def get_with_related(self, receipt_id: int) -> Dict[str, Any]:
        receipt = self.get(receipt_id)
        return {"receipt": receipt, "client": receipt.client, "invoice": receipt.invoice}

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
