"""
Numbering Service - sequential document identifiers (INV-001, QUO-014, ...)
"""
import re
from sqlalchemy import func
from sqlalchemy.orm import Session

INVOICE_PREFIX = "INV"
QUOTATION_PREFIX = "QUO"
RECEIPT_PREFIX = "RCT"


class NumberingService:
    def __init__(self, db: Session):
        self.db = db

    def next_number(self, model, column, prefix: str, width: int = 3) -> str:
        """
        Read the largest existing identifier for ``prefix`` and increment it.

        Ordering by length first keeps INV-1000 above INV-999. A stored value
        that does not parse falls back to the seed. No locking: two concurrent
        callers can receive the same number.
        """
        seed = f"{prefix}-{1:0{width}d}"

        latest = self.db.query(model).with_entities(column)\
            .filter(column.like(f"{prefix}-%"))\
            .order_by(func.length(column).desc(), column.desc())\
            .limit(1)\
            .scalar()

        if not latest:
            return seed

        match = re.match(rf"^{re.escape(prefix)}-(\d+)$", latest)
        if not match:
            return seed

        return f"{prefix}-{int(match.group(1)) + 1:0{width}d}"

    def next_invoice_number(self) -> str:
        from clientdesk.models import Invoice
        return self.next_number(Invoice, Invoice.invoice_number, INVOICE_PREFIX)

    def next_quotation_number(self) -> str:
        from clientdesk.models import Quotation
        return self.next_number(Quotation, Quotation.quotation_number, QUOTATION_PREFIX)

    def next_receipt_number(self) -> str:
        from clientdesk.models import Receipt
        return self.next_number(Receipt, Receipt.receipt_number, RECEIPT_PREFIX)
