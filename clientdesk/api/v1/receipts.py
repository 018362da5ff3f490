"""
Receipt API Routes

Receipts are immutable: there is no update or delete route.
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from clientdesk.api.deps import get_branding, get_email_service
from clientdesk.api.v1.invoices import pdf_response
from clientdesk.core.database import get_db
from clientdesk.core.exceptions import ValidationFailed
from clientdesk.core.security import require_admin
from clientdesk.schemas import InvoiceResponse, ReceiptCreate, ReceiptResponse, SendEmailRequest
from clientdesk.services.document_service import DocumentRenderer, render_pdf
from clientdesk.services.receipt_service import ReceiptService

router = APIRouter(prefix="/receipts", tags=["Receipts"], dependencies=[Depends(require_admin)])


@router.get("")
async def list_receipts(
    client_id: Optional[int] = None,
    invoice_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    receipts = ReceiptService(db).list(client_id=client_id, invoice_id=invoice_id)
    return {"success": True, "receipts": [ReceiptResponse.model_validate(r) for r in receipts]}


@router.post("", status_code=201)
async def create_receipt(
    receipt_data: ReceiptCreate,
    db: Session = Depends(get_db),
    current_user=Depends(require_admin)
):
    """Record a payment against an invoice"""
    receipt = ReceiptService(db).create(receipt_data, created_by=current_user.id)
    return {
        "success": True,
        "message": "Receipt created successfully",
        "receipt": ReceiptResponse.model_validate(receipt),
        "invoice": InvoiceResponse.model_validate(receipt.invoice)
    }


@router.get("/{receipt_id}")
async def get_receipt(receipt_id: int, db: Session = Depends(get_db)):
    related = ReceiptService(db).get_with_related(receipt_id)
    return {
        "success": True,
        "receipt": ReceiptResponse.model_validate(related["receipt"]),
        "invoice": InvoiceResponse.model_validate(related["invoice"]),
        "client_name": related["client"].company_name
    }


@router.get("/{receipt_id}/pdf")
async def download_receipt_pdf(
    receipt_id: int,
    format: str = "pdf",
    db: Session = Depends(get_db),
    branding: dict = Depends(get_branding)
):
    related = ReceiptService(db).get_with_related(receipt_id)
    html = DocumentRenderer(branding).render_receipt_html(related)
    if format == "html":
        return HTMLResponse(html)
    return pdf_response(render_pdf(html), f"receipt-{related['receipt'].receipt_number}.pdf")


@router.post("/{receipt_id}/send-email")
async def send_receipt_email(
    receipt_id: int,
    data: Optional[SendEmailRequest] = Body(None),
    db: Session = Depends(get_db),
    email_service=Depends(get_email_service)
):
    related = ReceiptService(db).get_with_related(receipt_id)
    recipient = (data.to if data and data.to else None) or related["client"].company_email
    if not recipient:
        raise ValidationFailed("Client has no email address")

    email_service.send_receipt_email(recipient, related)
    return {"success": True, "message": f"Receipt sent to {recipient}"}
