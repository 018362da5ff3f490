"""
Invoice API Routes
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from clientdesk.api.deps import get_branding, get_email_service
from clientdesk.core.database import get_db
from clientdesk.core.exceptions import ValidationFailed
from clientdesk.core.security import require_admin
from clientdesk.schemas import (
    InvoiceCreate, InvoiceResponse, InvoiceUpdate, LineItemResponse, LineItemsReplace, SendEmailRequest
)
from clientdesk.services.document_service import DocumentRenderer, render_pdf
from clientdesk.services.invoice_service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"], dependencies=[Depends(require_admin)])


def pdf_response(pdf: bytes, filename: str) -> Response:
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("")
async def list_invoices(
    client_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db)
):
    invoices = InvoiceService(db).list(client_id=client_id, status=status)
    return {"success": True, "invoices": [InvoiceResponse.model_validate(i) for i in invoices]}


@router.get("/next-number")
async def get_next_invoice_number(db: Session = Depends(get_db)):
    """Preview of the number the next invoice will get"""
    return {"success": True, "invoice_number": InvoiceService(db).next_number()}


@router.post("", status_code=201)
async def create_invoice(
    invoice_data: InvoiceCreate,
    db: Session = Depends(get_db),
    current_user=Depends(require_admin)
):
    invoice = InvoiceService(db).create(invoice_data, created_by=current_user.id)
    return {
        "success": True,
        "message": "Invoice created successfully",
        "invoice": InvoiceResponse.model_validate(invoice)
    }


@router.get("/{invoice_id}")
async def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    related = InvoiceService(db).get_with_related(invoice_id)
    return {
        "success": True,
        "invoice": InvoiceResponse.model_validate(related["invoice"]),
        "items": [LineItemResponse.model_validate(item) for item in related["items"]],
        "receipt_count": len(related["receipts"])
    }


@router.put("/{invoice_id}")
async def update_invoice(
    invoice_id: int,
    invoice_data: InvoiceUpdate,
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).update(invoice_id, invoice_data)
    return {
        "success": True,
        "message": "Invoice updated successfully",
        "invoice": InvoiceResponse.model_validate(invoice)
    }


# ==================== LINE ITEMS ====================

@router.get("/{invoice_id}/items")
async def get_invoice_items(invoice_id: int, db: Session = Depends(get_db)):
    items = InvoiceService(db).get_items(invoice_id)
    return {"success": True, "items": [LineItemResponse.model_validate(item) for item in items]}


@router.post("/{invoice_id}/items")
async def replace_invoice_items(
    invoice_id: int,
    data: LineItemsReplace,
    db: Session = Depends(get_db)
):
    """Replace all line items"""
    items = InvoiceService(db).set_items(invoice_id, data.items)
    return {"success": True, "items": [LineItemResponse.model_validate(item) for item in items]}


# ==================== DOCUMENTS ====================

@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: int,
    format: str = "pdf",
    db: Session = Depends(get_db),
    branding: dict = Depends(get_branding)
):
    related = InvoiceService(db).get_with_related(invoice_id)
    html = DocumentRenderer(branding).render_invoice_html(related)
    if format == "html":
        return HTMLResponse(html)
    return pdf_response(render_pdf(html), f"invoice-{related['invoice'].invoice_number}.pdf")


@router.post("/{invoice_id}/send-email")
async def send_invoice_email(
    invoice_id: int,
    data: Optional[SendEmailRequest] = Body(None),
    db: Session = Depends(get_db),
    email_service=Depends(get_email_service)
):
    """Email the invoice PDF to the client (or another address)"""
    related = InvoiceService(db).get_with_related(invoice_id)
    recipient = (data.to if data and data.to else None) or related["client"].company_email
    if not recipient:
        raise ValidationFailed("Client has no email address")

    email_service.send_invoice_email(recipient, related)
    return {"success": True, "message": f"Invoice sent to {recipient}"}
