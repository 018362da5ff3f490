"""
Quotation API Routes
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from clientdesk.api.deps import get_branding, get_client_service
from clientdesk.api.v1.invoices import pdf_response
from clientdesk.core.database import get_db
from clientdesk.core.security import require_admin
from clientdesk.schemas import (
    InvoiceResponse, LineItemResponse, LineItemsReplace, QuotationCreate, QuotationResponse, QuotationUpdate
)
from clientdesk.services.document_service import DocumentRenderer, render_pdf
from clientdesk.services.quotation_service import QuotationService

router = APIRouter(prefix="/quotations", tags=["Quotations"], dependencies=[Depends(require_admin)])


def get_quotation_service(db: Session = Depends(get_db), clients=Depends(get_client_service)):
    return QuotationService(db, clients=clients)


@router.get("")
async def list_quotations(
    status: Optional[str] = None,
    client_id: Optional[int] = None,
    quotations: QuotationService = Depends(get_quotation_service)
):
    rows = quotations.list(status=status, client_id=client_id)
    return {"success": True, "quotations": [QuotationResponse.model_validate(q) for q in rows]}


@router.post("", status_code=201)
async def create_quotation(
    quotation_data: QuotationCreate,
    quotations: QuotationService = Depends(get_quotation_service),
    current_user=Depends(require_admin)
):
    quotation = quotations.create(quotation_data, created_by=current_user.id)
    return {
        "success": True,
        "message": "Quotation created successfully",
        "quotation": QuotationResponse.model_validate(quotation)
    }


@router.get("/{quotation_id}")
async def get_quotation(
    quotation_id: int,
    quotations: QuotationService = Depends(get_quotation_service)
):
    related = quotations.get_with_related(quotation_id)
    return {
        "success": True,
        "quotation": QuotationResponse.model_validate(related["quotation"]),
        "items": [LineItemResponse.model_validate(item) for item in related["items"]]
    }


@router.put("/{quotation_id}")
async def update_quotation(
    quotation_id: int,
    quotation_data: QuotationUpdate,
    quotations: QuotationService = Depends(get_quotation_service)
):
    quotation = quotations.update(quotation_id, quotation_data)
    return {
        "success": True,
        "message": "Quotation updated successfully",
        "quotation": QuotationResponse.model_validate(quotation)
    }


@router.get("/{quotation_id}/items")
async def get_quotation_items(
    quotation_id: int,
    quotations: QuotationService = Depends(get_quotation_service)
):
    items = quotations.get_items(quotation_id)
    return {"success": True, "items": [LineItemResponse.model_validate(item) for item in items]}


@router.post("/{quotation_id}/items")
async def replace_quotation_items(
    quotation_id: int,
    data: LineItemsReplace,
    quotations: QuotationService = Depends(get_quotation_service)
):
    items = quotations.set_items(quotation_id, data.items)
    return {"success": True, "items": [LineItemResponse.model_validate(item) for item in items]}


# ==================== WORKFLOW ====================

@router.post("/{quotation_id}/approve")
async def approve_quotation(
    quotation_id: int,
    quotations: QuotationService = Depends(get_quotation_service)
):
    """Approve, attaching an existing or newly created client"""
    result = quotations.approve(quotation_id)
    message = "Quotation approved and client created" if result["client_created"] else "Quotation approved"
    return {"success": True, "message": message, **result}


@router.post("/{quotation_id}/convert")
async def convert_quotation(
    quotation_id: int,
    quotations: QuotationService = Depends(get_quotation_service),
    current_user=Depends(require_admin)
):
    """Turn an approved quotation into an invoice"""
    invoice, client_id = quotations.convert(quotation_id, created_by=current_user.id)
    return {
        "success": True,
        "message": "Quotation converted to invoice successfully",
        "invoice": InvoiceResponse.model_validate(invoice),
        "client_id": client_id
    }


@router.get("/{quotation_id}/pdf")
async def download_quotation_pdf(
    quotation_id: int,
    format: str = "pdf",
    quotations: QuotationService = Depends(get_quotation_service),
    branding: dict = Depends(get_branding)
):
    related = quotations.get_with_related(quotation_id)
    html = DocumentRenderer(branding).render_quotation_html(related)
    if format == "html":
        return HTMLResponse(html)
    return pdf_response(render_pdf(html), f"quotation-{related['quotation'].quotation_number}.pdf")
