"""
Client Portal API Routes - what a signed-in client sees
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from clientdesk.api.deps import get_client_service, get_storage
from clientdesk.core.database import get_db
from clientdesk.core.exceptions import NotFound
from clientdesk.core.security import get_current_user
from clientdesk.schemas import (
    ClientResponse, InvoiceResponse, ReceiptResponse, TicketPriorityEnum, TicketResponse, UpdateResponse
)
from clientdesk.services.invoice_service import InvoiceService
from clientdesk.services.receipt_service import ReceiptService
from clientdesk.services.ticket_service import TicketService
from clientdesk.services.update_service import UpdateService

router = APIRouter(prefix="/portal", tags=["Portal"])


async def get_current_client(current_user=Depends(get_current_user), clients=Depends(get_client_service)):
    client = clients.get_by_user(current_user.id)
    if not client:
        raise NotFound("No client record is linked to this account")
    return client


@router.get("/summary")
async def portal_summary(client=Depends(get_current_client), db: Session = Depends(get_db)):
    """Own client record, invoices, receipts and visible updates"""
    return {
        "success": True,
        "client": ClientResponse.model_validate(client),
        "invoices": [InvoiceResponse.model_validate(i) for i in InvoiceService(db).list(client_id=client.id)],
        "receipts": [ReceiptResponse.model_validate(r) for r in ReceiptService(db).list(client_id=client.id)],
        "updates": [UpdateResponse.model_validate(u) for u in UpdateService(db).list(client_id=client.id)],
    }


@router.get("/tickets")
async def list_own_tickets(client=Depends(get_current_client), db: Session = Depends(get_db)):
    tickets = TicketService(db).list(client_id=client.id)
    return {"success": True, "tickets": [TicketResponse.model_validate(t) for t in tickets]}


@router.post("/tickets", status_code=201)
async def create_ticket(
    subject: str = Form(...),
    description: str = Form(...),
    priority: TicketPriorityEnum = Form(TicketPriorityEnum.NORMAL),
    file: Optional[UploadFile] = File(None),
    client=Depends(get_current_client),
    db: Session = Depends(get_db),
    storage=Depends(get_storage)
):
    """Open a support ticket, optionally with an attachment"""
    filename, content = None, None
    if file is not None and file.filename:
        filename = file.filename
        content = await file.read()

    ticket = TicketService(db, storage).create(
        client.id, subject, description, priority.value, filename=filename, content=content
    )
    return {
        "success": True,
        "message": "Ticket submitted successfully",
        "ticket": TicketResponse.model_validate(ticket)
    }
