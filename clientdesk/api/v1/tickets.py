"""
Ticket and Update API Routes (admin side)
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.security import require_admin
from clientdesk.schemas import TicketResponse, TicketStatusUpdate, UpdateCreate, UpdateResponse
from clientdesk.services.ticket_service import TicketService
from clientdesk.services.update_service import UpdateService

router = APIRouter(tags=["Support"], dependencies=[Depends(require_admin)])


# ==================== TICKETS ====================

@router.get("/tickets")
async def list_tickets(
    client_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db)
):
    tickets = TicketService(db).list(client_id=client_id, status=status)
    return {"success": True, "tickets": [TicketResponse.model_validate(t) for t in tickets]}


@router.get("/tickets/{ticket_id}")
async def get_ticket(ticket_id: int, db: Session = Depends(get_db)):
    return {"success": True, "ticket": TicketResponse.model_validate(TicketService(db).get(ticket_id))}


@router.put("/tickets/{ticket_id}/status")
async def update_ticket_status(
    ticket_id: int,
    data: TicketStatusUpdate,
    db: Session = Depends(get_db)
):
    ticket = TicketService(db).set_status(ticket_id, data.status.value)
    return {"success": True, "ticket": TicketResponse.model_validate(ticket)}


# ==================== UPDATES ====================

@router.get("/updates")
async def list_updates(client_id: Optional[int] = None, db: Session = Depends(get_db)):
    updates = UpdateService(db).list(client_id=client_id)
    return {"success": True, "updates": [UpdateResponse.model_validate(u) for u in updates]}


@router.post("/updates", status_code=201)
async def create_update(data: UpdateCreate, db: Session = Depends(get_db)):
    """Post an announcement, global or for one client"""
    update = UpdateService(db).create(
        data.title, data.content, data.update_type,
        client_id=data.client_id, ticket_id=data.ticket_id
    )
    return {"success": True, "update": UpdateResponse.model_validate(update)}
