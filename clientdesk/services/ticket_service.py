"""
Ticket Service - support tickets opened from the client portal
"""
from typing import Optional, List
import logging

from sqlalchemy.orm import Session

from clientdesk.core.exceptions import NotFound, ValidationFailed
from clientdesk.core.validators import require_fields
from clientdesk.models import Ticket, TicketStatus

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "normal", "high", "urgent")


class TicketService:
    def __init__(self, db: Session, storage=None):
        self.db = db
        self.storage = storage

    def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        return self.db.query(Ticket).filter(Ticket.id == ticket_id).first()

    def get(self, ticket_id: int, client_id: int = None) -> Ticket:
        ticket = self.get_by_id(ticket_id)
        if not ticket or (client_id is not None and ticket.client_id != client_id):
            raise NotFound("Ticket not found")
        return ticket

    def list(self, client_id: int = None, status: str = None) -> List[Ticket]:
        query = self.db.query(Ticket)
        if client_id is not None:
            query = query.filter(Ticket.client_id == client_id)
        if status:
            query = query.filter(Ticket.status == status)
        return query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()

    def create(self, client_id: int, subject: str, description: str, priority: str = "normal",
               filename: str = None, content: bytes = None) -> Ticket:
        require_fields("Subject and description are required", subject, description)
        if priority not in PRIORITIES:
            raise ValidationFailed(f"Priority must be one of: {', '.join(PRIORITIES)}")

        file_url = None
        if content and self.storage is not None:
            file_url = self.storage.save(filename, content, folder=f"tickets/{client_id}")

        ticket = Ticket(
            client_id=client_id,
            subject=subject.strip(),
            description=description.strip(),
            priority=priority,
            status=TicketStatus.OPEN.value,
            file_url=file_url
        )
        self.db.add(ticket)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            if file_url:
                self.storage.delete_many([file_url])
            raise
        logger.info(f"Ticket {ticket.id} opened by client {client_id}")
        return ticket

    def set_status(self, ticket_id: int, status: str) -> Ticket:
        ticket = self.get(ticket_id)
        ticket.status = status
        self.db.commit()
        return ticket
