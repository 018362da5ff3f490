"""
Update Service - announcements shown in the client portal
"""
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clientdesk.core.exceptions import NotFound
from clientdesk.core.validators import require_fields
from clientdesk.models import Client, Ticket, Update


class UpdateService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, title: str, content: str, update_type: str,
               client_id: int = None, ticket_id: int = None) -> Update:
        require_fields("Title, content and type are required", title, content, update_type)

        if client_id is not None and not self.db.query(Client).filter(Client.id == client_id).first():
            raise NotFound("Client not found")
        if ticket_id is not None and not self.db.query(Ticket).filter(Ticket.id == ticket_id).first():
            raise NotFound("Ticket not found")

        update = Update(
            title=title.strip(),
            content=content.strip(),
            update_type=update_type.strip(),
            client_id=client_id,
            ticket_id=ticket_id
        )
        self.db.add(update)
        self.db.commit()
        return update

    def list(self, client_id: int = None) -> List[Update]:
        """Global updates plus, when given, the client's own"""
        query = self.db.query(Update)
        if client_id is not None:
            query = query.filter(or_(Update.client_id.is_(None), Update.client_id == client_id))
        return query.order_by(Update.created_at.desc(), Update.id.desc()).all()
