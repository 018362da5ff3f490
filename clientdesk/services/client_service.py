"""
Client Lifecycle Service - creation, update and deletion of clients

A client spans three stores: the auth account, the profile row and the
client row (plus dependent documents and uploaded files). None of them share
a transaction, so creation and deletion run as sagas.
"""
from typing import Optional, List, Dict, Any
import logging

from sqlalchemy.orm import Session

from clientdesk.core.exceptions import ClientDeskError, NotFound, UpstreamError, ValidationFailed
from clientdesk.core.saga import Saga, SagaStepFailed
from clientdesk.core.security import generate_password
from clientdesk.core.validators import require_fields, validate_email_address
from clientdesk.models import Client, Invoice, Quotation, Receipt, Ticket, Update, UserRole
from clientdesk.schemas import ClientCreate, ClientUpdate
from clientdesk.services.auth_service import AuthAdminService
from clientdesk.services.user_service import UserService

logger = logging.getLogger(__name__)

PASSWORD_NOT_FOUND = (
    "No original password found. The client may have changed their password "
    "or the retention period has expired."
)

# Dependent tables removed before the client row, in foreign key order
DEPENDENT_TABLES = [
    ("tickets", Ticket),
    ("receipts", Receipt),
    ("invoices", Invoice),
    ("quotations", Quotation),
    ("updates", Update),
]


class ClientLifecycleService:
    def __init__(self, db: Session, password_cache=None, storage=None):
        self.db = db
        self.password_cache = password_cache
        self.storage = storage
        self.auth = AuthAdminService(db)
        self.users = UserService(db)

    # ==================== QUERIES ====================

    def get_by_id(self, client_id: int) -> Optional[Client]:
        return self.db.query(Client).filter(Client.id == client_id).first()

    def get(self, client_id: int) -> Client:
        client = self.get_by_id(client_id)
        if not client:
            raise NotFound("Client not found")
        return client

    def get_by_user(self, user_id: str) -> Optional[Client]:
        return self.db.query(Client).filter(Client.user_id == user_id).first()

    def get_by_company_name(self, company_name: str) -> Optional[Client]:
        return self.db.query(Client)\
            .filter(Client.company_name == company_name.strip())\
            .order_by(Client.id)\
            .first()

    def list(self, search: str = None) -> List[Client]:
        query = self.db.query(Client)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                Client.company_name.ilike(pattern) | Client.contact_person_name.ilike(pattern)
            )
        return query.order_by(Client.created_at.desc(), Client.id.desc()).all()

    def deletion_summary(self, client_id: int) -> Dict[str, Any]:
        """Counts of everything a deletion would remove. Read only."""
        client = self.get(client_id)
        summary = {"client_name": client.company_name}
        for name, model in DEPENDENT_TABLES:
            summary[name] = self.db.query(model).filter(model.client_id == client_id).count()
        summary["files"] = self._ticket_files(client_id)
        return summary

    # ==================== CREATE ====================

    def create(self, data: ClientCreate) -> Dict[str, Any]:
        """
        Create the auth account, profile and client row.

        Returns the client, the auth account and the generated password. The
        password is only ever returned here; afterwards it can be looked up in
        the credential cache until it expires.
        """
        require_fields("Company name and email are required", data.company_name, data.company_email)
        email = validate_email_address(data.company_email)
        password = generate_password()

        fields = data.model_dump()
        fields["company_email"] = email
        profile_name = data.contact_person_name or data.company_name
        created = {}

        def create_account():
            created["user"] = self.auth.create_user(email, password)
            return created["user"]

        def create_profile():
            return self.users.create(
                created["user"].id, profile_name, UserRole.CLIENT.value, data.contact_phone
            )

        def create_client_row():
            client = Client(user_id=created["user"].id, **fields)
            self.db.add(client)
            self._commit()
            return client

        saga = Saga("create client")\
            .add("auth account", create_account, compensate=lambda user: self.auth.delete_user(user.id))\
            .add("profile", create_profile, compensate=lambda profile: self.users.delete(profile.id))\
            .add("client", create_client_row)

        try:
            results = saga.run()
        except SagaStepFailed as exc:
            if isinstance(exc.error, ClientDeskError):
                raise exc.error
            raise UpstreamError(f"Failed to create {exc.step}: {exc.error}")

        client = results["client"]
        if self.password_cache is not None:
            self.password_cache.store(client.id, password, email)

        logger.info(f"Client {client.id} ({client.company_name}) created")
        return {"client": client, "user": results["auth account"], "password": password}

    def create_record(self, **fields) -> Client:
        """Client row without a portal login"""
        require_fields("Company name is required", fields.get("company_name"))
        client = Client(user_id=None, **fields)
        self.db.add(client)
        self._commit()
        logger.info(f"Client {client.id} ({client.company_name}) created without login")
        return client

    # ==================== UPDATE ====================

    def update(self, client_id: int, data: ClientUpdate) -> Client:
        """
        Update the client row, then the profile. Two separate writes: a
        failure in the second leaves the first applied.
        """
        client = self.get(client_id)
        if not client.user_id:
            raise NotFound("Client user account not found")

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("company_name") is not None:
            update_data["company_name"] = update_data["company_name"].strip()

        try:
            for key, value in update_data.items():
                setattr(client, key, value)
            self._commit()
        except Exception as exc:
            raise ValidationFailed(f"Client update failed: {exc}")

        try:
            self.users.update(
                client.user_id,
                name=client.contact_person_name or client.company_name,
                phone=client.contact_phone
            )
        except Exception as exc:
            raise ValidationFailed(f"User update failed: {getattr(exc, 'message', exc)}")

        return client

    def mark_password_changed(self, user_id: str) -> Optional[Client]:
        client = self.get_by_user(user_id)
        if not client:
            return None
        client.has_changed_password = True
        self._commit()
        if self.password_cache is not None:
            self.password_cache.remove(client.id)
        return client

    def get_password(self, client_id: int) -> Dict[str, Any]:
        client = self.get(client_id)
        entry = self.password_cache.get(client.id) if self.password_cache is not None else None
        if entry is None:
            raise NotFound(PASSWORD_NOT_FOUND)
        return {
            "password": entry.password,
            "email": entry.email,
            "stored_at": entry.stored_at,
            "expires_at": entry.expires_at,
        }

    # ==================== DELETE ====================

    def delete(self, client_id: int) -> Dict[str, Any]:
        """
        Remove dependent records, the profile and the client row in foreign
        key order, then clean up the login, cached credential and files.
        The first failing record step aborts; cleanup failures are only logged.
        """
        client = self.get(client_id)
        client_name = client.company_name
        user_id = client.user_id
        file_urls = self._ticket_files(client_id)

        saga = Saga("delete client")
        for name, model in DEPENDENT_TABLES:
            saga.add(name, self._delete_rows(model, model.client_id == client_id))
        if user_id:
            saga.add("profile", lambda: self.users.delete(user_id))
        saga.add("client", self._delete_rows(Client, Client.id == client_id))

        if user_id:
            saga.add("auth account", lambda: self.auth.delete_user(user_id), best_effort=True)
        if self.password_cache is not None:
            saga.add("cached credential", lambda: self.password_cache.remove(client_id), best_effort=True)
        if self.storage is not None and file_urls:
            saga.add("files", lambda: self.storage.delete_many(file_urls), best_effort=True)

        try:
            results = saga.run()
        except SagaStepFailed as exc:
            raise UpstreamError(f"Failed to delete {exc.step}: {getattr(exc.error, 'message', exc.error)}")

        logger.info(f"Client {client_id} ({client_name}) deleted")
        return {"client_name": client_name, "files_deleted": results.get("files") or 0}

    def _delete_rows(self, model, criterion):
        def action():
            count = self.db.query(model).filter(criterion).delete(synchronize_session=False)
            self._commit()
            return count
        return action

    def _ticket_files(self, client_id: int) -> List[str]:
        rows = self.db.query(Ticket.file_url)\
            .filter(Ticket.client_id == client_id, Ticket.file_url.isnot(None))\
            .all()
        return [row[0] for row in rows]

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
