"""
Auth Admin Service - administrative operations on login accounts

Every method commits on its own so that callers can compose these calls with
data-table writes without sharing a transaction.
"""
from typing import Optional
import logging

from sqlalchemy.orm import Session

from clientdesk.core.database import utcnow
from clientdesk.core.exceptions import ValidationFailed, NotFound
from clientdesk.core.security import get_password_hash, verify_password
from clientdesk.models import AuthUser

logger = logging.getLogger(__name__)


class AuthAdminService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[AuthUser]:
        return self.db.query(AuthUser).filter(AuthUser.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[AuthUser]:
        return self.db.query(AuthUser).filter(AuthUser.email == email.strip().lower()).first()

    def create_user(self, email: str, password: str, email_confirm: bool = True) -> AuthUser:
        email = email.strip().lower()
        if self.get_by_email(email):
            raise ValidationFailed("A user with this email address has already been registered")

        user = AuthUser(
            email=email,
            hashed_password=get_password_hash(password),
            email_confirmed=email_confirm,
            is_active=True
        )
        self.db.add(user)
        self._commit()
        logger.info(f"Auth account created for {email}")
        return user

    def delete_user(self, user_id: str):
        user = self.get_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        self.db.delete(user)
        self._commit()
        logger.info(f"Auth account {user_id} deleted")

    def update_password(self, user_id: str, new_password: str):
        user = self.get_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        user.hashed_password = get_password_hash(new_password)
        self._commit()

    def authenticate(self, email: str, password: str) -> Optional[AuthUser]:
        user = self.get_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            return None
        user.last_sign_in_at = utcnow()
        self._commit()
        return user

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
