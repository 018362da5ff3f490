"""
Password Reset Service - single-use reset tokens

A token is usable only while it exists, is unused and has not expired. Every
failure is reported with the same message so callers cannot tell which check
failed.
"""
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging
import secrets

from sqlalchemy.orm import Session

from clientdesk.core.config import settings
from clientdesk.core.database import utcnow
from clientdesk.core.exceptions import ValidationFailed
from clientdesk.models import PasswordResetToken
from clientdesk.services.auth_service import AuthAdminService

logger = logging.getLogger(__name__)

INVALID_TOKEN = "Invalid or expired token"
MIN_PASSWORD_LENGTH = 6


class PasswordResetService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow,
                 lifetime: timedelta = None):
        self.db = db
        self._clock = clock
        self.lifetime = lifetime or timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)

    def issue(self, email: str) -> Optional[PasswordResetToken]:
        """New token for the account, or None when no account has this email"""
        account = AuthAdminService(self.db).get_by_email(email)
        if not account:
            return None

        reset_token = PasswordResetToken(
            user_id=account.id,
            token=secrets.token_hex(32),
            expires_at=self._clock() + self.lifetime,
            used=False
        )
        self.db.add(reset_token)
        self._commit()
        return reset_token

    def verify(self, token: str) -> PasswordResetToken:
        reset_token = None
        if token:
            reset_token = self.db.query(PasswordResetToken)\
                .filter(PasswordResetToken.token == token)\
                .first()
        if reset_token is None or reset_token.used or self._clock() >= reset_token.expires_at:
            raise ValidationFailed(INVALID_TOKEN)
        return reset_token

    def consume(self, token: str):
        reset_token = self.verify(token)
        reset_token.used = True
        self._commit()

    def reset_password(self, token: str, new_password: str) -> str:
        """Set a new password with a valid token. Returns the account id."""
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        reset_token = self.verify(token)
        AuthAdminService(self.db).update_password(reset_token.user_id, new_password)
        self.consume(token)
        logger.info(f"Password reset completed for user {reset_token.user_id}")
        return reset_token.user_id

    def purge_expired(self) -> int:
        deleted = self.db.query(PasswordResetToken)\
            .filter(PasswordResetToken.expires_at <= self._clock())\
            .delete(synchronize_session=False)
        self._commit()
        return deleted

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
