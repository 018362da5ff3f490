"""
User Service - profile rows keyed by the auth account id
"""
from typing import Optional
from sqlalchemy.orm import Session

from clientdesk.core.exceptions import NotFound
from clientdesk.models import UserProfile, UserRole


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        return self.db.query(UserProfile).filter(UserProfile.id == user_id).first()

    def create(self, user_id: str, name: str, role: str = UserRole.CLIENT.value,
               phone: str = None) -> UserProfile:
        profile = UserProfile(id=user_id, name=name, role=role, phone=phone)
        self.db.add(profile)
        self._commit()
        return profile

    def update(self, user_id: str, **fields) -> UserProfile:
        profile = self.get_by_id(user_id)
        if not profile:
            raise NotFound("User profile not found")
        for key, value in fields.items():
            setattr(profile, key, value)
        self._commit()
        return profile

    def delete(self, user_id: str) -> bool:
        profile = self.get_by_id(user_id)
        if not profile:
            return False
        self.db.delete(profile)
        self._commit()
        return True

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


def seed_admin(db: Session, email: str, password: str, name: str) -> bool:
    """Create the bootstrap admin account and profile unless the email exists"""
    from clientdesk.services.auth_service import AuthAdminService

    auth = AuthAdminService(db)
    if auth.get_by_email(email):
        return False
    account = auth.create_user(email, password)
    UserService(db).create(account.id, name, role=UserRole.ADMIN.value)
    return True
