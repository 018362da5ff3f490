"""
Shared route dependencies: per-app state and service factories
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from clientdesk.core.config import settings
from clientdesk.core.database import get_db
from clientdesk.services.branding_service import BrandingService
from clientdesk.services.client_service import ClientLifecycleService
from clientdesk.services.email_service import EmailService
from clientdesk.services.storage_service import FileStorage


def get_password_cache(request: Request):
    return request.app.state.password_cache


def get_storage(request: Request) -> FileStorage:
    return request.app.state.storage


def get_client_service(
    db: Session = Depends(get_db),
    password_cache=Depends(get_password_cache),
    storage: FileStorage = Depends(get_storage)
) -> ClientLifecycleService:
    return ClientLifecycleService(db, password_cache=password_cache, storage=storage)


def get_branding(db: Session = Depends(get_db)) -> dict:
    return BrandingService(db).get()


def get_email_service(branding: dict = Depends(get_branding)) -> EmailService:
    return EmailService(settings, branding)
