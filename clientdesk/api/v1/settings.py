"""
Settings API Routes - branding and maintenance
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clientdesk.api.deps import get_password_cache
from clientdesk.core.database import get_db
from clientdesk.core.security import get_current_user, require_admin
from clientdesk.schemas import BrandingResponse, BrandingUpdate
from clientdesk.services.branding_service import BrandingService
from clientdesk.services.password_reset_service import PasswordResetService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Settings"])


@router.get("/branding", dependencies=[Depends(get_current_user)])
async def get_branding(db: Session = Depends(get_db)):
    return {"success": True, "branding": BrandingResponse(**BrandingService(db).get())}


@router.post("/branding", dependencies=[Depends(require_admin)])
async def save_branding(data: BrandingUpdate, db: Session = Depends(get_db)):
    branding = BrandingService(db).save(data)
    return {
        "success": True,
        "message": "Branding settings saved successfully",
        "branding": BrandingResponse(**branding)
    }


@router.post("/admin/cleanup-passwords", dependencies=[Depends(require_admin)])
async def cleanup_passwords(
    db: Session = Depends(get_db),
    password_cache=Depends(get_password_cache)
):
    """Purge expired cached credentials and expired reset tokens"""
    passwords_removed = password_cache.purge_expired()
    tokens_removed = PasswordResetService(db).purge_expired()
    logger.info(f"Cleanup removed {passwords_removed} cached passwords and {tokens_removed} reset tokens")
    return {
        "success": True,
        "message": "Cleanup completed",
        "passwords_removed": passwords_removed,
        "tokens_removed": tokens_removed
    }
