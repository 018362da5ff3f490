"""
Authentication API Routes
"""
from datetime import timedelta
import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from clientdesk.api.deps import get_client_service, get_email_service
from clientdesk.core.config import settings
from clientdesk.core.database import get_db
from clientdesk.core.exceptions import AuthenticationRequired, PermissionDenied, ValidationFailed
from clientdesk.core.security import create_access_token, get_current_user, verify_password
from clientdesk.core.validators import validate_email_address
from clientdesk.schemas import (
    ChangePasswordRequest, ForgotPasswordRequest, LoginRequest, ResetPasswordRequest, UserResponse
)
from clientdesk.services.auth_service import AuthAdminService
from clientdesk.services.password_reset_service import PasswordResetService
from clientdesk.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


@router.post("/login")
async def login(
    login_data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Login and get access token"""
    account = AuthAdminService(db).authenticate(login_data.email, login_data.password)
    if not account:
        raise AuthenticationRequired("Invalid email or password")

    if not account.is_active:
        raise PermissionDenied("Account is disabled")

    profile = UserService(db).get_by_id(account.id)
    if not profile:
        raise PermissionDenied("No profile exists for this account")

    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": account.id, "role": profile.role},
        expires_delta=access_token_expires
    )

    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        max_age=int(access_token_expires.total_seconds()),
        samesite="lax",
        secure=settings.is_production
    )

    profile.email = account.email
    return {
        "success": True,
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserResponse.model_validate(profile)
    }


@router.post("/logout")
async def logout(response: Response, current_user=Depends(get_current_user)):
    """Logout and clear token"""
    response.delete_cookie(key="access_token")
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
async def get_me(current_user=Depends(get_current_user)):
    """Get current user info"""
    return {"success": True, "user": UserResponse.model_validate(current_user)}


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    email_service=Depends(get_email_service)
):
    """
    Send a reset link. The response is the same whether or not the account
    exists; only a delivery failure for an existing account is reported.
    """
    email = validate_email_address(data.email)

    reset_token = PasswordResetService(db).issue(email)
    if reset_token is not None:
        profile = UserService(db).get_by_id(reset_token.user_id)
        email_service.send_password_reset_email(email, reset_token.token, profile.name if profile else None)
    else:
        logger.info("Password reset requested for an unknown email")

    return {"success": True, "message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    clients=Depends(get_client_service)
):
    """Set a new password using a reset token"""
    user_id = PasswordResetService(db).reset_password(data.token, data.password)
    clients.mark_password_changed(user_id)
    return {"success": True, "message": "Password has been reset successfully"}


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
    clients=Depends(get_client_service)
):
    """Change the signed-in user's password"""
    auth = AuthAdminService(db)
    account = auth.get_by_id(current_user.id)
    if not verify_password(data.current_password, account.hashed_password):
        raise ValidationFailed("Current password is incorrect")

    auth.update_password(account.id, data.new_password)
    clients.mark_password_changed(account.id)
    return {"success": True, "message": "Password changed successfully"}
