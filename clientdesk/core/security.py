"""
Security Module - Authentication & Authorization
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import secrets
import string

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from clientdesk.core.config import settings
from clientdesk.core.database import get_db
from clientdesk.core.exceptions import AuthenticationRequired, PermissionDenied

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)

PASSWORD_SYMBOLS = "!@#$%^&*"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def generate_password(length: int = None) -> str:
    """
    Random credential for a new client account.
    Always contains at least one lowercase, uppercase, digit and symbol.
    """
    length = max(length or settings.GENERATED_PASSWORD_LENGTH, 8)
    pools = [string.ascii_lowercase, string.ascii_uppercase, string.digits, PASSWORD_SYMBOLS]
    alphabet = "".join(pools)

    chars = [secrets.choice(pool) for pool in pools]
    chars += [secrets.choice(alphabet) for _ in range(length - len(chars))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    """
    Resolve the signed-in profile from the bearer header or the
    ``access_token`` cookie.
    """
    from clientdesk.services.auth_service import AuthAdminService
    from clientdesk.services.user_service import UserService

    token = credentials.credentials if credentials else None

    # Fall back to cookie
    if not token:
        token = request.cookies.get("access_token")

    if not token:
        raise AuthenticationRequired("Not authenticated")

    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationRequired("Invalid or expired session")

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationRequired("Invalid token payload")

    account = AuthAdminService(db).get_by_id(user_id)
    if account is None:
        raise AuthenticationRequired("User not found")

    if not account.is_active:
        raise PermissionDenied("User account is disabled")

    profile = UserService(db).get_by_id(user_id)
    if profile is None:
        raise AuthenticationRequired("User profile not found")

    # Convenience for handlers that need the login email
    profile.email = account.email
    return profile


async def require_admin(current_user=Depends(get_current_user)):
    """Dependency for admin-only routes"""
    if not current_user.is_admin:
        raise PermissionDenied("Admin access required")
    return current_user
