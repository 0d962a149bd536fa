"""
Authentication utilities for JWT tokens, password hashing and principals.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .database import get_db
from .logging_config import db_logger
from .models.auth_user import AuthUser, is_bootstrap_admin
from .models.profile import Profile
from .config import get_settings
from .policies import PolicyContext
from .responses import unauthorized, forbidden

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token(data: dict) -> str:
    """Create a JWT refresh token with longer expiration."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_tokens(subject_id: str) -> Tuple[str, str]:
    """Create both access and refresh tokens for an identity subject."""
    data = {"sub": subject_id}
    return create_access_token(data), create_refresh_token(data)


def verify_token(token: str, expected_type: str = "access") -> Optional[dict]:
    """Verify a JWT token and return its payload."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type", "access") != expected_type:
        return None
    return payload


def provision_profile(db: Session, user: AuthUser) -> Profile:
    """Return the subject's profile, creating it if the hook never ran."""
    profile = db.query(Profile).filter(Profile.id == user.id).first()
    if profile:
        return profile
    profile = Profile(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        is_admin=is_bootstrap_admin(user.email),
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    db_logger.info("Profile provisioned on login", profile_id=user.id)
    return profile


def get_current_principal(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[Profile]:
    """Resolve the bearer token to the caller's own profile (optional auth)."""
    if not token:
        return None

    payload = verify_token(token, "access")
    if not payload:
        return None

    subject = payload.get("sub")
    if not subject:
        return None

    # The caller's own row is always readable to them, so a direct lookup is fine.
    return db.query(Profile).filter(Profile.id == str(subject)).first()


def get_required_principal(
    current: Optional[Profile] = Depends(get_current_principal)
) -> Profile:
    """Get the current principal, raising 401 if not authenticated."""
    if not current:
        unauthorized()
    return current


def get_policy_context(
    principal: Profile = Depends(get_required_principal),
    db: Session = Depends(get_db),
) -> PolicyContext:
    """Policy context for the authenticated caller."""
    return PolicyContext(db, principal.id)


def require_admin(ctx: PolicyContext = Depends(get_policy_context)) -> PolicyContext:
    """Reject non-admin callers before any work is done."""
    if not ctx.is_admin:
        forbidden("Admin access required")
    return ctx


def refresh_access_token(refresh_token: str, db: Session) -> Optional[Tuple[str, str]]:
    """Use a refresh token to get new access and refresh tokens."""
    payload = verify_token(refresh_token, "refresh")
    if not payload:
        return None

    subject = payload.get("sub")
    if not subject:
        return None

    # Verify the identity still exists
    user = db.query(AuthUser).filter(AuthUser.id == str(subject)).first()
    if not user:
        return None

    return create_tokens(user.id)
