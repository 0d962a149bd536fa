"""
Authentication routes for sign-up, login, and token management.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from ..database import get_db
from ..limiter import limiter
from ..logging_config import api_logger
from ..models.auth_user import AuthUser
from ..models.profile import Profile
from ..schemas.auth import UserCreate, UserLogin, TokenResponse, RefreshRequest
from ..schemas.profile import ProfileResponse
from ..auth import (
    verify_password,
    get_password_hash,
    create_tokens,
    get_required_principal,
    provision_profile,
    refresh_access_token,
)
from ..config import get_settings
from ..responses import ApiException, unauthorized

settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _authenticate(db: Session, email: str, password: str) -> TokenResponse:
    user = db.query(AuthUser).filter(AuthUser.email == email.lower()).first()
    if not user or not verify_password(password, user.hashed_password):
        api_logger.warning("Failed login", email=email)
        unauthorized("Invalid email or password")

    provision_profile(db, user)
    access_token, refresh_token = create_tokens(user.id)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/register", response_model=ProfileResponse)
@limiter.limit(settings.register_rate_limit)
def register(request: Request, user_data: UserCreate, db: Session = Depends(get_db)):
    """Create an identity; its profile is provisioned by the insert hook."""
    email = user_data.email.lower()
    existing = db.query(AuthUser).filter(AuthUser.email == email).first()
    if existing:
        raise ApiException(400, "Email already registered", "EMAIL_TAKEN")

    user = AuthUser(
        email=email,
        hashed_password=get_password_hash(user_data.password),
        full_name=user_data.full_name,
    )
    db.add(user)
    db.commit()

    profile = db.query(Profile).filter(Profile.id == user.id).one()
    api_logger.info("Identity registered", profile_id=profile.id, is_admin=profile.is_admin)
    return profile


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Login with OAuth2 form (username/password)."""
    return _authenticate(db, form_data.username, form_data.password)


@router.post("/login/json", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
def login_json(request: Request, credentials: UserLogin, db: Session = Depends(get_db)):
    """Login with JSON body (email/password)."""
    return _authenticate(db, credentials.email, credentials.password)


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit("10/minute")
def refresh_tokens(request: Request, refresh_request: RefreshRequest, db: Session = Depends(get_db)):
    """Get new access and refresh tokens using a valid refresh token."""
    tokens = refresh_access_token(refresh_request.refresh_token, db)
    if not tokens:
        unauthorized("Invalid or expired refresh token")

    access_token, refresh_token = tokens
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.get("/me", response_model=ProfileResponse)
def get_me(current: Profile = Depends(get_required_principal)):
    """Get the caller's own profile."""
    return current


@router.post("/logout")
def logout(current: Profile = Depends(get_required_principal)):
    """
    Logout the current principal.

    JWTs are stateless, so the client simply discards its tokens.
    """
    return {"message": "Successfully logged out"}
