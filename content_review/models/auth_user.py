"""
Identity-provider user record and the hook that provisions profiles.
"""
import uuid
from sqlalchemy import Column, String, DateTime, event
from datetime import datetime, timezone
from typing import Optional

from ..config import get_settings
from ..database import Base
from ..logging_config import db_logger
from .profile import Profile


class AuthUser(Base):
    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(200), nullable=True)  # signup metadata
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


def is_bootstrap_admin(email: Optional[str]) -> bool:
    """True iff the email matches the configured bootstrap admin address."""
    bootstrap = get_settings().admin_bootstrap_email
    if not bootstrap or not email:
        return False
    return email.strip().lower() == bootstrap.strip().lower()


@event.listens_for(AuthUser, "after_insert")
def create_profile_for_new_user(mapper, connection, target):
    """Insert the matching profile row when an identity user is created."""
    now = datetime.now(timezone.utc)
    connection.execute(
        Profile.__table__.insert().values(
            id=target.id,
            email=target.email,
            full_name=target.full_name,
            is_admin=is_bootstrap_admin(target.email),
            created_at=now,
            updated_at=now,
        )
    )
    db_logger.info("Profile provisioned", profile_id=target.id)
