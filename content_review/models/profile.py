"""
Profile model: one row per authenticated principal.
"""
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("auth_users.id"), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(200), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    assigned_items = relationship("ContentItem", back_populates="assignee", foreign_keys="ContentItem.assigned_to")
    created_items = relationship("ContentItem", back_populates="creator", foreign_keys="ContentItem.created_by")

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
