"""
ContentItem model for proposed social media content under review.
"""
import uuid
from sqlalchemy import Column, String, Date, DateTime, Text, ForeignKey, CheckConstraint, event
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base
from ..lifecycle import ContentStatus, ContentType


def _in_clause(column: str, enum) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum)
    return f"{column} IN ({values})"


class ContentItem(Base):
    __tablename__ = "content_items"
    __table_args__ = (
        CheckConstraint(_in_clause("content_type", ContentType), name="ck_content_items_content_type"),
        CheckConstraint(_in_clause("status", ContentStatus), name="ck_content_items_status"),
        CheckConstraint(
            "status <> 'Rejected' OR (rejection_notes IS NOT NULL AND rejected_at IS NOT NULL)",
            name="ck_content_items_rejection_fields",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=True)
    caption = Column(Text, nullable=False)
    content_type = Column(String(20), nullable=False)  # Post, Story, Reel, TikTok
    media_url = Column(String(2048), nullable=False)
    status = Column(String(20), nullable=False, default=ContentStatus.PENDING.value, index=True)
    schedule_date = Column(Date, nullable=False, index=True)
    rejection_notes = Column(Text, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    assigned_to = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    assignee = relationship("Profile", back_populates="assigned_items", foreign_keys=[assigned_to])
    creator = relationship("Profile", back_populates="created_items", foreign_keys=[created_by])


@event.listens_for(ContentItem, "before_insert")
def force_pending_on_insert(mapper, connection, target):
    """New content always enters review as Pending, whatever the caller sent."""
    target.status = ContentStatus.PENDING.value
    target.rejection_notes = None
    target.rejected_at = None
