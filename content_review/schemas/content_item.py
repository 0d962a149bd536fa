from pydantic import BaseModel, Field, HttpUrl, field_validator
from typing import Dict, List, Optional
from datetime import date, datetime

from ..lifecycle import ContentStatus, ContentType
from .profile import ProfileSummary


class ContentItemBase(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    caption: str = Field(..., min_length=1)
    content_type: ContentType = ContentType.POST
    media_url: HttpUrl
    schedule_date: date


class ContentItemCreate(ContentItemBase):
    assigned_to: str = Field(..., min_length=1)
    # Accepted for compatibility with older clients; storage always uses Pending.
    status: Optional[ContentStatus] = None


class ContentItemUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    caption: Optional[str] = Field(None, min_length=1)
    content_type: Optional[ContentType] = None
    media_url: Optional[HttpUrl] = None
    schedule_date: Optional[date] = None
    assigned_to: Optional[str] = Field(None, min_length=1)


class RejectRequest(BaseModel):
    rejection_notes: Optional[str] = None


class ContentItemResponse(BaseModel):
    id: str
    title: Optional[str] = None
    caption: str
    content_type: ContentType
    media_url: str
    status: ContentStatus
    schedule_date: date
    rejection_notes: Optional[str] = None
    rejected_at: Optional[datetime] = None
    created_by: Optional[str] = None
    assigned_to: str
    assigned_to_profile: Optional[ProfileSummary] = Field(None, validation_alias="assignee")
    archived: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


class ContentItemList(BaseModel):
    view: str
    items: List[ContentItemResponse]
    current_count: int
    archived_count: int


class ContentTypeGroups(BaseModel):
    view: str = "type"
    groups: Dict[str, List[ContentItemResponse]]


class ArchiveResponse(BaseModel):
    years: Dict[str, Dict[str, List[ContentItemResponse]]]
