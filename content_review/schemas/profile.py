from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ProfileSummary(BaseModel):
    email: str
    full_name: Optional[str] = None

    class Config:
        from_attributes = True


class ProfileResponse(ProfileSummary):
    id: str
    is_admin: bool
    created_at: datetime
    updated_at: datetime
