from .auth import UserCreate, UserLogin, TokenResponse, RefreshRequest
from .profile import ProfileSummary, ProfileResponse
from .content_item import (
    ContentItemCreate,
    ContentItemUpdate,
    ContentItemResponse,
    RejectRequest,
)

__all__ = [
    "UserCreate", "UserLogin", "TokenResponse", "RefreshRequest",
    "ProfileSummary", "ProfileResponse",
    "ContentItemCreate", "ContentItemUpdate", "ContentItemResponse", "RejectRequest",
]
