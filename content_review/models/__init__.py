from .profile import Profile
from .auth_user import AuthUser
from .content_item import ContentItem

__all__ = [
    "AuthUser",
    "Profile",
    "ContentItem",
]
