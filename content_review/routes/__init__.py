from .auth import router as auth_router
from .profiles import router as profiles_router
from .content_items import router as content_items_router
from .health import router as health_router

__all__ = [
    "auth_router",
    "profiles_router",
    "content_items_router",
    "health_router",
]
