from .auth import router as auth_router
from .users import router as users_router
from .events import router as events_router
from .recipients import router as recipients_router
from .messages import router as messages_router
from .stats import router as stats_router
from .health import router as health_router

__all__ = [
    "auth_router",
    "users_router",
    "events_router",
    "recipients_router",
    "messages_router",
    "stats_router",
    "health_router",
]
