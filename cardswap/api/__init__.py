from cardswap.api.health import router as health_router
from cardswap.api.matches import router as matches_router
from cardswap.api.notifications import router as notifications_router
from cardswap.api.profiles import router as profiles_router

__all__ = [
    "health_router",
    "matches_router",
    "notifications_router",
    "profiles_router",
]
