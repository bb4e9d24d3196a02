from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardswap.api import (
    health_router,
    matches_router,
    notifications_router,
    profiles_router,
)
from cardswap.api.error_handlers import register_error_handlers
from cardswap.config import settings
from cardswap.db.database import init_db


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("cardswap"),
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(matches_router)
app.include_router(notifications_router)
app.include_router(profiles_router)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
