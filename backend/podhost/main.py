from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .errors import register_error_handlers
from .routes_analytics import router as analytics_router
from .routes_assets import router as assets_router
from .routes_auth import router as auth_router
from .routes_contact import router as contact_router
from .routes_distribution import router as distribution_router
from .routes_episodes import router as episodes_router
from .routes_files import router as files_router
from .routes_play import router as play_router
from .routes_podcasts import router as podcasts_router
from .routes_public import router as public_router
from .routes_rss import router as rss_router
from .routes_usage import router as usage_router
from .settings import get_settings

logger = logging.getLogger("app")

settings = get_settings()
app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.get("/ping")
async def ping():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(podcasts_router)
app.include_router(episodes_router)
app.include_router(assets_router)
app.include_router(distribution_router)
app.include_router(analytics_router)
app.include_router(usage_router)
app.include_router(contact_router)
app.include_router(public_router)
app.include_router(rss_router)
app.include_router(play_router)
app.include_router(files_router)


@app.on_event("startup")
async def startup_event():
    """Start the scheduled-episode publisher."""
    from podhost.services.scheduler import scheduler_service

    scheduler_service.configure(settings.async_database_url)
    scheduler_service.start()


@app.on_event("shutdown")
async def shutdown_event():
    from podhost.services.scheduler import scheduler_service

    scheduler_service.stop()
    logger.info("Scheduler stopped on app shutdown")
