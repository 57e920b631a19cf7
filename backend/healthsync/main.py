"""
HealthSync API
==============
FastAPI application entry point. Mount routers here.
"""

import logging

from fastapi import FastAPI

from healthsync.config import get_settings
from healthsync.routers import health, sleep, workout

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="HealthSync API",
    description="Health Auto Export webhooks → Notion databases",
    version="0.1.0",
    docs_url="/api/docs" if settings.environment != "production" else None,
    redoc_url="/api/redoc" if settings.environment != "production" else None,
)

app.include_router(sleep.router)
app.include_router(workout.router)
app.include_router(health.router)


@app.get("/api/status")
async def status_check() -> dict:
    return {"status": "ok", "service": "healthsync-api"}
