"""
Daily Health Export Router
==========================
POST /api/health — The combined daily export. Writes (or merges into)
the day's Health row with body, vitals, sleep and activity numbers plus
the tiered sleep score, then records the score and the 80%-of-target
activity verdict in the day's HabitTrace row.

Only ``metadata.date`` is required. Sending the same day twice updates
the existing row; fields absent from the second export keep their value.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from healthsync.config import Settings, get_settings
from healthsync.db.notion import NotionCollections, NotionStore, get_collections, get_notion_store
from healthsync.errors import HealthSyncError
from healthsync.models.health import HealthIngestResponse
from healthsync.security import verify_request
from healthsync.services.ingest import ingest_health

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.post(
    "/health",
    response_model=HealthIngestResponse,
    status_code=status.HTTP_200_OK,
    summary="Sync the daily health export",
    responses={
        400: {"description": "metadata.date missing or malformed"},
        401: {"description": "Invalid token"},
        403: {"description": "IP address not allowed"},
        500: {"description": "Notion request failed"},
    },
)
async def sync_health(
    body: Any = Body(default=None),
    client_ip: str = Depends(verify_request),
    store: NotionStore = Depends(get_notion_store),
    collections: NotionCollections = Depends(get_collections),
    settings: Settings = Depends(get_settings),
) -> HealthIngestResponse:
    try:
        return await ingest_health(
            body,
            store=store,
            collections=collections,
            settings=settings,
            client_ip=client_ip,
        )
    except HealthSyncError as exc:
        logger.error("[%s] Health sync failed: %s", client_ip, exc.message)
        raise HTTPException(status_code=exc.http_status, detail=exc.to_dict()) from exc
