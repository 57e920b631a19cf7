"""
Sleep Webhook Router
====================
POST /api/sleep — Raw sleep-stage samples, grouped into one Sleep row
per day, scored, and mirrored into that day's HabitTrace row.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from healthsync.config import Settings, get_settings
from healthsync.db.notion import NotionCollections, NotionStore, get_collections, get_notion_store
from healthsync.errors import HealthSyncError
from healthsync.models.sleep import SleepIngestResponse
from healthsync.security import verify_request
from healthsync.services.ingest import ingest_sleep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sleep"])


@router.post(
    "/sleep",
    response_model=SleepIngestResponse,
    status_code=status.HTTP_200_OK,
    summary="Sync sleep-stage samples",
    responses={
        400: {"description": "Malformed sleep payload"},
        401: {"description": "Invalid token"},
        403: {"description": "IP address not allowed"},
        500: {"description": "Notion request failed"},
    },
)
async def sync_sleep(
    body: Any = Body(default=None),
    client_ip: str = Depends(verify_request),
    store: NotionStore = Depends(get_notion_store),
    collections: NotionCollections = Depends(get_collections),
    settings: Settings = Depends(get_settings),
) -> SleepIngestResponse:
    try:
        return await ingest_sleep(
            body,
            store=store,
            collections=collections,
            settings=settings,
            client_ip=client_ip,
        )
    except HealthSyncError as exc:
        logger.error("[%s] Sleep sync failed: %s", client_ip, exc.message)
        raise HTTPException(status_code=exc.http_status, detail=exc.to_dict()) from exc
