"""
Workout Webhook Router
======================
POST /api/workout — One Notion page per workout, then the day's totals
pushed to the Health and HabitTrace databases and every new workout
linked to that day's Health row.

Workouts missing ``id`` or ``start`` are skipped, and a workout whose
page could not be created is counted as failed; neither fails the batch.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from healthsync.config import Settings, get_settings
from healthsync.db.notion import NotionCollections, NotionStore, get_collections, get_notion_store
from healthsync.errors import HealthSyncError
from healthsync.models.workout import WorkoutIngestResponse
from healthsync.security import verify_request
from healthsync.services.ingest import ingest_workouts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["workout"])


@router.post(
    "/workout",
    response_model=WorkoutIngestResponse,
    status_code=status.HTTP_200_OK,
    summary="Sync a workout export",
    responses={
        400: {"description": "Payload is missing data.workouts or is malformed"},
        401: {"description": "Invalid token"},
        403: {"description": "IP address not allowed"},
        500: {"description": "Notion request failed"},
    },
)
async def sync_workouts(
    body: Any = Body(default=None),
    client_ip: str = Depends(verify_request),
    store: NotionStore = Depends(get_notion_store),
    collections: NotionCollections = Depends(get_collections),
    settings: Settings = Depends(get_settings),
) -> WorkoutIngestResponse:
    try:
        return await ingest_workouts(
            body,
            store=store,
            collections=collections,
            settings=settings,
            client_ip=client_ip,
        )
    except HealthSyncError as exc:
        logger.error("[%s] Workout sync failed: %s", client_ip, exc.message)
        raise HTTPException(status_code=exc.http_status, detail=exc.to_dict()) from exc
