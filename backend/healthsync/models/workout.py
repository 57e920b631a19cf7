"""
Workout Webhook Schemas
=======================
Pydantic models for POST /api/workout.

Only the ``data.workouts`` array is required. A workout without ``id``
or ``start`` is accepted by the schema but skipped by the handler, so
one bad item does not reject the whole export.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from healthsync.models.scoring import DailyTotals, GoalEvaluation
from healthsync.services.timestamps import parse_export_timestamp


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class Quantity(BaseModel):
    qty: Optional[float] = None
    units: Optional[str] = None


class HeartRateSample(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    avg: Optional[float] = Field(default=None, alias="Avg")
    max: Optional[float] = Field(default=None, alias="Max")
    min: Optional[float] = Field(default=None, alias="Min")


class RoutePoint(BaseModel):
    latitude: float
    longitude: float


class WorkoutItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str = ""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[str] = None
    # Seconds
    duration: Optional[float] = None
    step_count: list[Quantity] = Field(default_factory=list, alias="stepCount")
    active_energy_burned: Optional[Quantity] = Field(default=None, alias="activeEnergyBurned")
    temperature: Optional[Quantity] = None
    humidity: Optional[Quantity] = None
    intensity: Optional[Quantity] = None
    heart_rate_data: list[HeartRateSample] = Field(default_factory=list, alias="heartRateData")
    route: list[RoutePoint] = Field(default_factory=list)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_export_timestamp(value) if value.strip() else None
        return value


class WorkoutData(BaseModel):
    workouts: list[WorkoutItem]


class WorkoutPayload(BaseModel):
    data: WorkoutData


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class WorkoutResult(BaseModel):
    id: str
    title: str
    workout_id: str
    date: date
    health_record_id: Optional[str] = None


class DateSyncStatus(BaseModel):
    """Outcome of propagating one day's totals to Health and HabitTrace."""

    health_record_id: Optional[str] = None
    habit_record_id: Optional[str] = None
    linked_workouts: int = 0
    goals: Optional[GoalEvaluation] = None
    error: Optional[str] = None


class WorkoutIngestResponse(BaseModel):
    success: bool = True
    count: int
    skipped: int = 0
    failed: int = 0
    results: list[WorkoutResult]
    workout_summary: dict[str, DailyTotals]
    sync: dict[str, DateSyncStatus]
