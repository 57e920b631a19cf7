"""
Sleep Webhook Schemas
=====================
Pydantic models for POST /api/sleep. The exporter sends one metric per
export with a flat list of stage samples; each sample is one stretch of
a single stage (``value``) lasting ``qty`` hours.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from healthsync.models.scoring import SleepRating, SleepScoringStrategy
from healthsync.services.timestamps import parse_export_timestamp


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class SleepStageSample(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    qty: float = Field(..., ge=0)
    # Awake | Asleep | Core | Deep | REM
    value: str
    source: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_export_timestamp(value)
        return value


class SleepMetric(BaseModel):
    name: Optional[str] = None
    units: Optional[str] = None
    data: list[SleepStageSample] = Field(default_factory=list)


class SleepData(BaseModel):
    metrics: list[SleepMetric]


class SleepPayload(BaseModel):
    data: SleepData


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class SleepRecordResult(BaseModel):
    status: Literal["created", "updated"]
    date: date
    record_id: str
    title: str
    score: Optional[int] = None
    rating: SleepRating
    total_sleep_hours: float
    habit_record_id: Optional[str] = None
    habit_error: Optional[str] = None


class SleepIngestResponse(BaseModel):
    success: bool = True
    message: str
    strategy: SleepScoringStrategy
    results: list[SleepRecordResult]
