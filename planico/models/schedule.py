"""
Schedule models for request/response schemas.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from datetime import datetime, timedelta
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config import get_settings

MIN_BLOCK_MINUTES = 30
SLOT_MINUTES = (0, 30)


def _check_aligned(value: datetime, field_name: str) -> None:
    if value.minute not in SLOT_MINUTES:
        raise ValueError(f"{field_name} must be aligned to a 30-minute slot (:00 or :30)")


def _span(start: datetime, end: datetime) -> timedelta:
    """``end - start``; a naive side is read as display-zone wall clock."""
    if (start.tzinfo is None) != (end.tzinfo is None):
        zone = ZoneInfo(get_settings().DISPLAY_TIMEZONE)
        start = start if start.tzinfo else start.replace(tzinfo=zone)
        end = end if end.tzinfo else end.replace(tzinfo=zone)
    return end - start


class Category(BaseModel):
    """A named, colored tag referenced by schedule blocks."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")


class ScheduleBlock(BaseModel):
    """Schema for a schedule block as returned by the persistence service."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    title: str
    description: str | None = None
    startTime: datetime
    endTime: datetime
    categoryId: str
    category: Category
    createdAt: datetime | None = None
    updatedAt: datetime | None = None


class BlockSummary(BaseModel):
    """Minimal block shape, as echoed back in schedule conflict payloads."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    title: str
    startTime: datetime
    endTime: datetime


class ScheduleBlockCreate(BaseModel):
    """Schema for creating a new schedule block."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    startTime: datetime
    endTime: datetime
    categoryId: str = Field(..., min_length=1)

    @field_validator("description")
    @classmethod
    def blank_description_to_none(cls, value: str | None) -> str | None:
        return value or None

    @model_validator(mode="after")
    def check_interval(self) -> "ScheduleBlockCreate":
        span = _span(self.startTime, self.endTime)
        if span <= timedelta(0):
            raise ValueError("End time must be after start time")
        if span < timedelta(minutes=MIN_BLOCK_MINUTES):
            raise ValueError(f"Minimum block duration is {MIN_BLOCK_MINUTES} minutes")
        _check_aligned(self.startTime, "startTime")
        _check_aligned(self.endTime, "endTime")
        return self


class ScheduleBlockUpdate(BaseModel):
    """Schema for updating a schedule block. Only set fields are sent."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    startTime: datetime | None = None
    endTime: datetime | None = None
    categoryId: str | None = Field(None, min_length=1)

    @model_validator(mode="after")
    def check_interval(self) -> "ScheduleBlockUpdate":
        if self.startTime is not None:
            _check_aligned(self.startTime, "startTime")
        if self.endTime is not None:
            _check_aligned(self.endTime, "endTime")
        if self.startTime and self.endTime:
            if _span(self.startTime, self.endTime) <= timedelta(0):
                raise ValueError("End time must be after start time")
        return self


class TimeRange(BaseModel):
    """A candidate interval to check against existing blocks."""

    startTime: datetime
    endTime: datetime


class TimeSlot(BaseModel):
    """One 30-minute unit of the displayed week."""

    model_config = ConfigDict(frozen=True)

    day: int = Field(..., ge=0, le=6)
    hour: int = Field(..., ge=0, le=23)
    minute: Literal[0, 30]


class GridPosition(BaseModel):
    """Rendering coordinates of a block on the week grid."""

    model_config = ConfigDict(frozen=True)

    column: int = Field(..., ge=1, le=7)
    row: int = Field(..., ge=1, le=48)
    span: int = Field(..., ge=1, le=48)


class WeekInfo(BaseModel):
    """The 7-day window containing a reference instant. ``end`` is exclusive."""

    start: datetime
    end: datetime
    days: list[datetime]
    weekNumber: int
    year: int


class WorkingHours(BaseModel):
    """Hour range within which free slots may be placed."""

    start: int = Field(8, ge=0, le=23)
    end: int = Field(18, ge=1, le=24)

    @model_validator(mode="after")
    def check_order(self) -> "WorkingHours":
        if self.start >= self.end:
            raise ValueError("Working hours must start before they end")
        return self


class ConflictResult(BaseModel):
    """Outcome of a conflict check. A conflict is a normal result, not an error."""

    hasConflict: bool
    conflictingBlocks: list[ScheduleBlock | BlockSummary] = []
    suggestions: list[str] = []


class CategoryUsage(BaseModel):
    """Time spent in one category over a week."""

    name: str
    color: str
    blocks: int
    minutes: int
    percentage: float


class WeeklySummary(BaseModel):
    """Aggregate figures for the blocks of one week."""

    totalBlocks: int
    totalMinutes: int
    averageBlockDuration: float
    categoryBreakdown: dict[str, CategoryUsage] = {}


# ---------------------------------------------------------------------------
# Planning API request/response schemas
# ---------------------------------------------------------------------------


class GridRequest(BaseModel):
    """Schema for placing blocks on the grid of the week containing ``weekOf``."""

    weekOf: datetime
    blocks: list[BlockSummary]


class BlockPosition(BaseModel):
    """A block id with its grid coordinates."""

    blockId: str
    position: GridPosition


class ConflictCheckRequest(BaseModel):
    """Schema for checking a candidate interval against existing blocks."""

    startTime: datetime
    endTime: datetime
    blocks: list[BlockSummary] = []
    excludeId: str | None = None


class FreeSlotRequest(BaseModel):
    """Schema for finding the next free interval of a given duration."""

    durationMinutes: int = Field(..., gt=0, le=24 * 60)
    preferredStart: datetime
    blocks: list[BlockSummary] = []
    workingHours: WorkingHours | None = None


class FreeSlotResponse(BaseModel):
    """Next available start, or ``None`` when nothing fits."""

    found: bool
    startTime: datetime | None = None
    endTime: datetime | None = None


class SummaryRequest(BaseModel):
    """Schema for summarizing the blocks of the week containing ``weekOf``."""

    weekOf: datetime
    blocks: list[ScheduleBlock]
