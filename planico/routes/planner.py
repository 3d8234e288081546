"""
Planner routes.

Thin JSON surface over the grid, conflict and free-slot functions. Blocks are
supplied by the caller; nothing here touches the schedule store.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from datetime import datetime, timedelta

from fastapi import APIRouter, Query

from ..dependencies import TimeGridDep, WorkingHoursDep
from ..models.schedule import (
    BlockPosition,
    ConflictCheckRequest,
    ConflictResult,
    FreeSlotRequest,
    FreeSlotResponse,
    GridRequest,
    SummaryRequest,
    TimeRange,
    WeeklySummary,
    WeekInfo,
)
from ..services.conflict_service import review_placement
from ..services.free_slot_service import find_next_available_slot
from ..services.week_summary_service import calculate_weekly_summary

router = APIRouter(prefix="/api/v1/planner", tags=["planner"])


@router.get("/week", response_model=WeekInfo)
async def get_week(
    grid: TimeGridDep,
    date: datetime | None = Query(None, description="Any instant inside the wanted week"),
) -> WeekInfo:
    """Get the week window containing a date (defaults to now)."""
    return grid.week_info(date or datetime.now(grid.tz))


@router.post("/grid", response_model=list[BlockPosition])
async def place_blocks(request: GridRequest, grid: TimeGridDep) -> list[BlockPosition]:
    """Compute grid coordinates for blocks in the week of ``weekOf``."""
    week_start = grid.week_start(request.weekOf)
    return [
        BlockPosition(blockId=block.id, position=grid.grid_position(block, week_start))
        for block in request.blocks
    ]


@router.post("/conflicts", response_model=ConflictResult)
async def check_conflicts(request: ConflictCheckRequest, grid: TimeGridDep) -> ConflictResult:
    """Check a candidate interval against blocks and suggest alternatives."""
    candidate = TimeRange(startTime=request.startTime, endTime=request.endTime)
    return review_placement(candidate, request.blocks, exclude_id=request.excludeId, grid=grid)


@router.post("/free-slot", response_model=FreeSlotResponse)
async def find_free_slot(
    request: FreeSlotRequest, default_hours: WorkingHoursDep, grid: TimeGridDep
) -> FreeSlotResponse:
    """Find the next start with room for ``durationMinutes``."""
    start = find_next_available_slot(
        request.durationMinutes,
        request.preferredStart,
        request.blocks,
        working_hours=request.workingHours or default_hours,
        grid=grid,
    )
    if start is None:
        return FreeSlotResponse(found=False)
    return FreeSlotResponse(
        found=True,
        startTime=start,
        endTime=start + timedelta(minutes=request.durationMinutes),
    )


@router.post("/summary", response_model=WeeklySummary)
async def summarize_week(request: SummaryRequest, grid: TimeGridDep) -> WeeklySummary:
    """Summarize time allocation for the week of ``weekOf``."""
    return calculate_weekly_summary(request.blocks, request.weekOf, grid=grid)
