"""
Weekly time-allocation summary.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from collections.abc import Iterable
from datetime import datetime

from ..core.time_grid import TimeGridMapper, duration_minutes, get_time_grid
from ..models.schedule import CategoryUsage, ScheduleBlock, WeeklySummary


def calculate_weekly_summary(
    blocks: Iterable[ScheduleBlock],
    week_of: datetime,
    grid: TimeGridMapper | None = None,
) -> WeeklySummary:
    """Totals and per-category breakdown for blocks starting in the week of ``week_of``."""
    grid = grid or get_time_grid()
    week_start = grid.normalize(grid.week_start(week_of))
    week_end = grid.normalize(grid.week_end(week_of))

    week_blocks = [
        block for block in blocks if week_start <= grid.normalize(block.startTime) < week_end
    ]
    total_minutes = 0
    usage: dict[str, dict] = {}

    for block in week_blocks:
        minutes = duration_minutes(block.startTime, block.endTime)
        total_minutes += minutes
        entry = usage.setdefault(
            block.categoryId,
            {"name": block.category.name, "color": block.category.color, "blocks": 0, "minutes": 0},
        )
        entry["blocks"] += 1
        entry["minutes"] += minutes

    breakdown = {
        category_id: CategoryUsage(
            **entry,
            percentage=(entry["minutes"] / total_minutes * 100) if total_minutes else 0.0,
        )
        for category_id, entry in usage.items()
    }

    return WeeklySummary(
        totalBlocks=len(week_blocks),
        totalMinutes=total_minutes,
        averageBlockDuration=(total_minutes / len(week_blocks)) if week_blocks else 0.0,
        categoryBreakdown=breakdown,
    )
