"""
Free-slot search.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from ..core.time_grid import Interval, TimeGridMapper, get_time_grid
from ..models.schedule import WorkingHours
from ..utils.exceptions import InvalidIntervalError


def find_next_available_slot(
    duration_minutes: int,
    preferred_start: datetime,
    existing_blocks: Iterable[Interval],
    working_hours: WorkingHours | None = None,
    grid: TimeGridMapper | None = None,
) -> datetime | None:
    """
    Earliest start at or after ``preferred_start`` with room for the duration.

    A preferred start before working hours is moved up to the opening hour.
    The sweep walks blocks in start order, jumping past each one that does not
    leave room in front of it. The result is not re-aligned to a 30-minute
    boundary. Working hours are read as display-zone wall clock.

    Args:
        duration_minutes: Length of the interval to place
        preferred_start: Earliest acceptable start
        existing_blocks: Blocks to avoid
        working_hours: Allowed hours (defaults to 8-18)
        grid: Mapper providing the display timezone (defaults to settings)

    Returns:
        The start instant (naive when ``preferred_start`` is naive), or None
        when nothing fits before closing time

    Raises:
        InvalidIntervalError: If the duration is not positive
    """
    if duration_minutes <= 0:
        raise InvalidIntervalError("Duration must be a positive number of minutes")

    grid = grid or get_time_grid()
    working_hours = working_hours or WorkingHours()
    duration = timedelta(minutes=duration_minutes)

    cursor = grid.normalize(preferred_start)
    if cursor.hour < working_hours.start:
        cursor = cursor.replace(hour=working_hours.start, minute=0, second=0, microsecond=0)

    intervals = sorted(
        (grid.normalize(block.startTime), grid.normalize(block.endTime))
        for block in existing_blocks
    )
    for start, end in intervals:
        if cursor + duration <= start:
            return _like(cursor, preferred_start)
        # never move backwards past the preferred start
        cursor = max(cursor, end)

    if (cursor + duration).hour <= working_hours.end:
        return _like(cursor, preferred_start)
    return None


def _like(result: datetime, reference: datetime) -> datetime:
    """Give ``result`` the same awareness as ``reference``."""
    if reference.tzinfo is None:
        return result.replace(tzinfo=None)
    if result.tzinfo is None:
        return result.replace(tzinfo=reference.tzinfo)
    return result
