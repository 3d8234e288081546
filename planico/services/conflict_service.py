"""
Conflict detection and alternative-placement suggestions.

Both functions are pure: a conflict is a normal return value, not an error.
Only a structurally invalid candidate (end <= start) raises.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

from ..core.time_grid import Interval, TimeGridMapper, get_time_grid
from ..models.schedule import ConflictResult
from ..utils.exceptions import InvalidIntervalError

logger = logging.getLogger(__name__)


class ExistingBlock(Interval, Protocol):
    id: str
    title: str


def _validate_candidate(candidate: Interval, grid: TimeGridMapper) -> None:
    if grid.normalize(candidate.endTime) <= grid.normalize(candidate.startTime):
        raise InvalidIntervalError(
            f"End time ({candidate.endTime.isoformat()}) must be after "
            f"start time ({candidate.startTime.isoformat()})"
        )


def overlaps(candidate: Interval, other: Interval, grid: TimeGridMapper | None = None) -> bool:
    """Strict half-open overlap; back-to-back intervals do not overlap."""
    grid = grid or get_time_grid()
    start, end = grid.normalize(candidate.startTime), grid.normalize(candidate.endTime)
    return start < grid.normalize(other.endTime) and end > grid.normalize(other.startTime)


def check_conflicts(
    candidate: Interval,
    existing_blocks: Iterable[ExistingBlock],
    exclude_id: str | None = None,
    grid: TimeGridMapper | None = None,
) -> ConflictResult:
    """
    Find existing blocks that overlap ``candidate``.

    Only blocks starting on the same local calendar day as the candidate are
    compared, since blocks never span midnight.

    Args:
        candidate: Interval being placed
        existing_blocks: Blocks already on the schedule
        exclude_id: Id of the block being edited, ignored in the comparison
        grid: Mapper providing the display timezone (defaults to settings)

    Returns:
        ConflictResult with the overlapping blocks in input order

    Raises:
        InvalidIntervalError: If the candidate ends at or before its start
    """
    grid = grid or get_time_grid()
    _validate_candidate(candidate, grid)
    candidate_day = grid.to_local(candidate.startTime).date()

    conflicting = [
        block
        for block in existing_blocks
        if not (exclude_id and block.id == exclude_id)
        and grid.to_local(block.startTime).date() == candidate_day
        and overlaps(candidate, block, grid=grid)
    ]
    return ConflictResult(hasConflict=bool(conflicting), conflictingBlocks=conflicting)


def generate_suggestions(
    candidate: Interval,
    conflicting_blocks: Sequence[ExistingBlock],
    grid: TimeGridMapper | None = None,
) -> list[str]:
    """
    Suggest moving the candidate before or after each conflicting block.

    Each suggestion only accounts for the block it refers to; it is not
    checked against the rest of the schedule.
    """
    grid = grid or get_time_grid()
    suggestions: list[str] = []
    start = grid.normalize(candidate.startTime)
    end = grid.normalize(candidate.endTime)

    for conflict in conflicting_blocks:
        if grid.normalize(conflict.startTime) > start:
            ends_by = grid.to_local(conflict.startTime).strftime("%H:%M")
            suggestions.append(f"place before {conflict.title}, ending by {ends_by}")
        if grid.normalize(conflict.endTime) < end:
            starts_at = grid.to_local(conflict.endTime).strftime("%H:%M")
            suggestions.append(f"place after {conflict.title}, starting at {starts_at}")

    # dict keeps first-occurrence order
    return list(dict.fromkeys(suggestions))


def review_placement(
    candidate: Interval,
    existing_blocks: Iterable[ExistingBlock],
    exclude_id: str | None = None,
    grid: TimeGridMapper | None = None,
) -> ConflictResult:
    """Conflict check with suggestions attached when a conflict is found."""
    result = check_conflicts(candidate, existing_blocks, exclude_id=exclude_id, grid=grid)
    if not result.hasConflict:
        return result

    suggestions = generate_suggestions(candidate, result.conflictingBlocks, grid=grid)
    logger.debug(
        "Placement conflicts with existing blocks",
        extra={
            "conflicts": [block.id for block in result.conflictingBlocks],
            "suggestions": len(suggestions),
        },
    )
    return result.model_copy(update={"suggestions": suggestions})
