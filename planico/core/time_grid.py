"""
Time <-> grid coordinate mapping for the weekly planner.

The week is a 7-column by 48-row grid: one column per day, one row per
30-minute slot. All wall-clock reads happen in a single display timezone;
naive datetimes are taken to already be display-zone wall clock.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from datetime import datetime, timedelta, tzinfo
from functools import lru_cache
from typing import Literal, Protocol
from zoneinfo import ZoneInfo

from ..config import get_settings
from ..models.schedule import MIN_BLOCK_MINUTES, SLOT_MINUTES, GridPosition, TimeSlot, WeekInfo

DAYS_PER_WEEK = 7
SLOTS_PER_DAY = 48


class Interval(Protocol):
    """Anything with a start and an end instant."""

    startTime: datetime
    endTime: datetime


def _slot_index(slot: TimeSlot) -> int:
    return slot.hour * 2 + (1 if slot.minute == 30 else 0)


class TimeGridMapper:
    """Pure conversions between instants and week-grid coordinates."""

    def __init__(self, week_starts_on: int = 6, tz: tzinfo | None = None):
        """
        Args:
            week_starts_on: Weekday shown in column 1 (Monday=0 ... Sunday=6)
            tz: Display timezone; aware instants are converted into it
        """
        if not 0 <= week_starts_on <= 6:
            raise ValueError("week_starts_on must be a weekday number between 0 and 6")
        self.week_starts_on = week_starts_on
        self.tz = tz

    def to_local(self, instant: datetime) -> datetime:
        """Return ``instant`` as display-zone wall clock."""
        if self.tz is None or instant.tzinfo is None:
            return instant
        return instant.astimezone(self.tz)

    def normalize(self, instant: datetime) -> datetime:
        """
        Return ``instant`` in a form comparable with any other normalized
        instant. Naive values are display-zone wall clock; without a display
        zone, aware values are reduced to their own wall clock.
        """
        if self.tz is None:
            return instant.replace(tzinfo=None)
        if instant.tzinfo is None:
            return instant.replace(tzinfo=self.tz)
        return instant.astimezone(self.tz)

    # -- week window -------------------------------------------------------

    def week_start(self, instant: datetime) -> datetime:
        """Midnight of the first day of the week containing ``instant``."""
        local = self.to_local(instant)
        offset = (local.weekday() - self.week_starts_on) % DAYS_PER_WEEK
        day = local - timedelta(days=offset)
        return day.replace(hour=0, minute=0, second=0, microsecond=0)

    def week_end(self, instant: datetime) -> datetime:
        """Start of the following week (exclusive bound)."""
        return self.week_start(instant) + timedelta(days=DAYS_PER_WEEK)

    def week_days(self, instant: datetime) -> list[datetime]:
        start = self.week_start(instant)
        return [start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]

    def week_info(self, instant: datetime) -> WeekInfo:
        days = self.week_days(instant)
        # ISO numbering of the middle day, so every date in the window agrees
        iso = days[3].isocalendar()
        return WeekInfo(
            start=days[0],
            end=days[0] + timedelta(days=DAYS_PER_WEEK),
            days=days,
            weekNumber=iso.week,
            year=iso.year,
        )

    def navigate_week(self, instant: datetime, direction: Literal["prev", "next"]) -> datetime:
        if direction not in ("prev", "next"):
            raise ValueError(f"Unknown direction: {direction!r}")
        return instant + timedelta(days=DAYS_PER_WEEK if direction == "next" else -DAYS_PER_WEEK)

    def is_same_week(self, first: datetime, second: datetime) -> bool:
        return self.week_start(first) == self.week_start(second)

    # -- slots -------------------------------------------------------------

    def instant_to_slot(self, instant: datetime, week_start: datetime) -> TimeSlot:
        """
        Slot containing ``instant``. Minutes floor to :00 or :30 and the day
        offset is clamped into the displayed week.
        """
        local = self.to_local(instant)
        day = (local.date() - self.to_local(week_start).date()).days
        return TimeSlot(
            day=max(0, min(DAYS_PER_WEEK - 1, day)),
            hour=local.hour,
            minute=30 if local.minute >= 30 else 0,
        )

    def slot_to_instant(self, slot: TimeSlot, week_start: datetime) -> datetime:
        day = self.to_local(week_start) + timedelta(days=slot.day)
        return day.replace(hour=slot.hour, minute=slot.minute, second=0, microsecond=0)

    def grid_position(self, block: Interval, week_start: datetime) -> GridPosition:
        """
        Column, row and span of ``block`` on the grid of ``week_start``.

        Blocks outside the displayed week are pinned to the nearest edge
        column rather than omitted.
        """
        start_slot = self.instant_to_slot(block.startTime, week_start)
        end_slot = self.instant_to_slot(block.endTime, week_start)
        start_index = _slot_index(start_slot)
        end_index = _slot_index(end_slot)
        local_end = self.to_local(block.endTime)
        if (
            end_index == 0
            and local_end.time() == datetime.min.time()
            and local_end.date() > self.to_local(block.startTime).date()
        ):
            # ends exactly at midnight: runs to the bottom of its own column
            end_index = SLOTS_PER_DAY
        return GridPosition(
            column=start_slot.day + 1,
            row=start_index + 1,
            span=max(1, end_index - start_index),
        )

    @staticmethod
    def round_to_slot(instant: datetime) -> datetime:
        """
        Round to the nearest slot boundary: minutes below 15 go to :00,
        15-44 go to :30 and 45 or more go to :00 of the next hour.
        """
        base = instant.replace(second=0, microsecond=0)
        if base.minute < 15:
            return base.replace(minute=0)
        if base.minute < 45:
            return base.replace(minute=30)
        return base.replace(minute=0) + timedelta(hours=1)

    @staticmethod
    def generate_time_slots() -> list[TimeSlot]:
        return [
            TimeSlot(day=day, hour=hour, minute=minute)
            for day in range(DAYS_PER_WEEK)
            for hour in range(24)
            for minute in SLOT_MINUTES
        ]

    @staticmethod
    def time_slot_label(slot: TimeSlot) -> str:
        return f"{slot.hour:02d}:{slot.minute:02d}"

    @staticmethod
    def is_business_hour(slot: TimeSlot, start_hour: int = 8, end_hour: int = 18) -> bool:
        return start_hour <= slot.hour < end_hour


def is_aligned_to_slot(instant: datetime) -> bool:
    return instant.minute in SLOT_MINUTES


def duration_minutes(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def is_valid_block_duration(start: datetime, end: datetime) -> bool:
    return duration_minutes(start, end) >= MIN_BLOCK_MINUTES


def format_duration(minutes: int) -> str:
    """Format a duration as ``45min``, ``2h`` or ``1h 30min``."""
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}min"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


@lru_cache
def get_time_grid() -> TimeGridMapper:
    """Grid mapper configured from settings."""
    settings = get_settings()
    return TimeGridMapper(
        week_starts_on=settings.WEEK_STARTS_ON,
        tz=ZoneInfo(settings.DISPLAY_TIMEZONE),
    )
