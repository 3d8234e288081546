"""
Dependency injection system.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from typing import Annotated

from fastapi import Depends, Request

from .config import Settings, get_settings
from .core.time_grid import TimeGridMapper, get_time_grid
from .models.schedule import WorkingHours
from .utils.metrics import PlannerMetrics

# Common dependencies
SettingsDep = Annotated[Settings, Depends(get_settings)]

TimeGridDep = Annotated[TimeGridMapper, Depends(get_time_grid)]


def get_default_working_hours(settings: SettingsDep) -> WorkingHours:
    """Working hours configured for free-slot searches."""
    return WorkingHours(start=settings.WORKING_HOURS_START, end=settings.WORKING_HOURS_END)


WorkingHoursDep = Annotated[WorkingHours, Depends(get_default_working_hours)]


def get_metrics(request: Request) -> PlannerMetrics:
    """Metrics registry created with the application."""
    return request.app.state.metrics


MetricsDep = Annotated[PlannerMetrics, Depends(get_metrics)]
