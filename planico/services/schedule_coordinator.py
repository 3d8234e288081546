"""
Schedule coordinator.

Owns the in-memory collection of blocks for the displayed week and is its only
writer. Mutations are applied optimistically and reconciled with the schedule
store: confirmed results replace the local copy, failures roll it back. Week
fetches are ordered by issue time; a fetch that was overtaken by a newer one
never touches the collection, whenever it resolves.

Two mutations on the same block id are not serialized against each other;
whichever response arrives last wins.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..config import Settings, get_settings
from ..core.time_grid import TimeGridMapper, get_time_grid
from ..models.results import ErrorKind, OperationResult, ScheduleError
from ..models.schedule import (
    MIN_BLOCK_MINUTES,
    Category,
    ConflictResult,
    ScheduleBlock,
    ScheduleBlockCreate,
    ScheduleBlockUpdate,
    TimeRange,
    WeekInfo,
)
from ..utils.exceptions import PlanicoError, ScheduleStoreError
from ..utils.metrics import PlannerMetrics
from .conflict_service import review_placement
from .schedule_store import HttpScheduleStore, ScheduleStore

logger = logging.getLogger(__name__)

PROVISIONAL_ID_PREFIX = "temp-"
PLACEHOLDER_CATEGORY_NAME = "Loading..."
PLACEHOLDER_CATEGORY_COLOR = "#9CA3AF"

_STATUS_KIND = {400: ErrorKind.VALIDATION, 404: ErrorKind.NOT_FOUND, 409: ErrorKind.CONFLICT}


def is_provisional(block: ScheduleBlock) -> bool:
    return block.id.startswith(PROVISIONAL_ID_PREFIX)


def to_schedule_error(exc: BaseException) -> ScheduleError:
    """Classify any store failure into the closed error taxonomy."""
    if isinstance(exc, ScheduleStoreError):
        return ScheduleError(
            kind=exc.kind,
            message=exc.message,
            code=exc.code,
            conflicting_blocks=tuple(exc.conflicting_blocks),
            cause=exc,
        )
    if isinstance(exc, PlanicoError):
        return ScheduleError(
            kind=_STATUS_KIND.get(exc.status_code, ErrorKind.TRANSIENT),
            message=exc.message,
            code=exc.code,
            cause=exc,
        )
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return ScheduleError(
            kind=ErrorKind.TRANSIENT,
            message="The schedule service took too long to respond",
            code="TIMEOUT",
            cause=exc,
        )
    if isinstance(exc, (httpx.HTTPError, ConnectionError)):
        return ScheduleError(
            kind=ErrorKind.TRANSIENT,
            message="Could not reach the schedule service",
            code="NETWORK_ERROR",
            cause=exc,
        )
    return ScheduleError(
        kind=ErrorKind.TRANSIENT,
        message=str(exc) or "An unexpected error occurred",
        code="UNEXPECTED_ERROR",
        cause=exc,
    )


def _validation_error(exc: PydanticValidationError) -> ScheduleError:
    errors = exc.errors()
    if len(errors) == 1:
        error = errors[0]
        field = " -> ".join(str(loc) for loc in error["loc"])
        message = (
            f"Validation error in field '{field}': {error['msg']}" if field else error["msg"]
        )
    else:
        message = f"Validation failed with {len(errors)} error(s)"
    return ScheduleError(
        kind=ErrorKind.VALIDATION, message=message, code="VALIDATION_ERROR", cause=exc
    )


def _not_found(block_id: str) -> ScheduleError:
    return ScheduleError(
        kind=ErrorKind.NOT_FOUND,
        message=f"Block with ID '{block_id}' not found",
        code="BLOCK_NOT_FOUND",
    )


class ScheduleCoordinator:
    """Sole writer of the local block collection and sole caller of the store."""

    def __init__(
        self,
        store: ScheduleStore,
        grid: TimeGridMapper | None = None,
        optimistic: bool = True,
        metrics: PlannerMetrics | None = None,
    ):
        """
        Args:
            store: Persistence service for schedule blocks
            grid: Week/time mapper (defaults to the one built from settings)
            optimistic: Apply edits locally before the store confirms them
            metrics: Collectors to record mutations, rollbacks and stale fetches
        """
        self.store = store
        self.grid = grid or get_time_grid()
        self.optimistic = optimistic
        self.metrics = metrics

        self._blocks: list[ScheduleBlock] = []
        self._fetch_generation = 0
        self._reference: datetime | None = None

        self.current_week: WeekInfo | None = None
        self.is_loading = False
        self.last_error: ScheduleError | None = None

    # -- read side -----------------------------------------------------------

    @property
    def blocks(self) -> tuple[ScheduleBlock, ...]:
        """Snapshot of the collection; entries are immutable."""
        return tuple(self._blocks)

    def get_block(self, block_id: str) -> ScheduleBlock | None:
        index = self._index_of(block_id)
        return None if index is None else self._blocks[index]

    def check_conflicts(
        self, start: datetime, end: datetime, exclude_id: str | None = None
    ) -> ConflictResult:
        """Check a candidate interval against the current collection, with suggestions."""
        return review_placement(
            TimeRange(startTime=start, endTime=end),
            self.blocks,
            exclude_id=exclude_id,
            grid=self.grid,
        )

    # -- fetch ---------------------------------------------------------------

    async def fetch_for_week(self, reference: datetime) -> OperationResult[list[ScheduleBlock]]:
        """
        Load the week containing ``reference``, replacing the collection.

        Issuing a fetch supersedes every fetch still in flight. Superseded
        results (and failures) are returned with ``superseded=True`` and are
        never applied.
        """
        self._fetch_generation += 1
        generation = self._fetch_generation
        week = self.grid.week_info(reference)

        self.is_loading = True
        self.last_error = None

        try:
            fetched = await self.store.list_blocks(week.start, week.end)
        except Exception as e:
            error = to_schedule_error(e)
            if generation != self._fetch_generation:
                self._discard_superseded(week)
                return OperationResult(ok=False, error=error, superseded=True)
            self.is_loading = False
            self.last_error = error
            logger.error(
                f"Error fetching schedule blocks: {error.message}",
                extra={"week_start": week.start.isoformat(), "error_code": error.code},
            )
            return OperationResult.failure(error)

        if generation != self._fetch_generation:
            self._discard_superseded(week)
            return OperationResult.stale(list(fetched))

        self._blocks = sorted(fetched, key=lambda b: self.grid.normalize(b.startTime))
        self._reference = reference
        self.current_week = week
        self.is_loading = False
        logger.debug(
            "Loaded schedule week",
            extra={"week_start": week.start.isoformat(), "blocks": len(self._blocks)},
        )
        return OperationResult.success(list(self._blocks))

    async def refetch(self) -> OperationResult[list[ScheduleBlock]]:
        """Reload the last successfully loaded week (the current week if none)."""
        return await self.fetch_for_week(self._reference or datetime.now(self.grid.tz))

    def _discard_superseded(self, week: WeekInfo) -> None:
        logger.debug(
            "Discarding superseded week fetch",
            extra={"week_start": week.start.isoformat()},
        )
        if self.metrics is not None:
            self.metrics.superseded_fetches.inc()

    # -- mutations -----------------------------------------------------------

    async def create_block(
        self, data: ScheduleBlockCreate | Mapping[str, Any]
    ) -> OperationResult[ScheduleBlock]:
        """
        Create a block.

        With optimistic updates a provisional entry (``temp-`` id, placeholder
        category) is shown until the store answers; it is swapped for the
        stored block on success and dropped on failure.
        """
        self.last_error = None
        try:
            payload = ScheduleBlockCreate.model_validate(data)
        except PydanticValidationError as e:
            return self._fail("create", _validation_error(e))

        provisional: ScheduleBlock | None = None
        if self.optimistic:
            now = datetime.now(UTC)
            provisional = ScheduleBlock(
                id=f"{PROVISIONAL_ID_PREFIX}{uuid4().hex}",
                title=payload.title,
                description=payload.description,
                startTime=payload.startTime,
                endTime=payload.endTime,
                categoryId=payload.categoryId,
                category=Category(
                    id=payload.categoryId,
                    name=PLACEHOLDER_CATEGORY_NAME,
                    color=PLACEHOLDER_CATEGORY_COLOR,
                ),
                createdAt=now,
                updatedAt=now,
            )
            self._blocks.append(provisional)

        try:
            created = await self.store.create_block(payload)
        except Exception as e:
            if provisional is not None:
                self._remove(provisional.id)
                self._record_rollback("create")
            return self._fail("create", to_schedule_error(e))

        if provisional is not None and self._index_of(provisional.id) is not None:
            self._replace(provisional.id, created)
        elif self._index_of(created.id) is None:
            self._blocks.append(created)

        self._record_mutation("create", "success")
        logger.info("Schedule block created", extra={"block_id": created.id})
        return OperationResult.success(created)

    async def update_block(
        self, block_id: str, data: ScheduleBlockUpdate | Mapping[str, Any]
    ) -> OperationResult[ScheduleBlock]:
        """
        Update a block with the set fields of ``data``.

        The merged entry is shown immediately; on failure the entry is
        restored exactly as it was before the call.
        """
        self.last_error = None
        index = self._index_of(block_id)
        if index is None:
            return self._fail("update", _not_found(block_id))

        try:
            changes = ScheduleBlockUpdate.model_validate(data)
        except PydanticValidationError as e:
            return self._fail("update", _validation_error(e))

        snapshot = self._blocks[index]
        fields = {
            key: value
            for key, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        merged = snapshot.model_copy(update={**fields, "updatedAt": datetime.now(UTC)})

        span = self.grid.normalize(merged.endTime) - self.grid.normalize(merged.startTime)
        if span <= timedelta(0):
            return self._fail(
                "update",
                ScheduleError(
                    kind=ErrorKind.VALIDATION,
                    message="End time must be after start time",
                    code="VALIDATION_ERROR",
                ),
            )
        if span < timedelta(minutes=MIN_BLOCK_MINUTES):
            return self._fail(
                "update",
                ScheduleError(
                    kind=ErrorKind.VALIDATION,
                    message=f"Minimum block duration is {MIN_BLOCK_MINUTES} minutes",
                    code="VALIDATION_ERROR",
                ),
            )

        if self.optimistic:
            self._blocks[index] = merged

        try:
            updated = await self.store.update_block(block_id, changes)
        except Exception as e:
            if self.optimistic:
                self._replace(block_id, snapshot)
                self._record_rollback("update")
            return self._fail("update", to_schedule_error(e))

        self._replace(block_id, updated)
        self._record_mutation("update", "success")
        logger.info("Schedule block updated", extra={"block_id": block_id})
        return OperationResult.success(updated)

    async def delete_block(self, block_id: str) -> OperationResult[None]:
        """
        Delete a block.

        The entry disappears immediately; if the store refuses, it comes back
        at the end of the collection rather than at its former position.
        """
        self.last_error = None
        index = self._index_of(block_id)
        if index is None:
            return self._fail("delete", _not_found(block_id))

        snapshot = self._blocks[index]
        if self.optimistic:
            del self._blocks[index]

        try:
            await self.store.delete_block(block_id)
        except Exception as e:
            if self.optimistic and self._index_of(block_id) is None:
                self._blocks.append(snapshot)
                self._record_rollback("delete")
            return self._fail("delete", to_schedule_error(e))

        if not self.optimistic:
            self._remove(block_id)
        self._record_mutation("delete", "success")
        logger.info("Schedule block deleted", extra={"block_id": block_id})
        return OperationResult.success(None)

    # -- helpers -------------------------------------------------------------

    def _index_of(self, block_id: str) -> int | None:
        for index, block in enumerate(self._blocks):
            if block.id == block_id:
                return index
        return None

    def _replace(self, block_id: str, block: ScheduleBlock) -> None:
        index = self._index_of(block_id)
        if index is not None:
            self._blocks[index] = block

    def _remove(self, block_id: str) -> None:
        self._blocks = [block for block in self._blocks if block.id != block_id]

    def _fail(self, operation: str, error: ScheduleError) -> OperationResult[Any]:
        self.last_error = error
        self._record_mutation(operation, error.kind.value)

        log_context = {
            "operation": operation,
            "error_kind": error.kind.value,
            "error_code": error.code,
        }
        if error.kind is ErrorKind.TRANSIENT:
            logger.error(
                f"Schedule {operation} failed: {error.message}",
                exc_info=error.cause,
                extra=log_context,
            )
        else:
            logger.warning(f"Schedule {operation} rejected: {error.message}", extra=log_context)
        return OperationResult.failure(error)

    def _record_mutation(self, operation: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.mutations.labels(operation=operation, outcome=outcome).inc()

    def _record_rollback(self, operation: str) -> None:
        logger.info(f"Rolled back optimistic {operation}")
        if self.metrics is not None:
            self.metrics.rollbacks.labels(operation=operation).inc()


def create_schedule_coordinator(
    settings: Settings | None = None,
    metrics: PlannerMetrics | None = None,
    client: httpx.AsyncClient | None = None,
) -> ScheduleCoordinator:
    """Coordinator wired to the configured schedule service."""
    settings = settings or get_settings()
    store = HttpScheduleStore(
        settings.SCHEDULE_API_URL,
        timeout=settings.SCHEDULE_API_TIMEOUT,
        client=client,
    )
    return ScheduleCoordinator(
        store,
        grid=get_time_grid(),
        optimistic=settings.OPTIMISTIC_UPDATES,
        metrics=metrics,
    )
