"""
Schedule persistence interface and its HTTP adapter.

The store is the external source of truth for schedule blocks. Adapters raise
``ScheduleStoreError`` tagged with an ``ErrorKind``; they never retry.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..models.results import ErrorKind
from ..models.schedule import (
    BlockSummary,
    ScheduleBlock,
    ScheduleBlockCreate,
    ScheduleBlockUpdate,
)
from ..utils.exceptions import ScheduleStoreError

logger = logging.getLogger(__name__)

SCHEDULE_PATH = "/api/schedule"


class ScheduleStore(ABC):
    """Persistence contract consumed by the schedule coordinator."""

    @abstractmethod
    async def list_blocks(self, week_start: datetime, week_end: datetime) -> list[ScheduleBlock]:
        """Blocks starting inside [week_start, week_end), ascending by start."""

    @abstractmethod
    async def create_block(self, data: ScheduleBlockCreate) -> ScheduleBlock:
        """Create a block; raises VALIDATION or CONFLICT store errors."""

    @abstractmethod
    async def update_block(self, block_id: str, data: ScheduleBlockUpdate) -> ScheduleBlock:
        """Apply the set fields of ``data``; raises VALIDATION, NOT_FOUND or CONFLICT."""

    @abstractmethod
    async def delete_block(self, block_id: str) -> None:
        """Delete a block; raises NOT_FOUND."""


def _error_from_response(response: httpx.Response) -> ScheduleStoreError:
    """Map a failed HTTP response onto the error taxonomy."""
    try:
        payload: dict[str, Any] = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    message = payload.get("error") or f"Error {response.status_code}: {response.reason_phrase}"
    code = payload.get("code")
    details = payload.get("details")

    if response.status_code == 400:
        return ScheduleStoreError(ErrorKind.VALIDATION, message, code=code, detail=details)
    if response.status_code == 404:
        return ScheduleStoreError(ErrorKind.NOT_FOUND, message, code=code)
    if response.status_code == 409:
        raw_blocks = details.get("conflictingBlocks", []) if isinstance(details, dict) else []
        conflicting = []
        for raw in raw_blocks:
            try:
                conflicting.append(BlockSummary.model_validate(raw))
            except PydanticValidationError:
                logger.warning("Skipping malformed conflicting block in store response: %s", raw)
        return ScheduleStoreError(
            ErrorKind.CONFLICT,
            message,
            code=code or "SCHEDULE_CONFLICT",
            conflicting_blocks=conflicting,
        )
    return ScheduleStoreError(ErrorKind.TRANSIENT, message, code=code, detail=details)


class HttpScheduleStore(ScheduleStore):
    """ScheduleStore backed by the schedule REST service."""

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            base_url: Root URL of the persistence service
            timeout: Per-request timeout in seconds; None waits indefinitely
            client: Shared client (the store then does not own or close it)
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"Schedule store request failed: {method} {path}: {e}")
            raise ScheduleStoreError(
                ErrorKind.TRANSIENT,
                "Could not reach the schedule service",
                code="NETWORK_ERROR",
                detail=str(e),
            ) from e

        if response.is_error:
            error = _error_from_response(response)
            logger.info(
                "Schedule store rejected request",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "error_code": error.code,
                },
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None
        body = response.json()
        # responses are wrapped as {"data": ..., "message": ...}
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def list_blocks(self, week_start: datetime, week_end: datetime) -> list[ScheduleBlock]:
        # the week route keys on `date`; the range params serve range-aware servers
        data = await self._request(
            "GET",
            SCHEDULE_PATH,
            params={
                "date": week_start.isoformat(),
                "startDate": week_start.isoformat(),
                "endDate": week_end.isoformat(),
            },
        )
        blocks = [ScheduleBlock.model_validate(item) for item in data or []]
        return sorted(blocks, key=lambda b: b.startTime)

    async def create_block(self, data: ScheduleBlockCreate) -> ScheduleBlock:
        payload = await self._request("POST", SCHEDULE_PATH, json=data.model_dump(mode="json"))
        return ScheduleBlock.model_validate(payload)

    async def update_block(self, block_id: str, data: ScheduleBlockUpdate) -> ScheduleBlock:
        payload = await self._request(
            "PUT",
            f"{SCHEDULE_PATH}/{block_id}",
            json=data.model_dump(mode="json", exclude_unset=True),
        )
        return ScheduleBlock.model_validate(payload)

    async def delete_block(self, block_id: str) -> None:
        await self._request("DELETE", f"{SCHEDULE_PATH}/{block_id}")
