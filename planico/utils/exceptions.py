"""
Custom exception hierarchy for standardized error handling.

Every exception carries an HTTP status code, an application error code and a
user-facing message, so the global handlers in ``planico.main`` can render them
as ``ErrorResponse`` payloads. Store adapters raise ``ScheduleStoreError``
tagged with an ``ErrorKind``; the schedule coordinator turns those into result
values instead of letting them escape.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from typing import TYPE_CHECKING, Any

from ..models.results import ErrorKind

if TYPE_CHECKING:
    from ..models.schedule import BlockSummary


class PlanicoError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: User-friendly error message
        code: Application-specific error code
        status_code: HTTP status code used when rendered by the API
        detail: Optional internal details for debugging
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_SERVER_ERROR",
        status_code: int = 500,
        detail: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail


class ValidationError(PlanicoError):
    """Raised when input is malformed or out of range."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, detail=detail)


class ResourceNotFoundError(PlanicoError):
    """Raised when a referenced resource does not exist."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} with ID '{resource_id}' not found",
            code="RESOURCE_NOT_FOUND",
            status_code=404,
        )
        self.resource = resource
        self.resource_id = resource_id


class InvalidIntervalError(PlanicoError, ValueError):
    """Raised for structurally invalid intervals (end <= start, non-positive duration)."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_INTERVAL", status_code=400)


_KIND_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TRANSIENT: 503,
}


class ScheduleStoreError(PlanicoError):
    """Failure reported by a schedule or category store."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        code: str | None = None,
        conflicting_blocks: "list[BlockSummary] | None" = None,
        detail: Any = None,
    ):
        super().__init__(
            message,
            code=code or kind.value.upper(),
            status_code=_KIND_STATUS[kind],
            detail=None if detail is None else str(detail),
        )
        self.kind = kind
        self.conflicting_blocks = list(conflicting_blocks or [])
