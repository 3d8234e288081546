"""
Result types for schedule operations.

Failures are carried as tagged values rather than raised, so callers can
branch on ``ScheduleError.kind`` (for instance to tell a schedule conflict
apart from a network failure) without try/except around every call.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from .schedule import BlockSummary

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    VALIDATION = "validation"  # rejected before or by the store as malformed
    CONFLICT = "conflict"  # overlaps another block
    NOT_FOUND = "not_found"  # stale or deleted id
    TRANSIENT = "transient"  # network/transport failure, retryable in principle


@dataclass(frozen=True)
class ScheduleError:
    """A classified failure with a single human-readable message."""

    kind: ErrorKind
    message: str
    code: str
    conflicting_blocks: tuple[BlockSummary, ...] = ()
    cause: BaseException | None = field(default=None, compare=False, repr=False)

    @property
    def is_conflict(self) -> bool:
        return self.kind is ErrorKind.CONFLICT


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Outcome of a coordinator operation.

    ``superseded`` is set on fetch results that arrived after a newer fetch was
    issued; such results were not applied to the collection.
    """

    ok: bool
    value: T | None = None
    error: ScheduleError | None = None
    superseded: bool = False

    @classmethod
    def success(cls, value: T | None = None) -> OperationResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ScheduleError) -> OperationResult[T]:
        return cls(ok=False, error=error)

    @classmethod
    def stale(cls, value: T | None = None) -> OperationResult[T]:
        return cls(ok=True, value=value, superseded=True)
