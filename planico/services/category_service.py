"""
Category lookup.

Categories are owned by an external service; this module only reads them.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from ..models.results import ErrorKind, ScheduleError
from ..models.schedule import Category
from ..utils.exceptions import ScheduleStoreError

logger = logging.getLogger(__name__)

CATEGORIES_PATH = "/api/categories"

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="default-work", name="Work", color="#3B82F6"),
    Category(id="default-personal", name="Personal", color="#22C55E"),
    Category(id="default-exercise", name="Exercise", color="#EF4444"),
    Category(id="default-study", name="Study", color="#8B5CF6"),
    Category(id="default-meetings", name="Meetings", color="#F97316"),
    Category(id="default-break", name="Break", color="#06B6D4"),
)


class CategoryStore(ABC):
    """Read-only category source."""

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """All categories."""


class HttpCategoryStore(CategoryStore):
    """CategoryStore backed by the categories REST endpoint."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def list_categories(self) -> list[Category]:
        try:
            response = await self._client.get(CATEGORIES_PATH)
        except httpx.HTTPError as e:
            raise ScheduleStoreError(
                ErrorKind.TRANSIENT,
                "Could not reach the category service",
                code="NETWORK_ERROR",
                detail=str(e),
            ) from e

        if response.is_error:
            raise ScheduleStoreError(
                ErrorKind.TRANSIENT,
                f"Error {response.status_code}: {response.reason_phrase}",
            )

        body = response.json()
        items = body.get("data", []) if isinstance(body, dict) else body
        return [Category.model_validate(item) for item in items]


class CategoryService:
    """Cached, name-sorted view of the available categories."""

    def __init__(self, store: CategoryStore):
        self.store = store
        self._categories: tuple[Category, ...] = ()
        self.last_error: ScheduleError | None = None

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._categories

    async def refresh(self) -> tuple[Category, ...]:
        """
        Reload categories from the store.

        On failure the default category set is used so blocks can still be
        created, and the failure is kept in ``last_error``.
        """
        self.last_error = None
        try:
            loaded = await self.store.list_categories()
        except Exception as e:
            kind = e.kind if isinstance(e, ScheduleStoreError) else ErrorKind.TRANSIENT
            self.last_error = ScheduleError(
                kind=kind,
                message=getattr(e, "message", None) or str(e) or "Could not load categories",
                code=getattr(e, "code", None) or "CATEGORY_LOAD_FAILED",
                cause=e,
            )
            logger.error(f"Error loading categories, falling back to defaults: {e}")
            loaded = list(DEFAULT_CATEGORIES)

        self._categories = tuple(sorted(loaded, key=lambda c: c.name.casefold()))
        return self._categories

    def get(self, category_id: str) -> Category | None:
        return next((c for c in self._categories if c.id == category_id), None)

    def find_by_name(self, name: str) -> Category | None:
        """Case-insensitive lookup by name."""
        wanted = name.casefold()
        return next((c for c in self._categories if c.name.casefold() == wanted), None)
