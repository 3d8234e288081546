import asyncio
from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from planico.core.time_grid import TimeGridMapper
from planico.main import create_app
from planico.models.schedule import Category, ScheduleBlock
from planico.services.schedule_store import ScheduleStore
from planico.utils.metrics import PlannerMetrics

WORK = Category(id="cat-work", name="Work", color="#3B82F6")


def make_block(
    block_id: str,
    start: datetime,
    end: datetime,
    title: str | None = None,
    category: Category = WORK,
) -> ScheduleBlock:
    """Build an authoritative block as the store would return it."""
    return ScheduleBlock(
        id=block_id,
        title=title or f"Block {block_id}",
        startTime=start,
        endTime=end,
        categoryId=category.id,
        category=category,
        createdAt=datetime(2024, 1, 1, 12, 0),
        updatedAt=datetime(2024, 1, 1, 12, 0),
    )


class GatedScheduleStore(ScheduleStore):
    """Store whose week fetches stay pending until the test resolves them."""

    def __init__(self) -> None:
        self.fetches: list[tuple[datetime, asyncio.Future]] = []

    async def list_blocks(self, week_start, week_end):
        future = asyncio.get_running_loop().create_future()
        self.fetches.append((week_start, future))
        return await future

    async def create_block(self, data):
        raise NotImplementedError

    async def update_block(self, block_id, data):
        raise NotImplementedError

    async def delete_block(self, block_id):
        raise NotImplementedError

    async def wait_for_fetches(self, count: int) -> None:
        for _ in range(100):
            if len(self.fetches) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {count} pending fetches, got {len(self.fetches)}")


@pytest.fixture
def grid() -> TimeGridMapper:
    """Sunday-first grid reading naive datetimes as wall clock."""
    return TimeGridMapper(week_starts_on=6)


@pytest.fixture
def metrics():
    planner_metrics = PlannerMetrics()
    yield planner_metrics
    planner_metrics.close()


@pytest.fixture
async def client(metrics: PlannerMetrics) -> AsyncGenerator[AsyncClient, None]:
    """
    Client over the ASGI app. The lifespan is not run, so logging and Sentry
    are left untouched.
    """
    app = create_app(metrics=metrics)
    transport = ASGITransport(app=app, raise_app_exceptions=False)

    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def block_factory():
    return make_block


@pytest.fixture
def gated_store() -> GatedScheduleStore:
    return GatedScheduleStore()
