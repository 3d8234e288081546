"""Tests for the planner HTTP routes."""

import pytest

BASE = "/api/v1/planner"


def summary_block(block_id: str, start: str, end: str, title: str = "Meeting") -> dict:
    return {"id": block_id, "title": title, "startTime": start, "endTime": end}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "OK"}
    assert "x-process-time" in response.headers


@pytest.mark.asyncio
async def test_metrics_exposes_request_counts(client):
    await client.get("/health")

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert 'http_requests_total{method="GET",path="/health"} 1.0' in response.text


@pytest.mark.asyncio
async def test_week_window(client):
    response = await client.get(f"{BASE}/week", params={"date": "2024-01-10T14:30:00"})

    assert response.status_code == 200
    data = response.json()
    assert data["start"] == "2024-01-07T00:00:00"
    assert data["end"] == "2024-01-14T00:00:00"
    assert len(data["days"]) == 7
    assert data["weekNumber"] == 2
    assert data["year"] == 2024


@pytest.mark.asyncio
async def test_grid_positions(client):
    response = await client.post(
        f"{BASE}/grid",
        json={
            "weekOf": "2024-01-10T00:00:00",
            "blocks": [summary_block("1", "2024-01-09T09:30:00", "2024-01-09T11:00:00")],
        },
    )

    assert response.status_code == 200
    assert response.json() == [{"blockId": "1", "position": {"column": 3, "row": 20, "span": 3}}]


@pytest.mark.asyncio
async def test_conflict_check_with_suggestions(client):
    response = await client.post(
        f"{BASE}/conflicts",
        json={
            "startTime": "2024-01-10T09:00:00",
            "endTime": "2024-01-10T10:00:00",
            "blocks": [summary_block("1", "2024-01-10T09:30:00", "2024-01-10T10:30:00")],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["hasConflict"] is True
    assert [b["id"] for b in data["conflictingBlocks"]] == ["1"]
    assert data["suggestions"] == ["place before Meeting, ending by 09:30"]


@pytest.mark.asyncio
async def test_conflict_check_excluding_edited_block(client):
    response = await client.post(
        f"{BASE}/conflicts",
        json={
            "startTime": "2024-01-10T09:00:00",
            "endTime": "2024-01-10T10:00:00",
            "blocks": [summary_block("1", "2024-01-10T09:30:00", "2024-01-10T10:30:00")],
            "excludeId": "1",
        },
    )

    assert response.status_code == 200
    assert response.json()["hasConflict"] is False


@pytest.mark.asyncio
async def test_invalid_interval_is_rejected(client):
    response = await client.post(
        f"{BASE}/conflicts",
        json={"startTime": "2024-01-10T10:00:00", "endTime": "2024-01-10T10:00:00"},
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "INVALID_INTERVAL"
    assert data["status_code"] == 400


@pytest.mark.asyncio
async def test_free_slot_found(client):
    response = await client.post(
        f"{BASE}/free-slot",
        json={
            "durationMinutes": 30,
            "preferredStart": "2024-01-10T09:00:00",
            "blocks": [summary_block("1", "2024-01-10T09:00:00", "2024-01-10T10:00:00")],
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "found": True,
        "startTime": "2024-01-10T10:00:00",
        "endTime": "2024-01-10T10:30:00",
    }


@pytest.mark.asyncio
async def test_free_slot_not_found(client):
    response = await client.post(
        f"{BASE}/free-slot",
        json={
            "durationMinutes": 120,
            "preferredStart": "2024-01-10T17:30:00",
            "workingHours": {"start": 8, "end": 18},
        },
    )

    assert response.status_code == 200
    assert response.json() == {"found": False, "startTime": None, "endTime": None}


@pytest.mark.asyncio
async def test_missing_field_is_a_validation_error(client):
    response = await client.post(f"{BASE}/free-slot", json={"durationMinutes": 30})

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "preferredStart" in data["message"]


@pytest.mark.asyncio
async def test_weekly_summary(client):
    block = {
        **summary_block("1", "2024-01-09T09:00:00", "2024-01-09T10:30:00"),
        "categoryId": "cat-work",
        "category": {"id": "cat-work", "name": "Work", "color": "#3B82F6"},
    }

    response = await client.post(
        f"{BASE}/summary", json={"weekOf": "2024-01-10T00:00:00", "blocks": [block]}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["totalBlocks"] == 1
    assert data["totalMinutes"] == 90
    assert data["categoryBreakdown"]["cat-work"]["percentage"] == 100.0


@pytest.mark.asyncio
async def test_free_slot_reads_aware_start_in_display_zone(client):
    # 09:00Z is 03:00 in the display zone, so the search starts at 08:00 local
    response = await client.post(
        f"{BASE}/free-slot",
        json={"durationMinutes": 60, "preferredStart": "2024-01-10T09:00:00Z", "blocks": []},
    )

    assert response.status_code == 200
    assert response.json() == {
        "found": True,
        "startTime": "2024-01-10T08:00:00-06:00",
        "endTime": "2024-01-10T09:00:00-06:00",
    }


@pytest.mark.asyncio
async def test_conflict_check_with_naive_candidate_and_aware_blocks(client):
    response = await client.post(
        f"{BASE}/conflicts",
        json={
            "startTime": "2024-01-10T09:00:00",
            "endTime": "2024-01-10T10:00:00",
            "blocks": [summary_block("1", "2024-01-10T15:30:00Z", "2024-01-10T16:30:00Z")],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["hasConflict"] is True
    assert data["suggestions"] == ["place before Meeting, ending by 09:30"]
