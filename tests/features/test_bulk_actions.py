"""
Tests for the team and task mutation client.
"""

import aiohttp
import pytest

from hourglass.features.team.bulk_actions import (
    PENDING_HOURS_MESSAGE,
    ApiResult,
    BulkOperation,
    aggregate_message,
    has_pending_hours
)


@pytest.fixture
def client(bulk_client):
    return bulk_client


def test_api_result_parsing():
    result = ApiResult.from_response(200, {
        "ok": True,
        "successCount": 2,
        "errors": [{"id": "t3", "error": "Has pending hours", "suggestion": "Approve timesheets first"}]
    })

    assert result.ok and result.success_count == 2
    assert result.errors[0].suggestion == "Approve timesheets first"

    rejected = ApiResult.from_response(409, {"error": "Task is locked"})
    assert not rejected.ok and rejected.error == "Task is locked"


def test_aggregate_message():
    assert aggregate_message(BulkOperation.ARCHIVE, 3, 2) == "Archived 3, 2 failed"
    assert aggregate_message(BulkOperation.DELETE, 4, 0) == "Deleted 4"


def test_has_pending_hours():
    timesheets = [
        {"user_id": "u1", "status": "approved", "entries": [{"task_id": "t1", "hours": 8}]},
        {"user_id": "u2", "status": "submitted", "entries": [{"task_id": "t2", "hours": "1:00"}]},
        {"user_id": "u3", "status": "unsubmitted", "entries": [{"task_id": "t1", "hours": 0}]},
    ]

    assert not has_pending_hours(timesheets, task_id="t1")
    assert has_pending_hours(timesheets, task_id="t2")
    assert has_pending_hours(timesheets, user_id="u2")
    assert not has_pending_hours(timesheets, user_id="u1")


@pytest.mark.asyncio
async def test_bulk_partial_failure_restores_failed_items(client, transport):
    tasks = {task_id: {"name": task_id} for task_id in ["t1", "t2", "t3", "t4", "t5"]}
    transport["responses"].append((200, {
        "ok": True,
        "successCount": 3,
        "errors": [{"id": "t2", "error": "Has pending hours"}, {"id": "t5", "error": "Not found"}]
    }))

    outcome = await client.bulk(tasks, BulkOperation.ARCHIVE, list(tasks))

    assert outcome.message == "Archived 3, 2 failed"
    assert outcome.succeeded_ids == ["t1", "t3", "t4"]
    assert sorted(tasks) == ["t2", "t5"]
    assert [error.error for error in outcome.failed] == ["Has pending hours", "Not found"]
    assert transport["requests"][0] == (
        "POST", "http://api.test/api/tasks/bulk", {"operation": "archive", "ids": ["t1", "t2", "t3", "t4", "t5"]}
    )
    assert client.busy == set()


@pytest.mark.asyncio
async def test_bulk_rejected_request_restores_everything(client, transport):
    tasks = {"t1": {"name": "Design"}, "t2": {"name": "Build"}}
    transport["responses"].append((403, {"ok": False, "error": "Only admins can delete tasks"}))

    outcome = await client.bulk(tasks, BulkOperation.DELETE, ["t1", "t2"])

    assert outcome.message == "Only admins can delete tasks"
    assert sorted(tasks) == ["t1", "t2"]


@pytest.mark.asyncio
async def test_pin_reverts_on_network_error(client, transport):
    members = {"m1": {"name": "Ada", "pinned": False}}
    transport["responses"].append(aiohttp.ClientConnectionError("connection reset"))

    result = await client.toggle_pin(members, "m1")

    assert not result.ok
    assert members["m1"]["pinned"] is False


@pytest.mark.asyncio
async def test_pin_is_kept_on_success(client, transport):
    members = {"m1": {"name": "Ada", "pinned": False}}
    transport["responses"].append((200, {"ok": True}))

    result = await client.toggle_pin(members, "m1")

    assert result.ok
    assert members["m1"]["pinned"] is True
    assert transport["requests"][0][2] == {"pinned": True}


@pytest.mark.asyncio
async def test_archive_blocked_by_pending_hours(client, transport):
    members = {"m1": {"name": "Ada"}}
    transport["responses"].append((200, {"pendingMemberIds": ["m1"]}))

    result = await client.archive_member(members, "m1")

    assert result.error == PENDING_HOURS_MESSAGE
    assert "m1" in members
    assert len(transport["requests"]) == 1


@pytest.mark.asyncio
async def test_archive_server_rejection_is_verbatim(client, transport):
    members = {"m1": {"name": "Ada"}}
    transport["responses"].extend([
        (200, {"pendingMemberIds": []}),
        (400, {"ok": False, "error": "Member manages an active team"}),
    ])

    result = await client.archive_member(members, "m1")

    assert result.error == "Member manages an active team"
    assert members == {"m1": {"name": "Ada"}}


@pytest.mark.asyncio
async def test_busy_entity_is_not_requested_twice(client, transport):
    client.busy.add("m1")

    result = await client.toggle_pin({"m1": {"pinned": False}}, "m1")

    assert not result.ok
    assert transport["requests"] == []
