"""
Team and Task Mutation Client Module

This module calls the mutation API used by the team and task screens
(pin, archive, bulk archive/delete) with optimistic local updates.

Features:
- Response parsing into ApiResult
- Per-entity busy flags
- Optimistic pin and archive with revert on failure
- Bulk operations with partial-failure handling
- Pending-hours checks before archiving

Data Model:
- ApiResult: {ok, error?, message?, successCount?, errors?[]}
- ItemError: {id, error, suggestion?}
- BulkOutcome: aggregate message, succeeded and failed items

Security:
- Bearer token forwarded on every request
- Server rejection messages surfaced verbatim

Dependencies:
- aiohttp for async HTTP
- logging for tracking

Author: Hourglass Development Team
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, MutableMapping, Optional, Set
import asyncio
import logging

import aiohttp

from hourglass.shared.config import API_BASE_URL, API_TIMEOUT_SECONDS
from hourglass.shared.models import TimesheetStatus
from hourglass.shared.optimistic import OptimisticUpdate
from hourglass.shared.time_utils import hours_to_decimal

logger = logging.getLogger(__name__)

PENDING_HOURS_MESSAGE = "Cannot archive a team member with pending or unsubmitted hours"
BUSY_MESSAGE = "Request already in progress"


class BulkOperation(str, Enum):
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    DELETE = "delete"

    @property
    def past_tense(self) -> str:
        return {
            BulkOperation.ARCHIVE: "Archived",
            BulkOperation.UNARCHIVE: "Unarchived",
            BulkOperation.DELETE: "Deleted",
        }[self]


@dataclass
class ItemError:
    id: str
    error: str
    suggestion: Optional[str] = None


@dataclass
class ApiResult:
    """
    Parsed mutation API response.

    Attributes:
        ok (bool): Request succeeded
        status (int): HTTP status, 0 when no response arrived
        error (Optional[str]): Server rejection message
        message (Optional[str]): Server success message
        success_count (Optional[int]): Bulk success count
        errors (List[ItemError]): Bulk per-item failures
        data (Dict[str, Any]): Full payload
    """
    ok: bool
    status: int = 0
    error: Optional[str] = None
    message: Optional[str] = None
    success_count: Optional[int] = None
    errors: List[ItemError] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, status: int, payload: Any) -> "ApiResult":
        if not isinstance(payload, dict):
            payload = {}
        ok = payload.get("ok")
        if ok is None:
            ok = 200 <= status < 300 and not payload.get("error")
        errors = [
            ItemError(
                id=str(item.get("id", "")),
                error=item.get("error") or "Unknown error",
                suggestion=item.get("suggestion")
            )
            for item in payload.get("errors") or []
            if isinstance(item, dict)
        ]
        return cls(
            ok=bool(ok),
            status=status,
            error=payload.get("error") or (None if ok else f"Request failed with status {status}"),
            message=payload.get("message"),
            success_count=payload.get("successCount"),
            errors=errors,
            data=payload
        )


@dataclass
class BulkOutcome:
    message: str
    succeeded_ids: List[str]
    failed: List[ItemError]
    result: ApiResult


def aggregate_message(operation: BulkOperation, success_count: int, failed_count: int) -> str:
    """e.g. "Archived 3, 2 failed"."""
    message = f"{operation.past_tense} {success_count}"
    if failed_count:
        message += f", {failed_count} failed"
    return message


def has_pending_hours(
    timesheets: Iterable[dict],
    task_id: Optional[str] = None,
    user_id: Optional[str] = None
) -> bool:
    """
    Whether unsubmitted or submitted timesheets carry nonzero hours.

    Args:
        timesheets: Timesheet documents
        task_id: Only count entries on this task
        user_id: Only count timesheets of this user

    Returns:
        bool: True if the archive or delete action must be blocked
    """
    for timesheet in timesheets:
        try:
            status = TimesheetStatus(timesheet.get("status", TimesheetStatus.UNSUBMITTED.value))
        except ValueError:
            continue
        if not status.is_pending:
            continue
        if user_id and str(timesheet.get("user_id")) != user_id:
            continue
        for entry in timesheet.get("entries") or []:
            if task_id and str(entry.get("task_id")) != task_id:
                continue
            if hours_to_decimal(entry.get("hours")) > 0:
                return True
    return False


class BulkActionClient:
    """
    Mutation API client.

    Args:
        token: Bearer token of the caller
        base_url: API location
        session_factory: Returns an aiohttp-compatible session
        timeout: Request timeout in seconds
    """

    def __init__(self, token: str, base_url: str = API_BASE_URL, session_factory=None, timeout: float = API_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json"
        }
        self.session_factory = session_factory or aiohttp.ClientSession
        self.timeout = timeout
        self.busy: Set[str] = set()

    def is_busy(self, entity_id: str) -> bool:
        return entity_id in self.busy

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> ApiResult:
        url = f"{self.base_url}{path}"
        try:
            async with self.session_factory() as session:
                async with session.request(
                    method,
                    url,
                    json=payload,
                    headers=self.headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    body = await response.json(content_type=None)
                    result = ApiResult.from_response(response.status, body)
                    logger.info(f"{method} {path} -> {response.status}")
                    return result
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error calling {method} {path}: {str(e)}")
            return ApiResult(ok=False, error=str(e))

    async def pending_member_ids(self, member_ids: List[str]) -> Set[str]:
        """
        Members with pending or unsubmitted hours.

        Returns:
            Set[str]: Member IDs that must not be archived
        """
        result = await self._request("POST", "/api/team/pending-approvals", {"memberIds": member_ids})
        if not result.ok:
            logger.warning(f"Pending approvals check failed: {result.error}")
            return set()
        return {str(member_id) for member_id in result.data.get("pendingMemberIds") or []}

    async def toggle_pin(self, members: MutableMapping[str, dict], member_id: str) -> ApiResult:
        """
        Flip a member's pinned flag optimistically.

        Args:
            members: Member ID to member dict, mutated in place
            member_id: Member to pin or unpin

        Returns:
            ApiResult: Server result; the flag is restored on failure
        """
        if self.is_busy(member_id):
            return ApiResult(ok=False, error=BUSY_MESSAGE)

        pinned = not members[member_id].get("pinned", False)
        update = OptimisticUpdate(members, [member_id])
        update.apply(lambda store: store.__setitem__(member_id, {**store[member_id], "pinned": pinned}))

        self.busy.add(member_id)
        try:
            return await update.commit_or_revert(
                self._request("POST", f"/api/team/members/{member_id}/pin", {"pinned": pinned})
            )
        finally:
            self.busy.discard(member_id)

    async def archive_member(self, members: MutableMapping[str, dict], member_id: str) -> ApiResult:
        """
        Archive a member, removing it from the list optimistically.

        Returns:
            ApiResult: Rejected without a request when the member has
            pending hours
        """
        if self.is_busy(member_id):
            return ApiResult(ok=False, error=BUSY_MESSAGE)

        self.busy.add(member_id)
        try:
            if member_id in await self.pending_member_ids([member_id]):
                logger.info(f"Blocked archive of {member_id}: pending hours")
                return ApiResult(ok=False, error=PENDING_HOURS_MESSAGE)

            update = OptimisticUpdate(members, [member_id])
            update.apply(lambda store: store.pop(member_id, None))
            return await update.commit_or_revert(
                self._request("POST", f"/api/team/members/{member_id}/archive")
            )
        finally:
            self.busy.discard(member_id)

    async def bulk(self, items: MutableMapping[str, dict], operation: BulkOperation, ids: List[str]) -> BulkOutcome:
        """
        Run a bulk task operation.

        Args:
            items: Task ID to task dict, mutated in place
            operation: archive, unarchive or delete
            ids: Tasks to operate on

        Returns:
            BulkOutcome: Aggregate message plus itemised failures

        Notes:
            - Items are removed locally before the request
            - Failed items are restored, succeeded items stay removed
            - A wholly rejected request restores every item
        """
        operation = BulkOperation(operation)
        ids = [item_id for item_id in ids if not self.is_busy(item_id)]

        update = OptimisticUpdate(items, ids)
        update.apply(lambda store: [store.pop(item_id, None) for item_id in ids])
        self.busy.update(ids)
        try:
            result = await self._request("POST", "/api/tasks/bulk", {"operation": operation.value, "ids": ids})
        finally:
            self.busy.difference_update(ids)

        if not result.ok and not result.errors:
            update.revert()
            update.commit()
            failed = [ItemError(id=item_id, error=result.error or "Request failed") for item_id in ids]
            return BulkOutcome(message=result.error or "Request failed", succeeded_ids=[], failed=failed, result=result)

        failed_ids = {error.id for error in result.errors}
        update.revert(keys=[item_id for item_id in ids if item_id in failed_ids])
        update.commit()

        succeeded = [item_id for item_id in ids if item_id not in failed_ids]
        success_count = result.success_count if result.success_count is not None else len(succeeded)
        message = aggregate_message(operation, success_count, len(result.errors))
        logger.info(f"Bulk {operation.value}: {message}")
        return BulkOutcome(message=message, succeeded_ids=succeeded, failed=result.errors, result=result)
