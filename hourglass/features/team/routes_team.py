"""
Team Routes Module

This module exposes the team and task mutations (pin, archive, bulk
archive/delete) and timesheet resubmission. Mutations are forwarded to
the mutation API with the caller's own bearer token.

Features:
- Pin and unpin team members
- Archive members, blocked while they have pending hours
- Bulk task operations with itemised failures
- Rejected timesheet resubmission

Data Model:
- users: {_id, first_name, last_name, pinned}
- timesheets: {_id, user_id, status, entries[]}

Security:
- Authentication required
- Member and task mutations limited to managers and admins
- Users only resubmit their own timesheets

Dependencies:
- FastAPI for routing
- Motor for storage
- aiohttp (through BulkActionClient) for the mutation API

Author: Hourglass Development Team
"""

from dataclasses import asdict
from datetime import datetime, timezone
from typing import List
import logging

from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field

from hourglass.shared.auth import get_current_user
from hourglass.shared.auth.auth import security
from hourglass.shared.database import timesheets_collection, users_collection
from hourglass.shared.models import Role, TimesheetStatus

from .bulk_actions import PENDING_HOURS_MESSAGE, ApiResult, BulkActionClient, BulkOperation, has_pending_hours

router = APIRouter(
    prefix="/team",
    tags=["team"]
)

logger = logging.getLogger(__name__)


class BulkTaskRequest(BaseModel):
    """
    Bulk task operation payload.

    Attributes:
        operation (BulkOperation): archive, unarchive or delete
        ids (List[str]): Task IDs
    """
    operation: BulkOperation
    ids: List[str] = Field(..., min_length=1)


class ResubmitRequest(BaseModel):
    edited: bool = False


def get_bulk_action_client(credentials: HTTPAuthorizationCredentials = Security(security)) -> BulkActionClient:
    return BulkActionClient(credentials.credentials)


def get_users_collection():
    return users_collection


def get_timesheets_collection():
    return timesheets_collection


def require_manager(auth_data: dict) -> None:
    if auth_data["role"] not in (Role.MANAGER, Role.ADMIN):
        raise HTTPException(status_code=403, detail="Only managers and admins can change team members or tasks")


def raise_for_result(result: ApiResult) -> None:
    """Surface a rejected mutation with the server's own message."""
    if result.ok:
        return
    if result.error == PENDING_HOURS_MESSAGE:
        raise HTTPException(status_code=409, detail=result.error)
    status = result.status if result.status >= 400 else 502
    raise HTTPException(status_code=status, detail=result.error)


async def load_member(users, member_id: str) -> dict:
    member = await users.find_one({"_id": member_id})
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    return member


@router.post("/members/{member_id}/pin")
async def toggle_member_pin(
    member_id: str,
    client: BulkActionClient = Depends(get_bulk_action_client),
    users=Depends(get_users_collection),
    auth_data: dict = Depends(get_current_user)
):
    """
    Pin or unpin a team member.

    Returns:
        dict: Member ID and the pinned flag now in effect

    Raises:
        HTTPException: 403 for plain users, 404 for unknown members, the
        mutation API status when it rejects the change
    """
    require_manager(auth_data)
    try:
        member = await load_member(users, member_id)
        members = {member_id: {"pinned": bool(member.get("pinned", False))}}

        result = await client.toggle_pin(members, member_id)
        raise_for_result(result)

        pinned = members[member_id]["pinned"]
        await users.update_one({"_id": member_id}, {"$set": {"pinned": pinned}})
        logger.info(f"{auth_data['user_id']} set pinned={pinned} on member {member_id}")
        return {"member_id": member_id, "pinned": pinned}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in toggle_member_pin: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/members/{member_id}/archive")
async def archive_member(
    member_id: str,
    client: BulkActionClient = Depends(get_bulk_action_client),
    users=Depends(get_users_collection),
    timesheets=Depends(get_timesheets_collection),
    auth_data: dict = Depends(get_current_user)
):
    """
    Archive a team member.

    Raises:
        HTTPException: 409 while the member has unsubmitted or submitted
        hours, the mutation API status when it rejects the archive
    """
    require_manager(auth_data)
    try:
        member = await load_member(users, member_id)

        docs = await timesheets.find({"user_id": member_id}).to_list(length=None)
        if has_pending_hours(docs, user_id=member_id):
            logger.info(f"Archive of {member_id} blocked by local timesheets")
            raise HTTPException(status_code=409, detail=PENDING_HOURS_MESSAGE)

        members = {member_id: member}
        result = await client.archive_member(members, member_id)
        raise_for_result(result)

        await users.update_one({"_id": member_id}, {"$set": {"is_archived": True}})
        return {"member_id": member_id, "archived": True, "message": result.message}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in archive_member: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/tasks/bulk")
async def bulk_task_operation(
    request: BulkTaskRequest,
    client: BulkActionClient = Depends(get_bulk_action_client),
    auth_data: dict = Depends(get_current_user)
):
    """
    Archive, unarchive or delete several tasks.

    Returns:
        dict: Aggregate message ("Archived 3, 2 failed"), succeeded IDs
        and per-item failures with suggestions

    Raises:
        HTTPException: The mutation API status when it rejects the whole
        request
    """
    require_manager(auth_data)
    try:
        ids = list(dict.fromkeys(request.ids))
        items = {task_id: {"id": task_id} for task_id in ids}

        outcome = await client.bulk(items, request.operation, ids)
        if not outcome.succeeded_ids and not outcome.result.errors:
            raise_for_result(outcome.result)

        return {
            "message": outcome.message,
            "succeeded_ids": outcome.succeeded_ids,
            "failed": [asdict(error) for error in outcome.failed]
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in bulk_task_operation: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/timesheets/{timesheet_id}/resubmit")
async def resubmit_timesheet(
    timesheet_id: str,
    request: ResubmitRequest,
    timesheets=Depends(get_timesheets_collection),
    auth_data: dict = Depends(get_current_user)
):
    """
    Act on a rejected timesheet again.

    Edited timesheets go back to unsubmitted for another round of edits;
    unedited ones are submitted straight away.

    Raises:
        HTTPException: 404 for someone else's or unknown timesheets, 409
        unless the timesheet is rejected
    """
    try:
        doc = await timesheets.find_one({"_id": timesheet_id, "user_id": auth_data["user_id"]})
        if not doc:
            raise HTTPException(status_code=404, detail="Timesheet not found")

        try:
            status = TimesheetStatus(doc.get("status", TimesheetStatus.UNSUBMITTED.value))
            new_status = status.after_resubmit(request.edited)
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e))

        await timesheets.update_one(
            {"_id": timesheet_id},
            {"$set": {"status": new_status.value, "updated_at": datetime.now(timezone.utc).isoformat()}}
        )
        logger.info(f"Timesheet {timesheet_id} moved from {status.value} to {new_status.value}")
        return {"id": timesheet_id, "status": new_status.value}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in resubmit_timesheet: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))
