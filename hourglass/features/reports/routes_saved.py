"""
Saved Reports Routes Module

This module stores named report definitions so a user can re-open a
detailed report with the same filters later.

Features:
- Save a report definition
- List own saved reports
- Delete a saved report

Data Model:
- saved_reports: {_id, user_id, name, query_string, created_at}

Security:
- Authentication required
- Users only see and delete their own definitions

Dependencies:
- FastAPI for routing
- Motor for storage
- Pydantic for validation

Author: Hourglass Development Team
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from urllib.parse import parse_qs
import logging
import uuid

from hourglass.shared.auth import get_current_user
from hourglass.shared.database import saved_reports_collection

from .models import ReportParams

router = APIRouter(
    prefix="/reports/saved",
    tags=["saved-reports"]
)

logger = logging.getLogger(__name__)


class SavedReportCreate(BaseModel):
    """
    Saved report payload.

    Attributes:
        name (str): Display name
        query_string (str): Report query string
    """
    name: str = Field(..., min_length=1, max_length=120)
    query_string: str = ""

    @field_validator("query_string")
    @classmethod
    def _valid_report_query(cls, value):
        value = value.lstrip("?")
        try:
            ReportParams.from_query(parse_qs(value))
        except ValueError as e:
            raise ValueError(f"Invalid report query: {str(e)}")
        return value


def get_saved_reports_collection():
    return saved_reports_collection


def _serialize(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "name": doc.get("name", ""),
        "query_string": doc.get("query_string", ""),
        "created_at": doc.get("created_at")
    }


@router.get("")
async def list_saved_reports(
    collection=Depends(get_saved_reports_collection),
    auth_data: dict = Depends(get_current_user)
):
    """
    List the caller's saved reports, newest first.

    Returns:
        list: Saved report definitions
    """
    try:
        user_id = auth_data["user_id"]
        docs = await collection.find({"user_id": user_id}).sort("created_at", -1).to_list(length=None)
        return [_serialize(doc) for doc in docs]
    except Exception as e:
        logger.error(f"Error in list_saved_reports: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", status_code=201)
async def create_saved_report(
    report: SavedReportCreate,
    collection=Depends(get_saved_reports_collection),
    auth_data: dict = Depends(get_current_user)
):
    """
    Save a report definition.

    Args:
        report (SavedReportCreate): Name and query string
        auth_data (dict): User authentication data

    Returns:
        dict: Stored definition
    """
    try:
        doc = {
            "_id": str(uuid.uuid4()),
            "user_id": auth_data["user_id"],
            "name": report.name.strip(),
            "query_string": report.query_string,
            "created_at": datetime.now(timezone.utc).isoformat()
        }
        await collection.insert_one(doc)
        logger.info(f"Saved report '{doc['name']}' for {doc['user_id']}")
        return _serialize(doc)
    except Exception as e:
        logger.error(f"Error in create_saved_report: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{report_id}")
async def delete_saved_report(
    report_id: str,
    collection=Depends(get_saved_reports_collection),
    auth_data: dict = Depends(get_current_user)
):
    """
    Delete one of the caller's saved reports.

    Raises:
        HTTPException: 404 if the caller has no such report
    """
    try:
        result = await collection.delete_one({"_id": report_id, "user_id": auth_data["user_id"]})
        if result.deleted_count == 0:
            raise HTTPException(status_code=404, detail="Saved report not found")
        return {"status": "success", "id": report_id}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in delete_saved_report: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))
