"""
View Preferences Routes Module

This module persists one string value per user and view, such as the
ISO week a timesheet screen was last showing.

Features:
- Read a view preference
- Write a view preference

Data Model:
- preferences: {_id: "<user_id>:<view>", user_id, view, value, updated_at}

Security:
- Authentication required
- Preferences scoped to the caller

Dependencies:
- FastAPI for routing
- Motor for storage
- Pydantic for validation

Author: Hourglass Development Team
"""

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel, Field
from datetime import datetime, timezone
import logging

from hourglass.shared.auth import get_current_user
from hourglass.shared.database import preferences_collection

router = APIRouter(
    prefix="/preferences",
    tags=["preferences"]
)

logger = logging.getLogger(__name__)

VIEW_PATTERN = r"^[a-z0-9][a-z0-9_-]{0,63}$"


class PreferenceUpdate(BaseModel):
    value: str = Field(..., max_length=256)


def get_preferences_collection():
    return preferences_collection


@router.get("/{view}")
async def get_preference(
    view: str = Path(..., pattern=VIEW_PATTERN),
    collection=Depends(get_preferences_collection),
    auth_data: dict = Depends(get_current_user)
):
    """
    Read the caller's stored value for a view.

    Returns:
        dict: {"view", "value"}, value None when nothing is stored
    """
    try:
        doc = await collection.find_one({"_id": f"{auth_data['user_id']}:{view}"})
        return {"view": view, "value": doc.get("value") if doc else None}
    except Exception as e:
        logger.error(f"Error in get_preference: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{view}")
async def put_preference(
    update: PreferenceUpdate,
    view: str = Path(..., pattern=VIEW_PATTERN),
    collection=Depends(get_preferences_collection),
    auth_data: dict = Depends(get_current_user)
):
    """
    Store the caller's value for a view.

    Args:
        update (PreferenceUpdate): New value
        view (str): View key
        auth_data (dict): User authentication data

    Returns:
        dict: {"view", "value"}
    """
    try:
        user_id = auth_data["user_id"]
        await collection.update_one(
            {"_id": f"{user_id}:{view}"},
            {"$set": {
                "user_id": user_id,
                "view": view,
                "value": update.value,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }},
            upsert=True
        )
        logger.info(f"Stored preference {view} for {user_id}")
        return {"view": view, "value": update.value}
    except Exception as e:
        logger.error(f"Error in put_preference: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))
