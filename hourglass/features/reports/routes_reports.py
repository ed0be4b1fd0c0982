"""
Detailed Report Routes Module

This module exposes the detailed time report over HTTP.

Features:
- Filter option listing
- Report runs from the query-string contract
- CSV, Excel, PDF and print exports

Data Model:
- Query string: timeframe, start_date, end_date, include_archived,
  group_by, active_projects, clients[], projects[], tasks[], user[]
- Grouped report result
- Export artifacts

Security:
- Authentication required
- Role-scoped visibility
- user[] honoured for admins only

Dependencies:
- FastAPI for routing
- Motor for storage
- Pydantic for validation
- logging for tracking

Author: Hourglass Development Team
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import ValidationError
import logging

from hourglass.shared.auth import get_current_user
from hourglass.shared.database import (
    clients_collection,
    projects_collection,
    tasks_collection,
    users_collection,
    teams_collection,
    timesheets_collection
)
from hourglass.shared.exceptions import EmptyExportError, FetchError

from .exports import render_export
from .models import ReportParams
from .queries import MongoReportRepository, ReportRepository
from .session import ReportSession

router = APIRouter(
    prefix="/reports",
    tags=["reports"]
)

logger = logging.getLogger(__name__)


def get_report_repository() -> ReportRepository:
    """Repository over the application's collections."""
    return MongoReportRepository({
        "clients": clients_collection,
        "projects": projects_collection,
        "tasks": tasks_collection,
        "users": users_collection,
        "teams": teams_collection,
        "timesheets": timesheets_collection,
    })


def parse_report_params(request: Request) -> ReportParams:
    """
    Read report parameters from the query string.

    Raises:
        HTTPException: 422 for unknown timeframe or group_by values, or
            custom bounds that are not dates
    """
    try:
        return ReportParams.from_query(request.query_params)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


@router.get("/filter-options")
async def get_filter_options(
    request: Request,
    repository: ReportRepository = Depends(get_report_repository),
    auth_data: dict = Depends(get_current_user)
):
    """
    List chips for the client, project and task filters.

    Args:
        request: Carries include_archived and any clients[]/projects[]/tasks[]
        repository: Report data access
        auth_data (dict): User authentication data

    Returns:
        dict: {"clients", "projects", "tasks"}

    Notes:
        - Archived options named in the query string are included
    """
    try:
        params = parse_report_params(request)
        options = await repository.list_filter_options(params.include_archived)

        for kind, ids in (("clients", params.clients), ("projects", params.projects), ("tasks", params.tasks)):
            listed = getattr(options, kind)
            known = {tag.id for tag in listed}
            missing = [tag_id for tag_id in ids if tag_id not in known]
            if missing:
                listed.extend(await repository.tags_by_ids(kind, missing))

        return options.model_dump()

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in get_filter_options: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/detailed")
async def get_detailed_report(
    request: Request,
    repository: ReportRepository = Depends(get_report_repository),
    auth_data: dict = Depends(get_current_user)
):
    """
    Run the detailed time report.

    Args:
        request: Carries the query-string contract
        repository: Report data access
        auth_data (dict): User authentication data

    Returns:
        dict: Options, restored selection and the grouped report

    Raises:
        HTTPException: 422 for bad parameters, 502 when entries cannot be
        fetched, 500 otherwise

    Notes:
        - Query-string parameters trigger the one automatic run
        - Without parameters the default timeframe is run
    """
    try:
        params = parse_report_params(request)
        logger.info(f"Running detailed report for {auth_data.get('user_id')}: {params.to_query_string()}")

        session = ReportSession(repository, params, auth_data)
        await session.load()
        result = await session.auto_run()
        if result is None:
            result = await session.run()

        return {
            "state": session.state.value,
            "options": session.options.model_dump(),
            "report": result.model_dump()
        }

    except HTTPException:
        raise
    except FetchError as e:
        logger.error(f"Report fetch failed: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error in get_detailed_report: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/detailed/export")
async def export_detailed_report(
    request: Request,
    format: str = Query("csv", pattern="^(csv|xlsx|pdf|print)$"),
    repository: ReportRepository = Depends(get_report_repository),
    auth_data: dict = Depends(get_current_user)
):
    """
    Export the detailed time report.

    Args:
        request: Carries the query-string contract
        format (str): csv, xlsx, pdf or print
        repository: Report data access
        auth_data (dict): User authentication data

    Returns:
        Response: Attachment, or inline HTML for print

    Raises:
        HTTPException: 400 "No data to export" for an empty report
    """
    try:
        params = parse_report_params(request)
        session = ReportSession(repository, params, auth_data)
        result = await session.run()

        content, media_type, filename = render_export(session.document(result), format)
        disposition = "inline" if format == "print" else "attachment"
        logger.info(f"Exported {result.entry_count} entries as {format}")

        return Response(
            content=content,
            media_type=media_type,
            headers={"Content-Disposition": f'{disposition}; filename="{filename}"'}
        )

    except HTTPException:
        raise
    except EmptyExportError as e:
        logger.info(f"Export rejected: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)
    except FetchError as e:
        logger.error(f"Report fetch failed: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error in export_detailed_report: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))
