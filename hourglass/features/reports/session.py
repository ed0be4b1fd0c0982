"""
Report Session Module

This module drives one detailed-report session: it restores the
selection from the query string, loads filter options and team
membership, and runs the report.

Features:
- Concurrent load of options, team membership and URL selections
- One-shot auto-run state machine
- Request fencing so a slow stale run never replaces a newer result
- Role-scoped entry fetch with selection precedence

Data Model:
- AutoRunState: IDLE -> PARAMS_LOADED -> AUTO_RUN_TRIGGERED -> DONE
- ReportSession: params, filters, scope, latest result

Author: Hourglass Development Team
"""

from datetime import date
from enum import Enum
from typing import List, Optional
import asyncio
import logging

from hourglass.shared.models import Role

from .date_range import DateRange, resolve_date_range
from .exports import ReportDocument
from .filters import ReportFilters
from .grouping import grand_total, group_entries
from .models import FilterOptions, FilterTag, ReportParams, ReportResult
from .queries import EntryQuery, ReportRepository, ReportSelection
from .visibility import UserScope, resolve_user_scope

logger = logging.getLogger(__name__)


class AutoRunState(str, Enum):
    """
    Auto-run lifecycle of a session.

    Attributes:
        IDLE: Nothing loaded yet
        PARAMS_LOADED: Options and URL selections restored
        AUTO_RUN_TRIGGERED: Automatic run in flight
        DONE: Automatic run finished or not needed
    """
    IDLE = "idle"
    PARAMS_LOADED = "params_loaded"
    AUTO_RUN_TRIGGERED = "auto_run_triggered"
    DONE = "done"


class ReportSession:
    """
    State of one report session.

    Run fencing covers runs issued on the same session object. The HTTP
    endpoints build one session per request, so there each response only
    ever answers its own request.

    Args:
        repository: Data access
        params: Parsed query-string parameters
        user: Authenticated identity {"user_id", "role"}
        today: Reference day for timeframe resolution
    """

    def __init__(self, repository: ReportRepository, params: ReportParams, user: dict, today: Optional[date] = None):
        self.repository = repository
        self.params = params
        self.user_id = user["user_id"]
        self.role = Role(user["role"])
        self.today = today
        self.state = AutoRunState.IDLE
        self.filters = ReportFilters()
        self.options = FilterOptions()
        self.scope: Optional[UserScope] = None
        self.result: Optional[ReportResult] = None
        self._run_sequence = 0
        self._applied_sequence = 0

    @property
    def date_range(self) -> Optional[DateRange]:
        return resolve_date_range(
            self.params.timeframe,
            self.params.start_date,
            self.params.end_date,
            today=self.today
        )

    async def load(self) -> None:
        """
        Load options, team scope and URL selections concurrently.

        Notes:
            - Moves IDLE to PARAMS_LOADED; later calls are no-ops
        """
        if self.state is not AutoRunState.IDLE:
            return

        options, scope, clients, projects, tasks = await asyncio.gather(
            self.repository.list_filter_options(self.params.include_archived),
            resolve_user_scope(
                self.user_id,
                self.role,
                self.params.users,
                self.repository.team_member_ids
            ),
            self.repository.tags_by_ids("clients", self.params.clients),
            self.repository.tags_by_ids("projects", self.params.projects),
            self.repository.tags_by_ids("tasks", self.params.tasks),
        )

        self.options = options
        self.scope = scope
        self.filters.set_options(options)
        self._restore_selection(clients, projects, tasks)
        self.state = AutoRunState.PARAMS_LOADED
        logger.info(
            f"Report session loaded for {self.user_id} ({self.role.value}): "
            f"{len(clients)} clients, {len(projects)} projects, {len(tasks)} tasks restored"
        )

    def _restore_selection(self, clients: List[FilterTag], projects: List[FilterTag], tasks: List[FilterTag]) -> None:
        for tag in clients:
            self.filters.select_client(tag)
        for tag in projects:
            self.filters.select_project(tag)
        for tag in tasks:
            self.filters.select_task(tag)

    async def auto_run(self) -> Optional[ReportResult]:
        """
        Run once automatically when the query string carried parameters.

        Returns:
            Optional[ReportResult]: Result of the automatic run, None when
            no run was due
        """
        if self.state is AutoRunState.IDLE:
            await self.load()
        if self.state is not AutoRunState.PARAMS_LOADED:
            return None
        if not self.params.from_url:
            self.state = AutoRunState.DONE
            return None

        self.state = AutoRunState.AUTO_RUN_TRIGGERED
        try:
            return await self.run()
        finally:
            self.state = AutoRunState.DONE

    def selection(self) -> ReportSelection:
        return ReportSelection(
            client_ids=self.filters.clients.selected_ids,
            project_ids=self.filters.projects.selected_ids,
            task_ids=self.filters.tasks.selected_ids,
            active_projects=self.params.active_projects,
        )

    async def run(self) -> ReportResult:
        """
        Fetch, filter and group entries for the current selection.

        Returns:
            ReportResult: Latest applied result

        Raises:
            FetchError: If the entries query fails

        Notes:
            - A response is applied only if no newer run was applied first
        """
        if self.state is AutoRunState.IDLE:
            await self.load()

        self._run_sequence += 1
        sequence = self._run_sequence

        date_range = self.date_range
        selection = self.selection()
        dimension, ids = selection.primary(self.role)
        query = EntryQuery(date_range=date_range, scope=self.scope, dimension=dimension, ids=ids)

        entries = await self.repository.fetch_entries(query)
        entries = [entry for entry in entries if query.matches(entry) and selection.matches(entry)]

        if sequence < self._applied_sequence:
            logger.warning(f"Discarding stale report run {sequence}, run {self._applied_sequence} already applied")
            return self.result

        groups = group_entries(entries, self.params.group_by)
        start = date_range.start if date_range else None
        end = date_range.end if date_range else None
        self.result = ReportResult(
            start_date=start,
            end_date=end,
            group_by=self.params.group_by,
            groups=groups,
            total_hours=grand_total(entries),
            entry_count=len(entries),
            query_string=self.params.to_query_string(start_date=start or "", end_date=end or ""),
            selected_clients=list(self.filters.clients.selected),
            selected_projects=list(self.filters.projects.selected),
            selected_tasks=list(self.filters.tasks.selected),
        )
        self._applied_sequence = sequence
        return self.result

    def document(self, result: Optional[ReportResult] = None) -> ReportDocument:
        """Export view of a result."""
        result = result or self.result
        return ReportDocument(
            groups=result.groups,
            total_hours=result.total_hours,
            group_by=result.group_by,
            period=DateRange(result.start_date, result.end_date) if result.start_date and result.end_date else None,
            clients=result.selected_clients,
            projects=result.selected_projects,
            tasks=result.selected_tasks,
        )
