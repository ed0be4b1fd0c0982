"""
Report Queries Module

This module is the data-fetch layer of the detailed report. It reads
reference documents and timesheets from MongoDB and narrows them into
typed report records.

Features:
- Filter option listings (clients, projects, tasks)
- Lookup of explicitly referenced options, archived included
- Manager team resolution
- Timesheet queries with date, visibility and selection pushed down
- Entry flattening with reference resolution

Data Model:
- clients: {_id, name, is_active, is_archived}
- projects: {_id, name, client_id, is_active, is_archived}
- tasks: {_id, name, is_archived}
- users: {_id, first_name, last_name}
- teams: {_id, manager_id, members[], is_active}
- timesheets: {_id, user_id, week_start, week_end, status, entries[]}
- entry: {_key, date, hours, notes, is_billable, project_id, task_id, client_id?}

Notes:
- Drafts (IDs starting with "drafts.") never appear in listings
- Option fetch failures fall back to empty lists
- Entry fetch failures raise FetchError

Dependencies:
- Motor for async MongoDB
- Pydantic for narrowing
- logging for tracking

Author: Hourglass Development Team
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
import logging
import re

from pydantic import ValidationError

from hourglass.shared.exceptions import FetchError
from hourglass.shared.models import Role

from .date_range import DateRange, in_range
from .models import FilterOptions, FilterTag, Person, ProjectReference, Reference, TimeEntry
from .visibility import UserScope

logger = logging.getLogger(__name__)

DRAFT_ID_PATTERN = re.compile(r"^drafts\.")
OPTION_KINDS = ("clients", "projects", "tasks")

# Entry field holding each filter dimension's reference
DIMENSION_FIELDS = {
    "client": "client_id",
    "project": "project_id",
    "task": "task_id",
}


@dataclass
class ReportSelection:
    """
    Chip selection applied to entries.

    Attributes:
        client_ids (List[str]): Selected clients
        project_ids (List[str]): Selected projects
        task_ids (List[str]): Selected tasks
        active_projects (bool): Keep only entries on active projects
    """
    client_ids: List[str] = field(default_factory=list)
    project_ids: List[str] = field(default_factory=list)
    task_ids: List[str] = field(default_factory=list)
    active_projects: bool = False

    def primary(self, role: Role) -> Tuple[Optional[str], List[str]]:
        """
        Dimension pushed into the store query.

        Notes:
            - Plain users fetch their own timesheets and filter in memory
            - Otherwise projects, then tasks, then clients
        """
        if role is Role.USER:
            return None, []
        if self.project_ids:
            return "project", self.project_ids
        if self.task_ids:
            return "task", self.task_ids
        if self.client_ids:
            return "client", self.client_ids
        return None, []

    def matches(self, entry: TimeEntry) -> bool:
        if self.client_ids and not _reference_in(entry.client, self.client_ids):
            return False
        if self.project_ids and not _reference_in(entry.project, self.project_ids):
            return False
        if self.task_ids and not _reference_in(entry.task, self.task_ids):
            return False
        if self.active_projects and not (entry.project and entry.project.is_active):
            return False
        return True


@dataclass
class EntryQuery:
    """
    Predicate for the entries fetch.

    Attributes:
        date_range (Optional[DateRange]): Window, None for unbounded
        scope (UserScope): Visible users
        dimension (Optional[str]): client, project or task
        ids (List[str]): IDs for the dimension
    """
    date_range: Optional[DateRange]
    scope: UserScope = field(default_factory=UserScope)
    dimension: Optional[str] = None
    ids: List[str] = field(default_factory=list)

    def matches(self, entry: TimeEntry) -> bool:
        if not in_range(self.date_range, entry.date):
            return False
        if not self.scope.allows(entry.user.id if entry.user else None):
            return False
        if self.dimension:
            return _reference_in(getattr(entry, self.dimension), self.ids)
        return True


def _reference_in(reference, ids: Iterable[str]) -> bool:
    return reference is not None and reference.id in ids


def _doc_id(doc: dict) -> str:
    return str(doc.get("_id"))


def listing_filter(include_archived: bool) -> dict:
    """Mongo filter for option listings."""
    query = {"_id": {"$not": DRAFT_ID_PATTERN}}
    if not include_archived:
        query["is_archived"] = {"$ne": True}
    return query


def to_filter_tag(doc: dict) -> FilterTag:
    return FilterTag(
        id=_doc_id(doc),
        name=doc.get("name") or "",
        client_id=str(doc["client_id"]) if doc.get("client_id") else None
    )


def build_timesheet_filter(query: EntryQuery, project_ids: Optional[List[str]] = None) -> dict:
    """
    Mongo filter for timesheets that may hold matching entries.

    Args:
        query: Entry predicate
        project_ids: Projects standing in for a client selection

    Returns:
        dict: Timesheet filter
    """
    mongo_filter = dict(query.scope.to_query())
    if query.date_range is not None:
        mongo_filter["week_start"] = {"$lte": query.date_range.end}
        mongo_filter["week_end"] = {"$gte": query.date_range.start}

    if query.dimension == "client":
        mongo_filter["entries.project_id"] = {"$in": list(project_ids or [])}
    elif query.dimension:
        mongo_filter[f"entries.{DIMENSION_FIELDS[query.dimension]}"] = {"$in": list(query.ids)}
    return mongo_filter


@dataclass
class ReferenceLookups:
    """Reference documents keyed by ID."""
    clients: Dict[str, dict] = field(default_factory=dict)
    projects: Dict[str, dict] = field(default_factory=dict)
    tasks: Dict[str, dict] = field(default_factory=dict)
    users: Dict[str, dict] = field(default_factory=dict)


def build_entry(timesheet: dict, raw: dict, lookups: ReferenceLookups) -> TimeEntry:
    """
    Narrow one raw timesheet entry into a TimeEntry.

    Raises:
        ValidationError: If the entry has no usable date
    """
    project_doc = lookups.projects.get(str(raw.get("project_id")))
    task_doc = lookups.tasks.get(str(raw.get("task_id")))
    client_id = raw.get("client_id") or (project_doc or {}).get("client_id")
    client_doc = lookups.clients.get(str(client_id)) if client_id else None
    user_doc = lookups.users.get(str(timesheet.get("user_id")))

    project = None
    if project_doc:
        project = ProjectReference(
            id=_doc_id(project_doc),
            name=project_doc.get("name") or "",
            client_id=str(project_doc["client_id"]) if project_doc.get("client_id") else None,
            is_active=project_doc.get("is_active", True),
            is_archived=project_doc.get("is_archived", False),
        )

    user = None
    if user_doc:
        user = Person(
            id=_doc_id(user_doc),
            first_name=user_doc.get("first_name") or "",
            last_name=user_doc.get("last_name") or "",
        )
    elif timesheet.get("user_id"):
        user = Person(id=str(timesheet["user_id"]))

    return TimeEntry(
        id=str(raw.get("_key") or raw.get("id") or ""),
        date=raw.get("date"),
        hours=raw.get("hours"),
        client=Reference(id=_doc_id(client_doc), name=client_doc.get("name") or "") if client_doc else None,
        project=project,
        task=Reference(id=_doc_id(task_doc), name=task_doc.get("name") or "") if task_doc else None,
        user=user,
        notes=raw.get("notes"),
        is_billable=bool(raw.get("is_billable")),
    )


def flatten_timesheets(timesheets: Iterable[dict], lookups: ReferenceLookups, query: EntryQuery) -> List[TimeEntry]:
    """Entries of the given timesheets that match the query."""
    entries = []
    for timesheet in timesheets:
        for raw in timesheet.get("entries") or []:
            try:
                entry = build_entry(timesheet, raw, lookups)
            except ValidationError as e:
                logger.warning(f"Skipping malformed entry in timesheet {_doc_id(timesheet)}: {str(e)}")
                continue
            if query.matches(entry):
                entries.append(entry)
    return entries


class ReportRepository:
    """Data access used by report runs."""

    async def list_filter_options(self, include_archived: bool = False) -> FilterOptions:
        raise NotImplementedError

    async def tags_by_ids(self, kind: str, ids: List[str]) -> List[FilterTag]:
        raise NotImplementedError

    async def team_member_ids(self, manager_id: str) -> List[str]:
        raise NotImplementedError

    async def fetch_entries(self, query: EntryQuery) -> List[TimeEntry]:
        raise NotImplementedError


class MongoReportRepository(ReportRepository):
    """
    ReportRepository backed by Motor collections.

    Args:
        collections: Mapping with clients, projects, tasks, users, teams
            and timesheets collections
    """

    def __init__(self, collections: Dict[str, object]):
        self.collections = collections

    async def _list(self, kind: str, include_archived: bool) -> List[FilterTag]:
        try:
            cursor = self.collections[kind].find(listing_filter(include_archived)).sort("name", 1)
            docs = await cursor.to_list(length=None)
            return [to_filter_tag(doc) for doc in docs]
        except Exception as e:
            logger.error(f"Error listing {kind}: {str(e)}")
            logger.exception("Full traceback:")
            return []

    async def list_filter_options(self, include_archived: bool = False) -> FilterOptions:
        """
        Load chip candidates for every dimension.

        Args:
            include_archived: Include archived documents

        Returns:
            FilterOptions: Options sorted by name, empty lists on failure
        """
        clients = await self._list("clients", include_archived)
        projects = await self._list("projects", include_archived)
        tasks = await self._list("tasks", include_archived)
        return FilterOptions(clients=clients, projects=projects, tasks=tasks)

    async def tags_by_ids(self, kind: str, ids: List[str]) -> List[FilterTag]:
        """
        Load options named in the query string, archived or not.

        Returns:
            List[FilterTag]: Found options in the order of ids
        """
        if not ids:
            return []
        try:
            docs = await self.collections[kind].find({"_id": {"$in": list(ids)}}).to_list(length=None)
        except Exception as e:
            logger.error(f"Error restoring {kind} {ids}: {str(e)}")
            logger.exception("Full traceback:")
            return []
        by_id = {_doc_id(doc): to_filter_tag(doc) for doc in docs}
        return [by_id[tag_id] for tag_id in ids if tag_id in by_id]

    async def team_member_ids(self, manager_id: str) -> List[str]:
        """
        Members of the active teams a manager runs.

        Returns:
            List[str]: Member IDs, empty on failure
        """
        try:
            teams = await self.collections["teams"].find(
                {"manager_id": manager_id, "is_active": True}
            ).to_list(length=None)
        except Exception as e:
            logger.error(f"Error loading teams for manager {manager_id}: {str(e)}")
            logger.exception("Full traceback:")
            return []

        member_ids = []
        for team in teams:
            for member_id in team.get("members") or []:
                if str(member_id) not in member_ids:
                    member_ids.append(str(member_id))
        return member_ids

    async def _project_ids_for_clients(self, client_ids: List[str]) -> List[str]:
        docs = await self.collections["projects"].find(
            {"client_id": {"$in": list(client_ids)}},
            {"_id": 1}
        ).to_list(length=None)
        return [_doc_id(doc) for doc in docs]

    async def _load_lookups(self, timesheets: List[dict]) -> ReferenceLookups:
        project_ids, task_ids, client_ids, user_ids = set(), set(), set(), set()
        for timesheet in timesheets:
            if timesheet.get("user_id"):
                user_ids.add(str(timesheet["user_id"]))
            for raw in timesheet.get("entries") or []:
                if raw.get("project_id"):
                    project_ids.add(str(raw["project_id"]))
                if raw.get("task_id"):
                    task_ids.add(str(raw["task_id"]))
                if raw.get("client_id"):
                    client_ids.add(str(raw["client_id"]))

        lookups = ReferenceLookups()
        lookups.projects = await self._by_id("projects", project_ids)
        client_ids.update(
            str(doc["client_id"]) for doc in lookups.projects.values() if doc.get("client_id")
        )
        lookups.clients = await self._by_id("clients", client_ids)
        lookups.tasks = await self._by_id("tasks", task_ids)
        lookups.users = await self._by_id("users", user_ids)
        return lookups

    async def _by_id(self, kind: str, ids) -> Dict[str, dict]:
        if not ids:
            return {}
        docs = await self.collections[kind].find({"_id": {"$in": sorted(ids)}}).to_list(length=None)
        return {_doc_id(doc): doc for doc in docs}

    async def fetch_entries(self, query: EntryQuery) -> List[TimeEntry]:
        """
        Load entries matching the query.

        Args:
            query: Date window, visibility scope and primary selection

        Returns:
            List[TimeEntry]: Matching entries

        Raises:
            FetchError: If the store query fails
        """
        try:
            project_ids = None
            if query.dimension == "client":
                project_ids = await self._project_ids_for_clients(query.ids)

            mongo_filter = build_timesheet_filter(query, project_ids)
            logger.info(f"Fetching timesheets with filter: {mongo_filter}")
            timesheets = await self.collections["timesheets"].find(mongo_filter).to_list(length=None)
            lookups = await self._load_lookups(timesheets)
        except Exception as e:
            logger.error(f"Error fetching report entries: {str(e)}")
            logger.exception("Full traceback:")
            raise FetchError(f"Failed to fetch report entries: {str(e)}") from e

        entries = flatten_timesheets(timesheets, lookups, query)
        logger.info(f"Fetched {len(entries)} entries from {len(timesheets)} timesheets")
        return entries
