"""
Report Data Models Module

This module defines the typed records used by the detailed time report.
Documents coming out of the store are narrowed into these models at the
fetch boundary; nothing downstream handles raw dictionaries.

Data Models:
- References (client, project, task, person)
- Time entries
- Filter chips
- Report parameters (query-string contract)
- Grouped report results

Dependencies:
- Pydantic for validation
- typing for type hints

Author: Hourglass Development Team
"""

from datetime import date
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode
import re

from hourglass.shared.models import GroupBy, Timeframe
from hourglass.shared.time_utils import hours_to_decimal

ISO_DATE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})")
CUSTOM_DATE_PATTERN = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")
QUERY_KEYS = (
    "timeframe", "start_date", "end_date", "include_archived", "group_by",
    "active_projects", "clients[]", "projects[]", "tasks[]", "user[]"
)


def normalize_iso_date(value: Any) -> Optional[str]:
    """Extract YYYY-MM-DD from a date, datetime or date-like string."""
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        value = value.isoformat()
    match = ISO_DATE_PATTERN.search(str(value))
    return match.group(1) if match else None


def normalize_custom_date(value: Optional[str]) -> str:
    """
    Zero-pad a custom range bound such as 2024-1-5 to 2024-01-05.

    Raises:
        ValueError: If the value is not a calendar date
    """
    if not value:
        return ""
    match = CUSTOM_DATE_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid date: {value!r}, expected YYYY-MM-DD")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day).isoformat()


class Reference(BaseModel):
    """
    Named reference to a client, project or task.

    Attributes:
        id (str): Document ID
        name (str): Display name
    """
    id: str
    name: str = ""


class ProjectReference(Reference):
    """
    Project reference with its state flags.

    Attributes:
        client_id (Optional[str]): Owning client
        is_active (bool): Active flag
        is_archived (bool): Archived flag
    """
    client_id: Optional[str] = None
    is_active: bool = True
    is_archived: bool = False


class Person(BaseModel):
    """
    User reference.

    Attributes:
        id (str): User ID
        first_name (str): First name
        last_name (str): Last name
    """
    id: str
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class TimeEntry(BaseModel):
    """
    Single reportable time entry.

    Attributes:
        id (str): Entry key
        date (str): ISO date (YYYY-MM-DD)
        hours (float): Decimal hours
        client (Optional[Reference]): Client of the entry's project
        project (Optional[ProjectReference]): Project
        task (Optional[Reference]): Task
        user (Optional[Person]): Person who logged the time
        notes (str): Free text
        is_billable (bool): Billable flag
    """
    id: str
    date: str
    hours: float = 0
    client: Optional[Reference] = None
    project: Optional[ProjectReference] = None
    task: Optional[Reference] = None
    user: Optional[Person] = None
    notes: str = ""
    is_billable: bool = False

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value):
        normalized = normalize_iso_date(value)
        if not normalized:
            raise ValueError(f"Invalid entry date: {value!r}")
        return normalized

    @field_validator("hours", mode="before")
    @classmethod
    def _normalize_hours(cls, value):
        return hours_to_decimal(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _normalize_notes(cls, value):
        return value or ""


class FilterTag(BaseModel):
    """
    Selectable filter chip.

    Attributes:
        id (str): Referenced document ID
        name (str): Display name
        client_id (Optional[str]): Owning client, projects only
    """
    id: str
    name: str
    client_id: Optional[str] = None


class FilterOptions(BaseModel):
    """Candidate chips for each filter dimension."""
    clients: List[FilterTag] = []
    projects: List[FilterTag] = []
    tasks: List[FilterTag] = []


class ReportParams(BaseModel):
    """
    Detailed report parameters.

    Mirrors the query-string contract read on load and written when a
    report is run.

    Attributes:
        timeframe (Timeframe): Timeframe selector
        start_date (str): Custom range start
        end_date (str): Custom range end
        include_archived (bool): Include archived filter options
        group_by (GroupBy): Grouping dimension
        active_projects (bool): Keep only entries on active projects
        clients (List[str]): Selected client IDs
        projects (List[str]): Selected project IDs
        tasks (List[str]): Selected task IDs
        users (List[str]): Explicit user IDs (admin drill-through)
        from_url (bool): Whether any contract key was present
    """
    timeframe: Timeframe = Timeframe.YEAR
    start_date: str = ""
    end_date: str = ""
    include_archived: bool = False
    group_by: GroupBy = GroupBy.DATE
    active_projects: bool = False
    clients: List[str] = []
    projects: List[str] = []
    tasks: List[str] = []
    users: List[str] = []
    from_url: bool = False

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _normalize_bounds(cls, value):
        return normalize_custom_date(value)

    @classmethod
    def from_query(cls, query) -> "ReportParams":
        """
        Build parameters from a query mapping.

        Args:
            query: Starlette QueryParams or a dict of lists

        Returns:
            ReportParams: Parsed parameters

        Raises:
            pydantic.ValidationError: For unknown timeframe or group_by, or
                a start_date/end_date that is not a calendar date

        Notes:
            - A start/end pair without timeframe means custom
            - Empty repeated values are dropped
            - Any non-empty contract key, group_by and the flags included,
              marks the parameters as coming from the URL
        """
        def get_list(key: str) -> List[str]:
            if hasattr(query, "getlist"):
                values = query.getlist(key)
            else:
                raw = query.get(key, [])
                values = raw if isinstance(raw, list) else [raw]
            return [value for value in values if value]

        def get_one(key: str) -> Optional[str]:
            values = get_list(key)
            return values[0] if values else None

        data: Dict[str, Any] = {}
        timeframe = get_one("timeframe")
        start_date = get_one("start_date")
        end_date = get_one("end_date")

        if timeframe:
            data["timeframe"] = timeframe
        elif start_date and end_date:
            data["timeframe"] = Timeframe.CUSTOM
        if start_date:
            data["start_date"] = start_date
        if end_date:
            data["end_date"] = end_date

        group_by = get_one("group_by")
        if group_by:
            data["group_by"] = group_by
        data["include_archived"] = get_one("include_archived") == "true"
        data["active_projects"] = get_one("active_projects") == "true"
        data["clients"] = get_list("clients[]")
        data["projects"] = get_list("projects[]")
        data["tasks"] = get_list("tasks[]")
        data["users"] = get_list("user[]")
        data["from_url"] = any(get_list(key) for key in QUERY_KEYS)
        return cls(**data)

    def to_query_string(self, start_date: str = None, end_date: str = None) -> str:
        """
        Encode parameters back into the query-string contract.

        Args:
            start_date: Resolved range start to write
            end_date: Resolved range end to write

        Returns:
            str: URL-encoded query string
        """
        pairs = [("timeframe", self.timeframe.value)]
        start = start_date if start_date is not None else self.start_date
        end = end_date if end_date is not None else self.end_date
        if start:
            pairs.append(("start_date", start))
        if end:
            pairs.append(("end_date", end))
        pairs.append(("active_projects", "true" if self.active_projects else "false"))
        if self.include_archived:
            pairs.append(("include_archived", "true"))
        if self.group_by is not GroupBy.DATE:
            pairs.append(("group_by", self.group_by.value))
        pairs.extend(("clients[]", client_id) for client_id in self.clients)
        pairs.extend(("projects[]", project_id) for project_id in self.projects)
        pairs.extend(("tasks[]", task_id) for task_id in self.tasks)
        pairs.extend(("user[]", user_id) for user_id in self.users)
        return urlencode(pairs)


class ReportGroup(BaseModel):
    """
    One bucket of the grouped report.

    Attributes:
        key (str): Natural ID or sentinel key
        label (str): Display label
        sort_key (str): Ordering key
        entries (List[TimeEntry]): Entries in accumulation order
        total_hours (float): Running sum of entry hours
    """
    key: str
    label: str
    sort_key: str
    entries: List[TimeEntry] = []
    total_hours: float = 0


class ReportResult(BaseModel):
    """
    Grouped report output.

    Attributes:
        start_date (Optional[str]): Resolved range start
        end_date (Optional[str]): Resolved range end
        group_by (GroupBy): Grouping dimension
        groups (List[ReportGroup]): Sorted groups
        total_hours (float): Grand total over all entries
        entry_count (int): Number of entries
        query_string (str): Query string that reproduces this report
    """
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    group_by: GroupBy = GroupBy.DATE
    groups: List[ReportGroup] = []
    total_hours: float = 0
    entry_count: int = 0
    query_string: str = ""
    selected_clients: List[FilterTag] = Field(default_factory=list)
    selected_projects: List[FilterTag] = Field(default_factory=list)
    selected_tasks: List[FilterTag] = Field(default_factory=list)
