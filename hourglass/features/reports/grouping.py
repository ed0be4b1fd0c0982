"""
Report Grouping Engine

This module buckets time entries by a group-by dimension and computes
per-group and grand totals.

Features:
- Single-pass accumulation keyed by natural ID
- Sentinel buckets for missing references
- Running-sum group totals
- Newest-first date ordering, A to Z ordering otherwise

Data Model:
- ReportGroup: key, label, sort_key, entries, total_hours

Author: Hourglass Development Team
"""

from datetime import date
from typing import Dict, Iterable, List, Tuple

from hourglass.shared.models import GroupBy

from .models import ReportGroup, TimeEntry

# (key, label) used when an entry has no reference for the dimension
MISSING_REFERENCE = {
    GroupBy.CLIENT: ("no-client", "No client"),
    GroupBy.PROJECT: ("no-project", "No project"),
    GroupBy.TASK: ("no-task", "No task"),
    GroupBy.PERSON: ("unknown", "Unknown"),
}


def format_display_date(iso_date: str) -> str:
    """YYYY-MM-DD to dd/MM/yyyy."""
    return date.fromisoformat(iso_date[:10]).strftime("%d/%m/%Y")


def group_identity(entry: TimeEntry, group_by: GroupBy) -> Tuple[str, str, str]:
    """
    Key, label and sort key of the bucket an entry belongs to.

    Args:
        entry: Time entry
        group_by: Grouping dimension

    Returns:
        Tuple[str, str, str]: (key, label, sort_key)
    """
    if group_by is GroupBy.DATE:
        return entry.date, format_display_date(entry.date), entry.date

    if group_by is GroupBy.PERSON:
        reference = entry.user
        label = reference.full_name if reference else ""
    else:
        reference = getattr(entry, group_by.value)
        label = reference.name if reference else ""

    if reference is None:
        key, label = MISSING_REFERENCE[group_by]
        return key, label, label.lower()

    label = label or MISSING_REFERENCE[group_by][1]
    return reference.id, label, label.lower()


def group_entries(entries: Iterable[TimeEntry], group_by: GroupBy) -> List[ReportGroup]:
    """
    Group entries and order the groups.

    Args:
        entries: Entries already restricted to the report window
        group_by: Grouping dimension

    Returns:
        List[ReportGroup]: Date groups newest first, other groups by
        case-insensitive label ascending
    """
    group_by = GroupBy(group_by)
    groups: Dict[str, ReportGroup] = {}

    for entry in entries:
        key, label, sort_key = group_identity(entry, group_by)
        group = groups.get(key)
        if group is None:
            group = ReportGroup(key=key, label=label, sort_key=sort_key, entries=[], total_hours=0)
            groups[key] = group
        group.entries.append(entry)
        group.total_hours += entry.hours

    return sorted(
        groups.values(),
        key=lambda group: group.sort_key,
        reverse=group_by is GroupBy.DATE
    )


def grand_total(entries: Iterable[TimeEntry]) -> float:
    """Sum of hours over the ungrouped entries."""
    return sum(entry.hours for entry in entries)


def flatten_groups(groups: Iterable[ReportGroup]) -> List[TimeEntry]:
    """Entries in sorted group order."""
    return [entry for group in groups for entry in group.entries]
