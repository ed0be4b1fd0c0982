"""
Shared Models Module

This module contains shared enums used across the application.

Features:
- Role enums
- Timeframe and grouping selectors
- Timesheet status lifecycle

Author: Hourglass Development Team
"""

from enum import Enum


class Role(str, Enum):
    """
    Caller role used for report visibility.

    Attributes:
        ADMIN: Sees every entry unless narrowed by user[]
        MANAGER: Sees own entries and managed team members
        USER: Sees own entries only
    """
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class Timeframe(str, Enum):
    """
    Report timeframe selector.

    Attributes:
        WEEK: Monday to Sunday of the current week
        MONTH: Current calendar month
        YEAR: Current calendar year
        ALL: 2000-01-01 through today
        CUSTOM: Explicit start and end dates
    """
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"
    CUSTOM = "custom"


class GroupBy(str, Enum):
    """
    Report grouping dimension.

    Attributes:
        DATE: Group by entry date, newest first
        CLIENT: Group by client name
        PROJECT: Group by project name
        TASK: Group by task name
        PERSON: Group by user full name
    """
    DATE = "date"
    CLIENT = "client"
    PROJECT = "project"
    TASK = "task"
    PERSON = "person"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class TimesheetStatus(str, Enum):
    """
    Timesheet approval status.

    Attributes:
        UNSUBMITTED: Being edited by the user
        SUBMITTED: Waiting for approval
        APPROVED: Final
        REJECTED: Sent back to the user
    """
    UNSUBMITTED = "unsubmitted"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_pending(self) -> bool:
        return self in (TimesheetStatus.UNSUBMITTED, TimesheetStatus.SUBMITTED)

    def after_resubmit(self, edited: bool) -> "TimesheetStatus":
        """
        Status of a rejected timesheet once the user acts on it again.

        Args:
            edited: Whether the user changed entries before resubmitting

        Returns:
            TimesheetStatus: UNSUBMITTED when edited, SUBMITTED otherwise

        Raises:
            ValueError: If the timesheet is not rejected
        """
        if self is not TimesheetStatus.REJECTED:
            raise ValueError(f"Cannot resubmit a timesheet in status '{self.value}'")
        return TimesheetStatus.UNSUBMITTED if edited else TimesheetStatus.SUBMITTED
