"""
Filter Chip State Module

This module holds the selection state behind the report's client, project
and task filters.

Features:
- Ordered selection without duplicates
- Free-text candidate search
- Dropdown visibility
- Keyboard handling (Enter, Escape)
- Client-driven project pruning

Data Model:
- FilterDimension: one chip input
- ReportFilters: the three dimensions wired together

Author: Hourglass Development Team
"""

from typing import Callable, Iterable, List, Optional
import logging

from .models import FilterOptions, FilterTag

logger = logging.getLogger(__name__)


class FilterDimension:
    """
    Selection state for one filter dimension.

    Attributes:
        options (List[FilterTag]): Every available chip
        selected (List[FilterTag]): Chips in selection order
        search (str): Free-text search
        dropdown_open (bool): Dropdown visibility
    """

    def __init__(
        self,
        options: Optional[Iterable[FilterTag]] = None,
        on_change: Optional[Callable[[], None]] = None
    ):
        self.options: List[FilterTag] = list(options or [])
        self.selected: List[FilterTag] = []
        self.search = ""
        self.dropdown_open = False
        self.on_change = on_change

    @property
    def selected_ids(self) -> List[str]:
        return [tag.id for tag in self.selected]

    def is_selected(self, tag_id: str) -> bool:
        return tag_id in self.selected_ids

    def available(self) -> List[FilterTag]:
        """Options that may still be offered, before search narrowing."""
        return [tag for tag in self.options if not self.is_selected(tag.id)]

    def candidates(self) -> List[FilterTag]:
        """Unselected options whose name contains the search text."""
        needle = self.search.strip().lower()
        return [
            tag for tag in self.available()
            if not needle or needle in tag.name.lower()
        ]

    def set_options(self, options: Iterable[FilterTag]) -> None:
        self.options = list(options)

    def set_search(self, text: str) -> None:
        self.search = text
        self.dropdown_open = True

    def select(self, tag: FilterTag) -> bool:
        """
        Add a chip to the selection.

        Args:
            tag: Chip to select

        Returns:
            bool: False if it was already selected
        """
        if self.is_selected(tag.id):
            return False
        self.selected.append(tag)
        self.search = ""
        self._changed()
        return True

    def remove(self, tag_id: str) -> None:
        if not self.is_selected(tag_id):
            return
        self.selected = [tag for tag in self.selected if tag.id != tag_id]
        self._changed()

    def retain(self, predicate) -> List[FilterTag]:
        """Keep only selected chips matching predicate; return the dropped ones."""
        dropped = [tag for tag in self.selected if not predicate(tag)]
        self.selected = [tag for tag in self.selected if predicate(tag)]
        return dropped

    def blur(self) -> None:
        """Close the dropdown and clear search text that names no option."""
        needle = self.search.strip().lower()
        if needle and not any(tag.name.lower() == needle for tag in self.available()):
            self.search = ""
        self.dropdown_open = False

    def on_enter(self) -> Optional[FilterTag]:
        candidates = self.candidates()
        if not candidates:
            return None
        first = candidates[0]
        self.select(first)
        return first

    def on_escape(self) -> None:
        self.search = ""
        self.dropdown_open = False

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()


class ProjectDimension(FilterDimension):
    """Project chips, restricted to the selected clients."""

    def __init__(self, options: Optional[Iterable[FilterTag]] = None):
        super().__init__(options)
        self.client_ids: List[str] = []

    def available(self) -> List[FilterTag]:
        tags = super().available()
        if not self.client_ids:
            return tags
        return [tag for tag in tags if tag.client_id in self.client_ids]


class ReportFilters:
    """
    Client, project and task filters of the detailed report.

    Any change to the client selection, including Enter and chip removal,
    restricts project candidates and drops selected projects whose client
    is no longer selected.
    """

    def __init__(self, options: Optional[FilterOptions] = None):
        options = options or FilterOptions()
        self.clients = FilterDimension(options.clients, on_change=self._client_selection_changed)
        self.projects = ProjectDimension(options.projects)
        self.tasks = FilterDimension(options.tasks)

    def set_options(self, options: FilterOptions) -> None:
        self.clients.set_options(options.clients)
        self.projects.set_options(options.projects)
        self.tasks.set_options(options.tasks)

    def select_client(self, tag: FilterTag) -> bool:
        return self.clients.select(tag)

    def remove_client(self, tag_id: str) -> None:
        self.clients.remove(tag_id)

    def select_project(self, tag: FilterTag) -> bool:
        if self.clients.selected and tag.client_id not in self.clients.selected_ids:
            logger.debug(f"Project {tag.id} is not owned by a selected client")
            return False
        return self.projects.select(tag)

    def select_task(self, tag: FilterTag) -> bool:
        return self.tasks.select(tag)

    def _client_selection_changed(self) -> None:
        client_ids = self.clients.selected_ids
        self.projects.client_ids = client_ids
        if not client_ids:
            return
        dropped = self.projects.retain(lambda tag: tag.client_id in client_ids)
        if dropped:
            logger.debug(f"Pruned projects {[tag.id for tag in dropped]} after client change")
