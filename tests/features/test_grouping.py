"""
Tests for the report grouping engine.
"""

import pytest

from hourglass.shared.models import GroupBy
from hourglass.features.reports.grouping import (
    flatten_groups,
    grand_total,
    group_entries
)


@pytest.mark.parametrize("group_by", list(GroupBy))
def test_group_totals_sum_to_grand_total(make_entry, group_by):
    """Hours are conserved, including entries with missing references"""
    entries = [
        make_entry("e1", "2024-02-01", 1.25),
        make_entry("e2", "2024-02-02", 2, client=None, project=None),
        make_entry("e3", "2024-02-02", 0.5, task=None, user=None),
        make_entry("e4", "2024-02-03", 3.75, client=("c2", "Globex")),
    ]

    groups = group_entries(entries, group_by)

    assert sum(group.total_hours for group in groups) == pytest.approx(grand_total(entries))
    assert grand_total(entries) == pytest.approx(7.5)
    assert len(flatten_groups(groups)) == len(entries)


def test_date_groups_are_newest_first(make_entry):
    entries = [
        make_entry("e1", "2024-01-01"),
        make_entry("e2", "2024-01-03"),
        make_entry("e3", "2024-01-02"),
    ]

    groups = group_entries(entries, GroupBy.DATE)

    assert [group.key for group in groups] == ["2024-01-03", "2024-01-02", "2024-01-01"]
    assert [group.label for group in groups] == ["03/01/2024", "02/01/2024", "01/01/2024"]


def test_client_groups_sort_case_insensitively(make_entry):
    entries = [
        make_entry("e1", client=("z", "Zeta")),
        make_entry("e2", client=("a", "alpha")),
        make_entry("e3", client=("b", "Beta")),
    ]

    groups = group_entries(entries, GroupBy.CLIENT)

    assert [group.label for group in groups] == ["alpha", "Beta", "Zeta"]


def test_missing_references_use_sentinel_buckets(make_entry):
    entries = [
        make_entry("e1", hours=2, client=None, project=None, task=None, user=None),
        make_entry("e2", hours=1),
    ]

    assert group_entries(entries, GroupBy.CLIENT)[1].key == "no-client"
    assert group_entries(entries, GroupBy.PROJECT)[0].label == "No project"
    assert group_entries(entries, GroupBy.TASK)[1].key == "no-task"

    person_groups = group_entries(entries, GroupBy.PERSON)
    assert [group.label for group in person_groups] == ["Ada Lovelace", "Unknown"]
    assert person_groups[1].total_hours == 2


def test_entries_accumulate_under_natural_id(make_entry):
    entries = [
        make_entry("e1", hours=1, project=("p1", "Website", "c1")),
        make_entry("e2", hours=2, project=("p2", "App", "c1")),
        make_entry("e3", hours=3, project=("p1", "Website", "c1")),
    ]

    groups = group_entries(entries, GroupBy.PROJECT)

    website = next(group for group in groups if group.key == "p1")
    assert [entry.id for entry in website.entries] == ["e1", "e3"]
    assert website.total_hours == 4


def test_empty_input_has_no_groups():
    assert group_entries([], GroupBy.DATE) == []
    assert grand_total([]) == 0
