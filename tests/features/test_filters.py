"""
Tests for filter chip state.
"""

from hourglass.features.reports.filters import FilterDimension, ReportFilters
from hourglass.features.reports.models import FilterTag


def test_selected_items_are_not_candidates(filter_options):
    dimension = FilterDimension(filter_options.clients)

    assert dimension.select(filter_options.clients[0])
    assert not dimension.select(filter_options.clients[0])
    assert dimension.selected_ids == ["c1"]
    assert "c1" not in [tag.id for tag in dimension.candidates()]


def test_selection_order_is_preserved(filter_options):
    dimension = FilterDimension(filter_options.clients)
    dimension.select(filter_options.clients[2])
    dimension.select(filter_options.clients[0])

    assert dimension.selected_ids == ["c3", "c1"]


def test_selecting_clients_prunes_foreign_projects(filter_options):
    filters = ReportFilters(filter_options)
    acme, globex, initech = filter_options.clients
    website, billing, migration = filter_options.projects

    filters.select_project(website)
    filters.select_project(migration)

    filters.select_client(acme)
    filters.select_client(globex)

    assert filters.projects.selected_ids == ["p1"]
    assert [tag.id for tag in filters.projects.candidates()] == ["p2"]


def test_removing_last_client_lifts_project_restriction(filter_options):
    filters = ReportFilters(filter_options)
    filters.select_client(filter_options.clients[0])
    assert [tag.id for tag in filters.projects.candidates()] == ["p1"]

    filters.remove_client("c1")

    assert [tag.id for tag in filters.projects.candidates()] == ["p1", "p2", "p3"]


def test_project_of_unselected_client_is_rejected(filter_options):
    filters = ReportFilters(filter_options)
    filters.select_client(filter_options.clients[0])

    assert not filters.select_project(filter_options.projects[1])
    assert filters.projects.selected == []


def test_blur_clears_text_that_names_no_option(filter_options):
    dimension = FilterDimension(filter_options.tasks)

    dimension.set_search("desi")
    dimension.blur()
    assert dimension.search == ""
    assert not dimension.dropdown_open

    dimension.set_search("DESIGN")
    dimension.blur()
    assert dimension.search == "DESIGN"


def test_enter_selects_first_candidate(filter_options):
    dimension = FilterDimension(filter_options.tasks)
    dimension.set_search("dev")

    selected = dimension.on_enter()

    assert selected == FilterTag(id="t2", name="Development")
    assert dimension.selected_ids == ["t2"]
    assert dimension.search == ""


def test_enter_without_candidates_selects_nothing(filter_options):
    dimension = FilterDimension(filter_options.tasks)
    dimension.set_search("nothing like this")

    assert dimension.on_enter() is None
    assert dimension.selected == []


def test_escape_clears_search_and_closes(filter_options):
    dimension = FilterDimension(filter_options.tasks)
    dimension.set_search("des")
    assert dimension.dropdown_open

    dimension.on_escape()

    assert dimension.search == ""
    assert not dimension.dropdown_open


def test_enter_on_client_prunes_projects(filter_options):
    filters = ReportFilters(filter_options)
    filters.select_project(filter_options.projects[2])
    filters.clients.set_search("Acme")

    picked = filters.clients.on_enter()

    assert picked.id == "c1"
    assert filters.projects.selected_ids == []
    assert [tag.id for tag in filters.projects.candidates()] == ["p1"]


def test_removing_client_chip_directly_lifts_restriction(filter_options):
    filters = ReportFilters(filter_options)
    filters.clients.select(filter_options.clients[0])

    filters.clients.remove("c1")

    assert filters.projects.client_ids == []
    assert len(filters.projects.candidates()) == 3
