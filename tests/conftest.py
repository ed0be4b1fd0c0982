"""
Pytest Configuration File

This module provides fixtures and configuration for all tests.
"""

import pytest
import os
import sys
from fastapi.testclient import TestClient
from typing import Dict, List, Optional

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hourglass.app import app
from hourglass.shared.auth import get_current_user
from hourglass.shared.exceptions import FetchError
from hourglass.shared.models import Role
from hourglass.features.reports.models import (
    FilterOptions,
    FilterTag,
    Person,
    ProjectReference,
    Reference,
    TimeEntry
)
from hourglass.features.reports.queries import EntryQuery, ReportRepository
from hourglass.features.reports.routes_reports import get_report_repository
from hourglass.features.reports.routes_saved import get_saved_reports_collection
from hourglass.features.preferences.routes_preferences import get_preferences_collection
from hourglass.features.team.bulk_actions import BulkActionClient
from hourglass.features.team.routes_team import (
    get_bulk_action_client,
    get_timesheets_collection,
    get_users_collection
)


class FakeReportRepository(ReportRepository):
    """In-memory ReportRepository."""

    def __init__(self, entries=None, options=None, teams=None, archived=None):
        self.entries: List[TimeEntry] = list(entries or [])
        self.options: FilterOptions = options or FilterOptions()
        self.teams: Dict[str, List[str]] = dict(teams or {})
        self.archived: Dict[str, List[FilterTag]] = dict(archived or {})
        self.queries: List[EntryQuery] = []
        self.fail = False

    async def list_filter_options(self, include_archived: bool = False) -> FilterOptions:
        options = self.options.model_copy(deep=True)
        if include_archived:
            for kind, tags in self.archived.items():
                getattr(options, kind).extend(tags)
        return options

    async def tags_by_ids(self, kind: str, ids: List[str]) -> List[FilterTag]:
        tags = getattr(self.options, kind) + self.archived.get(kind, [])
        by_id = {tag.id: tag for tag in tags}
        return [by_id[tag_id] for tag_id in ids if tag_id in by_id]

    async def team_member_ids(self, manager_id: str) -> List[str]:
        return list(self.teams.get(manager_id, []))

    async def fetch_entries(self, query: EntryQuery) -> List[TimeEntry]:
        self.queries.append(query)
        if self.fail:
            raise FetchError("Failed to fetch report entries: connection refused")
        return [entry for entry in self.entries if query.matches(entry)]


class FakeDeleteResult:
    def __init__(self, deleted_count: int):
        self.deleted_count = deleted_count


class FakeCursor:
    def __init__(self, docs):
        self.docs = list(docs)

    def sort(self, key, direction=1):
        self.docs.sort(key=lambda doc: doc.get(key) or "", reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return list(self.docs)


class FakeCollection:
    """Minimal Motor collection over a dict of documents."""

    def __init__(self):
        self.docs: Dict[str, dict] = {}

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(key) == value for key, value in query.items())

    async def insert_one(self, doc):
        self.docs[doc["_id"]] = dict(doc)

    async def find_one(self, query):
        for doc in self.docs.values():
            if self._matches(doc, query):
                return dict(doc)
        return None

    def find(self, query):
        return FakeCursor(dict(doc) for doc in self.docs.values() if self._matches(doc, query))

    async def update_one(self, query, update, upsert=False):
        doc = await self.find_one(query)
        if doc is None:
            if not upsert:
                return
            doc = dict(query)
        doc.update(update.get("$set", {}))
        self.docs[doc["_id"]] = doc

    async def delete_one(self, query):
        for key, doc in list(self.docs.items()):
            if self._matches(doc, query):
                del self.docs[key]
                return FakeDeleteResult(1)
        return FakeDeleteResult(0)


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self.payload = payload

    async def json(self, content_type=None):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


class FakeSession:
    """Replays queued (status, payload) responses and records requests."""

    def __init__(self, responses, requests):
        self.responses = responses
        self.requests = requests

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.requests.append((method, url, json))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return FakeResponse(*response)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

@pytest.fixture
def make_entry():
    """Factory for TimeEntry records."""
    def factory(
        entry_id: str,
        date: str = "2024-01-01",
        hours=1,
        client: Optional[tuple] = ("c1", "Acme"),
        project: Optional[tuple] = ("p1", "Website", "c1"),
        task: Optional[tuple] = ("t1", "Design"),
        user: Optional[tuple] = ("u1", "Ada", "Lovelace"),
        notes: str = "",
        project_active: bool = True
    ) -> TimeEntry:
        return TimeEntry(
            id=entry_id,
            date=date,
            hours=hours,
            client=Reference(id=client[0], name=client[1]) if client else None,
            project=ProjectReference(
                id=project[0], name=project[1], client_id=project[2], is_active=project_active
            ) if project else None,
            task=Reference(id=task[0], name=task[1]) if task else None,
            user=Person(id=user[0], first_name=user[1], last_name=user[2]) if user else None,
            notes=notes
        )
    return factory


@pytest.fixture
def filter_options():
    return FilterOptions(
        clients=[
            FilterTag(id="c1", name="Acme"),
            FilterTag(id="c2", name="Globex"),
            FilterTag(id="c3", name="Initech"),
        ],
        projects=[
            FilterTag(id="p1", name="Website", client_id="c1"),
            FilterTag(id="p2", name="Billing", client_id="c2"),
            FilterTag(id="p3", name="Migration", client_id="c3"),
        ],
        tasks=[
            FilterTag(id="t1", name="Design"),
            FilterTag(id="t2", name="Development"),
        ]
    )


@pytest.fixture
def sample_entries(make_entry):
    """Entries for three users across two clients."""
    return [
        make_entry("e1", "2024-01-01", 2, user=("U1", "Ada", "Lovelace"), notes="Kickoff"),
        make_entry("e2", "2024-01-03", 1.5, user=("U2", "Grace", "Hopper"),
                   client=("c2", "Globex"), project=("p2", "Billing", "c2"), task=("t2", "Development")),
        make_entry("e3", "2024-01-02", "1:30", user=("U3", "Alan", "Turing")),
        make_entry("e4", "2024-01-02", 0.25, user=("U1", "Ada", "Lovelace"), project_active=False,
                   client=("c2", "Globex"), project=("p2", "Billing", "c2")),
    ]


@pytest.fixture
def fake_repository(sample_entries, filter_options):
    return FakeReportRepository(
        entries=sample_entries,
        options=filter_options,
        teams={"M1": ["U1", "U2"]},
        archived={"clients": [FilterTag(id="c9", name="Old Client")]}
    )


@pytest.fixture
def mock_auth():
    """Fixture for mocking authentication"""
    return {
        "user_id": "A1",
        "role": Role.ADMIN,
        "groups": ["ADMIN"]
    }


@pytest.fixture
def saved_reports():
    return FakeCollection()


@pytest.fixture
def preferences():
    return FakeCollection()


@pytest.fixture
def transport():
    """Queued mutation API responses and the requests sent."""
    state = {"responses": [], "requests": []}

    def factory():
        return FakeSession(state["responses"], state["requests"])

    state["factory"] = factory
    return state


@pytest.fixture
def bulk_client(transport):
    return BulkActionClient("token", base_url="http://api.test", session_factory=transport["factory"])


@pytest.fixture
def users():
    return FakeCollection()


@pytest.fixture
def timesheets():
    return FakeCollection()


@pytest.fixture
def test_client(fake_repository, mock_auth, saved_reports, preferences, bulk_client, users, timesheets):
    """FastAPI test client with in-memory storage and a fixed caller."""
    app.dependency_overrides[get_report_repository] = lambda: fake_repository
    app.dependency_overrides[get_current_user] = lambda: mock_auth
    app.dependency_overrides[get_saved_reports_collection] = lambda: saved_reports
    app.dependency_overrides[get_preferences_collection] = lambda: preferences
    app.dependency_overrides[get_bulk_action_client] = lambda: bulk_client
    app.dependency_overrides[get_users_collection] = lambda: users
    app.dependency_overrides[get_timesheets_collection] = lambda: timesheets
    yield TestClient(app)
    app.dependency_overrides.clear()
