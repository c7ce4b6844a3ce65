"""
Pytest configuration and shared fixtures.

Provides an in-memory Zendesk client, a list-backed sink and sample
organizations, users and tickets used across the test suite.
"""

from typing import Any, Iterator, Optional

import pytest

from services.ingest.client import AuthenticationError, ExportPage
from services.normalize.normalizer import RecordNormalizer
from services.pipeline.config import SyncConfig
from services.pipeline.context import SyncContext
from shared.schemas import Organization, OutputRecord, User


class ListSink:
    """Sink that keeps every record in memory"""

    def __init__(self):
        self.records: list[OutputRecord] = []

    def emit(self, record: OutputRecord) -> None:
        self.records.append(record)

    def of_type(self, record_type: str) -> list[OutputRecord]:
        return [r for r in self.records if r.type == record_type]


class FakeZendeskClient:
    """
    In-memory stand-in for ZendeskClient.

    `export_pages` is consumed in order: the first entry answers
    export_tickets, each later one answers next_export_page. An entry may be
    an exception instance, which is raised instead. `failures` maps a method
    name to an exception raised when that collection is iterated.
    """

    def __init__(
        self,
        organizations: Optional[list[dict]] = None,
        users: Optional[list[dict]] = None,
        forums: Optional[list[dict]] = None,
        topics: Optional[list[dict]] = None,
        ticket_fields: Optional[list[dict]] = None,
        export_pages: Optional[list[Any]] = None,
        comments: Optional[dict[int, list[dict]]] = None,
        failures: Optional[dict[str, Exception]] = None,
        current_user: Optional[dict] = None,
    ):
        self._organizations = organizations or []
        self._users = users or []
        self._forums = forums or []
        self._topics = topics or []
        self._ticket_fields = ticket_fields or []
        self._export_pages = list(export_pages or [])
        self._comments = comments or {}
        self.failures = failures or {}
        self._current_user = current_user if current_user is not None else {"id": 1, "name": "Admin"}
        self.export_requests: list[Any] = []
        self.comment_requests: list[int] = []

    def _iterate(self, name: str, items: list[dict]) -> Iterator[dict]:
        for item in items:
            yield item
        if name in self.failures:
            raise self.failures[name]

    def verify_credentials(self) -> dict:
        if self._current_user.get("id") is None:
            raise AuthenticationError(401, "Cannot initialize a valid Zendesk client.")
        return self._current_user

    def organizations(self):
        return self._iterate("organizations", self._organizations)

    def users(self):
        return self._iterate("users", self._users)

    def forums(self):
        return self._iterate("forums", self._forums)

    def topics(self):
        return self._iterate("topics", self._topics)

    def ticket_fields(self):
        return self._iterate("ticket_fields", self._ticket_fields)

    def ticket_comments(self, ticket_id: int):
        self.comment_requests.append(ticket_id)
        return self._iterate("ticket_comments", self._comments.get(ticket_id, []))

    def _next_page(self) -> ExportPage:
        if not self._export_pages:
            return ExportPage()
        page = self._export_pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page

    def export_tickets(self, start_time: int) -> ExportPage:
        self.export_requests.append(start_time)
        return self._next_page()

    def next_export_page(self, page: ExportPage) -> ExportPage:
        self.export_requests.append(page.next_page)
        return self._next_page()


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def normalizer():
    return RecordNormalizer()


@pytest.fixture
def acme():
    return Organization.model_validate({
        "id": 1,
        "name": "Acme",
        "created_at": "2020-01-01T00:00:00Z",
        "organization_fields": {"org_status": "customer"},
    })


@pytest.fixture
def ctx(acme):
    """Context with one organization, two users and field names loaded"""
    context = SyncContext()
    context.add_organization(acme)
    context.add_user(User.model_validate({"id": 10, "name": "Alice Agent", "organization_id": 1}))
    context.add_user(User.model_validate({"id": 11, "name": "Bob Buyer"}))
    context.field_names.update({
        "field_100": "product",
        "field_200": "total_time_spent_(sec)",
    })
    return context


@pytest.fixture
def raw_ticket():
    return {
        "id": 500,
        "status": "Open",
        "subject": "Printer on fire",
        "organization_name": "Acme",
        "requester_name": "Bob Buyer",
        "assignee_name": "Alice Agent",
        "created_at": "2024-03-01T10:00:00Z",
        "field_100": "Widget",
    }


def make_config(**overrides) -> SyncConfig:
    values = {
        "domain": "acme.zendesk.com",
        "user": "admin@acme.test",
        "api_token": "secret-token",
    }
    values.update(overrides)
    return SyncConfig(**values)


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def fake_client():
    """Factory for FakeZendeskClient instances"""
    return FakeZendeskClient
