"""Tests for the reference and topic loaders."""

from structlog.testing import capture_logs

from services.ingest.client import ZendeskAPIError
from services.pipeline.context import SyncContext
from services.pipeline.loaders import ReferenceLoader, TopicLoader

ORGANIZATIONS = [
    {"id": 1, "name": "Acme", "organization_fields": {"org_status": "customer"}},
    {"id": 2, "name": "Globex"},
]

USERS = [
    {"id": 10, "name": "Alice", "organization_id": 1, "user_fields": {"tier": "gold"}},
    {"id": 11, "name": "Bob", "organization_id": 3},
    {"id": 12, "name": "Carol"},
]


class TestReferenceLoader:
    """Tests for organizations, users and forums."""

    def test_organizations_emitted_and_indexed(self, fake_client, sink, normalizer) -> None:
        ctx = SyncContext()
        loader = ReferenceLoader(fake_client(organizations=ORGANIZATIONS), normalizer, sink)
        assert loader.load_organizations(ctx) == 2
        assert [r.id for r in sink.of_type("organization")] == [1, 2]
        assert set(ctx.organizations) == {1, 2}
        assert ctx.organization_id_for("Globex") == 2

    def test_users_get_organization_name(self, fake_client, sink, normalizer) -> None:
        ctx = SyncContext()
        loader = ReferenceLoader(
            fake_client(organizations=ORGANIZATIONS, users=USERS), normalizer, sink
        )
        loader.load_organizations(ctx)
        loader.load_users(ctx)

        users = {r.id: r.fields for r in sink.of_type("user")}
        assert users[10]["organization_name"] == "Acme"
        assert users[10]["tier"] == "gold"
        assert "organization_name" not in users[11]
        assert "organization_name" not in users[12]
        assert set(ctx.users) == {10, 11, 12}

    def test_users_without_organizations_loaded(self, fake_client, sink, normalizer) -> None:
        ctx = SyncContext()
        ReferenceLoader(fake_client(users=USERS), normalizer, sink).load_users(ctx)
        assert all("organization_name" not in r.fields for r in sink.records)

    def test_fetch_failure_keeps_what_was_loaded(self, fake_client, sink, normalizer) -> None:
        client = fake_client(
            organizations=ORGANIZATIONS,
            failures={"organizations": ZendeskAPIError(500, "boom")},
        )
        ctx = SyncContext()
        assert ReferenceLoader(client, normalizer, sink).load_organizations(ctx) == 2
        assert set(ctx.organizations) == {1, 2}

    def test_fetch_failure_logged_with_kind(self, fake_client, sink, normalizer) -> None:
        client = fake_client(failures={"users": ZendeskAPIError(500, "boom")})
        with capture_logs() as logs:
            ReferenceLoader(client, normalizer, sink).load_users(SyncContext())
        failures = [e for e in logs if e["event"] == "Failed to fetch collection"]
        assert len(failures) == 1
        assert failures[0]["kind"] == "users"
        assert failures[0]["log_level"] == "error"
        assert {"event": "Done processing collection", "kind": "users", "count": 0, "log_level": "info"} in logs

    def test_malformed_item_skipped(self, fake_client, sink, normalizer) -> None:
        client = fake_client(users=[{"name": "No Id"}, {"id": 5, "name": "Eve"}])
        ctx = SyncContext()
        assert ReferenceLoader(client, normalizer, sink).load_users(ctx) == 1
        assert list(ctx.users) == [5]

    def test_forums_fill_table_without_records(self, fake_client, sink, normalizer) -> None:
        client = fake_client(forums=[{"id": 7, "name": "Announcements"}])
        ctx = SyncContext()
        ReferenceLoader(client, normalizer, sink).load_forums(ctx)
        assert ctx.forums == {7: "Announcements"}
        assert sink.records == []


class TestTopicLoader:
    """Tests for topics."""

    def test_topics_enriched(self, fake_client, sink, normalizer) -> None:
        ctx = SyncContext()
        ctx.forums[7] = "Announcements"
        client = fake_client(topics=[{"id": 3, "title": "Hello", "forum_id": 7, "submitter_id": 99}])
        assert TopicLoader(client, normalizer, sink).load_topics(ctx) == 1

        record = sink.of_type("topic")[0]
        assert record.id == 3
        assert record.fields["forum_name"] == "Announcements"
        assert record.fields["author_name"] is None
