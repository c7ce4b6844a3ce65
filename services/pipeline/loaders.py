"""
Reference Loaders
Fetch organizations, users, forums and topics for the current sync cycle
"""

from typing import Callable, Iterable, TypeVar

import structlog
from pydantic import BaseModel

from services.ingest.client import ZendeskClient
from services.ingest.sinks import RecordSink
from services.normalize.normalizer import RecordNormalizer
from shared.schemas import Forum, Organization, Topic, User

from .context import SyncContext

logger = structlog.get_logger()

EntityT = TypeVar("EntityT", bound=BaseModel)


def load_collection(
    kind: str,
    items: Iterable[dict],
    model: type[EntityT],
    handle: Callable[[EntityT], None],
) -> int:
    """
    Parse and handle every item of a collection.

    A bad item is logged and skipped. A fetch error ends the collection;
    it is logged and the count so far is returned so the cycle can go on.
    """
    logger.info("Processing collection", kind=kind)
    count = 0
    try:
        for raw in items:
            try:
                entity = model.model_validate(raw)
                handle(entity)
            except Exception as e:
                logger.error("Failed to process item", kind=kind, id=raw.get("id"), error=str(e))
                continue
            count += 1
            logger.debug("Processed item", kind=kind, id=entity.id, progress=count)
    except Exception as e:
        logger.error("Failed to fetch collection", kind=kind, error=str(e))
    logger.info("Done processing collection", kind=kind, count=count)
    return count


class ReferenceLoader:
    """Fills the cycle's lookup tables and emits organization/user records"""

    def __init__(self, client: ZendeskClient, normalizer: RecordNormalizer, sink: RecordSink):
        self.client = client
        self.normalizer = normalizer
        self.sink = sink

    def load_organizations(self, ctx: SyncContext) -> int:
        def handle(org: Organization):
            self.sink.emit(self.normalizer.organization_record(org))
            ctx.add_organization(org)

        return load_collection("organizations", self.client.organizations(), Organization, handle)

    def load_users(self, ctx: SyncContext) -> int:
        """Users get organization_name from organizations loaded earlier this cycle"""
        def handle(user: User):
            self.sink.emit(self.normalizer.user_record(user, ctx))
            ctx.add_user(user)

        return load_collection("users", self.client.users(), User, handle)

    def load_forums(self, ctx: SyncContext) -> int:
        """Forum names only; forums are not emitted"""
        def handle(forum: Forum):
            ctx.forums[forum.id] = forum.name

        return load_collection("forums", self.client.forums(), Forum, handle)


class TopicLoader:
    """Emits topic records with forum and author names"""

    def __init__(self, client: ZendeskClient, normalizer: RecordNormalizer, sink: RecordSink):
        self.client = client
        self.normalizer = normalizer
        self.sink = sink

    def load_topics(self, ctx: SyncContext) -> int:
        def handle(topic: Topic):
            self.sink.emit(self.normalizer.topic_record(topic, ctx))

        return load_collection("topics", self.client.topics(), Topic, handle)
