"""
Sync Engine
Runs the sync stages in order, once or continuously with a sleep between runs
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import structlog

from services.ingest.client import ZendeskClient
from services.ingest.sinks import CountingSink, RecordSink
from services.normalize.normalizer import RecordNormalizer

from .config import SyncConfig
from .context import SyncContext
from .incremental import IncrementalTicketFetcher
from .loaders import ReferenceLoader, TopicLoader

logger = structlog.get_logger()


class CycleMode(str, Enum):
    """How often the stage sequence runs"""
    ONE_SHOT = "one_shot"
    CONTINUOUS = "continuous"


@dataclass
class CycleStats:
    """Outcome of one sync cycle"""
    started_at: float
    duration_seconds: float = 0.0
    counts: dict[str, int] = field(default_factory=dict)


class SyncEngine:
    """
    Orchestrates sync cycles.

    Each cycle builds a fresh SyncContext and runs:
    organizations -> users -> forums -> tickets (+ comments) -> topics

    Stop requests are honored between cycles and during the sleep; a stage
    that is already running finishes first.
    """

    def __init__(
        self,
        config: SyncConfig,
        client: ZendeskClient,
        sink: RecordSink,
        normalizer: Optional[RecordNormalizer] = None,
    ):
        self.config = config
        self.client = client
        self.sink = sink
        self.normalizer = normalizer or RecordNormalizer()

    @property
    def mode(self) -> CycleMode:
        return CycleMode.ONE_SHOT if self.config.one_shot else CycleMode.CONTINUOUS

    def run_cycle(self) -> CycleStats:
        """Run every enabled stage once against empty lookup tables"""
        stats = CycleStats(started_at=time.time())
        logger.info("Starting Zendesk sync run", mode=self.mode.value)

        ctx = SyncContext()
        sink = CountingSink(self.sink)
        references = ReferenceLoader(self.client, self.normalizer, sink)

        if self.config.organizations:
            references.load_organizations(ctx)
        if self.config.users:
            references.load_users(ctx)
        if self.config.topics:
            references.load_forums(ctx)

        if self.config.tickets:
            fetcher = IncrementalTicketFetcher(
                self.client,
                self.normalizer,
                sink,
                comments=self.config.comments,
                append_comments=self.config.append_comments_to_tickets,
            )
            fetcher.run(ctx, self.config.tickets_last_updated_n_days_ago)

        if self.config.topics:
            TopicLoader(self.client, self.normalizer, sink).load_topics(ctx)

        stats.duration_seconds = time.time() - stats.started_at
        stats.counts = dict(sink.counts)
        logger.info(
            "Completed sync run",
            duration_minutes=round(stats.duration_seconds / 60, 2),
            records=stats.counts,
        )
        return stats

    def run(
        self,
        stop_event: Optional[threading.Event] = None,
        max_cycles: Optional[int] = None,
    ) -> list[CycleStats]:
        """
        Verify credentials, then run cycles until done or stopped.

        Raises:
            AuthenticationError: credentials rejected; no cycle is run
        """
        stop_event = stop_event or threading.Event()
        self.client.verify_credentials()

        history: list[CycleStats] = []
        while not stop_event.is_set():
            history.append(self.run_cycle())

            if self.mode is CycleMode.ONE_SHOT:
                break
            if max_cycles is not None and len(history) >= max_cycles:
                break

            logger.info("Sleeping before next run ...", minutes=self.config.sleep_between_runs)
            if stop_event.wait(self.config.sleep_seconds):
                break

        logger.info("Sync engine stopped", cycles=len(history))
        return history
