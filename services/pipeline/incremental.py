"""
Incremental Ticket Fetcher
Pages through the Zendesk ticket export for a look-back window, emitting
ticket records and, optionally, their comments.

The export API is used instead of the regular ticket list so that archived
tickets (closed more than 120 days ago) are included.
"""

import time
from typing import Optional

import structlog

from services.ingest.client import StartTimeTooRecent, ZendeskClient
from services.ingest.sinks import RecordSink
from services.normalize.normalizer import RecordNormalizer
from shared.schemas import Comment, Ticket, TicketField

from .context import SyncContext

logger = structlog.get_logger()

SECONDS_PER_DAY = 86400

# Look-back window meaning "everything, once"
FULL_FETCH = -1


def export_start_time(days: float, now: Optional[float] = None) -> int:
    """Unix start time for a look-back window in (possibly fractional) days"""
    if days == FULL_FETCH:
        return 0
    now = time.time() if now is None else now
    return int(now - SECONDS_PER_DAY * days)


class IncrementalTicketFetcher:
    """Fetch, normalize and emit tickets updated within the look-back window."""

    def __init__(
        self,
        client: ZendeskClient,
        normalizer: RecordNormalizer,
        sink: RecordSink,
        comments: bool = False,
        append_comments: bool = False,
    ):
        """
        Args:
            client: Zendesk API client
            normalizer: Record normalizer
            sink: Destination for records
            comments: Also fetch and emit ticket comments
            append_comments: Attach all comments to the ticket as one text field
        """
        self.client = client
        self.normalizer = normalizer
        self.sink = sink
        self.comments = comments
        self.append_comments = append_comments

    def load_field_names(self, ctx: SyncContext) -> int:
        """Fill the field name table; export rows use `field_<id>` keys"""
        for raw in self.client.ticket_fields():
            ticket_field = TicketField.model_validate(raw)
            ctx.field_names[ticket_field.export_key] = ticket_field.label
        logger.info("Loaded ticket fields", count=len(ctx.field_names))
        return len(ctx.field_names)

    def run(self, ctx: SyncContext, days: float) -> int:
        """
        Page through the export and process every live ticket.

        Stops on an empty page, end of stream, a repeated cursor or a
        "too recent start_time" answer. Any other error is logged and ends
        the stage.

        Returns:
            Number of tickets emitted
        """
        logger.info("Processing tickets ...")
        emitted = 0
        try:
            self.load_field_names(ctx)
            start_time = export_start_time(days)
            logger.info("Requesting ticket export", start_time=start_time, days=days)
            page = self.client.export_tickets(start_time)

            while page.tickets:
                logger.info(
                    "Processing export page",
                    next_page=page.next_page,
                    count=len(page.tickets),
                )
                emitted += self._process_page(page.tickets, ctx)

                if page.end_of_stream or not page.next_page:
                    break

                following = self.client.next_export_page(page)
                # The API sometimes hands back a next_page with an unchanged
                # start_time; requesting it again would loop forever.
                if following.next_page == page.next_page:
                    logger.info("Export cursor did not advance, stopping", next_page=page.next_page)
                    break
                page = following

        except StartTimeTooRecent as e:
            # The generated cursor is within 5 minutes of now: no more pages
            logger.info("Reached end of ticket export", reason=e.message)
        except Exception as e:
            logger.error("Failed to fetch tickets", error=str(e))

        logger.info("Done processing tickets.", count=emitted)
        return emitted

    def _process_page(self, rows: list[dict], ctx: SyncContext) -> int:
        emitted = 0
        for position, raw in enumerate(rows, start=1):
            try:
                ticket = Ticket.model_validate(raw)
            except Exception as e:
                logger.error("Failed to parse ticket", id=raw.get("id"), error=str(e))
                continue

            if ticket.is_deleted:
                # Deleted tickets still show up in exports
                logger.info("Skipping previously deleted ticket", ticket_id=ticket.id)
                continue

            logger.debug("Ticket", id=ticket.id, progress=f"{position}/{len(rows)}")
            if self.process_ticket(ticket, ctx):
                emitted += 1
        return emitted

    def process_ticket(self, ticket: Ticket, ctx: SyncContext) -> bool:
        """
        Emit the ticket's comments (when enabled) and then the ticket itself.

        The ticket is normalized first; a ticket that fails emits nothing.
        """
        try:
            fields = self.normalizer.ticket_fields(ticket, ctx)
            comments_text = None
            if self.comments:
                comments_text = self.process_comments(ticket, ctx)
            record = self.normalizer.ticket_record(
                ticket,
                ctx,
                append_comments=self.append_comments,
                comments_text=comments_text,
                fields=fields,
            )
            self.sink.emit(record)
        except Exception as e:
            logger.error("Failed to process ticket", ticket_id=ticket.id, error=str(e))
            return False
        logger.debug("Done processing ticket", id=ticket.id)
        return True

    def process_comments(self, ticket: Ticket, ctx: SyncContext) -> Optional[str]:
        """
        Emit comment records for a ticket.

        Returns:
            The comments text block when appending is enabled, else None
        """
        comments: list[Comment] = []
        try:
            for raw in self.client.ticket_comments(ticket.id):
                try:
                    comment = Comment.model_validate(raw)
                    self.sink.emit(self.normalizer.comment_record(comment, ticket, ctx))
                except Exception as e:
                    logger.error(
                        "Failed to process comment",
                        ticket_id=ticket.id,
                        comment_id=raw.get("id"),
                        error=str(e),
                    )
                    continue
                comments.append(comment)
        except Exception as e:
            logger.error("Failed to fetch comments", ticket_id=ticket.id, error=str(e))

        logger.debug("Processed comments", ticket_id=ticket.id, count=len(comments))
        if not self.append_comments:
            return None
        return self.normalizer.comments_text(comments, ctx)
