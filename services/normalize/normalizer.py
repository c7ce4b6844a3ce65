"""
Record Normalizer
Converts raw Zendesk entities into flat OutputRecords for the sink
"""

import re
from typing import Any, Callable, Optional

import structlog

from services.pipeline.context import SyncContext
from shared.schemas import (
    Comment,
    Organization,
    OutputRecord,
    RecordType,
    Ticket,
    Topic,
    User,
)

from .durations import (
    DURATION_FIELDS,
    LABELED_DURATIONS,
    DurationScale,
    format_timestamp,
    parse_int,
)

logger = structlog.get_logger()

# (matches(key, ctx), apply(key, value, fields, ctx))
FieldRule = tuple[
    Callable[[str, SyncContext], bool],
    Callable[[str, Any, dict, SyncContext], None],
]


class RecordNormalizer:
    """
    Normalizes Zendesk entities to OutputRecord.

    Ticket and comment attributes go through a prioritized rule table,
    first matching rule wins:
    1. Duration metrics -> integer value + labeled range
    2. `field_<id>` custom fields -> renamed to the field's label
    3. `*_minutes` / `*_id` -> integer
    4. `*_at` -> ISO-8601 UTC timestamp
    5. Ticket `organization_name` -> name + resolved `org_id`
    Anything else passes through unchanged.
    """

    CUSTOM_FIELD_PATTERN = re.compile(r"^field_\d+$")
    COMMENT_SEPARATOR = "-" * 51

    def __init__(self):
        common: list[FieldRule] = [
            (self._is_duration, self._apply_duration),
            (self._is_custom_field, self._apply_custom_field),
            (self._is_integer_field, self._apply_integer),
            (self._is_timestamp_field, self._apply_timestamp),
        ]
        self.ticket_rules: list[FieldRule] = common + [
            (self._is_organization_name, self._apply_organization_name),
        ]
        self.comment_rules: list[FieldRule] = list(common)

    def normalize_fields(
        self,
        attributes: dict[str, Any],
        ctx: SyncContext,
        rules: Optional[list[FieldRule]] = None,
    ) -> dict[str, Any]:
        """Apply the rule table to every attribute"""
        rules = self.ticket_rules if rules is None else rules
        fields: dict[str, Any] = {}
        for key, value in attributes.items():
            for matches, apply in rules:
                if matches(key, ctx):
                    apply(key, value, fields, ctx)
                    break
            else:
                fields[key] = value
        return fields

    # Rule 1: durations

    def _duration_scale(self, key: str, ctx: SyncContext) -> Optional[DurationScale]:
        if key in DURATION_FIELDS:
            return DURATION_FIELDS[key]
        if self.CUSTOM_FIELD_PATTERN.match(key):
            return LABELED_DURATIONS.get(ctx.field_names.get(key, ""))
        return None

    def _is_duration(self, key: str, ctx: SyncContext) -> bool:
        return self._duration_scale(key, ctx) is not None

    def _apply_duration(self, key: str, value: Any, fields: dict, ctx: SyncContext):
        scale = self._duration_scale(key, ctx)
        name = key if key in DURATION_FIELDS else ctx.field_names[key]
        fields[scale.range_field] = scale.label(value)
        fields[name] = parse_int(value) or 0

    # Rule 2: custom fields

    def _is_custom_field(self, key: str, ctx: SyncContext) -> bool:
        return bool(self.CUSTOM_FIELD_PATTERN.match(key))

    def _apply_custom_field(self, key: str, value: Any, fields: dict, ctx: SyncContext):
        fields[ctx.field_names.get(key, key)] = value

    # Rule 3: integers

    def _is_integer_field(self, key: str, ctx: SyncContext) -> bool:
        return key.endswith("_minutes") or key.endswith("_id")

    def _apply_integer(self, key: str, value: Any, fields: dict, ctx: SyncContext):
        fields[key] = parse_int(value)

    # Rule 4: timestamps

    def _is_timestamp_field(self, key: str, ctx: SyncContext) -> bool:
        return key.endswith("_at")

    def _apply_timestamp(self, key: str, value: Any, fields: dict, ctx: SyncContext):
        fields[key] = format_timestamp(value)

    # Rule 5: organization name

    def _is_organization_name(self, key: str, ctx: SyncContext) -> bool:
        return key == "organization_name"

    def _apply_organization_name(self, key: str, value: Any, fields: dict, ctx: SyncContext):
        # Exports carry the organization name where an id is expected
        fields["org_id"] = ctx.organization_id_for(value)
        fields["organization_name"] = value

    # Entity records

    def ticket_fields(self, ticket: Ticket, ctx: SyncContext) -> dict[str, Any]:
        return self.normalize_fields(ticket.attributes(), ctx, self.ticket_rules)

    def ticket_record(
        self,
        ticket: Ticket,
        ctx: SyncContext,
        append_comments: bool = False,
        comments_text: Optional[str] = None,
        fields: Optional[dict[str, Any]] = None,
    ) -> OutputRecord:
        """Ticket record; pass `fields` when the attributes are already normalized"""
        fields = dict(self.ticket_fields(ticket, ctx) if fields is None else fields)
        if append_comments:
            fields["comments"] = comments_text
        return OutputRecord(type=RecordType.TICKET, id=ticket.id, fields=fields)

    def comment_record(self, comment: Comment, ticket: Ticket, ctx: SyncContext) -> OutputRecord:
        """Comment record enriched with ticket, organization and author fields"""
        fields = self.normalize_fields(comment.attributes(), ctx, self.comment_rules)

        geocode = comment.geocode
        if geocode is not None:
            fields["geocode"] = geocode

        fields["ticket_subject"] = ticket.subject
        fields["ticket_id"] = ticket.id
        fields["ticket_organization_name"] = ticket.organization_name
        fields["ticket_requester"] = ticket.requester
        fields["ticket_assignee"] = ticket.assignee_name

        org = ctx.organization_named(ticket.organization_name)
        if org is not None:
            fields["ticket_org_status"] = org.status
            fields["ticket_org_created_at"] = org.created_at

        author = ctx.users.get(comment.author_id) if comment.author_id is not None else None
        if author is not None:
            fields["author_name"] = author.name
            author_org = ctx.organization_name(author.organization_id)
            if author_org is not None:
                fields["author_organization_name"] = author_org

        return OutputRecord(type=RecordType.COMMENT, id=comment.id, fields=fields)

    def comments_text(self, comments: list[Comment], ctx: SyncContext) -> Optional[str]:
        """
        Single text block of all comments on a ticket, most recent first.

        Returns None when there are no comments.
        """
        if not comments:
            return None
        # Reverse first so ties keep most-recent-first API order
        ordered = sorted(reversed(comments), key=_created_sort_key, reverse=True)
        return "".join(self._format_comment(c, ctx) for c in ordered)

    def _format_comment(self, comment: Comment, ctx: SyncContext) -> str:
        public = "true" if comment.public else "false"
        author = ctx.user_name(comment.author_id) or ""
        return (
            f"{self.COMMENT_SEPARATOR}\n"
            f"Public: {public}\n"
            f"Author: {author}\n"
            f"Created At: {comment.created_at or ''}\n\n"
            f"{comment.body or ''}\n\n"
        )

    def organization_record(self, org: Organization) -> OutputRecord:
        return OutputRecord(type=RecordType.ORGANIZATION, id=org.id, fields=org.attributes())

    def user_record(self, user: User, ctx: SyncContext) -> OutputRecord:
        fields = user.attributes()
        org_name = ctx.organization_name(user.organization_id)
        if org_name is not None:
            fields["organization_name"] = org_name
        return OutputRecord(type=RecordType.USER, id=user.id, fields=fields)

    def topic_record(self, topic: Topic, ctx: SyncContext) -> OutputRecord:
        fields = topic.attributes()
        fields["forum_name"] = ctx.forums.get(topic.forum_id) if topic.forum_id is not None else None
        fields["author_name"] = ctx.user_name(topic.submitter_id)
        return OutputRecord(type=RecordType.TOPIC, id=topic.id, fields=fields)


def _created_sort_key(comment: Comment) -> str:
    try:
        return format_timestamp(comment.created_at) or ""
    except ValueError:
        return ""

