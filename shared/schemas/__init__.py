"""ZSE Shared Schemas"""

from .record import OutputRecord, RecordType
from .reference import Forum, Organization, Topic, User
from .ticket import Comment, Ticket, TicketField

__all__ = [
    # Reference schemas
    "Organization",
    "User",
    "Forum",
    "Topic",
    # Ticket schemas
    "Ticket",
    "Comment",
    "TicketField",
    # Output
    "OutputRecord",
    "RecordType",
]
