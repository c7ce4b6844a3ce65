"""
Zendesk Sync Engine - Ticket Schemas

Raw ticket, comment and ticket field payloads as returned by the Zendesk API.
Unknown attributes are kept so they can be passed through to output records.
"""

from typing import Any, Optional

from .base import ZendeskEntity

DELETED_STATUS = "deleted"


class Ticket(ZendeskEntity):
    """
    Ticket row from the incremental ticket export.

    Export rows carry denormalized names (organization_name, requester_name,
    assignee_name) and custom fields keyed as `field_<id>`. The legacy export
    names the requester column `req_name`.
    """
    id: int
    status: Optional[str] = None
    subject: Optional[str] = None
    organization_name: Optional[str] = None
    requester_name: Optional[str] = None
    assignee_name: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return (self.status or "").lower() == DELETED_STATUS

    @property
    def requester(self) -> Optional[str]:
        return self.requester_name or (self.model_extra or {}).get("req_name")


class Comment(ZendeskEntity):
    """Ticket comment"""
    id: int
    author_id: Optional[int] = None
    public: bool = True
    body: Optional[str] = None
    created_at: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def geocode(self) -> Optional[list[Any]]:
        """[longitude, latitude] from comment metadata, when both are known"""
        system = (self.metadata or {}).get("system") or {}
        longitude = system.get("longitude")
        latitude = system.get("latitude")
        if longitude is None or latitude is None:
            return None
        return [longitude, latitude]


class TicketField(ZendeskEntity):
    """Ticket field metadata, used to resolve `field_<id>` export keys"""
    id: int
    title: Optional[str] = None

    @property
    def export_key(self) -> str:
        return f"field_{self.id}"

    @property
    def label(self) -> str:
        # "Total Time Spent (sec)" -> "total_time_spent_(sec)"
        return (self.title or "").lower().replace(" ", "_")
