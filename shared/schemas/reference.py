"""
Zendesk Sync Engine - Reference Schemas

Organizations, users, forums and topics. These are loaded every cycle and
used to enrich tickets and comments.
"""

from typing import Any, Optional

from .base import ZendeskEntity


class Organization(ZendeskEntity):
    """Zendesk organization"""
    id: int
    name: Optional[str] = None
    created_at: Optional[str] = None
    organization_fields: Optional[dict[str, Any]] = None

    @property
    def status(self) -> Optional[Any]:
        """Organization status, kept in the `org_status` custom field"""
        return (self.organization_fields or {}).get("org_status")


class User(ZendeskEntity):
    """Zendesk user"""
    id: int
    name: Optional[str] = None
    organization_id: Optional[int] = None
    user_fields: Optional[dict[str, Any]] = None

    def attributes(self) -> dict[str, Any]:
        """Attributes with the nested user_fields flattened into the parent"""
        attrs = {}
        for key, value in super().attributes().items():
            if key == "user_fields":
                attrs.update(value or {})
            else:
                attrs[key] = value
        return attrs


class Forum(ZendeskEntity):
    """Zendesk forum (only id and name are kept)"""
    id: int
    name: Optional[str] = None


class Topic(ZendeskEntity):
    """Forum topic"""
    id: int
    title: Optional[str] = None
    forum_id: Optional[int] = None
    submitter_id: Optional[int] = None
