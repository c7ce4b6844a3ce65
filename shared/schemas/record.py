"""
Zendesk Sync Engine - Output Record Schema

The normalized unit handed to a sink. Sinks route on `type` and key on `id`.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RecordType(str, Enum):
    """Kind of entity an output record was built from"""
    ORGANIZATION = "organization"
    USER = "user"
    TICKET = "ticket"
    COMMENT = "comment"
    TOPIC = "topic"


class OutputRecord(BaseModel):
    """Normalized record ready for emission"""
    type: RecordType
    id: int
    fields: dict[str, Any] = Field(default_factory=dict)

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "type": "ticket",
                "id": 12345,
                "fields": {
                    "status": "open",
                    "organization_name": "Acme",
                    "org_id": 1,
                    "first_reply_time_in_minutes": 42,
                    "first_reply_time_range": "0 - 1 hours",
                },
            }
        }

    def to_event(self) -> dict[str, Any]:
        """Flat mapping with `type` and `id` set last so they always win"""
        return {**self.fields, "type": self.type, "id": self.id}
