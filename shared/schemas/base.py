"""
Base model for Zendesk API entities
"""

from typing import Any

from pydantic import BaseModel


class ZendeskEntity(BaseModel):
    """
    Entity parsed from an API payload.

    Declared fields are validated; any other attribute the API returns is
    kept as an extra so it can be passed through unchanged.
    """

    class Config:
        extra = "allow"

    def attributes(self) -> dict[str, Any]:
        """Attributes present in the payload, including unknown keys"""
        present = set(self.model_fields_set) | set(self.model_extra or {})
        return {k: v for k, v in self.model_dump().items() if k in present}
