"""
Sync configuration
"""

import os
from typing import Any, Optional

from pydantic import BaseModel, Field, SecretStr, model_validator

from .incremental import FULL_FETCH

TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in TRUE_VALUES


class SyncConfig(BaseModel):
    """
    Options recognized by the sync engine.

    Exactly one of password / api_token must be given. A look-back window
    of -1 fetches every ticket once and then stops.
    """
    domain: str = Field(..., min_length=1, description="e.g. company.zendesk.com")
    user: str = Field(..., min_length=1)
    password: Optional[SecretStr] = None
    api_token: Optional[SecretStr] = None

    organizations: bool = True
    users: bool = True
    tickets: bool = True
    topics: bool = True

    tickets_last_updated_n_days_ago: float = Field(
        1, description="0.5 = past 12 hours, 7 = past week, -1 = all tickets, run once"
    )
    comments: bool = False
    append_comments_to_tickets: bool = False
    sleep_between_runs: float = Field(5, ge=0, description="Minutes between runs")

    @model_validator(mode="after")
    def _check_options(self) -> "SyncConfig":
        if self.password is None and self.api_token is None:
            raise ValueError("Must specify either a password or api_token")
        if self.password is not None and self.api_token is not None:
            raise ValueError("Cannot specify both password and api_token")
        if self.append_comments_to_tickets and not self.comments:
            raise ValueError("append_comments_to_tickets requires comments")
        days = self.tickets_last_updated_n_days_ago
        if days < 0 and days != FULL_FETCH:
            raise ValueError("tickets_last_updated_n_days_ago must be >= 0, or -1 for all tickets")
        return self

    @property
    def one_shot(self) -> bool:
        return self.tickets_last_updated_n_days_ago == FULL_FETCH

    @property
    def sleep_seconds(self) -> float:
        return self.sleep_between_runs * 60

    def client_kwargs(self) -> dict[str, Any]:
        """Arguments for ZendeskClient"""
        return {
            "domain": self.domain,
            "user": self.user,
            "password": self.password.get_secret_value() if self.password else None,
            "api_token": self.api_token.get_secret_value() if self.api_token else None,
        }

    @classmethod
    def from_env(cls, **overrides: Any) -> "SyncConfig":
        """
        Build a config from ZENDESK_* environment variables.

        Keyword overrides that are not None take precedence.
        """
        values: dict[str, Any] = {
            "domain": os.getenv("ZENDESK_DOMAIN", ""),
            "user": os.getenv("ZENDESK_USER", ""),
            "password": os.getenv("ZENDESK_PASSWORD") or None,
            "api_token": os.getenv("ZENDESK_API_TOKEN") or None,
            "organizations": _env_bool("ZENDESK_ORGANIZATIONS"),
            "users": _env_bool("ZENDESK_USERS"),
            "tickets": _env_bool("ZENDESK_TICKETS"),
            "topics": _env_bool("ZENDESK_TOPICS"),
            "tickets_last_updated_n_days_ago": os.getenv("ZENDESK_TICKETS_LAST_UPDATED_N_DAYS_AGO") or None,
            "comments": _env_bool("ZENDESK_COMMENTS"),
            "append_comments_to_tickets": _env_bool("ZENDESK_APPEND_COMMENTS_TO_TICKETS"),
            "sleep_between_runs": os.getenv("ZENDESK_SLEEP_BETWEEN_RUNS") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**{k: v for k, v in values.items() if v is not None})
