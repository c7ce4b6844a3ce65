"""
ZSE Ingest Service
Talks to the Zendesk API and delivers normalized records to sinks

Components:
- main.py: FastAPI application for on-demand sync runs
- client.py: Zendesk REST client (httpx)
- sinks.py: Record sink protocol and JSON lines sink
- storage.py: ArangoDB sink and job status tracking
"""

from .client import (
    AuthenticationError,
    ExportPage,
    StartTimeTooRecent,
    ZendeskAPIError,
    ZendeskClient,
)
from .sinks import CountingSink, JsonLinesSink, RecordSink

__all__ = [
    "ZendeskClient",
    "ExportPage",
    "ZendeskAPIError",
    "AuthenticationError",
    "StartTimeTooRecent",
    "RecordSink",
    "JsonLinesSink",
    "CountingSink",
]
