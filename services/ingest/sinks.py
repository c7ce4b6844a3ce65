"""
Record Sinks
Downstream destinations for normalized records
"""

import json
import sys
from typing import IO, Optional, Protocol

import structlog

from shared.schemas import OutputRecord

logger = structlog.get_logger()


class RecordSink(Protocol):
    """Accepts records one at a time; routes on record type and keys on id"""

    def emit(self, record: OutputRecord) -> None:
        ...


class JsonLinesSink:
    """Writes each record as one JSON object per line"""

    def __init__(self, path: Optional[str] = None, stream: Optional[IO[str]] = None):
        """
        Args:
            path: File to append to; "-" or None writes to stream/stdout
            stream: Already-open text stream (used when path is not given)
        """
        self.path = path
        self._owns_stream = bool(path) and path != "-"
        if self._owns_stream:
            self._stream = open(path, "a", encoding="utf-8")
        else:
            self._stream = stream or sys.stdout
        self.count = 0

    def emit(self, record: OutputRecord) -> None:
        self._stream.write(json.dumps(record.to_event(), default=str) + "\n")
        self._stream.flush()
        self.count += 1

    def close(self):
        if self._owns_stream:
            self._stream.close()
        logger.info("Closed JSON lines sink", path=self.path or "-", records=self.count)


class CountingSink:
    """Forwards records to another sink, counting them by type"""

    def __init__(self, inner: RecordSink):
        self.inner = inner
        self.counts: dict[str, int] = {}

    def emit(self, record: OutputRecord) -> None:
        self.inner.emit(record)
        self.counts[record.type] = self.counts.get(record.type, 0) + 1
