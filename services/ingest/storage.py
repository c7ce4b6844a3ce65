"""
ArangoDB Sink for ZSE
One collection per record type, keyed by record id, plus sync job status
"""

from datetime import datetime
from typing import Any, Optional

import structlog
from arango import ArangoClient
from arango.collection import StandardCollection

from shared.schemas import OutputRecord

logger = structlog.get_logger()

JOBS_COLLECTION = "sync_jobs"


def collection_for(record_type: str) -> str:
    """Collection a record type is stored in (ticket -> tickets)"""
    return f"{record_type}s"


class ArangoStorage:
    """
    Record sink backed by ArangoDB.

    Records are upserted, so running the same cycle twice leaves one
    document per (type, id).
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8529,
        database: str = "zse",
        username: str = "root",
        password: str = "",
    ):
        self.url = f"http://{host}:{port}"
        self.database_name = database
        self._collections: dict[str, StandardCollection] = {}

        credentials = {"username": username, "password": password} if password else {}
        try:
            self._db = ArangoClient(hosts=self.url).db(database, **credentials)
        except Exception as e:
            logger.error("Could not open ArangoDB database", url=self.url, error=str(e))
            raise
        logger.info("Opened ArangoDB database", url=self.url, database=database)

    def check_health(self) -> bool:
        """True if the server answers a version request"""
        try:
            self._db.version()
        except Exception as e:
            logger.warning("ArangoDB unreachable", url=self.url, error=str(e))
            return False
        return True

    def _collection(self, name: str) -> StandardCollection:
        """Collection by name, created the first time it is needed"""
        collection = self._collections.get(name)
        if collection is None:
            if not self._db.has_collection(name):
                logger.info("Creating collection", name=name)
                self._db.create_collection(name)
            collection = self._collections[name] = self._db.collection(name)
        return collection

    def emit(self, record: OutputRecord) -> None:
        """Insert or replace a record, keyed by its id"""
        document = record.to_event()
        document["_key"] = str(record.id)
        self._collection(collection_for(record.type)).insert(document, overwrite=True)

    def get_job_status(self, job_id: str) -> Optional[dict[str, Any]]:
        try:
            return self._collection(JOBS_COLLECTION).get(job_id)
        except Exception as e:
            logger.warning("Could not read sync job", job_id=job_id, error=str(e))
            return None

    def update_job_status(self, job_id: str, status: str, metadata: Optional[dict[str, Any]] = None):
        """Record a job's status; fields from earlier updates are kept"""
        now = datetime.utcnow().isoformat()
        document = {"_key": job_id, "status": status, "updated_at": now, **(metadata or {})}
        try:
            jobs = self._collection(JOBS_COLLECTION)
            if jobs.has(job_id):
                jobs.update(document)
            else:
                jobs.insert({**document, "created_at": now})
        except Exception as e:
            logger.error("Could not write sync job", job_id=job_id, status=status, error=str(e))
