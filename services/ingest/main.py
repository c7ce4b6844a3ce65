"""
ZSE Sync Service
HTTP front end that runs single sync cycles into ArangoDB on request
"""

import os
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import structlog
from fastapi import BackgroundTasks, FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from services.pipeline.config import SyncConfig
from services.pipeline.scheduler import SyncEngine

from .client import ZendeskClient
from .storage import ArangoStorage

logger = structlog.get_logger()


def storage_from_env() -> ArangoStorage:
    return ArangoStorage(
        host=os.getenv("ARANGODB_HOST", "localhost"),
        port=int(os.getenv("ARANGODB_PORT", "8529")),
        database=os.getenv("ARANGODB_DB", "zse"),
        password=os.getenv("ARANGODB_PASSWORD", ""),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the Zendesk client and record storage from the environment"""
    config = SyncConfig.from_env()
    app.state.config = config
    app.state.zendesk_client = ZendeskClient(**config.client_kwargs())
    app.state.storage = storage_from_env()
    logger.info("ZSE Sync Service ready", domain=config.domain)
    yield
    app.state.zendesk_client.close()
    logger.info("ZSE Sync Service stopped")


app = FastAPI(
    title="ZSE Sync Service",
    description="Zendesk Sync Engine - on-demand sync runs",
    version="0.1.0",
    lifespan=lifespan,
)


class SyncRequest(BaseModel):
    """Per-run overrides; anything left out comes from the service config"""
    days: Optional[float] = Field(None, description="Look-back window in days, -1 for all tickets")
    comments: Optional[bool] = None
    append_comments_to_tickets: Optional[bool] = None


class SyncResponse(BaseModel):
    job_id: str
    status: str
    message: str


class HealthResponse(BaseModel):
    status: str
    zendesk_reachable: bool
    db_connected: bool


@app.get("/health", response_model=HealthResponse)
def health_check():
    zendesk_ok = app.state.zendesk_client.check_health()
    db_ok = app.state.storage.check_health()
    return HealthResponse(
        status="healthy" if zendesk_ok and db_ok else "degraded",
        zendesk_reachable=zendesk_ok,
        db_connected=db_ok,
    )


@app.post("/sync", response_model=SyncResponse)
def start_sync(request: SyncRequest, background_tasks: BackgroundTasks):
    """Queue one sync cycle; poll /sync/{job_id} for the outcome"""
    overrides = {
        "tickets_last_updated_n_days_ago": request.days,
        "comments": request.comments,
        "append_comments_to_tickets": request.append_comments_to_tickets,
    }
    values = app.state.config.model_dump()
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        config = SyncConfig.model_validate(values)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()])

    job_id = str(uuid.uuid4())
    app.state.storage.update_job_status(job_id, "queued")
    background_tasks.add_task(
        run_sync_job,
        job_id,
        config,
        app.state.zendesk_client,
        app.state.storage,
    )
    logger.info("Queued sync job", job_id=job_id, days=config.tickets_last_updated_n_days_ago)

    return SyncResponse(
        job_id=job_id,
        status="queued",
        message=f"Syncing tickets updated in the last {config.tickets_last_updated_n_days_ago} days",
    )


@app.get("/sync/{job_id}")
def get_sync_status(job_id: str):
    job = app.state.storage.get_job_status(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Unknown sync job {job_id}")
    return job


def run_sync_job(job_id: str, config: SyncConfig, client: ZendeskClient, storage: ArangoStorage):
    """Verify credentials and run one cycle, recording progress on the job"""
    storage.update_job_status(job_id, "running", {"started_at": datetime.utcnow().isoformat()})
    try:
        client.verify_credentials()
        stats = SyncEngine(config, client, storage).run_cycle()
    except Exception as e:
        logger.error("Sync job failed", job_id=job_id, error=str(e))
        storage.update_job_status(job_id, "failed", {"error": str(e)})
        return

    storage.update_job_status(job_id, "completed", {
        "completed_at": datetime.utcnow().isoformat(),
        "records": stats.counts,
        "duration_seconds": round(stats.duration_seconds, 2),
    })
    logger.info("Sync job completed", job_id=job_id, records=stats.counts)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
