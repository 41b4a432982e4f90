"""FastAPI service exposing the SEO bots with live progress over SSE."""

import asyncio
import json
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Deque, Dict, List, Set, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sse_starlette.sse import EventSourceResponse

from .config import settings
from .errors import InvalidURL
from .http_client import close_session, get_session
from .models import AnalysisJob, AnalyzeRequest, BotState, JobStatus, ProgressEvent, utcnow
from .orchestrator import SiteAnalyzer
from .utils import is_absolute_http_url

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# Broadcast channel for progress events (supports multiple subscribers)
class BroadcastChannel:
    """Broadcast channel that supports multiple subscribers."""
    def __init__(self):
        self.subscribers: Set[asyncio.Queue] = set()
        self._lock = asyncio.Lock()

    async def broadcast(self, event: ProgressEvent):
        """Send event to all subscribers."""
        async with self._lock:
            dead_subs = set()
            for sub_queue in self.subscribers:
                try:
                    sub_queue.put_nowait(event)
                except asyncio.QueueFull:
                    logger.warning("Dropping slow SSE subscriber (queue full)")
                    dead_subs.add(sub_queue)

            if dead_subs:
                logger.info(f"Removed {len(dead_subs)} dead subscriber(s)")
            self.subscribers -= dead_subs

    async def subscribe(self) -> asyncio.Queue:
        """Create new subscriber queue."""
        queue = asyncio.Queue(maxsize=100)
        async with self._lock:
            self.subscribers.add(queue)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue):
        """Remove subscriber queue."""
        async with self._lock:
            self.subscribers.discard(queue)


# In-memory storage for jobs (with timestamps for TTL cleanup)
jobs: Dict[str, Tuple[AnalysisJob, float]] = {}
broadcast_channels: Dict[str, BroadcastChannel] = {}
progress_history: Dict[str, Deque[ProgressEvent]] = {}  # last 20 events per job


async def cleanup_old_jobs():
    """Remove analyses older than TTL to prevent memory leaks."""
    while True:
        await asyncio.sleep(300)
        now = time.time()
        expired = [jid for jid, (_, ts) in jobs.items() if now - ts > settings.ANALYSIS_TTL]
        for jid in expired:
            jobs.pop(jid, None)
            broadcast_channels.pop(jid, None)
            progress_history.pop(jid, None)
            logger.info(f"Removed expired analysis: {jid}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown hooks."""
    cleanup_task = asyncio.create_task(cleanup_old_jobs())
    logger.info("Analysis cleanup task started")

    await get_session()
    logger.info("HTTP client initialized")

    yield

    cleanup_task.cancel()
    await close_session()
    logger.info("HTTP client closed")


app = FastAPI(
    title="SEO Bots",
    description="Concurrent website analysis by six category bots",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


async def emit_progress(job_id: str, event: ProgressEvent):
    """Broadcast event and store in history."""
    channel = broadcast_channels.get(job_id)
    if channel is not None:
        await channel.broadcast(event)
    progress_history.setdefault(job_id, deque(maxlen=20)).append(event)


async def run_job(job_id: str):
    """Background task running one analysis and streaming bot snapshots."""
    job, _ = jobs[job_id]
    job.status = JobStatus.RUNNING

    async def on_bots(bots: List[BotState]):
        job.bots = bots
        await emit_progress(job_id, ProgressEvent(status=JobStatus.RUNNING, bots=bots))

    try:
        analysis = await SiteAnalyzer().run_analysis(job.url, on_bots)
    except Exception as e:
        logger.error(f"Analysis {job_id} failed: {e}", exc_info=True)
        job.status = JobStatus.FAILED
        job.error_message = str(e) if isinstance(e, InvalidURL) else "An internal error occurred during the analysis."
        await emit_progress(job_id, ProgressEvent(
            status=JobStatus.FAILED,
            bots=job.bots,
            message=job.error_message,
        ))
        return

    job.analysis = analysis
    job.status = JobStatus.COMPLETED
    job.completed_at = utcnow()
    await emit_progress(job_id, ProgressEvent(
        status=JobStatus.COMPLETED,
        bots=job.bots,
        message="Analysis complete",
        overall_score=analysis.overall_score,
    ))
    logger.info(f"[Analysis {job_id}] Completed with overall score {analysis.overall_score}")


def final_event(job: AnalysisJob) -> ProgressEvent:
    """Terminal progress event rebuilt from the stored job state."""
    return ProgressEvent(
        status=job.status,
        bots=job.bots,
        message=job.error_message or "",
        overall_score=job.analysis.overall_score if job.analysis else None,
    )


@app.post("/api/analyze")
async def start_analysis(request: AnalyzeRequest, background_tasks: BackgroundTasks):
    """Start a new analysis."""
    if not is_absolute_http_url(request.url):
        raise HTTPException(status_code=400, detail=str(InvalidURL(request.url)))

    job = AnalysisJob(url=request.url)
    jobs[job.id] = (job, time.time())
    broadcast_channels[job.id] = BroadcastChannel()
    progress_history[job.id] = deque(maxlen=20)

    background_tasks.add_task(run_job, job.id)

    return {"analysis_id": job.id, "status": "started"}


@app.get("/api/analyze/{job_id}/events")
async def analysis_events(job_id: str):
    """SSE stream for bot progress."""
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Analysis not found")

    async def event_generator():
        """Generate SSE events with history replay support."""
        channel = broadcast_channels.get(job_id)
        if not channel:
            yield {"event": "error", "data": json.dumps({"error": "Broadcast channel not found"})}
            return

        queue = await channel.subscribe()
        # Events emitted after subscribing can be both in history and in the queue
        history = list(progress_history.get(job_id, []))
        replayed = {id(event) for event in history}

        try:
            # Replay history for reconnecting clients
            for event in history:
                yield {"event": "progress", "data": event.model_dump_json()}
                if event.status in (JobStatus.COMPLETED, JobStatus.FAILED):
                    return

            start_time = time.time()
            while True:
                if time.time() - start_time > settings.MAX_SSE_DURATION:
                    yield {"event": "error", "data": json.dumps({"error": "Connection timeout"})}
                    break

                try:
                    event = await asyncio.wait_for(queue.get(), timeout=30)
                except asyncio.TimeoutError:
                    if job_id not in jobs:
                        yield {"event": "error", "data": json.dumps({"error": "Analysis not found"})}
                        break
                    job, _ = jobs[job_id]
                    if job.status in (JobStatus.COMPLETED, JobStatus.FAILED):
                        yield {"event": "progress", "data": final_event(job).model_dump_json()}
                        break
                    yield {"event": "ping", "data": "{}"}
                    continue

                if id(event) in replayed:
                    continue
                yield {"event": "progress", "data": event.model_dump_json()}
                if event.status in (JobStatus.COMPLETED, JobStatus.FAILED):
                    break
        finally:
            await channel.unsubscribe(queue)

    return EventSourceResponse(event_generator())


@app.get("/api/analyze/{job_id}")
async def get_analysis(job_id: str):
    """Get job state, including the final analysis once completed."""
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Analysis not found")

    job, _ = jobs[job_id]
    return job.model_dump(mode="json")


@app.get("/health")
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
