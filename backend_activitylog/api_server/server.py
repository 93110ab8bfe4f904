"""
FastAPI server: activity feed over HTTP.

Exposes GET /activities (last published feed), POST /resync (explicit trigger),
and GET /health. The resync loop runs as a background task for the app's
lifetime when the app builds its own runtime.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_activitylog.activitylog_logging import get_logger
from backend_activitylog.config.settings import get_settings
from backend_activitylog.pipeline.feed import ActivityFeed
from backend_activitylog.runtime import build_runtime
from backend_activitylog.scheduler.engine import ResyncLoopConfig, run_resync_loop

logger = get_logger(__name__)

LOOP_SHUTDOWN_TIMEOUT_SEC = 15.0
STATUS_PENDING = "pending"


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------


class ResyncRequest(BaseModel):
    """POST /resync body."""

    reason: str = Field("manual", min_length=1, max_length=64, description="Why the resync was triggered")


class FeedResponse(BaseModel):
    """GET /activities and POST /resync response."""

    status: str = Field(..., description="ok | empty | failed | superseded | pending")
    generation: int = Field(..., description="Run generation that produced this feed")
    reason: str | None = Field(None, description="Trigger reason of that run")
    activities: list[dict[str, Any]] = Field(default_factory=list)
    skipped: list[dict[str, Any]] = Field(default_factory=list)
    error: dict[str, Any] | None = None
    finished_at: int | None = None


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------


def get_feed(request: Request) -> ActivityFeed:
    """Dependency: the process-wide ActivityFeed."""
    return request.app.state.feed


def create_app(feed: ActivityFeed | None = None, *, run_loop: bool | None = None) -> FastAPI:
    """
    Build the API app.

    With no feed, the runtime is built from environment settings at startup
    and the resync loop runs in the background. Passing a feed (tests) skips
    both unless run_loop=True.
    """
    start_loop = run_loop if run_loop is not None else feed is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        runtime = None
        if feed is None:
            settings = get_settings()
            runtime = build_runtime(settings)
            app.state.feed = runtime.feed
            loop_config = ResyncLoopConfig(interval_sec=settings.resync_interval_sec)
        else:
            app.state.feed = feed
            loop_config = ResyncLoopConfig()

        stop_event = asyncio.Event()
        loop_task: asyncio.Task[int] | None = None
        if start_loop:
            loop_task = asyncio.create_task(run_resync_loop(app.state.feed, stop_event, loop_config))
            logger.info("api_resync_loop_started", interval_sec=loop_config.interval_sec)

        yield

        stop_event.set()
        if loop_task is not None:
            try:
                await asyncio.wait_for(loop_task, timeout=LOOP_SHUTDOWN_TIMEOUT_SEC)
                logger.info("api_resync_loop_stopped")
            except asyncio.TimeoutError:
                logger.warning("api_resync_loop_shutdown_timeout", timeout_sec=LOOP_SHUTDOWN_TIMEOUT_SEC)
        if runtime is not None:
            await runtime.aclose()

    app = FastAPI(
        title="Backend Activity Log API",
        description="Activity feed of an on-chain app cluster, rebuilt from ledger data.",
        version="0.1.0",
        lifespan=lifespan,
    )
    if feed is not None:
        app.state.feed = feed

    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness probe: API is up."""
        return {"status": "ok"}

    @app.get("/activities", response_model=FeedResponse)
    def get_activities(current: ActivityFeed = Depends(get_feed)):
        """Return the last published feed; status 'pending' before the first run settles."""
        latest = current.latest
        if latest is None:
            resp = FeedResponse(status=STATUS_PENDING, generation=current.generation)
            return JSONResponse(status_code=200, content=resp.model_dump())
        return JSONResponse(status_code=200, content=latest.to_dict())

    @app.post("/resync", response_model=FeedResponse)
    async def resync(body: ResyncRequest | None = None, current: ActivityFeed = Depends(get_feed)):
        """Run a resync now and return its result (superseded if overtaken)."""
        reason = body.reason.strip() if body is not None else "manual"
        logger.info("api_resync_called", reason=reason)
        result = await current.resync(reason or "manual")
        return JSONResponse(status_code=200, content=result.to_dict())

    return app
