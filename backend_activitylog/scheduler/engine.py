"""
Resync scheduling: periodic timer driving ActivityFeed.resync.

Each tick calls resync("timer"); other triggers (API, sync events) call
resync directly with their own reason and supersede a tick still in flight.
A failing tick is logged and the loop continues.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from backend_activitylog.activitylog_logging import get_logger
from backend_activitylog.pipeline.feed import ActivityFeed

logger = get_logger(__name__)

REASON_TIMER = "timer"
REASON_STARTUP = "startup"


@dataclass
class ResyncLoopConfig:
    interval_sec: float = 60.0
    run_on_start: bool = True


async def run_resync_loop(
    feed: ActivityFeed,
    stop_event: asyncio.Event,
    config: ResyncLoopConfig | None = None,
) -> int:
    """
    Resync every interval_sec until stop_event is set; return the tick count.

    The first tick runs immediately (reason "startup") when run_on_start is set.
    """
    cfg = config or ResyncLoopConfig()
    interval = max(0.01, cfg.interval_sec)
    logger.info("resync_loop_started", interval_sec=interval)
    tick_count = 0
    first = True
    while not stop_event.is_set():
        if not first or cfg.run_on_start:
            tick_count += 1
            reason = REASON_STARTUP if first else REASON_TIMER
            result = await feed.resync(reason)
            logger.debug(
                "resync_tick_done",
                tick=tick_count,
                status=result.status.value,
                generation=result.generation,
            )
        first = False
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
    logger.info("resync_loop_stopped", ticks=tick_count)
    return tick_count
