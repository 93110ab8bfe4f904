# Resync scheduling: periodic timer around ActivityFeed.resync.

from backend_activitylog.scheduler.engine import (
    ResyncLoopConfig,
    run_resync_loop,
)

__all__ = [
    "ResyncLoopConfig",
    "run_resync_loop",
]
