"""
Activity reconstruction pipeline.

Turns a cluster's ledger footprint into an ordered list of Activity records:
log fetch, hash dedup, transaction fetch and filter, description / forward
unwrapping / timestamp resolution, and assembly. ActivityFeed is the entry
point (get_activities for one-shot use, resync for scheduled runs).
"""

from backend_activitylog.pipeline.feed import ActivityFeed
from backend_activitylog.pipeline.forwarding import (
    FORWARD_SELECTOR,
    extract_script,
    is_forwarded,
    unwrap_forward,
)
from backend_activitylog.pipeline.models import (
    Activity,
    FailurePolicy,
    FeedResult,
    FeedStatus,
    SkippedTransaction,
)

__all__ = [
    "FORWARD_SELECTOR",
    "Activity",
    "ActivityFeed",
    "FailurePolicy",
    "FeedResult",
    "FeedStatus",
    "SkippedTransaction",
    "extract_script",
    "is_forwarded",
    "unwrap_forward",
]
