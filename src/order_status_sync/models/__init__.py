from .env_cfg import AppEnv
from .order import FulfillmentOrder, FulfillmentRecord, Order, TrackingEvent
from .outcome import (
    AttachResult,
    OutcomeKind,
    ReconcileOutcome,
    RunSummary,
    SkipReason,
)
from .status import STATUS_TAGS, CanonicalStatus, parse_status

__all__ = [
    "AppEnv",
    "AttachResult",
    "CanonicalStatus",
    "FulfillmentOrder",
    "FulfillmentRecord",
    "Order",
    "OutcomeKind",
    "ReconcileOutcome",
    "RunSummary",
    "STATUS_TAGS",
    "SkipReason",
    "TrackingEvent",
    "parse_status",
]
