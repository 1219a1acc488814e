from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional

from order_status_sync.models.status import CanonicalStatus


class SkipReason(str, Enum):
    ALREADY_DELIVERED = "already-delivered"
    NO_TRACKING_NUMBER = "no-tracking-number"
    NO_EVENTS = "no-events"
    UNRECOGNIZED_EVENT = "unrecognized-event"
    ALREADY_CURRENT = "already-current"
    BACKWARD_TRANSITION = "backward-transition"


class AttachResult(str, Enum):
    ATTACHED = "attached"
    ALREADY_ATTACHED = "already-attached"
    NO_OPEN_FULFILLMENT = "no-open-fulfillment"


class OutcomeKind(str, Enum):
    SKIPPED = "skipped"
    UPDATED = "updated"
    ERROR = "error"


@dataclass(frozen=True)
class ReconcileOutcome:
    order_id: str
    kind: OutcomeKind
    status: Optional[CanonicalStatus] = None
    previous_status: Optional[CanonicalStatus] = None
    reason: Optional[SkipReason] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None
    tracking_number: Optional[str] = None
    fulfillment: Optional[AttachResult] = None

    @classmethod
    def skipped(cls, order_id: str, reason: SkipReason, **kw: Any) -> "ReconcileOutcome":
        return cls(order_id=order_id, kind=OutcomeKind.SKIPPED, reason=reason, **kw)

    @classmethod
    def updated(cls, order_id: str, status: CanonicalStatus, **kw: Any) -> "ReconcileOutcome":
        return cls(order_id=order_id, kind=OutcomeKind.UPDATED, status=status, **kw)

    @classmethod
    def failed(cls, order_id: str, error_kind: str, error: str) -> "ReconcileOutcome":
        return cls(order_id=order_id, kind=OutcomeKind.ERROR,
                   error_kind=error_kind, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Plain values for logging and reports."""
        d = asdict(self)
        for k, v in d.items():
            if isinstance(v, Enum):
                d[k] = v.value
        return d


@dataclass
class RunSummary:
    outcomes: list[ReconcileOutcome] = field(default_factory=list)
    cancelled: bool = False

    def record(self, outcome: ReconcileOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, kind: OutcomeKind) -> int:
        return sum(1 for o in self.outcomes if o.kind is kind)

    @property
    def processed(self) -> int:
        return self._count(OutcomeKind.UPDATED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeKind.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeKind.ERROR)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def failed_order_ids(self) -> list[str]:
        return [o.order_id for o in self.outcomes if o.kind is OutcomeKind.ERROR]
