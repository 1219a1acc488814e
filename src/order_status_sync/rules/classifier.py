# src/order_status_sync/rules/classifier.py
from __future__ import annotations

from typing import Iterable, Mapping, Optional

from order_status_sync.models import CanonicalStatus, TrackingEvent

# -------- Palletforce event codes --------
# SCOT  scanned out / collected
# ARRH  arrived at hub
# DELV  out for delivery
# POD   proof of delivery
DEFAULT_EVENT_CODES: dict[str, CanonicalStatus] = {
    "SCOT": CanonicalStatus.PROCESSING,
    "ARRH": CanonicalStatus.IN_TRANSIT,
    "DELV": CanonicalStatus.IN_TRANSIT,
    "POD": CanonicalStatus.DELIVERED,
}


class EventCodeMap:
    """Carrier event code -> canonical status. Several codes may share a status."""

    def __init__(self, mapping: Optional[Mapping[str, CanonicalStatus]] = None) -> None:
        src = DEFAULT_EVENT_CODES if mapping is None else mapping
        self._map: dict[str, CanonicalStatus] = {
            str(code).strip(): CanonicalStatus(status) for code, status in src.items()
        }

    def classify(self, event_code: object) -> Optional[CanonicalStatus]:
        """Pure lookup; unknown or non-string codes yield None and never raise."""
        if not isinstance(event_code, str):
            return None
        return self._map.get(event_code.strip())

    def codes_for(self, status: CanonicalStatus) -> list[str]:
        """Codes mapping to `status`, in declaration order."""
        return [c for c, s in self._map.items() if s is status]

    def __contains__(self, event_code: object) -> bool:
        return self.classify(event_code) is not None

    def __len__(self) -> int:
        return len(self._map)

    def items(self) -> Iterable[tuple[str, CanonicalStatus]]:
        return self._map.items()


def latest_event(events: Iterable[TrackingEvent]) -> Optional[TrackingEvent]:
    """Carrier sequences are chronological; the last element is the latest."""
    seq = list(events)
    return seq[-1] if seq else None
