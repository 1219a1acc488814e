# src/order_status_sync/models/status.py
from __future__ import annotations

from enum import Enum
from typing import Optional

STATUS_TAG_PREFIX = "status_"


class CanonicalStatus(str, Enum):
    """Shipment progress, ordered processing < in_transit < delivered."""

    PROCESSING = "processing"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @property
    def tag(self) -> str:
        """External tag string, e.g. 'status_in_transit'."""
        return STATUS_TAG_PREFIX + self.value

    @classmethod
    def from_tag(cls, tag: str) -> Optional["CanonicalStatus"]:
        if not tag.startswith(STATUS_TAG_PREFIX):
            return None
        try:
            return cls(tag[len(STATUS_TAG_PREFIX):])
        except ValueError:
            return None

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, CanonicalStatus):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, CanonicalStatus):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, CanonicalStatus):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, CanonicalStatus):
            return NotImplemented
        return self.rank >= other.rank


_RANK = {
    CanonicalStatus.PROCESSING: 0,
    CanonicalStatus.IN_TRANSIT: 1,
    CanonicalStatus.DELIVERED: 2,
}

# Reserved tag vocabulary; anything else on an order is left untouched.
STATUS_TAGS: frozenset[str] = frozenset(s.tag for s in CanonicalStatus)


def parse_status(value: str) -> CanonicalStatus:
    """Accept 'in_transit' or 'status_in_transit' (case-insensitive)."""
    v = (value or "").strip().lower()
    if v.startswith(STATUS_TAG_PREFIX):
        v = v[len(STATUS_TAG_PREFIX):]
    return CanonicalStatus(v)
