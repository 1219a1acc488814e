from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class FulfillmentRecord:
    """A fulfillment already created on the order (may carry tracking)."""
    fulfillment_id: Optional[str] = None
    tracking_number: Optional[str] = None


@dataclass(frozen=True)
class FulfillmentOrder:
    """Unit of an order eligible to be shipped; must be open to fulfill."""
    id: str
    status: str = "open"

    @property
    def is_open(self) -> bool:
        return (self.status or "").lower() == "open"


@dataclass(frozen=True)
class Order:
    # identity
    id: str
    name: str = ""

    # raw tag field exactly as the order source stores it
    tags: str = ""

    fulfillments: tuple[FulfillmentRecord, ...] = ()
    note_attributes: Mapping[str, str] = field(default_factory=dict)
    # "namespace.key" -> value, only populated when the source returns them
    metafields: Mapping[str, str] = field(default_factory=dict)

    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def attached_tracking_number(self) -> Optional[str]:
        for f in self.fulfillments:
            if f.tracking_number:
                return f.tracking_number
        return None


@dataclass(frozen=True)
class TrackingEvent:
    event_code: str
    tracking_number: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
