from __future__ import annotations

from typing import List, Optional, Protocol
import logging

from order_status_sync.models import CanonicalStatus, Order, TrackingEvent
from order_status_sync.rules.classifier import EventCodeMap
from order_status_sync.rules.tags import current_status
from .resolvers import TrackingResolver, from_fulfillment


class CarrierClient(Protocol):
    def fetch_events(self, tracking_number: str) -> List[TrackingEvent]:
        ...


class TrackingSource(Protocol):
    """Where carrier events come from: the live carrier or the simulator."""

    def resolve_tracking_number(self, order: Order) -> Optional[str]:
        ...

    def fetch_events(self, tracking_number: str) -> List[TrackingEvent]:
        ...

    def can_attach(self, tracking_number: str) -> bool:
        """Whether the number may be written to a real fulfillment."""
        ...


class LiveTrackingSource:
    """Resolves through the injected resolver and asks the carrier once per call."""

    def __init__(
        self,
        carrier: CarrierClient,
        resolver: TrackingResolver = from_fulfillment,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.carrier = carrier
        self.resolver = resolver
        self.logger = logger or logging.getLogger(
            "order_status_sync.tracking")

    def resolve_tracking_number(self, order: Order) -> Optional[str]:
        return self.resolver(order)

    def fetch_events(self, tracking_number: str) -> List[TrackingEvent]:
        # ApiError propagates to the batch, which marks the order failed
        return list(self.carrier.fetch_events(tracking_number))

    def can_attach(self, tracking_number: str) -> bool:
        return True


class SimulatedTrackingSource:
    """Deterministic stand-in for the carrier, bound to exactly one order.

    The next synthetic event is derived from the order's current status tag:

        no tag / processing  -> first in_transit code  (ARRH)
        in_transit           -> first delivered code   (POD)
        delivered            -> no event (terminal)

    Any other order resolves to no tracking number, so it never reaches event
    generation. Never touches the network, and never attaches tracking: a
    simulated run only moves the status tag.
    """

    def __init__(
        self,
        order_id: str,
        code_map: Optional[EventCodeMap] = None,
        resolver: TrackingResolver = from_fulfillment,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not str(order_id or "").strip():
            raise ValueError("SimulatedTrackingSource needs an order id")
        self.order_id = str(order_id).strip()
        self.code_map = code_map or EventCodeMap()
        self.resolver = resolver
        self.logger = logger or logging.getLogger(
            "order_status_sync.tracking")
        # tracking number -> status seen at resolution time
        self._seen: dict[str, Optional[CanonicalStatus]] = {}

        self._in_transit_code = self._first_code(CanonicalStatus.IN_TRANSIT)
        self._delivered_code = self._first_code(CanonicalStatus.DELIVERED)

    def _first_code(self, status: CanonicalStatus) -> str:
        codes = self.code_map.codes_for(status)
        if not codes:
            raise ValueError(f"event code map has no code for {status.value}")
        return codes[0]

    def synthetic_tracking_number(self) -> str:
        return f"SIM-{self.order_id}"

    def resolve_tracking_number(self, order: Order) -> Optional[str]:
        if str(order.id) != self.order_id:
            self.logger.warning(
                "Simulation is bound to order %s; refusing order %s", self.order_id, order.id)
            return None
        tn = self.resolver(order) or self.synthetic_tracking_number()
        self._seen[tn] = current_status(order.tags)
        return tn

    def can_attach(self, tracking_number: str) -> bool:
        return False

    def next_event_code(self, status: Optional[CanonicalStatus]) -> Optional[str]:
        if status is CanonicalStatus.DELIVERED:
            return None
        if status is CanonicalStatus.IN_TRANSIT:
            return self._delivered_code
        return self._in_transit_code

    def fetch_events(self, tracking_number: str) -> List[TrackingEvent]:
        if tracking_number not in self._seen:
            return []
        code = self.next_event_code(self._seen[tracking_number])
        if code is None:
            return []
        self.logger.info("TEST MODE: order %s simulated event %s",
                         self.order_id, code)
        return [TrackingEvent(event_code=code, tracking_number=tracking_number)]
