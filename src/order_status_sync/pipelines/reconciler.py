from __future__ import annotations

from typing import Iterable, Optional, Protocol
import logging

from order_status_sync.models import (
    AttachResult,
    CanonicalStatus,
    Order,
    ReconcileOutcome,
    SkipReason,
)
from order_status_sync.rules import tags as tag_codec
from order_status_sync.rules.classifier import EventCodeMap, latest_event
from order_status_sync.tracking.source import TrackingSource
from .fulfillment_writer import FulfillmentWriter

DEFAULT_TRIGGER_STATUSES: frozenset[CanonicalStatus] = frozenset(
    {CanonicalStatus.IN_TRANSIT, CanonicalStatus.DELIVERED}
)


class TagWriter(Protocol):
    def update_tags(self, order_id: str, tags: str) -> None:
        ...


class StatusReconciler:
    """One idempotent status transition for one order.

    Order of checks (first match wins):
        delivered already        -> skipped(already-delivered); an attach is
                                    completed only for orders with no fulfillment
        no tracking number       -> skipped(no-tracking-number)
        no carrier events        -> skipped(no-events)
        latest code unknown      -> skipped(unrecognized-event)
        same status as tagged    -> skipped(already-current), no tag write
        behind the tagged status -> skipped(backward-transition), logged
        otherwise                -> tag write, then fulfillment attach when the
                                    new status is a trigger -> updated(status)

    A tag field carrying several status tags is rewritten to the most advanced
    one on the skip paths; the update path rewrites it anyway.

    API errors are not caught here; the batch isolates them per order.
    """

    def __init__(
        self,
        tracking: TrackingSource,
        tag_writer: TagWriter,
        fulfillment_writer: Optional[FulfillmentWriter] = None,
        *,
        code_map: Optional[EventCodeMap] = None,
        trigger_statuses: Iterable[CanonicalStatus] = DEFAULT_TRIGGER_STATUSES,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.tracking = tracking
        self.tag_writer = tag_writer
        self.fulfillment_writer = fulfillment_writer
        self.code_map = code_map or EventCodeMap()
        self.trigger_statuses = frozenset(trigger_statuses)
        self.logger = logger or logging.getLogger(
            "order_status_sync.pipelines.reconciler")

    def _attach(
        self,
        order: Order,
        status: CanonicalStatus,
        tracking_number: str,
        *,
        retry: bool = False,
    ) -> Optional[AttachResult]:
        if self.fulfillment_writer is None or status not in self.trigger_statuses:
            return None
        if not self.tracking.can_attach(tracking_number):
            return None
        if retry and order.fulfillments and not order.attached_tracking_number:
            # fulfilled without tracking elsewhere; there is nothing left to attach to
            return None
        return self.fulfillment_writer.attach_tracking(order, tracking_number)

    def reconcile(self, order: Order) -> ReconcileOutcome:
        tag_set = tag_codec.decode(order.tags)
        current = tag_set.status

        if current is CanonicalStatus.DELIVERED:
            # terminal: no carrier lookup; only finish an attach that never got a fulfillment
            attach, tn = None, None
            if not order.fulfillments and current in self.trigger_statuses:
                tn = self.tracking.resolve_tracking_number(order)
                if tn:
                    attach = self._attach(order, current, tn, retry=True)
            return self._skip(order, SkipReason.ALREADY_DELIVERED, tag_set,
                              tracking_number=tn, fulfillment=attach)

        tn = self.tracking.resolve_tracking_number(order)
        if not tn:
            return self._skip(order, SkipReason.NO_TRACKING_NUMBER, tag_set)

        event = latest_event(self.tracking.fetch_events(tn))
        if event is None:
            return self._skip(order, SkipReason.NO_EVENTS, tag_set, tracking_number=tn)

        status = self.code_map.classify(event.event_code)
        if status is None:
            self.logger.info("Order %s: unrecognized event code %r for %s",
                             order.id, event.event_code, tn)
            return self._skip(order, SkipReason.UNRECOGNIZED_EVENT, tag_set, tracking_number=tn)

        if status is current:
            # a fulfillment write that failed after the tag write lands here on the next run
            attach = self._attach(order, status, tn, retry=True)
            return self._skip(order, SkipReason.ALREADY_CURRENT, tag_set,
                              tracking_number=tn, fulfillment=attach)

        if current is not None and status < current:
            self.logger.warning(
                "Order %s: carrier reports %s (%s) but order is tagged %s; not regressing",
                order.id, status.value, event.event_code, current.value)
            return self._skip(order, SkipReason.BACKWARD_TRANSITION, tag_set,
                              tracking_number=tn, status=status)

        new_tags = tag_codec.encode(tag_codec.apply_status(tag_set, status))
        self.tag_writer.update_tags(order.id, new_tags)
        self.logger.info("Order %s -> %s", order.id, status.tag)

        attach = self._attach(order, status, tn)
        return ReconcileOutcome.updated(
            order.id,
            status,
            previous_status=current,
            tracking_number=tn,
            fulfillment=attach,
        )

    def _skip(self, order: Order, reason: SkipReason, tag_set: tag_codec.TagSet, **kw) -> ReconcileOutcome:
        current = tag_set.status
        if len(tag_set.statuses) > 1:
            tags = tag_codec.encode(tag_codec.apply_status(tag_set, current))
            self.tag_writer.update_tags(order.id, tags)
            self.logger.info("Order %s: collapsed %d status tags to %s",
                             order.id, len(tag_set.statuses), current.tag)
        self.logger.debug("Order %s skipped: %s", order.id, reason.value)
        return ReconcileOutcome.skipped(order.id, reason, previous_status=current, **kw)
