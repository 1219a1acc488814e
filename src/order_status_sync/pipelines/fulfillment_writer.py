from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol
import logging

from order_status_sync.models import AttachResult, FulfillmentOrder, Order
from order_status_sync.models.env_cfg import DEFAULT_TRACKING_URL_TEMPLATE


class FulfillmentApi(Protocol):
    def list_fulfillment_orders(self, order_id: str) -> List[FulfillmentOrder]:
        ...

    def create_fulfillment(
        self,
        *,
        fulfillment_order_id: str,
        tracking_number: str,
        carrier_name: str,
        tracking_url: str,
        notify_customer: bool,
    ) -> Dict[str, Any]:
        ...


class FulfillmentWriter:
    """Attaches a carrier tracking number to an order's fulfillment, once.

    Guards, each an early exit without a write:
      1) any fulfillment already carries a tracking number -> ALREADY_ATTACHED
      2) no open fulfillment order                         -> NO_OPEN_FULFILLMENT
    Otherwise exactly one create_fulfillment call -> ATTACHED.

    The list-then-create sequence is not atomic; two overlapping runs may both
    pass guard 2. Runs are scheduled serially, so that window is tolerated.
    Write failures propagate (ApiError) and are retried by the next run.
    """

    def __init__(
        self,
        api: FulfillmentApi,
        *,
        carrier_name: str = "Palletforce",
        tracking_url_template: str = DEFAULT_TRACKING_URL_TEMPLATE,
        notify_customer: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if "{tracking_number}" not in tracking_url_template:
            raise ValueError(
                "tracking_url_template must contain '{tracking_number}'")
        self.api = api
        self.carrier_name = carrier_name
        self.tracking_url_template = tracking_url_template
        self.notify_customer = notify_customer
        self.logger = logger or logging.getLogger(
            "order_status_sync.pipelines.fulfillment_writer")

    def tracking_url(self, tracking_number: str) -> str:
        return self.tracking_url_template.format(tracking_number=tracking_number)

    def attach_tracking(self, order: Order, tracking_number: str) -> AttachResult:
        existing = order.attached_tracking_number
        if existing:
            self.logger.debug("Order %s already has tracking %s attached",
                              order.id, existing)
            return AttachResult.ALREADY_ATTACHED

        fo = next(
            (f for f in self.api.list_fulfillment_orders(order.id) if f.is_open), None)
        if fo is None:
            self.logger.info("Order %s has no open fulfillment order; tracking %s not attached",
                             order.id, tracking_number)
            return AttachResult.NO_OPEN_FULFILLMENT

        self.api.create_fulfillment(
            fulfillment_order_id=fo.id,
            tracking_number=tracking_number,
            carrier_name=self.carrier_name,
            tracking_url=self.tracking_url(tracking_number),
            notify_customer=self.notify_customer,
        )
        self.logger.info("Order %s: attached %s tracking %s to fulfillment order %s",
                         order.id, self.carrier_name, tracking_number, fo.id)
        return AttachResult.ATTACHED
