from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import pytest

from order_status_sync.api.errors import ApiError
from order_status_sync.models import (
    FulfillmentOrder,
    FulfillmentRecord,
    Order,
    TrackingEvent,
)


class FakeShop:
    """In-memory order source + tag writer + fulfillment API.

    list_orders() returns fresh Order snapshots, so a second run sees what the
    first one wrote, like re-reading Shopify.
    """

    def __init__(self) -> None:
        self.orders: Dict[str, dict] = {}
        self.fulfillment_orders: Dict[str, List[FulfillmentOrder]] = {}
        self.tag_writes: List[tuple[str, str]] = []
        self.created: List[dict] = []
        self.fo_list_calls: List[str] = []
        self.fail_tags_for: set[str] = set()
        self.fail_create_for: set[str] = set()

    def add_order(
        self,
        order_id: str,
        tags: str = "",
        *,
        name: str = "",
        tracking: Optional[str] = None,
        open_fo: bool = True,
        note_attributes: Optional[dict] = None,
    ) -> None:
        self.orders[order_id] = {
            "tags": tags,
            "name": name or f"#{order_id}",
            "tracking": tracking,
            "note_attributes": note_attributes or {},
        }
        self.fulfillment_orders[order_id] = [
            FulfillmentOrder(id=f"fo-{order_id}", status="open" if open_fo else "closed")
        ]

    def snapshot(self, order_id: str) -> Order:
        o = self.orders[order_id]
        fulfillments = ()
        fulfilled = any(not fo.is_open for fo in self.fulfillment_orders.get(order_id, []))
        if o["tracking"] or fulfilled:
            # a closed fulfillment order means a fulfillment exists, with or without tracking
            fulfillments = (FulfillmentRecord(fulfillment_id=f"f-{order_id}",
                                              tracking_number=o["tracking"]),)
        return Order(
            id=order_id,
            name=o["name"],
            tags=o["tags"],
            fulfillments=fulfillments,
            note_attributes=dict(o["note_attributes"]),
        )

    # OrderSource
    def list_orders(self, order_id: Optional[str] = None) -> List[Order]:
        ids = [order_id] if order_id is not None else list(self.orders)
        return [self.snapshot(i) for i in ids if i in self.orders]

    # TagWriter
    def update_tags(self, order_id: str, tags: str) -> None:
        if order_id in self.fail_tags_for:
            raise ApiError("tags PUT returned HTTP 503", transient=True, status_code=503)
        self.tag_writes.append((order_id, tags))
        self.orders[order_id]["tags"] = tags

    def get_metafields(self, order_id: str) -> Dict[str, str]:
        return dict(self.orders[order_id].get("metafields", {}))

    # FulfillmentApi
    def list_fulfillment_orders(self, order_id: str) -> List[FulfillmentOrder]:
        self.fo_list_calls.append(order_id)
        return list(self.fulfillment_orders.get(order_id, []))

    def create_fulfillment(self, **kwargs: Any) -> Dict[str, Any]:
        fo_id = kwargs["fulfillment_order_id"]
        order_id = fo_id[len("fo-"):]
        if order_id in self.fail_create_for:
            raise ApiError("fulfillments POST returned HTTP 502", transient=True, status_code=502)
        self.created.append(kwargs)
        self.orders[order_id]["tracking"] = kwargs["tracking_number"]
        self.fulfillment_orders[order_id] = [FulfillmentOrder(id=fo_id, status="closed")]
        return {"id": f"f-{order_id}"}


class FakeCarrier:
    def __init__(self, events: Optional[Dict[str, List[str]]] = None) -> None:
        self.events = events or {}
        self.calls: List[str] = []
        self.fail_for: set[str] = set()

    def fetch_events(self, tracking_number: str) -> List[TrackingEvent]:
        self.calls.append(tracking_number)
        if tracking_number in self.fail_for:
            raise ApiError("carrier timed out", transient=True)
        return [TrackingEvent(event_code=c, tracking_number=tracking_number)
                for c in self.events.get(tracking_number, [])]


@pytest.fixture
def shop() -> FakeShop:
    return FakeShop()


@pytest.fixture
def carrier() -> FakeCarrier:
    return FakeCarrier()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("order_status_sync.tests")


APP_ENV_KEYS = (
    "SHOPIFY_STORE", "SHOPIFY_TOKEN", "SHOPIFY_API_VERSION",
    "PALLETFORCE_URL", "PALLETFORCE_ACCESS_KEY", "CARRIER_NAME",
    "TRACKING_URL_TEMPLATE", "NOTIFY_CUSTOMER", "FULFILLMENT_TRIGGER_STATUSES",
    "TRACKING_RESOLVER", "TRACKING_NOTE_ATTRIBUTE", "TRACKING_METAFIELD",
    "TEST_MODE", "TEST_ORDER_ID", "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Unset app variables; anything a .env load sets is undone after the test."""
    for name in APP_ENV_KEYS:
        # setenv first so monkeypatch records the key and removes it on teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
