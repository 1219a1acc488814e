# src/order_status_sync/tracking/resolvers.py
"""
Tracking-number resolvers: Order -> tracking number (or None).

Stores keep the carrier reference in different places, so the engine takes
whichever resolver the configuration selects.
"""
from __future__ import annotations

from typing import Callable, Mapping, Optional, Protocol
import logging

from order_status_sync.models import Order

RESOLVER_NAMES: tuple[str, ...] = (
    "fulfillment", "metafield", "note_attribute", "order_name")


class TrackingResolver(Protocol):
    def __call__(self, order: Order) -> Optional[str]:
        ...


def from_fulfillment(order: Order) -> Optional[str]:
    return order.attached_tracking_number


class FromNoteAttribute:
    def __init__(self, name: str = "tracking_number") -> None:
        self.name = name

    def __call__(self, order: Order) -> Optional[str]:
        value = (order.note_attributes or {}).get(self.name)
        return (value or "").strip() or None


class FromMetafield:
    """
    Reads `namespace.key`. Uses the metafields already on the order when
    present, otherwise asks `fetch(order_id)` (e.g. ShopifyClient.get_metafields).
    """

    def __init__(
        self,
        key: str = "custom.tracking_number",
        fetch: Optional[Callable[[str], Mapping[str, str]]] = None,
    ) -> None:
        self.key = key
        self.fetch = fetch

    def __call__(self, order: Order) -> Optional[str]:
        fields = order.metafields or {}
        if self.key not in fields and self.fetch is not None:
            fields = self.fetch(order.id) or {}
        value = fields.get(self.key)
        return (value or "").strip() or None


class FromOrderName:
    """Look the tracking number up by order name (e.g. '#1001')."""

    def __init__(self, lookup: Callable[[str], Optional[str]]) -> None:
        self.lookup = lookup

    def __call__(self, order: Order) -> Optional[str]:
        if not order.name:
            return None
        return self.lookup(order.name)


def build_resolver(
    name: str,
    *,
    note_attribute: str = "tracking_number",
    metafield: str = "custom.tracking_number",
    metafield_fetch: Optional[Callable[[str], Mapping[str, str]]] = None,
    order_name_lookup: Optional[Callable[[str], Optional[str]]] = None,
    logger: Optional[logging.Logger] = None,
) -> TrackingResolver:
    """Pick the resolver named in configuration."""
    key = (name or "fulfillment").strip().lower()
    if key == "fulfillment":
        return from_fulfillment
    if key == "note_attribute":
        return FromNoteAttribute(note_attribute)
    if key == "metafield":
        return FromMetafield(metafield, fetch=metafield_fetch)
    if key == "order_name":
        if order_name_lookup is None:
            raise ValueError(
                "order_name resolver needs a lookup (e.g. a replay file with orderName entries)")
        return FromOrderName(order_name_lookup)
    if logger:
        logger.error("Unknown tracking resolver: %s", name)
    raise ValueError(f"Unknown tracking resolver: {name!r}")
