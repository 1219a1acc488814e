# src/order_status_sync/api/normalize.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from order_status_sync.models import (
    FulfillmentOrder,
    FulfillmentRecord,
    Order,
    TrackingEvent,
)


def _str_or_none(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _fulfillments(raw: Any) -> tuple[FulfillmentRecord, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[FulfillmentRecord] = []
    for f in raw:
        if not isinstance(f, dict):
            continue
        tn = _str_or_none(f.get("tracking_number"))
        if tn is None:
            # newer API versions only fill the plural list
            numbers = f.get("tracking_numbers") or []
            if isinstance(numbers, list) and numbers:
                tn = _str_or_none(numbers[0])
        out.append(
            FulfillmentRecord(
                fulfillment_id=_str_or_none(f.get("id")),
                tracking_number=tn,
            )
        )
    return tuple(out)


def _note_attributes(raw: Any) -> Dict[str, str]:
    """Shopify sends [{"name": .., "value": ..}]; tolerate a flat dict too."""
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items() if v is not None}
    out: Dict[str, str] = {}
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, dict) and item.get("name") is not None:
                value = item.get("value")
                if value is not None:
                    out[str(item["name"])] = str(value)
    return out


def normalize_metafields(raw: Any) -> Dict[str, str]:
    """[{"namespace","key","value"}] -> {"namespace.key": value}."""
    out: Dict[str, str] = {}
    if not isinstance(raw, list):
        return out
    for m in raw:
        if not isinstance(m, dict):
            continue
        ns, key = m.get("namespace"), m.get("key")
        if ns is None or key is None or m.get("value") is None:
            continue
        out[f"{ns}.{key}"] = str(m["value"])
    return out


def normalize_order(payload: Dict[str, Any]) -> Order:
    """Build an Order from one element of Shopify's `orders` array."""
    if not isinstance(payload, dict) or payload.get("id") is None:
        raise ValueError("order payload has no id")

    return Order(
        id=str(payload["id"]),
        name=str(payload.get("name") or ""),
        tags=str(payload.get("tags") or ""),
        fulfillments=_fulfillments(payload.get("fulfillments")),
        note_attributes=_note_attributes(payload.get("note_attributes")),
        metafields=normalize_metafields(payload.get("metafields")),
        raw=payload,
    )


def normalize_fulfillment_orders(payload: Dict[str, Any]) -> List[FulfillmentOrder]:
    items = payload.get("fulfillment_orders") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        return []
    out: List[FulfillmentOrder] = []
    for fo in items:
        if isinstance(fo, dict) and fo.get("id") is not None:
            out.append(FulfillmentOrder(id=str(fo["id"]),
                       status=str(fo.get("status") or "")))
    return out


def normalize_tracking(payload: Any, *, tracking_number: Optional[str] = None) -> List[TrackingEvent]:
    """
    Palletforce body -> ordered TrackingEvent list.

    Accepts {"trackingData": [...]} or a bare list. Entries without an
    eventCode are dropped; order is preserved (last is latest).
    """
    if isinstance(payload, dict):
        data = payload.get("trackingData")
    else:
        data = payload
    if not isinstance(data, list):
        return []

    events: List[TrackingEvent] = []
    for ev in data:
        if not isinstance(ev, dict):
            continue
        code = _str_or_none(ev.get("eventCode"))
        if code is None:
            continue
        events.append(
            TrackingEvent(
                event_code=code,
                tracking_number=_str_or_none(
                    ev.get("trackingNumber")) or tracking_number,
                raw=ev,
            )
        )
    return events
