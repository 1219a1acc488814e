from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional
import logging

import requests

from order_status_sync.models import FulfillmentOrder, Order
from .errors import ApiError, from_request_exception
from .normalize import (
    normalize_fulfillment_orders,
    normalize_metafields,
    normalize_order,
)
from .transport import RequestsTransport


@dataclass
class ShopifyConfig:
    base_url: str
    access_token: str
    page_size: int = 50


class ShopifyClient:
    """Shopify Admin REST client covering what the sync needs.

    Responsibilities:
    - list_orders(): page through /orders.json (status=any) following the
      Link rel="next" header, optionally restricted to one order id.
    - update_tags(): PUT the full tag string back onto an order.
    - list_fulfillment_orders() / create_fulfillment(): attach tracking.
    - get_metafields(): order metafields, for the metafield tracking resolver.

    Every failure surfaces as ApiError; nothing is swallowed here.
    """

    def __init__(
        self,
        cfg: ShopifyConfig,
        transport: Optional[RequestsTransport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport()
        self.logger: logging.Logger = logger or logging.getLogger(
            "order_status_sync.api.shopify"
        )

    # --- plumbing ------------------------------------------------------------

    def _url(self, path: str) -> str:
        return self.cfg.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.cfg.access_token,
            "Content-Type": "application/json",
        }

    def _send(self, method: str, url: str, **kwargs: Any):
        try:
            fn = getattr(self.transport, method)
            resp = fn(url, headers=self._headers(), **kwargs)
            resp.raise_for_status()
        except requests.RequestException as ex:
            err = from_request_exception(ex, url)
            self.logger.warning("Shopify %s %s failed: %s",
                                method.upper(), url, err)
            raise err from ex
        return resp

    @staticmethod
    def _json(resp, url: str) -> Dict[str, Any]:
        try:
            body = resp.json()
        except ValueError as ex:
            raise ApiError(f"{url} returned a non-JSON body",
                           transient=False, endpoint=url) from ex
        if not isinstance(body, dict):
            raise ApiError(f"{url} returned an unexpected body",
                           transient=False, endpoint=url)
        return body

    # --- orders --------------------------------------------------------------

    def _iter_order_pages(self, order_id: Optional[str]) -> Iterator[List[Dict[str, Any]]]:
        url: Optional[str] = self._url("orders.json")
        params: Optional[Dict[str, Any]] = {
            "status": "any", "limit": self.cfg.page_size}
        if order_id is not None:
            params["ids"] = str(order_id)

        while url:
            resp = self._send("get", url, params=params)
            body = self._json(resp, url)
            orders = body.get("orders") or []
            self.logger.debug("Fetched %d order(s) from %s", len(orders), url)
            yield orders

            nxt = (getattr(resp, "links", None) or {}).get("next") or {}
            url = nxt.get("url")
            # the next link already carries page_info/limit
            params = None

    def list_orders(self, order_id: Optional[str] = None) -> List[Order]:
        out: List[Order] = []
        for page in self._iter_order_pages(order_id):
            for raw in page:
                try:
                    order = normalize_order(raw)
                except ValueError:
                    self.logger.warning("Ignoring malformed order payload: %r",
                                        raw if not isinstance(raw, dict) else list(raw.keys()))
                    continue
                if order_id is not None and order.id != str(order_id):
                    continue
                out.append(order)
        return out

    def update_tags(self, order_id: str, tags: str) -> None:
        url = self._url(f"orders/{order_id}.json")
        self._send("put", url, json={"order": {"id": _id(order_id), "tags": tags}})
        self.logger.debug("Updated tags on order %s -> %r", order_id, tags)

    def get_metafields(self, order_id: str) -> Dict[str, str]:
        url = self._url(f"orders/{order_id}/metafields.json")
        body = self._json(self._send("get", url), url)
        return normalize_metafields(body.get("metafields"))

    # --- fulfillment ---------------------------------------------------------

    def list_fulfillment_orders(self, order_id: str) -> List[FulfillmentOrder]:
        url = self._url(f"orders/{order_id}/fulfillment_orders.json")
        return normalize_fulfillment_orders(self._json(self._send("get", url), url))

    def create_fulfillment(
        self,
        *,
        fulfillment_order_id: str,
        tracking_number: str,
        carrier_name: str,
        tracking_url: str,
        notify_customer: bool,
    ) -> Dict[str, Any]:
        url = self._url("fulfillments.json")
        body = {
            "fulfillment": {
                "line_items_by_fulfillment_order": [
                    {"fulfillment_order_id": _id(fulfillment_order_id)}
                ],
                "tracking_info": {
                    "number": tracking_number,
                    "company": carrier_name,
                    "url": tracking_url,
                },
                "notify_customer": bool(notify_customer),
            }
        }
        resp = self._send("post", url, json=body)
        return self._json(resp, url).get("fulfillment") or {}


def _id(value: str) -> Any:
    """Shopify ids are numeric on the wire; keep non-numeric ids as given."""
    s = str(value)
    return int(s) if s.isdigit() else s
