from __future__ import annotations

from typing import Any

import pytest
import requests

from order_status_sync.api.errors import ApiError
from order_status_sync.api.shopify import ShopifyClient, ShopifyConfig

BASE = "https://shop.example.myshopify.com/admin/api/2024-01"


class _Resp:
    def __init__(self, status_code=200, body: Any = None, links=None):
        self.status_code = status_code
        self._body = body if body is not None else {}
        self.links = links or {}
        self.text = str(self._body)

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}", response=self)


class _Transport:
    """Records calls and replays queued responses (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[tuple[str, str, dict]] = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r

    def get(self, url, **kw):
        return self._next("GET", url, kw)

    def put(self, url, **kw):
        return self._next("PUT", url, kw)

    def post(self, url, **kw):
        return self._next("POST", url, kw)


def _client(*responses):
    t = _Transport(*responses)
    return ShopifyClient(ShopifyConfig(base_url=BASE, access_token="shpat_x"), transport=t), t


def test_list_orders_normalizes_and_sends_auth_header():
    body = {
        "orders": [
            {
                "id": 1001,
                "name": "#1001",
                "tags": "vip, status_processing",
                "fulfillments": [{"id": 9, "tracking_number": "PF1", "status": "success"}],
                "note_attributes": [{"name": "pf", "value": "PF2"}],
            }
        ]
    }
    client, t = _client(_Resp(body=body))
    orders = client.list_orders()

    assert len(orders) == 1
    o = orders[0]
    assert (o.id, o.name, o.tags) == ("1001", "#1001", "vip, status_processing")
    assert o.attached_tracking_number == "PF1"
    assert o.note_attributes == {"pf": "PF2"}

    method, url, kw = t.calls[0]
    assert (method, url) == ("GET", BASE + "/orders.json")
    assert kw["params"] == {"status": "any", "limit": 50}
    assert kw["headers"]["X-Shopify-Access-Token"] == "shpat_x"


def test_list_orders_follows_next_links():
    page2 = BASE + "/orders.json?limit=50&page_info=abc"
    client, t = _client(
        _Resp(body={"orders": [{"id": 1}]}, links={"next": {"url": page2}}),
        _Resp(body={"orders": [{"id": 2}]}),
    )
    assert [o.id for o in client.list_orders()] == ["1", "2"]
    assert t.calls[1][1] == page2
    assert t.calls[1][2]["params"] is None


def test_list_orders_for_one_id():
    client, t = _client(_Resp(body={"orders": [{"id": 5}, {"id": 6}]}))
    assert [o.id for o in client.list_orders("6")] == ["6"]
    assert t.calls[0][2]["params"]["ids"] == "6"


def test_malformed_orders_are_ignored():
    client, _ = _client(_Resp(body={"orders": [{"name": "no id"}, "junk", {"id": 3}]}))
    assert [o.id for o in client.list_orders()] == ["3"]


def test_update_tags_puts_full_tag_string():
    client, t = _client(_Resp(body={"order": {}}))
    client.update_tags("1001", "vip, status_delivered")
    method, url, kw = t.calls[0]
    assert (method, url) == ("PUT", BASE + "/orders/1001.json")
    assert kw["json"] == {"order": {"id": 1001, "tags": "vip, status_delivered"}}


def test_fulfillment_orders_and_create():
    client, t = _client(
        _Resp(body={"fulfillment_orders": [{"id": 77, "status": "closed"}, {"id": 78, "status": "open"}]}),
        _Resp(status_code=201, body={"fulfillment": {"id": 5}}),
    )
    fos = client.list_fulfillment_orders("1001")
    assert [(f.id, f.is_open) for f in fos] == [("77", False), ("78", True)]

    created = client.create_fulfillment(
        fulfillment_order_id="78",
        tracking_number="ABC123",
        carrier_name="Palletforce",
        tracking_url="https://t.example/ABC123",
        notify_customer=False,
    )
    assert created == {"id": 5}
    method, url, kw = t.calls[1]
    assert (method, url) == ("POST", BASE + "/fulfillments.json")
    assert kw["json"]["fulfillment"] == {
        "line_items_by_fulfillment_order": [{"fulfillment_order_id": 78}],
        "tracking_info": {"number": "ABC123", "company": "Palletforce", "url": "https://t.example/ABC123"},
        "notify_customer": False,
    }


def test_get_metafields():
    client, _ = _client(_Resp(body={"metafields": [
        {"namespace": "custom", "key": "tracking_number", "value": "PF5"}]}))
    assert client.get_metafields("1") == {"custom.tracking_number": "PF5"}


@pytest.mark.parametrize("status, transient", [(503, True), (429, True), (500, True), (404, False), (422, False)])
def test_http_errors_are_classified(status, transient):
    client, _ = _client(_Resp(status_code=status))
    with pytest.raises(ApiError) as ei:
        client.update_tags("1", "x")
    assert ei.value.transient is transient
    assert ei.value.status_code == status


def test_network_errors_are_transient():
    client, _ = _client(requests.ConnectionError("reset"))
    with pytest.raises(ApiError) as ei:
        client.list_orders()
    assert ei.value.transient
    assert ei.value.kind == "transient"


def test_non_json_body_is_a_client_error():
    client, _ = _client(_Resp(body=ValueError("not json")))
    with pytest.raises(ApiError) as ei:
        client.list_fulfillment_orders("1")
    assert not ei.value.transient
