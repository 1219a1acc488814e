from __future__ import annotations

import pytest

from order_status_sync.models import STATUS_TAGS, CanonicalStatus
from order_status_sync.rules.tags import (
    TagSet,
    apply_status,
    current_status,
    decode,
    encode,
)


def _status_tags(ts: TagSet) -> list[str]:
    return [t for t in ts if t in STATUS_TAGS]


def test_decode_splits_trims_and_separates_status():
    ts = decode(" vip ,wholesale,  status_processing,, ")
    assert ts.others == ("vip", "wholesale")
    assert ts.status is CanonicalStatus.PROCESSING


def test_decode_empty_and_none():
    assert decode("") == TagSet()
    assert decode(None) == TagSet()
    assert decode(None).status is None


def test_encode_keeps_order_and_appends_status_last():
    ts = decode("status_in_transit, b, a")
    assert encode(ts) == "b, a, status_in_transit"


def test_apply_status_replaces_existing_status_tag():
    ts = apply_status(decode("vip, status_processing"), CanonicalStatus.DELIVERED)
    assert encode(ts) == "vip, status_delivered"


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "vip",
        "status_processing",
        "a, status_processing, b, status_in_transit",
        "status_delivered, status_delivered, x",
    ],
)
@pytest.mark.parametrize("status", list(CanonicalStatus))
def test_apply_status_leaves_exactly_one_status_tag(raw, status):
    before = decode(raw)
    after = apply_status(before, status)
    assert _status_tags(after) == [status.tag]
    assert set(after.others) == set(before.others)
    # idempotent
    assert apply_status(after, status) == after


def test_tags_are_case_sensitive():
    ts = decode("Status_Delivered, VIP")
    assert ts.status is None
    assert ts.others == ("Status_Delivered", "VIP")


def test_duplicate_tags_collapse():
    assert encode(decode("vip, vip, status_processing")) == "vip, status_processing"


def test_multiple_status_tags_report_most_advanced():
    assert current_status("status_processing, status_in_transit") is CanonicalStatus.IN_TRANSIT
    assert current_status(decode("status_delivered")) is CanonicalStatus.DELIVERED
    assert current_status("vip") is None
