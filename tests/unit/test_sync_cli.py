import json
import logging
from pathlib import Path

import pytest

from order_status_sync import cli
from order_status_sync.api.errors import ApiError
from order_status_sync.config.logging_config import ROOT_LOGGER_NAME

SHOP_ONLY = "SHOPIFY_STORE=my-shop.myshopify.com\nSHOPIFY_TOKEN=shpat_x\n"


def run_cli(args):
    return cli.main(args)


@pytest.fixture(autouse=True)
def _isolated(clean_env):
    yield
    lg = logging.getLogger(ROOT_LOGGER_NAME)
    for h in list(lg.handlers):
        lg.removeHandler(h)
        h.close()


@pytest.fixture
def env_file(tmp_path):
    f = tmp_path / ".env"
    f.write_text(SHOP_ONLY)
    return f


@pytest.fixture
def fake_shopify(monkeypatch, shop):
    """Every ShopifyClient built by the CLI is the in-memory shop."""
    monkeypatch.setattr("order_status_sync.api.shopify.ShopifyClient", lambda *a, **k: shop)
    return shop


def test_missing_env_returns_2(tmp_path):
    code = run_cli(["--env-file", str(tmp_path / "nope.env"), "--no-console"])
    assert code == 2


def test_live_mode_without_carrier_credentials_returns_2(env_file, fake_shopify):
    assert run_cli(["--env-file", str(env_file), "--no-console"]) == 2


def test_simulate_without_order_id_returns_2(env_file, fake_shopify):
    assert run_cli(["--env-file", str(env_file), "--simulate", "--no-console"]) == 2


def test_simulate_order_id_must_match_test_order_id(tmp_path, fake_shopify):
    f = tmp_path / ".env"
    f.write_text(SHOP_ONLY + "TEST_MODE=true\nTEST_ORDER_ID=1001\n")
    assert run_cli(["--env-file", str(f), "--order-id", "2002", "--no-console"]) == 2


def test_simulated_run_advances_one_step(env_file, fake_shopify):
    fake_shopify.add_order("1001", "vip")
    fake_shopify.add_order("2002")

    code = run_cli(["--env-file", str(env_file), "--simulate", "--order-id", "1001", "--no-console"])

    assert code == 0
    assert fake_shopify.tag_writes == [("1001", "vip, status_in_transit")]
    # the synthetic tracking number never reaches a real fulfillment
    assert fake_shopify.created == []
    assert fake_shopify.orders["2002"]["tags"] == ""


def test_replay_run_writes_csv_report_and_log(env_file, fake_shopify, tmp_path):
    fake_shopify.add_order("1", tracking="PF1")
    fake_shopify.add_order("2")
    replay = tmp_path / "replay.json"
    replay.write_text(json.dumps([
        {"trackingNumber": "PF1", "trackingData": [{"eventCode": "SCOT"}, {"eventCode": "POD"}]},
    ]))
    report = tmp_path / "out" / "sync.csv"

    code = run_cli([
        "--env-file", str(env_file),
        "--replay-file", str(replay),
        "--report", str(report),
        "--no-console",
    ])

    assert code == 0
    assert fake_shopify.orders["1"]["tags"] == "status_delivered"
    text = report.read_text(encoding="utf-8")
    assert "delivered" in text and "no-tracking-number" in text
    log_text = (tmp_path / "out" / "sync.log").read_text(encoding="utf-8")
    assert "Sync finished: processed=1 skipped=1 failed=0" in log_text


def test_failed_order_gives_exit_1(env_file, fake_shopify, tmp_path):
    fake_shopify.add_order("1", tracking="PF1")
    fake_shopify.fail_tags_for.add("1")
    replay = tmp_path / "replay.json"
    replay.write_text(json.dumps({"PF1": {"trackingData": [{"eventCode": "ARRH"}]}}))

    code = run_cli(["--env-file", str(env_file), "--replay-file", str(replay), "--no-console"])
    assert code == 1


def test_missing_replay_file_is_a_setup_error(env_file, fake_shopify, tmp_path):
    code = run_cli(["--env-file", str(env_file), "--replay-file", str(tmp_path / "nope.json"),
                    "--no-console"])
    assert code == 2


def test_listing_failure_returns_1(env_file, monkeypatch, tmp_path):
    class DownShop:
        def list_orders(self, order_id=None):
            raise ApiError("orders.json returned HTTP 503", transient=True, status_code=503)

        def get_metafields(self, order_id):
            return {}

    monkeypatch.setattr("order_status_sync.api.shopify.ShopifyClient", lambda *a, **k: DownShop())
    replay = tmp_path / "replay.json"
    replay.write_text("[]")

    code = run_cli(["--env-file", str(env_file), "--replay-file", str(replay), "--no-console"])
    assert code == 1


def test_parser_defaults():
    args = cli.build_parser().parse_args([])
    assert args.order_id is None
    assert args.simulate is False
    assert args.env_file == Path(".env")
