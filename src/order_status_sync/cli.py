# src/order_status_sync/cli.py
from __future__ import annotations

import argparse
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .api.errors import ApiError
from .config.env import EnvError, get_app_env
from .config.logging_config import ROOT_LOGGER_NAME, default_log_path_for_report, get_logger
from .models import AppEnv
from .pipelines.batch import BatchOrchestrator
from .pipelines.fulfillment_writer import FulfillmentWriter
from .pipelines.reconciler import StatusReconciler
from .rules.classifier import EventCodeMap
from .tracking.resolvers import build_resolver
from .tracking.source import LiveTrackingSource, SimulatedTrackingSource


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="order-status-sync",
        description="Sync Shopify order status tags (and fulfillment tracking) from Palletforce tracking events.",
    )
    p.add_argument(
        "--order-id",
        default=None,
        help="Reconcile only this Shopify order id.",
    )
    p.add_argument(
        "--simulate",
        action="store_true",
        help="Use the simulated carrier for one order (TEST_ORDER_ID or --order-id). Same as TEST_MODE=true.",
    )
    p.add_argument(
        "--replay-file",
        type=Path,
        default=None,
        help="JSON file of recorded Palletforce bodies to replay instead of calling the carrier.",
    )
    p.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write a run report (.xlsx or .csv). The run log is written next to it.",
    )
    p.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to a .env file. Default: ./.env (process env wins).",
    )
    p.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Log file path. Default: next to --report when given, else none.",
    )
    p.add_argument(
        "--no-console",
        action="store_true",
        help="Disable console logging (file logging remains).",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: LOG_LEVEL or INFO",
    )
    return p


def build_orchestrator(
    env_cfg: AppEnv,
    logger,
    *,
    simulate_order_id: Optional[str] = None,
    replay_file: Optional[Path] = None,
) -> BatchOrchestrator:
    """Wire clients, tracking source and writers for one run."""
    from .api.shopify import ShopifyClient, ShopifyConfig

    shop = ShopifyClient(
        ShopifyConfig(base_url=env_cfg.shopify_base_url,
                      access_token=env_cfg.SHOPIFY_TOKEN),
    )
    code_map = EventCodeMap()

    carrier = None
    if replay_file is not None:
        from .api.replay import ReplayCarrierClient

        carrier = ReplayCarrierClient(replay_file)
        logger.info("Replay mode enabled: %s", replay_file)
    elif simulate_order_id is None:
        from .api.palletforce import PalletforceClient, PalletforceConfig

        carrier = PalletforceClient(
            PalletforceConfig(url=env_cfg.PALLETFORCE_URL,
                              access_key=env_cfg.PALLETFORCE_ACCESS_KEY),
        )
        logger.info("Live Palletforce tracking enabled (url=%s)",
                    env_cfg.PALLETFORCE_URL)

    resolver = build_resolver(
        env_cfg.TRACKING_RESOLVER,
        note_attribute=env_cfg.TRACKING_NOTE_ATTRIBUTE,
        metafield=env_cfg.TRACKING_METAFIELD,
        metafield_fetch=shop.get_metafields,
        order_name_lookup=getattr(carrier, "tracking_number_for_order_name", None),
        logger=logger,
    )

    if simulate_order_id is not None:
        tracking = SimulatedTrackingSource(simulate_order_id, code_map, resolver)
        logger.info("TEST MODE: simulated tracking for order %s", simulate_order_id)
    else:
        tracking = LiveTrackingSource(carrier, resolver)

    writer = FulfillmentWriter(
        shop,
        carrier_name=env_cfg.CARRIER_NAME,
        tracking_url_template=env_cfg.TRACKING_URL_TEMPLATE,
        notify_customer=env_cfg.NOTIFY_CUSTOMER,
    )
    reconciler = StatusReconciler(
        tracking,
        shop,
        writer,
        code_map=code_map,
        trigger_statuses=env_cfg.FULFILLMENT_TRIGGER_STATUSES,
    )
    return BatchOrchestrator(logger, orders=shop, reconciler=reconciler)


@contextmanager
def _cancel_on_signals(orchestrator: BatchOrchestrator, logger) -> Iterator[None]:
    """SIGINT/SIGTERM finish the current order, then stop the batch."""
    def _handler(signum, _frame):
        logger.warning("Received signal %s; stopping after the current order", signum)
        orchestrator.cancel()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[sig] = signal.signal(sig, _handler)
        except ValueError:
            # not in the main thread (e.g. embedded); run without handlers
            pass
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    log_file = args.log_file
    if log_file is None and args.report is not None:
        log_file = default_log_path_for_report(args.report)

    logger = get_logger(
        ROOT_LOGGER_NAME,
        level=args.log_level,
        console=not args.no_console,
        log_file=log_file,
    )
    logger.debug("Logger initialized.")

    # Configuration problems are fatal before any order is touched
    try:
        env_cfg = get_app_env(args.env_file, strict=True, require_carrier=False)
    except EnvError as e:
        logger.error("Environment error: %s", e)
        return 2

    simulate = args.simulate or env_cfg.TEST_MODE
    simulate_order_id: Optional[str] = None
    order_id = args.order_id
    if simulate:
        simulate_order_id = order_id or env_cfg.TEST_ORDER_ID or None
        if simulate_order_id is None:
            logger.error("Simulation needs --order-id or TEST_ORDER_ID")
            return 2
        if order_id and env_cfg.TEST_ORDER_ID and order_id != env_cfg.TEST_ORDER_ID:
            logger.error("--order-id %s does not match TEST_ORDER_ID %s",
                         order_id, env_cfg.TEST_ORDER_ID)
            return 2
        order_id = simulate_order_id
    elif args.replay_file is None and not (env_cfg.PALLETFORCE_URL and env_cfg.PALLETFORCE_ACCESS_KEY):
        logger.error(
            "Environment error: PALLETFORCE_URL and PALLETFORCE_ACCESS_KEY are required for live tracking")
        return 2

    logger.info("Sync started (test mode: %s)", bool(simulate))
    try:
        orchestrator = build_orchestrator(
            env_cfg,
            logger,
            simulate_order_id=simulate_order_id,
            replay_file=args.replay_file,
        )
    except (ValueError, OSError) as e:
        logger.error("Setup error: %s", e)
        return 2

    try:
        with _cancel_on_signals(orchestrator, logger):
            summary = orchestrator.run(order_id)
    except ApiError as e:
        logger.error("Could not list orders: %s", e)
        return 1

    if args.report is not None:
        from .reporting.run_report import write_report

        try:
            written = write_report(summary, args.report)
            logger.info("Wrote run report → %s", written)
        except OSError as e:
            logger.error("Could not write report %s: %s", args.report, e)
            return 1

    return summary.exit_code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
