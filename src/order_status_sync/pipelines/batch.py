from __future__ import annotations

import threading
from typing import List, Optional, Protocol

from order_status_sync.api.errors import ApiError
from order_status_sync.models import Order, ReconcileOutcome, RunSummary
from .reconciler import StatusReconciler


class OrderSource(Protocol):
    def list_orders(self, order_id: Optional[str] = None) -> List[Order]:
        ...


class BatchOrchestrator:
    """Runs the reconciler over every eligible order, one at a time.

    A failure on one order is logged and recorded; the batch carries on.
    Only a failure to list orders escapes run(). cancel() stops the batch
    before the next order; the order in flight finishes.
    """

    def __init__(self, logger, *, orders: OrderSource, reconciler: StatusReconciler) -> None:
        self.logger = logger
        self.orders = orders
        self.reconciler = reconciler
        self._cancel = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(self, order_id: Optional[str] = None) -> RunSummary:
        summary = RunSummary()
        orders = self.orders.list_orders(order_id)
        if order_id is not None:
            orders = [o for o in orders if str(o.id) == str(order_id)]
            if not orders:
                self.logger.warning("Order %s not found", order_id)
        self.logger.info("Reconciling %d order(s)", len(orders))

        for order in orders:
            if self._cancel.is_set():
                summary.cancelled = True
                self.logger.warning(
                    "Run cancelled; %d order(s) not started", len(orders) - summary.total)
                break
            summary.record(self._reconcile_one(order))

        self.logger.info(
            "Sync finished: processed=%d skipped=%d failed=%d",
            summary.processed, summary.skipped, summary.failed,
        )
        if summary.failed:
            self.logger.warning("Failed orders: %s",
                                ", ".join(summary.failed_order_ids()))
        return summary

    def _reconcile_one(self, order: Order) -> ReconcileOutcome:
        try:
            return self.reconciler.reconcile(order)
        except ApiError as ex:
            self.logger.error("Order %s failed (%s): %s", order.id, ex.kind, ex)
            return ReconcileOutcome.failed(order.id, ex.kind, str(ex))
        except Exception as ex:
            self.logger.exception("Order %s failed unexpectedly: %s", order.id, ex)
            return ReconcileOutcome.failed(order.id, "unexpected", str(ex))
