# src/order_status_sync/__init__.py
from .pipelines.batch import BatchOrchestrator
from .pipelines.fulfillment_writer import FulfillmentWriter
from .pipelines.reconciler import StatusReconciler

__all__ = [
    "BatchOrchestrator",
    "FulfillmentWriter",
    "StatusReconciler",
]
