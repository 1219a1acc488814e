from .resolvers import build_resolver, from_fulfillment
from .source import LiveTrackingSource, SimulatedTrackingSource, TrackingSource

__all__ = [
    "LiveTrackingSource",
    "SimulatedTrackingSource",
    "TrackingSource",
    "build_resolver",
    "from_fulfillment",
]
