"""
Supply Chain Services

Product and custody-event views assembled from the traceability ledger.
"""

from .mappers import Rejected, map_event, map_events, map_product, map_products, map_trace
from .models import (
    UNKNOWN_EVENT_TYPE,
    Coordinates,
    DashboardSummary,
    EventType,
    Product,
    RecentEvent,
    SupplyChainEvent,
)
from .trace_aggregator import TraceAggregator, create_trace_aggregator

__all__ = [
    "TraceAggregator",
    "create_trace_aggregator",
    "Product",
    "SupplyChainEvent",
    "EventType",
    "Coordinates",
    "DashboardSummary",
    "RecentEvent",
    "UNKNOWN_EVENT_TYPE",
    "Rejected",
    "map_product",
    "map_products",
    "map_event",
    "map_events",
    "map_trace",
]
