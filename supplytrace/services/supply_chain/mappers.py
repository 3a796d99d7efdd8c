"""
Domain Mappers

Pure functions projecting decoded ledger values onto Product and
SupplyChainEvent. A record missing an essential field is returned as
Rejected so batch callers can drop it and carry on.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from ..ledger.values import Record, Scalar, Value, Variant, Vector, unwrap
from .models import (
    UNKNOWN_EVENT_TYPE,
    Coordinates,
    EventType,
    Product,
    SupplyChainEvent,
)

logger = logging.getLogger(__name__)

NANOS_PER_MILLI = 1_000_000
MILLIS_PER_SECOND = 1000

# Smallest current-era epoch value at each resolution (ns, us, ms)
_EPOCH_UNIT_FLOORS = (
    (10 ** 17, NANOS_PER_MILLI),
    (10 ** 14, 1000),
    (10 ** 11, 1),
)

DEFAULT_ACTOR = "Unknown Actor"
DEFAULT_DETAILS = "Event recorded"

PRODUCT_REQUIRED_FIELDS = ("id", "name", "description", "manufacturer", "batch_number")


@dataclass(frozen=True)
class Rejected:
    """A record that could not be mapped, with the reason."""
    reason: str
    value: Any = None


def now_millis() -> int:
    return int(time.time() * 1000)


def ledger_time_millis(value: int) -> int:
    """
    Ledger time in milliseconds since the epoch.

    The canister stamps records in nanoseconds, though some deployments
    store milliseconds; the resolution is inferred from the magnitude.
    Plain seconds are scaled up.
    """
    for floor, divisor in _EPOCH_UNIT_FLOORS:
        if value >= floor:
            return value // divisor
    return value * MILLIS_PER_SECOND


# =========================================================================
# Field extraction
# =========================================================================

def _scalar(record: Record, name: str) -> Any:
    return _scalar_value(record.get(name))


def _scalar_value(value: Optional[Value]) -> Any:
    value = unwrap(value)
    return value.value if isinstance(value, Scalar) else None


def text_field(record: Record, name: str) -> Optional[str]:
    raw = _scalar(record, name)
    return raw if isinstance(raw, str) else None


def int_field(record: Record, name: str) -> Optional[int]:
    raw = _scalar(record, name)
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        digits = raw.strip().replace("_", "")
        if digits.isdigit():
            return int(digits)
    return None


def float_field(record: Record, name: str) -> Optional[float]:
    """Numeric field as float; numeric strings are coerced."""
    return _as_float(_scalar(record, name))


def _as_float(raw: Any) -> Optional[float]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw.strip().replace("_", ""))
        except ValueError:
            return None
    return None


def strings_field(record: Record, name: str) -> Tuple[str, ...]:
    value = unwrap(record.get(name))
    if not isinstance(value, Vector):
        return ()
    return tuple(
        item.value for item in value
        if isinstance(item, Scalar) and isinstance(item.value, str)
    )


def event_type_label(value: Optional[Value]) -> Optional[str]:
    """Display label for an event_type value; None if it has no tag at all."""
    value = unwrap(value)
    if isinstance(value, Variant):
        tag = value.tag
    elif isinstance(value, Scalar) and isinstance(value.value, str):
        tag = value.value
    else:
        return None

    event_type = EventType.from_label(tag)
    if event_type is None:
        logger.warning(f"Unrecognised event type tag: {tag}")
        return UNKNOWN_EVENT_TYPE
    return event_type.label


def coordinates_field(record: Record, name: str = "coordinates") -> Optional[Coordinates]:
    value = unwrap(record.get(name))
    if not isinstance(value, Record):
        return None

    if "lat" in value and "lng" in value:
        lat, lng = float_field(value, "lat"), float_field(value, "lng")
    else:
        items = value.positional()
        if len(items) < 2:
            return None
        lat, lng = (_as_float(_scalar_value(item)) for item in items[:2])
    if lat is None or lng is None:
        return None

    coordinates = Coordinates(lat, lng)
    if not coordinates.is_valid():
        logger.warning(f"Dropping out-of-range coordinates: {lat}, {lng}")
        return None
    return coordinates


# =========================================================================
# Product mapping
# =========================================================================

def map_product(value: Optional[Value]) -> Union[Product, Rejected]:
    record = unwrap(value)
    if not isinstance(record, Record):
        return Rejected("product is not a record", value)

    texts = {name: text_field(record, name) for name in PRODUCT_REQUIRED_FIELDS}
    missing = [name for name, found in texts.items() if found is None]
    if missing:
        return Rejected(f"missing required field(s): {', '.join(missing)}", value)
    if not texts["id"] or not texts["batch_number"]:
        return Rejected("empty id or batch_number", value)

    raw_date = int_field(record, "production_date")
    estimated = raw_date is None
    if estimated:
        production_date = int(time.time())
        logger.debug(f"Product {texts['id']} has no production_date; using current time")
    else:
        production_date = ledger_time_millis(raw_date) // MILLIS_PER_SECOND

    return Product(
        id=texts["id"],
        name=texts["name"],
        description=texts["description"],
        manufacturer=texts["manufacturer"],
        batch_number=texts["batch_number"],
        production_date=production_date,
        ingredients=strings_field(record, "ingredients"),
        certifications=strings_field(record, "certifications"),
        production_date_estimated=estimated,
    )


def map_products(value: Optional[Value]) -> List[Product]:
    """Map a vector of product records, dropping the ones that are rejected."""
    vector = unwrap(value)
    if not isinstance(vector, Vector):
        if value is not None:
            logger.warning(f"Expected a product vector, got {type(vector).__name__}")
        return []

    products = []
    for position, item in enumerate(vector):
        result = map_product(item)
        if isinstance(result, Rejected):
            logger.warning(f"Skipping product record {position}: {result.reason}")
            continue
        products.append(result)
    return products


# =========================================================================
# Event mapping
# =========================================================================

def map_event(
    value: Optional[Value],
    product_id: str,
    index: int = 0,
    captured_at: Optional[int] = None,
) -> Union[SupplyChainEvent, Rejected]:
    record = unwrap(value)
    if not isinstance(record, Record):
        return Rejected("event is not a record", value)

    event_type = event_type_label(record.get("event_type"))
    if event_type is None:
        return Rejected("missing event_type", value)
    location = text_field(record, "location")
    if location is None:
        return Rejected("missing location", value)

    captured_at = now_millis() if captured_at is None else captured_at
    raw_time = int_field(record, "timestamp")
    timestamp = ledger_time_millis(raw_time) if raw_time is not None else 0
    if timestamp <= 0:
        # A zero timestamp is indistinguishable from a missing one.
        timestamp = captured_at

    return SupplyChainEvent(
        id=text_field(record, "id") or f"event-{product_id}-{index}",
        product_id=product_id,
        event_type=event_type,
        location=location,
        timestamp=timestamp,
        actor=text_field(record, "actor") or DEFAULT_ACTOR,
        details=text_field(record, "details") or DEFAULT_DETAILS,
        coordinates=coordinates_field(record),
        temperature=float_field(record, "temperature"),
        humidity=float_field(record, "humidity"),
    )


def map_events(value: Optional[Value], product_id: str) -> List[SupplyChainEvent]:
    """Map an events vector in append order; ``index`` counts accepted events only."""
    vector = unwrap(value)
    if not isinstance(vector, Vector):
        return []

    captured_at = now_millis()
    events: List[SupplyChainEvent] = []
    for position, item in enumerate(vector):
        result = map_event(item, product_id, index=len(events), captured_at=captured_at)
        if isinstance(result, Rejected):
            logger.warning(f"Skipping event {position} of product {product_id}: {result.reason}")
            continue
        events.append(result)
    return events


def map_trace(value: Optional[Value], product_id: str) -> List[SupplyChainEvent]:
    """
    Events of a trace response value.

    ``null`` and ``opt null`` both mean the product has no events.
    """
    trace = unwrap(value)
    if trace is None:
        return []
    if not isinstance(trace, Record):
        logger.warning(f"Trace for product {product_id} is not a record")
        return []
    if "events" not in trace:
        logger.warning(f"Trace for product {product_id} has no events field")
        return []
    return map_events(trace.get("events"), product_id)


def map_result(value: Optional[Value]) -> Tuple[bool, Optional[Value]]:
    """Split a ledger ``Result`` variant into (is_ok, payload)."""
    result = unwrap(value)
    if isinstance(result, Variant):
        if result.is_tag("Ok"):
            return True, result.payload
        if result.is_tag("Err"):
            return False, result.payload
    return False, result
