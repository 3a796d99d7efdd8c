"""
Supply Chain Domain Model

Products and custody events as read back from the ledger. All objects are
immutable value types; they carry no references to the ledger or cache.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..ledger.values import idl_hash

UNKNOWN_EVENT_TYPE = "Unknown"
UNKNOWN_PRODUCT_NAME = "Unknown Product"

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)
TEMPERATURE_RANGE = (-50.0, 100.0)  # degrees Celsius, advisory
HUMIDITY_RANGE = (0.0, 100.0)  # percent, advisory


class EventType(Enum):
    """Custody event categories; values are the ledger's variant tags."""
    PRODUCTION = "Production"
    QUALITY_CHECK = "QualityCheck"
    PACKAGING = "Packaging"
    SHIPPING = "Shipping"
    CUSTOMS = "Customs"
    DELIVERY = "Delivery"
    RETAIL = "Retail"

    @property
    def tag(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return _LABELS_BY_TAG.get(self.value, self.value)

    @classmethod
    def from_tag(cls, tag: str) -> Optional["EventType"]:
        """Resolve a variant tag, including the numeric id form."""
        for member in cls:
            if member.value == tag:
                return member
        if tag.isdigit():
            for member in cls:
                if idl_hash(member.value) == int(tag):
                    return member
        return None

    @classmethod
    def from_label(cls, label: str) -> Optional["EventType"]:
        """Resolve a display label ("Quality Check") or a tag ("QualityCheck")."""
        for member in cls:
            if member.label == label:
                return member
        return cls.from_tag(label)


_LABELS_BY_TAG = {
    "QualityCheck": "Quality Check",
}


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair in decimal degrees."""
    lat: float
    lng: float

    def is_valid(self) -> bool:
        return (
            LATITUDE_RANGE[0] <= self.lat <= LATITUDE_RANGE[1]
            and LONGITUDE_RANGE[0] <= self.lng <= LONGITUDE_RANGE[1]
        )

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class Product:
    """Product registered on the ledger."""
    id: str
    name: str
    description: str
    manufacturer: str
    batch_number: str
    production_date: int  # seconds since epoch
    ingredients: Tuple[str, ...] = ()
    certifications: Tuple[str, ...] = ()
    production_date_estimated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "manufacturer": self.manufacturer,
            "batch_number": self.batch_number,
            "production_date": self.production_date,
            "production_date_estimated": self.production_date_estimated,
            "ingredients": list(self.ingredients),
            "certifications": list(self.certifications),
        }


@dataclass(frozen=True)
class SupplyChainEvent:
    """Custody event appended to a product's trace."""
    id: str
    product_id: str
    event_type: str  # display label, or UNKNOWN_EVENT_TYPE
    location: str
    timestamp: int  # milliseconds since epoch
    actor: str
    details: str
    coordinates: Optional[Coordinates] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None

    @property
    def recorded_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "event_type": self.event_type,
            "location": self.location,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "details": self.details,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "temperature": self.temperature,
            "humidity": self.humidity,
        }


@dataclass(frozen=True)
class RecentEvent:
    """Dashboard row for one recent event."""
    id: str
    product_name: str
    event_type: str
    timestamp: str  # ISO 8601
    location: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "event_type": self.event_type,
            "timestamp": self.timestamp,
            "location": self.location,
        }


@dataclass(frozen=True)
class DashboardSummary:
    """Headline statistics for the dashboard."""
    total_products: int = 0
    total_events: int = 0
    recent_events: Tuple[RecentEvent, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_products": self.total_products,
            "total_events": self.total_events,
            "recent_events": [event.to_dict() for event in self.recent_events],
        }


def _iso_timestamp(event: SupplyChainEvent) -> str:
    try:
        return event.recorded_at.isoformat()
    except (OverflowError, OSError, ValueError):
        return str(event.timestamp)


def summarize(products: List[Product], events: List[SupplyChainEvent], limit: int = 5) -> DashboardSummary:
    """Totals plus the ``limit`` newest events, labelled with product names."""
    names = {product.id: product.name for product in products}
    newest = sorted(events, key=lambda event: event.timestamp, reverse=True)[:limit]
    recent = tuple(
        RecentEvent(
            id=event.id,
            product_name=names.get(event.product_id, UNKNOWN_PRODUCT_NAME),
            event_type=event.event_type,
            timestamp=_iso_timestamp(event),
            location=event.location,
        )
        for event in newest
    )
    return DashboardSummary(
        total_products=len(products),
        total_events=len(events),
        recent_events=recent,
    )
