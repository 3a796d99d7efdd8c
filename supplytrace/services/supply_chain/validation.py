"""
Input validation for mutating ledger operations.

Runs before any gateway call; a rejected field raises ValidationFailure
and nothing is sent to the ledger.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

from ..ledger.errors import ValidationFailure
from .models import (
    HUMIDITY_RANGE,
    LATITUDE_RANGE,
    LONGITUDE_RANGE,
    TEMPERATURE_RANGE,
    Coordinates,
    EventType,
)


@dataclass(frozen=True)
class NewProduct:
    """Normalised create-product input."""
    name: str
    description: str
    manufacturer: str
    batch_number: str
    ingredients: Tuple[str, ...]
    certifications: Tuple[str, ...]


@dataclass(frozen=True)
class NewEvent:
    """Normalised append-event input."""
    product_id: str
    event_type: EventType
    location: str
    actor: str
    details: str
    coordinates: Optional[Coordinates] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None


def _required_text(field_name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailure(field_name, "must be a non-empty string", value)
    return value.strip()


def _optional_text(field_name: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationFailure(field_name, "must be a string", value)
    return value.strip()


def _text_list(field_name: str, values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = values.split(",")
    items = []
    for item in values:
        if not isinstance(item, str):
            raise ValidationFailure(field_name, "must contain only strings", item)
        if item.strip():
            items.append(item.strip())
    return tuple(items)


def _optional_number(field_name: str, value: Any, bounds: Tuple[float, float]) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationFailure(field_name, "must be a number", value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationFailure(field_name, "must be a number", value)
    if math.isnan(number) or not bounds[0] <= number <= bounds[1]:
        raise ValidationFailure(field_name, f"must be between {bounds[0]:g} and {bounds[1]:g}", value)
    return number


def _coordinates(value: Any) -> Optional[Coordinates]:
    if value is None:
        return None
    if isinstance(value, Coordinates):
        lat, lng = value.lat, value.lng
    elif isinstance(value, dict):
        if not value:
            return None
        if "lat" not in value or "lng" not in value:
            raise ValidationFailure("coordinates", "must have lat and lng", value)
        lat, lng = value["lat"], value["lng"]
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        lat, lng = value
    else:
        raise ValidationFailure("coordinates", "must be a lat/lng pair", value)

    lat = _optional_number("latitude", lat, LATITUDE_RANGE)
    lng = _optional_number("longitude", lng, LONGITUDE_RANGE)
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise ValidationFailure("coordinates", "needs both lat and lng", value)
    return Coordinates(lat, lng)


def validate_product(
    name: Any,
    description: Any,
    manufacturer: Any,
    batch_number: Any,
    ingredients: Optional[Iterable[Any]] = None,
    certifications: Optional[Iterable[Any]] = None,
) -> NewProduct:
    return NewProduct(
        name=_required_text("name", name),
        description=_optional_text("description", description),
        manufacturer=_required_text("manufacturer", manufacturer),
        batch_number=_required_text("batch_number", batch_number),
        ingredients=_text_list("ingredients", ingredients),
        certifications=_text_list("certifications", certifications),
    )


def validate_event(
    product_id: Any,
    event_type: Any,
    location: Any,
    actor: Any,
    details: Any,
    coordinates: Any = None,
    temperature: Any = None,
    humidity: Any = None,
) -> NewEvent:
    if isinstance(event_type, EventType):
        resolved = event_type
    else:
        resolved = EventType.from_label(_required_text("event_type", event_type))
        if resolved is None:
            labels = ", ".join(member.label for member in EventType)
            raise ValidationFailure("event_type", f"must be one of: {labels}", event_type)

    return NewEvent(
        product_id=_required_text("product_id", product_id),
        event_type=resolved,
        location=_required_text("location", location),
        actor=_required_text("actor", actor),
        details=_optional_text("details", details),
        coordinates=_coordinates(coordinates),
        temperature=_optional_number("temperature", temperature, TEMPERATURE_RANGE),
        humidity=_optional_number("humidity", humidity, HUMIDITY_RANGE),
    )
