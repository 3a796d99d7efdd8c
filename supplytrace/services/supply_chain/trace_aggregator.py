"""
Trace Aggregator

Assembles product and event views from the ledger:
- Product list (cached)
- Per-batch trace lookup
- Concurrent fan-out of every product's trace into one event feed (cached)
- Dashboard statistics (cached)
- Product registration and event recording, which invalidate the cache

Per-record decode problems are logged and the record dropped. During the
fan-out a failed trace query contributes an empty trace for that product
only; everywhere else GatewayFailure propagates to the caller.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence

from ..caching import ResultCache, invalidates_cache
from ..ledger.decoder import ValueDecoder
from ..ledger.errors import GatewayFailure, ValidationFailure
from ..ledger.gateway import LedgerGateway, SubprocessRunner
from ..ledger.values import Scalar, Value, unwrap
from .mappers import Rejected, map_product, map_products, map_result, map_trace
from .models import DashboardSummary, Product, SupplyChainEvent, summarize
from .validation import validate_event, validate_product

logger = logging.getLogger(__name__)

PRODUCTS_KEY = "products"
EVENTS_KEY = "events"
DASHBOARD_KEY = "dashboard"

DEFAULT_MAX_WORKERS = 8


class TraceAggregator:
    """
    Typed access to the supply chain ledger.

    Owns its ResultCache; mapped products and events are immutable and
    safe to share.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        cache: Optional[ResultCache] = None,
        decoder: Optional[ValueDecoder] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.gateway = gateway
        self.cache = cache or ResultCache()
        self.decoder = decoder or ValueDecoder()
        self.max_workers = max(1, max_workers)

    def _decode(self, text: str, what: str) -> Optional[Value]:
        result = self.decoder.decode_response(text)
        for error in result.errors:
            logger.warning(f"Could not fully decode {what}: {error}")
        return result.first

    # =========================================================================
    # Products
    # =========================================================================

    def list_products(self) -> List[Product]:
        """All products on the ledger."""
        return list(self.cache.get_or_set(PRODUCTS_KEY, self._fetch_products))

    def _fetch_products(self) -> tuple:
        products = map_products(self._decode(self.gateway.list_products(), "product list"))
        logger.info(f"Loaded {len(products)} products from ledger")
        return tuple(products)

    def find_product(self, batch_number: str) -> Optional[Product]:
        """Product registered under ``batch_number``, or None."""
        matches = [p for p in self.list_products() if p.batch_number == batch_number]
        if len(matches) > 1:
            logger.warning(f"Batch number {batch_number} is shared by {len(matches)} products")
        return matches[0] if matches else None

    def get_product(self, product_id: str) -> Optional[Product]:
        """Product by ledger id, or None when the ledger has no such product."""
        ok, payload = map_result(self._decode(self.gateway.get_product(product_id), "product"))
        if not ok:
            logger.info(f"Product {product_id} not found: {_text_of(payload)}")
            return None

        product = map_product(payload)
        if isinstance(product, Rejected):
            logger.warning(f"Product {product_id} could not be mapped: {product.reason}")
            return None
        return product

    # =========================================================================
    # Traces
    # =========================================================================

    def trace_product(self, product_id: str) -> List[SupplyChainEvent]:
        """Events of one product in append order; raises GatewayFailure."""
        text = self.gateway.get_trace(product_id)
        return map_trace(self._decode(text, f"trace of {product_id}"), product_id)

    def trace(self, batch_number: str) -> Optional[List[SupplyChainEvent]]:
        """
        Events recorded against ``batch_number``.

        Returns None when no product has that batch number and an empty
        list when the product exists but has no events.
        """
        product = self.find_product(batch_number)
        if product is None:
            logger.info(f"No product found with batch number: {batch_number}")
            return None
        return self.trace_product(product.id)

    def all_events(self) -> List[SupplyChainEvent]:
        """Every product's events, fetched concurrently."""
        return list(self.cache.get_or_set(EVENTS_KEY, self._fetch_all_events))

    def _fetch_all_events(self) -> tuple:
        products = self.list_products()
        if not products:
            return ()

        traces: Dict[str, List[SupplyChainEvent]] = {}
        workers = min(self.max_workers, len(products))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self.trace_product, product.id): product.id
                for product in products
            }
            for future in as_completed(futures):
                product_id = futures[future]
                try:
                    traces[product_id] = future.result()
                except Exception as e:
                    logger.warning(f"Error getting trace for product {product_id}: {e}")
                    traces[product_id] = []

        events = [event for product in products for event in traces.get(product.id, [])]
        logger.info(f"Aggregated {len(events)} events across {len(products)} products")
        return tuple(events)

    def verify_authenticity(self, batch_number: str) -> Optional[bool]:
        """
        Ledger verdict on a product's trace (non-empty and chronological).

        None when the batch number is unknown.
        """
        product = self.find_product(batch_number)
        if product is None:
            return None

        text = self.gateway.verify_product_authenticity(product.id)
        ok, payload = map_result(self._decode(text, "authenticity check"))
        payload = unwrap(payload)
        if ok and isinstance(payload, Scalar) and isinstance(payload.value, bool):
            return payload.value
        raise GatewayFailure(reason=_text_of(payload) or f"Unexpected verification response: {text}",
                             stdout=text)

    # =========================================================================
    # Dashboard
    # =========================================================================

    def dashboard_summary(self, recent: int = 5) -> DashboardSummary:
        """Totals and the most recent events."""
        return self.cache.get_or_set(
            f"{DASHBOARD_KEY}:{recent}",
            lambda: summarize(self.list_products(), self.all_events(), limit=recent),
        )

    def test_connection(self) -> str:
        """Raw product-list response, bypassing the cache."""
        return self.gateway.list_products()

    # =========================================================================
    # Mutations
    # =========================================================================

    @invalidates_cache
    def create_product(
        self,
        name: str,
        description: str,
        manufacturer: str,
        batch_number: str,
        ingredients: Optional[Sequence[str]] = None,
        certifications: Optional[Sequence[str]] = None,
    ) -> str:
        """Register a product; returns its ledger id."""
        product = validate_product(name, description, manufacturer, batch_number,
                                   ingredients, certifications)
        if self.find_product(product.batch_number) is not None:
            raise ValidationFailure("batch_number", "is already registered", product.batch_number)

        text = self.gateway.create_product(
            product.name,
            product.description,
            product.manufacturer,
            product.batch_number,
            product.ingredients,
            product.certifications,
        )
        product_id = self._returned_id(text, "create_product")
        logger.info(f"Created product {product_id} ({product.batch_number})")
        return product_id

    @invalidates_cache
    def append_event(
        self,
        product_id: str,
        event_type: str,
        location: str,
        actor: str,
        details: str = "",
        coordinates=None,
        temperature=None,
        humidity=None,
    ) -> str:
        """Append a custody event to a product's trace; returns the event id."""
        event = validate_event(product_id, event_type, location, actor, details,
                               coordinates, temperature, humidity)
        coords = (event.coordinates.lat, event.coordinates.lng) if event.coordinates else None

        text = self.gateway.append_event(
            event.product_id,
            event.event_type.tag,
            event.location,
            event.actor,
            event.details,
            coordinates=coords,
            temperature=event.temperature,
            humidity=event.humidity,
        )
        event_id = self._returned_id(text, "add_supply_chain_event")
        logger.info(f"Recorded {event.event_type.label} event {event_id} for product {event.product_id}")
        return event_id

    def _returned_id(self, text: str, method: str) -> str:
        returned = _text_of(self._decode(text, f"{method} response"))
        if returned is None:
            logger.warning(f"{method} returned no id; passing raw response through")
            return text.strip()
        return returned


def _text_of(value: Optional[Value]) -> Optional[str]:
    value = unwrap(value)
    if isinstance(value, Scalar) and isinstance(value.value, str):
        return value.value
    return None


def create_trace_aggregator(config) -> TraceAggregator:
    """Build an aggregator, gateway and cache from a configuration object."""
    runner = SubprocessRunner(
        timeout=config.GATEWAY_TIMEOUT,
        cwd=config.LEDGER_PROJECT_DIR,
    )
    gateway = LedgerGateway(
        runner=runner,
        dfx_binary=config.DFX_BINARY,
        canister=config.LEDGER_CANISTER,
        network=config.LEDGER_NETWORK,
        error_markers=config.GATEWAY_ERROR_MARKERS,
    )
    return TraceAggregator(
        gateway=gateway,
        cache=ResultCache(default_ttl=config.CACHE_TTL_SECONDS),
        max_workers=config.TRACE_MAX_WORKERS,
    )
