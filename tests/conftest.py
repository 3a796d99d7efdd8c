"""
Pytest configuration and fixtures for the SupplyTrace test suite.
"""

import re
import threading

import pytest

from supplytrace.services.caching import ResultCache
from supplytrace.services.ledger.decoder import ValueDecoder
from supplytrace.services.ledger.errors import GatewayFailure
from supplytrace.services.ledger.gateway import LedgerGateway
from supplytrace.services.supply_chain import TraceAggregator


# ============================================================================
# Canned ledger responses
# ============================================================================

PRODUCTS_RESPONSE = """(
  vec {
    record {
      id = "p1";
      name = "Arabica Coffee";
      description = "Single origin beans";
      manufacturer = "Highland Growers";
      batch_number = "B-001";
      production_date = 1_700_000_000_000_000_000 : nat64;
      ingredients = vec { "coffee beans" };
      certifications = vec { "Organic"; "Fair Trade" };
    };
    record {
      id = "p2";
      name = "Green Tea";
      description = "Loose leaf";
      manufacturer = "Uji Estates";
      batch_number = "B-002";
      production_date = 1_700_000_100_000_000_000 : nat64;
      ingredients = vec {};
      certifications = vec {};
    };
    record {
      id = "p3";
      name = "Cocoa Nibs";
      description = "Roasted { and } crushed";
      manufacturer = "Rio Cacao";
      batch_number = "B-003";
      production_date = 1_700_000_200_000_000_000 : nat64;
      ingredients = vec { "cocoa" };
      certifications = vec {};
    };
  },
)"""

TRACE_P1 = """(
  opt record {
    product_id = "p1";
    events = vec {
      record {
        id = "e1";
        product_id = "p1";
        event_type = variant { Production };
        location = "Huila, Colombia";
        timestamp = 1_700_000_000_000_000_000 : nat64;
        actor = "farm-coop";
        details = "Harvested";
        coordinates = opt record { 2.5 : float64; -75.5 : float64 };
        temperature = opt (22.5 : float64);
        humidity = null;
      };
      record {
        id = "e2";
        product_id = "p1";
        event_type = variant { QualityCheck };
        location = "Bogota";
        timestamp = 1_700_000_500_000_000_000 : nat64;
        actor = "inspector-7";
        details = "Moisture within tolerance";
        coordinates = null;
        temperature = null;
        humidity = opt (40.0 : float64);
      };
    };
  },
)"""

TRACE_P2 = """(
  opt record {
    product_id = "p2";
    events = vec {
      record {
        id = "e3";
        product_id = "p2";
        event_type = variant { Shipping };
        location = "Port of Kobe";
        timestamp = 1_700_000_900_000_000_000 : nat64;
        actor = "carrier-1";
        details = "Loaded";
        coordinates = null;
        temperature = null;
        humidity = null;
      };
    };
  },
)"""

TRACE_P3 = """(
  opt record {
    product_id = "p3";
    events = vec {
      record {
        id = "e4";
        product_id = "p3";
        event_type = variant { Retail };
        location = "Lisbon";
        timestamp = 1_700_000_300_000_000_000 : nat64;
        actor = "shop-9";
        details = "Shelved";
        coordinates = null;
        temperature = null;
        humidity = null;
      };
    };
  },
)"""

GET_PRODUCT_OK = """(
  variant {
    Ok = record {
      id = "p1";
      name = "Arabica Coffee";
      description = "Single origin beans";
      manufacturer = "Highland Growers";
      batch_number = "B-001";
      production_date = 1_700_000_000_000_000_000 : nat64;
      ingredients = vec { "coffee beans" };
      certifications = vec { "Organic"; "Fair Trade" };
    }
  },
)"""

_TEXT_ARG = re.compile(r'"((?:[^"\\]|\\.)*)"')


class FakeLedger:
    """
    Command runner standing in for ``dfx``.

    Records every argv and answers from canned responses keyed by method
    name; trace queries are answered per product id.
    """

    def __init__(self, canister="supply_chain"):
        self.canister = canister
        self.calls = []
        self.responses = {
            "get_all_products": PRODUCTS_RESPONSE,
            "create_product": '("1755781994917_1000")',
            "add_supply_chain_event": '("event_1755781995000")',
            "get_product": GET_PRODUCT_OK,
            "verify_product_authenticity": "(variant { Ok = true })",
        }
        self.traces = {"p1": TRACE_P1, "p2": TRACE_P2, "p3": TRACE_P3}
        self.failing = set()
        self._lock = threading.Lock()

    def __call__(self, argv):
        with self._lock:
            self.calls.append(list(argv))

        method = self.method_of(argv)
        if method == "get_supply_chain_trace":
            product_id = self.first_text_arg(argv)
            if product_id in self.failing:
                raise GatewayFailure(reason=f"Command failed with exit code 1: trace {product_id}",
                                     command=list(argv), returncode=1)
            return self.traces.get(product_id, "(null)")

        response = self.responses.get(method)
        if isinstance(response, Exception):
            raise response
        if response is None:
            raise GatewayFailure(reason=f"No canned response for {method}", command=list(argv))
        return response

    def method_of(self, argv):
        return argv[argv.index(self.canister) + 1]

    def first_text_arg(self, argv):
        match = _TEXT_ARG.search(argv[argv.index(self.canister) + 2])
        return match.group(1) if match else None

    def count(self, method):
        return sum(1 for argv in self.calls if self.method_of(argv) == method)


# ============================================================================
# Ledger Fixtures
# ============================================================================

@pytest.fixture
def fake_ledger():
    """Fake dfx command runner with canned responses."""
    return FakeLedger()


@pytest.fixture
def gateway(fake_ledger):
    """Ledger gateway wired to the fake runner."""
    return LedgerGateway(runner=fake_ledger)


@pytest.fixture
def decoder():
    """Candid text decoder."""
    return ValueDecoder()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Result cache driven by the fake clock."""
    return ResultCache(default_ttl=300, clock=clock)


@pytest.fixture
def aggregator(gateway, cache):
    """Trace aggregator over the fake ledger."""
    return TraceAggregator(gateway=gateway, cache=cache, max_workers=4)


# ============================================================================
# Flask Fixtures
# ============================================================================

@pytest.fixture
def app(aggregator):
    """Create test Flask application."""
    from supplytrace.app import create_app
    app = create_app("testing", aggregator=aggregator)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
