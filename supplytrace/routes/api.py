"""
Supply Chain API Routes

Provides:
- Product listing, lookup and registration
- Custody event feed and event recording
- Per-batch trace and authenticity check
- Dashboard statistics
- Ledger connection test

Responses use the envelope {"success": bool, "result": ...} or
{"success": false, "error": "..."}.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from supplytrace import __version__
from supplytrace.app import get_aggregator
from supplytrace.services.ledger.errors import GatewayFailure, ValidationFailure
from supplytrace.services.supply_chain import TraceAggregator

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def _aggregator() -> TraceAggregator:
    return get_aggregator(current_app)


def _ok(result, status=200):
    return jsonify({'success': True, 'result': result}), status


def _error(message, status):
    return jsonify({'success': False, 'error': message}), status


@api_bp.errorhandler(ValidationFailure)
def handle_validation_failure(e):
    return _error(str(e), 400)


@api_bp.errorhandler(GatewayFailure)
def handle_gateway_failure(e):
    return _error(str(e), 502)


@api_bp.route('/health', methods=['GET'])
def health():
    """Service health and cache statistics."""
    return jsonify({
        'status': 'healthy',
        'version': __version__,
        'cache': _aggregator().cache.get_stats().to_dict(),
    })


@api_bp.route('/test-connection', methods=['GET'])
def test_connection():
    """Issue the product-list query and report the raw ledger response."""
    try:
        raw = _aggregator().test_connection()
    except GatewayFailure as e:
        return _error(str(e), 500)
    return jsonify({'success': True, 'result': 'Connection successful', 'raw': raw})


# Products

@api_bp.route('/products', methods=['GET'])
def list_products():
    """List all products."""
    products = _aggregator().list_products()
    return _ok([product.to_dict() for product in products])


@api_bp.route('/products', methods=['POST'])
def create_product():
    """
    Register a new product.

    Request body:
    {
        "name": "Arabica Coffee",
        "description": "Single origin",
        "manufacturer": "Highland Growers",
        "batch_number": "BATCH-001",
        "ingredients": ["coffee beans"],
        "certifications": ["Organic"]
    }
    """
    data = request.get_json(silent=True) or {}
    product_id = _aggregator().create_product(
        name=data.get('name'),
        description=data.get('description', ''),
        manufacturer=data.get('manufacturer'),
        batch_number=data.get('batch_number'),
        ingredients=data.get('ingredients') or [],
        certifications=data.get('certifications') or [],
    )
    return _ok(product_id, 201)


@api_bp.route('/products/<product_id>', methods=['GET'])
def get_product(product_id):
    """Get a product by ledger id."""
    product = _aggregator().get_product(product_id)
    if product is None:
        return _error(f"Product not found: {product_id}", 404)
    return _ok(product.to_dict())


@api_bp.route('/products/<batch_number>/verify', methods=['GET'])
def verify_product(batch_number):
    """Ask the ledger whether a product's trace is authentic."""
    verdict = _aggregator().verify_authenticity(batch_number)
    if verdict is None:
        return _error(f"No product with batch number: {batch_number}", 404)
    return _ok({'batch_number': batch_number, 'authentic': verdict})


# Events

@api_bp.route('/events', methods=['GET'])
def list_events():
    """All events across every product, newest first."""
    events = sorted(_aggregator().all_events(), key=lambda e: e.timestamp, reverse=True)
    return _ok([event.to_dict() for event in events])


@api_bp.route('/events', methods=['POST'])
def add_event():
    """
    Record a custody event.

    Request body:
    {
        "product_id": "1755781994917_1000",
        "event_type": "Quality Check",
        "location": "Port of Seattle",
        "actor": "inspector-7",
        "details": "Moisture within tolerance",
        "coordinates": {"lat": 47.6, "lng": -122.3},
        "temperature": 18.5,
        "humidity": 40
    }
    """
    data = request.get_json(silent=True) or {}
    logger.debug(f"Received event request: {data}")
    event_id = _aggregator().append_event(
        product_id=data.get('product_id'),
        event_type=data.get('event_type'),
        location=data.get('location'),
        actor=data.get('actor'),
        details=data.get('details', ''),
        coordinates=data.get('coordinates'),
        temperature=data.get('temperature'),
        humidity=data.get('humidity'),
    )
    return _ok(event_id, 201)


@api_bp.route('/events/<batch_number>', methods=['GET'])
def trace_batch(batch_number):
    """Trace of the product registered under a batch number."""
    events = _aggregator().trace(batch_number)
    if events is None:
        return _error(f"No product with batch number: {batch_number}", 404)
    return _ok([event.to_dict() for event in events])


# Dashboard

@api_bp.route('/dashboard', methods=['GET'])
def dashboard():
    """Totals and recent events."""
    return _ok(_aggregator().dashboard_summary().to_dict())
