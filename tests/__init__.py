"""
SupplyTrace Test Suite.

Test Categories:
- Decoding: scanner, decoder and encoder
- Mapping: products, events and ledger results
- Aggregation: fan-out, caching and mutations
- Surfaces: HTTP API and command line
"""
