"""
SupplyTrace - Product journey views over an append-only supply chain ledger.
"""

__version__ = "1.0.0"
