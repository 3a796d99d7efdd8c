"""SupplyTrace service layer."""
