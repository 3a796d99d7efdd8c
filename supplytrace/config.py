"""
SupplyTrace Configuration
"""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _markers(raw):
    return tuple(marker for marker in (part.strip() for part in raw.split(",")) if marker)


class Config:
    """Base configuration."""

    # Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

    # Ledger gateway (dfx canister call ...)
    DFX_BINARY = os.environ.get("DFX_BINARY", "dfx")
    LEDGER_CANISTER = os.environ.get("LEDGER_CANISTER", "supply_chain")
    LEDGER_NETWORK = os.environ.get("LEDGER_NETWORK") or None  # None = local replica
    LEDGER_PROJECT_DIR = os.environ.get("LEDGER_PROJECT_DIR") or None
    GATEWAY_ERROR_MARKERS = _markers(
        os.environ.get("GATEWAY_ERROR_MARKERS", "Error:,error:,Product not found")
    )

    # Timeouts
    GATEWAY_TIMEOUT = float(os.environ.get("GATEWAY_TIMEOUT", 30))

    # Caching
    CACHE_TTL_SECONDS = float(os.environ.get("CACHE_TTL_SECONDS", 300))  # 5 minutes

    # Concurrent trace queries during aggregation
    TRACE_MAX_WORKERS = int(os.environ.get("TRACE_MAX_WORKERS", 8))

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""

    DEBUG = True
    TESTING = True
    DFX_BINARY = "dfx"
    LEDGER_NETWORK = None
    GATEWAY_TIMEOUT = 5.0
    TRACE_MAX_WORKERS = 4


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


def get_config(env=None):
    """Get configuration based on environment."""
    env = env or os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])


def configure_logging(level="INFO"):
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
