"""
Ledger Access

Gateway to the supply chain canister and the decoder for the Candid
text it prints.
"""

from .decoder import ValueDecoder
from .errors import DecodeFailure, GatewayFailure, LedgerError, ValidationFailure
from .gateway import LedgerGateway, SubprocessRunner
from .values import DecodeResult, Opt, Record, Scalar, TupleValue, Variant, Vector

__all__ = [
    "ValueDecoder",
    "DecodeResult",
    "DecodeFailure",
    "GatewayFailure",
    "LedgerError",
    "ValidationFailure",
    "LedgerGateway",
    "SubprocessRunner",
    "Opt",
    "Record",
    "Scalar",
    "TupleValue",
    "Variant",
    "Vector",
]
