"""
Ledger Error Types

Failures raised or recorded while talking to the supply chain ledger:
- GatewayFailure: the dfx command could not run or the ledger reported an error
- DecodeFailure: response text did not have the expected structural shape
- ValidationFailure: caller-supplied fields rejected before any gateway call
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


class LedgerError(Exception):
    """Base class for ledger access errors."""


@dataclass
class GatewayFailure(LedgerError):
    """Raised when a gateway command fails or returns an error marker."""
    reason: str
    command: List[str] = field(default_factory=list)
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""

    def __str__(self) -> str:
        return self.reason


@dataclass
class DecodeFailure(LedgerError):
    """A fragment of ledger text that could not be decoded."""
    reason: str
    position: int = -1
    fragment: str = ""

    def __str__(self) -> str:
        snippet = self.fragment if len(self.fragment) <= 60 else self.fragment[:57] + "..."
        if self.position >= 0:
            return f"{self.reason} at offset {self.position}: {snippet!r}"
        return f"{self.reason}: {snippet!r}"


@dataclass
class ValidationFailure(LedgerError):
    """Raised when caller input is rejected before reaching the ledger."""
    field_name: str
    reason: str
    value: Any = None

    def __str__(self) -> str:
        return f"Invalid {self.field_name}: {self.reason}"
