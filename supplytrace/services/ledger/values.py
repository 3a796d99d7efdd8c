"""
Decoded Ledger Values

Intermediate representation produced by the Candid text decoder:
- Scalar: string, integer, float or bool
- Opt: optional value (present or absent)
- Vector: ordered sequence
- Record: named (or positional) field mapping
- Variant: tagged choice with an optional payload
- TupleValue: the top-level argument tuple of a gateway response

Records and variants emitted without type information carry numeric
field ids instead of names; ``idl_hash`` maps a name to that id so
lookups work either way.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .errors import DecodeFailure


def idl_hash(name: str) -> int:
    """Candid field id for a textual field or tag name."""
    value = 0
    for byte in name.encode("utf-8"):
        value = (value * 223 + byte) % (1 << 32)
    return value


@dataclass(frozen=True)
class Scalar:
    """A literal string, integer, float or bool."""
    value: Union[str, int, float, bool]


@dataclass(frozen=True)
class Opt:
    """An optional value; ``value is None`` means absent (``null``)."""
    value: Optional["Value"] = None

    @property
    def present(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class Vector:
    """An ordered sequence of values."""
    items: Tuple["Value", ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator["Value"]:
        return iter(self.items)

    def __getitem__(self, index: int) -> "Value":
        return self.items[index]


@dataclass(frozen=True)
class Record:
    """A mapping of field names to values. Tuple fields are keyed "0", "1", ..."""
    fields: Dict[str, "Value"] = field(default_factory=dict)

    def get(self, name: str, default: Optional["Value"] = None) -> Optional["Value"]:
        if name in self.fields:
            return self.fields[name]
        return self.fields.get(str(idl_hash(name)), default)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def positional(self) -> List["Value"]:
        """Values of the numbered fields, in field order."""
        numbered = sorted(
            (int(key), value) for key, value in self.fields.items() if key.isdigit()
        )
        return [value for _, value in numbered]


@dataclass(frozen=True)
class Variant:
    """A tagged choice, e.g. ``variant { Shipping }``."""
    tag: str
    payload: Optional["Value"] = None

    def is_tag(self, name: str) -> bool:
        return self.tag == name or self.tag == str(idl_hash(name))


@dataclass(frozen=True)
class TupleValue:
    """The parenthesised value list returned by a gateway call."""
    values: Tuple["Value", ...] = ()

    @property
    def first(self) -> Optional["Value"]:
        return self.values[0] if self.values else None


Value = Union[Scalar, Opt, Vector, Record, Variant, TupleValue]


@dataclass
class DecodeResult:
    """Decoded value plus every problem met along the way."""
    value: Optional[Value]
    errors: List[DecodeFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def first(self) -> Optional[Value]:
        """First element of a decoded response tuple, or the value itself."""
        if isinstance(self.value, TupleValue):
            return self.value.first
        return self.value


def unwrap(value: Optional[Value]) -> Optional[Value]:
    """Strip every ``opt`` layer; ``None`` when any layer is absent."""
    while isinstance(value, Opt):
        value = value.value
    return value

