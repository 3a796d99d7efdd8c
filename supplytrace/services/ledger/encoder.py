"""
Candid text encoder for gateway command arguments.

Inverse of the decoder for the constructs the ledger accepts. Floats are
always annotated (``(22.5 : float64)``) so dfx never infers an integer type.
"""

import math
from typing import Iterable, List, Optional, Sequence

from .values import Opt, Record, Scalar, TupleValue, Value, Variant, Vector


def escape_string(value: str) -> str:
    """Quote ``value`` as a Candid string literal."""
    out: List[str] = ['"']
    for char in value:
        if char == "\\":
            out.append("\\\\")
        elif char == '"':
            out.append('\\"')
        elif char == "\n":
            out.append("\\n")
        elif char == "\r":
            out.append("\\r")
        elif char == "\t":
            out.append("\\t")
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\u{{{ord(char):x}}}")
        else:
            out.append(char)
    out.append('"')
    return "".join(out)


def encode_float(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"Cannot encode non-finite float: {value}")
    literal = repr(float(value))
    if "." not in literal and "e" not in literal:
        literal += ".0"
    return f"({literal} : float64)"


def encode(value: Value) -> str:
    """Render a value as Candid text."""
    if isinstance(value, Scalar):
        raw = value.value
        if isinstance(raw, bool):
            return "true" if raw else "false"
        if isinstance(raw, int):
            return str(raw)
        if isinstance(raw, float):
            return encode_float(raw)
        return escape_string(str(raw))

    if isinstance(value, Opt):
        return "null" if value.value is None else f"opt {encode(value.value)}"

    if isinstance(value, Vector):
        if not value.items:
            return "vec {}"
        return "vec { " + "; ".join(encode(item) for item in value.items) + " }"

    if isinstance(value, Record):
        if not value.fields:
            return "record {}"
        keys = list(value.fields)
        if keys == [str(i) for i in range(len(keys))]:
            parts = [encode(value.fields[key]) for key in keys]
        else:
            parts = [f"{key} = {encode(item)}" for key, item in value.fields.items()]
        return "record { " + "; ".join(parts) + " }"

    if isinstance(value, Variant):
        if value.payload is None:
            return f"variant {{ {value.tag} }}"
        return f"variant {{ {value.tag} = {encode(value.payload)} }}"

    if isinstance(value, TupleValue):
        return encode_args(value.values)

    raise TypeError(f"Cannot encode {value!r}")


def encode_args(values: Sequence[Value]) -> str:
    """Render an argument tuple: ``("a", vec {}, null)``."""
    return "(" + ", ".join(encode(value) for value in values) + ")"


# Shorthand constructors used when building command arguments

def text(value: str) -> Scalar:
    return Scalar(str(value))


def text_vec(values: Iterable[str]) -> Vector:
    return Vector(tuple(Scalar(str(v)) for v in values))


def opt_float(value: Optional[float]) -> Opt:
    return Opt(None) if value is None else Opt(Scalar(float(value)))
