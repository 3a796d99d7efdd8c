"""
Candid Text Decoder

Recursive-descent decoder for the textual values printed by
``dfx canister call``. Grammar handled:

    response := "(" value ("," value)* ","? ")"
    value    := "(" value ")" | value ":" type
              | "opt" value | "null"
              | "vec" "{" (value ";")* "}"
              | "record" "{" (field ";")* "}"
              | "variant" "{" tag ("=" value)? "}"
              | string | number | "true" | "false"
              | ("blob" | "principal") string
    field    := (name "=")? value

Nested constructs are located with the brace scanner and decoded
recursively. Decoding never raises: anything that cannot be decoded is
dropped from its parent and reported in ``DecodeResult.errors``.
"""

import logging
import re
from typing import Dict, List, Optional

from .errors import DecodeFailure
from .scanner import Span, find_span, find_top_level, match_closing, skip_string, split_top_level, trim
from .values import DecodeResult, Opt, Record, Scalar, TupleValue, Value, Variant, Vector

logger = logging.getLogger(__name__)

_KEYWORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_FIELD_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*|\d[\d_]*")
_FIELD_ID = re.compile(r"_\d[\d_]*_")  # id-only label as printed by dfx: _1_224_700_491_
_INTEGER = re.compile(r"[+-]?\d+")
_FLOAT = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?")
_HEX = "0123456789abcdefABCDEF"

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
}

_CONTAINERS = ("vec", "record", "variant")
_STRING_PREFIXES = ("blob", "principal")


def unescape_string(body: str) -> str:
    """Resolve Candid escapes inside a string literal body."""
    out = bytearray()
    i = 0
    length = len(body)
    while i < length:
        char = body[i]
        if char != "\\" or i + 1 >= length:
            out.extend(char.encode("utf-8"))
            i += 1
            continue

        nxt = body[i + 1]
        if nxt in _SIMPLE_ESCAPES:
            out.extend(_SIMPLE_ESCAPES[nxt].encode("utf-8"))
            i += 2
        elif nxt == "u" and i + 2 < length and body[i + 2] == "{":
            close = body.find("}", i + 3)
            digits = body[i + 3:close] if close > 0 else ""
            try:
                out.extend(chr(int(digits.replace("_", ""), 16)).encode("utf-8"))
                i = close + 1
            except ValueError:
                out.extend(b"\\u")
                i += 2
        elif i + 2 < length and nxt in _HEX and body[i + 2] in _HEX:
            out.append(int(body[i + 1:i + 3], 16))
            i += 3
        else:
            out.extend(nxt.encode("utf-8"))
            i += 2
    return out.decode("utf-8", errors="replace")


def parse_number(literal: str) -> Optional[Scalar]:
    """Parse an integer or float literal, ignoring digit-group underscores."""
    cleaned = literal.replace("_", "")
    if _INTEGER.fullmatch(cleaned):
        return Scalar(int(cleaned))
    if _FLOAT.fullmatch(cleaned):
        return Scalar(float(cleaned))
    return None


class ValueDecoder:
    """Decodes ledger response text into intermediate values."""

    def __init__(self, max_depth: int = 64):
        self.max_depth = max_depth

    def decode(self, text: str) -> DecodeResult:
        """Decode a single value."""
        text = text or ""
        errors: List[DecodeFailure] = []
        value = self._value(text, Span(0, len(text)), errors, 0)
        return DecodeResult(value, errors)

    def decode_response(self, text: str) -> DecodeResult:
        """Decode a full gateway response, normally a parenthesised tuple."""
        text = text or ""
        errors: List[DecodeFailure] = []
        span = trim(text, 0, len(text))

        if span.start < span.end and text[span.start] == "(" \
                and match_closing(text, span.start) == span.end - 1:
            values = []
            for part in split_top_level(text, span.start + 1, span.end - 1, ","):
                value = self._value(text, part, errors, 1)
                if value is not None:
                    values.append(value)
            return DecodeResult(TupleValue(tuple(values)), errors)

        value = self._value(text, span, errors, 1)
        values = (value,) if value is not None else ()
        return DecodeResult(TupleValue(values), errors)

    # =========================================================================
    # Recursive descent
    # =========================================================================

    def _fail(self, errors: List[DecodeFailure], reason: str, text: str, span: Span) -> None:
        failure = DecodeFailure(reason=reason, position=span.start, fragment=span.slice(text))
        logger.debug(f"Decode failure: {failure}")
        errors.append(failure)

    def _value(self, text: str, span: Span, errors: List[DecodeFailure], depth: int) -> Optional[Value]:
        span = trim(text, span.start, span.end)
        if span.start >= span.end:
            self._fail(errors, "empty value", text, span)
            return None
        if depth > self.max_depth:
            self._fail(errors, "nesting too deep", text, span)
            return None

        start, end = span
        if text[start] == "(" and match_closing(text, start) == end - 1:
            return self._value(text, Span(start + 1, end - 1), errors, depth + 1)

        colon = find_top_level(text, ":", start, end)
        if colon > start:
            return self._value(text, Span(start, colon), errors, depth + 1)

        if text[start] == '"':
            return self._string(text, span, errors)

        keyword = _KEYWORD.match(text, start, end)
        word = keyword.group() if keyword else ""
        after = keyword.end() if keyword else start

        if word == "null" and after == end:
            return Opt(None)
        if word in ("true", "false") and after == end:
            return Scalar(word == "true")
        if word == "opt" and after < end and not text[after].isalnum() and text[after] != "_":
            inner = self._value(text, Span(after, end), errors, depth + 1)
            return Opt(inner) if inner is not None else None
        if word in _CONTAINERS:
            return self._container(word, text, Span(after, end), errors, depth)
        if word in _STRING_PREFIXES:
            return self._string(text, trim(text, after, end), errors)

        number = parse_number(span.slice(text))
        if number is not None:
            return number

        self._fail(errors, "unrecognised value", text, span)
        return None

    def _string(self, text: str, span: Span, errors: List[DecodeFailure]) -> Optional[Value]:
        if span.start >= span.end or text[span.start] != '"':
            self._fail(errors, "expected string literal", text, span)
            return None
        close = skip_string(text, span.start)
        if close < 0 or close > span.end:
            self._fail(errors, "unterminated string", text, span)
            return None
        if close != span.end:
            self._fail(errors, "unexpected text after string", text, Span(close, span.end))
        return Scalar(unescape_string(text[span.start + 1:close - 1]))

    def _container(self, word: str, text: str, span: Span, errors: List[DecodeFailure],
                   depth: int) -> Optional[Value]:
        body = find_span(text, "{", span.start)
        if body is None or body.end >= span.end or text[span.start:body.start - 1].strip():
            self._fail(errors, f"unbalanced or missing braces after '{word}'", text, span)
            return None
        if body.end + 1 != span.end:
            self._fail(errors, f"unexpected text after '{word}' body", text, Span(body.end + 1, span.end))

        if word == "vec":
            return self._vector(text, body, errors, depth)
        if word == "record":
            return self._record(text, body, errors, depth)
        return self._variant(text, body, errors, depth)

    def _vector(self, text: str, body: Span, errors: List[DecodeFailure], depth: int) -> Vector:
        items = []
        for part in split_top_level(text, body.start, body.end):
            item = self._value(text, part, errors, depth + 1)
            if item is not None:
                items.append(item)
        return Vector(tuple(items))

    def _field_name(self, text: str, span: Span, errors: List[DecodeFailure]) -> Optional[str]:
        span = trim(text, span.start, span.end)
        raw = span.slice(text)
        if raw.startswith('"') and raw.endswith('"') and len(raw) >= 2:
            return unescape_string(raw[1:-1])
        if _FIELD_ID.fullmatch(raw) or (raw[:1].isdigit() and _FIELD_NAME.fullmatch(raw)):
            return raw.replace("_", "")
        if _FIELD_NAME.fullmatch(raw):
            return raw
        self._fail(errors, "invalid field name", text, span)
        return None

    def _record(self, text: str, body: Span, errors: List[DecodeFailure], depth: int) -> Record:
        fields: Dict[str, Value] = {}
        position = 0
        for part in split_top_level(text, body.start, body.end):
            equals = find_top_level(text, "=", part.start, part.end)
            if equals < 0:
                name: Optional[str] = str(position)
                value_span = part
            else:
                name = self._field_name(text, Span(part.start, equals), errors)
                value_span = Span(equals + 1, part.end)
            position += 1

            if name is None:
                continue
            value = self._value(text, value_span, errors, depth + 1)
            if value is not None:
                fields[name] = value
        return Record(fields)

    def _variant(self, text: str, body: Span, errors: List[DecodeFailure], depth: int) -> Optional[Variant]:
        parts = split_top_level(text, body.start, body.end)
        if not parts:
            self._fail(errors, "empty variant", text, body)
            return None
        if len(parts) > 1:
            self._fail(errors, "variant with more than one tag", text, body)

        part = parts[0]
        equals = find_top_level(text, "=", part.start, part.end)
        if equals < 0:
            tag = self._field_name(text, part, errors)
            return Variant(tag) if tag is not None else None

        tag = self._field_name(text, Span(part.start, equals), errors)
        if tag is None:
            return None
        payload = self._value(text, Span(equals + 1, part.end), errors, depth + 1)
        return Variant(tag, payload)
