"""
Balanced-delimiter scanning over Candid text.

Everything here works on index ranges of the original string so the
decoder can descend into nested constructs without copying. Quoted
string literals are skipped, so braces inside product names or event
details never affect nesting depth. Malformed input yields ``None`` or
``-1``, never an exception.
"""

from typing import List, NamedTuple, Optional

_CLOSERS = {"{": "}", "(": ")"}


class Span(NamedTuple):
    """Half-open index range ``text[start:end]``."""
    start: int
    end: int

    def slice(self, text: str) -> str:
        return text[self.start:self.end]


def skip_string(text: str, index: int) -> int:
    """Index just past the string literal opening at ``text[index]``, or -1."""
    i = index + 1
    length = len(text)
    while i < length:
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == '"':
            return i + 1
        i += 1
    return -1


def match_closing(text: str, open_index: int) -> int:
    """Index of the delimiter closing the ``{`` or ``(`` at ``open_index``, or -1."""
    opener = text[open_index] if 0 <= open_index < len(text) else ""
    closer = _CLOSERS.get(opener)
    if closer is None:
        return -1

    depth = 0
    i = open_index
    length = len(text)
    while i < length:
        char = text[i]
        if char == '"':
            i = skip_string(text, i)
            if i < 0:
                return -1
            continue
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def find_token(text: str, token: str, start: int = 0, end: Optional[int] = None) -> int:
    """First index of ``token`` at or after ``start`` outside string literals, or -1."""
    end = len(text) if end is None else end
    i = start
    while i < end:
        if text[i] == '"':
            i = skip_string(text, i)
            if i < 0:
                return -1
            continue
        if text.startswith(token, i) and i + len(token) <= end:
            return i
        i += 1
    return -1


def find_span(text: str, open_token: str, start: int = 0) -> Optional[Span]:
    """
    Locate the balanced interior of the construct opened by ``open_token``.

    The ``{`` ending ``open_token`` counts as depth 1. Returns the span
    between that brace and its partner, or ``None`` when the token is
    missing or the braces never balance. Call again from ``span.end + 1``
    to walk sibling constructs.
    """
    token_at = find_token(text, open_token, start)
    if token_at < 0:
        return None

    brace_at = text.rfind("{", token_at, token_at + len(open_token))
    if brace_at < 0:
        return None

    close_at = match_closing(text, brace_at)
    if close_at < 0:
        return None
    return Span(brace_at + 1, close_at)


def find_top_level(text: str, char: str, start: int, end: int) -> int:
    """First ``char`` in ``text[start:end]`` outside strings, braces and parentheses."""
    depth = 0
    i = start
    while i < end:
        current = text[i]
        if current == '"':
            i = skip_string(text, i)
            if i < 0:
                return -1
            continue
        if current in "{(":
            depth += 1
        elif current in "})":
            depth -= 1
        elif current == char and depth == 0:
            return i
        i += 1
    return -1


def trim(text: str, start: int, end: int) -> Span:
    """Narrow ``[start, end)`` to exclude surrounding whitespace."""
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return Span(start, end)


def split_top_level(text: str, start: int, end: int, separator: str = ";") -> List[Span]:
    """
    Split ``text[start:end]`` on separators that sit at nesting depth zero.

    Segments are whitespace-trimmed; empty segments (from trailing
    separators such as ``record { a = 1; }``) are dropped.
    """
    segments: List[Span] = []
    segment_start = start
    while segment_start <= end:
        cut = find_top_level(text, separator, segment_start, end)
        segment_end = end if cut < 0 else cut
        span = trim(text, segment_start, segment_end)
        if span.start < span.end:
            segments.append(span)
        if cut < 0:
            break
        segment_start = cut + 1
    return segments
