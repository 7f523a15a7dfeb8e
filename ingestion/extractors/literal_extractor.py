"""
Recover argument lists from constructor-call literals embedded in markup.

Pages on the league site ship their data as something like::

    <script>var vm = new ViewModel([{"league": ...}], {"today": ...}, 'es', 3);</script>

This module scans the text after a marker with an explicit state machine
(string mode, active quote, escape flag, per-literal depth counter) and hands
each composite argument to ``json.loads``. Nothing is ever evaluated.
"""

import json
import logging
import math
import re
from typing import Any, List, Optional, Sequence

from core.exceptions import NotFoundError, MalformedLiteralError

logger = logging.getLogger(__name__)

_CLOSERS = {"[": "]", "{": "}"}
_QUOTES = ("\"", "'")
_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f",
    "/": "/", "\\": "\\", "\"": "\"", "'": "'",
}
# \uXXXX and \xNN
_HEX_ESCAPES = {"u": 4, "x": 2}
_NUMBER_RE = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

SNIPPET_RADIUS = 40

HOME_KEYS = ("homeTeam", "home", "home_team")
AWAY_KEYS = ("awayTeam", "away", "away_team")


def _snippet(document: str, offset: int) -> str:
    start = max(0, offset - SNIPPET_RADIUS)
    return document[start:offset + SNIPPET_RADIUS]


def coerce_scalar(token: str) -> Any:
    """Trivial coercion for bare tokens: null/bool by exact match, numbers, else text."""
    text = token.strip()
    if text == "" or text == "null":
        return None
    if text == "true":
        return True
    if text == "false":
        return False
    if _NUMBER_RE.match(text):
        if re.match(r"^-?\d+$", text):
            return int(text)
        value = float(text)
        if math.isfinite(value):
            return value
    return text


class _ArgumentScanner:
    """Reads one comma-separated argument list, starting just after the opening '('."""

    def __init__(self, document: str, start: int):
        self.doc = document
        self.pos = start

    def _fail(self, message: str, offset: Optional[int] = None, original: Optional[Exception] = None):
        offset = self.pos if offset is None else offset
        raise MalformedLiteralError(
            message,
            offset=offset,
            snippet=_snippet(self.doc, offset),
            original_exception=original
        )

    def _peek(self) -> Optional[str]:
        return self.doc[self.pos] if self.pos < len(self.doc) else None

    def _skip_whitespace(self):
        while self.pos < len(self.doc) and self.doc[self.pos].isspace():
            self.pos += 1

    def scan(self) -> List[Any]:
        args: List[Any] = []
        self._skip_whitespace()
        if self._peek() == ")":
            self.pos += 1
            return args

        while True:
            self._skip_whitespace()
            ch = self._peek()
            if ch is None:
                self._fail("Argument list never closed")

            if ch in _CLOSERS:
                args.append(self._read_composite())
            elif ch in _QUOTES:
                args.append(self._read_string())
            else:
                args.append(self._read_bare())

            self._skip_whitespace()
            ch = self._peek()
            if ch == ",":
                self.pos += 1
                self._skip_whitespace()
                if self._peek() == ")":
                    # trailing comma
                    self.pos += 1
                    return args
                continue
            if ch == ")":
                self.pos += 1
                return args
            if ch is None:
                self._fail("Argument list never closed")
            self._fail(f"Unexpected character {ch!r} after argument")

    def _read_composite(self) -> Any:
        start = self.pos
        opener = self.doc[start]
        closer = _CLOSERS[opener]
        depth = 0
        in_string = False
        quote = None
        escape = False

        idx = start
        while idx < len(self.doc):
            ch = self.doc[idx]
            if in_string:
                if escape:
                    escape = False
                elif ch == "\\":
                    escape = True
                elif ch == quote:
                    in_string = False
                    quote = None
            elif ch in _QUOTES:
                in_string = True
                quote = ch
            elif ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    text = self.doc[start:idx + 1]
                    self.pos = idx + 1
                    try:
                        return json.loads(text)
                    except json.JSONDecodeError as e:
                        self._fail(
                            "Embedded literal is not valid JSON",
                            offset=start + e.pos,
                            original=e
                        )
            idx += 1

        self._fail(f"Unbalanced '{opener}' literal", offset=start)

    def _read_string(self) -> str:
        start = self.pos
        quote = self.doc[start]
        chars: List[str] = []

        idx = start + 1
        while idx < len(self.doc):
            ch = self.doc[idx]
            if ch == "\\":
                if idx + 1 >= len(self.doc):
                    break
                nxt = self.doc[idx + 1]
                width = _HEX_ESCAPES.get(nxt)
                if width:
                    digits = self.doc[idx + 2:idx + 2 + width]
                    if len(digits) == width and all(c in "0123456789abcdefABCDEF" for c in digits):
                        chars.append(chr(int(digits, 16)))
                        idx += 2 + width
                        continue
                chars.append(_ESCAPES.get(nxt, nxt))
                idx += 2
                continue
            if ch == quote:
                self.pos = idx + 1
                text = "".join(chars)
                # rejoin escaped surrogate pairs into one code point
                return text.encode("utf-16", "surrogatepass").decode("utf-16", "replace")
            chars.append(ch)
            idx += 1

        self._fail("Unterminated string argument", offset=start)

    def _read_bare(self) -> Any:
        start = self.pos
        depth = 0
        in_string = False
        quote = None
        escape = False

        idx = start
        while idx < len(self.doc):
            ch = self.doc[idx]
            if in_string:
                if escape:
                    escape = False
                elif ch == "\\":
                    escape = True
                elif ch == quote:
                    in_string = False
            elif ch in _QUOTES:
                in_string = True
                quote = ch
            elif ch == "(":
                depth += 1
            elif ch == ")":
                if depth == 0:
                    break
                depth -= 1
            elif ch == "," and depth == 0:
                break
            idx += 1

        self.pos = idx
        return coerce_scalar(self.doc[start:idx])


def extract(document: str, marker: str) -> List[List[Any]]:
    """
    Parse the argument list following every occurrence of ``marker``.

    ``marker`` normally includes the opening parenthesis ("new ViewModel(");
    when it does not, optional whitespace and a '(' must follow it.

    Returns:
        One ordered argument list per marker occurrence, in document order.

    Raises:
        NotFoundError: marker absent (or never followed by a call)
        MalformedLiteralError: an occurrence never rebalances or fails JSON parsing
    """
    if not marker:
        raise ValueError("marker must be a non-empty string")

    results: List[List[Any]] = []
    wants_paren = not marker.rstrip().endswith("(")
    search_from = 0

    while True:
        found = document.find(marker, search_from)
        if found < 0:
            break

        pos = found + len(marker)
        if wants_paren:
            while pos < len(document) and document[pos].isspace():
                pos += 1
            if pos >= len(document) or document[pos] != "(":
                search_from = found + len(marker)
                continue
            pos += 1

        scanner = _ArgumentScanner(document, pos)
        results.append(scanner.scan())
        search_from = max(scanner.pos, found + len(marker))

    if not results:
        raise NotFoundError(
            f"Marker {marker!r} not found",
            context={"marker": marker, "document_length": len(document)}
        )

    logger.debug(f"Extracted {len(results)} argument list(s) for marker {marker!r}")
    return results


def exposes_participants(value: Any, depth: int = 4) -> bool:
    """True when ``value`` (or something nested shallowly in it) has home and away shapes."""
    if depth < 0:
        return False
    if isinstance(value, dict):
        if any(k in value for k in HOME_KEYS) and any(k in value for k in AWAY_KEYS):
            return True
        return any(exposes_participants(v, depth - 1) for v in value.values())
    if isinstance(value, list):
        return any(exposes_participants(v, depth - 1) for v in value)
    return False


def select_argument_list(candidates: Sequence[List[Any]]) -> List[Any]:
    """
    Choose one argument list by structural fit.

    Prefers the first list whose first argument exposes home/away participants,
    otherwise the list with the most arguments (first seen wins ties).
    """
    if not candidates:
        raise NotFoundError("No argument lists to choose from", context={"candidates": 0})

    for args in candidates:
        if args and exposes_participants(args[0]):
            return args

    best = candidates[0]
    for args in candidates[1:]:
        if len(args) > len(best):
            best = args
    return best
