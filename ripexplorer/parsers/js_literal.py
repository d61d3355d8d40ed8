"""
JavaScript literal parser.

Server-rendered pages embed their state as JavaScript object literals,
not JSON: keys are unquoted, strings may use single quotes, values can be
`undefined`, `void 0` or `new Date(...)`, and trailing commas are common.

This module is a small recursive-descent parser for that subset. It never
evaluates code; anything outside the literal grammar raises JsLiteralError.
It also exposes the bracket scanner used to carve individual elements out
of a larger array so one malformed element can be skipped on its own.
"""

import re
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

_NUMBER = re.compile(r"[+-]?(?:0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_OPENERS = {"{": "}", "[": "]", "(": ")"}
_QUOTES = frozenset({'"', "'", "`"})

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Deepest object/array nesting accepted from page data
MAX_DEPTH = 100


class JsLiteralError(ValueError):
    """Raised when text is not a parseable JavaScript literal."""

    def __init__(self, message: str, position: int):
        self.position = position
        super().__init__(f"{message} at position {position}")


def to_iso_timestamp(moment: datetime) -> str:
    """Canonical timestamp: UTC, millisecond precision, trailing Z."""
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _date_from_args(args: list[Any], position: int) -> str | None:
    """Convert `new Date(...)` arguments to an ISO timestamp string."""
    if not args:
        # Current time is not reproducible; treat as unknown
        return None
    if len(args) == 1:
        (arg,) = args
        if isinstance(arg, str):
            return arg
        if isinstance(arg, int | float) and not isinstance(arg, bool):
            return to_iso_timestamp(_EPOCH + timedelta(milliseconds=arg))
        raise JsLiteralError("Unsupported Date argument", position)

    if not all(isinstance(a, int | float) and not isinstance(a, bool) for a in args):
        raise JsLiteralError("Unsupported Date arguments", position)
    parts = [int(a) for a in args] + [1, 0, 0, 0, 0][len(args) - 2 :]
    year, month, day, hour, minute, second, ms = parts[:7]
    moment = datetime(year, month + 1, day, hour, minute, second, ms * 1000, tzinfo=UTC)
    return to_iso_timestamp(moment)


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.depth = 0

    # -- low level ---------------------------------------------------------

    def error(self, message: str) -> JsLiteralError:
        return JsLiteralError(message, self.pos)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise self.error("Unterminated comment")
                self.pos = end + 2
            else:
                return

    def nested(self, parse: Callable[[], Any]) -> Any:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise self.error(f"Nesting deeper than {MAX_DEPTH} levels")
        value = parse()
        self.depth -= 1
        return value

    def expect(self, ch: str) -> None:
        self.skip_ws()
        if self.peek() != ch:
            raise self.error(f"Expected {ch!r}")
        self.pos += 1

    # -- grammar -----------------------------------------------------------

    def parse_value(self) -> Any:
        self.skip_ws()
        ch = self.peek()
        if not ch:
            raise self.error("Unexpected end of input")
        if ch == "{":
            return self.nested(self.parse_object)
        if ch == "[":
            return self.nested(self.parse_array)
        if ch in _QUOTES:
            return self.parse_string()
        if ch.isdigit() or ch in "+-.":
            return self.parse_number()
        if _IDENTIFIER.match(ch):
            return self.parse_keyword()
        raise self.error(f"Unexpected character {ch!r}")

    def parse_object(self) -> dict[str, Any]:
        self.pos += 1
        result: dict[str, Any] = {}
        while True:
            self.skip_ws()
            ch = self.peek()
            if ch == "}":
                self.pos += 1
                return result
            key = self.parse_key()
            self.expect(":")
            result[key] = self.parse_value()
            self.skip_ws()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
            elif ch == "}":
                self.pos += 1
                return result
            else:
                raise self.error("Expected ',' or '}'")

    def parse_key(self) -> str:
        ch = self.peek()
        if ch in _QUOTES:
            return self.parse_string()
        match = _IDENTIFIER.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            return match.group()
        match = _NUMBER.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            return match.group()
        raise self.error("Expected object key")

    def parse_array(self) -> list[Any]:
        self.pos += 1
        result: list[Any] = []
        while True:
            self.skip_ws()
            ch = self.peek()
            if ch == "]":
                self.pos += 1
                return result
            if ch == ",":
                # Hole, e.g. [1,,2]
                result.append(None)
                self.pos += 1
                continue
            result.append(self.parse_value())
            self.skip_ws()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
            elif ch == "]":
                self.pos += 1
                return result
            else:
                raise self.error("Expected ',' or ']'")

    def parse_string(self) -> str:
        quote = self.peek()
        self.pos += 1
        text = self.text
        chunks: list[str] = []
        while True:
            if self.pos >= len(text):
                raise self.error("Unterminated string")
            ch = text[self.pos]
            if ch == quote:
                self.pos += 1
                return "".join(chunks)
            if quote == "`" and text.startswith("${", self.pos):
                raise self.error("Template interpolation is not a literal")
            if ch == "\\":
                chunks.append(self.parse_escape())
                continue
            if ch == "\n" and quote != "`":
                raise self.error("Unterminated string")
            chunks.append(ch)
            self.pos += 1

    def parse_escape(self) -> str:
        text = self.text
        self.pos += 1
        if self.pos >= len(text):
            raise self.error("Unterminated escape")
        ch = text[self.pos]
        self.pos += 1
        if ch in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[ch]
        if ch == "\n":
            return ""
        if ch == "x":
            digits = text[self.pos : self.pos + 2]
            self.pos += 2
            return self._codepoint(digits)
        if ch == "u":
            if self.peek() == "{":
                end = text.find("}", self.pos)
                if end == -1:
                    raise self.error("Unterminated unicode escape")
                digits = text[self.pos + 1 : end]
                self.pos = end + 1
                return self._codepoint(digits)
            digits = text[self.pos : self.pos + 4]
            self.pos += 4
            return self._combine_surrogates(self._codepoint(digits))
        return ch

    def _codepoint(self, digits: str) -> str:
        try:
            return chr(int(digits, 16))
        except ValueError:
            raise self.error(f"Invalid escape digits {digits!r}") from None

    def _combine_surrogates(self, high: str) -> str:
        if not "\ud800" <= high <= "\udbff" or not self.text.startswith("\\u", self.pos):
            return high
        low = self._codepoint(self.text[self.pos + 2 : self.pos + 6])
        if not "\udc00" <= low <= "\udfff":
            return high
        self.pos += 6
        return chr(0x10000 + ((ord(high) - 0xD800) << 10) + (ord(low) - 0xDC00))

    def parse_number(self) -> int | float | None:
        text = self.text
        if text.startswith(("-Infinity", "+Infinity"), self.pos):
            self.pos += len("-Infinity")
            return None
        match = _NUMBER.match(text, self.pos)
        if not match:
            raise self.error("Invalid number")
        self.pos = match.end()
        literal = match.group()
        unsigned = literal.lstrip("+-")
        if unsigned[:2] in ("0x", "0X"):
            value = int(unsigned, 16)
            return -value if literal.startswith("-") else value
        if any(c in literal for c in ".eE"):
            return float(literal)
        return int(literal)

    def parse_keyword(self) -> Any:
        match = _IDENTIFIER.match(self.text, self.pos)
        assert match is not None
        word = match.group()
        start = self.pos
        self.pos = match.end()

        if word == "true":
            return True
        if word == "false":
            return False
        if word in ("null", "undefined", "NaN", "Infinity"):
            return None
        if word == "void":
            self.nested(self.parse_value)
            return None
        if word == "new":
            return self.nested(self.parse_constructor)

        self.pos = start
        raise self.error(f"Unsupported identifier {word!r}")

    def parse_constructor(self) -> Any:
        self.skip_ws()
        match = _IDENTIFIER.match(self.text, self.pos)
        if not match or match.group() != "Date":
            raise self.error("Only Date constructors are supported")
        self.pos = match.end()
        position = self.pos
        self.expect("(")
        args: list[Any] = []
        self.skip_ws()
        if self.peek() == ")":
            self.pos += 1
            return _date_from_args(args, position)
        while True:
            args.append(self.parse_value())
            self.skip_ws()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
            elif ch == ")":
                self.pos += 1
                return _date_from_args(args, position)
            else:
                raise self.error("Expected ',' or ')'")


def parse_js_literal(text: str) -> Any:
    """
    Parse a JavaScript literal (object, array, string, number, keyword).

    Args:
        text: Source text containing exactly one literal, optionally
              followed by a semicolon

    Returns:
        The equivalent Python value (dict, list, str, int, float, bool, None)

    Raises:
        JsLiteralError: If the text is not a single well-formed literal
    """
    parser = _Parser(text)
    value = parser.parse_value()
    parser.skip_ws()
    if parser.peek() == ";":
        parser.pos += 1
        parser.skip_ws()
    if parser.pos != len(text):
        raise parser.error("Unexpected trailing content")
    return value


def nesting_depth(value: Any) -> int:
    """Deepest object/array nesting in a parsed value; scalars are 0."""
    deepest = 0
    stack = [(value, 1)]
    while stack:
        item, depth = stack.pop()
        if isinstance(item, dict):
            children = list(item.values())
        elif isinstance(item, list):
            children = item
        else:
            continue
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in children)
    return deepest


def skip_string(text: str, index: int) -> int:
    """Index just past the string literal that starts at `index`."""
    quote = text[index]
    i = index + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    raise JsLiteralError("Unterminated string", index)


def find_matching(text: str, open_index: int) -> int:
    """
    Index of the bracket closing the one at `open_index`.

    Brackets inside string literals are ignored.

    Raises:
        JsLiteralError: If the bracket is never closed or nesting is broken
    """
    if text[open_index] not in _OPENERS:
        raise JsLiteralError("Not an opening bracket", open_index)

    stack: list[str] = []
    i = open_index
    while i < len(text):
        ch = text[i]
        if ch in _QUOTES:
            i = skip_string(text, i)
            continue
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in ")]}":
            if not stack or stack.pop() != ch:
                raise JsLiteralError("Mismatched bracket", i)
            if not stack:
                return i
        i += 1
    raise JsLiteralError("Unbalanced brackets", open_index)


def iter_array_elements(text: str, open_index: int) -> Iterator[str]:
    """
    Yield the raw source of each top-level element of an array.

    Elements are yielded as they complete, so a truncated or broken tail
    does not prevent earlier elements from being used. Parsing each
    element is left to the caller.
    """
    if text[open_index] != "[":
        raise JsLiteralError("Not an array", open_index)

    depth = 0
    start = open_index + 1
    i = start
    while i < len(text):
        ch = text[i]
        if ch in _QUOTES:
            try:
                i = skip_string(text, i)
            except JsLiteralError:
                return
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in ")]}":
            if depth == 0:
                element = text[start:i].strip()
                if element:
                    yield element
                return
            depth -= 1
        elif ch == "," and depth == 0:
            element = text[start:i].strip()
            if element:
                yield element
            start = i + 1
        i += 1
