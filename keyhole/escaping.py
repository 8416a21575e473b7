"""Canonicalisation and re-encoding of quoted literals in generated code.

Two escaping modes exist. ``DIRECT`` text is ordinary generated JavaScript.
``WRAPPED`` text is the payload of an outer double quoted string (webpack's
eval devtools), so every quote and backslash belonging to the inner code is
escaped one extra time and raw newlines show up as ``\\n`` sequences.

A normalized translation key is the runtime value of the literal: outer
delimiters removed, concatenations joined and escape sequences resolved.
``encode`` turns such a value back into a single quoted literal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import List, Optional

QUOTES = "\"'`"
NBSP = "\u00a0"

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}

_ENCODE_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "`": "\\`",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    NBSP: "\\u00a0",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}

_WRAP_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class EscapeMode(Enum):
    """How string literals are represented in an artifact's text."""

    DIRECT = auto()
    WRAPPED = auto()


def _direct_literal(delimiter: str) -> str:
    return rf"{delimiter}(?:\\[\s\S]|[^{delimiter}\\])*{delimiter}"


# Inside a wrapped payload an inner escape sequence starts with two
# backslashes, a lone backslash escapes a raw control character of the inner
# code and a bare double quote would terminate the outer string.
_WRAPPED_INNER_ESCAPE = r'\\\\(?:\\\\|\\"|[^\\"])'
_WRAPPED_CONTROL = r'\\[^\\"]'


def _wrapped_literal(delimiter: str) -> str:
    if delimiter == '"':
        return (
            rf'\\"(?:{_WRAPPED_INNER_ESCAPE}|{_WRAPPED_CONTROL}|[^\\"])*\\"'
        )
    return (
        rf'{delimiter}(?:{_WRAPPED_INNER_ESCAPE}|\\"|{_WRAPPED_CONTROL}'
        rf'|[^\\"{delimiter}])*{delimiter}'
    )


@dataclass(frozen=True)
class LiteralSyntax:
    """Regex building blocks for literals and whitespace in one escaping mode."""

    mode: EscapeMode
    literal: str
    whitespace: str

    @property
    def wrapped(self) -> bool:
        return self.mode is EscapeMode.WRAPPED

    def quoted_name(self, name: str) -> str:
        """Match ``name`` written inside any of the three delimiters."""

        escaped = re.escape(name.replace("\n", "\\n"))
        double = rf'\\"{escaped}\\"' if self.wrapped else rf'"{escaped}"'
        return rf"(?:{double}|'{escaped}'|`{escaped}`)"

    def name(self, name: str) -> str:
        """Match ``name`` as a bare property name or as a quoted one."""

        return rf"(?:{re.escape(name)}|{self.quoted_name(name)})"


@lru_cache(maxsize=None)
def literal_syntax(mode: EscapeMode) -> LiteralSyntax:
    if mode is EscapeMode.WRAPPED:
        literal = "|".join(_wrapped_literal(quote) for quote in QUOTES)
        whitespace = r"(?:\s|\\[nrt])*"
    else:
        literal = "|".join(_direct_literal(quote) for quote in QUOTES)
        whitespace = r"\s*"
    return LiteralSyntax(mode=mode, literal=f"(?:{literal})", whitespace=whitespace)


def _decode_escapes(body: str) -> str:
    """Resolve JavaScript escape sequences of a literal body."""

    parts: List[str] = []
    index = 0
    length = len(body)
    while index < length:
        char = body[index]
        if char != "\\" or index + 1 >= length:
            parts.append(char)
            index += 1
            continue

        nxt = body[index + 1]
        index += 2
        if nxt in _SIMPLE_ESCAPES:
            parts.append(_SIMPLE_ESCAPES[nxt])
        elif nxt == "0" and not (index < length and body[index].isdigit()):
            parts.append("\0")
        elif nxt == "x" and _is_hex(body[index:index + 2], 2):
            parts.append(chr(int(body[index:index + 2], 16)))
            index += 2
        elif nxt == "u" and body[index:index + 1] == "{":
            closing = body.find("}", index)
            digits = body[index + 1:closing] if closing != -1 else ""
            if digits and _is_hex(digits, len(digits)):
                parts.append(chr(int(digits, 16)))
                index = closing + 1
            else:
                parts.append(nxt)
        elif nxt == "u" and _is_hex(body[index:index + 4], 4):
            parts.append(chr(int(body[index:index + 4], 16)))
            index += 4
        elif nxt == "\r":
            # Line continuation, possibly CRLF.
            if body[index:index + 1] == "\n":
                index += 1
        elif nxt in "\n\u2028\u2029":
            pass
        else:
            parts.append(nxt)

    decoded = "".join(parts)
    try:
        return decoded.encode("utf-16-le", "surrogatepass").decode("utf-16-le")
    except UnicodeDecodeError:
        return decoded


def _is_hex(value: str, size: int) -> bool:
    return len(value) == size and all(c in "0123456789abcdefABCDEF" for c in value)


def unwrap_layer(text: str) -> str:
    """Undo one layer of double quoted string escaping."""

    return _decode_escapes(text)


def wrap_layer(text: str) -> str:
    """Apply one layer of double quoted string escaping."""

    return "".join(_WRAP_ESCAPES.get(char, char) for char in text)


_DIRECT_SYNTAX = literal_syntax(EscapeMode.DIRECT)
_LITERAL_RE = re.compile(_DIRECT_SYNTAX.literal)
_PLUS_RE = re.compile(r"\s*\+\s*")


def split_literals(text: str) -> Optional[List[str]]:
    """Return literal bodies if ``text`` is a ``+`` chain of direct literals."""

    stripped = text.strip()
    if not stripped or stripped[0] not in QUOTES:
        return None

    bodies: List[str] = []
    index = 0
    while True:
        match = _LITERAL_RE.match(stripped, index)
        if not match:
            return None
        bodies.append(match.group(0)[1:-1])
        index = match.end()
        if index == len(stripped):
            return bodies
        plus = _PLUS_RE.match(stripped, index)
        if not plus or plus.end() == index:
            return None
        index = plus.end()


def normalize(text: str, mode: EscapeMode = EscapeMode.DIRECT) -> str:
    """Return the runtime string value a key or value literal denotes.

    Text that is not a literal (a bare object key, or an already normalized
    value) is returned unchanged.
    """

    candidate = unwrap_layer(text) if mode is EscapeMode.WRAPPED else text
    bodies = split_literals(candidate)
    if bodies is None:
        return text
    return "".join(_decode_escapes(body) for body in bodies)


def encode(value: str, mode: EscapeMode = EscapeMode.DIRECT, quote: str = "'") -> str:
    """Render a normalized value as a quoted literal, single quoted by default."""

    if quote not in QUOTES:
        raise ValueError(f"Unsupported string delimiter {quote!r}.")
    escaped = "".join(_ENCODE_ESCAPES.get(char, char) for char in value)
    if quote == "`":
        escaped = escaped.replace("${", "\\${")
    literal = f"{quote}{escaped}{quote}"
    if mode is EscapeMode.WRAPPED:
        return wrap_layer(literal)
    return literal
