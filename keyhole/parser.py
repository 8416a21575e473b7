"""Extraction of translation dictionaries from language artifacts."""

from __future__ import annotations

import logging
import re
from typing import List

from .dialects import AUTO, Dialect, candidate_dialects
from .errors import ParseError
from .escaping import literal_syntax
from .structures import Artifact, DictionaryEntry, DictionaryLayout, ParsedLanguageArtifact

logger = logging.getLogger(__name__)

BARE_KEY_PATTERN = re.compile(r"[^\s\"'`:,{}()\[\]\\]+")


def parse_language_artifact(artifact: Artifact, dialect: str = AUTO) -> ParsedLanguageArtifact:
    """Locate the dictionary literal of a language artifact.

    The dialect is detected from the artifact text unless a dialect name is
    given. Raises ``ParseError`` when no template fits or when the delimited
    region is not a well formed dictionary literal.
    """

    if not artifact.is_text:
        raise ParseError(artifact.filename, "language file is not a text file")
    text = artifact.text

    candidates = candidate_dialects(dialect)
    selected = next((item for item in candidates if item.matches(text)), None)
    if selected is None:
        if dialect == AUTO:
            raise ParseError(
                artifact.filename,
                "the file matches none of the known language file templates",
            )
        selected = candidates[0]

    parsed = _split_with_dialect(artifact, selected)
    # Validates the entry grammar; the layout itself is rebuilt by rewriters.
    layout = scan_dictionary(parsed)
    logger.debug(
        "Parsed language file %s as %s dialect with %d entries.",
        artifact.filename,
        selected.name,
        len(layout.entries),
    )
    return parsed


def _split_with_dialect(artifact: Artifact, dialect: Dialect) -> ParsedLanguageArtifact:
    text = artifact.text
    for template in dialect.templates:
        split = template.split(text)
        if split is None:
            continue
        prefix, dictionary_text, suffix = split
        if not prefix or not suffix:
            raise ParseError(
                artifact.filename,
                f"the {dialect.name} {template.name} template did not find the "
                "end of the translations object",
            )
        if prefix + dictionary_text + suffix != text:
            raise ParseError(
                artifact.filename,
                "language file source does not match parsed content",
            )
        return ParsedLanguageArtifact(
            artifact=artifact,
            dialect=dialect,
            prefix=prefix,
            dictionary_text=dictionary_text,
            suffix=suffix,
        )

    raise ParseError(
        artifact.filename,
        f"the file does not start like a {dialect.name} language file",
    )


def scan_dictionary(parsed: ParsedLanguageArtifact) -> DictionaryLayout:
    """Tokenise the dictionary literal into entries with absolute offsets."""

    syntax = literal_syntax(parsed.dialect.escape_mode)
    whitespace = re.compile(syntax.whitespace)
    literal = re.compile(syntax.literal)
    text = parsed.dictionary_text
    base = parsed.dictionary_offset

    def fail(reason: str, position: int) -> ParseError:
        return ParseError(parsed.filename, f"{reason} at offset {base + position}")

    def skip(position: int) -> int:
        return whitespace.match(text, position).end()

    def char_at(position: int) -> str:
        return text[position] if position < len(text) else ""

    position = skip(0)
    if char_at(position) != "{":
        raise fail("expected the translations object to start with '{'", position)
    position += 1

    entries: List[DictionaryEntry] = []
    has_trailing_comma = False
    while True:
        position = skip(position)
        if char_at(position) == "}":
            break

        key_match = literal.match(text, position) or BARE_KEY_PATTERN.match(text, position)
        if not key_match:
            raise fail("expected a translation key", position)
        position = skip(key_match.end())
        if char_at(position) != ":":
            raise fail("expected ':' after translation key", position)
        position = skip(position + 1)

        value_match = literal.match(text, position)
        if not value_match:
            raise fail("expected a quoted translation", position)
        entries.append(
            DictionaryEntry(
                key_start=base + key_match.start(),
                key_end=base + key_match.end(),
                key_text=key_match.group(0),
                value_start=base + value_match.start(),
                value_end=base + value_match.end(),
                value_text=value_match.group(0),
            )
        )

        position = skip(value_match.end())
        separator = char_at(position)
        if separator == ",":
            has_trailing_comma = True
            position += 1
            continue
        if separator == "}":
            has_trailing_comma = False
            break
        raise fail("expected ',' or '}' after translation", position)

    closing_brace = position
    remainder = text[closing_brace + 1:]
    trailer = r"(?:\s|;|\\[nrt])*" if syntax.wrapped else r"[\s;]*"
    if not re.fullmatch(trailer, remainder):
        raise fail("unexpected content after the translations object", closing_brace + 1)

    return DictionaryLayout(
        entries=entries,
        closing_brace=base + closing_brace,
        has_trailing_comma=has_trailing_comma,
    )
