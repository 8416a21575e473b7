"""Rewriting of language artifacts to ordinal keyed dictionaries."""

from __future__ import annotations

import logging
from typing import Set

from .edits import EditSet, RewriteResult
from .escaping import EscapeMode, encode, normalize
from .parser import scan_dictionary
from .structures import (
    ArtifactReport,
    DictionaryLayout,
    ParsedLanguageArtifact,
    TranslationKeyIndex,
)

logger = logging.getLogger(__name__)


def _value_delimiter(layout: DictionaryLayout) -> str:
    """Delimiter of the dictionary's first translation, double quotes if empty."""

    if not layout.entries:
        return '"'
    return layout.entries[0].value_text.lstrip("\\")[:1] or '"'


def _is_empty_literal(literal: str, mode: EscapeMode) -> bool:
    if mode is EscapeMode.WRAPPED and literal.startswith("\\"):
        return len(literal) == 4
    return len(literal) == 2


def rewrite_language_artifact(
    parsed: ParsedLanguageArtifact,
    index: TranslationKeyIndex,
    report: ArtifactReport | None = None,
) -> RewriteResult:
    """Replace dictionary keys by ordinals and add missing fallbacks.

    Keys unknown to the index are kept as they are. Empty translations are
    filled with the reference value and reference keys absent from this
    dictionary are appended before its closing brace.
    """

    mode = parsed.dialect.escape_mode
    layout = scan_dictionary(parsed)
    edits = EditSet(parsed.artifact.text)
    seen: Set[str] = set()
    quote = _value_delimiter(layout)

    for entry in layout.entries:
        key = normalize(entry.key_text, mode)
        ordinal = index.ordinal(key)
        if ordinal is None:
            continue
        seen.add(key)
        edits.replace(entry.key_start, entry.key_end, str(ordinal))
        if report is not None:
            report.keys_rewritten += 1

        if _is_empty_literal(entry.value_text, mode):
            edits.replace(entry.value_start, entry.value_end, encode(index.fallback(key), mode, quote))
            if report is not None:
                report.fallbacks_filled += 1

    needs_separator = layout.needs_separator
    for key, ordinal in index.ordinals.items():
        if key in seen:
            continue
        separator = "," if needs_separator else ""
        edits.insert(
            layout.closing_brace,
            f"{separator}{ordinal}:{encode(index.fallback(key), mode, quote)}",
        )
        needs_separator = True
        if report is not None:
            report.fallbacks_inserted += 1

    result = edits.apply()
    logger.debug(
        "Rewrote language file %s: %d keys replaced, %d fallbacks added.",
        parsed.filename,
        len(seen),
        len(index) - len(seen),
    )
    return result
