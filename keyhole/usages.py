"""Rewriting of translation key usages in code artifacts."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional, Set, Tuple

from .edits import EditSet, RewriteResult
from .escaping import EscapeMode, literal_syntax, normalize
from .structures import Artifact, ArtifactReport, TranslationKeyIndex

logger = logging.getLogger(__name__)

EVAL_STRING_PATTERN = re.compile(r'\beval\(\s*"(?P<body>(?:\\[\s\S]|[^"\\])*)"')


@dataclass
class UsageScan:
    """Outcome of rewriting the translation usages of one artifact."""

    result: RewriteResult
    missing_translations: Set[str] = field(default_factory=set)
    used_translations: Set[str] = field(default_factory=set)


@lru_cache(maxsize=None)
def usage_pattern(mode: EscapeMode) -> re.Pattern[str]:
    """Compile the usage matcher for one escaping mode.

    Three call shapes are recognised, each directly followed by the key
    operand: ``$t``/``$tc``/``$te`` (or ``.t`` member) calls, vue-i18n < 9
    ``<i18n>`` components carrying the key in ``attrs.path`` and vue-i18n >= 9
    ``<i18n-t>`` components whose minified ``createVNode(i18nT, {keypath})``
    call carries it in ``keypath``.
    """

    syntax = literal_syntax(mode)
    ws = syntax.whitespace
    translate_call = rf"[$.]t[ec]?{ws}\({ws}"
    legacy_component = (
        rf"{syntax.quoted_name('i18n')}{ws},.*?"
        rf"{syntax.name('attrs')}{ws}:.*?"
        rf"{syntax.name('path')}{ws}:{ws}"
    )
    keypath_component = (
        rf"\w+\({ws}"
        rf"\w+{ws},{ws}"
        rf"\{{[^}}]*?"
        rf"{syntax.name('keypath')}{ws}:{ws}"
    )
    return re.compile(
        rf"(?:{translate_call}|{legacy_component}|{keypath_component})"
        rf"(?P<key>{syntax.literal})"
        rf"(?:{ws}\+{ws}{syntax.literal})*",
        re.DOTALL,
    )


def escape_regions(text: str) -> List[Tuple[int, int, EscapeMode]]:
    """Split ``text`` into spans scanned in direct or wrapped mode.

    The body of every ``eval("...")`` string is wrapped code. Everything
    outside those bodies stays direct, so an unrelated ``eval("require")``
    does not change how the rest of the artifact is read.
    """

    regions: List[Tuple[int, int, EscapeMode]] = []
    cursor = 0
    for match in EVAL_STRING_PATTERN.finditer(text):
        start, end = match.span("body")
        if end == start:
            continue
        if start > cursor:
            regions.append((cursor, start, EscapeMode.DIRECT))
        regions.append((start, end, EscapeMode.WRAPPED))
        cursor = end
    if cursor < len(text):
        regions.append((cursor, len(text), EscapeMode.DIRECT))
    return regions


def ordinal_literal(ordinal: int) -> str:
    # Always quoted: a bare 0 would read as "no key" to the translate call.
    return f"'{ordinal}'"


def rewrite_usages(
    artifact: Artifact,
    index: TranslationKeyIndex,
    mode: Optional[EscapeMode] = None,
    report: Optional[ArtifactReport] = None,
) -> UsageScan:
    """Replace translation keys at call sites by quoted ordinals.

    Only the first literal of a ``+`` concatenated key takes part in the
    lookup and the replacement. Keys unknown to the index are reported as
    missing and their call sites stay untouched.
    """

    text = artifact.text
    regions = [(0, len(text), mode)] if mode is not None else escape_regions(text)
    edits = EditSet(text)
    missing: Set[str] = set()
    used: Set[str] = set()

    for start, end, region_mode in regions:
        for match in usage_pattern(region_mode).finditer(text, start, end):
            key = normalize(match.group("key"), region_mode)
            ordinal = index.ordinal(key)
            if ordinal is None:
                missing.add(key)
                continue
            used.add(key)
            edits.replace(match.start("key"), match.end("key"), ordinal_literal(ordinal))

    scan = UsageScan(
        result=edits.apply(),
        missing_translations=missing,
        used_translations=used,
    )
    if report is not None:
        report.usages_rewritten += len(edits)
    logger.debug(
        "Rewrote %d translation usages in %s (%d missing keys).",
        len(edits),
        artifact.filename,
        len(scan.missing_translations),
    )
    return scan
