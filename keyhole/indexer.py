"""Construction of the reference translation key index."""

from __future__ import annotations

import logging

from .escaping import normalize
from .parser import scan_dictionary
from .structures import ParsedLanguageArtifact, TranslationKeyIndex

logger = logging.getLogger(__name__)


def build_key_index(reference: ParsedLanguageArtifact) -> TranslationKeyIndex:
    """Assign dense ordinals to the reference keys in order of appearance.

    A key seen twice keeps its first ordinal while its last value becomes the
    fallback, mirroring how duplicate object literal properties evaluate.
    """

    mode = reference.dialect.escape_mode
    index = TranslationKeyIndex()
    for entry in scan_dictionary(reference).entries:
        key = normalize(entry.key_text, mode)
        if key not in index.ordinals:
            index.ordinals[key] = len(index.ordinals)
        index.fallbacks[key] = normalize(entry.value_text, mode)

    logger.debug(
        "Indexed %d translation keys from reference language file %s.",
        len(index),
        reference.filename,
    )
    return index
