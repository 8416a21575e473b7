"""Partitioning of build artifacts into language files and everything else."""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .errors import MissingReferenceError
from .structures import Artifact

logger = logging.getLogger(__name__)

# webpack names language chunks "de-po[-legacy][.hash].js", rollup and vite
# keep the module name and append the hash: "de.po-[hash].js".
LANGUAGE_FILE_PATTERN = re.compile(
    r"(?:-po(?:-legacy)?(?:\.[^./]*)?|\.po(?:-[^./]*)?)\.js$",
    re.IGNORECASE,
)
DEFAULT_REFERENCE_LANGUAGE = "en"
DEFAULT_SKIP_PATTERN = r"chunk-vendors|(?:^|/)vendor\."
DEFAULT_EXTENSIONS = (".js", ".mjs", ".cjs")


@dataclass
class ClassifiedArtifacts:
    """Artifacts of one pass sorted by the role they play."""

    language: List[Artifact] = field(default_factory=list)
    other: List[Artifact] = field(default_factory=list)
    skipped: List[Artifact] = field(default_factory=list)
    reference: Optional[Artifact] = None


def is_language_file(filename: str) -> bool:
    return LANGUAGE_FILE_PATTERN.search(posixpath.basename(filename)) is not None


def reference_pattern(language: str) -> re.Pattern[str]:
    """The language code as a whole name segment directly before ``po``.

    Content hashes may contain the code too, as in ``de.po-en-Ab12.js``.
    """

    return re.compile(
        rf"(?:^|[-.]){re.escape(language)}[-.]po(?:[-.]|$)", re.IGNORECASE
    )


def select_reference(
    language_artifacts: Sequence[Artifact],
    language: str = DEFAULT_REFERENCE_LANGUAGE,
) -> Artifact:
    pattern = reference_pattern(language)
    matches = [
        artifact
        for artifact in language_artifacts
        if pattern.search(posixpath.basename(artifact.filename))
    ]
    if not matches:
        raise MissingReferenceError(
            language, [artifact.filename for artifact in language_artifacts]
        )
    if len(matches) > 1:
        logger.warning(
            "Several reference language files found, using %s and ignoring %s.",
            matches[0].filename,
            ", ".join(artifact.filename for artifact in matches[1:]),
        )
    return matches[0]


def classify_artifacts(
    artifacts: Iterable[Artifact],
    *,
    reference_language: str = DEFAULT_REFERENCE_LANGUAGE,
    skip_pattern: Optional[str] = DEFAULT_SKIP_PATTERN,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
) -> ClassifiedArtifacts:
    """Split artifacts into language files, usage candidates and skipped ones.

    Raises ``MissingReferenceError`` when language files exist but none of
    them is written in the reference language.
    """

    skip = re.compile(skip_pattern) if skip_pattern else None
    suffixes = tuple(extension.lower() for extension in extensions)
    classified = ClassifiedArtifacts()

    for artifact in artifacts:
        filename = artifact.filename
        if (
            not artifact.is_text
            or not filename.lower().endswith(suffixes)
            or (skip is not None and skip.search(filename))
        ):
            classified.skipped.append(artifact)
        elif is_language_file(filename):
            classified.language.append(artifact)
        else:
            classified.other.append(artifact)

    if classified.language:
        classified.reference = select_reference(classified.language, reference_language)

    logger.debug(
        "Classified %d language files, %d code files, %d skipped.",
        len(classified.language),
        len(classified.other),
        len(classified.skipped),
    )
    return classified
