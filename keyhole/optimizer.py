"""High-level orchestration of one translation key optimization pass."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .classifier import (
    DEFAULT_EXTENSIONS,
    DEFAULT_REFERENCE_LANGUAGE,
    DEFAULT_SKIP_PATTERN,
    classify_artifacts,
)
from .diagnostics import DiagnosticsCollector, WarningEmitter, report_diagnostics
from .dialects import AUTO, get_dialect
from .edits import RewriteResult
from .indexer import build_key_index
from .parser import parse_language_artifact
from .rewriter import rewrite_language_artifact
from .structures import (
    Artifact,
    ArtifactReport,
    OptimizationSummary,
    ParsedLanguageArtifact,
    TranslationKeyIndex,
)
from .usages import rewrite_usages

logger = logging.getLogger(__name__)


@dataclass
class OptimizationResult:
    """Artifacts handed back to the host plus the pass summary."""

    artifacts: List[Artifact]
    summary: OptimizationSummary
    index: TranslationKeyIndex = field(default_factory=TranslationKeyIndex)
    originals: Dict[str, str] = field(default_factory=dict)

    def changed_artifacts(self) -> List[Artifact]:
        return [artifact for artifact in self.artifacts if artifact.filename in self.originals]


def _size(text: str) -> int:
    return len(text.encode("utf-8"))


class KeyOptimizer:
    """Coordinates classification, indexing and rewriting of one artifact set."""

    def __init__(
        self,
        *,
        reference_language: str = DEFAULT_REFERENCE_LANGUAGE,
        dialect: str = AUTO,
        skip_pattern: Optional[str] = DEFAULT_SKIP_PATTERN,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        emit_warning: Optional[WarningEmitter] = None,
    ) -> None:
        if dialect != AUTO:
            get_dialect(dialect)
        self.reference_language = reference_language
        self.dialect = dialect
        self.skip_pattern = skip_pattern
        self.extensions = tuple(extensions)
        self.emit_warning = emit_warning or (lambda message: logger.warning("%s", message))

    def run(self, artifacts: Sequence[Artifact]) -> OptimizationResult:
        """Optimize the artifact set in one pass.

        Nothing is handed back unless the whole pass succeeds: parse errors
        and a missing reference language file propagate before any artifact
        is replaced.
        """

        start_time = time.time()
        artifacts = list(artifacts)
        classified = classify_artifacts(
            artifacts,
            reference_language=self.reference_language,
            skip_pattern=self.skip_pattern,
            extensions=self.extensions,
        )

        if classified.reference is None:
            logger.debug("No language files found, nothing to optimize.")
            return OptimizationResult(
                artifacts=artifacts,
                summary=OptimizationSummary(
                    total_artifacts=len(artifacts),
                    language_artifacts=0,
                    usage_artifacts=len(classified.other),
                    reference_artifact=None,
                    indexed_keys=0,
                    elapsed_seconds=time.time() - start_time,
                ),
            )

        parsed_files: List[ParsedLanguageArtifact] = [
            parse_language_artifact(artifact, self.dialect)
            for artifact in classified.language
        ]
        reference = next(
            parsed for parsed in parsed_files if parsed.artifact is classified.reference
        )
        index = build_key_index(reference)

        rewritten: Dict[str, RewriteResult] = {}
        reports: Dict[str, ArtifactReport] = {}
        for parsed in parsed_files:
            report = ArtifactReport(
                filename=parsed.filename,
                kind="reference" if parsed is reference else "language",
            )
            rewritten[parsed.filename] = rewrite_language_artifact(parsed, index, report)
            reports[parsed.filename] = report

        collector = DiagnosticsCollector(index.keys())
        for artifact in classified.other:
            report = ArtifactReport(filename=artifact.filename, kind="code")
            scan = rewrite_usages(artifact, index, report=report)
            collector.add_missing(sorted(scan.missing_translations))
            collector.add_used(scan.used_translations)
            rewritten[artifact.filename] = scan.result
            reports[artifact.filename] = report

        output: List[Artifact] = []
        originals: Dict[str, str] = {}
        for artifact in artifacts:
            result = rewritten.get(artifact.filename)
            if result is None:
                output.append(artifact)
                continue
            report = reports[artifact.filename]
            report.original_size = _size(artifact.text)
            report.optimized_size = _size(result.text)
            if not result.changed:
                output.append(artifact)
                continue
            originals[artifact.filename] = artifact.text
            output.append(
                Artifact(
                    filename=artifact.filename,
                    content=result.text,
                    position_map=result.position_map,
                )
            )

        warning = report_diagnostics(collector, self.emit_warning)
        summary = OptimizationSummary(
            total_artifacts=len(artifacts),
            language_artifacts=len(classified.language),
            usage_artifacts=len(classified.other),
            reference_artifact=reference.filename,
            indexed_keys=len(index),
            elapsed_seconds=time.time() - start_time,
            diagnostics=collector.result(),
            reports=list(reports.values()),
            warning=warning,
        )
        logger.debug(
            "Optimized %d of %d artifacts, %d bytes saved.",
            len(originals),
            len(artifacts),
            summary.bytes_saved,
        )
        return OptimizationResult(
            artifacts=output,
            summary=summary,
            index=index,
            originals=originals,
        )


def optimize_artifacts(
    artifacts: Sequence[Artifact],
    **options,
) -> OptimizationResult:
    """Run one pass with a throwaway ``KeyOptimizer``."""

    return KeyOptimizer(**options).run(artifacts)
