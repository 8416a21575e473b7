"""Command line interface for the Keyhole translation key optimizer."""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import re
import sys
import urllib.parse
from typing import Iterable, List, Optional

from .configuration import get_settings, parse_extensions
from .dialects import AUTO, DIALECTS
from .errors import ConfigurationError, KeyholeError, OutputWriteError
from .optimizer import KeyOptimizer, OptimizationResult
from .sourcemap import render_composed_source_map, render_source_map
from .structures import Artifact, OptimizationSummary

EXIT_STRICT_WARNINGS = 3

SOURCE_MAPPING_URL = re.compile(r"//[#@]\s*sourceMappingURL=([^\s'\"]+)")

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keyhole",
        description=(
            "Replace i18n translation keys in a JavaScript build output by short ordinals."
        ),
    )
    parser.add_argument(
        "build_dir",
        help="Directory holding the bundler output to optimize in place.",
    )
    parser.add_argument(
        "-r",
        "--reference-language",
        help="Language code of the reference language file (default: en).",
    )
    parser.add_argument(
        "-d",
        "--dialect",
        choices=[AUTO, *DIALECTS],
        help="Code generation dialect of the language files (default: auto).",
    )
    parser.add_argument(
        "--source-maps",
        action="store_true",
        default=None,
        help="Write a .map file next to every rewritten artifact that has none yet.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Exit with status 3 when missing or unused translations are found.",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Report what would change without writing any file.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    return parser


def load_build_dir(build_dir: pathlib.Path) -> List[Artifact]:
    """Read every file below ``build_dir`` as an artifact.

    Files that do not decode as UTF-8 are kept as bytes and never rewritten.
    """

    artifacts: List[Artifact] = []
    for path in sorted(p for p in build_dir.rglob("*") if p.is_file()):
        filename = path.relative_to(build_dir).as_posix()
        raw = path.read_bytes()
        try:
            content: str | bytes = raw.decode("utf-8")
        except UnicodeDecodeError:
            content = raw
        artifacts.append(Artifact(filename=filename, content=content))
    return artifacts


def find_upstream_map(
    build_dir: pathlib.Path, filename: str, text: str
) -> Optional[pathlib.Path]:
    """Locate the source map the bundler already wrote for ``filename``.

    The last ``sourceMappingURL`` comment wins; without one, ``<file>.map``
    is used when it exists. Maps outside ``build_dir`` are ignored.
    """

    target = build_dir / filename
    urls = SOURCE_MAPPING_URL.findall(text)
    if urls and urls[-1].startswith("data:"):
        logger.warning("Inline source map of %s is left unchanged.", filename)
        return None
    candidates = []
    if urls:
        path = urllib.parse.unquote(urls[-1].split("#")[0].split("?")[0])
        candidates.append(target.parent / path)
    candidates.append(target.with_name(f"{target.name}.map"))
    for candidate in candidates:
        candidate = candidate.resolve()
        if build_dir in candidate.parents and candidate.is_file():
            return candidate
    return None


def write_source_map(
    build_dir: pathlib.Path,
    artifact: Artifact,
    original: str,
    *,
    source_maps: bool,
) -> Optional[pathlib.Path]:
    """Write the map of one rewritten artifact and return its path.

    An existing bundler map is updated to the new text. A fresh map of the
    rewrite alone is written only when ``source_maps`` is set.
    """

    arguments = dict(
        filename=artifact.filename,
        original=original,
        generated=artifact.text,
        position_map=artifact.position_map,
    )
    upstream_path = find_upstream_map(build_dir, artifact.filename, original)
    if upstream_path is not None:
        try:
            upstream = json.loads(upstream_path.read_text(encoding="utf-8"))
            document = render_composed_source_map(upstream=upstream, **arguments)
        except ValueError as exc:
            logger.warning("Cannot update source map %s: %s", upstream_path, exc)
        else:
            upstream_path.write_text(document, encoding="utf-8")
            return upstream_path
    if not source_maps:
        return None
    map_path = build_dir / f"{artifact.filename}.map"
    map_path.write_text(render_source_map(**arguments), encoding="utf-8")
    return map_path


def write_artifacts(
    build_dir: pathlib.Path,
    result: OptimizationResult,
    *,
    source_maps: bool,
) -> List[str]:
    """Write changed artifacts back and return the names of written files."""

    written: List[str] = []
    for artifact in result.changed_artifacts():
        target = build_dir / artifact.filename
        try:
            target.write_text(artifact.text, encoding="utf-8", newline="")
            written.append(artifact.filename)
            if artifact.position_map is None:
                continue
            map_path = write_source_map(
                build_dir,
                artifact,
                result.originals[artifact.filename],
                source_maps=source_maps,
            )
            if map_path is not None:
                written.append(map_path.relative_to(build_dir).as_posix())
        except OSError as exc:
            raise OutputWriteError(f"Failed to write {target}: {exc}") from exc
    return written


def execute_optimization(
    *,
    build_dir: str,
    reference_language: str | None,
    dialect: str | None,
    source_maps: bool | None,
    strict: bool | None,
    dry_run: bool,
) -> tuple[int, OptimizationSummary | None, str | None]:
    """Execute an optimization run and return the exit code, summary, and message."""

    build_path = pathlib.Path(build_dir).expanduser().resolve()
    if not build_path.is_dir():
        return 1, None, f"Build directory not found: {build_path}"

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        return 1, None, str(exc)

    strict = settings.KEYHOLE_STRICT if strict is None else strict
    source_maps = settings.KEYHOLE_SOURCE_MAPS if source_maps is None else source_maps

    try:
        optimizer = KeyOptimizer(
            reference_language=reference_language or settings.KEYHOLE_REFERENCE_LANGUAGE,
            dialect=dialect or settings.KEYHOLE_DIALECT,
            skip_pattern=settings.KEYHOLE_SKIP_PATTERN or None,
            extensions=parse_extensions(settings.KEYHOLE_EXTENSIONS),
            emit_warning=lambda message: None,
        )
        result = optimizer.run(load_build_dir(build_path))
        if not dry_run:
            write_artifacts(build_path, result, source_maps=source_maps)
    except OSError as exc:
        return 1, None, f"Failed to read build directory {build_path}: {exc}"
    except KeyholeError as exc:
        return 1, None, str(exc)
    except KeyboardInterrupt:
        return 2, None, "Optimization interrupted by user."

    summary = result.summary
    if strict and not summary.diagnostics.is_clean:
        return EXIT_STRICT_WARNINGS, summary, summary.warning
    return 0, summary, summary.warning


def print_summary(summary: OptimizationSummary, *, dry_run: bool = False) -> None:
    """Output a friendly report once processing completes."""

    print("\nDry run complete." if dry_run else "\nOptimization complete.")
    print(f"  Artifacts:        {summary.total_artifacts} scanned")
    print(f"  Language files:   {summary.language_artifacts}")
    if summary.reference_artifact:
        print(f"  Reference file:   {summary.reference_artifact}")
    print(f"  Keys indexed:     {summary.indexed_keys}")
    print(f"  Usages rewritten: {summary.usages_rewritten}")
    print(f"  Fallbacks added:  {summary.fallbacks_inserted}")
    print(f"  Bytes saved:      {summary.bytes_saved}")
    print(f"  Elapsed time:     {summary.elapsed_seconds:.2f} seconds")
    changed = summary.changed_artifacts
    if changed:
        print("  Changed files:" if not dry_run else "  Would change:")
        for filename in changed:
            print(f"    - {filename}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )

    exit_code, summary, message = execute_optimization(
        build_dir=args.build_dir,
        reference_language=args.reference_language,
        dialect=args.dialect,
        source_maps=args.source_maps,
        strict=args.strict,
        dry_run=args.dry_run,
    )

    if summary:
        print_summary(summary, dry_run=args.dry_run)
    if message:
        print(("\n" if summary else "") + message)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
