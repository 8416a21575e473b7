"""Aggregation and reporting of missing and unused translations."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from .structures import Diagnostics

WarningEmitter = Callable[[str], None]

MISSING_HEADING = (
    "The following translations appear in the bundled code but not in the language files:"
)
UNUSED_HEADING = (
    "The following translations appear in the language files but not in the bundled code:"
)
REEXTRACT_HINT = "Please extract the newest language reference file from the source code."


class DiagnosticsCollector:
    """Merges per-artifact findings over one optimization pass."""

    def __init__(self, reference_keys: Iterable[str]) -> None:
        self._reference_keys = list(reference_keys)
        self._missing: list[str] = []
        self._used: set[str] = set()

    def add_missing(self, keys: Iterable[str]) -> None:
        for key in keys:
            if key not in self._missing:
                self._missing.append(key)

    def add_used(self, keys: Iterable[str]) -> None:
        self._used.update(keys)

    def result(self) -> Diagnostics:
        return Diagnostics(
            missing_translations=set(self._missing),
            unused_translations={
                key for key in self._reference_keys if key not in self._used
            },
        )

    def ordered_missing(self) -> list[str]:
        return list(self._missing)

    def ordered_unused(self) -> list[str]:
        return [key for key in self._reference_keys if key not in self._used]


def _listing(keys: Iterable[str]) -> str:
    return "".join(f"  {key}\n" for key in keys)


def format_warning(
    missing: Iterable[str],
    unused: Iterable[str],
) -> Optional[str]:
    """Build the combined warning, or ``None`` when there is nothing to say."""

    missing = list(missing)
    unused = list(unused)
    if not missing and not unused:
        return None

    message = ""
    if missing:
        message += f"{MISSING_HEADING}\n{_listing(missing)}"
    if unused:
        message += f"{UNUSED_HEADING}\n{_listing(unused)}"
    return message + f"\n{REEXTRACT_HINT}"


def report_diagnostics(
    collector: DiagnosticsCollector,
    emit_warning: WarningEmitter,
) -> Optional[str]:
    """Emit at most one warning for the pass and return it."""

    warning = format_warning(collector.ordered_missing(), collector.ordered_unused())
    if warning is not None:
        emit_warning(warning)
    return warning
