"""Core data structures for the Keyhole translation key optimizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Union

if TYPE_CHECKING:
    from .dialects import Dialect
    from .edits import PositionMap


ArtifactContent = Union[str, bytes]


@dataclass
class Artifact:
    """A generated build artifact handed over by the host build tool."""

    filename: str
    content: ArtifactContent
    position_map: Optional["PositionMap"] = None

    @property
    def is_text(self) -> bool:
        return isinstance(self.content, str)

    @property
    def text(self) -> str:
        if not isinstance(self.content, str):
            raise TypeError(f"Artifact {self.filename} holds binary content.")
        return self.content


@dataclass(frozen=True)
class ParsedLanguageArtifact:
    """A language artifact split around its translation dictionary literal."""

    artifact: Artifact
    dialect: "Dialect"
    prefix: str
    dictionary_text: str
    suffix: str

    @property
    def filename(self) -> str:
        return self.artifact.filename

    @property
    def dictionary_offset(self) -> int:
        return len(self.prefix)


@dataclass(frozen=True)
class DictionaryEntry:
    """One ``KEY : VALUE`` pair of a dictionary literal.

    Offsets are absolute positions within the original artifact text and
    ``end`` offsets are exclusive.
    """

    key_start: int
    key_end: int
    key_text: str
    value_start: int
    value_end: int
    value_text: str


@dataclass(frozen=True)
class DictionaryLayout:
    """Entries of a dictionary literal plus what is needed to append to it."""

    entries: List[DictionaryEntry]
    closing_brace: int
    has_trailing_comma: bool

    @property
    def needs_separator(self) -> bool:
        """Whether an appended entry must be preceded by a comma."""

        return bool(self.entries) and not self.has_trailing_comma


@dataclass
class TranslationKeyIndex:
    """Normalized reference keys mapped to dense ordinals and fallback values."""

    ordinals: Dict[str, int] = field(default_factory=dict)
    fallbacks: Dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.ordinals)

    def __contains__(self, key: object) -> bool:
        return key in self.ordinals

    def ordinal(self, key: str) -> Optional[int]:
        return self.ordinals.get(key)

    def fallback(self, key: str) -> str:
        """Return the reference value for a key, or the key itself."""

        return self.fallbacks.get(key) or key

    def keys(self) -> List[str]:
        return list(self.ordinals)


@dataclass
class Diagnostics:
    """Advisory findings of one optimization pass."""

    missing_translations: Set[str] = field(default_factory=set)
    unused_translations: Set[str] = field(default_factory=set)

    @property
    def is_clean(self) -> bool:
        return not self.missing_translations and not self.unused_translations


@dataclass
class ArtifactReport:
    """Per-artifact statistics collected while rewriting."""

    filename: str
    kind: str
    keys_rewritten: int = 0
    fallbacks_filled: int = 0
    fallbacks_inserted: int = 0
    usages_rewritten: int = 0
    original_size: int = 0
    optimized_size: int = 0

    @property
    def changed(self) -> bool:
        return bool(
            self.keys_rewritten
            or self.fallbacks_filled
            or self.fallbacks_inserted
            or self.usages_rewritten
        )


@dataclass
class OptimizationSummary:
    """Report returned after one optimization pass."""

    total_artifacts: int
    language_artifacts: int
    usage_artifacts: int
    reference_artifact: Optional[str]
    indexed_keys: int
    elapsed_seconds: float
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    reports: List[ArtifactReport] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def keys_rewritten(self) -> int:
        return sum(report.keys_rewritten for report in self.reports)

    @property
    def usages_rewritten(self) -> int:
        return sum(report.usages_rewritten for report in self.reports)

    @property
    def fallbacks_inserted(self) -> int:
        return sum(
            report.fallbacks_inserted + report.fallbacks_filled
            for report in self.reports
        )

    @property
    def bytes_saved(self) -> int:
        return sum(
            report.original_size - report.optimized_size for report in self.reports
        )

    @property
    def changed_artifacts(self) -> List[str]:
        return [report.filename for report in self.reports if report.changed]
