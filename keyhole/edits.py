"""Offset preserving text edits and the position mapping they produce."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Edit:
    """Replace ``original[start:end]`` with ``replacement``.

    Offsets always refer to the unedited text; ``start == end`` inserts.
    """

    start: int
    end: int
    replacement: str
    sequence: int = 0


@dataclass(frozen=True)
class Segment:
    """A run of generated text and the original span it came from."""

    generated_start: int
    generated_end: int
    original_start: int
    original_end: int
    copied: bool


@dataclass
class PositionMap:
    """Maps offsets of rewritten text back to the original text."""

    segments: List[Segment] = field(default_factory=list)
    original_length: int = 0

    def original_offset(self, generated_offset: int) -> int:
        """Return the original offset a generated offset stems from.

        Offsets inside a replacement map to the start of the replaced span.
        """

        if not self.segments:
            return min(generated_offset, self.original_length)
        starts = [segment.generated_start for segment in self.segments]
        index = bisect.bisect_right(starts, generated_offset) - 1
        if index < 0:
            return 0
        segment = self.segments[index]
        if generated_offset >= segment.generated_end:
            if index == len(self.segments) - 1:
                return self.original_length
            return segment.original_end
        if segment.copied:
            return segment.original_start + (generated_offset - segment.generated_start)
        return segment.original_start

    def generated_offset(self, original_offset: int) -> int:
        """Return where an original offset ended up in the rewritten text.

        Offsets inside a replaced span map to the start of its replacement.
        """

        if not self.segments:
            return min(original_offset, self.original_length)
        starts = [segment.original_start for segment in self.segments]
        index = bisect.bisect_right(starts, original_offset) - 1
        if index < 0:
            return 0
        segment = self.segments[index]
        if original_offset >= segment.original_end:
            return segment.generated_end
        if segment.copied:
            return segment.generated_start + (original_offset - segment.original_start)
        return segment.generated_start


@dataclass
class RewriteResult:
    """Final text of an artifact plus how it maps to the original."""

    text: str
    position_map: PositionMap
    edit_count: int

    @property
    def changed(self) -> bool:
        return self.edit_count > 0


class EditSet:
    """Collects non overlapping edits against one original text."""

    def __init__(self, original: str) -> None:
        self.original = original
        self._edits: List[Edit] = []

    def __len__(self) -> int:
        return len(self._edits)

    def replace(self, start: int, end: int, replacement: str) -> None:
        if not 0 <= start <= end <= len(self.original):
            raise ValueError(
                f"Edit span {start}:{end} lies outside the text "
                f"(length {len(self.original)})."
            )
        self._edits.append(
            Edit(start=start, end=end, replacement=replacement, sequence=len(self._edits))
        )

    def insert(self, position: int, text: str) -> None:
        self.replace(position, position, text)

    def _ordered(self) -> List[Edit]:
        ordered = sorted(self._edits, key=lambda edit: (edit.start, edit.end > edit.start, edit.sequence))
        previous_end = 0
        for edit in ordered:
            if edit.start < previous_end:
                raise ValueError(
                    f"Overlapping edits at offset {edit.start} (previous edit ends at {previous_end})."
                )
            previous_end = max(previous_end, edit.end)
        return ordered

    def apply(self) -> RewriteResult:
        """Apply all edits at once and build the position mapping."""

        original = self.original
        parts: List[str] = []
        segments: List[Segment] = []
        cursor = 0
        generated = 0

        def emit(text: str, original_start: int, original_end: int, copied: bool) -> None:
            nonlocal generated
            if not text and original_start == original_end:
                return
            parts.append(text)
            segments.append(
                Segment(
                    generated_start=generated,
                    generated_end=generated + len(text),
                    original_start=original_start,
                    original_end=original_end,
                    copied=copied,
                )
            )
            generated += len(text)

        for edit in self._ordered():
            if edit.start > cursor:
                emit(original[cursor:edit.start], cursor, edit.start, True)
            emit(edit.replacement, edit.start, edit.end, False)
            cursor = max(cursor, edit.end)
        if cursor < len(original):
            emit(original[cursor:], cursor, len(original), True)

        return RewriteResult(
            text="".join(parts),
            position_map=PositionMap(segments=segments, original_length=len(original)),
            edit_count=len(self._edits),
        )
