"""Rendering of position mappings as Source Map revision 3 documents."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from .edits import PositionMap

BASE64_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
BASE64_VALUES = {digit: value for value, digit in enumerate(BASE64_DIGITS)}

# One decoded segment: generated column, then optionally source index,
# original line, original column and name index, all absolute.
MappingSegment = Tuple[int, ...]


def encode_vlq(value: int) -> str:
    """Encode one signed integer as a Base64 VLQ."""

    remaining = (-value << 1) | 1 if value < 0 else value << 1
    digits: List[str] = []
    while True:
        digit = remaining & 0b11111
        remaining >>= 5
        if remaining:
            digit |= 0b100000
        digits.append(BASE64_DIGITS[digit])
        if not remaining:
            return "".join(digits)


def decode_vlq(text: str) -> List[int]:
    """Decode the Base64 VLQ values of one mapping segment."""

    values: List[int] = []
    value = 0
    shift = 0
    for char in text:
        digit = BASE64_VALUES.get(char)
        if digit is None:
            raise ValueError(f"Invalid Base64 VLQ digit {char!r}.")
        value += (digit & 0b11111) << shift
        if digit & 0b100000:
            shift += 5
            continue
        values.append(-(value >> 1) if value & 1 else value >> 1)
        value = 0
        shift = 0
    if shift:
        raise ValueError(f"Truncated Base64 VLQ {text!r}.")
    return values


def parse_mappings(mappings: str) -> List[List[MappingSegment]]:
    """Decode a ``mappings`` string into absolute segments per generated line."""

    lines: List[List[MappingSegment]] = []
    source = line = column = name = 0
    for encoded_line in mappings.split(";"):
        generated_column = 0
        segments: List[MappingSegment] = []
        for encoded in encoded_line.split(","):
            if not encoded:
                continue
            values = decode_vlq(encoded)
            if len(values) not in (1, 4, 5):
                raise ValueError(f"Mapping segment {encoded!r} has {len(values)} fields.")
            generated_column += values[0]
            if len(values) == 1:
                segments.append((generated_column,))
                continue
            source += values[1]
            line += values[2]
            column += values[3]
            if len(values) == 5:
                name += values[4]
                segments.append((generated_column, source, line, column, name))
            else:
                segments.append((generated_column, source, line, column))
        lines.append(segments)
    return lines


def encode_mappings(lines: List[List[MappingSegment]]) -> str:
    """Inverse of :func:`parse_mappings`."""

    encoded_lines: List[str] = []
    source = line = column = name = 0
    for segments in lines:
        previous_column = 0
        encoded: List[str] = []
        for segment in segments:
            parts = [encode_vlq(segment[0] - previous_column)]
            previous_column = segment[0]
            if len(segment) >= 4:
                parts.append(encode_vlq(segment[1] - source))
                parts.append(encode_vlq(segment[2] - line))
                parts.append(encode_vlq(segment[3] - column))
                source, line, column = segment[1], segment[2], segment[3]
            if len(segment) == 5:
                parts.append(encode_vlq(segment[4] - name))
                name = segment[4]
            encoded.append("".join(parts))
        encoded_lines.append(",".join(encoded))
    return ";".join(encoded_lines)


def _utf16_length(text: str) -> int:
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


class _LineCursor:
    """Tracks line and UTF-16 column while moving forward through a text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.offset = 0
        self.line = 0
        self.column = 0

    def advance_to(self, offset: int) -> Tuple[int, int]:
        if offset < self.offset:
            raise ValueError("Source map positions must be visited in order.")
        chunk = self.text[self.offset:offset]
        newlines = chunk.count("\n")
        if newlines:
            self.line += newlines
            self.column = _utf16_length(chunk[chunk.rfind("\n") + 1:])
        else:
            self.column += _utf16_length(chunk)
        self.offset = offset
        return self.line, self.column


class _OffsetIndex:
    """Turns line and UTF-16 column positions into string offsets."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.line_starts = [0]
        newline = text.find("\n")
        while newline != -1:
            self.line_starts.append(newline + 1)
            newline = text.find("\n", newline + 1)
        self._astral_lines: Dict[int, bool] = {}

    def offset(self, line: int, column: int) -> Optional[int]:
        if not 0 <= line < len(self.line_starts):
            return None
        start = self.line_starts[line]
        end = self.line_starts[line + 1] - 1 if line + 1 < len(self.line_starts) else len(self.text)
        if line not in self._astral_lines:
            self._astral_lines[line] = _utf16_length(self.text[start:end]) != end - start
        if not self._astral_lines[line]:
            return start + min(max(column, 0), end - start)
        units = 0
        for position in range(start, end):
            if units >= column:
                return position
            units += 2 if ord(self.text[position]) > 0xFFFF else 1
        return end


def _mapping_points(
    position_map: PositionMap,
    generated: str,
) -> List[Tuple[int, int]]:
    """Generated/original offset pairs at which a mapping segment starts."""

    points: List[Tuple[int, int]] = []
    for segment in position_map.segments:
        if segment.generated_start == segment.generated_end:
            continue
        points.append((segment.generated_start, segment.original_start))
        if not segment.copied:
            continue
        newline = generated.find("\n", segment.generated_start, segment.generated_end)
        while newline != -1 and newline + 1 < segment.generated_end:
            relative = newline + 1 - segment.generated_start
            points.append((newline + 1, segment.original_start + relative))
            newline = generated.find("\n", newline + 1, segment.generated_end)
    return points


def build_source_map(
    *,
    filename: str,
    original: str,
    generated: str,
    position_map: PositionMap,
    include_sources_content: bool = True,
) -> Dict[str, Any]:
    """Describe how ``generated`` maps onto ``original`` as a v3 source map."""

    generated_cursor = _LineCursor(generated)
    original_cursor = _LineCursor(original)
    lines: List[List[MappingSegment]] = [[]]

    for generated_offset, original_offset in _mapping_points(position_map, generated):
        generated_line, generated_column = generated_cursor.advance_to(generated_offset)
        original_line, original_column = original_cursor.advance_to(original_offset)
        while len(lines) <= generated_line:
            lines.append([])
        lines[generated_line].append((generated_column, 0, original_line, original_column))

    document: Dict[str, Any] = {
        "version": 3,
        "file": filename,
        "sources": [filename],
        "names": [],
        "mappings": encode_mappings(lines),
    }
    if include_sources_content:
        document["sourcesContent"] = [original]
    return document


def compose_source_map(
    *,
    upstream: Any,
    filename: str,
    original: str,
    generated: str,
    position_map: PositionMap,
) -> Dict[str, Any]:
    """Carry ``upstream``, a map of ``original``, over to ``generated``.

    Every upstream segment moves to where its text ended up after the
    rewrite, so the result still points at the authored sources. Segments
    inside a replaced span collapse onto the start of the replacement.
    Sources, names and any other upstream fields are kept as they are.
    """

    if not isinstance(upstream, dict):
        raise ValueError("Source map is not a JSON object.")
    if "sections" in upstream:
        raise ValueError("Indexed source maps with sections are not supported.")
    if upstream.get("version") != 3 or not isinstance(upstream.get("mappings"), str):
        raise ValueError("Not a revision 3 source map.")

    offsets = _OffsetIndex(original)
    moved: List[Tuple[int, MappingSegment]] = []
    for line, segments in enumerate(parse_mappings(upstream["mappings"])):
        for segment in segments:
            offset = offsets.offset(line, segment[0])
            if offset is None:
                continue
            moved.append((position_map.generated_offset(offset), segment[1:]))
    moved.sort(key=lambda item: item[0])

    cursor = _LineCursor(generated)
    lines: List[List[MappingSegment]] = [[]]
    previous: Optional[Tuple[int, int]] = None
    for generated_offset, fields in moved:
        position = cursor.advance_to(generated_offset)
        if position == previous:
            continue
        previous = position
        generated_line, generated_column = position
        while len(lines) <= generated_line:
            lines.append([])
        lines[generated_line].append((generated_column, *fields))

    document = dict(upstream)
    document.setdefault("file", filename)
    document["mappings"] = encode_mappings(lines)
    return document


def render_source_map(**kwargs: Any) -> str:
    return json.dumps(build_source_map(**kwargs), ensure_ascii=False)


def render_composed_source_map(**kwargs: Any) -> str:
    return json.dumps(compose_source_map(**kwargs), ensure_ascii=False)
