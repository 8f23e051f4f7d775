from __future__ import annotations

import typing as t

from ghosttext.types.completion import Position


@t.runtime_checkable
class TextBuffer(t.Protocol):
    """Read-only view of the host editor's text model.

    Lines and columns are 1-based. A column may range from 1 to
    ``line_max_column(line)``, which is one past the last character, so a
    range ending there covers the whole line.
    """

    def line_count(self) -> int:
        """Number of lines in the buffer (at least 1)."""

    def line_content(self, line: int, /) -> str:
        """Text of ``line`` without its line terminator."""

    def line_max_column(self, line: int, /) -> int:
        """Column just past the last character of ``line``."""

    def text_in_range(self, start: Position, end: Position, /) -> str:
        """Text between ``start`` (inclusive) and ``end`` (exclusive), lines
        joined with ``\\n``."""


class TextDocument:
    """``TextBuffer`` over an in-memory string.

    Used by hosts that keep plain strings rather than an editor model, and
    by the test-suite.

    Args:
        text: Full buffer content. ``\\r\\n`` line endings are normalised.

    Example:
        ```python
        doc = TextDocument("def add(a, b):\\n    return a + b\\n")
        doc.line_content(2)  # "    return a + b"
        doc.text_in_range(Position(1, 5), Position(1, 8))  # "add"
        ```
    """

    __slots__ = ("_lines",)

    def __init__(self, text: str = "") -> None:
        self._lines = text.replace("\r\n", "\n").split("\n")

    @classmethod
    def with_cursor(cls, text: str, marker: str = "|") -> tuple[TextDocument, Position]:
        """Build a document from text containing a single cursor marker.

        Returns:
            The document without the marker and the marker's position.

        Raises:
            ValueError: If the marker is missing.
        """
        offset = text.find(marker)
        if offset < 0:
            raise ValueError(f"cursor marker {marker!r} not found")
        doc = cls(text[:offset] + text[offset + len(marker):])
        return doc, doc.position_at(offset)

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    def line_count(self) -> int:
        return len(self._lines)

    def line_content(self, line: int, /) -> str:
        return self._lines[self._clamp_line(line) - 1]

    def line_max_column(self, line: int, /) -> int:
        return len(self.line_content(line)) + 1

    def text_in_range(self, start: Position, end: Position, /) -> str:
        start, end = self._clamp(start), self._clamp(end)
        if end < start:
            start, end = end, start
        if start.line == end.line:
            return self._lines[start.line - 1][start.column - 1:end.column - 1]
        parts = [self._lines[start.line - 1][start.column - 1:]]
        parts.extend(self._lines[start.line:end.line - 1])
        parts.append(self._lines[end.line - 1][:end.column - 1])
        return "\n".join(parts)

    def position_at(self, offset: int) -> Position:
        """Convert a 0-based character offset into a position."""
        offset = max(0, offset)
        for index, content in enumerate(self._lines):
            if offset <= len(content):
                return Position(index + 1, offset + 1)
            offset -= len(content) + 1
        last = len(self._lines)
        return Position(last, self.line_max_column(last))

    def _clamp_line(self, line: int) -> int:
        return min(max(1, line), len(self._lines))

    def _clamp(self, position: Position) -> Position:
        line = self._clamp_line(position.line)
        column = min(max(1, position.column), len(self._lines[line - 1]) + 1)
        return Position(line, column)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(lines={len(self._lines)})"


def text_before(buffer: TextBuffer, position: Position) -> str:
    """Everything from the start of ``buffer`` up to ``position``."""
    return buffer.text_in_range(Position(1, 1), position)
