from __future__ import annotations

import typing as t


class Position(t.NamedTuple):
    """1-based cursor position (line, column), as editors report it."""

    line: int
    column: int


class Range(t.NamedTuple):
    start: Position
    end: Position

    @classmethod
    def at(cls, position: Position) -> Range:
        """Zero-width range anchored at ``position``."""
        return cls(start=position, end=position)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


class CompletionResult(t.NamedTuple):
    """Outcome of one completion request.

    Either an insertable text span anchored at the cursor, or the explicit
    "no suggestion" value returned by ``CompletionResult.empty()``. The
    result is falsy when there is nothing to show.

    Attributes:
        insert_text: Ghost text to render at the cursor.
        range: Zero-width range at the cursor (``start == end``).
        from_cache: Whether the text came from the sticky cache.
    """

    insert_text: str = ""
    range: Range | None = None
    from_cache: bool = False

    @classmethod
    def empty(cls) -> CompletionResult:
        return cls()

    @classmethod
    def at_cursor(cls, text: str, cursor: Position, *, from_cache: bool = False) -> CompletionResult:
        return cls(insert_text=text, range=Range.at(cursor), from_cache=from_cache)

    def __bool__(self) -> bool:
        return bool(self.insert_text)
