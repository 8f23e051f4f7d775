from __future__ import annotations

import typing as t


class ExtractedContext(t.NamedTuple):
    """Text window around the cursor sent to the model.

    Attributes:
        prefix: Text before the cursor, bounded by the line and character
            budgets. Truncation keeps the tail nearest the cursor.
        suffix: Text after the cursor, bounded and stripped of leading
            blank/comment-only lines. May be a synthetic look-ahead span or
            empty.
    """

    prefix: str
    suffix: str

    @property
    def total_chars(self) -> int:
        return len(self.prefix) + len(self.suffix)
