"""Context extraction around the cursor.

Pulls a bounded window of text before and after the cursor, applies the
character budget (prefix favoured over suffix) and sanitises the forward
side so FIM models anchor on real code rather than on nearby comments.
"""

from __future__ import annotations

import logging
import re

from ghosttext.context.buffer import TextBuffer
from ghosttext.context.buffer import TextDocument
from ghosttext.context.buffer import text_before
from ghosttext.types.completion import Position
from ghosttext.types.context import ExtractedContext

logger = logging.getLogger("ghosttext.context")

PREFIX_WEIGHT = 0.75
LOOKAHEAD_LINES = 80
LOOKAHEAD_SPAN_LINES = 5
LOOKAHEAD_MAX_CHARS = 200
MIN_PREFIX_CHARS = 3

_BLANK_LINE = re.compile(r"^\s*$")
# Line comments, block comment openers/closers and block continuation lines.
_COMMENT_LINE = re.compile(r"^\s*(?://|/\*|\*/|\*|#(?:\s|$))")

__all__ = [
    "ExtractedContext",
    "TextBuffer",
    "TextDocument",
    "extract_context",
    "find_forward_code_suffix",
    "is_degenerate_prefix",
    "is_code_line",
    "limit_context_by_characters",
    "strip_leading_comments",
    "text_before",
]


def is_code_line(line: str) -> bool:
    """Whether ``line`` is neither blank nor comment-only."""
    return not (_BLANK_LINE.match(line) or _COMMENT_LINE.match(line))


def limit_context_by_characters(
    prefix: str,
    suffix: str,
    max_chars: int,
    prefix_weight: float = PREFIX_WEIGHT,
) -> tuple[str, str]:
    """Cap prefix + suffix to ``max_chars``.

    When the pair is over budget the prefix keeps at most
    ``floor(max_chars * prefix_weight)`` characters from its end (nearest
    the cursor) and the suffix keeps whatever budget remains from its start.

    Args:
        prefix: Text before the cursor.
        suffix: Text after the cursor.
        max_chars: Character budget. ``0`` disables budgeting.
        prefix_weight: Share of the budget reserved for the prefix.

    Returns:
        The (possibly truncated) ``(prefix, suffix)`` pair.
    """
    if max_chars <= 0 or len(prefix) + len(suffix) <= max_chars:
        return prefix, suffix

    prefix_budget = max(0, int(max_chars * prefix_weight))
    if len(prefix) > prefix_budget:
        prefix = prefix[len(prefix) - prefix_budget:]

    remaining = max(0, max_chars - len(prefix))
    if len(suffix) > remaining:
        suffix = suffix[:remaining]

    return prefix, suffix


def strip_leading_comments(suffix: str) -> str:
    """Drop leading blank and comment-only lines from ``suffix``."""
    lines = suffix.split("\n")
    idx = 0
    while idx < len(lines) and not is_code_line(lines[idx]):
        idx += 1
    return "\n".join(lines[idx:])


def find_forward_code_suffix(
    buffer: TextBuffer,
    from_line: int,
    max_lookahead_lines: int = LOOKAHEAD_LINES,
    span_lines: int = LOOKAHEAD_SPAN_LINES,
    max_chars: int = LOOKAHEAD_MAX_CHARS,
) -> str:
    """Find the next real code after ``from_line`` to use as a forward anchor.

    Scans at most ``max_lookahead_lines`` lines past ``from_line`` for the
    first non-blank, non-comment line and captures ``span_lines`` lines from
    there (capped at ``max_chars`` characters).

    Returns:
        The captured span, or an empty string if no code line was found.
    """
    line_count = buffer.line_count()
    end_search = min(line_count, from_line + max_lookahead_lines)

    first_code_line = None
    for line in range(from_line + 1, end_search + 1):
        if is_code_line(buffer.line_content(line)):
            first_code_line = line
            break

    if first_code_line is None:
        return ""

    capture_end = min(line_count, first_code_line + span_lines)
    text = buffer.text_in_range(
        Position(first_code_line, 1),
        Position(capture_end, buffer.line_max_column(capture_end)),
    )
    return text[:max_chars]


def extract_context(
    buffer: TextBuffer,
    position: Position,
    max_lines: int,
    max_chars: int,
) -> ExtractedContext:
    """Extract the prefix/suffix window around ``position``.

    Never fails: an empty buffer or out-of-range cursor yields a best-effort,
    possibly empty, context. Whether a short prefix is worth a request is
    left to the caller (see ``is_degenerate_prefix``).

    Args:
        buffer: Host text model.
        position: Cursor position (1-based).
        max_lines: Lines taken on each side of the cursor.
        max_chars: Combined character budget (``0`` disables it).

    Returns:
        The budgeted prefix and sanitised suffix, with
        ``len(prefix) + len(suffix) <= max_chars`` when budgeting is on.
    """
    line_count = buffer.line_count()

    prefix_start = max(1, position.line - max_lines)
    prefix = buffer.text_in_range(Position(prefix_start, 1), position)

    suffix_end = min(line_count, position.line + max_lines)
    suffix = buffer.text_in_range(
        position, Position(suffix_end, buffer.line_max_column(suffix_end))
    )

    prefix, suffix = limit_context_by_characters(prefix, suffix, max_chars)
    sanitized = strip_leading_comments(suffix)

    if not sanitized:
        lookahead_chars = LOOKAHEAD_MAX_CHARS
        if max_chars > 0:
            lookahead_chars = min(lookahead_chars, max(0, max_chars - len(prefix)))
        if lookahead_chars:
            sanitized = find_forward_code_suffix(buffer, position.line, max_chars=lookahead_chars)
            if sanitized:
                logger.debug("Using look-ahead suffix (%s chars)", len(sanitized))

    logger.debug(
        "Extracted context at %s:%s: prefix=%s chars, suffix=%s chars",
        position.line,
        position.column,
        len(prefix),
        len(sanitized),
    )
    return ExtractedContext(prefix=prefix, suffix=sanitized)


def is_degenerate_prefix(prefix: str, min_chars: int = MIN_PREFIX_CHARS) -> bool:
    """Whether ``prefix`` is too short to be worth a request."""
    return len(prefix.strip()) < min_chars
