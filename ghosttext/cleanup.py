"""Post-processing of raw model output.

The sentinel list is a maintained allow-list: spellings observed from
specific model families, plus every sentinel of the registered FIM
families. It is incomplete by construction and grows with new families.
"""

from __future__ import annotations

import re
import typing as t

MAX_COMPLETION_LINES = 8
ECHO_WINDOW_CHARS = 64

SENTINEL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"<\|.*?\|>"),  # <|fim_prefix|>, <|endoftext|>, <|im_end|>, ...
    re.compile(r"<｜.*?｜>"),  # full-width DeepSeek spellings
    re.compile(r"<(?:fim_prefix|fim_middle|fim_suffix|fim_pad)>"),
    re.compile(r"<(?:PRE|SUF|MID|EOT)>"),
    re.compile(r"\[EOL\]"),
    re.compile(r"<file_sep>"),
)

_OPENING_FENCE = re.compile(r"^```[\w+-]*\n?")
_CLOSING_FENCE = re.compile(r"\n```$")


def _strip_once(text: str, sentinels: t.Sequence[str], max_lines: int) -> str:
    text = text.rstrip()
    text = _OPENING_FENCE.sub("", text)
    text = _CLOSING_FENCE.sub("", text)
    for pattern in SENTINEL_PATTERNS:
        text = pattern.sub("", text)
    for token in sentinels:
        text = text.replace(token, "")

    lines = text.split("\n")
    if len(lines) > max_lines:
        text = "\n".join(lines[:max_lines])
    return text.rstrip()


def clean_completion(
    text: str,
    sentinels: t.Iterable[str] = (),
    *,
    max_lines: int = MAX_COMPLETION_LINES,
) -> str:
    """Normalise raw model output into a single logical completion.

    Removes trailing whitespace (leading indentation is kept), code fences
    and sentinel tokens, and caps the result at ``max_lines`` lines. The
    steps repeat until the text stops changing, so cleaning is idempotent:
    ``clean_completion(clean_completion(x)) == clean_completion(x)``.

    Args:
        text: Raw accumulated stream text.
        sentinels: Extra literal tokens to strip, typically every sentinel
            of the registered FIM families.
        max_lines: Maximum number of lines to keep.

    Returns:
        The cleaned text, possibly empty.
    """
    tokens = tuple(s for s in sentinels if s)
    while True:
        cleaned = _strip_once(text, tokens, max_lines)
        if cleaned == text:
            return cleaned
        text = cleaned


def is_echoing_suffix(completion: str, suffix: str) -> bool:
    """Whether ``completion`` merely repeats what already follows the cursor.

    Both sides are trimmed and lower-cased; the completion echoes when it is
    a prefix of the head of the suffix.
    """
    if not completion.strip() or not suffix.strip():
        return False
    normalized = completion.strip().lower()
    head = suffix.lstrip()[:max(len(normalized), ECHO_WINDOW_CHARS)].lower()
    return head.startswith(normalized)
