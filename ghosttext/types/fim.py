from __future__ import annotations

import typing as t


class FimTokenSet(t.NamedTuple):
    """Sentinel vocabulary a model family was trained with.

    The layout is ``prefix + <prefix text> + suffix + <suffix text> + middle``:
    ``suffix`` is the marker placed between the two context spans and
    ``middle`` is the marker that triggers generation.
    """

    prefix: str
    middle: str
    suffix: str
    extra_stops: tuple[str, ...] = ()

    @property
    def sentinels(self) -> tuple[str, ...]:
        return (self.prefix, self.middle, self.suffix)


class FimPrompt(t.NamedTuple):
    """Assembled prompt plus generation-stop hints."""

    prompt: str
    stop: list[str]
    tokens: FimTokenSet
