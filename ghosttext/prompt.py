"""Model-family aware Fill-in-Middle prompt construction.

Different inference backends were pretrained with different sentinel
vocabularies, and a wrong sentinel silently yields garbage or empty
completions. Families are therefore resolved from data: an ordered list of
``(matcher, FimTokenSet)`` pairs evaluated first-match-wins, which hosts can
extend without touching the session code.
"""

from __future__ import annotations

import logging
import re
import typing as t

from ghosttext.types.fim import FimPrompt
from ghosttext.types.fim import FimTokenSet

logger = logging.getLogger("ghosttext.prompt")

GENERIC_END_MARKERS: tuple[str, ...] = ("<fim_suffix>", "<|endoftext|>")
CODE_FENCE = "```"

DEFAULT_FIM_TOKENS = FimTokenSet(
    prefix="<fim_prefix>",
    middle="<fim_middle>",
    suffix="<fim_suffix>",
    extra_stops=("<|endoftext|>",),
)


class FimFamily(t.NamedTuple):
    """A model family and the token set its models expect."""

    name: str
    matcher: re.Pattern[str]
    tokens: FimTokenSet

    def matches(self, model: str) -> bool:
        return self.matcher.search(model) is not None


BUILTIN_FAMILIES: tuple[FimFamily, ...] = (
    FimFamily(
        "qwen",
        re.compile(r"qwen", re.IGNORECASE),
        FimTokenSet(
            prefix="<|fim_prefix|>",
            middle="<|fim_middle|>",
            suffix="<|fim_suffix|>",
            extra_stops=("<|im_start|>", "<|im_end|>", "<|file_sep|>"),
        ),
    ),
    FimFamily(
        # Llama 3 base models and CodeLlama served through the same template.
        "llama",
        re.compile(r"(llama|codellama)", re.IGNORECASE),
        FimTokenSet(
            prefix="<|fim_prefix|>",
            middle="<|fim_middle|>",
            suffix="<|fim_suffix|>",
            extra_stops=("<|eot_id|>", "<|end_of_text|>", "<|file_separator|>"),
        ),
    ),
    FimFamily(
        "deepseek",
        re.compile(r"deepseek", re.IGNORECASE),
        FimTokenSet(
            prefix="<｜fim▁begin｜>",
            middle="<｜fim▁end｜>",
            suffix="<｜fim▁hole｜>",
            extra_stops=("<｜end▁of▁sentence｜>", "<|EOT|>", "<|file_sep|>"),
        ),
    ),
    FimFamily(
        "starcoder",
        re.compile(r"(starcoder|codegeex|phi|gemma)", re.IGNORECASE),
        FimTokenSet(
            prefix="<fim_prefix>",
            middle="<fim_middle>",
            suffix="<fim_suffix>",
            extra_stops=("<|endoftext|>", "<file_sep>"),
        ),
    ),
    FimFamily(
        "mistral",
        re.compile(r"(mistral|codestral|mixtral)", re.IGNORECASE),
        FimTokenSet(
            prefix="[PREFIX]",
            middle="[MIDDLE]",
            suffix="[SUFFIX]",
            extra_stops=("</s>", "[INST]", "[/INST]"),
        ),
    ),
)


class FimRegistry:
    """Ordered, first-match-wins lookup of FIM token sets.

    Args:
        families: Initial families, in priority order. Defaults to the
            built-in families.
        default: Token set used when no family matches.

    Example:
        ```python
        registry = FimRegistry()
        registry.register(
            "granite",
            r"granite",
            FimTokenSet("<fim_prefix>", "<fim_middle>", "<fim_suffix>"),
            first=True,
        )
        registry.resolve("granite-code:3b").name  # "granite"
        registry.resolve("unknown-model:1b").name  # "default"
        ```
    """

    def __init__(
        self,
        families: t.Iterable[FimFamily] = BUILTIN_FAMILIES,
        *,
        default: FimTokenSet = DEFAULT_FIM_TOKENS,
    ) -> None:
        self._families = list(families)
        self.default = FimFamily("default", re.compile(r"(?!)"), default)

    def register(
        self,
        name: str,
        matcher: str | re.Pattern[str],
        tokens: FimTokenSet,
        *,
        first: bool = False,
    ) -> FimFamily:
        """Add a family.

        Args:
            name: Family tag, reported in logs.
            matcher: Regex (string patterns are compiled case-insensitive)
                searched in the model identifier.
            tokens: Token set for the family.
            first: Insert ahead of existing families instead of after them.

        Returns:
            The registered family.
        """
        if isinstance(matcher, str):
            matcher = re.compile(matcher, re.IGNORECASE)
        family = FimFamily(name, matcher, tokens)
        if first:
            self._families.insert(0, family)
        else:
            self._families.append(family)
        logger.debug("Registered FIM family %s (%s)", name, matcher.pattern)
        return family

    def resolve(self, model: str | None) -> FimFamily:
        """Return the first family matching ``model``, or the default."""
        if model:
            for family in self._families:
                if family.matches(model):
                    return family
        return self.default

    @property
    def families(self) -> tuple[FimFamily, ...]:
        return tuple(self._families)

    def all_token_sets(self) -> tuple[FimTokenSet, ...]:
        return tuple(f.tokens for f in self._families) + (self.default.tokens,)

    def __len__(self) -> int:
        return len(self._families)

    def __repr__(self) -> str:
        names = ", ".join(f.name for f in self._families)
        return f"{self.__class__.__name__}([{names}])"


def build_stop_list(tokens: FimTokenSet) -> list[str]:
    """Stop hints for ``tokens``: suffix marker, family extras, generic end
    markers and the code fence, de-duplicated in order."""
    return list(dict.fromkeys((tokens.suffix, *tokens.extra_stops, *GENERIC_END_MARKERS,
                               CODE_FENCE)))


def build_fim_prompt(
    model: str | None,
    prefix: str,
    suffix: str = "",
    *,
    registry: FimRegistry | None = None,
) -> FimPrompt:
    """Assemble a FIM prompt for ``model``.

    With an empty suffix the request is a pure forward continuation
    (``prefix token + prefix``); otherwise the standard layout
    ``prefix token + prefix + suffix token + suffix + middle token`` is used.

    Args:
        model: Model identifier, may be ``None``.
        prefix: Text before the cursor.
        suffix: Text after the cursor.
        registry: Family registry. Defaults to the built-in families.

    Returns:
        The prompt, the stop list and the token set used.
    """
    family = (registry or FimRegistry()).resolve(model)
    tokens = family.tokens
    stop = build_stop_list(tokens)

    if not suffix:
        prompt = f"{tokens.prefix}{prefix}"
    else:
        prompt = f"{tokens.prefix}{prefix}{tokens.suffix}{suffix}{tokens.middle}"

    logger.debug(
        "Built FIM prompt: family=%s, model=%s, prompt_length=%s, has_suffix=%s",
        family.name,
        model,
        len(prompt),
        bool(suffix),
    )
    return FimPrompt(prompt=prompt, stop=stop, tokens=tokens)
