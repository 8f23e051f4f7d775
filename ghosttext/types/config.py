from __future__ import annotations

import typing as t

import pydantic as pyd

from ghosttext.types import BaseModel

DEFAULT_ENDPOINT = "http://localhost:11434"
DEFAULT_MODEL = "qwen2.5-coder:1.5b"


class CompletionConfig(BaseModel):
    """Immutable settings for one inline-completion session.

    Every numeric field is non-negative; ``max_context_chars`` bounds the
    combined prefix + suffix length sent to the model.

    Example:
        ```python
        config = CompletionConfig(model="deepseek-coder:1.3b", debounce_ms=150)
        config = config.model_copy(update={"max_completion_length": 64})
        ```
    """

    endpoint: str = DEFAULT_ENDPOINT
    """Base URL of the inference server."""

    model: str | None = DEFAULT_MODEL
    """Model identifier; selects the FIM token family."""

    debounce_ms: pyd.NonNegativeInt = 300
    """Delay before a request is issued, in milliseconds."""

    max_context_lines: pyd.NonNegativeInt = 50
    """Lines taken on each side of the cursor."""

    max_context_chars: pyd.NonNegativeInt = 500
    """Character budget for prefix + suffix (0 disables budgeting)."""

    max_completion_length: pyd.NonNegativeInt = 512
    """Token budget passed to the server as ``num_predict``."""

    temperature: pyd.NonNegativeFloat = 0.2
    """Sampling temperature, kept low for deterministic completions."""

    request_timeout: pyd.NonNegativeFloat = 30.0
    """Read timeout for the generate call, in seconds."""

    streaming: bool = True
    """Read the response incrementally; ``False`` reads the full body."""

    @pyd.field_validator("endpoint")
    @classmethod
    def _strip_endpoint(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("endpoint must not be empty")
        return value

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def soft_limit(self) -> int:
        """Characters after which streaming allows one more chunk."""
        budget = self.max_completion_length
        return max(budget * 4, budget + 725)

    @property
    def hard_limit(self) -> int:
        """Characters after which streaming stops unconditionally."""
        budget = self.max_completion_length
        return max(budget * 8, self.soft_limit + budget)


def resolve_config(config: CompletionConfig | None = None, /, **overrides: t.Any) -> CompletionConfig:
    """Merge overrides over defaults (or over ``config``) and validate.

    Args:
        config: Base configuration. Defaults to ``CompletionConfig()``.
        **overrides: Field values to replace. ``None`` values are ignored so
            partially filled host settings can be passed straight through.

    Returns:
        A validated configuration.

    Raises:
        pydantic.ValidationError: If a value violates a field constraint.
    """
    base = (config or CompletionConfig()).model_dump()
    base.update({k: v for k, v in overrides.items() if v is not None})
    return CompletionConfig.model_validate(base)
