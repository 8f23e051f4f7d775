from __future__ import annotations

import typing as t


class RecommendedModel(t.NamedTuple):
    """Model suggested for inline completion, for settings pickers."""

    id: str
    name: str
    description: str
    vram: str


RECOMMENDED_MODELS: tuple[RecommendedModel, ...] = (
    RecommendedModel("qwen2.5-coder:1.5b", "Qwen 2.5 Coder 1.5B",
                     "Fast & lightweight, great for autocomplete", "~1GB"),
    RecommendedModel("qwen2.5-coder:3b", "Qwen 2.5 Coder 3B", "Better quality, slower output",
                     "~2GB"),
    RecommendedModel("ministral-3:3b", "Ministral 3 3B", "Good quality, slower output", "~3GB"),
    RecommendedModel("gemma3:1b", "Gemma3 1B", "Very lightweight option", "~0.8GB"),
    RecommendedModel("qwen3:1.7b", "Qwen3 1.7B", "Decent option", "~1.4GB"),
    RecommendedModel("deepseek-coder:1.3b", "DeepSeek Coder 1.3B", "Very lightweight option",
                     "~1GB"),
    RecommendedModel("starcoder2:3b", "Starcoder2 3B", "Community favorite for autocomplete",
                     "~3GB"),
)
"""Ordered by speed/quality tradeoff."""
