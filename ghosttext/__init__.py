from __future__ import annotations

__title__ = "ghosttext"
__version__ = "0.1.0"

# pylint: disable=wrong-import-position
from ghosttext.client import OllamaClient
from ghosttext.config import load_config
from ghosttext.context import extract_context
from ghosttext.context.buffer import TextBuffer
from ghosttext.context.buffer import TextDocument
from ghosttext.exceptions import ConfigurationError
from ghosttext.exceptions import GhostTextError
from ghosttext.exceptions import InferenceConnectionError
from ghosttext.exceptions import InferenceError
from ghosttext.exceptions import InferenceHTTPError
from ghosttext.exceptions import RequestCancelledError
from ghosttext.prompt import FimRegistry
from ghosttext.prompt import build_fim_prompt
from ghosttext.session import CompletionSession
from ghosttext.session import register_inline_completion
from ghosttext.types.completion import CompletionResult
from ghosttext.types.completion import Position
from ghosttext.types.config import CompletionConfig
from ghosttext.types.config import resolve_config
from ghosttext.types.fim import FimTokenSet
from ghosttext.types.models import RECOMMENDED_MODELS

__all__ = [
    "__title__",
    "__version__",
    "CompletionConfig",
    "CompletionResult",
    "CompletionSession",
    "ConfigurationError",
    "FimRegistry",
    "FimTokenSet",
    "GhostTextError",
    "InferenceConnectionError",
    "InferenceError",
    "InferenceHTTPError",
    "OllamaClient",
    "Position",
    "RECOMMENDED_MODELS",
    "RequestCancelledError",
    "TextBuffer",
    "TextDocument",
    "build_fim_prompt",
    "extract_context",
    "load_config",
    "register_inline_completion",
    "resolve_config",
]
