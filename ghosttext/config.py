from __future__ import annotations

import logging
import os
import pathlib
import typing as t

import pydantic as pyd
import yaml

from ghosttext.exceptions import ConfigurationError
from ghosttext.types import PathLikes
from ghosttext.types.config import CompletionConfig

logger = logging.getLogger("ghosttext.config")

CONFIG_ENV_VAR = "GHOSTTEXT_CONFIG"
DEFAULT_CONFIG_FILE = "ghosttext.yml"
CONFIG_SECTION = "ghosttext"


def _locate(path: PathLikes | None) -> pathlib.Path | None:
    if path is not None:
        return pathlib.Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return pathlib.Path(env_path)
    default = pathlib.Path.cwd() / DEFAULT_CONFIG_FILE
    return default if default.is_file() else None


def load_config(path: PathLikes | None = None, /, **overrides: t.Any) -> CompletionConfig:
    """Load a ``CompletionConfig`` from a YAML file.

    The file is looked up in order: ``path``, the ``GHOSTTEXT_CONFIG``
    environment variable, ``./ghosttext.yml``. If none applies, defaults are
    used. Settings may sit at the top level or under a ``ghosttext:`` key.

    Example:
        ```yaml
        ghosttext:
          endpoint: http://localhost:11434
          model: deepseek-coder:1.3b
          debounce_ms: 200
        ```

    Args:
        path: Explicit config file.
        **overrides: Field values applied on top of the file; ``None`` values
            are ignored.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: If an explicitly named file is missing, the YAML
            is malformed or a value is invalid.
    """
    location = _locate(path)
    data = {}  # type: t.Dict[str, t.Any]

    if location is not None:
        try:
            with location.open(encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {location}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed config file {location}: {e}") from e

        if isinstance(loaded, dict) and CONFIG_SECTION in loaded:
            loaded = loaded[CONFIG_SECTION]
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file {location} must contain a mapping")
        data.update(loaded)
        logger.debug("Loaded config from %s: %s", location, sorted(data))

    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return CompletionConfig.model_validate(data)
    except pyd.ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
