from __future__ import annotations

import os
import typing as t

import pydantic as pyd


class BaseModel(pyd.BaseModel):
    """Base model with common configuration for all Pydantic models.

    Models are immutable, reject unknown fields and validate on
    construction, so a model instance can be shared freely between
    concurrent requests.

    Attributes:
        model_config: Configuration dictionary for the model.
    """
    model_config: t.ClassVar[pyd.ConfigDict] = pyd.ConfigDict(
        validate_default=False,  # Do not validate default values
        extra="forbid",  # Disallow extra fields
        populate_by_name=True,  # Allow population by field name
        frozen=True,  # Make the model immutable
    )


PathLikes: t.TypeAlias = str | os.PathLike[str]
"""Type alias for path-like objects."""
