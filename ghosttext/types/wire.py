from __future__ import annotations

import typing as t

import pydantic as pydt
import typing_extensions as te


class GenerateOptions(te.TypedDict):
    """Sampling options for the ``/api/generate`` endpoint."""

    num_predict: int
    """Maximum number of tokens to generate"""

    temperature: float
    """Sampling temperature"""

    stop: list[str]
    """Sequences that end generation server-side"""


class GenerateRequest(te.TypedDict):
    """Request body for ``POST /api/generate``."""

    model: str
    """Model identifier"""

    prompt: str
    """Fully assembled FIM prompt"""

    stream: bool
    """Ask for newline-delimited JSON chunks"""

    raw: bool
    """Bypass the server's prompt template so FIM sentinels stay intact"""

    options: GenerateOptions
    """Sampling options"""


class GenerateResponse(pydt.BaseModel):
    """One NDJSON line of a ``/api/generate`` response."""

    model_config: t.ClassVar[pydt.ConfigDict] = pydt.ConfigDict(extra="ignore")

    model: str | None = None
    """Model that produced the chunk"""

    created_at: str | None = None
    """Server timestamp"""

    response: str = ""
    """Text fragment, possibly empty"""

    done: bool = False
    """Terminal marker"""


class ModelTag(pydt.BaseModel):
    model_config: t.ClassVar[pydt.ConfigDict] = pydt.ConfigDict(extra="ignore")

    name: str


class TagsResponse(pydt.BaseModel):
    """Response body of ``GET /api/tags``."""

    model_config: t.ClassVar[pydt.ConfigDict] = pydt.ConfigDict(extra="ignore")

    models: list[ModelTag] = pydt.Field(default_factory=list)
