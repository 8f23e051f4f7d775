from __future__ import annotations

import logging
import typing as t

from cachetools import TTLCache

from ghosttext.cache import KeyBuilder

logger = logging.getLogger("ghosttext.cache.cachetools")

MODEL_LIST_TTL = 60 * 60


class ModelListCache:
    """Per-endpoint cache of installed model names, based on
    cachetools.TTLCache.

    Only successful, non-empty listings are stored, so an unreachable server
    is re-queried on the next call rather than cached as "no models".

    Args:
        ttl: Entry lifetime in seconds. Defaults to one hour.
        maxsize: Maximum number of endpoints kept.
        timer: Clock used by the TTL cache (injectable for tests).
    """

    def __init__(
        self,
        ttl: float = MODEL_LIST_TTL,
        maxsize: int = 16,
        timer: t.Callable[[], float] | None = None,
    ) -> None:
        self._keys = KeyBuilder()
        if timer is None:
            self._cache = TTLCache(maxsize=maxsize, ttl=ttl)  # type: TTLCache[str, tuple[str, ...]]
        else:
            self._cache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def _key(self, endpoint: str) -> str:
        return self._keys.build("models", endpoint.rstrip("/"))

    def get(self, endpoint: str, /) -> list[str] | None:
        """Cached model names for ``endpoint``, or None when absent/expired."""
        models = self._cache.get(self._key(endpoint))
        return list(models) if models is not None else None

    def set(self, endpoint: str, models: t.Iterable[str], /) -> None:
        names = tuple(models)
        if not names:
            return
        self._cache[self._key(endpoint)] = names
        logger.debug("Cached %s models for %s", len(names), endpoint)

    def has_valid(self, endpoint: str, /) -> bool:
        return self.get(endpoint) is not None

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(ttl={self._cache.ttl}, items={len(self)})"
