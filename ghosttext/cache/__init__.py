from __future__ import annotations

import logging
import typing as t

from ghosttext import __title__

logger = logging.getLogger("ghosttext.cache")


# pylint: disable=too-few-public-methods
class KeyBuilder:
    """Utility class for building cache keys with a consistent format.

    Attributes:
        split_char (str): Character used to split parts of the key.
        prefix (str): Prefix to prepend to all keys.
    """

    def __init__(self, split_char: str = ':', prefix: str = __title__) -> None:
        self.split_char = split_char
        self.prefix = prefix

    def build(self, *parts: str) -> str:
        """Build a cache key by joining the prefix and parts with the split
        character.

        Args:
            *parts (str): Parts to include in the key.

        Returns:
            str: The constructed cache key.
        """
        return self.split_char.join((self.prefix, *parts))


class CacheEntry(t.NamedTuple):
    """A suggestion and the exact context it was generated for.

    Attributes:
        text: Full suggested completion.
        request_prefix: Text before the cursor when the request was made.
        request_suffix: Sanitised suffix sent with the request.
    """

    text: str
    request_prefix: str
    request_suffix: str = ""


class StickyCache:
    """Single-entry cache that lets a suggestion follow the user's typing.

    While the user types characters that match the head of the cached
    suggestion, ``lookup`` returns the unconsumed tail without a new request.
    Any other edit (cursor moved, prefix rewritten, mismatching character)
    invalidates the entry. Entries live only as long as the owning session.

    Example:
        ```python
        cache = StickyCache()
        cache.store(CacheEntry(text="Builder()", request_prefix="var x = new "))

        cache.lookup("var x = new Buil")  # "der()"
        cache.lookup("var x = other")  # None, entry invalidated
        ```
    """

    __slots__ = ("_entry",)

    def __init__(self) -> None:
        self._entry = None  # type: t.Optional[CacheEntry]

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    def store(self, entry: CacheEntry) -> None:
        self._entry = entry
        logger.debug(
            "Cached suggestion (%s chars) for prefix of %s chars",
            len(entry.text),
            len(entry.request_prefix),
        )

    def lookup(self, live_prefix: str) -> str | None:
        """Return the remaining suggestion for ``live_prefix``, if still valid.

        The entry is valid when ``live_prefix`` strictly extends the cached
        request prefix and the newly typed delta is a prefix of the cached
        text. A miss, or a fully consumed suggestion, invalidates the entry.

        Args:
            live_prefix: Current text before the cursor.

        Returns:
            The unconsumed tail of the cached text, or None.
        """
        entry = self._entry
        if entry is None:
            return None

        if len(live_prefix) <= len(entry.request_prefix) or not live_prefix.startswith(
                entry.request_prefix):
            logger.debug("Sticky cache miss: prefix diverged")
            self.invalidate()
            return None

        delta = live_prefix[len(entry.request_prefix):]
        if not entry.text.startswith(delta):
            logger.debug("Sticky cache miss: typed %r does not follow suggestion", delta[:32])
            self.invalidate()
            return None

        remaining = entry.text[len(delta):]
        if not remaining:
            logger.debug("Sticky cache exhausted: suggestion fully typed")
            self.invalidate()
            return None

        logger.debug("Sticky cache hit: %s chars typed, %s remaining", len(delta), len(remaining))
        return remaining

    def invalidate(self) -> None:
        self._entry = None

    def __bool__(self) -> bool:
        return self._entry is not None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(entry={self._entry!r})"
