from __future__ import annotations

import typing as t

_T = t.TypeVar("_T")
_U = t.TypeVar("_U")


class AsyncStream(t.AsyncIterable[_T], t.Generic[_T]):
    """Lazy async sequence over a network source, replayable once drained.

    The first iteration pulls from the source and records every item; later
    iterations replay the record. Iterating again while the first pass is
    still suspended only replays what has arrived so far, so a stream is
    restartable per call but not mid-call.

    Example:
        ```python
        stream = client.generate(prompt, stop)

        async for chunk in stream:
            if too_long(chunk):
                break
        await stream.aclose()  # release the HTTP response

        stream.items_count  # chunks seen before stopping
        ```
    """

    def __init__(self, source: t.AsyncIterable[_T]):
        self._source = source
        self._started = False
        self._items = []  # type: t.List[_T]
        self._error = None  # type: t.Optional[Exception]
        self._completed = False

    async def __aiter__(self) -> t.AsyncIterator[_T]:  # pylint: disable=invalid-overridden-method
        if self._started:
            for item in list(self._items):
                yield item
            return

        self._started = True
        try:
            async for item in self._source:
                self._items.append(item)
                yield item
        except Exception as e:
            self._error = e
            raise
        finally:
            self._completed = True

    async def reduce(self, func: t.Callable[[_U, _T], _U], initial: _U) -> _U:
        """Fold the whole stream into one value, left to right."""
        result = initial
        async for item in self:
            result = func(result, item)
        return result

    async def aclose(self) -> None:
        """Stop early and release the source (e.g. an open response body)."""
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()
        self._completed = True

    @property
    def is_completed(self) -> bool:
        """True once the source is exhausted, failed or closed."""
        return self._completed

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def items_count(self) -> int:
        return len(self._items)


class TextStream(AsyncStream[str]):
    """Text fragments of one generation, in arrival order."""

    async def text(self) -> str:
        """Drain the stream and concatenate the fragments."""
        return await self.reduce(lambda acc, chunk: acc + chunk, "")

    @property
    def char_count(self) -> int:
        """Characters received so far."""
        return sum(len(chunk) for chunk in self._items)
