from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import typing as t

from ghosttext.exceptions import RequestCancelledError

logger = logging.getLogger("ghosttext.cancellation")

RequestState: t.TypeAlias = t.Literal[
    "idle", "debouncing", "requesting", "streaming", "cancelled", "completed", "errored"
]
"""Lifecycle of one completion attempt:
``idle -> debouncing -> {cancelled | requesting} -> streaming ->
{cancelled | completed | errored}``."""

_TERMINAL_STATES: frozenset[RequestState] = frozenset({"cancelled", "completed", "errored"})

_T = t.TypeVar("_T")


async def _run(awaitable: t.Awaitable[_T]) -> _T:
    return await awaitable


class CancellationToken:
    """Cooperative cancellation signal.

    Cancelling is idempotent and never raises; consumers poll
    ``is_cancelled`` at their suspension points, await ``wait()``, or run
    blocking operations through ``guard()`` so the signal interrupts them.
    """

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = None  # type: t.Optional[str]

    def cancel(self, reason: str = "cancelled") -> bool:
        """Set the signal.

        Returns:
            True if this call cancelled the token, False if it already was.
        """
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise ``RequestCancelledError`` if the signal is set."""
        if self._event.is_set():
            raise RequestCancelledError(f"Request cancelled: {self._reason}")

    async def guard(
        self,
        awaitable: t.Awaitable[_T],
        *,
        on_discard: t.Callable[[_T], t.Awaitable[None]] | None = None,
    ) -> _T:
        """Await ``awaitable`` unless the signal fires first.

        The awaitable runs in its own task and is raced against the signal,
        so a read blocked on the network is interrupted the moment the token
        is cancelled rather than at the next byte.

        Args:
            awaitable: Operation to run, e.g. a response header wait or the
                next body chunk.
            on_discard: Release callback for a result that arrives after the
                signal won the race (e.g. closing a late response).

        Returns:
            The awaitable's result, if it completed first.

        Raises:
            RequestCancelledError: If the signal fired first. The operation
                has been cancelled and has unwound by the time this raises.
        """
        if self._event.is_set():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        task = asyncio.ensure_future(_run(awaitable))
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait((task, waiter), return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        await asyncio.wait((task,))
        if not task.cancelled():
            error = task.exception()
            if error is not None:
                logger.debug("Interrupted operation failed while unwinding: %r", error)
            elif on_discard is not None:
                await on_discard(task.result())
        raise RequestCancelledError(f"Request cancelled: {self._reason}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(cancelled={self.is_cancelled})"


class RequestHandle:
    """One in-flight completion attempt and its cancellation signal.

    The session keeps at most one active handle; starting a new request
    cancels the previous handle immediately.

    Attributes:
        id: Monotonic identifier, useful in logs.
        token: Cancellation signal shared with the streaming client.
        state: Current lifecycle state.
    """

    _ids = itertools.count(1)

    __slots__ = ("id", "token", "state")

    def __init__(self) -> None:
        self.id = next(self._ids)
        self.token = CancellationToken()
        self.state: RequestState = "idle"

    @property
    def cancelled(self) -> bool:
        return self.token.is_cancelled

    @property
    def finished(self) -> bool:
        return self.state in _TERMINAL_STATES

    def cancel(self, reason: str = "superseded") -> None:
        """Cancel the attempt. Safe to call any number of times."""
        if self.token.cancel(reason):
            logger.debug("Request #%s cancelled (%s) in state %s", self.id, reason, self.state)
            if not self.finished:
                self.state = "cancelled"

    def transition(self, state: RequestState) -> None:
        if self.finished:
            return
        logger.debug("Request #%s: %s -> %s", self.id, self.state, state)
        self.state = state

    async def sleep(self, seconds: float) -> bool:
        """Suspend for ``seconds`` unless cancelled first.

        Returns:
            True if the full delay elapsed, False if the handle was cancelled.
        """
        if self.cancelled:
            return False
        if seconds <= 0:
            await asyncio.sleep(0)
            return not self.cancelled
        try:
            await asyncio.wait_for(self.token.wait(), timeout=seconds)
        except TimeoutError:
            return not self.cancelled
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id}, state={self.state!r})"
