from __future__ import annotations

import logging
import typing as t

from ghosttext.cache import CacheEntry
from ghosttext.cache import StickyCache
from ghosttext.cancellation import RequestHandle
from ghosttext.cleanup import clean_completion
from ghosttext.cleanup import is_echoing_suffix
from ghosttext.client import OllamaClient
from ghosttext.context import extract_context
from ghosttext.context import is_degenerate_prefix
from ghosttext.context.buffer import TextBuffer
from ghosttext.context.buffer import text_before
from ghosttext.exceptions import InferenceError
from ghosttext.exceptions import RequestCancelledError
from ghosttext.helpers.mixin import AsyncContextMixin
from ghosttext.prompt import FimRegistry
from ghosttext.prompt import build_fim_prompt
from ghosttext.types.completion import CompletionResult
from ghosttext.types.completion import Position
from ghosttext.types.config import CompletionConfig
from ghosttext.types.config import resolve_config
from ghosttext.types.fim import FimPrompt

logger = logging.getLogger("ghosttext.session")


class CompletionSession(AsyncContextMixin):
    """Inline-completion controller, the only object a host editor calls.

    Each ``request_completion`` call supersedes the previous one: the older
    request is cancelled immediately and whatever it would have produced is
    discarded, so only the latest keystroke's result is ever surfaced. The
    session owns the single active-request slot and the single sticky cache
    entry; nothing else mutates them.

    Pipeline per request: cache check, debounce, context extraction, FIM
    prompt, streaming with a soft/hard length limit, cleanup, echo
    rejection, commit to cache.

    Attributes:
        config: Immutable session configuration.
        client: Streaming inference client.
        registry: FIM family registry used for prompts and cleanup.

    Args:
        config: Configuration. Defaults to ``CompletionConfig()``.
        client: Optional pre-built client; created from ``config`` if absent.
            A supplied client stays open after ``dispose()``; the caller
            closes it.
        registry: Optional FIM registry; the built-in families if absent.

    Example:
        ```python
        doc, cursor = TextDocument.with_cursor("def fib(n):\\n    |\\n")

        async with CompletionSession(CompletionConfig(debounce_ms=150)) as session:
            result = await session.request_completion(doc, cursor)
            if result:
                print(result.insert_text)
        ```

    Note:
        - Cancellation is never an error: it resolves to an empty result
        - Transport and HTTP failures propagate as ``InferenceError``
        - ``dispose()`` is idempotent; a disposed session returns empty
          results
    """

    def __init__(
        self,
        config: CompletionConfig | None = None,
        *,
        client: OllamaClient | None = None,
        registry: FimRegistry | None = None,
    ):
        self.config = config or CompletionConfig()
        self.client = client or OllamaClient(self.config)
        self._owns_client = client is None
        self.registry = registry or FimRegistry()
        self._active = None  # type: t.Optional[RequestHandle]
        self._cache = StickyCache()
        self._disposed = False

    @property
    def active(self) -> RequestHandle | None:
        """The in-flight request, if any."""
        return self._active

    @property
    def cache(self) -> StickyCache:
        return self._cache

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def request_completion(self, buffer: TextBuffer, cursor: Position) -> CompletionResult:
        """Propose ghost text for ``cursor`` in ``buffer``.

        Args:
            buffer: Host text model.
            cursor: Cursor position (1-based).

        Returns:
            Text anchored at the cursor, or ``CompletionResult.empty()`` when
            there is nothing to show (cancelled, superseded, degenerate
            prefix, empty or echoing output).

        Raises:
            InferenceHTTPError: If the server answers with a non-success
                status.
            InferenceConnectionError: If the server cannot be reached.
        """
        if self._disposed:
            return CompletionResult.empty()

        if self._active is not None:
            self._active.cancel("superseded")
        handle = RequestHandle()
        self._active = handle

        try:
            return await self._complete(handle, buffer, cursor)
        except RequestCancelledError:
            handle.cancel("cancelled")
            return CompletionResult.empty()
        except InferenceError as e:
            if handle.cancelled:
                logger.debug("Request #%s failed after cancellation: %s", handle.id, e)
                return CompletionResult.empty()
            handle.transition("errored")
            raise
        finally:
            if not handle.finished:
                handle.cancel("aborted")
            if self._active is handle:
                self._active = None

    async def _complete(
        self, handle: RequestHandle, buffer: TextBuffer, cursor: Position
    ) -> CompletionResult:
        config = self.config
        live_prefix = text_before(buffer, cursor)

        cached = self._cache.lookup(live_prefix)
        if cached is not None:
            handle.transition("completed")
            return CompletionResult.at_cursor(cached, cursor, from_cache=True)

        handle.transition("debouncing")
        if not await handle.sleep(config.debounce_seconds):
            logger.debug("Request #%s superseded during debounce", handle.id)
            return CompletionResult.empty()

        context = extract_context(
            buffer, cursor, config.max_context_lines, config.max_context_chars
        )
        logger.debug("Request #%s context: %s chars", handle.id, context.total_chars)
        if is_degenerate_prefix(context.prefix):
            logger.debug("Request #%s skipped: prefix too short", handle.id)
            handle.transition("completed")
            return CompletionResult.empty()

        fim = build_fim_prompt(config.model, context.prefix, context.suffix, registry=self.registry)

        handle.transition("requesting")
        raw = await self._consume(handle, fim)
        if raw is None:
            return CompletionResult.empty()

        text = clean_completion(raw, self._sentinels())
        if not text:
            logger.debug("Request #%s produced no usable text", handle.id)
            handle.transition("completed")
            return CompletionResult.empty()

        if is_echoing_suffix(text, context.suffix):
            logger.debug("Request #%s rejected: completion repeats the suffix", handle.id)
            handle.transition("completed")
            return CompletionResult.empty()

        if handle.cancelled:
            logger.debug("Request #%s discarded: cancelled before commit", handle.id)
            return CompletionResult.empty()

        self._cache.store(
            CacheEntry(text=text, request_prefix=live_prefix, request_suffix=context.suffix)
        )
        handle.transition("completed")
        return CompletionResult.at_cursor(text, cursor)

    async def _consume(self, handle: RequestHandle, fim: FimPrompt) -> str | None:
        """Accumulate streamed text under the soft/hard limits.

        Returns:
            The raw accumulated text, or None if the request was cancelled.
        """
        config = self.config
        soft_limit, hard_limit = config.soft_limit, config.hard_limit

        stream = self.client.generate(
            fim.prompt,
            fim.stop,
            max_tokens=config.max_completion_length,
            token=handle.token,
        )
        handle.transition("streaming")

        parts = []  # type: t.List[str]
        length = 0
        soft_limit_hit = False
        try:
            async for chunk in stream:
                if handle.cancelled:
                    break
                parts.append(chunk)
                length += len(chunk)
                if length >= hard_limit:
                    logger.debug("Request #%s hit hard limit (%s chars)", handle.id, length)
                    break
                if soft_limit_hit:
                    break
                if length >= soft_limit:
                    logger.debug("Request #%s hit soft limit (%s chars)", handle.id, length)
                    soft_limit_hit = True
        finally:
            await stream.aclose()
            logger.debug(
                "Request #%s consumed %s chunks (%s chars)",
                handle.id,
                stream.items_count,
                stream.char_count,
            )

        if handle.cancelled:
            return None
        text = "".join(parts)
        return text[:hard_limit - 1] if len(text) >= hard_limit else text

    def _sentinels(self) -> tuple[str, ...]:
        return tuple(
            token for tokens in self.registry.all_token_sets() for token in tokens.sentinels
        )

    def cancel(self) -> None:
        """Cancel the in-flight request, if any."""
        if self._active is not None:
            self._active.cancel("cancelled")

    def clear_cache(self) -> None:
        self._cache.invalidate()

    async def dispose(self) -> None:
        """Cancel the in-flight request and clear the cache. Also closes the
        client if this session created it. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self.cancel()
        self.clear_cache()
        if self._owns_client:
            await self.client.close()
        logger.debug("Completion session disposed")

    async def close(self) -> None:
        await self.dispose()


def register_inline_completion(
    config: CompletionConfig | None = None, /, **overrides: t.Any
) -> CompletionSession:
    """Create a completion session for a host editor.

    The returned session is the registration's disposable handle: call
    ``request_completion`` on every keystroke or cursor move and
    ``dispose()`` when the editor goes away.

    Args:
        config: Base configuration.
        **overrides: Field overrides such as ``endpoint``, ``model`` or
            ``debounce_ms``; ``None`` values are ignored.

    Returns:
        A ready-to-use ``CompletionSession``.
    """
    resolved = resolve_config(config, **overrides)
    logger.debug(
        "Registering inline completion: endpoint=%s, model=%s, debounce=%sms",
        resolved.endpoint,
        resolved.model,
        resolved.debounce_ms,
    )
    return CompletionSession(resolved)
