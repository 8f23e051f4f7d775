from __future__ import annotations

import logging
import typing as t

import httpx
import pydantic as pydt
import tenacity

from ghosttext.cache.cachetools import ModelListCache
from ghosttext.cancellation import CancellationToken
from ghosttext.exceptions import InferenceConnectionError
from ghosttext.exceptions import InferenceHTTPError
from ghosttext.exceptions import RequestCancelledError
from ghosttext.helpers.mixin import AsyncContextMixin
from ghosttext.types.config import DEFAULT_MODEL
from ghosttext.types.config import CompletionConfig
from ghosttext.types.stream import TextStream
from ghosttext.types.wire import GenerateOptions
from ghosttext.types.wire import GenerateRequest
from ghosttext.types.wire import GenerateResponse
from ghosttext.types.wire import TagsResponse

logger = logging.getLogger("ghosttext.client")

GENERATE_PATH = "/api/generate"
TAGS_PATH = "/api/tags"

_T = t.TypeVar("_T")

CONNECT_TIMEOUT = 5.0
HEALTH_CHECK_TIMEOUT = 2.0
LIST_MODELS_TIMEOUT = 5.0


def _is_cancelled(token: CancellationToken | None) -> bool:
    return token is not None and token.is_cancelled


async def _guard(
    awaitable: t.Awaitable[_T],
    token: CancellationToken | None,
    *,
    on_discard: t.Callable[[_T], t.Awaitable[None]] | None = None,
) -> _T:
    if token is None:
        return await awaitable
    return await token.guard(awaitable, on_discard=on_discard)


async def _close_response(response: httpx.Response) -> None:
    await response.aclose()


def parse_stream_line(line: str) -> GenerateResponse | None:
    """Parse one NDJSON line, or return None for blank and malformed lines.

    Malformed lines are logged and skipped, never fatal.
    """
    line = line.strip()
    if not line:
        return None
    try:
        return GenerateResponse.model_validate_json(line)
    except pydt.ValidationError as e:
        logger.warning("Skipping malformed stream line %r: %s", line[:100], e.errors()[0]["msg"])
        return None


class OllamaClient(AsyncContextMixin):
    """Async client for an Ollama-compatible inference server.

    Issues raw FIM generate requests and exposes the newline-delimited JSON
    response as a lazy ``TextStream`` of text fragments. Every network wait
    (headers and each body read) is raced against the supplied
    ``CancellationToken``: once it is set the pending read is interrupted,
    the response is closed and the stream ends quietly.

    Attributes:
        config: Session configuration (endpoint, model, sampling, timeouts).
        http_client: The underlying httpx AsyncClient instance.
        model_cache: Per-endpoint cache of ``list_models`` results.

    Args:
        config: Configuration. Defaults to ``CompletionConfig()``.
        http_client: Optional pre-configured httpx.AsyncClient. If not
            provided, a new client bound to ``config.endpoint`` is created.
        model_cache: Optional shared model-list cache.
        max_retries: Attempts for ``list_models``. Defaults to 3.
        retry_wait: Wait between ``list_models`` attempts, in seconds.

    Example:
        ```python
        async with OllamaClient(CompletionConfig(model="qwen2.5-coder:1.5b")) as client:
            stream = client.generate(
                "<|fim_prefix|>def add(a, b):\\n    return",
                stop=["<|fim_suffix|>"],
                max_tokens=64,
            )
            async for chunk in stream:
                print(chunk, end="")
        ```
    """

    def __init__(
        self,
        config: CompletionConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        model_cache: ModelListCache | None = None,
        max_retries: int = 3,
        retry_wait: float = 0.5,
    ):
        self.config = config or CompletionConfig()
        self.timeout = httpx.Timeout(self.config.request_timeout, connect=CONNECT_TIMEOUT)
        self.http_client = http_client or httpx.AsyncClient(
            base_url=self.config.endpoint, timeout=self.timeout
        )
        self.model_cache = model_cache or ModelListCache()
        self.max_retries = max_retries
        self.retry_wait = retry_wait

    @property
    def endpoint(self) -> str:
        return self.config.endpoint

    def build_request(
        self,
        prompt: str,
        stop: t.Sequence[str] = (),
        *,
        max_tokens: int | None = None,
    ) -> GenerateRequest:
        config = self.config
        return GenerateRequest(
            model=config.model or DEFAULT_MODEL,
            prompt=prompt,
            stream=True,
            raw=True,
            options=GenerateOptions(
                num_predict=config.max_completion_length if max_tokens is None else max_tokens,
                temperature=config.temperature,
                stop=list(stop),
            ),
        )

    def generate(
        self,
        prompt: str,
        stop: t.Sequence[str] = (),
        *,
        max_tokens: int | None = None,
        token: CancellationToken | None = None,
    ) -> TextStream:
        """Start a raw FIM generation.

        Nothing is sent until the returned stream is iterated.

        Args:
            prompt: Fully assembled FIM prompt.
            stop: Generation-stop hints forwarded to the server.
            max_tokens: Token budget (``num_predict``). Defaults to
                ``config.max_completion_length``.
            token: Cancellation signal checked at every read.

        Returns:
            Stream of non-empty text fragments in arrival order.

        Raises:
            RequestCancelledError: If ``token`` is already cancelled.
            InferenceHTTPError: While iterating, on a non-success status.
            InferenceConnectionError: While iterating, on a transport failure
                that is not explained by cancellation.
        """
        if token is not None:
            token.raise_if_cancelled()

        body = self.build_request(prompt, stop, max_tokens=max_tokens)
        logger.debug(
            "Generate request: model=%s, prompt_length=%s, num_predict=%s, streaming=%s",
            body["model"],
            len(prompt),
            body["options"]["num_predict"],
            self.config.streaming,
        )
        if self.config.streaming:
            return TextStream(self._iter_chunks(body, token))
        return TextStream(self._read_full_body(body, token))

    async def generate_text(
        self,
        prompt: str,
        stop: t.Sequence[str] = (),
        *,
        max_tokens: int | None = None,
        token: CancellationToken | None = None,
    ) -> str:
        """Run a generation to completion and return the concatenated text."""
        stream = self.generate(prompt, stop, max_tokens=max_tokens, token=token)
        return await stream.text()

    async def _iter_chunks(
        self, body: GenerateRequest, token: CancellationToken | None
    ) -> t.AsyncIterator[str]:
        request = self.http_client.build_request(
            "POST", GENERATE_PATH, json=body, timeout=self.timeout
        )
        try:
            response = await _guard(
                self.http_client.send(request, stream=True), token, on_discard=_close_response
            )
        except RequestCancelledError:
            logger.debug("Request cancelled while waiting for response headers")
            return
        except httpx.TransportError as e:
            if _is_cancelled(token):
                logger.debug("Transport error after cancellation ignored: %s", e)
                return
            raise InferenceConnectionError(
                f"Failed to reach inference server at {self.endpoint}: {e!r}"
            ) from e

        chunks = 0
        try:
            await self._raise_for_status(response)

            buffer = ""
            texts = response.aiter_text()
            while True:
                text = await _guard(anext(texts, None), token)
                if text is None:
                    break
                buffer += text
                *lines, buffer = buffer.split("\n")
                for line in lines:
                    data = parse_stream_line(line)
                    if data is None:
                        continue
                    if data.response:
                        chunks += 1
                        yield data.response
                        if _is_cancelled(token):
                            logger.debug("Stream cancelled after %s chunks", chunks)
                            return
                    if data.done:
                        logger.debug("Stream done after %s chunks", chunks)
                        return

            if _is_cancelled(token):
                logger.debug("Stream cancelled after %s chunks", chunks)
                return
            # No explicit ``done``: the last line may lack its newline.
            data = parse_stream_line(buffer)
            if data is not None and data.response:
                chunks += 1
                yield data.response
            logger.debug("Stream ended without done marker after %s chunks", chunks)

        except RequestCancelledError:
            logger.debug("Stream cancelled after %s chunks", chunks)
        except httpx.TransportError as e:
            if _is_cancelled(token):
                logger.debug("Transport error after cancellation ignored: %s", e)
                return
            raise InferenceConnectionError(
                f"Failed to reach inference server at {self.endpoint}: {e!r}"
            ) from e
        finally:
            await response.aclose()

    async def _read_full_body(
        self, body: GenerateRequest, token: CancellationToken | None
    ) -> t.AsyncIterator[str]:
        try:
            response = await _guard(
                self.http_client.post(GENERATE_PATH, json=body, timeout=self.timeout), token
            )
        except RequestCancelledError:
            logger.debug("Request cancelled while waiting for the full response")
            return
        except httpx.TransportError as e:
            if _is_cancelled(token):
                return
            raise InferenceConnectionError(
                f"Failed to reach inference server at {self.endpoint}: {e!r}"
            ) from e

        await self._raise_for_status(response)
        if _is_cancelled(token):
            return

        parts = []  # type: t.List[str]
        for line in response.text.split("\n"):
            data = parse_stream_line(line)
            if data is None:
                continue
            parts.append(data.response)
            if data.done:
                break

        text = "".join(parts).rstrip()
        logger.debug("Read full response body: %s lines, %s chars", len(parts), len(text))
        if text:
            yield text

    async def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        await response.aread()
        body = response.text
        logger.error("Inference API error: %s - %s", response.status_code, body[:200])
        raise InferenceHTTPError(response.status_code, body)

    async def check_health(self) -> bool:
        """Whether the server answers ``GET /api/tags`` successfully."""
        try:
            response = await self.http_client.get(TAGS_PATH, timeout=HEALTH_CHECK_TIMEOUT)
        except httpx.HTTPError as e:
            logger.debug("Health check against %s failed: %r", self.endpoint, e)
            return False
        return response.is_success

    async def list_models(self, *, use_cache: bool = True) -> list[str]:
        """Names of the models installed on the server.

        Successful listings are cached per endpoint (see ``ModelListCache``).
        Transient failures are retried; if every attempt fails the result is
        an empty list.

        Args:
            use_cache: Return a cached listing when one is still valid.

        Returns:
            Model names, possibly empty.
        """
        if use_cache:
            cached = self.model_cache.get(self.endpoint)
            if cached is not None:
                logger.debug("Using cached model list for %s", self.endpoint)
                return cached

        try:
            tags = await self._fetch_tags()
        except (httpx.HTTPError, pydt.ValidationError) as e:
            logger.warning("Failed to list models from %s: %r", self.endpoint, e)
            return []

        names = [model.name for model in tags.models]
        self.model_cache.set(self.endpoint, names)
        return names

    async def _fetch_tags(self) -> TagsResponse:
        @tenacity.retry(
            stop=tenacity.stop_after_attempt(self.max_retries),
            wait=tenacity.wait_fixed(self.retry_wait),
            retry=tenacity.retry_if_exception_type(httpx.HTTPError),
            reraise=True,
        )
        async def _make_request() -> httpx.Response:
            response = await self.http_client.get(TAGS_PATH, timeout=LIST_MODELS_TIMEOUT)
            response.raise_for_status()
            return response

        response = await _make_request()
        return TagsResponse.model_validate_json(response.content)

    def clear_model_cache(self) -> None:
        self.model_cache.clear()

    def has_valid_model_cache(self) -> bool:
        return self.model_cache.has_valid(self.endpoint)

    async def close(self) -> None:
        await self.http_client.aclose()
