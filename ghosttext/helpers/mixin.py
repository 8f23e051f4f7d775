from __future__ import annotations

import types
import typing as t


class AsyncContextMixin:
    """A mixin class that provides asynchronous context manager
    functionality.

    Examples:
        ```python
        class InferenceResource(AsyncContextMixin):
            async def init(self) -> None:
                # Open connection pools
                pass

            async def close(self) -> None:
                # Release connection pools
                pass


        async with InferenceResource() as resource:
            ...
        ```
    """

    async def init(self) -> None: ...
    async def close(self) -> None: ...

    async def __aenter__(self) -> t.Self:
        await self.init()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        traceback: types.TracebackType | None,
    ) -> t.Literal[False]:
        await self.close()
        return False
