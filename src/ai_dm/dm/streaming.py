"""Producer/consumer channel for streamed DM replies.

A TurnStream is a lazy, finite, non-restartable async iterator of text
fragments. Nothing is requested from the model until the first fragment is
awaited; a producer task then pumps the model stream into a one-slot queue
that the consumer drains.

Closing semantics:

* The stream ends when the model signals completion (or its stream runs
  dry). ``on_complete`` then receives the concatenated text exactly once.
* ``aclose()`` (or leaving an ``async with`` block early) cancels the
  producer. ``on_complete`` is not called, so no DM turn is recorded.
* A failure in the model stream is re-raised to the consumer and reported
  to ``on_error``; the stream is closed afterwards.

Example:
    >>> async with orchestrator.stream_input("I open the door") as stream:
    ...     async for fragment in stream:
    ...         print(fragment, end="")
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Callable

from ai_dm.core.logging import get_logger
from ai_dm.models.messages import StreamChunk


logger = get_logger(__name__)

_END = object()


@dataclass
class _Failure:
    error: Exception


class TurnStream:
    """Async iterator over the fragments of one streamed reply."""

    def __init__(
        self,
        source: AsyncIterator[StreamChunk],
        *,
        on_fragment: Callable[[str], None] | None = None,
        on_complete: Callable[[str], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        """Wrap a model stream.

        Args:
            source: Chunks from ``LLMClient.stream``; not consumed until the
                first fragment is requested.
            on_fragment: Called with every fragment handed to the consumer.
            on_complete: Called once with the full text when the stream ends
                normally.
            on_error: Called when the model stream fails.
        """
        self._source = source
        self._on_fragment = on_fragment
        self._on_complete = on_complete
        self._on_error = on_error
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self._producer: asyncio.Task[None] | None = None
        self._fragments: list[str] = []
        self._closed = False
        self._completed = False

    @property
    def text(self) -> str:
        """Text received so far."""
        return "".join(self._fragments)

    @property
    def completed(self) -> bool:
        """Whether the model finished and ``on_complete`` ran."""
        return self._completed

    @property
    def closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------------
    # Producer
    # -------------------------------------------------------------------------

    async def _produce(self) -> None:
        try:
            async for chunk in self._source:
                if chunk.content:
                    await self._queue.put(chunk.content)
                if chunk.is_complete:
                    break
        except Exception as exc:
            await self._queue.put(_Failure(exc))
            return
        finally:
            aclose = getattr(self._source, "aclose", None)
            if aclose is not None:
                with contextlib.suppress(Exception):
                    await aclose()
        await self._queue.put(_END)

    # -------------------------------------------------------------------------
    # Consumer
    # -------------------------------------------------------------------------

    def __aiter__(self) -> TurnStream:
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        if self._producer is None:
            self._producer = asyncio.create_task(self._produce())

        item = await self._queue.get()

        if item is _END:
            self._closed = True
            self._completed = True
            text = self.text
            logger.debug("Stream complete", length=len(text), fragments=len(self._fragments))
            if self._on_complete is not None:
                self._on_complete(text)
            raise StopAsyncIteration

        if isinstance(item, _Failure):
            self._closed = True
            logger.error("Model stream failed", error=str(item.error))
            if self._on_error is not None:
                self._on_error(item.error)
            raise item.error

        self._fragments.append(item)
        if self._on_fragment is not None:
            self._on_fragment(item)
        return item

    async def aclose(self) -> None:
        """Stop the stream early. Idempotent."""
        if self._closed and (self._producer is None or self._producer.done()):
            return
        self._closed = True
        if self._producer is not None and not self._producer.done():
            self._producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._producer
        if not self._completed:
            logger.info("Stream closed before completion", received=len(self._fragments))

    async def read_all(self) -> str:
        """Consume the rest of the stream and return the full text."""
        async for _ in self:
            pass
        return self.text

    async def __aenter__(self) -> TurnStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["TurnStream"]
