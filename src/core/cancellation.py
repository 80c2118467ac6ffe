# -*- coding: utf-8 -*-
"""
Cancellation Module

Cooperative cancellation for asyncio work that depends on the network.

Design Notes:
- A CancellationSource is single-use: once cancelled it stays cancelled
- CancellationScope owns the "current" source and replaces it on cancel,
  so tokens handed out before the cancel never become valid again
- Cancellation surfaces as OperationCancelledError, never asyncio.CancelledError,
  so callers can tell a superseded request apart from task shutdown
"""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    List,
    Set,
    TypeVar,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_END = object()


class OperationCancelledError(RuntimeError):
    """Raised when work is abandoned because its token was cancelled"""
    pass


async def _next_item(iterator: AsyncIterator[Any]) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END


class CancellationToken:
    """
    Cancellation Token

    Observes a CancellationSource. Tokens are cheap to pass around and can be
    checked synchronously or raced against an awaitable.

    Usage example:
        token = scope.token
        page = await token.wait_or_cancel(source.fetch_page())

        async for item in token.iterate(source.get_watch_playlist(video_id, None, None)):
            ...
    """

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []
        self._waiters: Set[asyncio.Future] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError("Operation was cancelled")

    def register(self, callback: Callable[[], None]) -> None:
        """Run callback on cancellation (immediately if already cancelled)"""
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    async def wait_or_cancel(self, awaitable: Awaitable[T]) -> T:
        """
        Await a result unless the token is cancelled first.

        Args:
            awaitable: Coroutine, task or future to wait for

        Returns:
            The awaitable's result

        Raises:
            OperationCancelledError: The token was cancelled before the result arrived,
                or the underlying task was cancelled by someone else
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelledError("Operation was cancelled")

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.add(waiter)

        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            self._waiters.discard(waiter)
            if not waiter.done():
                waiter.cancel()

        if not task.done():
            task.cancel()
            raise OperationCancelledError("Operation was cancelled")
        if task.cancelled():
            raise OperationCancelledError("Awaited task was cancelled")
        return task.result()

    async def iterate(self, source: AsyncIterable[T]) -> AsyncIterator[T]:
        """Yield from an async iterable, racing every item against cancellation"""
        iterator = source.__aiter__()
        while True:
            item = await self.wait_or_cancel(_next_item(iterator))
            if item is _END:
                return
            yield item

    def _cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True

        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.set_result(None)

        callbacks = list(self._callbacks)
        self._callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error("Cancellation callback error: %s", e)


class CancellationSource:
    """Single-use producer of a CancellationToken"""

    def __init__(self):
        self._token = CancellationToken()

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def cancel(self) -> None:
        self._token._cancel()


class CancellationScope:
    """
    Cancel-and-replace holder for one family of operations.

    Usage example:
        track_scope = CancellationScope("track")
        token = track_scope.token          # hand to stream/metadata loading
        track_scope.cancel_and_replace()   # token is now cancelled forever
        track_scope.token                  # a fresh, live token
    """

    def __init__(self, name: str = ""):
        self._name = name
        self._source = CancellationSource()

    @property
    def token(self) -> CancellationToken:
        return self._source.token

    def cancel_and_replace(self) -> None:
        self._source.cancel()
        self._source = CancellationSource()
        logger.debug("Cancellation scope '%s' replaced", self._name)
