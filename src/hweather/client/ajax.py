"""
Single-flight discipline for the forecast data request.

Everything runs on one event loop, so "cancel the old source, store the new
one" and "bump the id" need no lock: nothing can run between those
statements.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
import logging
from typing import TypeVar

from .errors import RequestCancelled

logger = logging.getLogger("hweather.client.ajax")

T = TypeVar("T")


class CancellationSignal:
    """Listening half of a `CancellationSource`."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelled("The user aborted a request.")

    def _set(self) -> None:
        self._event.set()


class CancellationSource:
    def __init__(self) -> None:
        self.signal = CancellationSignal()

    def cancel(self) -> None:
        self.signal._set()


class RequestCoordinator:
    def __init__(self) -> None:
        self._source: CancellationSource | None = None
        self._request_id = 0

    @property
    def current_request_id(self) -> int:
        return self._request_id

    def issue_cancellation(self) -> CancellationSignal:
        if self._source is not None:
            logger.debug("Cancelling in-flight request %s", self._request_id)
            self._source.cancel()
        self._source = CancellationSource()
        return self._source.signal

    def next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def is_current(self, request_id: int) -> bool:
        return request_id == self._request_id


async def run_cancellable(operation: Awaitable[T], signal: CancellationSignal) -> T:
    """Await `operation` unless `signal` fires first; then cancel it and raise `RequestCancelled`."""
    if signal.cancelled:
        if asyncio.iscoroutine(operation):
            operation.close()
        signal.raise_if_cancelled()

    task = asyncio.ensure_future(operation)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    raise RequestCancelled("The user aborted a request.")
