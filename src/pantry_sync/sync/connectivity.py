"""Connectivity monitoring: a de-bounced, de-duplicated stream of reachability.

Raw reachability comes from a source (periodic HTTP probe, or platform
callbacks pushed into a ``ReachabilitySignal``). The monitor turns it into
a lazy, infinite, non-restartable async sequence of booleans where
flapping within the debounce window collapses to the final state and
repeated states are suppressed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any, TypeVar

import aiohttp

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEBOUNCE_SECONDS = 0.3

_UNSET: Any = object()


async def debounce(source: AsyncIterable[T], window: float) -> AsyncIterator[T]:
    """
    Emit a value only after ``window`` seconds pass without a newer one.

    When the source ends, a value still waiting out its window is flushed.
    Errors raised by the source propagate to the consumer.
    """
    queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()

    async def pump() -> None:
        try:
            async for item in source:
                await queue.put(("item", item))
        except Exception as e:
            await queue.put(("error", e))
        else:
            await queue.put(("end", None))

    task = asyncio.create_task(pump())
    pending: Any = _UNSET
    try:
        while True:
            try:
                if pending is _UNSET:
                    kind, value = await queue.get()
                else:
                    kind, value = await asyncio.wait_for(queue.get(), window)
            except TimeoutError:
                settled, pending = pending, _UNSET
                yield settled
                continue

            if kind == "item":
                pending = value
            elif kind == "end":
                if pending is not _UNSET:
                    yield pending
                return
            else:
                raise value
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


async def distinct_until_changed(source: AsyncIterable[T]) -> AsyncIterator[T]:
    """Suppress consecutive duplicates."""
    last: Any = _UNSET
    async for item in source:
        if last is _UNSET or item != last:
            last = item
            yield item


async def probe_reachability(
    url: str,
    *,
    interval: float = 5.0,
    timeout: float = 3.0,
    session: aiohttp.ClientSession | None = None,
) -> AsyncIterator[bool]:
    """
    Probe ``url`` with HEAD requests forever, yielding reachability.

    Any HTTP response (whatever the status) counts as reachable; a
    connection error or timeout counts as unreachable.
    """
    owns_session = session is None
    client = session or aiohttp.ClientSession()
    probe_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        while True:
            try:
                async with client.head(url, timeout=probe_timeout, allow_redirects=False):
                    reachable = True
            except (aiohttp.ClientError, TimeoutError) as e:
                logger.debug("Reachability probe to %s failed: %s", url, e)
                reachable = False
            yield reachable
            await asyncio.sleep(interval)
    finally:
        if owns_session:
            await client.close()


class ReachabilitySignal:
    """
    Push-based reachability source for platform network callbacks.

    Usage:
        signal = ReachabilitySignal()
        platform.on_network_change(signal.publish)
        monitor = ConnectivityMonitor(signal)
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[bool | None] = asyncio.Queue()

    def publish(self, reachable: bool) -> None:
        """Report a raw reachability state. Safe to call from callbacks."""
        self._queue.put_nowait(reachable)

    def close(self) -> None:
        """End the stream."""
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[bool]:
        while True:
            state = await self._queue.get()
            if state is None:
                return
            yield state


class ConnectivityMonitor:
    """
    De-bounced, de-duplicated reachability stream.

    The monitor can be iterated exactly once; a second ``async for``
    raises RuntimeError.
    """

    def __init__(
        self,
        source: AsyncIterable[bool],
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        if debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0")
        self._source = source
        self._debounce_seconds = debounce_seconds
        self._consumed = False
        self._current: bool | None = None

    @classmethod
    def probing(
        cls,
        url: str,
        *,
        interval: float = 5.0,
        timeout: float = 3.0,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ) -> ConnectivityMonitor:
        """Monitor fed by periodic HEAD probes of ``url``."""
        source = probe_reachability(url, interval=interval, timeout=timeout, session=session)
        return cls(source, debounce_seconds=debounce_seconds)

    @property
    def current(self) -> bool | None:
        """Last state emitted, or None before the first emission."""
        return self._current

    def __aiter__(self) -> AsyncIterator[bool]:
        if self._consumed:
            raise RuntimeError("ConnectivityMonitor can only be iterated once")
        self._consumed = True
        return self._stream()

    async def _stream(self) -> AsyncIterator[bool]:
        settled = debounce(self._source, self._debounce_seconds)
        async for state in distinct_until_changed(settled):
            self._current = state
            logger.info("Connectivity changed: %s", "reachable" if state else "unreachable")
            yield state
