"""Observable sequences of captured output.

A CaptureChannel receives every chunk written to a capturing sink, in write
order, and closes exactly once when the scope that owns the sink has fully
finished. Consumers can read a snapshot at any time, iterate the chunks once
(synchronously after close, or asynchronously while output is still arriving),
or merge several channels into one best-effort interleaved channel.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterator

__all__ = ['CaptureChannel', 'ChannelNotClosedError']


class ChannelNotClosedError(RuntimeError):
    """Raised when a capture channel is expected to be closed but is still open.

    An open channel means some scope holding its sink has not finished, which
    is a leak the caller should know about.
    """


class CaptureChannel:
    """Append-only, single-consumption sequence of captured text chunks.

    Args:
        name: Label used in reprs and error messages (e.g. "stdout").

    Example:
        >>> channel = CaptureChannel("stdout")
        >>> channel._append("hi\\n")
        >>> channel._close()
        >>> list(channel)
        ['hi\\n']
    """

    def __init__(self, name: str = "output"):
        self.name = name
        self._chunks: list[str] = []
        self._closed = False
        self._consumed = False
        self._waiters: list[asyncio.Future] = []
        self._listeners: list[tuple[Callable[[str], None], Callable[[], None]]] = []

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"CaptureChannel({self.name!r}, chunks={len(self._chunks)}, {state})"

    @property
    def closed(self) -> bool:
        """Whether the channel has received its terminal close event."""
        return self._closed

    def text(self) -> str:
        """Return everything captured so far as one string."""
        return "".join(self._chunks)

    def lines(self) -> list[str]:
        """Return everything captured so far split into lines."""
        return self.text().splitlines()

    def ensure_closed(self) -> None:
        """Raise ChannelNotClosedError if the channel is still open."""
        if not self._closed:
            raise ChannelNotClosedError(
                f"Capture channel {self.name!r} is still open; "
                "the scope that owns it has not finished")

    async def wait_closed(self) -> None:
        """Wait until the channel is closed."""
        while not self._closed:
            await self._wait_for_change()

    def __iter__(self) -> Iterator[str]:
        self._claim()
        return self._iterate_buffered()

    def __aiter__(self) -> AsyncIterator[str]:
        self._claim()
        return self._iterate_live()

    @classmethod
    def merge(cls, *channels: CaptureChannel, name: str = "combined") -> CaptureChannel:
        """Combine channels into one, interleaved in arrival order.

        Chunks already buffered in the sources are replayed source by source,
        so ordering across sources is only meaningful for chunks written after
        the merge. The merged channel closes once every source has closed.

        Args:
            *channels: Source channels; they remain independently consumable.
            name: Name of the merged channel.

        Returns:
            A new CaptureChannel fed by all sources.
        """
        merged = cls(name)
        remaining = len(channels)
        if remaining == 0:
            merged._close()
            return merged

        def source_closed() -> None:
            nonlocal remaining
            remaining -= 1
            if remaining == 0:
                merged._close()

        for channel in channels:
            channel._subscribe(merged._append, source_closed)
        return merged

    def _claim(self) -> None:
        if self._consumed:
            raise RuntimeError(
                f"Capture channel {self.name!r} has already been consumed")
        self._consumed = True

    def _iterate_buffered(self) -> Iterator[str]:
        index = 0
        while index < len(self._chunks):
            yield self._chunks[index]
            index += 1
        self.ensure_closed()

    async def _iterate_live(self) -> AsyncIterator[str]:
        index = 0
        while True:
            while index < len(self._chunks):
                yield self._chunks[index]
                index += 1
            if self._closed:
                return
            await self._wait_for_change()

    async def _wait_for_change(self) -> None:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    def _wake_waiters(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _subscribe(self, on_chunk: Callable[[str], None],
                   on_close: Callable[[], None]) -> None:
        for chunk in self._chunks:
            on_chunk(chunk)
        if self._closed:
            on_close()
        else:
            self._listeners.append((on_chunk, on_close))

    def _append(self, chunk: str) -> None:
        if self._closed:
            raise ValueError(f"Cannot append to closed capture channel {self.name!r}")
        if not chunk:
            return
        self._chunks.append(chunk)
        for on_chunk, _ in self._listeners:
            on_chunk(chunk)
        self._wake_waiters()

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        listeners, self._listeners = self._listeners, []
        for _, on_close in listeners:
            on_close()
        self._wake_waiters()
