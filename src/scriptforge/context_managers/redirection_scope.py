"""Silencing and capturing output produced by a callback.

Each public function installs a sink on one or both process streams, calls
the body, and removes the sink once the body is done:

- if the body raises, right away, and the error propagates;
- if the body returns an awaitable, when that awaitable settles;
- if the body returns a plain value, after the callbacks already queued on
  the running event loop have run, so writes the body scheduled for "right
  after this call" are still redirected. Without a running loop the sink is
  removed immediately.

Writes scheduled further into the future (timers, I/O callbacks, later steps
of tasks) are outside that window. Return an awaitable from the body to keep
the redirection active until such work is done.

Scopes share the process-wide ambient stacks, so overlapping scopes must
nest. Releasing them out of order raises ScopeOrderError; the stacks are
still restored once the scopes involved have all been released.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any, NamedTuple

from ..output_streams import (
    AmbientOutputContext,
    CaptureChannel,
    CaptureSink,
    NullSink,
    OutputSink,
    OutputStream,
    ScopeOrderError,
    ScopeToken,
    get_ambient_context,
)
from ..utility_functions import run_with_release

__all__ = [
    'Captured',
    'CapturedOutput',
    'RedirectionScope',
    'capture_output',
    'capture_stderr',
    'capture_stdout',
    'silence_output',
    'silence_stderr',
    'silence_stdout',
]

STDOUT_ONLY = (OutputStream.STDOUT,)
STDERR_ONLY = (OutputStream.STDERR,)
BOTH_STREAMS = (OutputStream.STDOUT, OutputStream.STDERR)


class RedirectionScope:
    """One install/remove transaction against the ambient output context.

    Args:
        streams: Streams to redirect.
        sink_factory: Called once per stream to build the sink to install.
        context: Ambient context to use; defaults to the process-wide one.
    """

    def __init__(self, streams: Iterable[OutputStream],
                 sink_factory: Callable[[OutputStream], OutputSink],
                 context: AmbientOutputContext | None = None):
        self.streams = tuple(streams)
        if not self.streams:
            raise ValueError("RedirectionScope needs at least one stream")
        self._sink_factory = sink_factory
        self._context = context if context is not None else get_ambient_context()
        self.sinks: dict[OutputStream, OutputSink] = {}
        self.pending_completions: set[asyncio.Future] = set()
        self._tokens: list[ScopeToken] = []
        self._opened = False
        self._closed = False

    def __repr__(self) -> str:
        streams = "+".join(stream.value for stream in self.streams)
        if self._closed:
            state = "closed"
        elif self._opened:
            state = "open"
        else:
            state = "new"
        return f"RedirectionScope({streams}, {state})"

    @property
    def closed(self) -> bool:
        """True once the sinks were removed and no awaitable body is in flight."""
        return self._closed and not self.pending_completions

    def open(self) -> None:
        """Build and install one sink per stream."""
        if self._opened:
            raise RuntimeError("RedirectionScope can only be opened once")
        self._opened = True
        for stream in self.streams:
            sink = self._sink_factory(stream)
            self.sinks[stream] = sink
            self._tokens.append(self._context.push(stream, sink))

    def close(self) -> None:
        """Remove the installed sinks and signal them done. Idempotent.

        Every sink is popped and closed even if one pop fails. An override
        that is not on top is left to the ambient context, which removes it
        once the overrides above it are released.

        Raises:
            ScopeOrderError: If this scope is released while a scope
                installed after it is still active.
        """
        if self._closed or not self._opened:
            return
        self._closed = True
        error = None
        try:
            while self._tokens:
                try:
                    self._context.pop(self._tokens.pop())
                except ScopeOrderError as e:
                    error = error or e
        finally:
            for sink in self.sinks.values():
                sink.close()
        if error is not None:
            raise error

    def run(self, body: Callable[[], Any]) -> Any:
        """Call body with the sinks installed; close when body is done.

        Opens the scope first unless open() was already called.
        """
        if not self._opened:
            self.open()
        result = run_with_release(body, self.close, defer_sync_release=True)
        if isinstance(result, asyncio.Future):
            self.pending_completions.add(result)
            result.add_done_callback(self.pending_completions.discard)
        return result

    def channel(self, stream: OutputStream) -> CaptureChannel:
        """Return the capture channel of the sink installed on stream."""
        sink = self.sinks.get(stream)
        if not isinstance(sink, CaptureSink):
            raise ValueError(f"No capturing sink is installed on {stream.value}")
        return sink.channel


class Captured(NamedTuple):
    """Result of capturing a single stream."""

    result: Any
    channel: CaptureChannel


class CapturedOutput(NamedTuple):
    """Result of capturing stdout and stderr.

    combined interleaves both streams in the order writes arrived; there is
    no ordering guarantee between the two streams beyond that.
    """

    result: Any
    stdout: CaptureChannel
    stderr: CaptureChannel
    combined: CaptureChannel

    def combine_output(self) -> CaptureChannel:
        """Return the channel interleaving stdout and stderr."""
        return self.combined


def _silence(streams, body, context):
    return RedirectionScope(streams, NullSink, context).run(body)


def silence_stdout(body: Callable[[], Any], *,
                   context: AmbientOutputContext | None = None) -> Any:
    """Call body with stdout discarded.

    Returns:
        body's result, or a task settling to it if body returned an awaitable.
    """
    return _silence(STDOUT_ONLY, body, context)


def silence_stderr(body: Callable[[], Any], *,
                   context: AmbientOutputContext | None = None) -> Any:
    """Call body with stderr discarded."""
    return _silence(STDERR_ONLY, body, context)


def silence_output(body: Callable[[], Any], *,
                   context: AmbientOutputContext | None = None) -> Any:
    """Call body with both stdout and stderr discarded."""
    return _silence(BOTH_STREAMS, body, context)


def capture_stdout(body: Callable[[], Any], *,
                   context: AmbientOutputContext | None = None) -> Captured:
    """Call body with stdout captured instead of printed.

    The channel closes when the redirection is removed; iterate it with
    ``async for`` to follow output while body is still running.

    Returns:
        Captured(result, channel).
    """
    scope = RedirectionScope(STDOUT_ONLY, CaptureSink, context)
    result = scope.run(body)
    return Captured(result, scope.channel(OutputStream.STDOUT))


def capture_stderr(body: Callable[[], Any], *,
                   context: AmbientOutputContext | None = None) -> Captured:
    """Call body with stderr captured instead of printed."""
    scope = RedirectionScope(STDERR_ONLY, CaptureSink, context)
    result = scope.run(body)
    return Captured(result, scope.channel(OutputStream.STDERR))


def capture_output(body: Callable[[], Any], *,
                   context: AmbientOutputContext | None = None) -> CapturedOutput:
    """Call body with stdout and stderr captured into separate channels.

    Returns:
        CapturedOutput(result, stdout, stderr, combined).
    """
    scope = RedirectionScope(BOTH_STREAMS, CaptureSink, context)
    scope.open()
    stdout = scope.channel(OutputStream.STDOUT)
    stderr = scope.channel(OutputStream.STDERR)
    combined = CaptureChannel.merge(stdout, stderr)
    result = scope.run(body)
    return CapturedOutput(result, stdout, stderr, combined)
