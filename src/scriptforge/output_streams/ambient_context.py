"""Process-wide stacks of output sink overrides.

The AmbientOutputContext keeps one LIFO stack per output stream. The top of a
stack is the sink every writer sees at write time. While a stack is non-empty
the matching process stream (sys.stdout or sys.stderr) is replaced by a proxy
that resolves the top sink on each write, so print() and any other code that
writes to the process streams is redirected without knowing about it.

Pops must mirror pushes exactly. A pop for a token that is not on top means
two scopes were released out of order; this raises ScopeOrderError and leaves
the overrides above the token in place. The token itself is marked abandoned
and is removed as soon as everything above it has been popped, so the stack
returns to its original state once both scopes are done.
"""

from __future__ import annotations

import io
import itertools
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TextIO

from ..mixins_and_metaclasses import SingleThreadEnforcerMixin
from .output_sinks import OutputSink, OutputStream, RealSink

__all__ = [
    'AmbientOutputContext',
    'ScopeOrderError',
    'ScopeToken',
    'current_stderr',
    'current_stdout',
    'get_ambient_context',
]

logger = logging.getLogger(__name__)


class ScopeOrderError(RuntimeError):
    """Raised when a sink override is removed while it is not on top.

    This indicates redirection scopes whose lifetimes cross instead of nest.
    """


@dataclass(frozen=True, eq=False)
class ScopeToken:
    """Receipt for one push; required to undo it.

    Attributes:
        stream: The stream whose stack was pushed.
        sink: The sink installed by the push.
        previous: The token that was on top before, or None for the real sink.
        installer_id: Sequence number of the push, for diagnostics.
    """

    stream: OutputStream
    sink: OutputSink
    previous: ScopeToken | None
    installer_id: int


class _AmbientStdio(io.TextIOBase):
    """Stand-in for sys.stdout/sys.stderr that writes to the current sink."""

    def __init__(self, stream: OutputStream, context: AmbientOutputContext,
                 original: TextIO):
        self._stream = stream
        self._context = context
        self._original = original

    def write(self, s: str) -> int:
        self._context.current(self._stream).write(s)
        return len(s)

    def flush(self) -> None:
        self._context.current(self._stream).flush()

    def writable(self) -> bool:
        return True

    @property
    def encoding(self) -> str:
        return getattr(self._original, "encoding", None) or "utf-8"

    @property
    def errors(self) -> str | None:
        return getattr(self._original, "errors", None)

    def fileno(self) -> int:
        return self._original.fileno()

    def isatty(self) -> bool:
        return self._original.isatty()


class AmbientOutputContext(SingleThreadEnforcerMixin):
    """Per-stream stacks of sink overrides shared by all code in the process.

    Use push()/pop() directly, or installed() as a with-statement guard.
    Mutations are only allowed from the thread that owns the context.

    Example:
        >>> context = AmbientOutputContext()
        >>> with context.installed(OutputStream.STDOUT, NullSink()):
        ...     print("nobody sees this")
    """

    def __init__(self):
        super().__init__()
        self._stacks: dict[OutputStream, list[ScopeToken]] = {
            stream: [] for stream in OutputStream}
        self._proxies: dict[OutputStream, _AmbientStdio] = {}
        self._abandoned: set[ScopeToken] = set()
        self._real_sinks = {stream: RealSink(stream, self) for stream in OutputStream}
        self._push_counter = itertools.count(1)

    def __repr__(self) -> str:
        depths = ", ".join(
            f"{stream.value}={len(stack)}" for stream, stack in self._stacks.items())
        return f"AmbientOutputContext({depths})"

    def current(self, stream: OutputStream) -> OutputSink:
        """Return the sink that writes to the given stream go to right now."""
        stack = self._stacks[stream]
        if stack:
            return stack[-1].sink
        return self._real_sinks[stream]

    def depth(self, stream: OutputStream) -> int:
        """Return the number of overrides installed for the stream."""
        return len(self._stacks[stream])

    def real_stream(self, stream: OutputStream) -> TextIO:
        """Return the process stream as it was before any override."""
        proxy = self._proxies.get(stream)
        if proxy is not None:
            return proxy._original
        return getattr(sys, stream.value)

    def push(self, stream: OutputStream, sink: OutputSink) -> ScopeToken:
        """Install sink as the current sink for stream.

        Args:
            stream: Stream to redirect.
            sink: Sink that receives the stream's writes until pop().

        Returns:
            Token to pass to pop().
        """
        self._restrict_to_single_thread()
        stack = self._stacks[stream]
        token = ScopeToken(
            stream=stream,
            sink=sink,
            previous=stack[-1] if stack else None,
            installer_id=next(self._push_counter))
        if not stack:
            self._install_proxy(stream)
        stack.append(token)
        logger.debug("Pushed %r onto %s (depth %d, id %d)",
                     sink, stream.value, len(stack), token.installer_id)
        return token

    def pop(self, token: ScopeToken) -> None:
        """Undo the push that produced token, restoring the previous sink.

        If token is still buried under other overrides, it is removed
        automatically once they have all been popped.

        Raises:
            ScopeOrderError: If token is not the top of its stream's stack.
        """
        self._restrict_to_single_thread()
        stack = self._stacks[token.stream]
        if not stack or stack[-1] is not token:
            top = stack[-1].installer_id if stack else None
            if any(entry is token for entry in stack):
                self._abandoned.add(token)
                outcome = "it will be removed once the overrides above it are released"
            else:
                outcome = "it is not installed"
            raise ScopeOrderError(
                f"Cannot remove {token.stream.value} override {token.installer_id}: "
                f"the current top is {top}, {outcome}. Redirection scopes must be "
                "released in the reverse order they were installed.")
        stack.pop()
        logger.debug("Popped %r from %s (depth %d, id %d)",
                     token.sink, token.stream.value, len(stack), token.installer_id)
        while stack and stack[-1] in self._abandoned:
            abandoned = stack.pop()
            self._abandoned.discard(abandoned)
            logger.debug("Removed abandoned override %d from %s (depth %d)",
                         abandoned.installer_id, abandoned.stream.value, len(stack))
        if not stack:
            self._uninstall_proxy(token.stream)

    @contextmanager
    def installed(self, stream: OutputStream, sink: OutputSink) -> Iterator[OutputSink]:
        """Keep sink installed for the duration of a with-block."""
        token = self.push(stream, sink)
        try:
            yield sink
        finally:
            self.pop(token)

    def _install_proxy(self, stream: OutputStream) -> None:
        original = getattr(sys, stream.value)
        proxy = _AmbientStdio(stream, self, original)
        self._proxies[stream] = proxy
        setattr(sys, stream.value, proxy)

    def _uninstall_proxy(self, stream: OutputStream) -> None:
        proxy = self._proxies.pop(stream)
        if getattr(sys, stream.value) is proxy:
            setattr(sys, stream.value, proxy._original)
        else:
            logger.warning(
                "sys.%s was replaced while output redirection was active; "
                "leaving the replacement in place", stream.value)


_default_context: AmbientOutputContext | None = None


def get_ambient_context() -> AmbientOutputContext:
    """Return the process-wide default AmbientOutputContext."""
    global _default_context
    if _default_context is None:
        _default_context = AmbientOutputContext()
    return _default_context


def current_stdout() -> OutputSink:
    """Return the sink stdout writes currently go to."""
    return get_ambient_context().current(OutputStream.STDOUT)


def current_stderr() -> OutputSink:
    """Return the sink stderr writes currently go to."""
    return get_ambient_context().current(OutputStream.STDERR)
