"""With-statement forms of output capture and suppression.

Provides OutputCapturer, which diverts stdout and stderr into capture
channels for the duration of a with-block, and OutputSuppressor, which
discards them. Both install their sinks on the ambient output context, so
print(), direct writes to the current sink and nested scripts are all
affected, and both remove their sinks at block exit with no deferral.

Design Rationale:
    A with-block has a precise end, so unlike the callable forms
    (silence_stdout(), capture_output(), ...) there is no need to wait for
    scheduled callbacks. Output written by callbacks that run after the block
    goes to whatever sink is current at that time.
"""

import sys
import traceback
from collections.abc import Iterable
from contextlib import ExitStack

from ..output_streams import (
    AmbientOutputContext,
    CaptureChannel,
    CaptureSink,
    NullSink,
    OutputStream,
)
from .redirection_scope import BOTH_STREAMS, RedirectionScope

__all__ = ['OutputCapturer', 'OutputSuppressor']


class OutputCapturer:
    """Context manager that captures stdout and stderr instead of printing them.

    Each stream gets its own CaptureChannel; `combined` interleaves both in
    arrival order. If the block raises, the traceback is written to the
    captured stderr before the streams are restored, and the exception
    propagates.

    Args:
        streams: Streams to capture; both by default.
        context: Ambient context to use; defaults to the process-wide one.

    Example:
        >>> with OutputCapturer() as capturer:
        ...     print("Hello")  # Captured, not printed
        >>> assert capturer.get_output() == "Hello\\n"
    """

    def __init__(self, streams: Iterable[OutputStream] = BOTH_STREAMS,
                 context: AmbientOutputContext | None = None):
        """Initialize the OutputCapturer.

        Sinks are created and installed in __enter__, so nested capturers
        stack in the order they are entered.
        """
        self.streams = tuple(streams)
        self._context = context
        self._scope: RedirectionScope | None = None
        self._stack: ExitStack | None = None
        self.combined: CaptureChannel | None = None

    def __repr__(self) -> str:
        captured_size = len(self.get_output()) if self.combined is not None else 0
        return f"OutputCapturer(captured_chars={captured_size})"

    def __enter__(self):
        """Install capturing sinks on the selected streams.

        Returns:
            The OutputCapturer instance for use as a context variable.
        """
        self._stack = ExitStack()
        self._scope = RedirectionScope(self.streams, CaptureSink, self._context)
        self._scope.open()
        self._stack.callback(self._scope.close)
        self.combined = CaptureChannel.merge(
            *(self._scope.channel(stream) for stream in self.streams))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Restore the previous sinks and close the capture channels.

        If an exception occurred, its traceback is printed to sys.stderr
        first, which is still the capturing sink when stderr is captured.

        Returns:
            Whatever ExitStack.__exit__ returns (False by default, allowing
            exceptions to propagate).
        """
        if exc_type is not None:
            traceback.print_exception(exc_type, exc_val, exc_tb, file=sys.stderr)
        return self._stack.__exit__(exc_type, exc_val, exc_tb)

    def _channel(self, stream: OutputStream) -> CaptureChannel:
        if self._scope is None:
            raise RuntimeError("OutputCapturer has not been entered")
        return self._scope.channel(stream)

    @property
    def stdout(self) -> CaptureChannel:
        """Channel with everything written to stdout inside the block."""
        return self._channel(OutputStream.STDOUT)

    @property
    def stderr(self) -> CaptureChannel:
        """Channel with everything written to stderr inside the block."""
        return self._channel(OutputStream.STDERR)

    def get_output(self) -> str:
        """Retrieve all captured output as a single string.

        Returns:
            Output of all captured streams, in the order it was written.
        """
        if self.combined is None:
            return ""
        return self.combined.text()


class OutputSuppressor:
    """Context manager that discards stdout and stderr inside a with-block.

    Args:
        streams: Streams to suppress; both by default.
        context: Ambient context to use; defaults to the process-wide one.
    """

    def __init__(self, streams: Iterable[OutputStream] = BOTH_STREAMS,
                 context: AmbientOutputContext | None = None):
        self.streams = tuple(streams)
        self._context = context
        self._scope: RedirectionScope | None = None

    def __repr__(self) -> str:
        streams = "+".join(stream.value for stream in self.streams)
        return f"OutputSuppressor({streams})"

    def __enter__(self):
        self._scope = RedirectionScope(self.streams, NullSink, self._context)
        self._scope.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._scope.close()
        return False
