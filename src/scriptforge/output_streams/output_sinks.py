"""Output sinks: destinations for writes to stdout and stderr.

Every write made through the ambient output context ends up in one of these
sinks. A RealSink forwards to the process stream, a NullSink discards, and a
CaptureSink records everything into a CaptureChannel.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .capture_channel import CaptureChannel

if TYPE_CHECKING:
    from .ambient_context import AmbientOutputContext

__all__ = ['OutputStream', 'OutputSink', 'RealSink', 'NullSink', 'CaptureSink']


class OutputStream(str, enum.Enum):
    """The two process output streams that can be redirected."""

    STDOUT = "stdout"
    STDERR = "stderr"


def _as_text(data: str | bytes) -> str:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    if not isinstance(data, str):
        raise TypeError(f"write() argument must be str or bytes, not {type(data).__name__}")
    return data


class OutputSink(ABC):
    """A destination for output with a single terminal "done" signal."""

    @abstractmethod
    def write(self, data: str | bytes) -> int:
        """Write text or bytes; return the number of items accepted."""

    def writeln(self, text: str = "") -> None:
        """Write text followed by a newline."""
        self.write(text + "\n")

    def flush(self) -> None:
        """Flush buffered output, if any."""

    @abstractmethod
    def close(self) -> None:
        """Signal that no more output will be written. Idempotent."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether close() has been called."""


class RealSink(OutputSink):
    """Sink that forwards to the real process stream.

    The target stream is looked up on every write, so a RealSink stays valid
    when the process stream is swapped (e.g. by a test harness) while no
    redirection is installed. Closing it never closes the process stream.

    Args:
        stream: Which process stream to forward to.
        context: Ambient context that knows the real stream while a
            redirection proxy is installed.
    """

    def __init__(self, stream: OutputStream, context: AmbientOutputContext):
        self.stream = stream
        self._context = context

    def __repr__(self) -> str:
        return f"RealSink({self.stream.value})"

    def write(self, data: str | bytes) -> int:
        target = self._context.real_stream(self.stream)
        if isinstance(data, (bytes, bytearray)):
            buffer = getattr(target, "buffer", None)
            if buffer is not None:
                target.flush()
                return buffer.write(data)
        return target.write(_as_text(data))

    def flush(self) -> None:
        self._context.real_stream(self.stream).flush()

    def close(self) -> None:
        pass

    @property
    def closed(self) -> bool:
        return False


class NullSink(OutputSink):
    """Sink that discards everything written to it."""

    def __init__(self, stream: OutputStream | None = None):
        self.stream = stream
        self._closed = False

    def __repr__(self) -> str:
        label = self.stream.value if self.stream is not None else "any"
        return f"NullSink({label})"

    def write(self, data: str | bytes) -> int:
        return len(data)

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


class CaptureSink(OutputSink):
    """Sink that records every write into a CaptureChannel.

    Writes after close() raise ValueError instead of being dropped.
    """

    def __init__(self, stream: OutputStream | None = None):
        self.stream = stream
        name = stream.value if stream is not None else "output"
        self.channel = CaptureChannel(name)

    def __repr__(self) -> str:
        return f"CaptureSink({self.channel.name}, captured_chars={len(self.channel.text())})"

    def write(self, data: str | bytes) -> int:
        text = _as_text(data)
        if self.channel.closed:
            raise ValueError(
                f"Write to closed capture sink for {self.channel.name!r}: "
                "output arrived after its redirection scope finished")
        self.channel._append(text)
        return len(data)

    def close(self) -> None:
        self.channel._close()

    @property
    def closed(self) -> bool:
        return self.channel.closed
